"""
Authentication utilities for Appwrite JWT verification.
"""
from typing import Optional
import jwt
from appwrite.client import Client
from appwrite.services.users import Users
from appwrite.exception import AppwriteException
from starlette.concurrency import run_in_threadpool

from app.core import config
from app.core.errors import Unauthenticated
from app.utils import get_logger


log = get_logger(__name__)


class AppwriteClient:
    """Singleton Appwrite client for server-side operations."""

    _instance: Optional[Client] = None

    @classmethod
    def get_client(cls) -> Client:
        """Get or create Appwrite client instance."""
        if cls._instance is None:
            cls._instance = Client()
            cls._instance.set_endpoint(config.APPWRITE_ENDPOINT)
            cls._instance.set_project(config.APPWRITE_PROJECT_ID)
            cls._instance.set_key(config.APPWRITE_API_KEY)
        return cls._instance


def verify_jwt_token(token: str) -> dict:
    """
    Decode an Appwrite JWT and return its payload.

    Appwrite signs the token; we only check expiry here and confirm the user
    exists (locally or in Appwrite) afterwards.

    Raises:
        Unauthenticated: If the token is malformed or expired
    """
    try:
        return jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": True}
        )
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Token has expired")
    except jwt.InvalidTokenError as e:
        log.debug("Rejected bearer token: %s", e)
        raise Unauthenticated("Invalid token")


async def get_appwrite_user(user_id: str) -> dict:
    """
    Get user information from Appwrite.

    Raises:
        Unauthenticated: If the user is unknown to Appwrite or the call fails
    """
    try:
        users = Users(AppwriteClient.get_client())
        return await run_in_threadpool(users.get, user_id)
    except AppwriteException as e:
        log.info("Appwrite user lookup failed for %s: %s", user_id, e)
        raise Unauthenticated("Failed to verify user")
