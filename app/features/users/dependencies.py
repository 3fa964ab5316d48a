"""
FastAPI dependencies for authentication.

Produces the `Principal`: the identity context every document operation
runs under.
"""
from dataclasses import dataclass
from typing import Annotated, Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.base import utcnow
from app.core.database.engine import get_db
from app.core.errors import Unauthenticated
from app.features.organizations.models import OrganizationRole
from app.features.users.models import User
from app.features.users.auth import verify_jwt_token, get_appwrite_user


# auto_error=False: a missing header must be a 401, not FastAPI's default 403
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """Authenticated actor for one request. Never built from client input."""
    user_id: str
    organization_id: str
    organization_role: OrganizationRole

    @property
    def is_org_admin(self) -> bool:
        return self.organization_role in (OrganizationRole.OWNER, OrganizationRole.ADMIN)

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        if user.organization_id is None:
            raise Unauthenticated("User does not belong to an organization")
        return cls(
            user_id=user.id,
            organization_id=user.organization_id,
            organization_role=OrganizationRole(user.organization_role),
        )


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> User:
    """
    Get the current authenticated user from JWT token.

    This dependency:
    1. Extracts JWT from Authorization header
    2. Verifies JWT expiry
    3. Looks up or provisions the user in the local database
    4. Updates last_login_at timestamp
    """
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()

    payload = verify_jwt_token(credentials.credentials)
    appwrite_user_id = payload.get("userId")

    if not appwrite_user_id:
        raise Unauthenticated("Invalid token payload")

    user = await db.scalar(
        select(User).where(User.appwrite_id == appwrite_user_id)
    )

    if user is None:
        # First login: provision without an organization. An admin attaches
        # the user to one before they can work with documents.
        appwrite_user = await get_appwrite_user(appwrite_user_id)
        user = User(
            appwrite_id=appwrite_user_id,
            email=appwrite_user.get("email", ""),
            name=appwrite_user.get("name", "Unknown"),
            last_login_at=utcnow(),
        )
        db.add(user)
    else:
        user.last_login_at = utcnow()

    await db.commit()
    await db.refresh(user)

    if not user.is_active:
        raise Unauthenticated("User account is deactivated")

    return user


async def get_current_principal(
    user: Annotated[User, Depends(get_current_user)]
) -> Principal:
    """
    Resolve the request's principal.

    Usage:
        @router.get("/documents")
        async def list_documents(principal: Principal = Depends(get_current_principal)):
            ...
    """
    return Principal.from_user(user)
