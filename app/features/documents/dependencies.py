"""
Document feature dependency injection functions.
"""
from typing import Annotated
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.rate_limit import FixedWindowRateLimiter
from app.features.documents.export import DocumentRenderer, SimplePdfRenderer
from app.features.documents.service import DocumentGateway
from app.features.permissions.audit import RequestContext


def get_rate_limiter(request: Request) -> FixedWindowRateLimiter:
    """The application's search limiter, created in `create_app`."""
    return request.app.state.document_rate_limiter


def get_renderer(request: Request) -> DocumentRenderer:
    return getattr(request.app.state, "document_renderer", None) or SimplePdfRenderer()


def get_request_context(request: Request) -> RequestContext:
    return RequestContext(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


async def get_document_gateway(
    db: Annotated[AsyncSession, Depends(get_db)],
    rate_limiter: Annotated[FixedWindowRateLimiter, Depends(get_rate_limiter)],
    renderer: Annotated[DocumentRenderer, Depends(get_renderer)],
    context: Annotated[RequestContext, Depends(get_request_context)],
) -> DocumentGateway:
    """One gateway per request, bound to the request's session."""
    return DocumentGateway(
        db,
        rate_limiter=rate_limiter,
        renderer=renderer,
        audit_context=context,
    )
