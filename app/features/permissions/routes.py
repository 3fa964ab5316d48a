"""
Audit trail API routes.

Reading the trail is itself not audited.
"""
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.permissions.dependencies import require_org_admin
from app.features.permissions.models import AuditLog
from app.features.permissions.schemas import AuditLogResponse, AuditLogListResponse
from app.features.users.dependencies import Principal


router = APIRouter()


@router.get("/audit-logs", response_model=AuditLogListResponse)
async def list_audit_logs(
    principal: Annotated[Principal, Depends(require_org_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    actor_id: Optional[str] = None,
    action: Optional[str] = None,
    event_type: Optional[str] = None,
    resource_id: Optional[str] = None,
):
    """List the organization's audit entries, newest first (organization owners/admins only)."""
    stmt = select(AuditLog).where(AuditLog.organization_id == principal.organization_id)

    if actor_id:
        stmt = stmt.where(AuditLog.actor_id == actor_id)
    if action:
        stmt = stmt.where(AuditLog.action == action)
    if event_type:
        stmt = stmt.where(AuditLog.event_type == event_type)
    if resource_id:
        stmt = stmt.where(AuditLog.resource_id == resource_id)

    # Get total count
    total = await db.scalar(select(func.count()).select_from(stmt.subquery())) or 0

    # Get paginated results
    stmt = stmt.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset(skip).limit(limit)
    result = await db.execute(stmt)
    logs = result.scalars().all()

    pages = (total + limit - 1) // limit
    page = (skip // limit) + 1

    return AuditLogListResponse(
        items=[AuditLogResponse.model_validate(entry) for entry in logs],
        total=total,
        page=page,
        page_size=limit,
        pages=pages
    )
