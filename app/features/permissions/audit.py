"""
Audit trail writer.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.permissions.models import AuditLog
from app.utils import get_logger


log = get_logger(__name__)


EVENT_DOCUMENT = "a3.document"
EVENT_SECTION = "a3.section"
EVENT_EXPORT = "a3.export"


@dataclass(frozen=True)
class RequestContext:
    """Client details copied onto audit entries when the call came over HTTP."""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class AuditLogger:
    """
    Appends audit entries to the caller's session.

    `record` flushes but never commits: the entry becomes durable with the
    mutation it describes, or not at all. A flush failure propagates so the
    operation fails with it.
    """

    def __init__(self, db: AsyncSession, context: RequestContext | None = None):
        self.db = db
        self.context = context or RequestContext()

    async def record(
        self,
        event_type: str,
        action: str,
        actor_id: Optional[str],
        organization_id: str,
        resource_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        user_agent = self.context.user_agent
        entry = AuditLog(
            event_type=event_type,
            action=action,
            actor_id=actor_id,
            organization_id=organization_id,
            resource_id=resource_id,
            details=details,
            ip_address=self.context.ip_address,
            user_agent=user_agent[:255] if user_agent else None,
        )
        self.db.add(entry)
        await self.db.flush()

        log.info(
            "Audit: actor=%s event=%s action=%s resource=%s org=%s",
            actor_id, event_type, action, resource_id, organization_id,
        )
        return entry
