"""
Audit log model.

One row per mutating document operation or sensitive read (export). Rows
are append-only: nothing in the application updates or deletes them.
"""
from typing import Any, Dict
from sqlalchemy import String, ForeignKey, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin, generate_ulid


class AuditLog(Base, TimestampMixin):
    """
    Audit log for document operations.

    Tracks who did what, when, and from where. `resource_id` is a plain
    column, not a foreign key, so the entry written by a delete survives
    the document it describes.
    """
    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    # Category of the record, e.g. "a3.document", "a3.section", "a3.export"
    event_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    # Operation name, e.g. "create", "archive", "export"
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    actor_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    organization_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    resource_id: Mapped[str | None] = mapped_column(String(26), nullable=True, index=True)

    details: Mapped[Dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index("ix_audit_logs_org_created", "organization_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, actor_id={self.actor_id}, action={self.action}, resource={self.resource_id})>"
