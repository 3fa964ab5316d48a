"""
A3 document and section models.

An A3 document is a one-page problem-solving report split into a fixed set
of numbered sections. Documents belong to an organization (fixed at
creation) and are filed under one of its departments.
"""
from datetime import datetime
from typing import Any
from sqlalchemy import String, ForeignKey, Text, JSON, Boolean, Integer, DateTime, Enum as SQLEnum, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
import enum

from app.core.database.base import Base, TimestampMixin, generate_ulid


class DocumentStatus(str, enum.Enum):
    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# Section number -> heading. Every new document gets one row per entry.
A3_SECTIONS: dict[int, str] = {
    1: "Background",
    2: "Current Condition",
    3: "Goals",
    4: "Root Cause Analysis",
    5: "Countermeasures",
    6: "Implementation Plan",
    7: "Follow-up",
    8: "Lessons Learned",
}


class A3Document(Base, TimestampMixin):
    """
    A3 document.

    Attributes:
        organization_id: Owning tenant; never changes after creation
        department_id: Department the document is filed under
        author_id: User who created the document
        archived_at: Soft-delete marker; set by archive, cleared only by unarchive
    """
    __tablename__ = "a3_documents"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    organization_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    department_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("departments.id"),
        nullable=False,
        index=True
    )
    author_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[DocumentStatus] = mapped_column(
        SQLEnum(DocumentStatus),
        default=DocumentStatus.DRAFT,
        nullable=False,
        index=True
    )
    archived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    sections: Mapped[list["A3Section"]] = relationship(
        "A3Section",
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="A3Section.section_number"
    )

    __table_args__ = (
        Index("ix_a3_documents_org_archived", "organization_id", "archived_at"),
    )

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None

    def __repr__(self) -> str:
        return f"<A3Document(id={self.id}, org_id={self.organization_id}, title={self.title!r})>"


class A3Section(Base, TimestampMixin):
    """One numbered section of an A3 document; `content` is free-form JSON."""
    __tablename__ = "a3_sections"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    document_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("a3_documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    section_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    content: Mapped[Any | None] = mapped_column(JSON, nullable=True)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    document: Mapped["A3Document"] = relationship("A3Document", back_populates="sections")

    __table_args__ = (
        UniqueConstraint("document_id", "section_number", name="uq_a3_sections_doc_number"),
    )

    def __repr__(self) -> str:
        return f"<A3Section(id={self.id}, document_id={self.document_id}, number={self.section_number})>"
