"""
Persistence access for A3 documents.

The gateway and the permission checks depend only on this narrow surface,
not on query construction. Nothing here commits: the caller owns the
transaction.
"""
from datetime import datetime
from typing import Any, Optional
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.documents.models import A3Document, A3Section, A3_SECTIONS, DocumentStatus
from app.features.documents.schemas import DocumentFilters
from app.features.organizations.models import Department


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class DocumentRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, document_id: str, for_update: bool = False) -> Optional[A3Document]:
        """Fetch a document by id, row-locked when `for_update` (where supported)."""
        stmt = select(A3Document).where(A3Document.id == document_id)
        if for_update:
            stmt = stmt.with_for_update()
        return await self.db.scalar(stmt)

    async def find_many(self, organization_id: str, filters: DocumentFilters) -> list[A3Document]:
        """Documents of one organization, newest first. Archived ones only on request."""
        stmt = select(A3Document).where(A3Document.organization_id == organization_id)

        if not filters.include_archived:
            stmt = stmt.where(A3Document.archived_at.is_(None))
        if filters.department_id:
            stmt = stmt.where(A3Document.department_id == filters.department_id)
        if filters.status:
            stmt = stmt.where(A3Document.status == filters.status)
        if filters.search and filters.search.strip():
            pattern = f"%{_escape_like(filters.search.strip())}%"
            stmt = stmt.where(
                or_(
                    A3Document.title.ilike(pattern, escape="\\"),
                    A3Document.description.ilike(pattern, escape="\\"),
                )
            )

        stmt = stmt.order_by(A3Document.updated_at.desc(), A3Document.id.desc())
        stmt = stmt.offset(filters.skip).limit(filters.limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def find_department(self, department_id: str) -> Optional[Department]:
        return await self.db.scalar(select(Department).where(Department.id == department_id))

    async def find_section(self, document_id: str, section_number: int) -> Optional[A3Section]:
        return await self.db.scalar(
            select(A3Section).where(
                A3Section.document_id == document_id,
                A3Section.section_number == section_number,
            )
        )

    async def create(
        self,
        organization_id: str,
        department_id: str,
        author_id: str,
        title: str,
        description: Optional[str] = None,
    ) -> A3Document:
        """Insert a draft document together with its full section set."""
        document = A3Document(
            organization_id=organization_id,
            department_id=department_id,
            author_id=author_id,
            title=title,
            description=description,
            status=DocumentStatus.DRAFT,
        )
        document.sections = [
            A3Section(section_number=number, title=heading, content=None, completed=False)
            for number, heading in A3_SECTIONS.items()
        ]
        self.db.add(document)
        await self.db.flush()
        return document

    async def update(self, document: A3Document, changes: dict[str, Any]) -> A3Document:
        for key, value in changes.items():
            setattr(document, key, value)
        await self.db.flush()
        return document

    async def update_section(self, section: A3Section, changes: dict[str, Any]) -> A3Section:
        for key, value in changes.items():
            setattr(section, key, value)
        await self.db.flush()
        return section

    async def soft_delete(self, document: A3Document, at: datetime) -> A3Document:
        document.archived_at = at
        await self.db.flush()
        return document

    async def restore(self, document: A3Document) -> A3Document:
        document.archived_at = None
        await self.db.flush()
        return document

    async def hard_delete(self, document: A3Document) -> None:
        """Remove a document and its sections in the current transaction."""
        await self.db.delete(document)
        await self.db.flush()
