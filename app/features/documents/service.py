"""
Operation gateway for A3 documents.

Every public operation runs the same pipeline, and the first failing stage
ends the call:

    principal present?      -> Unauthenticated (401)
    input valid?            -> ValidationFailed (400)
    rate ok? (search only)  -> RateLimited (429)
    document in tenant?     -> NotFound (404)
    permitted?              -> NotFound (404), same message as above
    mutate / read
    audit (mutations and export)
    commit

Fetch, permission check, mutation and audit entry share one transaction;
any failure after the first write rolls all of it back. This module is
also the one place that maps failure types to HTTP statuses.
"""
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping, Optional
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.base import utcnow
from app.core.errors import (
    OperationError,
    Unauthenticated,
    ValidationFailed,
    RateLimited,
    NotFound,
)
from app.core.rate_limit import FixedWindowRateLimiter
from app.features.documents.export import DocumentRenderer, SimplePdfRenderer, export_filename
from app.features.documents.models import A3Document, A3Section, DocumentStatus
from app.features.documents.repository import DocumentRepository
from app.features.documents.schemas import DocumentFilters, DocumentWithSections
from app.features.documents.validation import InputValidator
from app.features.organizations.membership import MembershipResolver
from app.features.permissions.audit import (
    AuditLogger,
    RequestContext,
    EVENT_DOCUMENT,
    EVENT_SECTION,
    EVENT_EXPORT,
)
from app.features.permissions.dependencies import Action, can, can_create_in, permissions_for
from app.features.users.dependencies import Principal
from app.utils import get_logger


log = get_logger(__name__)


SEARCH_OPERATION = "search"


# ============================================================================
# Error taxonomy -> HTTP
# ============================================================================

ERROR_STATUS: dict[type[OperationError], int] = {
    Unauthenticated: 401,
    ValidationFailed: 400,
    RateLimited: 429,
    NotFound: 404,
}


def http_status_for(error: OperationError) -> int:
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(error, error_type):
            return status_code
    return 500


def error_payload(error: OperationError) -> dict[str, Any]:
    payload: dict[str, Any] = {"detail": error.message}
    if isinstance(error, ValidationFailed):
        payload["reason"] = error.reason.value
        if error.field:
            payload["field"] = error.field
    return payload


# ============================================================================
# Gateway
# ============================================================================

@dataclass(frozen=True)
class ExportResult:
    content: bytes
    filename: str
    media_type: str


def _as_payload(data: Any) -> Any:
    # Only fields the client actually sent count as present
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_unset=True)
    if isinstance(data, Mapping):
        return dict(data)
    return data


class DocumentGateway:
    """
    Public entry points for document operations.

    Args:
        db: Session for this request; the gateway commits or rolls it back
        rate_limiter: Shared limiter consulted for search listings
        renderer: PDF renderer used by export
        validator: Structural input validator
        audit_context: Client IP / user agent copied onto audit entries
        now: Clock for archive timestamps and export filenames
    """

    def __init__(
        self,
        db: AsyncSession,
        rate_limiter: FixedWindowRateLimiter,
        renderer: Optional[DocumentRenderer] = None,
        validator: Optional[InputValidator] = None,
        audit_context: Optional[RequestContext] = None,
        now: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.rate_limiter = rate_limiter
        self.renderer = renderer or SimplePdfRenderer()
        self.validator = validator or InputValidator()
        self.repository = DocumentRepository(db)
        self.memberships = MembershipResolver(db)
        self.audit = AuditLogger(db, audit_context)
        self.now = now

    # ------------------------------------------------------------------
    # Pipeline stages
    # ------------------------------------------------------------------

    @staticmethod
    def _require_principal(principal: Optional[Principal]) -> Principal:
        if principal is None:
            raise Unauthenticated()
        return principal

    def _check_rate(self, principal: Principal, operation_class: str) -> None:
        if not self.rate_limiter.allow(principal.user_id, operation_class):
            raise RateLimited(operation_class)

    async def _authorize(
        self,
        principal: Principal,
        document_id: str,
        action: Action,
        for_update: bool = False
    ) -> A3Document:
        """Fetch a document and check `action`; absent and denied look the same."""
        document = await self.repository.find_by_id(document_id, for_update=for_update)
        if document is None or document.organization_id != principal.organization_id:
            raise NotFound()

        membership = await self.memberships.membership_in(principal.user_id, document.department_id)
        if not can(action, principal, document, membership):
            raise NotFound()
        return document

    @asynccontextmanager
    async def _unit_of_work(self):
        try:
            yield
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    async def _reload(self, document: A3Document) -> A3Document:
        # Server-side timestamps are expired after flush; load them before
        # the response is serialized.
        await self.db.refresh(document)
        for section in document.sections:
            await self.db.refresh(section)
        return document

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_documents(
        self,
        principal: Optional[Principal],
        filters: Optional[DocumentFilters] = None
    ) -> list[A3Document]:
        """Documents the principal can view. Searches are rate limited; nothing is audited."""
        principal = self._require_principal(principal)
        filters = filters or DocumentFilters()

        if filters.search and filters.search.strip():
            self._check_rate(principal, SEARCH_OPERATION)

        documents = await self.repository.find_many(principal.organization_id, filters)
        memberships = {
            m.department_id: m for m in await self.memberships.memberships_of(principal.user_id)
        }
        return [
            document for document in documents
            if can(Action.VIEW, principal, document, memberships.get(document.department_id))
        ]

    async def get_document_with_sections(
        self,
        principal: Optional[Principal],
        document_id: str
    ) -> DocumentWithSections:
        principal = self._require_principal(principal)
        document = await self._authorize(principal, document_id, Action.VIEW)

        membership = await self.memberships.membership_in(principal.user_id, document.department_id)
        response = DocumentWithSections.model_validate(document)
        response.permissions = permissions_for(principal, document, membership)
        return response

    async def export_document(self, principal: Optional[Principal], document_id: str) -> ExportResult:
        """Render a document to PDF. Always audited: the artifact leaves the system."""
        principal = self._require_principal(principal)

        async with self._unit_of_work():
            document = await self._authorize(principal, document_id, Action.VIEW)
            content = self.renderer.render(document)
            filename = export_filename(document.title, self.now())

            await self.audit.record(
                EVENT_EXPORT,
                "export",
                principal.user_id,
                document.organization_id,
                document.id,
                {"format": "pdf", "filename": filename, "bytes": len(content)},
            )

        return ExportResult(content=content, filename=filename, media_type=self.renderer.media_type)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_document(self, principal: Optional[Principal], data: Any) -> A3Document:
        """Create a draft document with its full section set in a department of the caller's tenant."""
        principal = self._require_principal(principal)
        payload = _as_payload(data)
        self.validator.validate_create(payload).raise_for_failure()

        async with self._unit_of_work():
            department = await self.repository.find_department(payload["department_id"])
            if department is None or department.organization_id != principal.organization_id:
                raise NotFound()
            membership = await self.memberships.membership_in(principal.user_id, department.id)
            if not can_create_in(principal, department, membership):
                raise NotFound()

            description = payload.get("description")
            document = await self.repository.create(
                organization_id=principal.organization_id,
                department_id=department.id,
                author_id=principal.user_id,
                title=payload["title"].strip(),
                description=description.strip() if description else None,
            )
            await self.audit.record(
                EVENT_DOCUMENT,
                "create",
                principal.user_id,
                document.organization_id,
                document.id,
                {"title": document.title, "department_id": document.department_id},
            )

        log.info("Document %s created by %s", document.id, principal.user_id)
        return await self._reload(document)

    async def update_document(self, principal: Optional[Principal], document_id: str, data: Any) -> A3Document:
        """Apply a partial update. A payload that changes nothing writes no audit entry."""
        principal = self._require_principal(principal)
        payload = _as_payload(data)
        self.validator.validate_update(payload).raise_for_failure()

        async with self._unit_of_work():
            document = await self._authorize(principal, document_id, Action.EDIT, for_update=True)

            changes: dict[str, Any] = {}
            if payload.get("title") is not None:
                changes["title"] = payload["title"].strip()
            if "description" in payload:
                description = payload["description"]
                changes["description"] = description.strip() if description else None
            if payload.get("status") is not None:
                changes["status"] = DocumentStatus(payload["status"])

            diff = {
                key: {"from": _plain(getattr(document, key)), "to": _plain(value)}
                for key, value in changes.items()
                if getattr(document, key) != value
            }
            if not diff:
                # Nothing changes, so nothing is audited
                return document

            await self.repository.update(document, {key: changes[key] for key in diff})
            await self.audit.record(
                EVENT_DOCUMENT,
                "update",
                principal.user_id,
                document.organization_id,
                document.id,
                {"changes": diff},
            )

        return await self._reload(document)

    async def update_section(
        self,
        principal: Optional[Principal],
        document_id: str,
        section_number: int,
        data: Any
    ) -> A3Section:
        principal = self._require_principal(principal)
        payload = _as_payload(data)
        self.validator.validate_section(section_number, payload).raise_for_failure()

        async with self._unit_of_work():
            document = await self._authorize(principal, document_id, Action.EDIT, for_update=True)
            section = await self.repository.find_section(document.id, section_number)
            if section is None:
                raise NotFound()

            changes: dict[str, Any] = {"content": payload["content"]}
            if payload.get("completed") is not None:
                changes["completed"] = payload["completed"]
            await self.repository.update_section(section, changes)

            await self.audit.record(
                EVENT_SECTION,
                "update_section",
                principal.user_id,
                document.organization_id,
                document.id,
                {"section_number": section_number, "completed": section.completed},
            )

        await self.db.refresh(section)
        return section

    async def archive_document(self, principal: Optional[Principal], document_id: str) -> A3Document:
        """Soft-delete. Archiving an archived document is a successful no-op."""
        principal = self._require_principal(principal)

        async with self._unit_of_work():
            document = await self._authorize(principal, document_id, Action.ARCHIVE, for_update=True)
            if document.is_archived:
                return document

            await self.repository.soft_delete(document, self.now())
            await self.audit.record(
                EVENT_DOCUMENT,
                "archive",
                principal.user_id,
                document.organization_id,
                document.id,
                {"archived_at": document.archived_at.isoformat()},
            )

        return await self._reload(document)

    async def unarchive_document(self, principal: Optional[Principal], document_id: str) -> A3Document:
        """Clear `archived_at`. The only way it is ever cleared."""
        principal = self._require_principal(principal)

        async with self._unit_of_work():
            document = await self._authorize(principal, document_id, Action.ARCHIVE, for_update=True)
            if not document.is_archived:
                return document

            previous = document.archived_at
            await self.repository.restore(document)
            await self.audit.record(
                EVENT_DOCUMENT,
                "unarchive",
                principal.user_id,
                document.organization_id,
                document.id,
                {"archived_at": previous.isoformat()},
            )

        return await self._reload(document)

    async def delete_document(self, principal: Optional[Principal], document_id: str) -> None:
        """Irreversibly remove a document and its sections; the audit entry is written first."""
        principal = self._require_principal(principal)

        async with self._unit_of_work():
            document = await self._authorize(principal, document_id, Action.DELETE, for_update=True)
            await self.audit.record(
                EVENT_DOCUMENT,
                "delete",
                principal.user_id,
                document.organization_id,
                document.id,
                {
                    "title": document.title,
                    "department_id": document.department_id,
                    "sections": len(document.sections),
                },
            )
            await self.repository.hard_delete(document)

        log.info("Document %s deleted by %s", document_id, principal.user_id)


def _plain(value: Any) -> Any:
    if isinstance(value, DocumentStatus):
        return value.value
    return value
