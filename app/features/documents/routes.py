"""
A3 document API routes.

Routes only translate HTTP into gateway calls; authorization, validation,
rate limiting and auditing all happen in `DocumentGateway`.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, Query, Request, status
from starlette.responses import Response

from app.core import config
from app.core.rate_limit import limiter
from app.features.documents.dependencies import get_document_gateway
from app.features.documents.models import DocumentStatus
from app.features.documents.schemas import (
    DocumentCreate,
    DocumentUpdate,
    SectionUpdate,
    DocumentFilters,
    DocumentSummary,
    DocumentWithSections,
    SectionResponse,
)
from app.features.documents.service import DocumentGateway
from app.features.users.dependencies import Principal, get_current_principal


router = APIRouter()


@router.get("", response_model=list[DocumentSummary])
async def list_documents(
    principal: Annotated[Principal, Depends(get_current_principal)],
    gateway: Annotated[DocumentGateway, Depends(get_document_gateway)],
    department_id: str | None = None,
    status_filter: DocumentStatus | None = Query(None, alias="status"),
    search: str | None = Query(None, max_length=200),
    include_archived: bool = False,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """
    List documents visible to the caller.

    - department_id: Filter by department
    - status: Filter by status
    - search: Case-insensitive match on title/description (rate limited)
    - include_archived: Include archived documents
    """
    filters = DocumentFilters(
        department_id=department_id,
        status=status_filter,
        search=search,
        include_archived=include_archived,
        skip=skip,
        limit=limit,
    )
    return await gateway.list_documents(principal, filters)


@router.post("", response_model=DocumentWithSections, status_code=status.HTTP_201_CREATED)
async def create_document(
    document_data: DocumentCreate,
    principal: Annotated[Principal, Depends(get_current_principal)],
    gateway: Annotated[DocumentGateway, Depends(get_document_gateway)],
):
    """Create a draft document with its sections."""
    return await gateway.create_document(principal, document_data)


@router.get("/{document_id}", response_model=DocumentWithSections)
async def get_document(
    document_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    gateway: Annotated[DocumentGateway, Depends(get_document_gateway)],
):
    """Get a document with its sections and the caller's permissions on it."""
    return await gateway.get_document_with_sections(principal, document_id)


@router.patch("/{document_id}", response_model=DocumentWithSections)
async def update_document(
    document_id: str,
    update_data: DocumentUpdate,
    principal: Annotated[Principal, Depends(get_current_principal)],
    gateway: Annotated[DocumentGateway, Depends(get_document_gateway)],
):
    """Update title, description or status."""
    return await gateway.update_document(principal, document_id, update_data)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    gateway: Annotated[DocumentGateway, Depends(get_document_gateway)],
):
    """Permanently delete a document and its sections."""
    await gateway.delete_document(principal, document_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{document_id}/archive", response_model=DocumentWithSections)
async def archive_document(
    document_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    gateway: Annotated[DocumentGateway, Depends(get_document_gateway)],
):
    """Archive (soft-delete) a document. Re-archiving is a no-op."""
    return await gateway.archive_document(principal, document_id)


@router.post("/{document_id}/unarchive", response_model=DocumentWithSections)
async def unarchive_document(
    document_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    gateway: Annotated[DocumentGateway, Depends(get_document_gateway)],
):
    """Restore an archived document."""
    return await gateway.unarchive_document(principal, document_id)


@router.patch("/{document_id}/sections/{section_number}", response_model=SectionResponse)
async def update_section(
    document_id: str,
    section_number: int,
    section_data: SectionUpdate,
    principal: Annotated[Principal, Depends(get_current_principal)],
    gateway: Annotated[DocumentGateway, Depends(get_document_gateway)],
):
    """Replace a section's content and optionally mark it completed."""
    return await gateway.update_section(principal, document_id, section_number, section_data)


@router.get("/{document_id}/export")
@limiter.limit(config.EXPORT_RATE_LIMIT)
async def export_document(
    request: Request,
    document_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    gateway: Annotated[DocumentGateway, Depends(get_document_gateway)],
):
    """Download the document as PDF. Every export is audited."""
    result = await gateway.export_document(principal, document_id)
    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )
