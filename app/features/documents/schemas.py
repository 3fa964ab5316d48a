"""
Pydantic schemas for A3 document requests and responses.

Request models accept any JSON value per field; types, length, depth, size
and presence rules live in `validation.InputValidator` so every failure
carries its category.
"""
from datetime import datetime
from typing import Any
from pydantic import BaseModel, ConfigDict, Field

from app.features.documents.models import DocumentStatus


class DocumentCreate(BaseModel):
    """Schema for creating a document."""
    title: Any = None
    description: Any = None
    department_id: Any = None


class DocumentUpdate(BaseModel):
    """Partial update; only fields present in the request are applied."""
    title: Any = None
    description: Any = None
    status: Any = None


class SectionUpdate(BaseModel):
    """Schema for updating one section."""
    content: Any = None
    completed: Any = None


class DocumentFilters(BaseModel):
    """Listing filters."""
    department_id: str | None = None
    status: DocumentStatus | None = None
    search: str | None = Field(None, max_length=200)
    include_archived: bool = False
    skip: int = Field(0, ge=0)
    limit: int = Field(100, ge=1, le=500)


class SectionResponse(BaseModel):
    """Schema for section response."""
    id: str
    document_id: str
    section_number: int
    title: str
    content: Any = None
    completed: bool
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DocumentSummary(BaseModel):
    """Schema for document listings."""
    id: str
    organization_id: str
    department_id: str
    author_id: str | None
    title: str
    description: str | None = None
    status: DocumentStatus
    archived_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DocumentWithSections(DocumentSummary):
    """Full document with its sections and the caller's action flags."""
    sections: list[SectionResponse] = []
    permissions: dict[str, bool] = {}
