"""
Document schemas — upload metadata, listings, review requests.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from compliance_portal.authz.engine import ReviewDecision
from compliance_portal.core.constants import Department, DocumentCategory, DocumentStatus


class DocumentCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: DocumentCategory
    department: Department

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Title cannot be blank")
        return v.strip()

    @field_validator("description")
    @classmethod
    def description_trimmed(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()


class UploaderSummary(BaseModel):
    id: UUID
    full_name: str
    email: str
    department: Optional[str] = None
    designation: Optional[str] = None
    department_label: Optional[str] = None
    designation_label: Optional[str] = None


class DocumentResponse(BaseModel):
    id: UUID
    uploaded_by: UUID
    title: str
    description: Optional[str] = None
    category: str
    department: str
    upload_department: Optional[str] = None
    filename: str
    file_size: int
    file_type: str
    status: DocumentStatus
    reviewed_by: Optional[UUID] = None
    review_notes: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    version: int = 1
    created_at: datetime
    uploader: Optional[UploaderSummary] = None

    model_config = {"from_attributes": True}


class DocumentStats(BaseModel):
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0


class DocumentListResponse(BaseModel):
    documents: List[DocumentResponse]
    stats: DocumentStats


class ReviewRequest(BaseModel):
    decision: ReviewDecision
    notes: Optional[str] = Field(None, max_length=2000)
    expected_version: Optional[int] = Field(None, ge=1)


class QuickReviewRequest(BaseModel):
    decision: ReviewDecision
