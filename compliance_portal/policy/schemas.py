"""
Pydantic v2 schemas for company policies.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from compliance_portal.core.constants import PolicyCategory


class PolicyCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: PolicyCategory = PolicyCategory.COMPLIANCE

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


class PolicyResponse(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    category: str
    file_name: str
    file_type: str
    file_size: int
    uploaded_by: Optional[UUID] = None
    uploader_name: Optional[str] = None
    uploader_email: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class PolicyListResponse(BaseModel):
    policies: List[PolicyResponse]
    total: int
