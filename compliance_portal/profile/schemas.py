"""
Pydantic v2 schemas for registration, self-service edits and employee listings.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from compliance_portal.core.constants import Department, Designation


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v.strip() if isinstance(v, str) else v


class RegisterRequest(BaseModel):
    """Full registration: account credentials plus the employee profile."""
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=6)

    first_name: str = Field(..., min_length=1, max_length=100)
    middle_name: Optional[str] = None
    last_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    blood_group: Optional[str] = None

    phone_number: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    permanent_address: Optional[str] = None
    current_address: Optional[str] = None

    department: Department
    designation: Designation
    date_of_joining: Optional[date] = None
    reporting_manager: Optional[str] = None
    work_location: Optional[str] = None
    shift_timing: Optional[str] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be blank")
        return v.strip()

    @field_validator(
        "middle_name", "gender", "blood_group", "phone_number",
        "emergency_contact_name", "emergency_contact_phone",
        "permanent_address", "current_address",
        "reporting_manager", "work_location", "shift_timing",
    )
    @classmethod
    def optional_text(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)

    def profile_values(self) -> dict:
        """Column values for the profile row (credentials excluded)."""
        values = self.model_dump(exclude={"email", "password"})
        values["department"] = self.department.value
        values["designation"] = self.designation.value
        return values


class ProfileUpdate(BaseModel):
    """Owner-editable fields. Department, designation and role are not among them."""
    model_config = ConfigDict(extra="forbid")

    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    middle_name: Optional[str] = None
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone_number: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    permanent_address: Optional[str] = None
    current_address: Optional[str] = None
    work_location: Optional[str] = None
    shift_timing: Optional[str] = None
    bank_account_number: Optional[str] = Field(None, max_length=34)
    ifsc_code: Optional[str] = Field(None, max_length=11)


class ProfileResponse(BaseModel):
    id: UUID
    email: str
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: str = ""
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    blood_group: Optional[str] = None
    phone_number: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    permanent_address: Optional[str] = None
    current_address: Optional[str] = None
    department: Optional[str] = None
    designation: Optional[str] = None
    role: str = "employee"
    date_of_joining: Optional[date] = None
    reporting_manager: Optional[str] = None
    work_location: Optional[str] = None
    shift_timing: Optional[str] = None
    bank_account_number: Optional[str] = None
    ifsc_code: Optional[str] = None
    profile_picture_url: Optional[str] = None
    profile_completed: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class EmployeeSummary(BaseModel):
    id: UUID
    email: str
    full_name: str
    department: Optional[str] = None
    designation: Optional[str] = None
    department_label: Optional[str] = None
    designation_label: Optional[str] = None
    role: str = "employee"
    documents_count: int = 0
    created_at: Optional[datetime] = None


class EmployeeListResponse(BaseModel):
    employees: List[EmployeeSummary]
    total: int


class EmployeeDeleteResponse(BaseModel):
    employee_id: UUID
    documents_deleted: int
    blobs_removed: int
    message: str = "Employee deleted"
