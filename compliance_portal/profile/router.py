"""
Profile API endpoints — self-service profile and employee management.
"""
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_portal.core.constants import (
    Department,
    DocumentStatus,
    ProfileRole,
    department_label,
    designation_label,
)
from compliance_portal.core.uploads import read_upload
from compliance_portal.database.postgresql import get_db
from compliance_portal.document.schemas import DocumentResponse
from compliance_portal.middleware.auth_middleware import AuthContext, get_auth_context
from compliance_portal.profile import service
from compliance_portal.profile.schemas import (
    EmployeeDeleteResponse,
    EmployeeListResponse,
    EmployeeSummary,
    ProfileResponse,
    ProfileUpdate,
)

router = APIRouter()


# ── Self-service ──────────────────────────────────────────────────

@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(ctx: AuthContext = Depends(get_auth_context)):
    return ctx.profile


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    data: ProfileUpdate,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Edit personal, contact and bank details."""
    return await service.update_my_profile(db, ctx.profile, data)


@router.post("/me/picture", response_model=ProfileResponse)
async def upload_profile_picture(
    file: UploadFile = File(...),
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    blob = await read_upload(file)
    return await service.upload_profile_picture(db, ctx.profile, blob)


# ── Employee management ───────────────────────────────────────────

@router.get("", response_model=EmployeeListResponse)
async def list_employees(
    department: Optional[Department] = Query(None),
    role: Optional[ProfileRole] = Query(None),
    search: Optional[str] = Query(None),
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Managers and General Managers only."""
    rows = await service.list_employees(db, ctx.actor, department=department, role=role, search=search)
    employees = [
        EmployeeSummary(
            id=profile.id,
            email=profile.email,
            full_name=profile.full_name,
            department=profile.department,
            designation=profile.designation,
            department_label=department_label(profile.department),
            designation_label=designation_label(profile.designation),
            role=profile.role,
            documents_count=count,
            created_at=profile.created_at,
        )
        for profile, count in rows
    ]
    return EmployeeListResponse(employees=employees, total=len(employees))


@router.get("/{employee_id}", response_model=ProfileResponse)
async def get_employee(
    employee_id: uuid.UUID,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    return await service.get_employee(db, ctx.actor, employee_id)


@router.get("/{employee_id}/documents", response_model=List[DocumentResponse])
async def list_employee_documents(
    employee_id: uuid.UUID,
    status: Optional[DocumentStatus] = Query(None),
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    return await service.list_employee_documents(db, ctx.actor, employee_id, status=status)


@router.delete("/{employee_id}", response_model=EmployeeDeleteResponse)
async def delete_employee(
    employee_id: uuid.UUID,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Remove the employee, every document they uploaded, and deactivate their account."""
    documents_deleted, blobs_removed = await service.delete_employee(db, ctx.actor, employee_id)
    return EmployeeDeleteResponse(
        employee_id=employee_id,
        documents_deleted=documents_deleted,
        blobs_removed=blobs_removed,
    )
