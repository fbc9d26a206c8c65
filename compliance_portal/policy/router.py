"""
Company policy API endpoints — upload, listing, deletion and signed access.
"""
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_portal.core.constants import PolicyCategory
from compliance_portal.core.errors import ValidationFailed
from compliance_portal.core.uploads import read_upload, require_fields
from compliance_portal.database.postgresql import get_db
from compliance_portal.middleware.auth_middleware import AuthContext, get_auth_context
from compliance_portal.policy import service
from compliance_portal.policy.models import CompanyPolicy
from compliance_portal.policy.schemas import PolicyCreate, PolicyListResponse, PolicyResponse
from compliance_portal.profile.models import Profile
from compliance_portal.storage import AccessGrant

router = APIRouter()


def _to_response(policy: CompanyPolicy, uploader: Optional[Profile] = None) -> PolicyResponse:
    item = PolicyResponse.model_validate(policy)
    if uploader is not None:
        item.uploader_name = uploader.full_name
        item.uploader_email = uploader.email
    return item


@router.post("", response_model=PolicyResponse, status_code=status.HTTP_201_CREATED)
async def upload_policy(
    title: str = Form(None),
    description: Optional[str] = Form(None),
    category: PolicyCategory = Form(PolicyCategory.COMPLIANCE),
    file: UploadFile = File(None),
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Managers and General Managers only. Policies are live once stored."""
    require_fields(title=title)
    try:
        meta = PolicyCreate(title=title, description=description, category=category)
    except ValidationError as e:
        raise ValidationFailed(e.errors()[0]["msg"])
    blob = await read_upload(file)
    policy = await service.upload_policy(db, ctx.actor, meta, blob)
    return _to_response(policy, ctx.profile)


@router.get("", response_model=PolicyListResponse)
async def list_policies(
    category: Optional[PolicyCategory] = Query(None),
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    rows = await service.list_policies(db, ctx.actor, category=category)
    policies = [_to_response(policy, uploader) for policy, uploader in rows]
    return PolicyListResponse(policies=policies, total=len(policies))


@router.delete("/{policy_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_policy(
    policy_id: uuid.UUID,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    await service.delete_policy(db, ctx.actor, policy_id)


@router.get("/{policy_id}/view-url", response_model=AccessGrant)
async def view_url(
    policy_id: uuid.UUID,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Lifetime depends on the viewer's designation and the policy category."""
    return await service.policy_view_grant(db, ctx.actor, policy_id)


@router.get("/{policy_id}/download-url", response_model=AccessGrant)
async def download_url(
    policy_id: uuid.UUID,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    return await service.policy_download_grant(db, ctx.actor, policy_id)
