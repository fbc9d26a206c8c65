"""
Document API endpoints — upload, personal listing, review dashboard,
review transitions, deletion and signed access.
"""
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import Response
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_portal.core.constants import (
    Department,
    DocumentCategory,
    DocumentStatus,
    department_label,
    designation_label,
)
from compliance_portal.core.errors import ValidationFailed
from compliance_portal.core.uploads import read_upload, require_fields
from compliance_portal.database.postgresql import get_db
from compliance_portal.document import service
from compliance_portal.document.schemas import (
    DocumentCreate,
    DocumentListResponse,
    DocumentResponse,
    QuickReviewRequest,
    ReviewRequest,
    UploaderSummary,
)
from compliance_portal.middleware.auth_middleware import AuthContext, get_auth_context
from compliance_portal.storage import AccessGrant, attachment_disposition

router = APIRouter()


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    title: str = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[DocumentCategory] = Form(None),
    department: Optional[Department] = Form(None),
    file: UploadFile = File(None),
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Multipart upload: metadata fields plus the file. New documents start pending."""
    require_fields(title=title, category=category, department=department)
    try:
        meta = DocumentCreate(title=title, description=description, category=category, department=department)
    except ValidationError as e:
        raise ValidationFailed(e.errors()[0]["msg"])
    blob = await read_upload(file)
    return await service.upload_document(db, ctx.actor, meta, blob)


@router.get("", response_model=DocumentListResponse)
async def list_my_documents(
    status: Optional[DocumentStatus] = Query(None),
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """The caller's own documents, newest first, with per-status counts."""
    documents = await service.list_my_documents(db, ctx.actor)
    stats = service.document_stats(documents)
    if status is not None:
        documents = [d for d in documents if d.status == status.value]
    return DocumentListResponse(
        documents=[DocumentResponse.model_validate(d) for d in documents],
        stats=stats,
    )


@router.get("/review", response_model=DocumentListResponse)
async def review_queue(
    status: Optional[DocumentStatus] = Query(None),
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """HR sees every department; a General Manager sees their own."""
    rows = await service.list_review_queue(db, ctx.actor)
    stats = service.document_stats([d for d, _ in rows])
    documents = []
    for document, uploader in rows:
        if status is not None and document.status != status.value:
            continue
        item = DocumentResponse.model_validate(document)
        if uploader is not None:
            item.uploader = UploaderSummary(
                id=uploader.id,
                full_name=uploader.full_name,
                email=uploader.email,
                department=uploader.department,
                designation=uploader.designation,
                department_label=department_label(uploader.department),
                designation_label=designation_label(uploader.designation),
            )
        documents.append(item)
    return DocumentListResponse(documents=documents, stats=stats)


@router.post("/{document_id}/review", response_model=DocumentResponse)
async def review_document(
    document_id: uuid.UUID,
    data: ReviewRequest,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    return await service.review_document(
        db, ctx.actor, document_id, data.decision,
        notes=data.notes, expected_version=data.expected_version,
    )


@router.post("/{document_id}/quick-review", response_model=DocumentResponse)
async def quick_review(
    document_id: uuid.UUID,
    data: QuickReviewRequest,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    return await service.quick_review(db, ctx.actor, document_id, data.decision)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: uuid.UUID,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    await service.delete_document(db, ctx.actor, document_id)


@router.get("/{document_id}/view-url", response_model=AccessGrant)
async def view_url(
    document_id: uuid.UUID,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    return await service.document_view_grant(db, ctx.actor, document_id)


@router.get("/{document_id}/download-url", response_model=AccessGrant)
async def download_url(
    document_id: uuid.UUID,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    return await service.document_download_grant(db, ctx.actor, document_id)


@router.get("/{document_id}/download")
async def download_document(
    document_id: uuid.UUID,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    document, data = await service.download_document(db, ctx.actor, document_id)
    return Response(
        content=data,
        media_type=document.file_type or "application/octet-stream",
        headers={"Content-Disposition": attachment_disposition(document.filename)},
    )
