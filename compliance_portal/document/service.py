"""
Document service — upload, listings, review transitions, deletion and access grants.

Every operation asks the authorization engine first and only then touches
the database or object storage. Review writes are conditional on the row
still being pending at the version the reviewer saw; a lost race surfaces
as InvalidTransition instead of silently overwriting the other decision.
"""
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from compliance_portal.audit import service as audit
from compliance_portal.authz import engine
from compliance_portal.authz.engine import Actor, DocumentRef, ReviewDecision
from compliance_portal.config import settings
from compliance_portal.core.constants import DOCUMENT_MIME_TYPES, DocumentStatus
from compliance_portal.core.errors import InvalidTransition, NotFound, PermissionDenied, StoreError
from compliance_portal.core.logging import get_logger
from compliance_portal.core.uploads import UploadedBlob, document_path, validate_blob
from compliance_portal.document.models import Document
from compliance_portal.document.schemas import DocumentCreate, DocumentStats
from compliance_portal.profile.models import Profile
from compliance_portal.storage import AccessGrant, ObjectStorage, ObjectStorageError, get_object_storage

logger = get_logger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  Upload
# ═══════════════════════════════════════════════════════════════════

async def upload_document(
    db: AsyncSession,
    actor: Actor,
    meta: DocumentCreate,
    blob: UploadedBlob,
    upload_department: Optional[str] = None,
    storage: Optional[ObjectStorage] = None,
) -> Document:
    """Store the blob, then insert the metadata row with status pending.
    The blob is removed again if the row cannot be written.
    """
    engine.authorize(engine.can_upload_document(actor), "upload documents")
    validate_blob(blob, DOCUMENT_MIME_TYPES, settings.MAX_DOCUMENT_BYTES, "documents")

    storage = storage or get_object_storage()
    path = document_path(blob)
    await storage.upload(settings.DOCUMENTS_BUCKET, path, blob.data, blob.content_type)

    document = Document(
        id=uuid.uuid4(),
        uploaded_by=actor.id,
        title=meta.title,
        description=meta.description,
        category=meta.category.value,
        department=meta.department.value,
        upload_department=upload_department or actor.department,
        filename=blob.filename,
        file_path=path,
        file_size=blob.size,
        file_type=blob.content_type,
        status=DocumentStatus.PENDING.value,
        version=1,
    )
    db.add(document)
    try:
        await db.flush()
    except SQLAlchemyError as exc:
        logger.error("Document row insert failed, removing blob", extra={
            "event": "document_insert_failed", "actor_id": str(actor.id), "error": str(exc),
        })
        await storage.remove(settings.DOCUMENTS_BUCKET, [path])
        raise StoreError("Could not save document metadata") from exc

    logger.info("Document uploaded", extra={
        "event": "document_uploaded",
        "document_id": str(document.id),
        "actor_id": str(actor.id),
        "department": document.department,
    })
    await audit.record_audit(actor.id, audit.DOCUMENT_UPLOADED, "document", document.id,
                             details={"department": document.department, "category": document.category})
    return document


# ═══════════════════════════════════════════════════════════════════
#  Listings
# ═══════════════════════════════════════════════════════════════════

async def get_document(db: AsyncSession, document_id: uuid.UUID) -> Document:
    document = await db.get(Document, document_id)
    if document is None:
        raise NotFound("Document not found")
    return document


async def list_my_documents(
    db: AsyncSession, actor: Actor, status: Optional[DocumentStatus] = None
) -> List[Document]:
    stmt = select(Document).where(Document.uploaded_by == actor.id)
    if status is not None:
        stmt = stmt.where(Document.status == status.value)
    result = await db.execute(stmt.order_by(Document.created_at.desc()))
    return list(result.scalars().all())


async def list_documents_for_owner(db: AsyncSession, owner_id: uuid.UUID) -> List[Document]:
    result = await db.execute(
        select(Document).where(Document.uploaded_by == owner_id).order_by(Document.created_at.desc())
    )
    return list(result.scalars().all())


async def list_review_queue(
    db: AsyncSession, actor: Actor, status: Optional[DocumentStatus] = None
) -> List[Tuple[Document, Optional[Profile]]]:
    """Documents the actor's review dashboard shows, each with its uploader.
    HR sees every department; a General Manager sees their own department.
    """
    scope = engine.review_scope(actor)
    if scope.is_empty:
        raise PermissionDenied("No review dashboard for this account")

    stmt = (
        select(Document, Profile)
        .join(Profile, Profile.id == Document.uploaded_by, isouter=True)
    )
    if not scope.all_departments:
        stmt = stmt.where(Document.department == scope.department)
    if status is not None:
        stmt = stmt.where(Document.status == status.value)

    result = await db.execute(stmt.order_by(Document.created_at.desc()))
    return [(row[0], row[1]) for row in result.all()]


def document_stats(documents: List[Document]) -> DocumentStats:
    stats = DocumentStats(total=len(documents))
    for document in documents:
        if document.status == DocumentStatus.PENDING.value:
            stats.pending += 1
        elif document.status == DocumentStatus.APPROVED.value:
            stats.approved += 1
        elif document.status == DocumentStatus.REJECTED.value:
            stats.rejected += 1
    return stats


# ═══════════════════════════════════════════════════════════════════
#  Review transitions
# ═══════════════════════════════════════════════════════════════════

async def review_document(
    db: AsyncSession,
    actor: Actor,
    document_id: uuid.UUID,
    decision: ReviewDecision,
    notes: Optional[str] = None,
    expected_version: Optional[int] = None,
) -> Document:
    """pending -> approved | rejected, recording reviewer, time and notes."""
    document = await get_document(db, document_id)
    ref = DocumentRef.from_document(document)

    if not engine.can_review_document(actor, ref):
        logger.warning("Review denied", extra={
            "event": "review_denied",
            "document_id": str(document_id),
            "actor_id": str(actor.id),
        })
        raise PermissionDenied("Not permitted to review this document")

    new_status = engine.transition(ref.status, decision)
    version = expected_version or document.version or 1
    reviewed_at = datetime.now(timezone.utc)
    values = {
        "status": new_status,
        "reviewed_by": actor.id,
        "reviewed_at": reviewed_at,
        "review_notes": notes or None,
        "version": version + 1,
        "updated_at": reviewed_at,
    }

    result = await db.execute(
        update(Document)
        .where(
            Document.id == document_id,
            Document.status == DocumentStatus.PENDING.value,
            Document.version == version,
        )
        .values(**values)
    )
    if result.rowcount != 1:
        logger.warning("Stale review write rejected", extra={
            "event": "review_conflict",
            "document_id": str(document_id),
            "actor_id": str(actor.id),
            "version": version,
        })
        raise InvalidTransition("Document was already reviewed or changed since it was loaded")

    for key, value in values.items():
        set_committed_value(document, key, value)

    logger.info("Document reviewed", extra={
        "event": "document_reviewed",
        "document_id": str(document_id),
        "actor_id": str(actor.id),
        "status": new_status,
    })
    action = audit.DOCUMENT_APPROVED if new_status == DocumentStatus.APPROVED.value else audit.DOCUMENT_REJECTED
    await audit.record_audit(actor.id, action, "document", document_id, details={"notes": notes})
    return document


async def quick_review(
    db: AsyncSession, actor: Actor, document_id: uuid.UUID, decision: ReviewDecision
) -> Document:
    """Same transition as review_document, without notes."""
    return await review_document(db, actor, document_id, decision)


# ═══════════════════════════════════════════════════════════════════
#  Deletion
# ═══════════════════════════════════════════════════════════════════

async def _remove_blobs(storage: ObjectStorage, paths: List[str], **log_extra) -> int:
    if not paths:
        return 0
    try:
        return len(await storage.remove(settings.DOCUMENTS_BUCKET, paths))
    except ObjectStorageError as exc:
        logger.warning("Blob removal failed (non-critical)", extra={
            "event": "blob_remove_failed", "error": str(exc), **log_extra,
        })
        return 0


async def delete_document(
    db: AsyncSession,
    actor: Actor,
    document_id: uuid.UUID,
    storage: Optional[ObjectStorage] = None,
) -> None:
    document = await get_document(db, document_id)
    engine.authorize(
        engine.can_delete_document(actor, DocumentRef.from_document(document)),
        "delete this document",
    )

    path = document.file_path
    await db.delete(document)
    await db.flush()

    await audit.record_audit(actor.id, audit.DOCUMENT_DELETED, "document", document_id)
    # Blob removal cannot be rolled back, so it runs last.
    await _remove_blobs(storage or get_object_storage(), [path], document_id=str(document_id))
    logger.info("Document deleted", extra={
        "event": "document_deleted", "document_id": str(document_id), "actor_id": str(actor.id),
    })


async def delete_documents_for_owner(
    db: AsyncSession,
    owner_id: uuid.UUID,
    storage: Optional[ObjectStorage] = None,
) -> Tuple[int, int]:
    """Remove every document row and blob belonging to owner_id.
    Returns (rows deleted, blobs removed). Callers authorize first.
    """
    documents = await list_documents_for_owner(db, owner_id)
    paths = [d.file_path for d in documents if d.file_path]
    for document in documents:
        await db.delete(document)
    await db.flush()

    removed = await _remove_blobs(storage or get_object_storage(), paths, owner_id=str(owner_id))
    return len(documents), removed


# ═══════════════════════════════════════════════════════════════════
#  Access grants
# ═══════════════════════════════════════════════════════════════════

async def _authorized_for_view(db: AsyncSession, actor: Actor, document_id: uuid.UUID) -> Tuple[Document, DocumentRef]:
    document = await get_document(db, document_id)
    ref = DocumentRef.from_document(document)
    engine.authorize(engine.can_view_document(actor, ref), "view this document")
    return document, ref


async def document_view_grant(
    db: AsyncSession, actor: Actor, document_id: uuid.UUID, storage: Optional[ObjectStorage] = None
) -> AccessGrant:
    document, ref = await _authorized_for_view(db, actor, document_id)
    storage = storage or get_object_storage()
    return await storage.create_signed_url(
        settings.DOCUMENTS_BUCKET, document.file_path, engine.document_view_duration(actor, ref)
    )


async def document_download_grant(
    db: AsyncSession, actor: Actor, document_id: uuid.UUID, storage: Optional[ObjectStorage] = None
) -> AccessGrant:
    document, ref = await _authorized_for_view(db, actor, document_id)
    storage = storage or get_object_storage()
    return await storage.create_signed_url(
        settings.DOCUMENTS_BUCKET,
        document.file_path,
        engine.document_download_duration(actor, ref),
        download_name=document.filename,
    )


async def download_document(
    db: AsyncSession, actor: Actor, document_id: uuid.UUID, storage: Optional[ObjectStorage] = None
) -> Tuple[Document, bytes]:
    document, _ = await _authorized_for_view(db, actor, document_id)
    storage = storage or get_object_storage()
    return document, await storage.download(settings.DOCUMENTS_BUCKET, document.file_path)
