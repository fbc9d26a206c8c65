"""
Company policy business logic — upload, listing, deletion, access grants.
Policies are live as soon as they are stored; they have no review cycle.
"""
import uuid
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_portal.audit import service as audit
from compliance_portal.authz import engine
from compliance_portal.authz.engine import Actor, PolicyRef
from compliance_portal.config import settings
from compliance_portal.core.constants import POLICY_MIME_TYPES, PolicyCategory
from compliance_portal.core.errors import NotFound, StoreError
from compliance_portal.core.logging import get_logger
from compliance_portal.core.uploads import UploadedBlob, policy_path, validate_blob
from compliance_portal.policy.models import CompanyPolicy
from compliance_portal.policy.schemas import PolicyCreate
from compliance_portal.profile.models import Profile
from compliance_portal.storage import AccessGrant, ObjectStorage, ObjectStorageError, get_object_storage

logger = get_logger(__name__)


async def upload_policy(
    db: AsyncSession,
    actor: Actor,
    meta: PolicyCreate,
    blob: UploadedBlob,
    storage: Optional[ObjectStorage] = None,
) -> CompanyPolicy:
    engine.authorize(engine.can_manage_policies(actor), "upload company policies")
    validate_blob(blob, POLICY_MIME_TYPES, settings.MAX_POLICY_BYTES, "policies")

    storage = storage or get_object_storage()
    path = policy_path(blob)
    await storage.upload(settings.DOCUMENTS_BUCKET, path, blob.data, blob.content_type)

    policy = CompanyPolicy(
        id=uuid.uuid4(),
        title=meta.title,
        description=meta.description,
        category=meta.category.value,
        file_url=path,
        file_name=blob.filename,
        file_type=blob.content_type,
        file_size=blob.size,
        uploaded_by=actor.id,
    )
    db.add(policy)
    try:
        await db.flush()
    except SQLAlchemyError as exc:
        logger.error("Policy row insert failed, removing blob", extra={
            "event": "policy_insert_failed", "actor_id": str(actor.id), "error": str(exc),
        })
        await storage.remove(settings.DOCUMENTS_BUCKET, [path])
        raise StoreError("Could not save policy metadata") from exc

    logger.info("Policy uploaded", extra={
        "event": "policy_uploaded", "policy_id": str(policy.id), "actor_id": str(actor.id),
    })
    await audit.record_audit(actor.id, audit.POLICY_UPLOADED, "policy", policy.id,
                             details={"title": policy.title, "category": policy.category})
    return policy


async def list_policies(
    db: AsyncSession, actor: Actor, category: Optional[PolicyCategory] = None
) -> List[Tuple[CompanyPolicy, Optional[Profile]]]:
    """Newest first, each with the uploader's profile when it still exists."""
    engine.authorize(engine.can_view_policies(actor), "view company policies")
    stmt = select(CompanyPolicy, Profile).join(Profile, Profile.id == CompanyPolicy.uploaded_by, isouter=True)
    if category is not None:
        stmt = stmt.where(CompanyPolicy.category == category.value)
    result = await db.execute(stmt.order_by(CompanyPolicy.created_at.desc()))
    return [(row[0], row[1]) for row in result.all()]


async def get_policy(db: AsyncSession, policy_id: uuid.UUID) -> CompanyPolicy:
    policy = await db.get(CompanyPolicy, policy_id)
    if policy is None:
        raise NotFound("Policy not found")
    return policy


async def delete_policy(
    db: AsyncSession, actor: Actor, policy_id: uuid.UUID, storage: Optional[ObjectStorage] = None
) -> None:
    engine.authorize(engine.can_manage_policies(actor), "delete company policies")
    policy = await get_policy(db, policy_id)
    path = policy.file_url

    await db.delete(policy)
    await db.flush()
    await audit.record_audit(actor.id, audit.POLICY_DELETED, "policy", policy_id)

    # Blob removal cannot be rolled back, so it runs last.
    storage = storage or get_object_storage()
    try:
        await storage.remove(settings.DOCUMENTS_BUCKET, [path])
    except ObjectStorageError as exc:
        logger.warning("Policy blob removal failed (non-critical)", extra={
            "event": "blob_remove_failed", "policy_id": str(policy_id), "error": str(exc),
        })

    logger.info("Policy deleted", extra={
        "event": "policy_deleted", "policy_id": str(policy_id), "actor_id": str(actor.id),
    })


async def policy_view_grant(
    db: AsyncSession, actor: Actor, policy_id: uuid.UUID, storage: Optional[ObjectStorage] = None
) -> AccessGrant:
    engine.authorize(engine.can_view_policies(actor), "view company policies")
    policy = await get_policy(db, policy_id)
    expires_in = engine.policy_view_duration(actor, PolicyRef.from_policy(policy))
    storage = storage or get_object_storage()
    grant = await storage.create_signed_url(settings.DOCUMENTS_BUCKET, policy.file_url, expires_in)
    logger.info("Policy view grant issued", extra={
        "event": "grant_issued", "policy_id": str(policy_id), "actor_id": str(actor.id), "expires_in": expires_in,
    })
    return grant


async def policy_download_grant(
    db: AsyncSession, actor: Actor, policy_id: uuid.UUID, storage: Optional[ObjectStorage] = None
) -> AccessGrant:
    engine.authorize(engine.can_view_policies(actor), "download company policies")
    policy = await get_policy(db, policy_id)
    expires_in = engine.policy_download_duration(actor, PolicyRef.from_policy(policy))
    storage = storage or get_object_storage()
    return await storage.create_signed_url(
        settings.DOCUMENTS_BUCKET, policy.file_url, expires_in, download_name=policy.file_name
    )
