"""
Profile business logic — registration, self-service edits, profile pictures,
employee listing and employee deletion.
"""
import asyncio
import uuid
from typing import Awaitable, Callable, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_portal.audit import service as audit
from compliance_portal.auth import service as auth_service
from compliance_portal.auth.models import Account
from compliance_portal.authz import engine
from compliance_portal.authz.engine import Actor
from compliance_portal.config import settings
from compliance_portal.core.constants import PICTURE_MIME_TYPES, Department, DocumentStatus, ProfileRole
from compliance_portal.core.errors import NotFound, StoreError
from compliance_portal.core.logging import get_logger
from compliance_portal.core.uploads import UploadedBlob, profile_picture_path, validate_blob
from compliance_portal.database.postgresql import AsyncSessionLocal
from compliance_portal.document import service as document_service
from compliance_portal.document.models import Document
from compliance_portal.profile.models import Profile
from compliance_portal.profile.schemas import ProfileUpdate, RegisterRequest
from compliance_portal.storage import ObjectStorage, get_object_storage

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


# ═══════════════════════════════════════════════════════════════════
#  Registration
# ═══════════════════════════════════════════════════════════════════

async def insert_profile_with_retry(
    session_factory,
    values: dict,
    attempts: int = 5,
    backoff: float = 2.0,
    sleep: Sleep = asyncio.sleep,
) -> Profile:
    """Insert (or complete) a profile row, retrying on store failures.

    Each attempt runs in a fresh session. A row left by an earlier attempt
    whose commit did land is updated in place, so retries never produce a
    second row for the same account.
    """
    last_error: Optional[Exception] = None
    for attempt in range(1, attempts + 1):
        async with session_factory() as session:
            try:
                profile = await session.get(Profile, values["id"])
                if profile is None:
                    profile = Profile(**values)
                    session.add(profile)
                else:
                    for key, value in values.items():
                        setattr(profile, key, value)
                await session.commit()
                if attempt > 1:
                    logger.info("Profile insert succeeded after retry", extra={
                        "event": "profile_insert_recovered", "attempt": attempt,
                    })
                return profile
            except SQLAlchemyError as exc:
                await session.rollback()
                last_error = exc
                logger.warning("Profile insert attempt failed", extra={
                    "event": "profile_insert_failed",
                    "attempt": attempt,
                    "attempts": attempts,
                    "error": str(exc),
                })
        if attempt < attempts:
            await sleep(backoff)

    raise StoreError(f"Could not save profile after {attempts} attempts") from last_error


async def register(
    data: RegisterRequest,
    session_factory=AsyncSessionLocal,
    sleep: Sleep = asyncio.sleep,
) -> Tuple[Account, Profile]:
    """Create the account, then the fully populated profile."""
    async with session_factory() as session:
        account = await auth_service.sign_up(session, data.email, data.password)
        await session.commit()

    values = data.profile_values()
    values.update(
        id=account.id,
        email=account.email,
        role=ProfileRole.EMPLOYEE.value,
        profile_completed=True,
    )
    profile = await insert_profile_with_retry(
        session_factory,
        values,
        attempts=settings.PROFILE_INSERT_ATTEMPTS,
        backoff=settings.PROFILE_INSERT_BACKOFF_SECONDS,
        sleep=sleep,
    )
    logger.info("Employee registered", extra={
        "event": "registered", "account_id": str(account.id), "department": profile.department,
    })
    return account, profile


# ═══════════════════════════════════════════════════════════════════
#  Self-service
# ═══════════════════════════════════════════════════════════════════

async def get_my_profile(db: AsyncSession, account_id: uuid.UUID) -> Profile:
    profile = await db.get(Profile, account_id)
    if profile is None:
        raise NotFound("Profile not found")
    return profile


async def update_my_profile(db: AsyncSession, profile: Profile, data: ProfileUpdate) -> Profile:
    for key, value in data.model_dump(exclude_unset=True).items():
        if isinstance(value, str):
            value = value.strip() or None
        setattr(profile, key, value)
    await db.flush()
    return profile


async def upload_profile_picture(
    db: AsyncSession,
    profile: Profile,
    blob: UploadedBlob,
    storage: Optional[ObjectStorage] = None,
) -> Profile:
    validate_blob(blob, PICTURE_MIME_TYPES, settings.MAX_PICTURE_BYTES, "profile pictures")

    storage = storage or get_object_storage()
    bucket = settings.PROFILE_PICTURES_BUCKET
    path = profile_picture_path(profile.id, blob)
    await storage.upload(bucket, path, blob.data, blob.content_type, upsert=True)

    profile.profile_picture_url = storage.get_public_url(bucket, path)
    try:
        await db.flush()
    except SQLAlchemyError as exc:
        logger.error("Profile picture update failed, removing blob", extra={
            "event": "picture_update_failed", "account_id": str(profile.id), "error": str(exc),
        })
        await storage.remove(bucket, [path])
        raise StoreError("Could not update profile picture") from exc
    return profile


# ═══════════════════════════════════════════════════════════════════
#  Employee management (Manager / General Manager)
# ═══════════════════════════════════════════════════════════════════

async def list_employees(
    db: AsyncSession,
    actor: Actor,
    department: Optional[Department] = None,
    role: Optional[ProfileRole] = None,
    search: Optional[str] = None,
) -> List[Tuple[Profile, int]]:
    """Profiles with their document counts, newest first."""
    engine.authorize(engine.can_list_employees(actor), "list employees")

    counts = (
        select(Document.uploaded_by, func.count(Document.id).label("documents_count"))
        .group_by(Document.uploaded_by)
        .subquery()
    )
    stmt = (
        select(Profile, func.coalesce(counts.c.documents_count, 0))
        .outerjoin(counts, counts.c.uploaded_by == Profile.id)
    )
    if department is not None:
        stmt = stmt.where(Profile.department == department.value)
    if role is not None:
        stmt = stmt.where(Profile.role == role.value)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(
            Profile.first_name.ilike(pattern),
            Profile.last_name.ilike(pattern),
            Profile.email.ilike(pattern),
        ))

    result = await db.execute(stmt.order_by(Profile.created_at.desc()))
    return [(row[0], int(row[1] or 0)) for row in result.all()]


async def get_employee(db: AsyncSession, actor: Actor, employee_id: uuid.UUID) -> Profile:
    engine.authorize(engine.can_list_employees(actor), "view employee profiles")
    profile = await db.get(Profile, employee_id)
    if profile is None:
        raise NotFound("Employee not found")
    return profile


async def list_employee_documents(
    db: AsyncSession,
    actor: Actor,
    employee_id: uuid.UUID,
    status: Optional[DocumentStatus] = None,
) -> List[Document]:
    await get_employee(db, actor, employee_id)
    documents = await document_service.list_documents_for_owner(db, employee_id)
    if status is not None:
        documents = [d for d in documents if d.status == status.value]
    return documents


async def delete_employee(
    db: AsyncSession,
    actor: Actor,
    employee_id: uuid.UUID,
    storage: Optional[ObjectStorage] = None,
) -> Tuple[int, int]:
    """Delete the employee's documents (rows and blobs), their profile, then
    deactivate their account. Returns (documents deleted, blobs removed).

    Not atomic across the blob store: if the profile delete fails after the
    documents are gone, the failure is logged and surfaced as StoreError.
    """
    engine.authorize(engine.can_delete_employee(actor, employee_id), "delete this employee")
    profile = await db.get(Profile, employee_id)
    if profile is None:
        raise NotFound("Employee not found")

    documents_deleted, blobs_removed = await document_service.delete_documents_for_owner(
        db, employee_id, storage=storage
    )
    # Blobs are already gone; keep the rows in step with them.
    await db.commit()

    try:
        await db.delete(profile)
        account = await db.get(Account, employee_id)
        if account is not None:
            account.is_active = False
        await db.flush()
    except SQLAlchemyError as exc:
        logger.error("Employee delete left documents removed but profile intact", extra={
            "event": "employee_delete_partial",
            "employee_id": str(employee_id),
            "actor_id": str(actor.id),
            "documents_deleted": documents_deleted,
            "error": str(exc),
        })
        raise StoreError("Employee documents were removed but the profile could not be deleted") from exc

    logger.info("Employee deleted", extra={
        "event": "employee_deleted",
        "employee_id": str(employee_id),
        "actor_id": str(actor.id),
        "documents_deleted": documents_deleted,
    })
    await audit.record_audit(actor.id, audit.EMPLOYEE_DELETED, "profile", employee_id,
                             details={"documents_deleted": documents_deleted, "blobs_removed": blobs_removed})
    return documents_deleted, blobs_removed
