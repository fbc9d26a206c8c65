"""
Audit recorder — writes in its own session so entries survive a rollback
of the request transaction.
"""
import uuid
from typing import Optional

from sqlalchemy import select, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_portal.audit.models import AuditLog
from compliance_portal.core.logging import get_logger
from compliance_portal.database.postgresql import AsyncSessionLocal

logger = get_logger(__name__)


DOCUMENT_UPLOADED = "DOCUMENT_UPLOADED"
DOCUMENT_APPROVED = "DOCUMENT_APPROVED"
DOCUMENT_REJECTED = "DOCUMENT_REJECTED"
DOCUMENT_DELETED = "DOCUMENT_DELETED"
EMPLOYEE_DELETED = "EMPLOYEE_DELETED"
POLICY_UPLOADED = "POLICY_UPLOADED"
POLICY_DELETED = "POLICY_DELETED"


async def record_audit(
    user_id: Optional[uuid.UUID],
    action: str,
    entity_type: str,
    entity_id: Optional[uuid.UUID],
    details: Optional[dict] = None,
) -> None:
    """A failed audit write is logged; it never fails the change being audited."""
    try:
        async with AsyncSessionLocal() as session:
            session.add(AuditLog(
                user_id=user_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                details=details,
            ))
            await session.commit()
    except SQLAlchemyError as exc:
        logger.error("Audit write failed", extra={
            "event": "audit_write_failed",
            "action": action,
            "entity_id": str(entity_id) if entity_id else None,
            "error": str(exc),
        })


async def list_audit_logs(db: AsyncSession, skip: int = 0, limit: int = 50) -> list:
    result = await db.execute(
        select(AuditLog).order_by(desc(AuditLog.created_at)).offset(skip).limit(limit)
    )
    return list(result.scalars().all())
