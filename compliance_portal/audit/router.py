"""
Audit Logs API endpoint — exposes the audit_logs table to managers and HR.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_portal.audit import service
from compliance_portal.authz import engine
from compliance_portal.database.postgresql import get_db
from compliance_portal.middleware.auth_middleware import AuthContext, get_auth_context

router = APIRouter()


@router.get("")
async def list_audit_logs(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    """Return audit logs ordered by most recent first."""
    engine.authorize(engine.can_view_audit_log(ctx.actor), "view the audit log")
    logs = await service.list_audit_logs(db, skip, limit)
    return [
        {
            "id": str(log.id),
            "user_id": str(log.user_id) if log.user_id else None,
            "action": log.action,
            "entity_type": log.entity_type,
            "entity_id": str(log.entity_id) if log.entity_id else None,
            "details": log.details,
            "created_at": log.created_at.isoformat() if log.created_at else None,
        }
        for log in logs
    ]
