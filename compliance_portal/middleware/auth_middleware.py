"""
Session authentication and the per-request AuthContext.

The context is built once per request from a live session and the caller's
profile, and handed explicitly to every route that needs it.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_portal.auth import service as auth_service
from compliance_portal.authz import engine
from compliance_portal.authz.engine import Actor
from compliance_portal.core.errors import AuthenticationError, PermissionDenied
from compliance_portal.database.postgresql import get_db
from compliance_portal.profile.models import Profile

security = HTTPBearer(auto_error=False)


@dataclass
class AuthContext:
    account_id: uuid.UUID
    session_id: str
    expires_at: datetime
    token: str
    profile: Profile

    @property
    def actor(self) -> Actor:
        return Actor.from_profile(self.profile)


async def get_session_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Validate the bearer token: present, unexpired and not signed out."""
    if credentials is None:
        raise AuthenticationError("Missing bearer token")
    claims = await auth_service.get_session(db, credentials.credentials)
    claims["token"] = credentials.credentials
    return claims


async def get_auth_context(
    claims: dict = Depends(get_session_claims),
    db: AsyncSession = Depends(get_db),
) -> AuthContext:
    account_id = uuid.UUID(claims["sub"])
    account = await auth_service.get_account_by_id(db, account_id)
    if not account or not account.is_active:
        raise AuthenticationError("Account is deactivated")

    profile = await db.get(Profile, account_id)
    if profile is None:
        raise PermissionDenied("Profile not found. Sign in again to create it.")

    return AuthContext(
        account_id=account_id,
        session_id=claims["jti"],
        expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
        token=claims["token"],
        profile=profile,
    )


def require(predicate: Callable[[Actor], bool], action: str):
    """Dependency factory: deny unless predicate(actor) holds."""
    async def checker(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
        engine.authorize(predicate(ctx.actor), action)
        return ctx
    return checker
