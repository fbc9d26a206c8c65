"""
Identity business logic — accounts, password sign-in, JWT sessions.
"""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_portal.config import settings
from compliance_portal.auth.models import Account, RevokedSession
from compliance_portal.core.errors import AuthenticationError, Conflict, ValidationFailed
from compliance_portal.core.logging import get_logger
from compliance_portal.core.security import MIN_PASSWORD_LENGTH, get_password_hash, verify_password
from compliance_portal.profile.models import Profile

logger = get_logger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  Session tokens
# ═══════════════════════════════════════════════════════════════════

def create_access_token(account_id: uuid.UUID, now: Optional[datetime] = None) -> dict:
    """Issue a session. Returns the token plus its id and expiry."""
    issued = now or datetime.now(timezone.utc)
    expires_at = issued + timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)
    jti = uuid.uuid4().hex
    payload = {
        "sub": str(account_id),
        "jti": jti,
        "iat": issued,
        "exp": expires_at,
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return {"access_token": token, "session_id": jti, "expires_at": expires_at, "account_id": account_id}


def decode_access_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Session has expired, please sign in again")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid session token")
    if not payload.get("sub") or not payload.get("jti"):
        raise AuthenticationError("Invalid token payload")
    return payload


async def get_session(db: AsyncSession, token: str) -> dict:
    """Return the claims of a session that exists, is unexpired and not revoked."""
    claims = decode_access_token(token)
    if await db.get(RevokedSession, claims["jti"]) is not None:
        raise AuthenticationError("Session has been signed out")
    return claims


async def revoke_session(db: AsyncSession, claims: dict) -> None:
    db.add(RevokedSession(
        jti=claims["jti"],
        account_id=uuid.UUID(claims["sub"]),
        expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
    ))
    await db.flush()


async def refresh_session(db: AsyncSession, token: str) -> dict:
    """Swap a live session for a fresh one; the old session id is revoked."""
    claims = await get_session(db, token)
    account = await get_account_by_id(db, uuid.UUID(claims["sub"]))
    if not account or not account.is_active:
        raise AuthenticationError("Account is deactivated")
    await revoke_session(db, claims)
    return create_access_token(account.id)


async def sign_out(db: AsyncSession, token: str) -> None:
    claims = await get_session(db, token)
    await revoke_session(db, claims)
    logger.info("Session signed out", extra={"event": "sign_out", "account_id": claims["sub"]})


# ═══════════════════════════════════════════════════════════════════
#  Accounts
# ═══════════════════════════════════════════════════════════════════

async def get_account_by_email(db: AsyncSession, email: str) -> Account | None:
    result = await db.execute(select(Account).where(Account.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_account_by_id(db: AsyncSession, account_id: uuid.UUID) -> Account | None:
    return await db.get(Account, account_id)


def validate_password(password: str) -> None:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


async def sign_up(db: AsyncSession, email: str, password: str) -> Account:
    validate_password(password)
    email = email.strip().lower()
    if await get_account_by_email(db, email):
        raise Conflict("Email already registered")

    account = Account(email=email, password_hash=get_password_hash(password))
    db.add(account)
    await db.flush()
    logger.info("Account created", extra={"event": "sign_up", "account_id": str(account.id)})
    return account


async def ensure_profile(db: AsyncSession, account: Account) -> Profile:
    """Load the account's profile, creating an empty stub on first sign-in."""
    profile = await db.get(Profile, account.id)
    if profile is None:
        profile = Profile(id=account.id, email=account.email, role="employee", profile_completed=False)
        db.add(profile)
        await db.flush()
        logger.info("Profile stub created on first sign-in", extra={
            "event": "profile_stub_created", "account_id": str(account.id),
        })
    return profile


async def sign_in_with_password(db: AsyncSession, email: str, password: str) -> tuple:
    """Returns (account, profile, session)."""
    account = await get_account_by_email(db, email)
    if not account or not verify_password(password, account.password_hash):
        raise AuthenticationError("Invalid email or password")
    if not account.is_active:
        raise AuthenticationError("Account is deactivated")

    profile = await ensure_profile(db, account)
    session = create_access_token(account.id)
    logger.info("Signed in", extra={"event": "sign_in", "account_id": str(account.id)})
    return account, profile, session


async def change_password(db: AsyncSession, account_id: uuid.UUID, current: str, new: str) -> None:
    account = await get_account_by_id(db, account_id)
    if not account or not verify_password(current, account.password_hash):
        raise AuthenticationError("Current password is incorrect")
    validate_password(new)
    account.password_hash = get_password_hash(new)
    await db.flush()
