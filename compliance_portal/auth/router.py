"""
Auth API endpoints — registration, sign-in, session refresh and sign-out.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_portal.auth import service
from compliance_portal.auth.schemas import (
    AccountResponse,
    LoginRequest,
    PasswordChangeRequest,
    SessionResponse,
    SignUpRequest,
    TokenResponse,
)
from compliance_portal.authz import engine
from compliance_portal.core.errors import AuthenticationError
from compliance_portal.database.postgresql import get_db
from compliance_portal.middleware.auth_middleware import AuthContext, get_auth_context, get_session_claims
from compliance_portal.profile import service as profile_service
from compliance_portal.profile.models import Profile
from compliance_portal.profile.schemas import ProfileResponse, RegisterRequest

router = APIRouter()


def _token_response(session: dict, profile: Profile) -> TokenResponse:
    return TokenResponse(
        access_token=session["access_token"],
        expires_at=session["expires_at"],
        profile=ProfileResponse.model_validate(profile),
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(data: RegisterRequest):
    """Create an account with a complete employee profile and sign it in."""
    account, profile = await profile_service.register(data)
    return _token_response(service.create_access_token(account.id), profile)


@router.post("/signup", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
async def signup(data: SignUpRequest, db: AsyncSession = Depends(get_db)):
    """Bare account. The profile stub is created on first sign-in."""
    return await service.sign_up(db, data.email, data.password)


@router.post("/login", response_model=TokenResponse)
async def login(data: LoginRequest, db: AsyncSession = Depends(get_db)):
    _, profile, session = await service.sign_in_with_password(db, data.email, data.password)
    return _token_response(session, profile)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    claims: dict = Depends(get_session_claims),
    db: AsyncSession = Depends(get_db),
):
    session = await service.refresh_session(db, claims["token"])
    account = await service.get_account_by_id(db, session["account_id"])
    if account is None:
        raise AuthenticationError("Account not found")
    profile = await service.ensure_profile(db, account)
    return _token_response(session, profile)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    claims: dict = Depends(get_session_claims),
    db: AsyncSession = Depends(get_db),
):
    await service.sign_out(db, claims["token"])


@router.post("/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    data: PasswordChangeRequest,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    await service.change_password(db, ctx.account_id, data.current_password, data.new_password)


@router.get("/session", response_model=SessionResponse)
async def get_current_session(ctx: AuthContext = Depends(get_auth_context)):
    """The caller's live session and profile."""
    return SessionResponse(
        account_id=ctx.account_id,
        session_id=ctx.session_id,
        expires_at=ctx.expires_at,
        actor_kind=engine.classify(ctx.actor).value,
        profile=ProfileResponse.model_validate(ctx.profile),
    )
