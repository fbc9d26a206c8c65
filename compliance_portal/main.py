"""
Compliance Portal — FastAPI Application Entry Point.
Employee documents, review workflow and company policies.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from compliance_portal.config import settings
from compliance_portal.core.errors import ComplianceError, compliance_error_handler
from compliance_portal.core.logging import setup_logging, get_logger

# Initialize structured logging FIRST
setup_logging(level="DEBUG" if settings.DEBUG else "INFO")
logger = get_logger(__name__)

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info("Starting Compliance Portal", extra={
        "event": "startup",
        "app_name": settings.APP_NAME,
        "environment": settings.APP_ENV,
        "storage_backend": settings.STORAGE_BACKEND,
    })

    from compliance_portal.database.postgresql import engine, create_tables

    try:
        # ── Relational store ──
        tables = await create_tables()
        logger.info("Database tables ready", extra={"event": "db_ready", "tables": tables})

        # ── Object storage ──
        from compliance_portal.storage import ensure_buckets, get_object_storage
        created = await ensure_buckets(get_object_storage())
        logger.info("Storage buckets ready", extra={"event": "buckets_ready", "created": created})

        # ── Seed HR account ──
        await _seed_hr()

    except Exception as e:
        logger.error(f"Startup check failed: {e}", extra={"event": "startup_partial_failure"})
        if settings.APP_ENV == "production":
            logger.critical("Fatal startup failure in production. Crashing.")
            raise
        logger.warning("Continuing startup in non-production mode with degraded features.")

    yield

    # ── Shutdown ──
    await engine.dispose()
    logger.info("Application shutdown complete", extra={"event": "shutdown"})


async def _seed_hr():
    """Ensure the bootstrap HR account exists with role hr."""
    if not settings.BOOTSTRAP_HR_EMAIL:
        return

    from compliance_portal.auth import service as auth_service
    from compliance_portal.core.constants import ProfileRole
    from compliance_portal.database.postgresql import AsyncSessionLocal

    async with AsyncSessionLocal() as session:
        account = await auth_service.get_account_by_email(session, settings.BOOTSTRAP_HR_EMAIL)
        if not account:
            account = await auth_service.sign_up(
                session, settings.BOOTSTRAP_HR_EMAIL, settings.BOOTSTRAP_HR_PASSWORD
            )
            logger.info("HR account seeded", extra={
                "event": "hr_seeded", "email": account.email,
            })
        profile = await auth_service.ensure_profile(session, account)
        if profile.role != ProfileRole.HR.value:
            profile.role = ProfileRole.HR.value
            logger.info("HR account role synced to 'hr'", extra={
                "event": "hr_role_sync", "email": account.email,
            })
        await session.commit()


# ── Application ──
app = FastAPI(
    title=settings.APP_NAME,
    version=APP_VERSION,
    lifespan=lifespan,
)

app.add_exception_handler(ComplianceError, compliance_error_handler)

# ── CORS ──
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ] + settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──
from compliance_portal.auth.router import router as auth_router  # noqa: E402
from compliance_portal.profile.router import router as profile_router  # noqa: E402
from compliance_portal.document.router import router as document_router  # noqa: E402
from compliance_portal.policy.router import router as policy_router  # noqa: E402
from compliance_portal.storage.router import router as storage_router  # noqa: E402
from compliance_portal.audit.router import router as audit_router  # noqa: E402

app.include_router(auth_router, prefix="/api/auth", tags=["Auth"])
app.include_router(profile_router, prefix="/api/profiles", tags=["Profiles"])
app.include_router(document_router, prefix="/api/documents", tags=["Documents"])
app.include_router(policy_router, prefix="/api/policies", tags=["Policies"])
app.include_router(storage_router, prefix="/api/storage", tags=["Storage"])
app.include_router(audit_router, prefix="/api/audit", tags=["Audit"])


@app.get("/")
async def root():
    return {
        "app": settings.APP_NAME,
        "version": APP_VERSION,
        "status": "running",
        "environment": settings.APP_ENV,
        "storage_backend": settings.STORAGE_BACKEND,
    }


@app.get("/health")
async def health():
    return {"status": "healthy"}
