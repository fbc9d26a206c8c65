"""
Relational store for the compliance portal (async SQLAlchemy 2.0).
Accounts, profiles, documents, company policies and the audit log live here.
"""
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from compliance_portal.config import settings


def engine_options(database_url: str) -> dict:
    """Pool sizing applies to server databases only; SQLite rejects it."""
    options = {"echo": settings.DEBUG}
    if make_url(database_url).get_backend_name() != "sqlite":
        options.update(pool_size=10, max_overflow=20, pool_pre_ping=True)
    return options


engine = create_async_engine(settings.DATABASE_URL, **engine_options(settings.DATABASE_URL))

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


async def create_tables() -> list:
    """Register every model on Base and create missing tables.
    Returns the table names known to the metadata."""
    from compliance_portal.auth.models import Account, RevokedSession  # noqa: F401
    from compliance_portal.profile.models import Profile  # noqa: F401
    from compliance_portal.document.models import Document  # noqa: F401
    from compliance_portal.policy.models import CompanyPolicy  # noqa: F401
    from compliance_portal.audit.models import AuditLog  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return sorted(Base.metadata.tables)


async def get_db() -> AsyncSession:
    """Request-scoped session: commit when the handler returns, roll back on error."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
