"""Database engine, session factory, and declarative base.

One DeclarativeBase for every table (users, permission_groups). The model
registry is filled by importing `hearinghope.models` once at startup, so the
metadata is complete and deterministic before the first request arrives.

Session dependency for FastAPI:
  - get_db()  → one session per request, committed on success
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase

from hearinghope.config import settings


def _engine_options(url: str) -> dict:
    # SQLite (local dev) does not take pool sizing arguments
    if url.startswith("sqlite"):
        return {}
    return {"pool_size": 20, "max_overflow": 10, "pool_pre_ping": True}


engine = create_async_engine(
    settings.database_url,
    echo=settings.debug and settings.environment == "development",
    **_engine_options(settings.database_url),
)

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class Base(DeclarativeBase):
    pass


# ── Session dependency ──────────────────────────────────────

async def get_db() -> AsyncSession:
    """Yield a request-scoped session; commit on success, roll back on error."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_models() -> None:
    """Create any missing tables (development convenience; prod uses Alembic)."""
    import hearinghope.models  # noqa: F401  (populates Base.metadata)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
