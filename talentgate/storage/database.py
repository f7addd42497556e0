"""Async database engine construction and schema bootstrap."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import SQLModel


def build_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    """Create an async engine; pooling options only apply to server databases."""
    options: dict[str, Any] = {"echo": echo}
    if not database_url.startswith("sqlite"):
        options.update(pool_size=5, max_overflow=10, pool_pre_ping=True, pool_recycle=3600)
    return create_async_engine(database_url, **options)


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables (for dev/testing only; use Alembic in production)."""
    import talentgate.models.database  # noqa: F401  register tables on SQLModel.metadata

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
