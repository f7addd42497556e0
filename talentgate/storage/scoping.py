"""Tenant-scoped repository base.

A repository for tenant-owned rows cannot be constructed without a tenant id,
and every statement it issues starts from ``WHERE org_id = :tenant_id``. Rows
coming back are checked a second time in Python; a row from another tenant is
dropped and reported as a scope violation, and callers see it as not found.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from typing import Any, ClassVar, Generic, TypeVar

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlmodel import SQLModel, col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from talentgate.exceptions import TenantScopeError

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=SQLModel)


class TenantScopedRepository(Generic[ModelT]):
    """Read access to one tenant-owned table, restricted to a single tenant."""

    model: ClassVar[type[Any]]
    default_limit: ClassVar[int] = 200

    def __init__(self, engine: AsyncEngine, tenant_id: str | None) -> None:
        if not tenant_id:
            msg = f"{type(self).__name__} requires a tenant id"
            raise TenantScopeError(msg)
        self._engine = engine
        self._tenant_id = tenant_id

    @property
    def tenant_id(self) -> str:
        return self._tenant_id

    def _column(self, name: str) -> Any:
        return col(getattr(self.model, name))

    def _scoped(self, *criteria: Any) -> Any:
        return select(self.model).where(self._column("org_id") == self._tenant_id, *criteria)

    def _owned(self, rows: Sequence[ModelT]) -> list[ModelT]:
        kept = [row for row in rows if getattr(row, "org_id", None) == self._tenant_id]
        if len(kept) != len(rows):
            logger.error(
                "tenant_scope_violation",
                table=self.model.__tablename__,
                tenant_id=self._tenant_id,
                dropped=len(rows) - len(kept),
            )
        return kept

    async def _fetch(
        self,
        *criteria: Any,
        order_by: Any = None,
        limit: int | None = None,
    ) -> list[ModelT]:
        stmt = self._scoped(*criteria)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        stmt = stmt.limit(limit or self.default_limit)
        async with AsyncSession(self._engine) as session:
            result = await session.execute(stmt)
            return self._owned(list(result.scalars().all()))

    async def get(self, record_id: str) -> ModelT | None:
        """Fetch one row by id; another tenant's row is indistinguishable from a missing one."""
        rows = await self._fetch(self._column("id") == record_id, limit=1)
        return rows[0] if rows else None

    async def list(self, limit: int | None = None) -> list[ModelT]:
        return await self._fetch(order_by=self._column("created_at").desc(), limit=limit)

    async def list_where_in(
        self,
        column: str,
        values: Collection[str],
        limit: int | None = None,
    ) -> list[ModelT]:
        """Fetch rows whose ``column`` is in ``values``.

        An empty ``values`` short-circuits to an empty result; no query is issued.
        """
        if not values:
            return []
        return await self._fetch(
            self._column(column).in_(list(values)),
            order_by=self._column("created_at").desc(),
            limit=limit,
        )
