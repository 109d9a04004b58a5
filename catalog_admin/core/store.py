"""
Entity store client: generic select/insert/update/delete over the catalog tables.

Rows go in and come out as plain dicts keyed by column name. Every call runs
in its own session and commits on success, so consecutive calls are
independent (no transaction spans two calls). Any database failure surfaces
as RemoteError.

An in-memory SQLite engine shares one connection between all sessions
(StaticPool); calls on such an engine run one at a time.
"""

import asyncio
import contextlib
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy import Table, delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from catalog_admin.core.db import Base
from catalog_admin.core.exceptions import RemoteError

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


class EntityStoreClient:
    """
    Query/mutate interface over named tables.

    Usage:
        store = EntityStoreClient(AsyncSessionLocal)
        rows = await store.select("images", {"variation_id": [1, 2]}, ["-is_primary", "id"])
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        bind = session_factory.kw.get("bind")
        if bind is not None and isinstance(bind.sync_engine.pool, StaticPool):
            self._serial = asyncio.Lock()
        else:
            self._serial = contextlib.nullcontext()

    @staticmethod
    def _table(name: str) -> Table:
        table = Base.metadata.tables.get(name)
        if table is None:
            raise RemoteError(f'relation "{name}" does not exist')
        return table

    @staticmethod
    def _column(table: Table, name: str):
        if name not in table.c:
            raise RemoteError(f'column "{name}" of relation "{table.name}" does not exist')
        return table.c[name]

    @classmethod
    def _check_columns(cls, table: Table, values: Mapping[str, Any]) -> None:
        for key in values:
            cls._column(table, key)

    async def select(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        order: Optional[Sequence[str]] = None,
    ) -> List[Row]:
        """
        Select rows.

        Args:
            table: Table name
            filters: column -> value (equality) or column -> list/tuple/set (IN)
            order: column names, "-column" for descending

        Returns:
            List of rows as dicts
        """
        tbl = self._table(table)
        query = select(tbl)

        for name, value in (filters or {}).items():
            column = self._column(tbl, name)
            if isinstance(value, (list, tuple, set, frozenset)):
                query = query.where(column.in_(list(value)))
            elif value is None:
                query = query.where(column.is_(None))
            else:
                query = query.where(column == value)

        for name in order or ():
            descending = name.startswith("-")
            column = self._column(tbl, name.lstrip("-"))
            query = query.order_by(column.desc() if descending else column.asc())

        try:
            async with self._serial, self._session_factory() as session:
                result = await session.execute(query)
                return [dict(row) for row in result.mappings().all()]
        except SQLAlchemyError as e:
            logger.error(f"select on {table} failed: {e}")
            raise RemoteError(str(getattr(e, "orig", None) or e)) from e

    async def insert(self, table: str, rows: Iterable[Mapping[str, Any]]) -> List[Row]:
        """
        Insert rows and return them as stored (ids and server defaults filled in).
        """
        tbl = self._table(table)
        rows = [dict(row) for row in rows]
        if not rows:
            return []
        for row in rows:
            self._check_columns(tbl, row)

        try:
            async with self._serial, self._session_factory() as session:
                inserted: List[Row] = []
                # One statement per row keeps RETURNING portable across drivers
                for row in rows:
                    result = await session.execute(
                        insert(tbl).values(**row).returning(*tbl.c)
                    )
                    inserted.append(dict(result.mappings().one()))
                await session.commit()
                return inserted
        except SQLAlchemyError as e:
            logger.error(f"insert into {table} failed: {e}")
            raise RemoteError(str(getattr(e, "orig", None) or e)) from e

    async def update(self, table: str, id: int, patch: Mapping[str, Any]) -> None:
        """Apply patch to the row with the given id. Last writer wins."""
        tbl = self._table(table)
        self._check_columns(tbl, patch)
        if not patch:
            return

        try:
            async with self._serial, self._session_factory() as session:
                await session.execute(
                    update(tbl).where(tbl.c.id == id).values(**dict(patch))
                )
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"update of {table} #{id} failed: {e}")
            raise RemoteError(str(getattr(e, "orig", None) or e)) from e

    async def delete(self, table: str, id: int) -> None:
        """Delete the row with the given id."""
        tbl = self._table(table)

        try:
            async with self._serial, self._session_factory() as session:
                await session.execute(delete(tbl).where(tbl.c.id == id))
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"delete from {table} #{id} failed: {e}")
            raise RemoteError(str(getattr(e, "orig", None) or e)) from e
