"""
Async SQLAlchemy implementation of the persistence gateway.

Works on Core tables from the declarative metadata so rows stay plain
dicts keyed by column name. Every call runs in its own session.
"""

from contextlib import AbstractAsyncContextManager
from typing import Any, Callable, List, Optional, Sequence, Union

from sqlalchemy import Table, and_, delete, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement
import structlog

from stakeflow.core.database import get_async_session
from stakeflow.core.exceptions import DatabaseError, DuplicateRecordError, ValidationError
from stakeflow.models import BaseModel

from .base import PersistenceGateway, Row
from .filters import Filter, Op, Order


logger = structlog.get_logger(__name__)

UNIQUE_VIOLATION = "23505"

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


def get_table(collection: str) -> Table:
    """Resolve a collection name to its table."""
    table = BaseModel.metadata.tables.get(collection)
    if table is None:
        raise ValidationError(f"Unknown collection: {collection}", {"collection": collection})
    return table


def build_clause(table: Table, flt: Filter) -> ColumnElement[bool]:
    """Translate a Filter into a SQL expression."""
    if flt.column not in table.c:
        raise ValidationError(
            f"Unknown column {flt.column} for {table.name}",
            {"collection": table.name, "column": flt.column}
        )
    column = table.c[flt.column]

    if flt.op == Op.EQ:
        return column == flt.value
    if flt.op == Op.NE:
        return column != flt.value
    if flt.op == Op.LT:
        return column < flt.value
    if flt.op == Op.LTE:
        return column <= flt.value
    if flt.op == Op.GT:
        return column > flt.value
    if flt.op == Op.GTE:
        return column >= flt.value
    if flt.op == Op.IN:
        return column.in_(list(flt.value))
    if flt.op == Op.IS_NULL:
        return column.is_(None)
    if flt.op == Op.NOT_NULL:
        return column.is_not(None)
    raise ValidationError(f"Unsupported filter operator: {flt.op}")


def build_where(table: Table, filters: Sequence[Filter]) -> Optional[ColumnElement[bool]]:
    clauses = [build_clause(table, flt) for flt in filters]
    if not clauses:
        return None
    return and_(*clauses)


def build_select(
    collection: str,
    filters: Sequence[Filter] = (),
    order_by: Sequence[Order] = (),
    limit: Optional[int] = None,
    offset: Optional[int] = None,
):
    table = get_table(collection)
    stmt = select(table)

    where = build_where(table, filters)
    if where is not None:
        stmt = stmt.where(where)

    for order in order_by:
        column = table.c[order.column]
        stmt = stmt.order_by(column.desc() if order.descending else column.asc())

    if limit is not None:
        stmt = stmt.limit(limit)
    if offset is not None:
        stmt = stmt.offset(offset)
    return stmt


def build_update(collection: str, filters: Sequence[Filter], patch: Row):
    table = get_table(collection)
    stmt = update(table).values(**patch).returning(table)
    where = build_where(table, filters)
    if where is not None:
        stmt = stmt.where(where)
    return stmt


def build_delete(collection: str, filters: Sequence[Filter]):
    table = get_table(collection)
    stmt = delete(table)
    where = build_where(table, filters)
    if where is not None:
        stmt = stmt.where(where)
    return stmt


def is_unique_violation(error: IntegrityError) -> bool:
    orig = error.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code is not None:
        return code == UNIQUE_VIOLATION
    return "unique" in str(orig).lower()


class SQLAlchemyGateway(PersistenceGateway):
    """PersistenceGateway backed by the async engine from core.database."""

    def __init__(self, session_factory: Optional[SessionFactory] = None):
        self._session_factory = session_factory or get_async_session
        self.logger = logger.bind(service="sqlalchemy_gateway")

    async def _run(self, collection: str, action: str, work: Callable[[AsyncSession], Any]) -> Any:
        try:
            async with self._session_factory() as session:
                return await work(session)
        except IntegrityError as e:
            if is_unique_violation(e):
                raise DuplicateRecordError(collection) from e
            self.logger.error("Integrity error", collection=collection, action=action, error=str(e.orig))
            raise DatabaseError(
                f"Integrity error on {collection}",
                {"collection": collection, "action": action, "error": str(e.orig)}
            ) from e
        except (SQLAlchemyError, OSError) as e:
            self.logger.error("Database error", collection=collection, action=action, error=str(e))
            raise DatabaseError(
                f"Database {action} failed on {collection}",
                {"collection": collection, "action": action, "error": str(e)}
            ) from e

    async def find(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Sequence[Order] = (),
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Row]:
        stmt = build_select(collection, filters, order_by, limit, offset)

        async def work(session: AsyncSession) -> List[Row]:
            result = await session.execute(stmt)
            return [dict(row._mapping) for row in result]

        return await self._run(collection, "find", work)

    async def insert(self, collection: str, rows: Union[Row, Sequence[Row]]) -> List[Row]:
        payload = [rows] if isinstance(rows, dict) else list(rows)
        if not payload:
            return []
        table = get_table(collection)

        async def work(session: AsyncSession) -> List[Row]:
            inserted = []
            for row in payload:
                result = await session.execute(insert(table).values(**row).returning(table))
                inserted.append(dict(result.one()._mapping))
            return inserted

        return await self._run(collection, "insert", work)

    async def update(self, collection: str, filters: Sequence[Filter], patch: Row) -> List[Row]:
        stmt = build_update(collection, filters, patch)

        async def work(session: AsyncSession) -> List[Row]:
            result = await session.execute(stmt)
            return [dict(row._mapping) for row in result]

        return await self._run(collection, "update", work)

    async def delete(self, collection: str, filters: Sequence[Filter]) -> int:
        stmt = build_delete(collection, filters)

        async def work(session: AsyncSession) -> int:
            result = await session.execute(stmt)
            return result.rowcount or 0

        return await self._run(collection, "delete", work)


_gateway: Optional[SQLAlchemyGateway] = None


def get_gateway() -> SQLAlchemyGateway:
    """Get the process-wide gateway instance."""
    global _gateway
    if _gateway is None:
        _gateway = SQLAlchemyGateway()
    return _gateway
