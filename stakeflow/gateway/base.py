"""
Persistence gateway contract used by every engine.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Union

from .filters import Filter, Order


Row = Dict[str, Any]

# Collection names
STAKES = "stakes"
REWARDS = "rewards"
PROTOCOLS = "protocols"
USER_STATISTICS = "user_statistics"
PROTOCOL_PERFORMANCE = "protocol_performance"
PORTFOLIO_SNAPSHOTS = "portfolio_snapshots"

COLLECTIONS = (
    STAKES,
    REWARDS,
    PROTOCOLS,
    USER_STATISTICS,
    PROTOCOL_PERFORMANCE,
    PORTFOLIO_SNAPSHOTS,
)


class PersistenceGateway(ABC):
    """
    Collection-scoped query interface.

    Rows are plain dicts keyed by column name. `find_one` returning None is a
    normal outcome. Connectivity and server failures raise DatabaseError;
    unique-constraint violations raise DuplicateRecordError.
    """

    @abstractmethod
    async def find(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Sequence[Order] = (),
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Row]:
        """Return all rows matching every filter."""

    async def find_one(self, collection: str, filters: Sequence[Filter]) -> Optional[Row]:
        """Return the first matching row, or None."""
        rows = await self.find(collection, filters, limit=1)
        return rows[0] if rows else None

    async def exists(self, collection: str, filters: Sequence[Filter]) -> bool:
        return await self.find_one(collection, filters) is not None

    @abstractmethod
    async def insert(self, collection: str, rows: Union[Row, Sequence[Row]]) -> List[Row]:
        """Insert one or many rows and return them as stored."""

    @abstractmethod
    async def update(self, collection: str, filters: Sequence[Filter], patch: Row) -> List[Row]:
        """Apply `patch` to every matching row and return the updated rows."""

    @abstractmethod
    async def delete(self, collection: str, filters: Sequence[Filter]) -> int:
        """Delete every matching row and return the count."""
