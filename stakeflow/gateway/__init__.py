"""
Persistence gateway: collection-scoped access to the relational store.
"""

from .base import (
    PersistenceGateway, Row,
    STAKES, REWARDS, PROTOCOLS, USER_STATISTICS, PROTOCOL_PERFORMANCE, PORTFOLIO_SNAPSHOTS,
    COLLECTIONS,
)
from .filters import Filter, Op, Order, eq, ne, lt, lte, gt, gte, in_, is_null, not_null, asc, desc

__all__ = [
    "PersistenceGateway",
    "Row",
    "STAKES",
    "REWARDS",
    "PROTOCOLS",
    "USER_STATISTICS",
    "PROTOCOL_PERFORMANCE",
    "PORTFOLIO_SNAPSHOTS",
    "COLLECTIONS",
    "Filter",
    "Op",
    "Order",
    "eq", "ne", "lt", "lte", "gt", "gte", "in_", "is_null", "not_null",
    "asc", "desc",
]
