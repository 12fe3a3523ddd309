"""
Filter and ordering primitives for the persistence gateway.

Filters are plain value objects keyed by column name. A list of filters
combines with AND semantics.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable


class Op(str, Enum):
    """Supported comparison operators."""
    EQ = "eq"
    NE = "ne"
    LT = "lt"
    LTE = "lte"
    GT = "gt"
    GTE = "gte"
    IN = "in"
    IS_NULL = "is_null"
    NOT_NULL = "not_null"


@dataclass(frozen=True)
class Filter:
    """A single `column <op> value` predicate."""
    column: str
    op: Op
    value: Any = None


@dataclass(frozen=True)
class Order:
    """Sort key for `find`."""
    column: str
    descending: bool = False


def eq(column: str, value: Any) -> Filter:
    return Filter(column, Op.EQ, value)


def ne(column: str, value: Any) -> Filter:
    return Filter(column, Op.NE, value)


def lt(column: str, value: Any) -> Filter:
    return Filter(column, Op.LT, value)


def lte(column: str, value: Any) -> Filter:
    return Filter(column, Op.LTE, value)


def gt(column: str, value: Any) -> Filter:
    return Filter(column, Op.GT, value)


def gte(column: str, value: Any) -> Filter:
    return Filter(column, Op.GTE, value)


def in_(column: str, values: Iterable[Any]) -> Filter:
    return Filter(column, Op.IN, tuple(values))


def is_null(column: str) -> Filter:
    return Filter(column, Op.IS_NULL)


def not_null(column: str) -> Filter:
    return Filter(column, Op.NOT_NULL)


def asc(column: str) -> Order:
    return Order(column)


def desc(column: str) -> Order:
    return Order(column, descending=True)
