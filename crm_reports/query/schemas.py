"""
Store query types for the reporting engine.

A StoreQuery is the typed description of the single primary fetch a report
execution issues against the backing store. The reporting pipeline builds it,
a RecordStore implementation translates it into its own query language.
"""

from typing import Any, Optional, Tuple
from dataclasses import dataclass
from enum import Enum

from crm_reports.crm.models import RecordType


class FieldKind(str, Enum):
    """Value kinds a reportable field can have."""

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    SELECT = "select"
    CURRENCY = "currency"


# Kinds compared as case-insensitive strings
TEXTUAL_KINDS = frozenset({FieldKind.TEXT, FieldKind.SELECT})
NUMERIC_KINDS = frozenset({FieldKind.NUMBER, FieldKind.CURRENCY})


class PredicateOp(str, Enum):
    """Predicates a backing store must be able to apply."""

    EQ = "eq"
    NEQ = "neq"
    CONTAINS = "contains"  # case-insensitive substring
    STARTS_WITH = "starts_with"  # case-insensitive prefix
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"
    IS_TRUE = "is_true"
    IS_FALSE = "is_false"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class StorePredicate:
    """One condition on a native column, tagged with the column's field kind."""

    column: str
    op: PredicateOp
    kind: FieldKind
    value: Any = None


@dataclass(frozen=True)
class OrderBy:
    column: str
    direction: SortDirection
    kind: FieldKind


@dataclass(frozen=True)
class StoreQuery:
    """The primary fetch: all native columns, conjunctive predicates, one ordering."""

    record_type: RecordType
    org_id: str
    predicates: Tuple[StorePredicate, ...] = ()
    order_by: Optional[OrderBy] = None
