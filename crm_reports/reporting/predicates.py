# crm_reports/reporting/predicates.py
"""
Filter semantics for both execution paths.

Native fields are pushed to the store as StorePredicates; join, computed and
custom fields are evaluated here after enrichment. Both paths go through the
same operator mapping and the same coercions, so a filter passes or fails a
row the same way whichever path handles it.
"""

from typing import Any, Dict, Iterable

from crm_reports.query.coercion import (
    day_bounds,
    is_date_only,
    to_bool_flag,
    to_number,
    to_text,
    to_timestamp,
)
from crm_reports.query.schemas import (
    FieldKind,
    NUMERIC_KINDS,
    PredicateOp,
    StorePredicate,
)
from crm_reports.reporting.fields import FilterOperator
from crm_reports.reporting.normalizer import ResolvedFilter

STORE_OPS: Dict[FilterOperator, PredicateOp] = {
    FilterOperator.EQUALS: PredicateOp.EQ,
    FilterOperator.IS: PredicateOp.EQ,
    FilterOperator.NOT_EQUALS: PredicateOp.NEQ,
    FilterOperator.IS_NOT: PredicateOp.NEQ,
    FilterOperator.CONTAINS: PredicateOp.CONTAINS,
    FilterOperator.STARTS_WITH: PredicateOp.STARTS_WITH,
    FilterOperator.GT: PredicateOp.GT,
    FilterOperator.GTE: PredicateOp.GTE,
    FilterOperator.LT: PredicateOp.LT,
    FilterOperator.LTE: PredicateOp.LTE,
    FilterOperator.BEFORE: PredicateOp.LT,
    FilterOperator.AFTER: PredicateOp.GT,
    FilterOperator.IS_EMPTY: PredicateOp.IS_NULL,
    FilterOperator.IS_NOT_EMPTY: PredicateOp.IS_NOT_NULL,
    FilterOperator.IS_TRUE: PredicateOp.IS_TRUE,
    FilterOperator.IS_FALSE: PredicateOp.IS_FALSE,
}


def to_store_predicate(resolved: ResolvedFilter) -> StorePredicate:
    """Map a filter on a native field to the store predicate that implements it."""
    return StorePredicate(
        column=resolved.field.key,
        op=STORE_OPS[resolved.operator],
        kind=resolved.field.kind,
        value=resolved.value,
    )


# ===== IN-MEMORY EVALUATOR =====


def _ordered(op: PredicateOp, left, right) -> bool:
    if op == PredicateOp.EQ:
        return left == right
    if op == PredicateOp.GT:
        return left > right
    if op == PredicateOp.GTE:
        return left >= right
    if op == PredicateOp.LT:
        return left < right
    if op == PredicateOp.LTE:
        return left <= right
    raise ValueError(f"Unsupported comparison: {op.value}")


def _evaluate_number(value: Any, op: PredicateOp, target: Any) -> bool:
    expected = to_number(target)
    if expected is None:
        return False
    actual = to_number(value)
    if op == PredicateOp.NEQ:
        return actual is None or actual != expected
    if actual is None:
        return False
    return _ordered(op, actual, expected)


def _evaluate_date(value: Any, op: PredicateOp, target: Any) -> bool:
    expected = to_timestamp(target)
    if expected is None:
        return False
    actual = to_timestamp(value)
    if op == PredicateOp.NEQ:
        return actual is None or actual != expected
    if actual is None:
        return False
    if op == PredicateOp.EQ and is_date_only(target):
        start, end = day_bounds(expected)
        return start <= actual < end
    return _ordered(op, actual, expected)


def _evaluate_text(value: Any, op: PredicateOp, target: Any) -> bool:
    needle = to_text(target).lower()
    if value is None:
        return op == PredicateOp.NEQ
    haystack = to_text(value).lower()
    if op == PredicateOp.CONTAINS:
        return needle in haystack
    if op == PredicateOp.STARTS_WITH:
        return haystack.startswith(needle)
    if op == PredicateOp.EQ:
        return haystack == needle
    if op == PredicateOp.NEQ:
        return haystack != needle
    raise ValueError(f"Unsupported text comparison: {op.value}")


def evaluate_predicate(value: Any, op: PredicateOp, kind: FieldKind, target: Any = None) -> bool:
    """Decide one predicate for one value, with the store's semantics."""
    if op == PredicateOp.IS_NULL:
        return value is None or value == ""
    if op == PredicateOp.IS_NOT_NULL:
        return not (value is None or value == "")
    if op == PredicateOp.IS_TRUE:
        return to_bool_flag(value) is True
    if op == PredicateOp.IS_FALSE:
        return to_bool_flag(value) is False

    if kind in NUMERIC_KINDS:
        return _evaluate_number(value, op, target)
    if kind == FieldKind.DATE:
        return _evaluate_date(value, op, target)
    return _evaluate_text(value, op, target)


def evaluate(value: Any, operator: FilterOperator, filter_value: Any, kind: FieldKind) -> bool:
    """Evaluate a report operator against a row value."""
    return evaluate_predicate(value, STORE_OPS[operator], kind, filter_value)


def matches(row: Dict[str, Any], resolved: ResolvedFilter) -> bool:
    # Absent keys read as null, so is_empty applies to missing custom values
    return evaluate(row.get(resolved.field.key), resolved.operator, resolved.value, resolved.field.kind)


def matches_all(row: Dict[str, Any], filters: Iterable[ResolvedFilter]) -> bool:
    return all(matches(row, resolved) for resolved in filters)
