# crm_reports/reporting/sorting.py
"""Type-aware row ordering shared by the pipeline and the result viewer."""

from typing import Any, Callable, Dict, List, Optional, Sequence

from crm_reports.query.coercion import to_number, to_text, to_timestamp
from crm_reports.query.schemas import FieldKind, NUMERIC_KINDS, SortDirection


def _text_key(value: Any) -> Optional[str]:
    if value is None:
        return None
    return to_text(value).casefold()


def sort_value_for(kind: FieldKind) -> Callable[[Any], Any]:
    """Comparable form of a value; None means the value sorts last."""
    if kind in NUMERIC_KINDS:
        return to_number
    if kind == FieldKind.DATE:
        return to_timestamp
    return _text_key


def _row_id(row: Dict[str, Any]) -> str:
    return str(row.get("id") or "")


def sort_rows(
    rows: Sequence[Dict[str, Any]],
    field_key: str,
    direction: SortDirection,
    kind: FieldKind,
) -> List[Dict[str, Any]]:
    """
    Return rows ordered by one field.

    Values that are null or cannot be coerced to the field's kind always come
    last, whatever the direction. Ties keep ascending id order.
    """
    to_sort_value = sort_value_for(kind)
    ranked = []
    missing = []
    for row in sorted(rows, key=_row_id):
        sort_value = to_sort_value(row.get(field_key))
        if sort_value is None:
            missing.append(row)
        else:
            ranked.append((sort_value, row))

    # list.sort stays stable when reversed, so equal values keep id order
    ranked.sort(key=lambda pair: pair[0], reverse=SortDirection(direction) == SortDirection.DESC)
    return [row for _, row in ranked] + missing
