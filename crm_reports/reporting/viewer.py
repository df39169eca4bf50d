# crm_reports/reporting/viewer.py
"""Display layer over an executed report: secondary sort, row selection and cell formatting."""

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Set

from crm_reports.core.config import DEFAULT_CURRENCY
from crm_reports.query.coercion import to_bool_flag, to_number, to_timestamp
from crm_reports.query.schemas import FieldKind, SortDirection
from crm_reports.reporting.resolution import FieldResolution
from crm_reports.reporting.sorting import sort_rows

EMPTY_CELL = "—"

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
}

# Select fields rendered as coloured status badges
BADGE_FIELDS = frozenset({"status", "stage"})

STATUS_COLORS = {
    "lead": "#2563eb",
    "active": "#059669",
    "inactive": "#6b7280",
    "churned": "#dc2626",
    "qualified": "#7c3aed",
    "proposal": "#d97706",
    "negotiation": "#ea580c",
    "won": "#16a34a",
    "lost": "#dc2626",
}
DEFAULT_BADGE_COLOR = "#6b7280"


@dataclass(frozen=True)
class CellDisplay:
    text: str
    badge_color: Optional[str] = None


def format_date(value: Any) -> str:
    moment = to_timestamp(value)
    if moment is None:
        return str(value)
    return f"{moment:%b} {moment.day}, {moment.year}"


def format_currency(value: Any, currency: Optional[str] = None) -> str:
    amount = to_number(value)
    if amount is None:
        return str(value)
    code = (currency or DEFAULT_CURRENCY).upper()
    symbol = CURRENCY_SYMBOLS.get(code)
    digits = f"{abs(amount):,.0f}"
    sign = "-" if round(amount) < 0 else ""
    if symbol:
        return f"{sign}{symbol}{digits}"
    return f"{sign}{code} {digits}"


def format_number(value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, int) or value.is_integer():
        return f"{int(value):,}"
    return f"{value:,.3f}".rstrip("0").rstrip(".")


def format_value(field_key: str, value: Any, kind: FieldKind, row: Dict[str, Any]) -> CellDisplay:
    """Display form of one cell."""
    if value is None or value == "" or value == []:
        return CellDisplay(EMPTY_CELL)

    if kind == FieldKind.DATE:
        return CellDisplay(format_date(value))
    if kind == FieldKind.CURRENCY:
        return CellDisplay(format_currency(value, row.get("currency")))
    if kind == FieldKind.NUMBER:
        return CellDisplay(format_number(value))
    if kind == FieldKind.BOOLEAN:
        return CellDisplay("Yes" if to_bool_flag(value) is True else "No")
    if kind == FieldKind.SELECT and field_key in BADGE_FIELDS:
        status = str(value)
        return CellDisplay(status.capitalize(), STATUS_COLORS.get(status, DEFAULT_BADGE_COLOR))
    if isinstance(value, (list, tuple)):
        return CellDisplay(", ".join(str(item) for item in value))
    return CellDisplay(str(value))


class ResultViewer:
    """
    Transient view state over one execution's rows.

    Sorting here never touches the report definition and never re-queries the
    store. A new execution gets a new viewer, which is how sort and selection
    state reset.
    """

    def __init__(self, rows: Sequence[Dict[str, Any]], resolution: FieldResolution):
        self._rows = list(rows)
        self.resolution = resolution
        self.sort_field: Optional[str] = None
        self.sort_direction = SortDirection.ASC
        self._selected: set = set()

    @property
    def rows(self) -> List[Dict[str, Any]]:
        return list(self._rows)

    # ===== SORTING =====

    def toggle_sort(self, field_key: str) -> None:
        """Ascending on a new column, then flip on each repeat click."""
        if self.sort_field == field_key:
            self.sort_direction = (
                SortDirection.DESC if self.sort_direction == SortDirection.ASC else SortDirection.ASC
            )
        else:
            self.sort_field = field_key
            self.sort_direction = SortDirection.ASC

    def set_sort(self, field_key: str, direction: SortDirection) -> None:
        self.sort_field = field_key
        self.sort_direction = SortDirection(direction)

    def clear_sort(self) -> None:
        self.sort_field = None
        self.sort_direction = SortDirection.ASC

    @property
    def sorted_rows(self) -> List[Dict[str, Any]]:
        if not self.sort_field:
            return self.rows
        return sort_rows(
            self._rows, self.sort_field, self.sort_direction, self.resolution.kind_of(self.sort_field)
        )

    # ===== SELECTION =====

    def _row_ids(self) -> Set[str]:
        return {str(row.get("id")) for row in self._rows}

    def toggle_row(self, row_id: Any) -> None:
        """Flip one row's selection. Ids outside the result set are ignored."""
        row_id = str(row_id)
        if row_id in self._selected:
            self._selected.discard(row_id)
        elif row_id in self._row_ids():
            self._selected.add(row_id)

    def select_all(self) -> None:
        """Select every row, or clear the selection when everything is already selected."""
        if len(self._selected) == len(self._rows):
            self._selected = set()
        else:
            self._selected = self._row_ids()

    def select(self, row_ids: Sequence[Any]) -> None:
        known = self._row_ids()
        self._selected = {str(row_id) for row_id in row_ids if str(row_id) in known}

    @property
    def selected(self) -> FrozenSet[str]:
        return frozenset(self._selected)

    @property
    def selected_rows(self) -> List[Dict[str, Any]]:
        return [row for row in self.sorted_rows if str(row.get("id")) in self._selected]

    # ===== FORMATTING =====

    def format_cell(self, field_key: str, row: Dict[str, Any]) -> CellDisplay:
        return format_value(field_key, row.get(field_key), self.resolution.kind_of(field_key), row)

    def column_headers(self, columns: Sequence[str]) -> List[str]:
        """Column labels, disambiguated by key when two columns share a label."""
        labels = [self.resolution.label_of(column) for column in columns]
        return [
            f"{label} ({column})" if labels.count(label) > 1 else label
            for label, column in zip(labels, columns)
        ]

    def formatted_rows(self, columns: Sequence[str], selected_only: bool = False) -> List[Dict[str, str]]:
        """Rows as {column header: display text}, in viewer order."""
        rows = self.selected_rows if selected_only else self.sorted_rows
        headers = self.column_headers(columns)
        return [
            {header: self.format_cell(column, row).text for header, column in zip(headers, columns)}
            for row in rows
        ]
