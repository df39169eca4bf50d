"""
Unit tests for the result viewer: secondary sort, selection and cell formatting.
"""

import pytest

from crm_reports.crm.models import RecordType
from crm_reports.query.schemas import FieldKind, SortDirection
from crm_reports.reporting.custom_fields import CustomFieldDefinition
from crm_reports.reporting.resolution import FieldResolution
from crm_reports.reporting.viewer import (
    DEFAULT_BADGE_COLOR,
    EMPTY_CELL,
    STATUS_COLORS,
    ResultViewer,
    format_currency,
    format_date,
    format_number,
    format_value,
)


@pytest.fixture
def deal_rows():
    return [
        {"id": "dl-1", "title": "Acme renewal", "value": 48000.0, "currency": "USD", "stage": "negotiation",
         "expected_close_date": "2024-09-30", "cf:won_back": True},
        {"id": "dl-2", "title": "Zeta platform", "value": 125000.0, "currency": "USD", "stage": "proposal",
         "expected_close_date": None},
        {"id": "dl-3", "title": "Initech pilot", "value": 9500.0, "currency": "EUR", "stage": "won",
         "expected_close_date": "2024-03-01"},
    ]


@pytest.fixture
def viewer(deal_rows):
    resolution = FieldResolution.build(
        RecordType.DEAL, [CustomFieldDefinition(key="won_back", label="Won Back", kind=FieldKind.BOOLEAN)]
    )
    return ResultViewer(deal_rows, resolution)


def _ids(rows):
    return [row["id"] for row in rows]


class TestFormatting:
    def test_dates(self):
        assert format_date("2024-03-01") == "Mar 1, 2024"
        assert format_date("2024-12-25T18:30:00Z") == "Dec 25, 2024"
        assert format_date("someday") == "someday"

    def test_currency(self):
        assert format_currency(48000, "USD") == "$48,000"
        assert format_currency(9500.4, "eur") == "€9,500"
        assert format_currency(1234, "CAD") == "CAD 1,234"
        assert format_currency(-1500, None) == "-$1,500"
        assert format_currency("abc", "USD") == "abc"

    def test_numbers(self):
        assert format_number(1234567) == "1,234,567"
        assert format_number(12.0) == "12"
        assert format_number(0.125) == "0.125"

    def test_empty_values(self):
        for value in (None, "", []):
            assert format_value("title", value, FieldKind.TEXT, {}).text == EMPTY_CELL

    def test_kinds(self):
        assert format_value("value", 1000, FieldKind.CURRENCY, {"currency": "GBP"}).text == "£1,000"
        assert format_value("x", "true", FieldKind.BOOLEAN, {}).text == "Yes"
        assert format_value("x", False, FieldKind.BOOLEAN, {}).text == "No"
        assert format_value("tags", ["vip", "beta"], FieldKind.TEXT, {}).text == "vip, beta"
        assert format_value("employees", 850, FieldKind.NUMBER, {}).text == "850"

    def test_status_badges(self):
        cell = format_value("stage", "won", FieldKind.SELECT, {})
        assert cell.text == "Won"
        assert cell.badge_color == STATUS_COLORS["won"]
        assert format_value("status", "paused", FieldKind.SELECT, {}).badge_color == DEFAULT_BADGE_COLOR
        assert format_value("source", "referral", FieldKind.SELECT, {}).badge_color is None


class TestSecondarySort:
    def test_rows_keep_execution_order_until_sorted(self, viewer):
        assert _ids(viewer.sorted_rows) == ["dl-1", "dl-2", "dl-3"]

    def test_toggle_sort_starts_ascending_then_flips(self, viewer):
        viewer.toggle_sort("value")
        assert viewer.sort_direction == SortDirection.ASC
        assert _ids(viewer.sorted_rows) == ["dl-3", "dl-1", "dl-2"]

        viewer.toggle_sort("value")
        assert _ids(viewer.sorted_rows) == ["dl-2", "dl-1", "dl-3"]

        viewer.toggle_sort("title")
        assert viewer.sort_direction == SortDirection.ASC
        assert _ids(viewer.sorted_rows) == ["dl-1", "dl-3", "dl-2"]

    def test_date_sort_puts_nulls_last(self, viewer):
        viewer.set_sort("expected_close_date", "desc")
        assert _ids(viewer.sorted_rows) == ["dl-1", "dl-3", "dl-2"]

    def test_sorting_does_not_touch_rows(self, viewer, deal_rows):
        viewer.toggle_sort("value")
        viewer.sorted_rows
        assert _ids(deal_rows) == ["dl-1", "dl-2", "dl-3"]
        assert _ids(viewer.rows) == ["dl-1", "dl-2", "dl-3"]

    def test_clear_sort(self, viewer):
        viewer.toggle_sort("value")
        viewer.clear_sort()
        assert viewer.sort_field is None
        assert _ids(viewer.sorted_rows) == ["dl-1", "dl-2", "dl-3"]


class TestSelection:
    def test_toggle_row(self, viewer):
        viewer.toggle_row("dl-2")
        assert viewer.selected == {"dl-2"}
        viewer.toggle_row("dl-2")
        assert viewer.selected == frozenset()

    def test_select_all_toggles_between_full_and_empty(self, viewer):
        viewer.toggle_row("dl-1")
        viewer.select_all()
        assert viewer.selected == {"dl-1", "dl-2", "dl-3"}
        viewer.select_all()
        assert viewer.selected == frozenset()

    def test_toggle_row_ignores_unknown_ids(self, viewer):
        viewer.toggle_row("dl-1")
        viewer.toggle_row("dl-404")
        assert viewer.selected == {"dl-1"}
        viewer.select_all()
        assert viewer.selected == {"dl-1", "dl-2", "dl-3"}

    def test_select_ignores_unknown_ids(self, viewer):
        viewer.select(["dl-3", "dl-404"])
        assert viewer.selected == {"dl-3"}

    def test_selected_rows_follow_viewer_order(self, viewer):
        viewer.select(["dl-1", "dl-2"])
        viewer.set_sort("value", SortDirection.DESC)
        assert _ids(viewer.selected_rows) == ["dl-2", "dl-1"]


class TestDisplayRows:
    def test_headers_and_cells(self, viewer):
        columns = ["title", "value", "stage", "expected_close_date", "cf:won_back"]
        assert viewer.column_headers(columns) == ["Title", "Value", "Stage", "Expected Close", "Won Back"]

        rows = viewer.formatted_rows(columns)
        assert rows[0] == {
            "Title": "Acme renewal",
            "Value": "$48,000",
            "Stage": "Negotiation",
            "Expected Close": "Sep 30, 2024",
            "Won Back": "Yes",
        }
        assert rows[1]["Expected Close"] == EMPTY_CELL
        assert rows[1]["Won Back"] == EMPTY_CELL
        assert rows[2]["Value"] == "€9,500"

    def test_duplicate_labels_are_disambiguated(self):
        resolution = FieldResolution.build(
            RecordType.DEAL, [CustomFieldDefinition(key="title", label="Title", kind=FieldKind.TEXT)]
        )
        viewer = ResultViewer([], resolution)
        assert viewer.column_headers(["title", "cf:title"]) == ["Title (title)", "Title (cf:title)"]

    def test_selected_only(self, viewer):
        viewer.select(["dl-3"])
        rows = viewer.formatted_rows(["title"], selected_only=True)
        assert rows == [{"Title": "Initech pilot"}]
