"""
Unit tests for report definition normalization.
"""

import pytest
from pydantic import ValidationError

from crm_reports.crm.models import RecordType
from crm_reports.query.schemas import FieldKind, SortDirection
from crm_reports.reporting.custom_fields import CustomFieldDefinition
from crm_reports.reporting.fields import FilterOperator, default_columns
from crm_reports.reporting.normalizer import (
    drop_incomplete_filters,
    has_value,
    is_complete_filter,
    normalize_definition,
)
from crm_reports.reporting.resolution import FieldResolution
from crm_reports.reporting.schemas import ReportDefinition, ReportFilter, SortSpec


@pytest.fixture
def contact_resolution(contact_custom_fields):
    return FieldResolution.build(RecordType.CONTACT, contact_custom_fields)


def _definition(**overrides):
    data = {"record_type": "contact", "columns": ["first_name", "company_name"]}
    data.update(overrides)
    return ReportDefinition(**data)


class TestFilterCompleteness:
    def test_has_value(self):
        assert not has_value(None)
        assert not has_value("   ")
        assert not has_value([])
        assert has_value(0)
        assert has_value(False)
        assert has_value("x")

    def test_incomplete_filters_are_dropped(self):
        filters = [
            ReportFilter(field="", operator="contains", value="a"),
            ReportFilter(field="email", operator="", value="a"),
            ReportFilter(field="email", operator="contains", value=""),
            ReportFilter(field="email", operator="is_empty"),
            ReportFilter(field="email", operator="contains", value="acme"),
        ]
        kept = drop_incomplete_filters(filters)
        assert [(f.field, f.operator) for f in kept] == [("email", "is_empty"), ("email", "contains")]
        assert not is_complete_filter(filters[0])


class TestNormalizeDefinition:
    def test_drops_filters_that_do_not_resolve(self, contact_resolution):
        definition = _definition(
            filters=[
                {"field": "favourite_colour", "operator": "equals", "value": "red"},
                {"field": "status", "operator": "contains", "value": "act"},
                {"field": "email", "operator": "gt", "value": "a"},
                {"field": "email", "operator": "bogus", "value": "a"},
                {"field": "email", "operator": "contains", "value": None},
                {"field": "email", "operator": "contains", "value": "acme"},
            ]
        )
        report = normalize_definition(definition, contact_resolution)

        assert len(report.filters) == 1
        assert report.filters[0].field.key == "email"
        assert report.filters[0].operator == FilterOperator.CONTAINS
        assert report.filters[0].value == "acme"

    def test_select_equality_is_rewritten(self, contact_resolution):
        definition = _definition(
            filters=[
                {"field": "status", "operator": "equals", "value": "active"},
                {"field": "source", "operator": "not_equals", "value": "import"},
            ]
        )
        report = normalize_definition(definition, contact_resolution)
        assert [f.operator for f in report.filters] == [FilterOperator.IS, FilterOperator.IS_NOT]

    def test_no_value_operators_drop_the_value(self, contact_resolution):
        definition = _definition(filters=[{"field": "email", "operator": "is_empty", "value": "ignored"}])
        report = normalize_definition(definition, contact_resolution)
        assert report.filters[0].value is None

    def test_custom_field_filters_resolve(self, contact_resolution):
        definition = _definition(filters=[{"field": "cf:nps_score", "operator": "gte", "value": 5}])
        report = normalize_definition(definition, contact_resolution)
        assert report.filters[0].field.is_custom
        assert report.filters[0].field.kind == FieldKind.NUMBER

    def test_unknown_columns_are_dropped(self, contact_resolution):
        report = normalize_definition(
            _definition(columns=["first_name", "shoe_size", "cf:nps_score"]), contact_resolution
        )
        assert report.columns == ("first_name", "cf:nps_score")

    def test_all_unknown_columns_fall_back_to_defaults(self, contact_resolution):
        report = normalize_definition(_definition(columns=["shoe_size"]), contact_resolution)
        assert report.columns == tuple(default_columns(RecordType.CONTACT))

    def test_unknown_sort_field_uses_default(self, contact_resolution):
        definition = _definition(sort={"field": "shoe_size", "direction": "asc"})
        report = normalize_definition(definition, contact_resolution)
        assert report.sort_field.key == "created_at"
        assert report.sort == SortSpec(field="created_at", direction=SortDirection.ASC)

    def test_custom_fields_unknown_to_the_catalog_are_dropped(self):
        resolution = FieldResolution.build(RecordType.CONTACT, [])
        definition = _definition(
            columns=["first_name", "cf:nps_score"],
            filters=[{"field": "cf:nps_score", "operator": "gt", "value": 1}],
            sort={"field": "cf:nps_score", "direction": "desc"},
        )
        report = normalize_definition(definition, resolution)
        assert report.columns == ("first_name",)
        assert report.filters == ()
        assert report.sort_field.key == "created_at"
        assert report.sort.direction == SortDirection.DESC

    def test_every_column_has_a_label(self, contact_resolution):
        report = normalize_definition(
            _definition(columns=["first_name", "company_name", "cf:linkedin"]), contact_resolution
        )
        for column in report.columns:
            assert contact_resolution.label_of(column).strip()


class TestDefinitionValidation:
    def test_columns_are_required(self):
        with pytest.raises(ValidationError):
            ReportDefinition(record_type="contact", columns=[])
        with pytest.raises(ValidationError):
            ReportDefinition(record_type="contact", columns=["  "])

    def test_columns_are_deduplicated(self):
        definition = ReportDefinition(record_type="deal", columns=["title", "value", "title"])
        assert definition.columns == ["title", "value"]

    def test_unknown_record_type_is_rejected(self):
        with pytest.raises(ValidationError):
            ReportDefinition(record_type="invoice", columns=["name"])

    def test_sort_defaults(self):
        definition = ReportDefinition(record_type=RecordType.COMPANY, columns=["name"])
        assert definition.sort.field == "created_at"
        assert definition.sort.direction == SortDirection.DESC
