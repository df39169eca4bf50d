# crm_reports/reporting/normalizer.py
"""Normalization of report definitions before execution."""

import logging
from dataclasses import dataclass
from typing import Any, List, Tuple

from crm_reports.crm.models import RecordType
from crm_reports.reporting.fields import (
    FieldDefinition,
    FilterOperator,
    NO_VALUE_OPERATORS,
    canonical_operator,
    default_columns,
    operators_for,
    parse_operator,
)
from crm_reports.reporting.resolution import FieldResolution
from crm_reports.reporting.schemas import ReportDefinition, ReportFilter, SortSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedFilter:
    """A filter whose field and operator are known to be compatible."""

    field: FieldDefinition
    operator: FilterOperator
    value: Any = None


@dataclass(frozen=True)
class NormalizedReport:
    record_type: RecordType
    columns: Tuple[str, ...]
    filters: Tuple[ResolvedFilter, ...]
    sort_field: FieldDefinition
    sort: SortSpec


def has_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple)):
        return bool(value)
    return True


def is_complete_filter(report_filter: ReportFilter) -> bool:
    """A filter names a field and an operator, and a value unless the operator needs none."""
    if not report_filter.field or not report_filter.operator:
        return False
    operator = parse_operator(report_filter.operator)
    if operator in NO_VALUE_OPERATORS:
        return True
    return has_value(report_filter.value)


def drop_incomplete_filters(filters: List[ReportFilter]) -> List[ReportFilter]:
    return [report_filter for report_filter in filters if is_complete_filter(report_filter)]


def resolve_filter(report_filter: ReportFilter, resolution: FieldResolution):
    """Resolve one filter, or return None when it must be dropped."""
    if not is_complete_filter(report_filter):
        return None
    field = resolution.get(report_filter.field)
    if field is None:
        return None
    operator = canonical_operator(field.kind, parse_operator(report_filter.operator))
    if operator is None or operator not in operators_for(field.kind):
        return None
    value = None if operator in NO_VALUE_OPERATORS else report_filter.value
    return ResolvedFilter(field=field, operator=operator, value=value)


def normalize_definition(definition: ReportDefinition, resolution: FieldResolution) -> NormalizedReport:
    """
    Bring a report definition into executable shape.

    Filters on unknown fields, with an operator outside their kind's
    compatibility set, or missing a required value are dropped. Columns that
    do not resolve are dropped (falling back to the default columns when none
    remain) and an unknown sort field becomes the record type's default sort
    field. Nothing here raises for a bad definition.
    """
    filters = []
    for report_filter in definition.filters:
        resolved = resolve_filter(report_filter, resolution)
        if resolved is None:
            logger.info(
                f"Dropping filter {report_filter.field!r} {report_filter.operator!r} "
                f"on {definition.record_type.value} report"
            )
            continue
        filters.append(resolved)

    columns = [column for column in definition.columns if column in resolution]
    if len(columns) != len(definition.columns):
        unknown = [column for column in definition.columns if column not in resolution]
        logger.info(f"Dropping unknown columns {unknown} on {definition.record_type.value} report")
    if not columns:
        columns = [column for column in default_columns(definition.record_type) if column in resolution]

    sort = definition.sort
    sort_field = resolution.get(sort.field)
    if sort_field is None:
        logger.info(f"Unknown sort field {sort.field!r}; using {resolution.default_sort_field!r}")
        sort = SortSpec(field=resolution.default_sort_field, direction=sort.direction)
        sort_field = resolution.get(sort.field)

    return NormalizedReport(
        record_type=definition.record_type,
        columns=tuple(columns),
        filters=tuple(filters),
        sort_field=sort_field,
        sort=sort,
    )
