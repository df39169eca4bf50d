# crm_reports/reporting/pipeline.py
"""Report execution: pushdown query, enrichment, in-memory filtering and sorting."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from crm_reports.crm.models import RecordType
from crm_reports.query.schemas import OrderBy, SortDirection, StoreQuery
from crm_reports.query.store import RecordStore, StoreError
from crm_reports.reporting.custom_fields import CustomFieldCatalog, CustomFieldDefinition
from crm_reports.reporting.enrichment import RowEnricher
from crm_reports.reporting.normalizer import NormalizedReport, ResolvedFilter, normalize_definition
from crm_reports.reporting.predicates import matches_all, to_store_predicate
from crm_reports.reporting.resolution import FieldResolution
from crm_reports.reporting.schemas import ReportDefinition, TenantContext
from crm_reports.reporting.sorting import sort_rows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryPlan:
    """How one normalized report splits between the store and memory."""

    store_query: StoreQuery
    deferred_filters: Tuple[ResolvedFilter, ...]
    deferred_sort: bool


@dataclass
class ExecutionResult:
    rows: List[Dict[str, Any]] = field(default_factory=list)
    count: int = 0
    resolution: Optional[FieldResolution] = None
    report: Optional[NormalizedReport] = None
    error: Optional[str] = None


def plan_query(report: NormalizedReport, resolution: FieldResolution, tenant: TenantContext) -> QueryPlan:
    """Push native filters and sorts to the store; defer the rest until after enrichment."""
    pushed = tuple(to_store_predicate(f) for f in report.filters if f.field.is_pushable)
    deferred = tuple(f for f in report.filters if not f.field.is_pushable)

    direction = SortDirection(report.sort.direction)
    deferred_sort = not report.sort_field.is_pushable
    if deferred_sort:
        # Keep the primary fetch deterministic; the requested order is applied later
        order_field = resolution.get(resolution.default_sort_field)
    else:
        order_field = report.sort_field
    order_by = OrderBy(column=order_field.key, direction=direction, kind=order_field.kind)

    return QueryPlan(
        store_query=StoreQuery(
            record_type=report.record_type,
            org_id=tenant.org_id,
            predicates=pushed,
            order_by=order_by,
        ),
        deferred_filters=deferred,
        deferred_sort=deferred_sort,
    )


class ReportExecutor:
    """Turns a report definition into a materialized, enriched, filtered and sorted row set."""

    def __init__(self, store: RecordStore, custom_field_catalog: CustomFieldCatalog):
        self.store = store
        self.custom_field_catalog = custom_field_catalog
        self.enricher = RowEnricher(store)

    async def load_resolution(self, record_type: RecordType, tenant: TenantContext) -> FieldResolution:
        custom_fields = await self._load_custom_fields(record_type, tenant)
        return FieldResolution.build(record_type, custom_fields)

    async def _load_custom_fields(
        self, record_type: RecordType, tenant: TenantContext
    ) -> List[CustomFieldDefinition]:
        try:
            return await self.custom_field_catalog.fields_for(record_type, tenant)
        except StoreError as e:
            logger.warning(f"Custom fields unavailable for {record_type.value}, continuing without them: {e}")
            return []

    async def execute(self, definition: ReportDefinition, tenant: TenantContext) -> ExecutionResult:
        """Execute a report. Store failures yield an empty result, never an exception."""
        resolution = await self.load_resolution(definition.record_type, tenant)
        report = normalize_definition(definition, resolution)
        plan = plan_query(report, resolution, tenant)

        try:
            primary_rows = await self.store.select(plan.store_query)
        except StoreError as e:
            logger.error(f"Primary query for {report.record_type.value} report failed: {e}")
            return ExecutionResult(rows=[], count=0, resolution=resolution, report=report, error=str(e))

        rows = await self.enricher.enrich(report.record_type, primary_rows, tenant.org_id)

        if plan.deferred_filters:
            rows = [row for row in rows if matches_all(row, plan.deferred_filters)]

        if plan.deferred_sort:
            rows = sort_rows(rows, report.sort_field.key, report.sort.direction, report.sort_field.kind)

        logger.debug(
            f"{report.record_type.value} report: {len(primary_rows)} primary rows, "
            f"{len(plan.deferred_filters)} deferred filters, {len(rows)} results"
        )
        return ExecutionResult(rows=rows, count=len(rows), resolution=resolution, report=report)
