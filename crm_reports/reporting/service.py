# crm_reports/reporting/service.py - Saved reports, report execution and field catalog

import time
import logging
from typing import List, Optional

from fastapi import HTTPException
from pydantic import ValidationError

from crm_reports.crm.models import RecordType
from crm_reports.reporting.dao import ReportDAO
from crm_reports.reporting.execution_log_service import ReportExecutionLogService
from crm_reports.reporting.export import build_workbook
from crm_reports.reporting.fields import OPERATOR_LABELS, operators_for
from crm_reports.reporting.models import SavedReport
from crm_reports.reporting.normalizer import drop_incomplete_filters
from crm_reports.reporting.pipeline import ExecutionResult, ReportExecutor
from crm_reports.reporting.schemas import (
    ColumnMeta,
    ExecutionLogRead,
    ExportRequest,
    FieldRead,
    OperatorRead,
    ReportCreate,
    ReportDefinition,
    ReportFilter,
    ReportRead,
    ReportRunResponse,
    ReportSummary,
    ReportUpdate,
    SortSpec,
    TenantContext,
)
from crm_reports.reporting.viewer import ResultViewer

logger = logging.getLogger(__name__)


class ReportService:
    """Report service: saved report CRUD, execution with logging, and exports."""

    def __init__(
        self,
        report_dao: ReportDAO,
        executor: ReportExecutor,
        execution_log_service: Optional[ReportExecutionLogService] = None,
    ):
        self.report_dao = report_dao
        self.executor = executor
        self.execution_log_service = execution_log_service

    # ===== CORE CRUD OPERATIONS =====

    async def get_all(self, tenant: TenantContext) -> List[ReportRead]:
        """Get all reports of the tenant."""
        reports = await self.report_dao.get_all(tenant.org_id)
        return [self._to_read(report) for report in reports]

    async def get_all_summaries(self, tenant: TenantContext) -> List[ReportSummary]:
        """Get all reports with execution statistics."""
        reports = await self.report_dao.get_all(tenant.org_id)
        stats = {}
        if self.execution_log_service:
            stats = self.execution_log_service.get_statistics([report.id for report in reports])
        return [self._build_summary(report, stats.get(report.id, {})) for report in reports]

    async def get_by_id(self, report_id: int, tenant: TenantContext) -> Optional[ReportRead]:
        report = await self.report_dao.get_by_id(tenant.org_id, report_id)
        if not report:
            return None
        return self._to_read(report)

    async def create(self, report_data: ReportCreate, tenant: TenantContext) -> ReportRead:
        """Create a report; incomplete filters are not saved."""
        data = {
            "name": report_data.name,
            "description": report_data.description,
            "record_type": report_data.record_type.value,
            "columns": report_data.columns,
            "filters": self._filters_json(report_data.filters),
            "sort_config": report_data.sort.model_dump(mode="json"),
            "created_by": report_data.created_by or tenant.user_id,
        }
        report = await self.report_dao.create(tenant.org_id, data)
        logger.info(f"Created report {report.id} ({report.record_type}) for org {tenant.org_id}")
        return self._to_read(report)

    async def update(self, report_id: int, report_data: ReportUpdate, tenant: TenantContext) -> ReportRead:
        """Update the fields present in the request."""
        changes = report_data.model_dump(exclude_unset=True)
        data = {}
        for key in ("name", "description", "columns"):
            if key in changes and changes[key] is not None:
                data[key] = changes[key]
        if report_data.record_type is not None:
            data["record_type"] = report_data.record_type.value
        if report_data.filters is not None:
            data["filters"] = self._filters_json(report_data.filters)
        if report_data.sort is not None:
            data["sort_config"] = report_data.sort.model_dump(mode="json")

        report = await self.report_dao.update(tenant.org_id, report_id, data)
        if not report:
            raise HTTPException(status_code=404, detail="Report not found")
        return self._to_read(report)

    async def delete(self, report_id: int, tenant: TenantContext) -> bool:
        return await self.report_dao.delete(tenant.org_id, report_id)

    # ===== EXECUTION =====

    async def execute_definition(
        self, definition: ReportDefinition, tenant: TenantContext, report_id: Optional[int] = None
    ) -> ReportRunResponse:
        """Execute a definition and package rows with column metadata."""
        start_time = time.perf_counter()
        result = await self.executor.execute(definition, tenant)
        execution_time_ms = (time.perf_counter() - start_time) * 1000
        return self._build_run_response(definition, result, execution_time_ms, report_id)

    async def run_report(self, report_id: int, tenant: TenantContext) -> ReportRunResponse:
        """Run a saved report and record the execution."""
        report = await self.get_by_id(report_id, tenant)
        if not report:
            raise HTTPException(status_code=404, detail="Report not found")

        start_time = time.perf_counter()
        try:
            response = await self.execute_definition(report.to_definition(), tenant, report_id=report_id)
        except Exception as e:
            self._log_execution(report_id, tenant, (time.perf_counter() - start_time) * 1000, None, False, str(e))
            raise

        self._log_execution(
            report_id, tenant, response.execution_time_ms, response.count, response.error is None, response.error
        )
        return response

    async def get_execution_logs(self, report_id: int, tenant: TenantContext, limit: int = 50) -> List[ExecutionLogRead]:
        report = await self.report_dao.get_by_id(tenant.org_id, report_id)
        if not report:
            raise HTTPException(status_code=404, detail="Report not found")
        if not self.execution_log_service:
            return []
        return self.execution_log_service.get_execution_logs_for_report(report_id, limit)

    async def export_report(self, report_id: int, export_request: ExportRequest, tenant: TenantContext) -> bytes:
        """Run a saved report and write the viewer's formatted rows to XLSX."""
        report = await self.get_by_id(report_id, tenant)
        if not report:
            raise HTTPException(status_code=404, detail="Report not found")

        result = await self.executor.execute(report.to_definition(), tenant)
        viewer = ResultViewer(result.rows, result.resolution)
        if export_request.sort is not None:
            viewer.set_sort(export_request.sort.field, export_request.sort.direction)
        if export_request.selected_ids is not None:
            viewer.select(export_request.selected_ids)

        columns = list(result.report.columns)
        rows = viewer.formatted_rows(columns, selected_only=export_request.selected_ids is not None)
        return build_workbook(viewer.column_headers(columns), rows, sheet_name=report.name)

    # ===== FIELD CATALOG =====

    async def get_available_fields(self, record_type: RecordType, tenant: TenantContext) -> List[FieldRead]:
        """Registry and custom fields of a record type with their operators."""
        resolution = await self.executor.load_resolution(record_type, tenant)
        return [
            FieldRead(
                key=field.key,
                label=field.label,
                kind=field.kind,
                source=field.source,
                options=list(field.options),
                default_visible=field.default_visible,
                operators=[
                    OperatorRead(value=operator.value, label=OPERATOR_LABELS[field.kind][operator])
                    for operator in operators_for(field.kind)
                ],
            )
            for field in resolution.fields()
        ]

    # ===== HELPERS =====

    def _build_run_response(
        self,
        definition: ReportDefinition,
        result: ExecutionResult,
        execution_time_ms: float,
        report_id: Optional[int],
    ) -> ReportRunResponse:
        columns = [
            ColumnMeta(key=key, label=result.resolution.label_of(key), kind=result.resolution.kind_of(key))
            for key in result.report.columns
        ]
        return ReportRunResponse(
            report_id=report_id,
            record_type=definition.record_type,
            columns=columns,
            rows=result.rows,
            count=result.count,
            execution_time_ms=round(execution_time_ms, 3),
            error=result.error,
        )

    def _log_execution(self, report_id, tenant, execution_time_ms, row_count, success, error_message):
        if not self.execution_log_service:
            return
        self.execution_log_service.log_execution(
            report_id=report_id,
            executed_by=tenant.user_id,
            execution_time_ms=execution_time_ms,
            row_count=row_count,
            success=success,
            error_message=error_message,
        )

    @staticmethod
    def _filters_json(filters: List[ReportFilter]) -> list:
        return [report_filter.model_dump(mode="json") for report_filter in drop_incomplete_filters(filters)]

    def _to_read(self, report: SavedReport) -> ReportRead:
        """Build the read schema, tolerating stored filters or sort that no longer parse."""
        filters = []
        for raw_filter in report.filters or []:
            try:
                filters.append(ReportFilter.model_validate(raw_filter))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable filter on report {report.id}: {e}")

        sort = SortSpec()
        if report.sort_config:
            try:
                sort = SortSpec.model_validate(report.sort_config)
            except ValidationError as e:
                logger.warning(f"Could not parse sort config for report {report.id}: {e}")

        return ReportRead(
            id=report.id,
            org_id=report.org_id,
            name=report.name,
            description=report.description,
            record_type=RecordType(report.record_type),
            columns=list(report.columns or []),
            filters=filters,
            sort=sort,
            created_by=report.created_by,
            is_active=report.is_active,
            created_at=report.created_at,
            updated_at=report.updated_at,
        )

    def _build_summary(self, report: SavedReport, stats: dict) -> ReportSummary:
        return ReportSummary(
            id=report.id,
            name=report.name,
            description=report.description,
            record_type=RecordType(report.record_type),
            column_count=len(report.columns or []),
            filter_count=len(report.filters or []),
            created_by=report.created_by,
            updated_at=report.updated_at,
            total_executions=stats.get("total_executions", 0),
            last_executed=stats.get("last_executed"),
            last_execution_success=stats.get("last_execution_success"),
        )
