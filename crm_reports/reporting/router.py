"""API router for the reporting module."""

from typing import List
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from crm_reports.core.dependencies import SessionDep, TenantDep
from crm_reports.crm.models import RecordType
from crm_reports.query.schemas import FieldKind
from crm_reports.query.sqlalchemy_store import SqlAlchemyRecordStore
from crm_reports.reporting.custom_fields import CustomFieldDAO, SqlCustomFieldCatalog
from crm_reports.reporting.dao import ReportDAO
from crm_reports.reporting.execution_log_dao import ReportExecutionLogDAO
from crm_reports.reporting.execution_log_service import ReportExecutionLogService
from crm_reports.reporting.export import XLSX_MEDIA_TYPE, export_file_name
from crm_reports.reporting.fields import OPERATOR_LABELS, operators_for
from crm_reports.reporting.pipeline import ReportExecutor
from crm_reports.reporting.schemas import (
    ExecutionLogRead,
    ExportRequest,
    FieldRead,
    OperatorRead,
    ReportCreate,
    ReportDefinition,
    ReportRead,
    ReportRunResponse,
    ReportSummary,
    ReportUpdate,
)
from crm_reports.reporting.service import ReportService

router = APIRouter(prefix="/reports", tags=["reporting"])


# Dependency functions
def get_report_dao(db: SessionDep) -> ReportDAO:
    return ReportDAO(db)


def get_report_executor(db: SessionDep) -> ReportExecutor:
    return ReportExecutor(SqlAlchemyRecordStore(db), SqlCustomFieldCatalog(CustomFieldDAO(db)))


def get_execution_log_service(db: SessionDep) -> ReportExecutionLogService:
    return ReportExecutionLogService(ReportExecutionLogDAO(db))


def get_report_service(
    report_dao: ReportDAO = Depends(get_report_dao),
    executor: ReportExecutor = Depends(get_report_executor),
    execution_log_service: ReportExecutionLogService = Depends(get_execution_log_service),
) -> ReportService:
    return ReportService(report_dao, executor, execution_log_service)


# ===== FIELD CATALOG ENDPOINTS =====


@router.get("/record-types", response_model=List[str])
async def get_record_types() -> List[str]:
    """Record types a report can be built on."""
    return [record_type.value for record_type in RecordType]


@router.get("/operators")
async def get_operators():
    """Operators per field kind, in display order."""
    return {
        kind.value: [
            OperatorRead(value=operator.value, label=OPERATOR_LABELS[kind][operator])
            for operator in operators_for(kind)
        ]
        for kind in FieldKind
    }


@router.get("/fields/{record_type}", response_model=List[FieldRead])
async def get_available_fields(
    record_type: RecordType,
    tenant: TenantDep,
    service: ReportService = Depends(get_report_service),
) -> List[FieldRead]:
    """Registry fields plus the tenant's custom fields for a record type."""
    return await service.get_available_fields(record_type, tenant)


# ===== AD-HOC EXECUTION =====


@router.post("/execute", response_model=ReportRunResponse)
async def execute_report_definition(
    definition: ReportDefinition,
    tenant: TenantDep,
    service: ReportService = Depends(get_report_service),
) -> ReportRunResponse:
    """Execute an unsaved report definition."""
    return await service.execute_definition(definition, tenant)


# ===== REPORT CONFIGURATION ENDPOINTS =====


@router.get("/", response_model=List[ReportRead])
async def get_all_reports(
    tenant: TenantDep, service: ReportService = Depends(get_report_service)
) -> List[ReportRead]:
    """Get all saved reports of the tenant."""
    return await service.get_all(tenant)


@router.get("/summary", response_model=List[ReportSummary])
async def get_all_reports_summary(
    tenant: TenantDep, service: ReportService = Depends(get_report_service)
) -> List[ReportSummary]:
    """Get all reports with execution statistics."""
    return await service.get_all_summaries(tenant)


@router.get("/{report_id}", response_model=ReportRead)
async def get_report_by_id(
    report_id: int, tenant: TenantDep, service: ReportService = Depends(get_report_service)
) -> ReportRead:
    report = await service.get_by_id(report_id, tenant)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


@router.post("/", response_model=ReportRead, status_code=201)
async def create_report(
    report_data: ReportCreate, tenant: TenantDep, service: ReportService = Depends(get_report_service)
) -> ReportRead:
    return await service.create(report_data, tenant)


@router.patch("/{report_id}", response_model=ReportRead)
async def update_report(
    report_id: int,
    report_data: ReportUpdate,
    tenant: TenantDep,
    service: ReportService = Depends(get_report_service),
) -> ReportRead:
    return await service.update(report_id, report_data, tenant)


@router.delete("/{report_id}")
async def delete_report(
    report_id: int, tenant: TenantDep, service: ReportService = Depends(get_report_service)
) -> dict:
    success = await service.delete(report_id, tenant)
    if not success:
        raise HTTPException(status_code=404, detail="Report not found")
    return {"message": "Report deleted successfully"}


# ===== SAVED REPORT EXECUTION =====


@router.post("/{report_id}/run", response_model=ReportRunResponse)
async def run_saved_report(
    report_id: int, tenant: TenantDep, service: ReportService = Depends(get_report_service)
) -> ReportRunResponse:
    """Run a saved report and record the execution."""
    return await service.run_report(report_id, tenant)


@router.get("/{report_id}/executions", response_model=List[ExecutionLogRead])
async def get_execution_logs(
    report_id: int,
    tenant: TenantDep,
    limit: int = 50,
    service: ReportService = Depends(get_report_service),
) -> List[ExecutionLogRead]:
    return await service.get_execution_logs(report_id, tenant, limit)


@router.post("/{report_id}/export")
async def export_report(
    report_id: int,
    export_request: ExportRequest,
    tenant: TenantDep,
    service: ReportService = Depends(get_report_service),
) -> Response:
    """Export a saved report to XLSX, with an optional viewer sort and row selection."""
    content = await service.export_report(report_id, export_request, tenant)
    file_name = export_file_name(export_request.file_name)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={file_name}"},
    )
