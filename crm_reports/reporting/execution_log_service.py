# crm_reports/reporting/execution_log_service.py
"""Service for recording saved report runs and reading their history."""

from typing import Dict, List, Optional

from crm_reports.crm.models import utcnow
from crm_reports.reporting.execution_log_dao import ReportExecutionLogDAO
from crm_reports.reporting.models import ReportExecutionLog
from crm_reports.reporting.schemas import ExecutionLogRead

MAX_ERROR_LENGTH = 1000


class ReportExecutionLogService:
    """Writes one ReportExecutionLog row per saved report run."""

    def __init__(self, execution_log_dao: ReportExecutionLogDAO):
        self.execution_log_dao = execution_log_dao

    def log_execution(
        self,
        report_id: int,
        executed_by: Optional[str] = None,
        execution_time_ms: Optional[float] = None,
        row_count: Optional[int] = None,
        success: bool = True,
        error_message: Optional[str] = None,
    ) -> ReportExecutionLog:
        """Record a run. Negative metrics are clamped to zero and long errors are cut."""
        if error_message and len(error_message) > MAX_ERROR_LENGTH:
            error_message = error_message[: MAX_ERROR_LENGTH - 3] + "..."

        return self.execution_log_dao.create(
            ReportExecutionLog(
                report_id=report_id,
                executed_by=executed_by,
                execution_time_ms=None if execution_time_ms is None else max(execution_time_ms, 0.0),
                row_count=None if row_count is None else max(row_count, 0),
                success=success,
                error_message=error_message,
                executed_at=utcnow(),
            )
        )

    def get_execution_logs_for_report(self, report_id: int, limit: int = 50) -> List[ExecutionLogRead]:
        return [ExecutionLogRead.model_validate(log) for log in self.execution_log_dao.get_by_report_id(report_id, limit)]

    def get_statistics(self, report_ids: List[int]) -> Dict[int, dict]:
        """Run count and last run time per report, for the summary listing."""
        return self.execution_log_dao.get_statistics(report_ids)
