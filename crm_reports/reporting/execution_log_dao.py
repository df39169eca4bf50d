# crm_reports/reporting/execution_log_dao.py
"""Data Access Object for Report Execution Logs."""

from sqlalchemy.orm import Session
from sqlalchemy import desc, func, select
from typing import Dict, List, Any

from crm_reports.reporting.models import ReportExecutionLog


class ReportExecutionLogDAO:
    """DAO for report execution log operations."""

    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, execution_log: ReportExecutionLog) -> ReportExecutionLog:
        """Create a new execution log entry."""
        self.db.add(execution_log)
        self.db.commit()
        self.db.refresh(execution_log)
        return execution_log

    def get_by_report_id(self, report_id: int, limit: int = 50) -> List[ReportExecutionLog]:
        """Get execution logs for a specific report, most recent first."""
        stmt = (
            select(ReportExecutionLog)
            .where(ReportExecutionLog.report_id == report_id)
            .order_by(desc(ReportExecutionLog.executed_at), desc(ReportExecutionLog.id))
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    def get_statistics(self, report_ids: List[int]) -> Dict[int, Dict[str, Any]]:
        """Execution count and latest run per report."""
        if not report_ids:
            return {}

        counts = self.db.execute(
            select(ReportExecutionLog.report_id, func.count(ReportExecutionLog.id))
            .where(ReportExecutionLog.report_id.in_(report_ids))
            .group_by(ReportExecutionLog.report_id)
        ).all()

        stats = {report_id: {"total_executions": total} for report_id, total in counts}
        for report_id in stats:
            latest = self.get_by_report_id(report_id, limit=1)
            if latest:
                stats[report_id]["last_executed"] = latest[0].executed_at
                stats[report_id]["last_execution_success"] = latest[0].success
        return stats
