"""Data Access Objects for saved reports."""

from sqlalchemy.orm import Session
from sqlalchemy import select
from typing import Any, Dict, List, Optional

from crm_reports.crm.models import utcnow
from crm_reports.reporting.models import SavedReport


class ReportDAO:
    """DAO for saved report operations, always scoped to one organization."""

    def __init__(self, db_session: Session):
        self.db = db_session

    async def get_all(self, org_id: str) -> List[SavedReport]:
        """Get all active reports, most recently updated first."""
        stmt = (
            select(SavedReport)
            .where(SavedReport.org_id == org_id, SavedReport.is_active == True)  # noqa: E712
            .order_by(SavedReport.updated_at.desc(), SavedReport.id.desc())
        )
        result = self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_by_id(self, org_id: str, report_id: int) -> Optional[SavedReport]:
        """Get an active report by ID."""
        stmt = select(SavedReport).where(
            SavedReport.id == report_id,
            SavedReport.org_id == org_id,
            SavedReport.is_active == True,  # noqa: E712
        )
        result = self.db.execute(stmt)
        return result.scalars().first()

    async def create(self, org_id: str, data: Dict[str, Any]) -> SavedReport:
        """Create a new report."""
        report = SavedReport(org_id=org_id, **data)
        self.db.add(report)
        self.db.commit()
        self.db.refresh(report)
        return report

    async def update(self, org_id: str, report_id: int, data: Dict[str, Any]) -> Optional[SavedReport]:
        """Update the given columns of a report."""
        report = await self.get_by_id(org_id, report_id)
        if not report:
            return None

        for key, value in data.items():
            setattr(report, key, value)
        report.updated_at = utcnow()

        self.db.commit()
        self.db.refresh(report)
        return report

    async def delete(self, org_id: str, report_id: int) -> bool:
        """Soft delete a report by ID."""
        report = await self.get_by_id(org_id, report_id)
        if report:
            report.is_active = False
            self.db.commit()
            return True
        return False
