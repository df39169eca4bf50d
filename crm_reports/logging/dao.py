"""Data Access Objects for the logging module."""

from datetime import timedelta
from typing import List, Optional
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from crm_reports.core.base_dao import BaseDAO
from crm_reports.crm.models import utcnow
from crm_reports.logging.models import Log


class LogDAO(BaseDAO[Log]):
    """DAO for request logs."""

    def __init__(self, db_session: Session):
        super().__init__(Log, db_session)

    def _filtered(self, query, hours: Optional[int], status_min: Optional[int], path: Optional[str]):
        if hours:
            query = query.where(Log.timestamp >= utcnow() - timedelta(hours=hours))
        if status_min is not None:
            query = query.where(Log.status_code >= status_min)
        if path:
            query = query.where(Log.path.contains(path))
        return query

    def get_logs_with_filters(
        self,
        skip: int = 0,
        limit: int = 100,
        hours: Optional[int] = None,
        status_min: Optional[int] = None,
        path: Optional[str] = None,
    ) -> List[Log]:
        """Newest logs first, optionally restricted by age, status and path."""
        query = self._filtered(select(Log), hours, status_min, path)
        query = query.order_by(Log.timestamp.desc(), Log.id.desc()).offset(skip).limit(limit)
        return list(self.db.execute(query).scalars().all())

    def count_logs_with_filters(
        self, hours: Optional[int] = None, status_min: Optional[int] = None, path: Optional[str] = None
    ) -> int:
        query = self._filtered(select(func.count(Log.id)), hours, status_min, path)
        return self.db.execute(query).scalar() or 0

    def cleanup_old_logs(self, days_to_keep: int = 90) -> int:
        """Delete logs older than the cutoff; returns the number removed."""
        cutoff = utcnow() - timedelta(days=days_to_keep)
        old_logs = self.db.execute(select(Log).where(Log.timestamp < cutoff)).scalars().all()
        for log in old_logs:
            self.db.delete(log)
        self.db.commit()
        return len(old_logs)

    def create_log(self, **log_data) -> Log:
        log_data.setdefault("timestamp", utcnow())
        return self.create(**log_data)
