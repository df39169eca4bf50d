# crm_reports/reporting/models.py - Saved report definitions and their execution history

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON, Float
from sqlalchemy.orm import relationship

from crm_reports.core.database import Base
from crm_reports.crm.models import utcnow


class SavedReport(Base):
    """A persisted report definition."""

    __tablename__ = "crm_reports"

    id = Column(Integer, primary_key=True, index=True)
    org_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    record_type = Column(String, nullable=False)  # contact | company | deal | activity
    columns = Column(JSON, nullable=False, default=list)
    filters = Column(JSON, nullable=False, default=list)  # [{field, operator, value}]
    sort_config = Column(JSON, nullable=True)  # {field, direction}
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    is_active = Column(Boolean, nullable=False, default=True)

    # Relationships
    execution_logs = relationship("ReportExecutionLog", back_populates="report", cascade="all, delete-orphan")


class ReportExecutionLog(Base):
    """Log of report executions with performance metrics."""

    __tablename__ = "crm_report_execution_logs"

    id = Column(Integer, primary_key=True, index=True)
    report_id = Column(Integer, ForeignKey("crm_reports.id"), nullable=False, index=True)
    executed_by = Column(String, nullable=True)
    execution_time_ms = Column(Float, nullable=True)
    row_count = Column(Integer, nullable=True)
    success = Column(Boolean, nullable=False)
    error_message = Column(String, nullable=True)
    executed_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationship
    report = relationship("SavedReport", back_populates="execution_logs")
