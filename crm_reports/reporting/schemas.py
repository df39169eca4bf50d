"""Pydantic schemas for the reporting module."""

import re
from typing import Optional, List, Dict, Any
from datetime import datetime
from pydantic import BaseModel, Field, field_validator, ConfigDict

from crm_reports.crm.models import RecordType
from crm_reports.query.schemas import FieldKind, SortDirection
from crm_reports.reporting.fields import DEFAULT_SORT_FIELD, FieldSource


class TenantContext(BaseModel):
    """Whose records a report runs against."""

    org_id: str
    user_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)


# ===== REPORT DEFINITION =====


class ReportFilter(BaseModel):
    """A filter predicate; field and operator are checked at normalization, not here."""

    field: str = ""
    operator: str = ""
    value: Any = ""

    model_config = ConfigDict(from_attributes=True)


class SortSpec(BaseModel):
    field: str = DEFAULT_SORT_FIELD
    direction: SortDirection = SortDirection.DESC

    model_config = ConfigDict(from_attributes=True)


def _clean_name(name: str) -> str:
    if not name or not name.strip():
        raise ValueError("Report name cannot be empty")
    if len(name.strip()) > 255:
        raise ValueError("Report name cannot exceed 255 characters")
    return name.strip()


def _clean_columns(columns: List[str]) -> List[str]:
    cleaned = [column.strip() for column in columns if column and column.strip()]
    if not cleaned:
        raise ValueError("At least one column must be selected")
    # Keep first occurrence order
    return list(dict.fromkeys(cleaned))


class ReportDefinition(BaseModel):
    """Everything needed to execute a report."""

    record_type: RecordType
    columns: List[str]
    filters: List[ReportFilter] = []
    sort: SortSpec = Field(default_factory=SortSpec)
    name: Optional[str] = None
    description: Optional[str] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("columns")
    @classmethod
    def validate_columns(cls, v: List[str]) -> List[str]:
        return _clean_columns(v)


# ===== SAVED REPORT SCHEMAS =====


class ReportBase(BaseModel):
    """Base schema for saved reports."""

    name: str
    description: Optional[str] = None
    record_type: RecordType
    columns: List[str]
    filters: List[ReportFilter] = []
    sort: SortSpec = Field(default_factory=SortSpec)

    model_config = ConfigDict(from_attributes=True, extra="forbid")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _clean_name(v)

    @field_validator("columns")
    @classmethod
    def validate_columns(cls, v: List[str]) -> List[str]:
        return _clean_columns(v)


class ReportCreate(ReportBase):
    """Create schema for reports."""

    created_by: Optional[str] = None


class ReportUpdate(BaseModel):
    """Update schema for reports - every field optional."""

    name: Optional[str] = None
    description: Optional[str] = None
    record_type: Optional[RecordType] = None
    columns: Optional[List[str]] = None
    filters: Optional[List[ReportFilter]] = None
    sort: Optional[SortSpec] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            return _clean_name(v)
        return v

    @field_validator("columns")
    @classmethod
    def validate_columns(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is not None:
            return _clean_columns(v)
        return v


class ReportRead(ReportBase):
    """Read schema for saved reports."""

    id: int
    org_id: str
    created_by: Optional[str] = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

    def to_definition(self) -> ReportDefinition:
        return ReportDefinition(
            record_type=self.record_type,
            columns=self.columns,
            filters=self.filters,
            sort=self.sort,
            name=self.name,
            description=self.description,
        )


class ReportSummary(BaseModel):
    """Report list entry with execution statistics."""

    id: int
    name: str
    description: Optional[str] = None
    record_type: RecordType
    column_count: int
    filter_count: int
    created_by: Optional[str] = None
    updated_at: datetime
    total_executions: int = 0
    last_executed: Optional[datetime] = None
    last_execution_success: Optional[bool] = None


# ===== EXECUTION SCHEMAS =====


class ColumnMeta(BaseModel):
    key: str
    label: str
    kind: FieldKind


class ReportRunResponse(BaseModel):
    """Rows of one execution plus the metadata needed to display them."""

    report_id: Optional[int] = None
    record_type: RecordType
    columns: List[ColumnMeta]
    rows: List[Dict[str, Any]]
    count: int
    execution_time_ms: float
    error: Optional[str] = None


class ExecutionLogRead(BaseModel):
    id: int
    report_id: int
    executed_by: Optional[str] = None
    execution_time_ms: Optional[float] = None
    row_count: Optional[int] = None
    success: bool
    error_message: Optional[str] = None
    executed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ExportRequest(BaseModel):
    """Viewer state applied to an export: a secondary sort and a row selection."""

    sort: Optional[SortSpec] = None
    selected_ids: Optional[List[str]] = None
    file_name: str = "report.xlsx"


# ===== FIELD CATALOG SCHEMAS =====


class OperatorRead(BaseModel):
    value: str
    label: str


class FieldRead(BaseModel):
    key: str
    label: str
    kind: FieldKind
    source: FieldSource
    options: List[str] = []
    default_visible: bool = False
    operators: List[OperatorRead] = []


# ===== CUSTOM FIELD SCHEMAS =====

FIELD_KEY_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")


class CustomFieldBase(BaseModel):
    record_type: RecordType
    field_key: str
    field_label: str
    field_type: FieldKind = FieldKind.TEXT
    options: List[str] = []
    is_required: bool = False
    sort_order: int = 0

    model_config = ConfigDict(from_attributes=True)

    @field_validator("options", mode="before")
    @classmethod
    def default_options(cls, v):
        return v or []


class CustomFieldCreate(CustomFieldBase):
    @field_validator("field_key")
    @classmethod
    def validate_field_key(cls, v: str) -> str:
        v = v.strip()
        if not FIELD_KEY_PATTERN.match(v):
            raise ValueError("Field key must start with a letter and contain only lowercase letters, digits and underscores")
        return v

    @field_validator("field_label")
    @classmethod
    def validate_field_label(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Field label cannot be empty")
        return v.strip()


class CustomFieldRead(CustomFieldBase):
    id: int
    org_id: str
    created_at: datetime
