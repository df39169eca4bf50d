# crm_reports/crm/models.py
"""CRM record models queried by the reporting engine."""

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    Date,
    Float,
    ForeignKey,
    JSON,
    UniqueConstraint,
)

from crm_reports.core.database import Base


class RecordType(str, Enum):
    """Reportable CRM record categories."""

    CONTACT = "contact"
    COMPANY = "company"
    DEAL = "deal"
    ACTIVITY = "activity"


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp; every DateTime column stores UTC without an offset."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class CrmRecordMixin:
    """Columns shared by every CRM record table."""

    id = Column(String(36), primary_key=True, default=new_id)
    org_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=True)
    # Custom field values keyed by field_key
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Company(CrmRecordMixin, Base):
    __tablename__ = "crm_companies"

    name = Column(String, nullable=False)
    domain = Column(String, nullable=True)
    industry = Column(String, nullable=True)
    size = Column(String, nullable=True)  # startup | small | medium | large | enterprise
    website = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    address = Column(Text, nullable=True)
    annual_revenue = Column(Float, nullable=True)
    employees = Column(Integer, nullable=True)
    sector = Column(String, nullable=True)
    account_owner = Column(String, nullable=True)


class Contact(CrmRecordMixin, Base):
    __tablename__ = "crm_contacts"

    first_name = Column(String, nullable=False, default="")
    last_name = Column(String, nullable=False, default="")
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    title = Column(String, nullable=True)
    status = Column(String, nullable=False, default="lead")
    source = Column(String, nullable=False, default="manual")
    company_id = Column(String(36), ForeignKey("crm_companies.id"), nullable=True, index=True)
    tags = Column(JSON, nullable=False, default=list)


class Deal(CrmRecordMixin, Base):
    __tablename__ = "crm_deals"

    title = Column(String, nullable=False)
    value = Column(Float, nullable=True)
    currency = Column(String(3), nullable=False, default="USD")
    stage = Column(String, nullable=False, default="lead")
    probability = Column(Integer, nullable=True)
    expected_close_date = Column(Date, nullable=True)
    contact_id = Column(String(36), ForeignKey("crm_contacts.id"), nullable=True, index=True)
    company_id = Column(String(36), ForeignKey("crm_companies.id"), nullable=True, index=True)
    close_reason = Column(Text, nullable=True)
    lost_to = Column(String, nullable=True)
    closed_at = Column(DateTime, nullable=True)


class Activity(CrmRecordMixin, Base):
    __tablename__ = "crm_activities"

    type = Column(String, nullable=False)  # call | email | meeting | note | task
    subject = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    contact_id = Column(String(36), ForeignKey("crm_contacts.id"), nullable=True, index=True)
    company_id = Column(String(36), ForeignKey("crm_companies.id"), nullable=True, index=True)
    scheduled_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)


class CustomField(Base):
    """Tenant-defined field stored in a record's metadata blob."""

    __tablename__ = "crm_custom_fields"
    __table_args__ = (UniqueConstraint("org_id", "record_type", "field_key", name="uq_custom_field_key"),)

    id = Column(Integer, primary_key=True, index=True)
    org_id = Column(String, nullable=False, index=True)
    record_type = Column(String, nullable=False)
    field_key = Column(String, nullable=False)
    field_label = Column(String, nullable=False)
    field_type = Column(String, nullable=False, default="text")  # text | number | date | boolean | select
    options = Column(JSON, nullable=True)
    is_required = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)


RECORD_MODELS = {
    RecordType.CONTACT: Contact,
    RecordType.COMPANY: Company,
    RecordType.DEAL: Deal,
    RecordType.ACTIVITY: Activity,
}
