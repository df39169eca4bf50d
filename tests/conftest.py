"""
Test configuration and shared fixtures for the CRM reports test suite.
Provides database setup, sample CRM records, store doubles and an API client.
"""

import os

# Point the app at a private in-memory database before anything imports it
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SEED_SAMPLE_DATA"] = "false"

import pytest
from datetime import date, datetime
from typing import Any, Dict, List

from fastapi.testclient import TestClient

from crm_reports.app import create_app
from crm_reports.core.database import SessionLocal, create_all_tables, drop_all_tables, get_db
from crm_reports.crm.models import Activity, Company, Contact, CustomField, Deal, RecordType
from crm_reports.query.sqlalchemy_store import SqlAlchemyRecordStore
from crm_reports.query.store import StoreError
from crm_reports.reporting.custom_fields import CustomFieldDefinition
from crm_reports.reporting.schemas import TenantContext
from crm_reports.query.schemas import FieldKind

ORG_ID = "org-1"
OTHER_ORG_ID = "org-2"


# ===== DATABASE SETUP =====


@pytest.fixture(scope="function")
def db_session():
    """Fresh tables per test on the shared in-memory engine"""
    create_all_tables()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        drop_all_tables()


@pytest.fixture
def tenant() -> TenantContext:
    return TenantContext(org_id=ORG_ID, user_id="tester")


@pytest.fixture
def api_headers() -> Dict[str, str]:
    return {"X-Org-Id": ORG_ID, "X-User-Id": "tester"}


@pytest.fixture
def client(db_session):
    """FastAPI test client bound to the test session"""
    app = create_app()

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ===== SAMPLE CRM DATA =====


@pytest.fixture
def crm_data(db_session) -> Dict[str, Any]:
    """Companies, contacts, deals and activities for ORG_ID plus a little noise in OTHER_ORG_ID"""
    org = {"org_id": ORG_ID, "user_id": "tester"}

    companies = [
        Company(id="co-1", name="Acme", industry="Manufacturing", size="large", employees=850,
                annual_revenue=12500000, created_at=datetime(2024, 1, 1, 9, 0), metadata_={}, **org),
        Company(id="co-2", name="Zeta", industry="Software", size="medium", employees=120,
                created_at=datetime(2024, 1, 2, 9, 0), metadata_={}, **org),
        Company(id="co-3", name="Initech", size="small",
                created_at=datetime(2024, 1, 3, 9, 0), metadata_={}, **org),
        Company(id="co-x", name="Foreign Corp", org_id=OTHER_ORG_ID, created_at=datetime(2024, 1, 4), metadata_={}),
    ]
    db_session.add_all(companies)
    db_session.flush()

    contacts = [
        Contact(id="ct-1", first_name="Alice", last_name="Nguyen", email="alice@acme.com", status="active",
                company_id="co-1", tags=["vip"], metadata_={"nps_score": 9, "linkedin": "in/alice"},
                created_at=datetime(2024, 2, 1, 9, 0), **org),
        Contact(id="ct-2", first_name="Bob", last_name="Smith", email="bob@zeta.io", status="active",
                company_id="co-2", tags=[], metadata_={"nps_score": 4},
                created_at=datetime(2024, 2, 2, 9, 0), **org),
        Contact(id="ct-3", first_name="Carol", last_name="Diaz", email="carol@example.com", status="lead",
                tags=[], metadata_={}, created_at=datetime(2024, 2, 3, 9, 0), **org),
        Contact(id="ct-x", first_name="Xavier", last_name="Other", status="active", company_id="co-1",
                org_id=OTHER_ORG_ID, tags=[], metadata_={}, created_at=datetime(2024, 2, 4)),
    ]
    db_session.add_all(contacts)
    db_session.flush()

    deals = [
        Deal(id="dl-1", title="Acme renewal", value=48000, stage="negotiation", probability=70,
             expected_close_date=date(2024, 9, 30), contact_id="ct-1", company_id="co-1",
             created_at=datetime(2024, 3, 1, 9, 0), metadata_={"region": "NA"}, **org),
        Deal(id="dl-2", title="Zeta platform", value=125000, stage="proposal", probability=40,
             expected_close_date=date(2024, 11, 15), contact_id="ct-2", company_id="co-2",
             created_at=datetime(2024, 3, 2, 9, 0), metadata_={"region": "EMEA"}, **org),
        Deal(id="dl-3", title="Initech pilot", value=9500, currency="EUR", stage="won", probability=100,
             company_id="co-3", closed_at=datetime(2024, 3, 1, 14, 30),
             created_at=datetime(2024, 3, 3, 9, 0), metadata_={}, **org),
        Deal(id="dl-4", title="Acme expansion", value=20000, stage="lead", contact_id="ct-1", company_id="co-1",
             created_at=datetime(2024, 3, 4, 9, 0), metadata_={}, **org),
    ]
    activities = [
        Activity(id="ac-1", type="call", subject="Discovery call", contact_id="ct-1", company_id="co-1",
                 scheduled_at=datetime(2024, 6, 3, 15, 0), completed_at=datetime(2024, 6, 3, 15, 40),
                 created_at=datetime(2024, 6, 1, 9, 0), metadata_={}, **org),
        Activity(id="ac-2", type="meeting", subject="Architecture review", contact_id="ct-2", company_id="co-2",
                 scheduled_at=datetime(2024, 7, 10, 9, 30), created_at=datetime(2024, 6, 2, 9, 0),
                 metadata_={}, **org),
        Activity(id="ac-3", type="note", subject="Left voicemail", contact_id="ct-3",
                 created_at=datetime(2024, 6, 3, 9, 0), metadata_={}, **org),
    ]
    custom_fields = [
        CustomField(org_id=ORG_ID, record_type="contact", field_key="nps_score", field_label="NPS Score",
                    field_type="number", sort_order=1),
        CustomField(org_id=ORG_ID, record_type="contact", field_key="linkedin", field_label="LinkedIn",
                    field_type="text", sort_order=2),
        CustomField(org_id=ORG_ID, record_type="deal", field_key="region", field_label="Region",
                    field_type="select", options=["NA", "EMEA", "APAC"], sort_order=1),
    ]
    db_session.add_all(deals + activities + custom_fields)
    db_session.commit()

    return {"companies": companies, "contacts": contacts, "deals": deals, "activities": activities}


# ===== STORE AND CATALOG DOUBLES =====


class CountingRecordStore(SqlAlchemyRecordStore):
    """Real store that records every round trip."""

    def __init__(self, db_session):
        super().__init__(db_session)
        self.selects: List[Any] = []
        self.fetches: List[Dict[str, Any]] = []

    async def select(self, query):
        self.selects.append(query)
        return await super().select(query)

    async def fetch_by_ids(self, record_type, org_id, ids, columns, match_column="id"):
        ids = list(ids)
        self.fetches.append({"record_type": record_type, "ids": ids, "match_column": match_column})
        return await super().fetch_by_ids(record_type, org_id, ids, columns, match_column=match_column)


class InMemoryRecordStore:
    """Store double over plain dict rows; predicates are not supported."""

    def __init__(self, tables: Dict[RecordType, List[Dict[str, Any]]], failing_targets=()):
        self.tables = tables
        self.failing_targets = set(failing_targets)
        self.fetches: List[RecordType] = []

    async def select(self, query):
        return [dict(row) for row in self.tables.get(query.record_type, [])]

    async def fetch_by_ids(self, record_type, org_id, ids, columns, match_column="id"):
        self.fetches.append(record_type)
        if record_type in self.failing_targets:
            raise StoreError(f"{record_type.value} lookup unavailable")
        wanted = set(ids)
        return [
            {column: row.get(column) for column in columns}
            for row in self.tables.get(record_type, [])
            if row.get(match_column) in wanted
        ]


class FailingRecordStore:
    async def select(self, query):
        raise StoreError("connection refused")

    async def fetch_by_ids(self, record_type, org_id, ids, columns, match_column="id"):
        raise StoreError("connection refused")


class StaticCatalog:
    def __init__(self, fields_by_type: Dict[RecordType, List[CustomFieldDefinition]] = None, error=None):
        self.fields_by_type = fields_by_type or {}
        self.error = error
        self.calls = 0

    async def fields_for(self, record_type, tenant):
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.fields_by_type.get(record_type, []))


@pytest.fixture
def counting_store(db_session) -> CountingRecordStore:
    return CountingRecordStore(db_session)


@pytest.fixture
def contact_custom_fields() -> List[CustomFieldDefinition]:
    return [
        CustomFieldDefinition(key="nps_score", label="NPS Score", kind=FieldKind.NUMBER, sort_order=1),
        CustomFieldDefinition(key="linkedin", label="LinkedIn", kind=FieldKind.TEXT, sort_order=2),
    ]


@pytest.fixture
def memory_store_cls():
    return InMemoryRecordStore


@pytest.fixture
def failing_store() -> FailingRecordStore:
    return FailingRecordStore()


@pytest.fixture
def catalog_cls():
    return StaticCatalog
