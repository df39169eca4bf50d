# crm_reports/crm/sample_data.py
"""Sample CRM records for local development."""

import logging
from datetime import date, datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from crm_reports.core.config import DEFAULT_ORG_ID, DEFAULT_USER_ID
from crm_reports.crm.models import Activity, Company, Contact, CustomField, Deal

logger = logging.getLogger(__name__)


def create_sample_data(session: Session, org_id: str = DEFAULT_ORG_ID) -> bool:
    """Seed companies, contacts, deals, activities and custom fields for one org.

    Does nothing when the org already has companies. Returns True when data was created.
    """
    existing = session.execute(select(func.count()).select_from(Company).where(Company.org_id == org_id)).scalar()
    if existing:
        logger.info(f"Sample data already present for org {org_id}, skipping")
        return False

    owner = {"org_id": org_id, "user_id": DEFAULT_USER_ID}

    custom_fields = [
        CustomField(
            org_id=org_id, record_type="contact", field_key="linkedin_url", field_label="LinkedIn", field_type="text", sort_order=1
        ),
        CustomField(
            org_id=org_id, record_type="contact", field_key="nps_score", field_label="NPS Score", field_type="number", sort_order=2
        ),
        CustomField(
            org_id=org_id,
            record_type="deal",
            field_key="region",
            field_label="Region",
            field_type="select",
            options=["EMEA", "NA", "APAC"],
            sort_order=1,
        ),
        CustomField(
            org_id=org_id, record_type="company", field_key="renewal_date", field_label="Renewal Date", field_type="date", sort_order=1
        ),
    ]

    acme = Company(
        name="Acme Corp", domain="acme.com", industry="Manufacturing", size="large",
        annual_revenue=12500000, employees=850, account_owner="Dana", metadata_={"renewal_date": "2025-01-15"}, **owner,
    )
    globex = Company(
        name="Globex", domain="globex.io", industry="Software", size="medium",
        annual_revenue=4200000, employees=120, account_owner="Lee", metadata_={}, **owner,
    )
    initech = Company(name="Initech", industry="Consulting", size="small", employees=35, metadata_={}, **owner)
    session.add_all(custom_fields + [acme, globex, initech])
    session.flush()

    alice = Contact(
        first_name="Alice", last_name="Nguyen", email="alice@acme.com", title="VP Operations", status="active",
        source="referral", company_id=acme.id, tags=["vip"], metadata_={"nps_score": 9}, **owner,
    )
    bob = Contact(
        first_name="Bob", last_name="Smith", email="bob@globex.io", title="CTO", status="qualified",
        source="website", company_id=globex.id, tags=[], metadata_={"linkedin_url": "https://linkedin.com/in/bobsmith"}, **owner,
    )
    carol = Contact(
        first_name="Carol", last_name="Diaz", email="carol@example.com", status="lead", tags=[], metadata_={}, **owner,
    )
    session.add_all([alice, bob, carol])
    session.flush()

    deals = [
        Deal(
            title="Acme renewal", value=48000, stage="negotiation", probability=70, expected_close_date=date(2024, 9, 30),
            contact_id=alice.id, company_id=acme.id, metadata_={"region": "NA"}, **owner,
        ),
        Deal(
            title="Globex platform", value=125000, stage="proposal", probability=40, expected_close_date=date(2024, 11, 15),
            contact_id=bob.id, company_id=globex.id, metadata_={"region": "EMEA"}, **owner,
        ),
        Deal(
            title="Initech pilot", value=9500, currency="EUR", stage="won", probability=100,
            company_id=initech.id, closed_at=datetime(2024, 3, 1, 14, 30), close_reason="Budget approved", metadata_={}, **owner,
        ),
    ]
    activities = [
        Activity(
            type="call", subject="Discovery call", contact_id=alice.id, company_id=acme.id,
            scheduled_at=datetime(2024, 6, 3, 15, 0), completed_at=datetime(2024, 6, 3, 15, 40), metadata_={}, **owner,
        ),
        Activity(
            type="meeting", subject="Architecture review", contact_id=bob.id, company_id=globex.id,
            scheduled_at=datetime(2024, 7, 10, 9, 30), metadata_={}, **owner,
        ),
        Activity(type="note", subject="Left voicemail", contact_id=carol.id, metadata_={}, **owner),
    ]
    session.add_all(deals + activities)
    session.commit()

    logger.info(f"Created sample CRM data for org {org_id}")
    return True
