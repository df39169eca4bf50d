# crm_reports/core/dependencies.py
"""Shared FastAPI dependencies"""

from typing import Annotated, Optional
from fastapi import Depends, Header
from sqlalchemy.orm import Session

from crm_reports.core.config import DEFAULT_ORG_ID, DEFAULT_USER_ID
from crm_reports.core.database import get_db
from crm_reports.reporting.schemas import TenantContext

# Core database dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_tenant_context(
    x_org_id: Annotated[Optional[str], Header()] = None,
    x_user_id: Annotated[Optional[str], Header()] = None,
) -> TenantContext:
    """Tenant of the request, from the X-Org-Id / X-User-Id headers"""
    return TenantContext(
        org_id=(x_org_id or "").strip() or DEFAULT_ORG_ID,
        user_id=(x_user_id or "").strip() or DEFAULT_USER_ID,
    )


TenantDep = Annotated[TenantContext, Depends(get_tenant_context)]
