"""API router for tenant custom field definitions."""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException
import logging

from crm_reports.core.dependencies import SessionDep, TenantDep
from crm_reports.crm.models import RecordType
from crm_reports.reporting.custom_fields import CustomFieldDAO
from crm_reports.reporting.schemas import CustomFieldCreate, CustomFieldRead

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/custom-fields", tags=["custom-fields"])


def get_custom_field_dao(db: SessionDep) -> CustomFieldDAO:
    return CustomFieldDAO(db)


@router.get("/", response_model=List[CustomFieldRead])
async def get_custom_fields(
    tenant: TenantDep,
    record_type: Optional[RecordType] = None,
    dao: CustomFieldDAO = Depends(get_custom_field_dao),
) -> List[CustomFieldRead]:
    """Custom fields of the tenant, optionally for one record type."""
    fields = dao.get_for_org(tenant.org_id, record_type.value if record_type else None)
    return [CustomFieldRead.model_validate(field) for field in fields]


@router.post("/", response_model=CustomFieldRead, status_code=201)
async def create_custom_field(
    field_data: CustomFieldCreate,
    tenant: TenantDep,
    dao: CustomFieldDAO = Depends(get_custom_field_dao),
) -> CustomFieldRead:
    if dao.exists(org_id=tenant.org_id, record_type=field_data.record_type.value, field_key=field_data.field_key):
        raise HTTPException(
            status_code=409,
            detail=f"Custom field '{field_data.field_key}' already exists for {field_data.record_type.value}",
        )

    field = dao.create(
        org_id=tenant.org_id,
        record_type=field_data.record_type.value,
        field_key=field_data.field_key,
        field_label=field_data.field_label,
        field_type=field_data.field_type.value,
        options=field_data.options,
        is_required=field_data.is_required,
        sort_order=field_data.sort_order,
    )
    logger.info(f"Created custom field {field.field_key} on {field.record_type} for org {tenant.org_id}")
    return CustomFieldRead.model_validate(field)


@router.delete("/{field_id}")
async def delete_custom_field(
    field_id: int,
    tenant: TenantDep,
    dao: CustomFieldDAO = Depends(get_custom_field_dao),
) -> dict:
    """Delete a definition; values already stored in record metadata are left alone."""
    field = dao.get_by_id(field_id)
    if not field or field.org_id != tenant.org_id:
        raise HTTPException(status_code=404, detail="Custom field not found")
    dao.delete(field_id)
    return {"message": "Custom field deleted successfully"}
