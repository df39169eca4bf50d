# crm_reports/reporting/custom_fields.py
"""Tenant-defined custom fields and the catalog that loads them for a report."""

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crm_reports.core.base_dao import BaseDAO
from crm_reports.crm.models import CustomField, RecordType
from crm_reports.query.schemas import FieldKind
from crm_reports.query.store import StoreError
from crm_reports.reporting.fields import FieldDefinition, FieldSource
from crm_reports.reporting.schemas import TenantContext

logger = logging.getLogger(__name__)

# Namespace keeping custom keys apart from native column keys
CUSTOM_FIELD_PREFIX = "cf:"


def namespaced(field_key: str) -> str:
    return f"{CUSTOM_FIELD_PREFIX}{field_key}"


def is_custom_key(key: str) -> bool:
    return key.startswith(CUSTOM_FIELD_PREFIX)


@dataclass(frozen=True)
class CustomFieldDefinition:
    """A custom field as seen by the reporting engine."""

    key: str
    label: str
    kind: FieldKind = FieldKind.TEXT
    options: Tuple[str, ...] = ()
    sort_order: int = 0
    is_required: bool = False

    @property
    def namespaced_key(self) -> str:
        return namespaced(self.key)

    def to_field_definition(self) -> FieldDefinition:
        return FieldDefinition(
            key=self.namespaced_key,
            label=self.label or self.key,
            kind=self.kind,
            source=FieldSource.CUSTOM,
            options=self.options,
        )

    @classmethod
    def from_model(cls, model: CustomField) -> "CustomFieldDefinition":
        try:
            kind = FieldKind(model.field_type)
        except ValueError:
            kind = FieldKind.TEXT
        return cls(
            key=model.field_key,
            label=model.field_label,
            kind=kind,
            options=tuple(model.options or ()),
            sort_order=model.sort_order or 0,
            is_required=bool(model.is_required),
        )


class CustomFieldCatalog(Protocol):
    """Supplies the custom fields of a record type for one tenant."""

    async def fields_for(self, record_type: RecordType, tenant: TenantContext) -> List[CustomFieldDefinition]:
        ...


class CustomFieldDAO(BaseDAO[CustomField]):
    """DAO for custom field definitions."""

    def __init__(self, db_session: Session):
        super().__init__(CustomField, db_session)

    def get_for_record_type(self, org_id: str, record_type: str) -> List[CustomField]:
        """Custom fields of one record type, in display order."""
        query = (
            select(self.model)
            .where(self.model.org_id == org_id, self.model.record_type == record_type)
            .order_by(self.model.sort_order.asc(), self.model.id.asc())
        )
        return list(self.db.execute(query).scalars().all())

    def get_for_org(self, org_id: str, record_type: Optional[str] = None) -> List[CustomField]:
        query = select(self.model).where(self.model.org_id == org_id)
        if record_type:
            query = query.where(self.model.record_type == record_type)
        query = query.order_by(self.model.record_type, self.model.sort_order, self.model.id)
        return list(self.db.execute(query).scalars().all())


class SqlCustomFieldCatalog:
    """Catalog backed by the crm_custom_fields table."""

    def __init__(self, custom_field_dao: CustomFieldDAO):
        self.custom_field_dao = custom_field_dao

    async def fields_for(self, record_type: RecordType, tenant: TenantContext) -> List[CustomFieldDefinition]:
        try:
            models = self.custom_field_dao.get_for_record_type(tenant.org_id, RecordType(record_type).value)
        except SQLAlchemyError as e:
            raise StoreError(f"Could not load custom fields: {e}") from e
        return [CustomFieldDefinition.from_model(model) for model in models]
