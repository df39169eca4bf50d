# crm_reports/reporting/resolution.py
"""Per-execution field resolution table."""

from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional

from crm_reports.crm.models import RecordType
from crm_reports.query.schemas import FieldKind
from crm_reports.reporting.custom_fields import CustomFieldDefinition
from crm_reports.reporting.fields import FieldDefinition, default_sort_field, fields_for


class FieldResolution:
    """
    Flat, immutable key -> FieldDefinition table for one record type.

    Built once per execution from the static registry and the tenant's custom
    fields, so filtering and sorting look fields up instead of re-deriving
    where a value comes from.
    """

    def __init__(self, record_type: RecordType, fields: Mapping[str, FieldDefinition]):
        self.record_type = record_type
        self._fields = MappingProxyType(dict(fields))

    @classmethod
    def build(
        cls, record_type: RecordType, custom_fields: Iterable[CustomFieldDefinition] = ()
    ) -> "FieldResolution":
        table = {field.key: field for field in fields_for(record_type)}
        for custom_field in sorted(custom_fields, key=lambda cf: cf.sort_order):
            # Registry keys win; the cf: prefix keeps them from colliding anyway
            table.setdefault(custom_field.namespaced_key, custom_field.to_field_definition())
        return cls(record_type, table)

    def __contains__(self, key: str) -> bool:
        return key in self._fields

    def get(self, key: str) -> Optional[FieldDefinition]:
        return self._fields.get(key)

    def kind_of(self, key: str) -> FieldKind:
        field = self._fields.get(key)
        return field.kind if field is not None else FieldKind.TEXT

    def label_of(self, key: str) -> str:
        field = self._fields.get(key)
        return field.label if field is not None else key

    def is_pushable(self, key: str) -> bool:
        field = self._fields.get(key)
        return field is not None and field.is_pushable

    @property
    def default_sort_field(self) -> str:
        return default_sort_field(self.record_type)

    def fields(self) -> List[FieldDefinition]:
        return list(self._fields.values())
