# crm_reports/reporting/enrichment.py
"""Row enrichment: join, computed and custom field values merged onto primary rows."""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Sequence, Set, Tuple, Union

from crm_reports.crm.models import RecordType
from crm_reports.query.store import RecordStore, StoreError
from crm_reports.reporting.custom_fields import namespaced

logger = logging.getLogger(__name__)

# Column holding the custom field blob on every CRM table
METADATA_KEY = "metadata"

EMPTY_LOOKUP: Mapping[Any, Any] = MappingProxyType({})


def contact_display_name(record: Dict[str, Any]) -> str:
    return f"{record.get('first_name') or ''} {record.get('last_name') or ''}".strip()


def company_display_name(record: Dict[str, Any]) -> str:
    return record.get("name") or ""


@dataclass(frozen=True)
class LookupJoin:
    """A name-like value owned by the record a foreign key on the row points to."""

    field_key: str
    target: RecordType
    foreign_key: str
    columns: Tuple[str, ...]
    display: Callable[[Dict[str, Any]], str]
    match_column: str = "id"
    default: Any = ""

    def referenced_ids(self, rows: Sequence[Dict[str, Any]]) -> Set[Any]:
        return {row[self.foreign_key] for row in rows if row.get(self.foreign_key)}

    def build_lookup(self, records: List[Dict[str, Any]]) -> Mapping[Any, Any]:
        return MappingProxyType({record["id"]: self.display(record) for record in records})

    def value_for(self, row: Dict[str, Any], lookup: Mapping[Any, Any]) -> Any:
        foreign_id = row.get(self.foreign_key)
        if not foreign_id:
            return self.default
        return lookup.get(foreign_id, self.default)


@dataclass(frozen=True)
class CountJoin:
    """Number of related records pointing back at the row."""

    field_key: str
    target: RecordType
    match_column: str
    default: Any = 0

    @property
    def columns(self) -> Tuple[str, ...]:
        return ("id", self.match_column)

    def referenced_ids(self, rows: Sequence[Dict[str, Any]]) -> Set[Any]:
        return {row["id"] for row in rows if row.get("id")}

    def build_lookup(self, records: List[Dict[str, Any]]) -> Mapping[Any, Any]:
        return MappingProxyType(dict(Counter(record[self.match_column] for record in records)))

    def value_for(self, row: Dict[str, Any], lookup: Mapping[Any, Any]) -> Any:
        return lookup.get(row.get("id"), self.default)


JoinRelation = Union[LookupJoin, CountJoin]

_COMPANY_NAME = LookupJoin(
    field_key="company_name",
    target=RecordType.COMPANY,
    foreign_key="company_id",
    columns=("id", "name"),
    display=company_display_name,
)
_CONTACT_NAME = LookupJoin(
    field_key="contact_name",
    target=RecordType.CONTACT,
    foreign_key="contact_id",
    columns=("id", "first_name", "last_name"),
    display=contact_display_name,
)

# One entry per relation; each relation costs exactly one batch fetch
JOIN_PLANS: Dict[RecordType, Tuple[JoinRelation, ...]] = {
    RecordType.CONTACT: (_COMPANY_NAME,),
    RecordType.COMPANY: (
        CountJoin(field_key="contact_count", target=RecordType.CONTACT, match_column="company_id"),
        CountJoin(field_key="deal_count", target=RecordType.DEAL, match_column="company_id"),
    ),
    RecordType.DEAL: (_CONTACT_NAME, _COMPANY_NAME),
    RecordType.ACTIVITY: (_CONTACT_NAME, _COMPANY_NAME),
}


def merge_row(
    row: Dict[str, Any],
    plan: Sequence[JoinRelation],
    lookups: Mapping[str, Mapping[Any, Any]],
) -> Dict[str, Any]:
    """Build the enriched copy of one primary row; the primary row is left untouched."""
    enriched = dict(row)
    for relation in plan:
        enriched[relation.field_key] = relation.value_for(row, lookups.get(relation.field_key, EMPTY_LOOKUP))

    metadata = row.get(METADATA_KEY)
    if isinstance(metadata, dict):
        for key, value in metadata.items():
            enriched[namespaced(key)] = value
    return enriched


class RowEnricher:
    """Resolves the join plan of a record type with one batch fetch per relation."""

    def __init__(self, store: RecordStore, join_plans: Mapping[RecordType, Sequence[JoinRelation]] = None):
        self.store = store
        self.join_plans = join_plans if join_plans is not None else JOIN_PLANS

    async def enrich(
        self, record_type: RecordType, rows: Sequence[Dict[str, Any]], org_id: str
    ) -> List[Dict[str, Any]]:
        plan = tuple(self.join_plans.get(record_type, ()))
        # Relations are independent; fetch them together and merge once all are in
        loaded = await asyncio.gather(*(self._load_lookup(relation, rows, org_id) for relation in plan))
        lookups = MappingProxyType({relation.field_key: lookup for relation, lookup in zip(plan, loaded)})
        return [merge_row(row, plan, lookups) for row in rows]

    async def _load_lookup(
        self, relation: JoinRelation, rows: Sequence[Dict[str, Any]], org_id: str
    ) -> Mapping[Any, Any]:
        ids = relation.referenced_ids(rows)
        if not ids:
            return EMPTY_LOOKUP
        try:
            records = await self.store.fetch_by_ids(
                relation.target,
                org_id,
                sorted(ids),
                relation.columns,
                match_column=relation.match_column,
            )
        except StoreError as e:
            logger.warning(f"Join {relation.field_key} failed, using defaults: {e}")
            return EMPTY_LOOKUP
        return relation.build_lookup(records)
