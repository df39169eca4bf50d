# crm_reports/query/store.py
"""Backing-store contract consumed by the reporting pipeline."""

from typing import Any, Dict, Iterable, List, Protocol, Sequence

from crm_reports.crm.models import RecordType
from crm_reports.query.schemas import StoreQuery


class StoreError(Exception):
    """Any failure of the backing store while fetching records."""


class RecordStore(Protocol):
    """Flat-record store: one typed select plus a batch fetch per related record type."""

    async def select(self, query: StoreQuery) -> List[Dict[str, Any]]:
        """Run the primary query and return flat records in the requested order."""
        ...

    async def fetch_by_ids(
        self,
        record_type: RecordType,
        org_id: str,
        ids: Iterable[Any],
        columns: Sequence[str],
        match_column: str = "id",
    ) -> List[Dict[str, Any]]:
        """Fetch every record whose match_column is one of ids, in a single round trip."""
        ...
