"""
Store access for the reporting engine.

Main Components:
- StoreQuery / StorePredicate / OrderBy: the typed primary fetch
- RecordStore: the backing-store contract
- SqlAlchemyRecordStore: the contract on top of the CRM tables
"""

from .schemas import (
    FieldKind,
    PredicateOp,
    SortDirection,
    StorePredicate,
    OrderBy,
    StoreQuery,
)
from .store import RecordStore, StoreError
from .sqlalchemy_store import SqlAlchemyRecordStore

__all__ = [
    "FieldKind",
    "PredicateOp",
    "SortDirection",
    "StorePredicate",
    "OrderBy",
    "StoreQuery",
    "RecordStore",
    "StoreError",
    "SqlAlchemyRecordStore",
]
