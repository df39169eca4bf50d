# crm_reports/query/sqlalchemy_store.py
"""SQLAlchemy implementation of the RecordStore contract."""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Sequence

from sqlalchemy import Date, DateTime, JSON, String, and_, cast, false, func, or_, select, true
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crm_reports.crm.models import RECORD_MODELS, RecordType
from crm_reports.query.coercion import (
    day_bounds,
    is_date_only,
    is_midnight,
    to_naive_utc,
    to_number,
    to_text,
    to_timestamp,
)
from crm_reports.query.schemas import (
    FieldKind,
    NUMERIC_KINDS,
    TEXTUAL_KINDS,
    OrderBy,
    PredicateOp,
    SortDirection,
    StorePredicate,
    StoreQuery,
)
from crm_reports.query.store import StoreError

logger = logging.getLogger(__name__)


def _row_to_dict(mapping) -> Dict[str, Any]:
    row = {}
    for key, value in mapping.items():
        if isinstance(value, Decimal):
            value = float(value)
        elif isinstance(value, (datetime, date)):
            value = value.isoformat()
        row[key] = value
    return row


def _is_calendar_date(column) -> bool:
    return isinstance(column.type, Date) and not isinstance(column.type, DateTime)


def _compare(expression, op: PredicateOp, bound):
    if op == PredicateOp.EQ:
        return expression == bound
    if op == PredicateOp.NEQ:
        return expression != bound
    if op == PredicateOp.GT:
        return expression > bound
    if op == PredicateOp.GTE:
        return expression >= bound
    if op == PredicateOp.LT:
        return expression < bound
    if op == PredicateOp.LTE:
        return expression <= bound
    raise StoreError(f"Unsupported comparison: {op.value}")


class SqlAlchemyRecordStore:
    """Runs store queries against the CRM tables of a SQLAlchemy session."""

    def __init__(self, db_session: Session):
        self.db = db_session

    async def select(self, query: StoreQuery) -> List[Dict[str, Any]]:
        """Run the primary query scoped to the tenant."""
        try:
            table = RECORD_MODELS[query.record_type].__table__
            stmt = select(table).where(table.c.org_id == query.org_id)
            for predicate in query.predicates:
                stmt = stmt.where(self._condition(table, predicate))
            if query.order_by is not None:
                stmt = stmt.order_by(*self._ordering(table, query.order_by))
        except KeyError as e:
            raise StoreError(f"Unknown column or record type: {e}") from e
        return self._execute(stmt)

    async def fetch_by_ids(
        self,
        record_type: RecordType,
        org_id: str,
        ids: Iterable[Any],
        columns: Sequence[str],
        match_column: str = "id",
    ) -> List[Dict[str, Any]]:
        """Batch fetch related records with a single IN query."""
        id_list = list(ids)
        if not id_list:
            return []
        try:
            table = RECORD_MODELS[record_type].__table__
            stmt = select(*[table.c[name] for name in columns]).where(
                table.c.org_id == org_id,
                table.c[match_column].in_(id_list),
            )
        except KeyError as e:
            raise StoreError(f"Unknown column or record type: {e}") from e
        return self._execute(stmt)

    def _execute(self, stmt) -> List[Dict[str, Any]]:
        try:
            result = self.db.execute(stmt)
            return [_row_to_dict(mapping) for mapping in result.mappings().all()]
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Store query failed: {e}")
            raise StoreError(str(e)) from e

    # ===== PREDICATES =====

    def _condition(self, table, predicate: StorePredicate):
        column = table.c[predicate.column]
        op = predicate.op
        textual = predicate.kind in TEXTUAL_KINDS

        if op == PredicateOp.IS_NULL:
            if textual:
                return or_(column.is_(None), cast(column, String) == "")
            return column.is_(None)
        if op == PredicateOp.IS_NOT_NULL:
            if textual:
                return and_(column.isnot(None), cast(column, String) != "")
            return column.isnot(None)
        if op == PredicateOp.IS_TRUE:
            return column.is_(true())
        if op == PredicateOp.IS_FALSE:
            return column.is_(false())

        if textual or predicate.kind == FieldKind.BOOLEAN:
            return self._text_condition(column, op, predicate.value)
        if predicate.kind in NUMERIC_KINDS:
            return self._number_condition(column, op, predicate.value)
        if predicate.kind == FieldKind.DATE:
            return self._date_condition(column, op, predicate.value)
        raise StoreError(f"Unsupported predicate {op.value} for kind {predicate.kind.value}")

    def _text_condition(self, column, op: PredicateOp, value):
        expression = cast(column, String) if isinstance(column.type, JSON) else column
        needle = to_text(value)
        if op == PredicateOp.CONTAINS:
            return expression.icontains(needle, autoescape=True)
        if op == PredicateOp.STARTS_WITH:
            return expression.istartswith(needle, autoescape=True)
        if op == PredicateOp.EQ:
            return func.lower(expression) == needle.lower()
        if op == PredicateOp.NEQ:
            return or_(column.is_(None), func.lower(expression) != needle.lower())
        raise StoreError(f"Unsupported text predicate: {op.value}")

    def _number_condition(self, column, op: PredicateOp, value):
        target = to_number(value)
        if target is None:
            return false()
        if op == PredicateOp.NEQ:
            return or_(column.is_(None), column != target)
        return _compare(column, op, target)

    def _date_condition(self, column, op: PredicateOp, value):
        moment = to_timestamp(value)
        if moment is None:
            return false()
        whole_day = is_date_only(value)

        if _is_calendar_date(column):
            day = moment.date()
            if op == PredicateOp.EQ:
                return column == day if whole_day or is_midnight(moment) else false()
            if op == PredicateOp.LT:
                # a calendar date sits at midnight, so it precedes any later time that day
                return column < day if is_midnight(moment) else column <= day
            if op == PredicateOp.GT:
                return column > day
            return _compare(column, op, day)

        if op == PredicateOp.EQ and whole_day:
            start, end = day_bounds(moment)
            return and_(column >= to_naive_utc(start), column < to_naive_utc(end))
        return _compare(column, op, to_naive_utc(moment))

    # ===== ORDERING =====

    def _ordering(self, table, order_by: OrderBy) -> list:
        column = table.c[order_by.column]
        expression = column
        if order_by.kind in TEXTUAL_KINDS and not isinstance(column.type, JSON):
            # SQLite lower() folds ASCII only, so non-ASCII text may order differently from sort_rows
            expression = func.lower(column)
        expression = expression.asc() if order_by.direction == SortDirection.ASC else expression.desc()
        return [expression.nulls_last(), table.c.id.asc()]
