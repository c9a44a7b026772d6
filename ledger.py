from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Union

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from errors import StoreFailure, ValidationError
from models import Expense, Income


logger = logging.getLogger(__name__)

DAY_NAMES = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)


class LedgerEntity(str, Enum):
    expense = "expense"
    income = "income"


_MODELS = {LedgerEntity.expense: Expense, LedgerEntity.income: Income}

_GROUP_KEYS = {
    LedgerEntity.expense: {"category", "payment_method"},
    LedgerEntity.income: {"source", "payment_method"},
}

_SORT_FIELDS = {"date", "amount_cents", "created_at"}

LedgerRecord = Union[Expense, Income]


@dataclass(frozen=True)
class LedgerTotals:
    total_cents: int
    count: int


@dataclass
class LedgerFilters:
    start: Optional[date] = None
    end: Optional[date] = None
    category: Optional[str] = None
    source: Optional[str] = None
    payment_method: Optional[str] = None
    min_amount_cents: Optional[int] = None
    max_amount_cents: Optional[int] = None
    query: Optional[str] = None
    is_recurring: Optional[bool] = None


def _key_value(value: object) -> object:
    return value.value if isinstance(value, Enum) else value


class LedgerQueries:
    """Owner-scoped aggregate reads over expense and income records."""

    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def _rows(self, stmt) -> list:
        try:
            return self.session.execute(stmt).all()
        except SQLAlchemyError as exc:
            logger.exception(f"ledger_query_failed: user_id={self.user_id}")
            raise StoreFailure("Ledger query failed") from exc

    def _scalars(self, stmt) -> list:
        try:
            return list(self.session.scalars(stmt).all())
        except SQLAlchemyError as exc:
            logger.exception(f"ledger_query_failed: user_id={self.user_id}")
            raise StoreFailure("Ledger query failed") from exc

    def _scoped(self, entity: LedgerEntity, start: Optional[date], end: Optional[date]):
        model = _MODELS[entity]
        conditions = [model.user_id == self.user_id]
        if start is not None:
            conditions.append(model.date >= start)
        if end is not None:
            conditions.append(model.date <= end)
        return model, conditions

    def _group_column(self, entity: LedgerEntity, key: str):
        if key not in _GROUP_KEYS[entity]:
            raise ValidationError(f"Cannot group {entity.value} records by {key!r}")
        return getattr(_MODELS[entity], key)

    def sum_and_count(
        self, entity: LedgerEntity, start: Optional[date], end: Optional[date]
    ) -> LedgerTotals:
        model, conditions = self._scoped(entity, start, end)
        stmt = select(
            func.coalesce(func.sum(model.amount_cents), 0).label("total"),
            func.count(model.id).label("row_count"),
        ).where(*conditions)
        row = self._rows(stmt)[0]
        return LedgerTotals(total_cents=int(row.total or 0), count=int(row.row_count or 0))

    def group_by(
        self,
        entity: LedgerEntity,
        start: Optional[date],
        end: Optional[date],
        key: str,
    ) -> list[dict[str, object]]:
        model, conditions = self._scoped(entity, start, end)
        column = self._group_column(entity, key)
        total = func.sum(model.amount_cents)
        stmt = (
            select(
                column.label("key"),
                total.label("total"),
                func.count(model.id).label("row_count"),
                func.avg(model.amount_cents).label("avg"),
            )
            .where(*conditions)
            .group_by(column)
            .order_by(total.desc(), column)
        )
        return [
            {
                "key": _key_value(row.key),
                "total_cents": int(row.total or 0),
                "count": int(row.row_count),
                "avg_cents": float(row.avg or 0),
            }
            for row in self._rows(stmt)
        ]

    def group_by_time_bucket(
        self,
        entity: LedgerEntity,
        since: date,
        until: Optional[date] = None,
        bucket: str = "month",
    ) -> list[dict[str, object]]:
        if bucket != "month":
            raise ValidationError(f"Unsupported time bucket: {bucket!r}")
        model, conditions = self._scoped(entity, since, until)
        year = func.strftime("%Y", model.date).label("year")
        month = func.strftime("%m", model.date).label("month")
        stmt = (
            select(
                year,
                month,
                func.sum(model.amount_cents).label("total"),
                func.count(model.id).label("row_count"),
            )
            .where(*conditions)
            .group_by("year", "month")
            .order_by("year", "month")
        )
        return [
            {
                "year": int(row.year),
                "month": int(row.month),
                "total_cents": int(row.total or 0),
                "count": int(row.row_count),
            }
            for row in self._rows(stmt)
        ]

    def group_by_key_and_month(
        self,
        entity: LedgerEntity,
        since: date,
        key: str,
        until: Optional[date] = None,
    ) -> list[dict[str, object]]:
        model, conditions = self._scoped(entity, since, until)
        column = self._group_column(entity, key)
        year = func.strftime("%Y", model.date).label("year")
        month = func.strftime("%m", model.date).label("month")
        stmt = (
            select(
                column.label("key"),
                year,
                month,
                func.sum(model.amount_cents).label("total"),
                func.count(model.id).label("row_count"),
            )
            .where(*conditions)
            .group_by(column, "year", "month")
            .order_by("year", "month", column)
        )
        return [
            {
                "key": _key_value(row.key),
                "year": int(row.year),
                "month": int(row.month),
                "total_cents": int(row.total or 0),
                "count": int(row.row_count),
            }
            for row in self._rows(stmt)
        ]

    def group_by_weekday(
        self, entity: LedgerEntity, start: Optional[date], end: Optional[date]
    ) -> list[dict[str, object]]:
        model, conditions = self._scoped(entity, start, end)
        # %w: 0 = Sunday .. 6 = Saturday
        weekday = func.strftime("%w", model.date).label("weekday")
        stmt = (
            select(
                weekday,
                func.sum(model.amount_cents).label("total"),
                func.count(model.id).label("row_count"),
                func.avg(model.amount_cents).label("avg"),
            )
            .where(*conditions)
            .group_by("weekday")
            .order_by("weekday")
        )
        out = []
        for row in self._rows(stmt):
            number = int(row.weekday)
            out.append(
                {
                    "day_number": number,
                    "day_name": DAY_NAMES[number],
                    "total_cents": int(row.total or 0),
                    "count": int(row.row_count),
                    "avg_cents": float(row.avg or 0),
                }
            )
        return out

    def group_by_day_of_month(
        self, entity: LedgerEntity, start: date, end: date
    ) -> list[dict[str, object]]:
        model, conditions = self._scoped(entity, start, end)
        day = func.strftime("%d", model.date).label("day")
        stmt = (
            select(
                day,
                func.sum(model.amount_cents).label("total"),
                func.count(model.id).label("row_count"),
            )
            .where(*conditions)
            .group_by("day")
            .order_by("day")
        )
        return [
            {
                "day": int(row.day),
                "total_cents": int(row.total or 0),
                "count": int(row.row_count),
            }
            for row in self._rows(stmt)
        ]

    def amount_stats_by_key(
        self,
        entity: LedgerEntity,
        start: Optional[date],
        end: Optional[date],
        key: str,
    ) -> list[dict[str, object]]:
        model, conditions = self._scoped(entity, start, end)
        column = self._group_column(entity, key)
        avg = func.avg(model.amount_cents)
        stmt = (
            select(
                column.label("key"),
                avg.label("avg"),
                func.min(model.amount_cents).label("min"),
                func.max(model.amount_cents).label("max"),
                func.count(model.id).label("row_count"),
            )
            .where(*conditions)
            .group_by(column)
            .order_by(avg.desc(), column)
        )
        return [
            {
                "key": _key_value(row.key),
                "avg_cents": float(row.avg or 0),
                "min_cents": int(row.min),
                "max_cents": int(row.max),
                "count": int(row.row_count),
            }
            for row in self._rows(stmt)
        ]

    def _filtered(self, entity: LedgerEntity, filters: LedgerFilters):
        model, conditions = self._scoped(entity, filters.start, filters.end)
        if filters.category is not None:
            if entity != LedgerEntity.expense:
                raise ValidationError("Only expenses have a category")
            conditions.append(model.category == filters.category)
        if filters.source is not None:
            if entity != LedgerEntity.income:
                raise ValidationError("Only income records have a source")
            conditions.append(model.source == filters.source)
        if filters.payment_method is not None:
            conditions.append(model.payment_method == filters.payment_method)
        if filters.min_amount_cents is not None:
            conditions.append(model.amount_cents >= filters.min_amount_cents)
        if filters.max_amount_cents is not None:
            conditions.append(model.amount_cents <= filters.max_amount_cents)
        if filters.is_recurring is not None:
            conditions.append(model.is_recurring.is_(filters.is_recurring))
        if filters.query:
            like = f"%{filters.query.strip()}%"
            conditions.append(
                or_(model.description.ilike(like), model.notes.ilike(like))
            )
        return model, conditions

    def find(
        self,
        entity: LedgerEntity,
        filters: Optional[LedgerFilters] = None,
        *,
        sort_by: str = "date",
        descending: bool = True,
        limit: int = 20,
        offset: int = 0,
    ) -> list[LedgerRecord]:
        if sort_by not in _SORT_FIELDS:
            raise ValidationError(f"Cannot sort by {sort_by!r}")
        model, conditions = self._filtered(entity, filters or LedgerFilters())
        column = getattr(model, sort_by)
        order = column.desc() if descending else column.asc()
        tiebreak = model.id.desc() if descending else model.id.asc()
        stmt = (
            select(model)
            .where(*conditions)
            .order_by(order, tiebreak)
            .limit(limit)
            .offset(offset)
        )
        return self._scalars(stmt)

    def count_matching(
        self, entity: LedgerEntity, filters: Optional[LedgerFilters] = None
    ) -> int:
        model, conditions = self._filtered(entity, filters or LedgerFilters())
        stmt = select(func.count(model.id)).where(*conditions)
        return int(self._rows(stmt)[0][0] or 0)
