"""
Period registry: (year, week) rows and the calendar helpers around them.

Public API
----------
iso_week_number(day)                -> int
current_period(today)               -> (year, week)
current_month(today)                -> (year, month)
week_to_month(week)                 -> int
resolve_or_create_week(db, y, w)    -> int   (period id)
find_week(db, y, w)                 -> WeekPeriod | None
list_weeks(db, limit)               -> list[WeekPeriod]
list_months(db, limit)              -> list[(year, month)]
"""
from __future__ import annotations

import math
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import select, union
from sqlalchemy.orm import Session

from kpiboard.db.upsert import dialect_insert
from kpiboard.models.board import BoardKpiMeasurement, BoardKpiNote, HitRatio
from kpiboard.models.period import WeekPeriod

# Average number of weeks per month used to bucket a week into a month.
WEEKS_PER_MONTH = 4.33


def _today() -> date:
    return datetime.now(tz=timezone.utc).date()


def iso_week_number(day: date) -> int:
    """ISO-8601 week number: the week containing the Thursday of `day`'s week."""
    return day.isocalendar()[1]


def current_period(today: Optional[date] = None) -> tuple[int, int]:
    """Default (year, week) when a caller omits one: calendar year, ISO week."""
    target = today or _today()
    return target.year, iso_week_number(target)


def current_month(today: Optional[date] = None) -> tuple[int, int]:
    target = today or _today()
    return target.year, target.month


def week_to_month(week: int) -> int:
    """
    Approximate month for a week number: ceil(week / 4.33).

    Not calendar-accurate (week 52 maps to 13, week 44 to 11). Monthly board
    data is produced against this same mapping, so it is kept as is.
    """
    return math.ceil(week / WEEKS_PER_MONTH)


def resolve_or_create_week(db: Session, year: int, week: int) -> int:
    """Return the id of the (year, week) period, inserting it if absent."""
    stmt = dialect_insert(db, WeekPeriod).values(year=year, week=week)
    stmt = stmt.on_conflict_do_update(
        index_elements=["year", "week"],
        set_={"year": stmt.excluded.year},
    ).returning(WeekPeriod.id)
    return db.execute(stmt).scalar_one()


def find_week(db: Session, year: int, week: int) -> Optional[WeekPeriod]:
    return (
        db.query(WeekPeriod)
        .filter(WeekPeriod.year == year, WeekPeriod.week == week)
        .first()
    )


def list_weeks(db: Session, limit: int = 100) -> list[WeekPeriod]:
    return (
        db.query(WeekPeriod)
        .order_by(WeekPeriod.year.desc(), WeekPeriod.week.desc())
        .limit(limit)
        .all()
    )


def list_months(db: Session, limit: int = 100) -> list[tuple[int, int]]:
    """Distinct (year, month) pairs holding board or hit-ratio data, newest first."""
    months = union(
        select(BoardKpiMeasurement.year, BoardKpiMeasurement.month),
        select(BoardKpiNote.year, BoardKpiNote.month),
        select(HitRatio.year, HitRatio.month),
    ).subquery()
    rows = db.execute(
        select(months.c.year, months.c.month)
        .order_by(months.c.year.desc(), months.c.month.desc())
        .limit(limit)
    ).all()
    return [(year, month) for year, month in rows]
