"""
Dashboard router.

GET /api/recruitment?year&week
GET /api/sales?year&week
GET /api/board?year&month

Omitted period parameters default to the current ISO week / calendar month.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from kpiboard.db.base import get_db
from kpiboard.services.dashboard import board_dashboard, department_dashboard
from kpiboard.services.periods import current_month, current_period

router = APIRouter(prefix="/api", tags=["dashboard"])


def _week_params(year: Optional[int], week: Optional[int]) -> tuple[int, int]:
    default_year, default_week = current_period()
    return year or default_year, week or default_week


@router.get("/recruitment", summary="Recruitment dashboard for one week")
def recruitment(
    year: Optional[int] = Query(default=None),
    week: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
):
    year, week = _week_params(year, week)
    return department_dashboard(db, "recruitment", year, week)


@router.get("/sales", summary="Sales dashboard for one week")
def sales(
    year: Optional[int] = Query(default=None),
    week: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
):
    year, week = _week_params(year, week)
    return department_dashboard(db, "sales", year, week)


@router.get("/board", summary="Board KPI dashboard for one month")
def board(
    year: Optional[int] = Query(default=None),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    db: Session = Depends(get_db),
):
    default_year, default_month = current_month()
    return board_dashboard(db, year or default_year, month or default_month)
