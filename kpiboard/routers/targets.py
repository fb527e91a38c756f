"""
Targets router.

GET  /api/targets   list every target row, newest first
POST /api/targets   append a target row (admin header required)
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from kpiboard.core.security import require_admin
from kpiboard.db.base import get_db
from kpiboard.models.target import Target
from kpiboard.schemas.targets import TargetCreate, TargetOut
from kpiboard.services.aggregation import add_target, list_targets

router = APIRouter(prefix="/api/targets", tags=["targets"])


def _ev(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def _to_out(t: Target) -> TargetOut:
    return TargetOut(
        id=t.id,
        role=t.role,
        kpi_name=t.kpi_name,
        value=t.value,
        period_unit=_ev(t.period_unit),
    )


@router.get("", response_model=list[TargetOut], summary="List targets")
def get_targets(db: Session = Depends(get_db)):
    return [_to_out(t) for t in list_targets(db)]


@router.post(
    "",
    response_model=TargetOut,
    status_code=status.HTTP_201_CREATED,
    summary="Append a target",
    dependencies=[Depends(require_admin)],
)
def create_target(payload: TargetCreate, db: Session = Depends(get_db)):
    """
    Targets are append-only: the new row supersedes earlier rows for the
    same KPI without modifying them.
    """
    return _to_out(add_target(db, payload.role, payload.kpi_name, payload.value, payload.period_unit))
