"""
Narrative router.

POST /api/narrative/{department}   department in recruitment | sales | board
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from kpiboard.core.errors import NarrativeUnavailableError, UnknownDepartmentError
from kpiboard.db.base import get_db
from kpiboard.schemas.narrative import NarrativeRequest, NarrativeResponse
from kpiboard.services.llm import TextGenerator, get_text_client
from kpiboard.services.narrative import DEPARTMENTS, generate_narrative, period_unit_for
from kpiboard.services.periods import current_month, current_period

router = APIRouter(prefix="/api/narrative", tags=["narrative"])


@router.post("/{department}", response_model=NarrativeResponse, summary="Generate commentary")
def narrative(
    department: str,
    payload: Optional[NarrativeRequest] = None,
    db: Session = Depends(get_db),
    client: Optional[TextGenerator] = Depends(get_text_client),
):
    """
    Returns `available=false` instead of an error when no text-generation
    key is configured. A failed model call returns the canned summary with
    `source="fallback"`.
    """
    if department not in DEPARTMENTS:
        raise UnknownDepartmentError(department, list(DEPARTMENTS))
    payload = payload or NarrativeRequest()

    if department == "board":
        default_year, default_period = current_month()
        period = payload.month or default_period
    else:
        default_year, default_period = current_period()
        period = payload.week or default_period
    year = payload.year or default_year

    try:
        result = generate_narrative(db, client, department, year, period)
    except NarrativeUnavailableError as exc:
        return NarrativeResponse(
            available=False,
            department=department,
            year=year,
            period_unit=period_unit_for(department),
            period_value=period,
            message=exc.message,
        )
    return NarrativeResponse(
        available=True,
        department=result.department,
        year=result.year,
        period_unit=result.period_unit,
        period_value=result.period_value,
        content=result.content,
        source=result.source,
    )
