"""
Dashboard read models and period deletion.

department_dashboard(db, department, year, week) -> dict
board_dashboard(db, year, month)                 -> dict
delete_week(db, year, week)                      -> int
"""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from kpiboard.core.errors import PeriodNotFoundError
from kpiboard.models.kpi import RecruitmentKpi, SalesKpi
from kpiboard.models.narrative import Narrative
from kpiboard.services.aggregation import (
    board_data,
    current_recruitment,
    current_sales,
    hit_ratios_for_month,
    list_targets,
    recruitment_averages,
    sales_averages,
    team_targets,
)
from kpiboard.services.narrative import latest_narrative
from kpiboard.services.periods import find_week, list_months, list_weeks, week_to_month

logger = logging.getLogger(__name__)

# Board KPI catalogue shown next to the measured values.
BOARD_KPI_DEFINITIONS = {
    "mathematical": {
        "weekly": [
            {"code": "TD-01", "name": "Sourcer Daily Verification Amount", "target": 20},
            {"code": "TD-02", "name": "Job Post Coverage", "target": 80},
            {"code": "TD-03", "name": "Recruiter Weekly New CV Upload", "target": 25},
        ],
        "monthly": [
            {"code": "CS-02", "name": "Technical Verification Rate", "target": 90},
            {"code": "CS-03", "name": "Champion Advertisement Rate", "target": 50},
            {"code": "CS-04", "name": "Candidate Follow-up Frequency", "target": 100},
            {"code": "IM-02", "name": "Prep Call Completion Rate", "target": 95},
            {"code": "IM-05", "name": "Feedback After Interview", "target": 80},
            {"code": "DL-HR", "name": "DL Hit Ratio", "target": 30},
        ],
    },
    "descriptive": [
        {"code": "DD-01", "name": "Profile Completion Rate"},
        {"code": "CS-01", "name": "Rejection Justification Timeliness"},
    ],
}


def _target_dict(t) -> dict:
    return {
        "id": t.id,
        "role": t.role,
        "kpi_name": t.kpi_name,
        "value": t.value,
        "period_unit": getattr(t.period_unit, "value", t.period_unit),
    }


def _narrative_dict(n: Narrative | None) -> dict | None:
    if n is None:
        return None
    return {"content": n.content, "created_at": n.created_at.isoformat() if n.created_at else None}


def department_dashboard(db: Session, department: str, year: int, week: int) -> dict:
    month = week_to_month(week)
    targets = list_targets(db)
    if department == "recruitment":
        current = current_recruitment(db, year, week)
        average = recruitment_averages(db)
    else:
        current = current_sales(db, year, week)
        average = sales_averages(db)

    payload = {
        "year": year,
        "week": week,
        "month": month,
        "current": current,
        "average": average,
        "targets": [_target_dict(t) for t in targets],
        "team_targets": team_targets(current, targets, department),
        "weeks": [{"year": w.year, "week": w.week} for w in list_weeks(db)],
        "narrative": _narrative_dict(latest_narrative(db, department, year, "week", week)),
    }
    if department == "recruitment":
        payload["hit_ratio"] = hit_ratios_for_month(db, year, month)
    return payload


def board_dashboard(db: Session, year: int, month: int) -> dict:
    return {
        "year": year,
        "month": month,
        "data": board_data(db, year, month),
        "kpi_definitions": BOARD_KPI_DEFINITIONS,
        "months": [{"year": y, "month": m} for y, m in list_months(db)],
        "narrative": _narrative_dict(latest_narrative(db, "board", year, "month", month)),
    }


def delete_week(db: Session, year: int, week: int) -> int:
    """
    Remove every recruitment and sales row for (year, week) plus the
    narratives written for it. The period row itself stays.
    """
    period = find_week(db, year, week)
    if period is None:
        raise PeriodNotFoundError(year, week)

    removed = (
        db.query(RecruitmentKpi).filter(RecruitmentKpi.period_id == period.id).delete(synchronize_session=False)
        + db.query(SalesKpi).filter(SalesKpi.period_id == period.id).delete(synchronize_session=False)
    )
    db.query(Narrative).filter(
        Narrative.year == year,
        Narrative.period_unit == "week",
        Narrative.period_value == week,
    ).delete(synchronize_session=False)
    db.commit()
    logger.info("Deleted %d KPI rows for week %d/%d", removed, week, year)
    return removed
