"""
Aggregation & target engine — read-side computations over stored facts.

Public API
----------
hit_ratio(placements, closed)                  -> int
current_recruitment(db, year, week)            -> list[dict]
current_sales(db, year, week)                  -> list[dict]
hit_ratios_for_month(db, year, month)          -> list[dict]
recruitment_averages(db)                       -> list[dict]
sales_averages(db)                             -> list[dict]
list_targets(db)                               -> list[Target]
add_target(db, role, kpi_name, value, unit)    -> Target
latest_target(targets, kpi_name, role)         -> Target | None
headcount(rows, roles)                         -> dict[str, int]
team_targets(rows, targets, department)        -> dict
board_data(db, year, month)                    -> dict
"""
from __future__ import annotations

from collections import defaultdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from kpiboard.models.board import BoardKpiMeasurement, BoardKpiNote, HitRatio
from kpiboard.models.kpi import RecruitmentKpi, SalesKpi
from kpiboard.models.person import Department, Person
from kpiboard.models.target import PeriodUnit, Target
from kpiboard.services.identity import Role
from kpiboard.services.periods import find_week

# Monthly targets shown in a weekly view are divided by this.
WEEKS_PER_MONTH_TARGET = 4

RECRUITMENT_ROLES = (Role.sourcer, Role.recruiter, Role.tac, Role.delivery_lead)
SALES_ROLES = (Role.sdr, Role.bdm, Role.head_of_technology)

# KPI name -> role whose headcount multiplies the per-person target.
# None means total headcount.
RECRUITMENT_TEAM_KPIS: dict[str, Optional[Role]] = {
    "weryfikacje": Role.sourcer,
    "rekomendacje": Role.sourcer,
    "cv_dodane": Role.recruiter,
    "placements": None,
}
SALES_TEAM_KPIS: dict[str, Optional[Role]] = {
    "leady": Role.sdr,
    "oferty": Role.bdm,
    "mrr": Role.head_of_technology,
}


def _round_half_up(value: Decimal | float, places: int = 0) -> Decimal:
    quantum = Decimal(1).scaleb(-places)
    return Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)


def hit_ratio(placements: int, closed: int) -> int:
    """placements / closed * 100, rounded half-up; 0 when nothing was closed."""
    if not closed:
        return 0
    return int(_round_half_up(Decimal(placements) * 100 / Decimal(closed)))


def _rate(total: float, days: float) -> float:
    if not days:
        return 0.0
    return float(_round_half_up(Decimal(str(total)) / Decimal(str(days)), 2))


# ---------------------------------------------------------------------------
# Current-period views
# ---------------------------------------------------------------------------

def current_recruitment(db: Session, year: int, week: int) -> list[dict]:
    period = find_week(db, year, week)
    if period is None:
        return []
    rows = (
        db.query(RecruitmentKpi, Person)
        .join(Person, RecruitmentKpi.person_id == Person.id)
        .filter(RecruitmentKpi.period_id == period.id)
        .order_by(Person.name)
        .all()
    )
    return [
        {
            "name": person.name,
            "role": person.role,
            "dni_pracy": kpi.dni_pracy,
            "weryfikacje": kpi.weryfikacje,
            "rekomendacje": kpi.rekomendacje,
            "cv_dodane": kpi.cv_dodane,
            "placements": kpi.placements,
        }
        for kpi, person in rows
    ]


def current_sales(db: Session, year: int, week: int) -> list[dict]:
    period = find_week(db, year, week)
    if period is None:
        return []
    rows = (
        db.query(SalesKpi, Person)
        .join(Person, SalesKpi.person_id == Person.id)
        .filter(SalesKpi.period_id == period.id)
        .order_by(Person.name)
        .all()
    )
    return [
        {
            "name": person.name,
            "role": person.role,
            "dni_pracy": kpi.dni_pracy,
            "leady": kpi.leady,
            "oferty": kpi.oferty,
            "mrr": kpi.mrr,
            "placements": kpi.placements,
        }
        for kpi, person in rows
    ]


def hit_ratios_for_month(db: Session, year: int, month: int) -> list[dict]:
    rows = (
        db.query(HitRatio, Person)
        .join(Person, HitRatio.person_id == Person.id)
        .filter(HitRatio.year == year, HitRatio.month == month)
        .order_by(Person.name)
        .all()
    )
    return [
        {
            "name": person.name,
            "closed_requests": hr.closed_requests,
            "placements": hr.placements,
            "hit_ratio": hr.hit_ratio,
        }
        for hr, person in rows
    ]


# ---------------------------------------------------------------------------
# All-time averages
# ---------------------------------------------------------------------------

def _totals_by_person(rows, measures: Sequence[str]) -> list[dict]:
    grouped: dict[int, dict] = {}
    weeks: dict[int, set[int]] = defaultdict(set)
    for kpi, person in rows:
        acc = grouped.setdefault(person.id, {
            "name": person.name,
            "role": person.role,
            "dni_pracy": 0.0,
            **{m: 0 for m in measures},
        })
        acc["dni_pracy"] += kpi.dni_pracy or 0
        for m in measures:
            acc[m] += getattr(kpi, m) or 0
        weeks[person.id].add(kpi.period_id)
    for person_id, acc in grouped.items():
        acc["weeks"] = len(weeks[person_id])
    return list(grouped.values())


def recruitment_averages(db: Session) -> list[dict]:
    """
    Per person: totals across every week on record plus per-working-day rates.

    Sorted by total placements, then recommendations/day, then
    (CVs + verifications)/day, all descending; name breaks remaining ties.
    """
    rows = db.query(RecruitmentKpi, Person).join(Person, RecruitmentKpi.person_id == Person.id).all()
    result = []
    for acc in _totals_by_person(rows, ("weryfikacje", "rekomendacje", "cv_dodane", "placements")):
        days = acc["dni_pracy"]
        result.append({
            "name": acc["name"],
            "role": acc["role"],
            "weeks": acc["weeks"],
            "total_placements": acc["placements"],
            "weryf_per_day": _rate(acc["weryfikacje"], days),
            "reco_per_day": _rate(acc["rekomendacje"], days),
            "cv_per_day": _rate(acc["cv_dodane"], days),
            "cv_weryf_per_day": _rate(acc["cv_dodane"] + acc["weryfikacje"], days),
        })
    result.sort(key=lambda r: (
        -r["total_placements"],
        -r["reco_per_day"],
        -r["cv_weryf_per_day"],
        r["name"],
    ))
    return result


def sales_averages(db: Session) -> list[dict]:
    """Per person leads/day, offers/day and MRR per week on record."""
    rows = db.query(SalesKpi, Person).join(Person, SalesKpi.person_id == Person.id).all()
    result = []
    for acc in _totals_by_person(rows, ("leady", "oferty", "mrr", "placements")):
        days, weeks = acc["dni_pracy"], acc["weeks"]
        mrr_per_week = (
            int(_round_half_up(Decimal(str(acc["mrr"])) / weeks)) if weeks else 0
        )
        result.append({
            "name": acc["name"],
            "role": acc["role"],
            "weeks": weeks,
            "total_placements": acc["placements"],
            "leady_per_day": _rate(acc["leady"], days),
            "oferty_per_day": _rate(acc["oferty"], days),
            "mrr_per_week": mrr_per_week,
        })
    result.sort(key=lambda r: (
        -r["mrr_per_week"],
        -r["oferty_per_day"],
        -r["leady_per_day"],
        r["name"],
    ))
    return result


# ---------------------------------------------------------------------------
# Targets
# ---------------------------------------------------------------------------

def list_targets(db: Session) -> list[Target]:
    """Every target row, newest first (so the first match per KPI is in force)."""
    return db.query(Target).order_by(Target.id.desc()).all()


def add_target(
    db: Session,
    role: str,
    kpi_name: str,
    value: float,
    period_unit: PeriodUnit = PeriodUnit.week,
) -> Target:
    target = Target(role=role, kpi_name=kpi_name, value=value, period_unit=period_unit)
    db.add(target)
    db.commit()
    db.refresh(target)
    return target


def latest_target(
    targets: Sequence[Target],
    kpi_name: str,
    role: Optional[str] = None,
) -> Optional[Target]:
    """
    Most recently inserted target for `kpi_name` (optionally also `role`).

    `targets` need not be ordered; the highest id wins.
    """
    candidates = [
        t for t in targets
        if t.kpi_name == kpi_name and (role is None or t.role == role)
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda t: t.id)


def weekly_value(target: Optional[Target]) -> float:
    """Per-person weekly figure for a target: monthly values are divided by 4."""
    if target is None:
        return 0.0
    unit = getattr(target.period_unit, "value", target.period_unit)
    if unit == PeriodUnit.month.value:
        return target.value / WEEKS_PER_MONTH_TARGET
    return target.value


def headcount(rows: Sequence[dict], roles: Sequence[Role]) -> dict[str, int]:
    counts = {role.value: sum(1 for r in rows if r["role"] == role.value) for role in roles}
    counts["total"] = len(rows)
    return counts


def team_targets(rows: Sequence[dict], targets: Sequence[Target], department: Department | str) -> dict:
    """
    Team-level weekly targets for the current roster.

    Each KPI's per-person target (most recent row wins) is multiplied by the
    headcount of the role that owns it; placements use the whole roster.
    A role with nobody in the roster yields 0.
    """
    department = Department(department)
    if department == Department.recruitment:
        kpis, roles = RECRUITMENT_TEAM_KPIS, RECRUITMENT_ROLES
    else:
        kpis, roles = SALES_TEAM_KPIS, SALES_ROLES

    counts = headcount(rows, roles)
    result: dict = {}
    for kpi_name, role in kpis.items():
        people = counts["total"] if role is None else counts[role.value]
        result[kpi_name] = people * weekly_value(latest_target(targets, kpi_name)) if people else 0
    result["headcount"] = counts
    return result


# ---------------------------------------------------------------------------
# Board
# ---------------------------------------------------------------------------

def board_data(db: Session, year: int, month: int) -> dict:
    measurements = (
        db.query(BoardKpiMeasurement)
        .filter(BoardKpiMeasurement.year == year, BoardKpiMeasurement.month == month)
        .order_by(BoardKpiMeasurement.kpi_code, BoardKpiMeasurement.week)
        .all()
    )
    notes = (
        db.query(BoardKpiNote)
        .filter(BoardKpiNote.year == year, BoardKpiNote.month == month)
        .order_by(BoardKpiNote.kpi_code)
        .all()
    )
    return {
        "hit_ratio": hit_ratios_for_month(db, year, month),
        "measurements": [
            {
                "kpi_code": m.kpi_code,
                "week": m.week,
                "value": m.value,
                "target": m.target,
            }
            for m in measurements
        ],
        "notes": [
            {
                "kpi_code": n.kpi_code,
                "description": n.description or "",
                "status": getattr(n.status, "value", n.status),
            }
            for n in notes
        ],
    }
