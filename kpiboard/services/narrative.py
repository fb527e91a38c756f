"""
Narrative advisor: short commentary on a department's figures.

Public API
----------
gather_figures(db, department, year, period)            -> dict
build_prompt(department, figures, year, period)         -> str
fallback_summary(department, figures, year, period)     -> str
latest_narrative(db, department, year, unit, value)     -> Narrative | None
generate_narrative(db, client, department, year, period) -> NarrativeResult

`period` is the week for recruitment / sales and the month for the board.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from kpiboard.core.errors import InterpretationError, NarrativeUnavailableError
from kpiboard.models.narrative import Narrative
from kpiboard.services.aggregation import (
    board_data,
    current_recruitment,
    current_sales,
    list_targets,
    team_targets,
)
from kpiboard.services.llm import TextGenerator

logger = logging.getLogger(__name__)

DEPARTMENTS = ("recruitment", "sales", "board")
NARRATIVE_MAX_TOKENS = 500
MAX_WORDS = 120


@dataclass
class NarrativeResult:
    department: str
    year: int
    period_unit: str
    period_value: int
    content: str
    source: str  # "model" | "fallback"


def period_unit_for(department: str) -> str:
    return "month" if department == "board" else "week"


def gather_figures(db: Session, department: str, year: int, period: int) -> dict:
    if department == "board":
        return {"board": board_data(db, year, period)}
    rows = current_recruitment(db, year, period) if department == "recruitment" else current_sales(db, year, period)
    return {
        "rows": rows,
        "team_targets": team_targets(rows, list_targets(db), department),
    }


def _sum(rows: list[dict], key: str) -> float:
    return sum(r.get(key) or 0 for r in rows)


def _person_lines(department: str, rows: list[dict]) -> list[str]:
    if department == "recruitment":
        return [
            f"- {r['name']} ({r['role']}): verifications {r['weryfikacje']}, "
            f"recommendations {r['rekomendacje']}, CVs {r['cv_dodane']}, placements {r['placements']}"
            for r in rows
        ]
    return [
        f"- {r['name']} ({r['role']}): MRR {r['mrr']:g}, offers {r['oferty']}, leads {r['leady']}"
        for r in rows
    ]


def _board_lines(board: dict) -> list[str]:
    lines = [
        f"- {m['kpi_code']}{'' if m['week'] is None else ' (week ' + str(m['week']) + ')'}: "
        f"{m['value']:g} vs target {m['target']:g}"
        for m in board["measurements"]
    ]
    lines += [f"- {n['kpi_code']} [{n['status']}]: {n['description']}" for n in board["notes"]]
    lines += [
        f"- DL {h['name']}: hit ratio {h['hit_ratio']}% ({h['placements']}/{h['closed_requests']})"
        for h in board["hit_ratio"]
    ]
    return lines


def build_prompt(department: str, figures: dict, year: int, period: int) -> str:
    unit = period_unit_for(department)
    header = f"{department.upper()} - {unit} {period}/{year}"
    if department == "board":
        body = _board_lines(figures["board"])
    else:
        body = _person_lines(department, figures["rows"])
        targets = figures["team_targets"]
        body.append(
            "Team targets: "
            + ", ".join(f"{k} {v:g}" for k, v in targets.items() if k != "headcount")
        )
    data = "\n".join(body) if body else "(no data recorded for this period)"
    return (
        f"{header}\n{data}\n\n"
        f"You are the KPI assistant of a staffing company. Write a short analysis "
        f"(at most {MAX_WORDS} words):\n"
        f"1. What is going well (at most 2 points)\n"
        f"2. What needs attention (at most 2 points)\n"
        f"3. One recommendation"
    )


def fallback_summary(department: str, figures: dict, year: int, period: int) -> str:
    """Deterministic summary built from the same figures as the prompt."""
    unit = period_unit_for(department)
    if department == "board":
        board = figures["board"]
        met = sum(1 for m in board["measurements"] if m["target"] and m["value"] >= m["target"])
        red = [n["kpi_code"] for n in board["notes"] if n["status"] == "red"]
        text = (
            f"Board {unit} {period}/{year}: {met} of {len(board['measurements'])} "
            f"measured KPIs at or above target."
        )
        if red:
            text += f" Red status: {', '.join(red)}."
        return text

    rows = figures["rows"]
    if not rows:
        return f"No {department} data recorded for {unit} {period}/{year}."
    targets = figures["team_targets"]
    parts = []
    for kpi, target in targets.items():
        if kpi == "headcount":
            continue
        actual = _sum(rows, kpi)
        parts.append(f"{kpi} {actual:g}/{target:g}")
    return (
        f"{department.capitalize()} {unit} {period}/{year}: {len(rows)} people reporting. "
        f"Team result vs target: {', '.join(parts)}."
    )


def latest_narrative(
    db: Session,
    department: str,
    year: int,
    period_unit: str,
    period_value: int,
) -> Optional[Narrative]:
    return (
        db.query(Narrative)
        .filter(
            Narrative.department == department,
            Narrative.year == year,
            Narrative.period_unit == period_unit,
            Narrative.period_value == period_value,
        )
        .order_by(Narrative.id.desc())
        .first()
    )


def generate_narrative(
    db: Session,
    client: Optional[TextGenerator],
    department: str,
    year: int,
    period: int,
) -> NarrativeResult:
    """
    Ask the collaborator for commentary and store it.

    No client raises NarrativeUnavailableError. A failed call degrades to
    fallback_summary(), which is returned but not stored.
    """
    if client is None:
        raise NarrativeUnavailableError()

    unit = period_unit_for(department)
    figures = gather_figures(db, department, year, period)
    try:
        content = client.complete(build_prompt(department, figures, year, period), max_tokens=NARRATIVE_MAX_TOKENS)
    except InterpretationError as exc:
        logger.warning("Narrative for %s %s %d/%d fell back: %s", department, unit, period, year, exc.message)
        return NarrativeResult(
            department=department,
            year=year,
            period_unit=unit,
            period_value=period,
            content=fallback_summary(department, figures, year, period),
            source="fallback",
        )

    db.add(Narrative(
        department=department,
        year=year,
        period_unit=unit,
        period_value=period,
        content=content.strip(),
    ))
    db.commit()
    return NarrativeResult(
        department=department,
        year=year,
        period_unit=unit,
        period_value=period,
        content=content.strip(),
        source="model",
    )
