"""
Candidate records produced by the spreadsheet extractors and consumed by
the ingestion engine.

Both extraction strategies (fixed headers, model-assisted) build these
models, so every field is tolerant: numbers go through the coercion helpers,
missing counts default to zero, and identity fields (name, week, month,
KPI code) stay None when absent so ingestion can drop the record.

Field names accept the Polish column spellings used in the source
workbooks as aliases (`imie`, `rok`, `tydzien`, ...).
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from kpiboard.models.board import NoteStatus
from kpiboard.services.coerce import is_blank, to_float, to_int, to_optional_int, to_percentage

DEFAULT_WORKING_DAYS = 5.0

_TRUE_WORDS = {"tak", "yes", "y", "t", "x", "true", "1", "ok", "done", "✓", "✔"}
_FALSE_WORDS = {"nie", "no", "n", "false", "0", "-", "✗", "✘"}


def _clean_text(v: Any) -> Optional[str]:
    if is_blank(v):
        return None
    return str(v).strip()


def to_bool(v: Any) -> Optional[bool]:
    """Checklist cell -> bool, or None when the cell is not a yes/no value."""
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return v != 0
    if is_blank(v):
        return False
    word = str(v).strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    return None


def parse_date(v: Any) -> Optional[date]:
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    if is_blank(v):
        return None
    text = str(v).strip()
    for fmt in ("%Y-%m-%d", "%d.%m.%Y", "%d/%m/%Y", "%d-%m-%Y", "%Y/%m/%d"):
        try:
            return datetime.strptime(text[:10], fmt).date()
        except ValueError:
            continue
    return None


class _Candidate(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class _PersonWeekCandidate(_Candidate):
    name: Optional[str] = Field(default=None, validation_alias=AliasChoices("name", "imie", "person"))
    role: Optional[str] = Field(default=None, validation_alias=AliasChoices("role", "stanowisko", "rola"))
    year: Optional[int] = Field(default=None, validation_alias=AliasChoices("year", "rok"))
    week: Optional[int] = Field(default=None, validation_alias=AliasChoices("week", "tydzien"))
    dni_pracy: float = Field(
        default=DEFAULT_WORKING_DAYS,
        validation_alias=AliasChoices("dni_pracy", "working_days"),
    )

    @field_validator("name", "role", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return _clean_text(v)

    @field_validator("year", "week", mode="before")
    @classmethod
    def _period(cls, v: Any) -> Optional[int]:
        return to_optional_int(v)

    @field_validator("dni_pracy", mode="before")
    @classmethod
    def _working_days(cls, v: Any) -> float:
        # Blank, zero and non-numeric all fall back to a full week.
        return to_float(v) or DEFAULT_WORKING_DAYS


class RecruitmentRecord(_PersonWeekCandidate):
    weryfikacje: int = Field(default=0, validation_alias=AliasChoices("weryfikacje", "verifications"))
    rekomendacje: int = Field(default=0, validation_alias=AliasChoices("rekomendacje", "recommendations"))
    cv_dodane: int = Field(default=0, validation_alias=AliasChoices("cv_dodane", "cvs_added", "cv"))
    placements: int = 0

    @field_validator("weryfikacje", "rekomendacje", "cv_dodane", "placements", mode="before")
    @classmethod
    def _count(cls, v: Any) -> int:
        return to_int(v)


class SalesRecord(_PersonWeekCandidate):
    leady: int = Field(default=0, validation_alias=AliasChoices("leady", "leads"))
    oferty: int = Field(default=0, validation_alias=AliasChoices("oferty", "offers"))
    mrr: float = 0.0
    placements: int = 0

    @field_validator("leady", "oferty", "placements", mode="before")
    @classmethod
    def _count(cls, v: Any) -> int:
        return to_int(v)

    @field_validator("mrr", mode="before")
    @classmethod
    def _amount(cls, v: Any) -> float:
        return to_float(v)


class HitRatioRecord(_Candidate):
    name: Optional[str] = Field(default=None, validation_alias=AliasChoices("name", "imie", "delivery_lead"))
    year: Optional[int] = Field(default=None, validation_alias=AliasChoices("year", "rok"))
    month: Optional[int] = Field(default=None, validation_alias=AliasChoices("month", "miesiac"))
    closed_requests: int = Field(
        default=0,
        validation_alias=AliasChoices("closed_requests", "zamkniete_requesty", "closed"),
    )
    placements: int = 0
    # Ratio supplied by a model reply, if any; computed at ingestion otherwise.
    hit_ratio: Optional[int] = None

    @field_validator("name", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return _clean_text(v)

    @field_validator("year", "month", mode="before")
    @classmethod
    def _optional_int(cls, v: Any) -> Optional[int]:
        return to_optional_int(v)

    @field_validator("hit_ratio", mode="before")
    @classmethod
    def _percentage(cls, v: Any) -> Optional[int]:
        return to_percentage(v)

    @field_validator("closed_requests", "placements", mode="before")
    @classmethod
    def _count(cls, v: Any) -> int:
        return to_int(v)


class BoardMathRecord(_Candidate):
    kpi_code: Optional[str] = Field(default=None, validation_alias=AliasChoices("kpi_code", "code", "kpi", "kod"))
    year: Optional[int] = Field(default=None, validation_alias=AliasChoices("year", "rok"))
    month: Optional[int] = Field(default=None, validation_alias=AliasChoices("month", "miesiac"))
    week: Optional[int] = Field(default=None, validation_alias=AliasChoices("week", "tydzien"))
    value: float = Field(default=0.0, validation_alias=AliasChoices("value", "wartosc"))
    target: float = Field(default=0.0, validation_alias=AliasChoices("target", "cel"))

    @field_validator("kpi_code", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return _clean_text(v)

    @field_validator("year", "month", "week", mode="before")
    @classmethod
    def _optional_int(cls, v: Any) -> Optional[int]:
        return to_optional_int(v)

    @field_validator("value", "target", mode="before")
    @classmethod
    def _number(cls, v: Any) -> float:
        return to_float(v)


class BoardNoteRecord(_Candidate):
    kpi_code: Optional[str] = Field(default=None, validation_alias=AliasChoices("kpi_code", "code", "kpi", "kod"))
    year: Optional[int] = Field(default=None, validation_alias=AliasChoices("year", "rok"))
    month: Optional[int] = Field(default=None, validation_alias=AliasChoices("month", "miesiac"))
    description: str = Field(default="", validation_alias=AliasChoices("description", "opis"))
    status: str = NoteStatus.yellow.value

    @field_validator("kpi_code", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return _clean_text(v)

    @field_validator("year", "month", mode="before")
    @classmethod
    def _optional_int(cls, v: Any) -> Optional[int]:
        return to_optional_int(v)

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, v: Any) -> str:
        return _clean_text(v) or ""

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v: Any) -> str:
        word = (_clean_text(v) or "").lower()
        allowed = {s.value for s in NoteStatus}
        return word if word in allowed else NoteStatus.yellow.value


class PrepCallRecord(_Candidate):
    name: Optional[str] = Field(default=None, validation_alias=AliasChoices("name", "imie", "delivery_lead"))
    call_date: Optional[date] = Field(default=None, validation_alias=AliasChoices("call_date", "date", "data"))
    candidate_name: Optional[str] = Field(default=None, validation_alias=AliasChoices("candidate_name", "candidate", "kandydat"))
    checklist: dict[str, bool] = Field(default_factory=dict)
    notes: Optional[str] = Field(default=None, validation_alias=AliasChoices("notes", "notatki"))

    @field_validator("name", "candidate_name", "notes", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return _clean_text(v)

    @field_validator("call_date", mode="before")
    @classmethod
    def _date(cls, v: Any) -> Optional[date]:
        return parse_date(v)

    @field_validator("checklist", mode="before")
    @classmethod
    def _checklist(cls, v: Any) -> dict[str, bool]:
        if not isinstance(v, dict):
            return {}
        items: dict[str, bool] = {}
        for key, raw in v.items():
            flag = to_bool(raw)
            if flag is not None:
                items[str(key).strip()] = flag
        return items


class CandidateBatch(BaseModel):
    """Everything one extraction pass found, grouped by record type."""
    recruitment: list[RecruitmentRecord] = Field(default_factory=list)
    sales: list[SalesRecord] = Field(default_factory=list)
    hit_ratio: list[HitRatioRecord] = Field(default_factory=list)
    board_math: list[BoardMathRecord] = Field(default_factory=list)
    board_descriptive: list[BoardNoteRecord] = Field(default_factory=list)
    prep_calls: list[PrepCallRecord] = Field(default_factory=list)
    summary: str = ""
    warnings: list[str] = Field(default_factory=list)

    def total(self) -> int:
        return sum(len(getattr(self, kind)) for kind in RECORD_TYPES)

    def merge(self, other: "CandidateBatch") -> None:
        for kind in RECORD_TYPES:
            getattr(self, kind).extend(getattr(other, kind))
        self.warnings.extend(other.warnings)
        if other.summary:
            self.summary = f"{self.summary} {other.summary}".strip()


# Record type tag -> model. Order is the ingestion order.
RECORD_TYPES: dict[str, type[_Candidate]] = {
    "recruitment": RecruitmentRecord,
    "sales": SalesRecord,
    "hit_ratio": HitRatioRecord,
    "board_math": BoardMathRecord,
    "board_descriptive": BoardNoteRecord,
    "prep_calls": PrepCallRecord,
}
