"""
Ingestion engine: CandidateBatch -> upserted fact rows.

Public API
----------
ingest_candidates(db, batch)                        -> ImportResult  (one commit)
import_upload(db, files, panel, strategy, client)   -> ImportResult  (upload service)
stored_uploads(uploads, upload_dir)                 -> contextmanager[list[SourceFile]]
period_labels(periods)                              -> list[str]

Every fact upsert is a full-column overwrite on its natural key; nothing is
ever summed into an existing row.
"""
from __future__ import annotations

import json
import logging
import os
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional, Sequence

from sqlalchemy.orm import Session

from kpiboard.core.errors import NoRecordsImportedError
from kpiboard.db.upsert import dialect_insert
from kpiboard.models.board import BoardKpiMeasurement, BoardKpiNote, HitRatio
from kpiboard.models.import_log import ImportLog
from kpiboard.models.kpi import RecruitmentKpi, SalesKpi
from kpiboard.models.prep_call import PrepCall
from kpiboard.schemas.records import (
    RECORD_TYPES,
    BoardMathRecord,
    BoardNoteRecord,
    CandidateBatch,
    HitRatioRecord,
    PrepCallRecord,
    RecruitmentRecord,
    SalesRecord,
)
from kpiboard.services.aggregation import hit_ratio
from kpiboard.services.extraction import SourceFile, get_extractor
from kpiboard.services.identity import Role, resolve_or_create_person
from kpiboard.services.llm import TextGenerator
from kpiboard.services.periods import resolve_or_create_week

logger = logging.getLogger(__name__)

# (year, "week" | "month", value)
PeriodKey = tuple[int, str, int]


@dataclass
class ImportResult:
    imported: int = 0
    by_type: dict[str, int] = field(default_factory=dict)
    periods: set[PeriodKey] = field(default_factory=set)
    warnings: list[str] = field(default_factory=list)
    skipped: int = 0
    summary: str = ""

    def add(self, kind: str, period: Optional[PeriodKey]) -> None:
        self.imported += 1
        self.by_type[kind] = self.by_type.get(kind, 0) + 1
        if period is not None:
            self.periods.add(period)

    def merge(self, other: "ImportResult") -> None:
        self.imported += other.imported
        for kind, count in other.by_type.items():
            self.by_type[kind] = self.by_type.get(kind, 0) + count
        self.periods |= other.periods
        self.warnings.extend(other.warnings)
        self.skipped += other.skipped
        if other.summary:
            self.summary = f"{self.summary} {other.summary}".strip()


def period_labels(periods: set[PeriodKey]) -> list[str]:
    """Sorted labels: T<week>/<year> for weeks, M<month>/<year> for months."""
    labels = []
    for year, unit, value in sorted(periods):
        prefix = "T" if unit == "week" else "M"
        labels.append(f"{prefix}{value}/{year}")
    return labels


# ---------------------------------------------------------------------------
# Per-type upserts (flush only; caller commits)
# ---------------------------------------------------------------------------

def _upsert(db: Session, model, key: Sequence[str], values: dict) -> None:
    stmt = dialect_insert(db, model).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=list(key),
        set_={col: stmt.excluded[col] for col in values if col not in key},
    )
    db.execute(stmt)


def _ingest_recruitment(db: Session, rec: RecruitmentRecord) -> Optional[PeriodKey]:
    if rec.name is None or rec.week is None or rec.year is None:
        return None
    period_id = resolve_or_create_week(db, rec.year, rec.week)
    person_id = resolve_or_create_person(db, rec.name, rec.role)
    _upsert(db, RecruitmentKpi, ("person_id", "period_id"), {
        "person_id": person_id,
        "period_id": period_id,
        "dni_pracy": rec.dni_pracy,
        "weryfikacje": rec.weryfikacje,
        "rekomendacje": rec.rekomendacje,
        "cv_dodane": rec.cv_dodane,
        "placements": rec.placements,
    })
    return rec.year, "week", rec.week


def _ingest_sales(db: Session, rec: SalesRecord) -> Optional[PeriodKey]:
    if rec.name is None or rec.week is None or rec.year is None:
        return None
    period_id = resolve_or_create_week(db, rec.year, rec.week)
    person_id = resolve_or_create_person(db, rec.name, rec.role)
    _upsert(db, SalesKpi, ("person_id", "period_id"), {
        "person_id": person_id,
        "period_id": period_id,
        "dni_pracy": rec.dni_pracy,
        "leady": rec.leady,
        "oferty": rec.oferty,
        "mrr": rec.mrr,
        "placements": rec.placements,
    })
    return rec.year, "week", rec.week


def _ingest_hit_ratio(db: Session, rec: HitRatioRecord) -> Optional[PeriodKey]:
    if rec.name is None or rec.month is None or rec.year is None:
        return None
    # Hit ratio belongs to Delivery Leads whatever role the sheet says.
    person_id = resolve_or_create_person(db, rec.name, Role.delivery_lead.value)
    ratio = rec.hit_ratio if rec.hit_ratio is not None else hit_ratio(rec.placements, rec.closed_requests)
    _upsert(db, HitRatio, ("person_id", "year", "month"), {
        "person_id": person_id,
        "year": rec.year,
        "month": rec.month,
        "closed_requests": rec.closed_requests,
        "placements": rec.placements,
        "hit_ratio": ratio,
    })
    return rec.year, "month", rec.month


def _ingest_board_math(db: Session, rec: BoardMathRecord) -> Optional[PeriodKey]:
    if rec.kpi_code is None or rec.month is None or rec.year is None:
        return None
    if rec.week is not None:
        _upsert(db, BoardKpiMeasurement, ("year", "month", "week", "kpi_code"), {
            "year": rec.year,
            "month": rec.month,
            "week": rec.week,
            "kpi_code": rec.kpi_code,
            "value": rec.value,
            "target": rec.target,
        })
        return rec.year, "month", rec.month

    # NULLs never collide in a unique constraint, so monthly rows are
    # matched explicitly and overwritten in place.
    existing = (
        db.query(BoardKpiMeasurement)
        .filter(
            BoardKpiMeasurement.year == rec.year,
            BoardKpiMeasurement.month == rec.month,
            BoardKpiMeasurement.week.is_(None),
            BoardKpiMeasurement.kpi_code == rec.kpi_code,
        )
        .first()
    )
    if existing is None:
        db.add(BoardKpiMeasurement(
            year=rec.year,
            month=rec.month,
            week=None,
            kpi_code=rec.kpi_code,
            value=rec.value,
            target=rec.target,
        ))
    else:
        existing.value = rec.value
        existing.target = rec.target
    db.flush()
    return rec.year, "month", rec.month


def _ingest_board_note(db: Session, rec: BoardNoteRecord) -> Optional[PeriodKey]:
    if rec.kpi_code is None or rec.month is None or rec.year is None:
        return None
    _upsert(db, BoardKpiNote, ("year", "month", "kpi_code"), {
        "year": rec.year,
        "month": rec.month,
        "kpi_code": rec.kpi_code,
        "description": rec.description,
        "status": rec.status,
    })
    return rec.year, "month", rec.month


def _ingest_prep_call(db: Session, rec: PrepCallRecord) -> Optional[PeriodKey]:
    if rec.name is None or rec.call_date is None:
        return None
    person_id = resolve_or_create_person(db, rec.name, Role.delivery_lead.value)
    _upsert(db, PrepCall, ("person_id", "call_date"), {
        "person_id": person_id,
        "call_date": rec.call_date,
        "candidate_name": rec.candidate_name,
        "checklist": json.dumps(rec.checklist, ensure_ascii=False),
        "notes": rec.notes,
    })
    return rec.call_date.year, "month", rec.call_date.month


_INGESTERS = {
    "recruitment": _ingest_recruitment,
    "sales": _ingest_sales,
    "hit_ratio": _ingest_hit_ratio,
    "board_math": _ingest_board_math,
    "board_descriptive": _ingest_board_note,
    "prep_calls": _ingest_prep_call,
}


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def ingest_candidates(db: Session, batch: CandidateBatch) -> ImportResult:
    """
    Upsert every record in `batch` and commit once.

    Records missing an identity field (name, KPI code, week or month as the
    type requires) are dropped and counted in a warning.
    """
    result = ImportResult(summary=batch.summary, warnings=list(batch.warnings))
    try:
        for kind in RECORD_TYPES:
            ingest = _INGESTERS[kind]
            dropped = 0
            for record in getattr(batch, kind):
                period = ingest(db, record)
                if period is None:
                    dropped += 1
                    continue
                result.add(kind, period)
            if dropped:
                result.skipped += dropped
                result.warnings.append(f"{kind}: dropped {dropped} record(s) missing identity fields")
                logger.warning("%s: dropped %d records missing identity fields", kind, dropped)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(
        "Ingested %d records (%s) for %s",
        result.imported,
        ", ".join(f"{k}={v}" for k, v in result.by_type.items()) or "none",
        ", ".join(period_labels(result.periods)) or "no periods",
    )
    return result


@dataclass
class Upload:
    """An uploaded file held in memory: original name plus raw bytes."""
    filename: str
    content: bytes


@contextmanager
def stored_uploads(uploads: Sequence[Upload], upload_dir: Path) -> Iterator[list[SourceFile]]:
    """Write uploads under random names in `upload_dir`; always remove them on exit."""
    upload_dir.mkdir(parents=True, exist_ok=True)
    stored: list[SourceFile] = []
    try:
        for upload in uploads:
            suffix = Path(upload.filename).suffix.lower() or ".xlsx"
            path = upload_dir / f"{uuid.uuid4().hex}{suffix}"
            # registered before writing so a partly written file is removed too
            stored.append(SourceFile(path=path, name=upload.filename))
            path.write_bytes(upload.content)
        yield stored
    finally:
        for source in stored:
            try:
                os.remove(source.path)
            except FileNotFoundError:
                pass


def import_upload(
    db: Session,
    files: Sequence[SourceFile],
    panel: str,
    strategy: str,
    client: Optional[TextGenerator] = None,
) -> ImportResult:
    """
    Extract and ingest already-stored upload files, then write the audit row.

    The header strategy commits file by file, so earlier files stay written
    if a later one fails. The model strategy interprets the whole batch
    before writing anything.
    """
    extractor = get_extractor(strategy, panel, client)
    result = ImportResult()
    if strategy == "headers":
        for source in files:
            result.merge(ingest_candidates(db, extractor.extract([source])))
        found = ", ".join(f"{kind}: {count}" for kind, count in result.by_type.items())
        result.summary = f"Read {len(files)} file(s). Imported {result.imported} records ({found or 'none'})."
    else:
        result = ingest_candidates(db, extractor.extract(files))

    if result.imported == 0:
        raise NoRecordsImportedError(result.warnings)

    labels = period_labels(result.periods)
    if not result.summary:
        result.summary = f"Imported {result.imported} records."
    db.add(ImportLog(
        filename=", ".join(f.name for f in files),
        records_imported=result.imported,
        periods=", ".join(labels),
        panel=panel,
        summary=result.summary,
    ))
    db.commit()
    logger.info("Upload for %s panel imported %d records (%s)", panel, result.imported, ", ".join(labels))
    return result
