"""
Admin router.

POST   /admin/upload/{panel}          multipart: files[], password, strategy?
GET    /admin/history?limit           recent import log entries
DELETE /admin/history/{id}            delete one import log entry (admin header)
DELETE /admin/periods/{year}/{week}   delete a week's KPI rows (admin header)
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from kpiboard.core.config import settings
from kpiboard.core.errors import (
    ImportLogNotFoundError,
    NoFilesError,
    TooManyFilesError,
    UnknownPanelError,
    UnknownStrategyError,
    UploadTooLargeError,
)
from kpiboard.core.security import check_password, require_admin
from kpiboard.db.base import get_db
from kpiboard.models.import_log import ImportLog
from kpiboard.schemas.admin import DeleteResult, ImportLogOut, PeriodOut, UploadResponse
from kpiboard.schemas.common import ErrorResponse
from kpiboard.services.dashboard import delete_week
from kpiboard.services.extraction import PANELS, STRATEGIES
from kpiboard.services.ingestion import Upload, import_upload, period_labels, stored_uploads
from kpiboard.services.llm import TextGenerator, get_text_client

router = APIRouter(prefix="/admin", tags=["admin"])

HISTORY_MAX = 200


def _read_uploads(files: list[UploadFile]) -> list[Upload]:
    if not files:
        raise NoFilesError()
    if len(files) > settings.MAX_UPLOAD_FILES:
        raise TooManyFilesError(max_files=settings.MAX_UPLOAD_FILES, received=len(files))
    uploads = []
    for f in files:
        # One byte past the ceiling is enough to know it is too large.
        content = f.file.read(settings.max_upload_bytes + 1)
        if len(content) > settings.max_upload_bytes:
            raise UploadTooLargeError(f.filename or "upload", settings.max_upload_bytes)
        uploads.append(Upload(filename=f.filename or "upload.xlsx", content=content))
    return uploads


@router.post(
    "/upload/{panel}",
    response_model=UploadResponse,
    summary="Upload KPI spreadsheets for one panel",
    responses={
        401: {"model": ErrorResponse, "description": "Wrong admin password"},
        413: {"model": ErrorResponse, "description": "Too many files or a file over the size limit"},
        422: {"model": ErrorResponse, "description": "Nothing could be imported from the files"},
        502: {"model": ErrorResponse, "description": "Model-assisted interpretation failed"},
    },
)
def upload(
    panel: str,
    files: list[UploadFile] = File(default=[]),
    password: Optional[str] = Form(default=None),
    strategy: Optional[str] = Form(default=None),
    db: Session = Depends(get_db),
    client: Optional[TextGenerator] = Depends(get_text_client),
):
    """
    The password is checked before anything is written to the upload
    directory. Stored files are removed whatever the outcome.
    """
    check_password(password)
    if panel not in PANELS:
        raise UnknownPanelError(panel, list(PANELS))
    strategy = (strategy or settings.EXTRACTION_STRATEGY).strip().lower()
    if strategy not in STRATEGIES:
        raise UnknownStrategyError(strategy, list(STRATEGIES))

    uploads = _read_uploads(files)
    with stored_uploads(uploads, settings.upload_path) as sources:
        result = import_upload(db, sources, panel, strategy, client)

    labels = period_labels(result.periods)
    return UploadResponse(
        imported=result.imported,
        summary=result.summary,
        by_type=result.by_type,
        periods=[
            PeriodOut(year=year, unit=unit, value=value, label=label)
            for (year, unit, value), label in zip(sorted(result.periods), labels)
        ],
        warnings=result.warnings,
        skipped=result.skipped,
    )


@router.get("/history", response_model=list[ImportLogOut], summary="Recent imports")
def history(
    limit: int = Query(default=50, ge=1, le=HISTORY_MAX),
    db: Session = Depends(get_db),
):
    rows = db.query(ImportLog).order_by(ImportLog.id.desc()).limit(limit).all()
    return [
        ImportLogOut(
            id=r.id,
            filename=r.filename,
            records_imported=r.records_imported,
            periods=r.periods,
            panel=r.panel,
            summary=r.summary,
            created_at=r.created_at.isoformat() if r.created_at else None,
        )
        for r in rows
    ]


@router.delete(
    "/history/{log_id}",
    response_model=DeleteResult,
    summary="Delete an import log entry",
    dependencies=[Depends(require_admin)],
)
def delete_history_entry(log_id: int, db: Session = Depends(get_db)):
    entry = db.get(ImportLog, log_id)
    if entry is None:
        raise ImportLogNotFoundError(log_id)
    db.delete(entry)
    db.commit()
    return DeleteResult(removed=1)


@router.delete(
    "/periods/{year}/{week}",
    response_model=DeleteResult,
    summary="Delete one week of recruitment and sales data",
    dependencies=[Depends(require_admin)],
)
def delete_period(year: int, week: int, db: Session = Depends(get_db)):
    return DeleteResult(removed=delete_week(db, year, week))
