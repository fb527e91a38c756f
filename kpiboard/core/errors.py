"""
Custom exception hierarchy for kpiboard.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class KPIBoardException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidPasswordError(KPIBoardException):
    http_status = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_PASSWORD"

    def __init__(self):
        super().__init__(message="Invalid admin password.")


class NoFilesError(KPIBoardException):
    http_status = status.HTTP_400_BAD_REQUEST
    code = "NO_FILES"

    def __init__(self):
        super().__init__(message="No files were uploaded.")


class TooManyFilesError(KPIBoardException):
    http_status = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    code = "TOO_MANY_FILES"

    def __init__(self, max_files: int, received: int):
        super().__init__(
            message=f"At most {max_files} files per upload. Received {received}.",
            details={"max_files": max_files, "received": received},
        )


class UploadTooLargeError(KPIBoardException):
    http_status = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    code = "UPLOAD_TOO_LARGE"

    def __init__(self, filename: str, max_bytes: int):
        super().__init__(
            message=f"File '{filename}' exceeds the {max_bytes // (1024 * 1024)} MB limit.",
            details={"filename": filename, "max_bytes": max_bytes},
        )


class UnknownChoiceError(KPIBoardException):
    """A path or form value outside its fixed set of choices."""
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "UNKNOWN_CHOICE"
    label = "value"

    def __init__(self, value: str, allowed: list[str]):
        super().__init__(
            message=f"Unknown {self.label} '{value}'. Expected one of: {', '.join(allowed)}.",
            details={"value": value, "allowed": allowed},
        )


class UnknownPanelError(UnknownChoiceError):
    code = "UNKNOWN_PANEL"
    label = "panel"


class UnknownStrategyError(UnknownChoiceError):
    code = "UNKNOWN_STRATEGY"
    label = "extraction strategy"


class UnknownDepartmentError(UnknownChoiceError):
    code = "UNKNOWN_DEPARTMENT"
    label = "department"


class NoRecordsImportedError(KPIBoardException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "NO_RECORDS_IMPORTED"

    def __init__(self, warnings: list[str] | None = None):
        super().__init__(
            message=(
                "No records were imported. Check the file structure: sheet names, "
                "header row and the name / week (or month) columns."
            ),
            details={"warnings": warnings} if warnings else {},
        )


class SpreadsheetReadError(KPIBoardException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "SPREADSHEET_UNREADABLE"

    def __init__(self, filename: str, reason: str):
        super().__init__(
            message=f"Could not read spreadsheet '{filename}': {reason}",
            details={"filename": filename},
        )


class InterpretationError(KPIBoardException):
    http_status = status.HTTP_502_BAD_GATEWAY
    code = "INTERPRETATION_ERROR"

    def __init__(self, message: str, raw: str | None = None):
        super().__init__(
            message=message,
            details={"raw": raw[:500]} if raw else {},
        )


class NarrativeUnavailableError(KPIBoardException):
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "NARRATIVE_UNAVAILABLE"

    def __init__(self):
        super().__init__(message="Text generation is not configured (missing API key).")


class PeriodNotFoundError(KPIBoardException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "PERIOD_NOT_FOUND"

    def __init__(self, year: int, week: int):
        super().__init__(
            message=f"Week {week}/{year} has no data.",
            details={"year": year, "week": week},
        )


class ImportLogNotFoundError(KPIBoardException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "IMPORT_LOG_NOT_FOUND"

    def __init__(self, log_id: int):
        super().__init__(
            message=f"Import log entry {log_id} not found.",
            details={"id": log_id},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def kpiboard_exception_handler(request: Request, exc: KPIBoardException) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
