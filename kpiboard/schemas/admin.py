"""
Admin request / response schemas.

Upload:    POST   /admin/upload/{panel}          -> UploadResponse
History:   GET    /admin/history                 -> list[ImportLogOut]
           DELETE /admin/history/{id}            -> DeleteResult
Periods:   DELETE /admin/periods/{year}/{week}   -> DeleteResult
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PeriodOut(BaseModel):
    year: int
    unit: str = Field(description="`week` or `month`.")
    value: int
    label: str = Field(examples=["T10/2024", "M3/2024"])


class UploadResponse(BaseModel):
    success: bool = True
    imported: int = Field(description="Records written (inserted or overwritten).")
    summary: str
    by_type: dict[str, int] = Field(description="Imported record count per record type.")
    periods: list[PeriodOut]
    warnings: list[str] = Field(default_factory=list)
    skipped: int = Field(default=0, description="Records dropped for missing identity fields.")


class ImportLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    filename: Optional[str] = None
    records_imported: int
    periods: Optional[str] = None
    panel: str
    summary: Optional[str] = None
    created_at: Optional[str] = None


class DeleteResult(BaseModel):
    success: bool = True
    removed: int
