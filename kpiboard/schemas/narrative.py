"""
Narrative schemas.

POST /api/narrative/{department}   NarrativeRequest -> NarrativeResponse
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class NarrativeRequest(BaseModel):
    year: Optional[int] = Field(default=None, description="Defaults to the current year.")
    week: Optional[int] = Field(default=None, description="Recruitment / sales period.")
    month: Optional[int] = Field(default=None, description="Board period.")


class NarrativeResponse(BaseModel):
    available: bool
    department: str
    year: int
    period_unit: str
    period_value: int
    content: Optional[str] = None
    source: Optional[str] = Field(default=None, description="`model` or `fallback`.")
    message: Optional[str] = None
