"""
Target schemas.

GET  /api/targets   -> list[TargetOut]   (newest first)
POST /api/targets   -> TargetOut
"""
from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kpiboard.models.target import PeriodUnit


class TargetCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    role: Annotated[str, Field(
        min_length=1,
        max_length=64,
        description='Canonical role (e.g. "Sourcer") or "all".',
        examples=["Sourcer", "all"],
    )]
    kpi_name: Annotated[str, Field(min_length=1, max_length=64, examples=["weryfikacje"])]
    value: Annotated[float, Field(ge=0)]
    period_unit: PeriodUnit = PeriodUnit.week

    @field_validator("role", "kpi_name", mode="before")
    @classmethod
    def strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class TargetOut(BaseModel):
    id: int
    role: str
    kpi_name: str
    value: float
    period_unit: str
