from datetime import datetime
import enum

from sqlalchemy import Integer, Float, String, DateTime, Enum, func
from sqlalchemy.orm import Mapped, mapped_column

from kpiboard.db.base import Base


class PeriodUnit(str, enum.Enum):
    week = "week"
    month = "month"


class Target(Base):
    """
    Per-person target for one KPI. Rows are append-only; for a given KPI
    the most recently inserted row is the one in force.
    `role` is a canonical role or "all".
    """

    __tablename__ = "targets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    role: Mapped[str] = mapped_column(String(64), nullable=False)
    kpi_name: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    period_unit: Mapped[str] = mapped_column(
        Enum(PeriodUnit, name="period_unit_enum", native_enum=False),
        nullable=False,
        default=PeriodUnit.week,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
