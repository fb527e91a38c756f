"""
Monthly-native facts: Delivery Lead hit ratio and board-level KPIs.
"""
from datetime import datetime
import enum

from sqlalchemy import (
    Integer, Float, String, Text, DateTime, Enum, ForeignKey, UniqueConstraint, func,
)
from sqlalchemy.orm import Mapped, mapped_column

from kpiboard.db.base import Base


class NoteStatus(str, enum.Enum):
    green = "green"
    yellow = "yellow"
    red = "red"


class HitRatio(Base):
    __tablename__ = "hit_ratios"
    __table_args__ = (
        UniqueConstraint("person_id", "year", "month", name="uq_hit_ratio_person_month"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    person_id: Mapped[int] = mapped_column(ForeignKey("persons.id"), nullable=False, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    closed_requests: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    placements: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    hit_ratio: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class BoardKpiMeasurement(Base):
    """
    Mathematical board KPI. `week` is NULL for monthly-cadence KPIs and set
    for weekly ones.
    """

    __tablename__ = "board_kpi_measurements"
    __table_args__ = (
        UniqueConstraint("year", "month", "week", "kpi_code", name="uq_board_measurement"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    kpi_code: Mapped[str] = mapped_column(String(32), nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    target: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class BoardKpiNote(Base):
    """Descriptive board KPI: free text plus a traffic-light status."""

    __tablename__ = "board_kpi_notes"
    __table_args__ = (
        UniqueConstraint("year", "month", "kpi_code", name="uq_board_note"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    kpi_code: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        Enum(NoteStatus, name="note_status_enum", native_enum=False),
        nullable=False,
        default=NoteStatus.yellow,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
