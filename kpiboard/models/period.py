from sqlalchemy import Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from kpiboard.db.base import Base


class WeekPeriod(Base):
    """(year, week) bucket for weekly KPI facts. Created on first use."""

    __tablename__ = "week_periods"
    __table_args__ = (UniqueConstraint("year", "week", name="uq_week_period_year_week"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    week: Mapped[int] = mapped_column(Integer, nullable=False)
