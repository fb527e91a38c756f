"""
Weekly department KPI facts.

Measure columns carry the KPI codes used by the source spreadsheets and by
the `targets` table (`weryfikacje`, `leady`, ...). One row per
(person, week period); a re-import overwrites every measure.
"""
from sqlalchemy import Integer, Float, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from kpiboard.db.base import Base


class RecruitmentKpi(Base):
    __tablename__ = "recruitment_kpis"
    __table_args__ = (
        UniqueConstraint("person_id", "period_id", name="uq_recruitment_person_period"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    person_id: Mapped[int] = mapped_column(ForeignKey("persons.id"), nullable=False, index=True)
    period_id: Mapped[int] = mapped_column(ForeignKey("week_periods.id"), nullable=False, index=True)
    dni_pracy: Mapped[float] = mapped_column(Float, nullable=False, default=5)
    weryfikacje: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rekomendacje: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cv_dodane: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    placements: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class SalesKpi(Base):
    __tablename__ = "sales_kpis"
    __table_args__ = (
        UniqueConstraint("person_id", "period_id", name="uq_sales_person_period"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    person_id: Mapped[int] = mapped_column(ForeignKey("persons.id"), nullable=False, index=True)
    period_id: Mapped[int] = mapped_column(ForeignKey("week_periods.id"), nullable=False, index=True)
    dni_pracy: Mapped[float] = mapped_column(Float, nullable=False, default=5)
    leady: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    oferty: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    mrr: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    placements: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
