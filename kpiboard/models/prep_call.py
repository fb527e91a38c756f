"""
PrepCall — candidate preparation call logged by a Delivery Lead.

`checklist` is a JSON-encoded object of item -> bool (stdlib json).
"""
from datetime import date, datetime
from sqlalchemy import Integer, String, Text, Date, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from kpiboard.db.base import Base


class PrepCall(Base):
    __tablename__ = "prep_calls"
    __table_args__ = (
        UniqueConstraint("person_id", "call_date", name="uq_prep_call_person_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    person_id: Mapped[int] = mapped_column(ForeignKey("persons.id"), nullable=False, index=True)
    call_date: Mapped[date] = mapped_column(Date, nullable=False)
    candidate_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    checklist: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
