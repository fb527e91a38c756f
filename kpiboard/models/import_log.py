"""
ImportLog — append-only audit row per upload. Only ever deleted by id.
"""
from datetime import datetime
from sqlalchemy import Integer, String, Text, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from kpiboard.db.base import Base


class ImportLog(Base):
    __tablename__ = "import_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    filename: Mapped[str | None] = mapped_column(Text, nullable=True)
    records_imported: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    periods: Mapped[str | None] = mapped_column(
        Text, nullable=True,
        comment="Comma-separated period labels: T<week>/<year> or M<month>/<year>",
    )
    panel: Mapped[str] = mapped_column(String(32), nullable=False, default="all")
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
