from datetime import datetime
import enum

from sqlalchemy import Integer, String, Boolean, DateTime, Enum, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from kpiboard.db.base import Base


class Department(str, enum.Enum):
    recruitment = "recruitment"
    sales = "sales"


class Person(Base):
    """
    A named employee under one canonical role.

    The same name under two different roles is two people. Department is
    derived from the role when the row is created and never edited apart
    from it.
    """

    __tablename__ = "persons"
    __table_args__ = (UniqueConstraint("name", "role", name="uq_person_name_role"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    role: Mapped[str] = mapped_column(String(64), nullable=False)
    department: Mapped[str] = mapped_column(
        Enum(Department, name="department_enum", native_enum=False), nullable=False
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
