"""initial schema

Revision ID: 0001
Revises:
Create Date: 2025-01-13 00:00:00.000000

People, weekly periods, weekly recruitment / sales facts, targets,
narratives and the import audit log.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- persons ---
    op.create_table(
        "persons",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("role", sa.String(64), nullable=False),
        sa.Column("department", sa.Enum(
            "recruitment", "sales", name="department_enum", native_enum=False,
        ), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", "role", name="uq_person_name_role"),
    )
    op.create_index("ix_persons_id", "persons", ["id"])

    # --- week_periods ---
    op.create_table(
        "week_periods",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("week", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("year", "week", name="uq_week_period_year_week"),
    )
    op.create_index("ix_week_periods_id", "week_periods", ["id"])

    # --- recruitment_kpis ---
    op.create_table(
        "recruitment_kpis",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("person_id", sa.Integer(), sa.ForeignKey("persons.id"), nullable=False),
        sa.Column("period_id", sa.Integer(), sa.ForeignKey("week_periods.id"), nullable=False),
        sa.Column("dni_pracy", sa.Float(), nullable=False, server_default="5"),
        sa.Column("weryfikacje", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rekomendacje", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cv_dodane", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("placements", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("person_id", "period_id", name="uq_recruitment_person_period"),
    )
    op.create_index("ix_recruitment_kpis_id", "recruitment_kpis", ["id"])
    op.create_index("ix_recruitment_kpis_person_id", "recruitment_kpis", ["person_id"])
    op.create_index("ix_recruitment_kpis_period_id", "recruitment_kpis", ["period_id"])

    # --- sales_kpis ---
    op.create_table(
        "sales_kpis",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("person_id", sa.Integer(), sa.ForeignKey("persons.id"), nullable=False),
        sa.Column("period_id", sa.Integer(), sa.ForeignKey("week_periods.id"), nullable=False),
        sa.Column("dni_pracy", sa.Float(), nullable=False, server_default="5"),
        sa.Column("leady", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("oferty", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("mrr", sa.Float(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("person_id", "period_id", name="uq_sales_person_period"),
    )
    op.create_index("ix_sales_kpis_id", "sales_kpis", ["id"])
    op.create_index("ix_sales_kpis_person_id", "sales_kpis", ["person_id"])
    op.create_index("ix_sales_kpis_period_id", "sales_kpis", ["period_id"])

    # --- targets ---
    op.create_table(
        "targets",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("role", sa.String(64), nullable=False),
        sa.Column("kpi_name", sa.String(64), nullable=False),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("period_unit", sa.Enum(
            "week", "month", name="period_unit_enum", native_enum=False,
        ), nullable=False, server_default="week"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_targets_id", "targets", ["id"])
    op.create_index("ix_targets_kpi_name", "targets", ["kpi_name"])

    # --- narratives ---
    op.create_table(
        "narratives",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("department", sa.String(32), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("period_unit", sa.String(8), nullable=False, server_default="week"),
        sa.Column("period_value", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_narratives_id", "narratives", ["id"])
    op.create_index("ix_narratives_department", "narratives", ["department"])

    # --- import_log ---
    op.create_table(
        "import_log",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("filename", sa.Text(), nullable=True),
        sa.Column("records_imported", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("periods", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_import_log_id", "import_log", ["id"])


def downgrade() -> None:
    op.drop_table("import_log")
    op.drop_table("narratives")
    op.drop_table("targets")
    op.drop_table("sales_kpis")
    op.drop_table("recruitment_kpis")
    op.drop_table("week_periods")
    op.drop_table("persons")
