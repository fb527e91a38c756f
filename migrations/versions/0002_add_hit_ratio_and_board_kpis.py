"""add hit_ratios and board KPI tables

Revision ID: 0002
Revises: 0001
Create Date: 2025-02-03

Monthly-native facts. Board measurements allow a NULL week for
monthly-cadence KPIs.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "hit_ratios",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("person_id", sa.Integer(), sa.ForeignKey("persons.id"), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("closed_requests", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("placements", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("hit_ratio", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("person_id", "year", "month", name="uq_hit_ratio_person_month"),
    )
    op.create_index("ix_hit_ratios_id", "hit_ratios", ["id"])
    op.create_index("ix_hit_ratios_person_id", "hit_ratios", ["person_id"])

    op.create_table(
        "board_kpi_measurements",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("week", sa.Integer(), nullable=True),
        sa.Column("kpi_code", sa.String(32), nullable=False),
        sa.Column("value", sa.Float(), nullable=False, server_default="0"),
        sa.Column("target", sa.Float(), nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("year", "month", "week", "kpi_code", name="uq_board_measurement"),
    )
    op.create_index("ix_board_kpi_measurements_id", "board_kpi_measurements", ["id"])

    op.create_table(
        "board_kpi_notes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("kpi_code", sa.String(32), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.Enum(
            "green", "yellow", "red", name="note_status_enum", native_enum=False,
        ), nullable=False, server_default="yellow"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("year", "month", "kpi_code", name="uq_board_note"),
    )
    op.create_index("ix_board_kpi_notes_id", "board_kpi_notes", ["id"])


def downgrade() -> None:
    op.drop_table("board_kpi_notes")
    op.drop_table("board_kpi_measurements")
    op.drop_table("hit_ratios")
