"""add prep_calls table

Revision ID: 0004
Revises: 0003
Create Date: 2025-04-07

One row per (Delivery Lead, call date). The checklist column holds a
JSON object of item -> bool.
"""
from alembic import op
import sqlalchemy as sa

revision = "0004"
down_revision = "0003"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "prep_calls",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("person_id", sa.Integer(), sa.ForeignKey("persons.id"), nullable=False),
        sa.Column("call_date", sa.Date(), nullable=False),
        sa.Column("candidate_name", sa.String(128), nullable=True),
        sa.Column("checklist", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("person_id", "call_date", name="uq_prep_call_person_date"),
    )
    op.create_index("ix_prep_calls_id", "prep_calls", ["id"])
    op.create_index("ix_prep_calls_person_id", "prep_calls", ["person_id"])


def downgrade() -> None:
    op.drop_index("ix_prep_calls_person_id", table_name="prep_calls")
    op.drop_index("ix_prep_calls_id", table_name="prep_calls")
    op.drop_table("prep_calls")
