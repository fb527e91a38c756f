"""add sales placements and import_log panel / summary

Revision ID: 0003
Revises: 0002
Create Date: 2025-03-10
"""
from alembic import op
import sqlalchemy as sa

revision = "0003"
down_revision = "0002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("sales_kpis") as batch:
        batch.add_column(
            sa.Column("placements", sa.Integer(), nullable=False, server_default="0")
        )
    with op.batch_alter_table("import_log") as batch:
        batch.add_column(
            sa.Column("panel", sa.String(32), nullable=False, server_default="all")
        )
        batch.add_column(sa.Column("summary", sa.Text(), nullable=True))


def downgrade() -> None:
    with op.batch_alter_table("import_log") as batch:
        batch.drop_column("summary")
        batch.drop_column("panel")
    with op.batch_alter_table("sales_kpis") as batch:
        batch.drop_column("placements")
