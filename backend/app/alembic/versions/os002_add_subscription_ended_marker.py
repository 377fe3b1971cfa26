"""Add subscription ended marker to users

Revision ID: os002
Revises: os001
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "os002"
down_revision = "os001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("users", sa.Column("ended_subscription_id", sa.String(length=64), nullable=True))
    op.add_column("users", sa.Column("subscription_ended_at", sa.DateTime(timezone=True), nullable=True))


def downgrade() -> None:
    op.drop_column("users", "subscription_ended_at")
    op.drop_column("users", "ended_subscription_id")
