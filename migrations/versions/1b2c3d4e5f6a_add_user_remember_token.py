"""add users.remember_token

Revision ID: 1b2c3d4e5f6a
Revises: 0a1b2c3d4e5f
Create Date: 2026-10-19 14:03:27.559310

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '1b2c3d4e5f6a'
down_revision: Union[str, Sequence[str], None] = '0a1b2c3d4e5f'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Store the digest of the remember-me login cookie."""
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_cols = {c["name"] for c in inspector.get_columns("users")}

    if "remember_token" not in existing_cols:
        with op.batch_alter_table("users") as batch:
            batch.add_column(sa.Column("remember_token", sa.String(64), nullable=True))
            batch.create_index("ix_users_remember_token", ["remember_token"])


def downgrade() -> None:
    with op.batch_alter_table("users") as batch:
        batch.drop_index("ix_users_remember_token")
        batch.drop_column("remember_token")
