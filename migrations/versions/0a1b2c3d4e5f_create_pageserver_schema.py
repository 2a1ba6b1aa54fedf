"""create page server schema

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2026-10-19 09:12:40.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0a1b2c3d4e5f'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("updated_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
    ]


def upgrade() -> None:
    """Create identity, audit and content tables."""
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = set(inspector.get_table_names())

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("email", sa.String(320), nullable=False, unique=True),
            sa.Column("password_hash", sa.String(255), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )

    if "roles" not in existing_tables:
        op.create_table(
            "roles",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("key", sa.String(64), nullable=False, unique=True),
            sa.Column("name", sa.String(128), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )

    if "user_roles" not in existing_tables:
        op.create_table(
            "user_roles",
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
            sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
        )

    if "audit_events" not in existing_tables:
        op.create_table(
            "audit_events",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("request_id", sa.String(64), nullable=True),
            sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("actor_user_email", sa.String(320), nullable=True),
            sa.Column("action", sa.String(128), nullable=False),
            sa.Column("entity_type", sa.String(128), nullable=True),
            sa.Column("entity_id", sa.String(128), nullable=True),
            sa.Column("reason", sa.String(512), nullable=True),
            sa.Column("metadata_json", sa.Text(), nullable=True),
            sa.Column("client_ip", sa.String(64), nullable=True),
            sa.UniqueConstraint("request_id", "id", name="uq_audit_request_id_id"),
        )
        op.create_index("idx_audit_events_action", "audit_events", ["action"])

    if "parts" not in existing_tables:
        op.create_table(
            "parts",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("module", sa.String(255), nullable=False, unique=True),
            sa.Column("name", sa.String(128), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )

    if "templates" not in existing_tables:
        op.create_table(
            "templates",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(128), nullable=False, unique=True),
            sa.Column("src", sa.String(255), nullable=False),
            *_audit_columns(),
        )

    if "template_regions" not in existing_tables:
        op.create_table(
            "template_regions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("template_id", sa.Integer(), sa.ForeignKey("templates.id", ondelete="CASCADE"), nullable=False),
            sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("name", sa.String(128), nullable=False),
            sa.UniqueConstraint("template_id", "name", name="uq_template_regions_name"),
        )

    if "template_properties" not in existing_tables:
        op.create_table(
            "template_properties",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("template_id", sa.Integer(), sa.ForeignKey("templates.id", ondelete="CASCADE"), nullable=False),
            sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("name", sa.String(128), nullable=False),
            sa.Column("value", sa.Text(), nullable=True),
        )

    if "pages" not in existing_tables:
        op.create_table(
            "pages",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("view", sa.String(16), nullable=False, server_default="draft"),
            sa.Column("url", sa.String(512), nullable=False),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("status", sa.Integer(), nullable=False, server_default="200"),
            sa.Column("template_id", sa.Integer(), sa.ForeignKey("templates.id", ondelete="SET NULL"), nullable=True),
            sa.Column("published_at", sa.DateTime(), nullable=True),
            *_audit_columns(),
            sa.UniqueConstraint("view", "url", name="uq_pages_view_url"),
        )

    if "page_regions" not in existing_tables:
        op.create_table(
            "page_regions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("page_id", sa.Integer(), sa.ForeignKey("pages.id", ondelete="CASCADE"), nullable=False),
            sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("name", sa.String(128), nullable=False),
            sa.UniqueConstraint("page_id", "name", name="uq_page_regions_name"),
        )

    if "page_includes" not in existing_tables:
        op.create_table(
            "page_includes",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("region_id", sa.Integer(), sa.ForeignKey("page_regions.id", ondelete="CASCADE"), nullable=False),
            sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("part_id", sa.Integer(), sa.ForeignKey("parts.id", ondelete="SET NULL"), nullable=True),
            sa.Column("data_json", sa.Text(), nullable=True),
        )


def downgrade() -> None:
    for table in (
        "page_includes",
        "page_regions",
        "pages",
        "template_properties",
        "template_regions",
        "templates",
        "parts",
        "audit_events",
        "user_roles",
        "roles",
        "users",
    ):
        op.drop_table(table)
