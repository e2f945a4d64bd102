"""Create dashboard, dashboard_public and annotation tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _has_table(inspector: sa.Inspector, table_name: str) -> bool:
    return table_name in inspector.get_table_names()


def _has_index(inspector: sa.Inspector, table_name: str, index_name: str) -> bool:
    return any(index["name"] == index_name for index in inspector.get_indexes(table_name))


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not _has_table(inspector, "dashboard"):
        op.create_table(
            "dashboard",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("uid", sa.String(length=40), nullable=False),
            sa.Column("org_id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=255), nullable=False),
            sa.Column("data", sa.JSON(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("org_id", "uid", name="dashboard_org_uid_key"),
        )
        inspector = sa.inspect(bind)

    if not _has_index(inspector, "dashboard", "ix_dashboard_id"):
        op.create_index("ix_dashboard_id", "dashboard", ["id"], unique=False)

    if not _has_table(inspector, "dashboard_public"):
        op.create_table(
            "dashboard_public",
            sa.Column("uid", sa.String(length=40), nullable=False),
            sa.Column("dashboard_uid", sa.String(length=40), nullable=False),
            sa.Column("org_id", sa.Integer(), nullable=False),
            sa.Column("access_token", sa.String(length=32), nullable=False),
            sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("annotations_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("time_settings", sa.Text(), nullable=False, server_default="{}"),
            sa.Column("created_by", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_by", sa.Integer(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("uid"),
            sa.UniqueConstraint("access_token"),
        )
        inspector = sa.inspect(bind)

    if not _has_index(inspector, "dashboard_public", "dashboard_public_org_dashboard_uid_idx"):
        op.create_index(
            "dashboard_public_org_dashboard_uid_idx",
            "dashboard_public",
            ["org_id", "dashboard_uid"],
            unique=False,
        )

    if not _has_table(inspector, "annotation"):
        op.create_table(
            "annotation",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("org_id", sa.Integer(), nullable=False),
            sa.Column("dashboard_id", sa.Integer(), nullable=True),
            sa.Column("dashboard_uid", sa.String(length=40), nullable=True),
            sa.Column("panel_id", sa.Integer(), nullable=True),
            sa.Column("epoch", sa.BigInteger(), nullable=False),
            sa.Column("epoch_end", sa.BigInteger(), nullable=False),
            sa.Column("text", sa.Text(), nullable=False),
            sa.Column("tags", sa.JSON(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        inspector = sa.inspect(bind)

    if not _has_index(inspector, "annotation", "ix_annotation_id"):
        op.create_index("ix_annotation_id", "annotation", ["id"], unique=False)
    if not _has_index(inspector, "annotation", "annotation_org_epoch_idx"):
        op.create_index("annotation_org_epoch_idx", "annotation", ["org_id", "epoch", "epoch_end"], unique=False)
    if not _has_index(inspector, "annotation", "annotation_dashboard_idx"):
        op.create_index("annotation_dashboard_idx", "annotation", ["org_id", "dashboard_id"], unique=False)


def downgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if _has_table(inspector, "annotation"):
        op.drop_table("annotation")
    if _has_table(inspector, "dashboard_public"):
        op.drop_table("dashboard_public")
    if _has_table(inspector, "dashboard"):
        op.drop_table("dashboard")
