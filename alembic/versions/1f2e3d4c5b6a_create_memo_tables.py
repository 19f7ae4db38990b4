"""create memo tables

Revision ID: 1f2e3d4c5b6a
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "1f2e3d4c5b6a"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "updated_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP(0)"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP(0)"),
        ),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    # 创建用户表
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=30), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column(
            "is_email_verified",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("email_verification_token", sa.String(length=16), nullable=True),
        sa.Column("email_verification_expires", sa.DateTime(), nullable=True),
        sa.Column(
            "role",
            sa.String(length=32),
            nullable=False,
            server_default=sa.text("'user'"),
        ),
        sa.Column(
            "status",
            sa.String(length=32),
            nullable=False,
            server_default=sa.text("'active'"),
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_users_id"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    # 创建设计模板表
    op.create_table(
        "design_templates",
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("background_color", sa.String(length=7), nullable=False),
        sa.Column("text_color", sa.String(length=7), nullable=False),
        sa.Column("border_style", sa.String(length=200), nullable=False),
        sa.Column("shadow_style", sa.String(length=200), nullable=False),
        sa.Column("preview", sa.String(length=10), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_design_templates_id"),
    )

    # 创建备忘录表
    op.create_table(
        "memos",
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("template_id", sa.String(length=255), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=True),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
        sa.Column(
            "attached_files",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_memos_id"),
        sa.ForeignKeyConstraint(
            ["template_id"],
            ["design_templates.id"],
            name="fk_memos_template_id_design_templates",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="fk_memos_user_id_users",
            ondelete="SET NULL",
        ),
    )
    op.create_index("ix_memos_template_id", "memos", ["template_id"])
    op.create_index("ix_memos_user_id", "memos", ["user_id"])
    op.create_index("ix_memos_created_at", "memos", ["created_at"])

    # 创建文件表，原始文件与尺寸变体信息存放在metadata列
    op.create_table(
        "files",
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column(
            "original_name",
            sa.String(length=255),
            nullable=False,
            server_default=sa.text("''::character varying"),
        ),
        sa.Column("domain", sa.String(length=32), nullable=False),
        sa.Column("reference_id", sa.String(length=255), nullable=False),
        sa.Column("uploaded_by", sa.String(length=255), nullable=False),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "status",
            sa.String(length=32),
            nullable=False,
            server_default=sa.text("'active'"),
        ),
        sa.Column(
            "tags",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "description",
            sa.Text(),
            nullable=False,
            server_default=sa.text("''::text"),
        ),
        sa.Column(
            "is_public",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column(
            "download_count",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column(
            "view_count",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column("last_accessed_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_files_id"),
    )
    op.create_index("ix_files_domain_reference_id", "files", ["domain", "reference_id"])
    op.create_index(
        "ix_files_uploaded_by_created_at", "files", ["uploaded_by", "created_at"]
    )
    op.create_index("ix_files_status", "files", ["status"])
    op.create_index("ix_files_expires_at", "files", ["expires_at"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_files_expires_at", table_name="files")
    op.drop_index("ix_files_status", table_name="files")
    op.drop_index("ix_files_uploaded_by_created_at", table_name="files")
    op.drop_index("ix_files_domain_reference_id", table_name="files")
    op.drop_table("files")

    op.drop_index("ix_memos_created_at", table_name="memos")
    op.drop_index("ix_memos_user_id", table_name="memos")
    op.drop_index("ix_memos_template_id", table_name="memos")
    op.drop_table("memos")

    op.drop_table("design_templates")
    op.drop_table("users")
