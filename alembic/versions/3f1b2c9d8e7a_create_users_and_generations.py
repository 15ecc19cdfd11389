"""create_users_and_generations

Revision ID: 3f1b2c9d8e7a
Revises:
Create Date: 2026-10-19 10:12:41.208315

"""

from typing import Sequence, Union

import sqlalchemy as sa
import sqlmodel

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1b2c9d8e7a"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users and generations tables."""
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column("password_hash", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "generations",
        sa.Column("row_id", sa.Integer(), nullable=False),
        sa.Column("id", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("prompt", sqlmodel.sql.sqltypes.AutoString(length=500), nullable=False),
        sa.Column(
            "style",
            sa.Enum("REALISTIC", "ARTISTIC", "CARTOON", "VINTAGE", name="generationstyle"),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum("PROCESSING", "COMPLETED", "FAILED", name="generationstatus"),
            nullable=False,
        ),
        sa.Column("image_path", sqlmodel.sql.sqltypes.AutoString(length=1024), nullable=False),
        sa.Column(
            "result_image_path", sqlmodel.sql.sqltypes.AutoString(length=1024), nullable=True
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("row_id"),
    )
    op.create_index(op.f("ix_generations_id"), "generations", ["id"], unique=True)
    op.create_index(op.f("ix_generations_user_id"), "generations", ["user_id"], unique=False)
    op.create_index(op.f("ix_generations_status"), "generations", ["status"], unique=False)
    op.create_index(
        op.f("ix_generations_created_at"), "generations", ["created_at"], unique=False
    )


def downgrade() -> None:
    """Drop generations and users tables."""
    op.drop_index(op.f("ix_generations_created_at"), table_name="generations")
    op.drop_index(op.f("ix_generations_status"), table_name="generations")
    op.drop_index(op.f("ix_generations_user_id"), table_name="generations")
    op.drop_index(op.f("ix_generations_id"), table_name="generations")
    op.drop_table("generations")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
    sa.Enum(name="generationstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="generationstyle").drop(op.get_bind(), checkfirst=True)
