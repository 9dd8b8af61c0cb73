"""Initial schema - users, books, user_books.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), nullable=False),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("access_token", sa.String(64), nullable=True),
        sa.Column("cash", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("access_token", name="uq_users_access_token"),
        sa.CheckConstraint("cash >= 0", name="ck_users_cash_non_negative"),
    )

    op.create_table(
        "books",
        sa.Column("id", UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("author", sa.String(200), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_books"),
        sa.CheckConstraint("price >= 0", name="ck_books_price_non_negative"),
    )

    op.create_table(
        "user_books",
        sa.Column("user_id", UUID(as_uuid=True), nullable=False),
        sa.Column("book_id", UUID(as_uuid=True), nullable=False),
        sa.Column("acquired_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("user_id", "book_id", name="pk_user_books"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"],
            name="fk_user_books_user_id_users", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["book_id"], ["books.id"],
            name="fk_user_books_book_id_books", ondelete="RESTRICT",
        ),
    )
    op.create_index("ix_user_books_book_id", "user_books", ["book_id"])


def downgrade() -> None:
    op.drop_index("ix_user_books_book_id", table_name="user_books")
    op.drop_table("user_books")
    op.drop_table("books")
    op.drop_table("users")
