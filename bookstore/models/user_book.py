"""UserBook ORM - the ownership ledger: one row per (user, book) currently owned.

Invariants:
    - Composite primary key (user_id, book_id): a user owns a book at most once
    - Both FKs enforced; user deletion cascades, book deletion is restricted

Design Decisions:
    - No quantity column: ownership is boolean
    - The primary key doubles as the uniqueness guard for concurrent purchases
      (second insert fails with IntegrityError, the engine reports AlreadyOwned)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from bookstore.db.base import Base


class UserBook(Base):
    """Ownership record linking a user to a book."""
    __tablename__ = "user_books"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    book_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("books.id", ondelete="RESTRICT"),
        primary_key=True, index=True,
    )
    acquired_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="owned_books")
    book: Mapped["Book"] = relationship("Book")
