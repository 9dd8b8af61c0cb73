"""User ORM - account, credential hash, session token, and cash balance.

Invariants:
    - username is unique; access_token is unique when set (NULL means signed out)
    - cash is Numeric(12, 2) and never negative (CHECK constraint backs the engine's guard)
    - password_hash holds a bcrypt hash, never a plaintext password

Design Decisions:
    - Token stored on the user row: one active session per user, resolved by equality lookup
    - cascade delete for owned books: deleting an account removes its ownership records
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from bookstore.db.base import Base


class User(Base):
    """User account with its cash balance."""
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("cash >= 0", name="cash_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    username: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True,
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    access_token: Mapped[str | None] = mapped_column(
        String(64), nullable=True, unique=True,
    )
    cash: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00"),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    owned_books: Mapped[list["UserBook"]] = relationship(
        "UserBook", back_populates="user",
        cascade="all, delete-orphan", passive_deletes=True,
    )
