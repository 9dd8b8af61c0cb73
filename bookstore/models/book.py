"""Book ORM - catalog entry with a fixed price.

Invariants:
    - price is Numeric(12, 2) and never negative
    - Rows are read-only to the application (no admin surface)
"""

import uuid
from decimal import Decimal

from sqlalchemy import CheckConstraint, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from bookstore.db.base import Base


class Book(Base):
    """Purchasable catalog item."""
    __tablename__ = "books"
    __table_args__ = (
        CheckConstraint("price >= 0", name="price_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    author: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
