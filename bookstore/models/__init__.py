"""ORM Models - SQLAlchemy declarative models for users, books, and ownership.

Invariants:
    - All models inherit from Base (db/base.py)
    - User and Book are independent roots; UserBook links them

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from bookstore.models.user import User  # noqa: F401
from bookstore.models.book import Book  # noqa: F401
from bookstore.models.user_book import UserBook  # noqa: F401
