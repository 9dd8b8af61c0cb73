"""Ownership Ledger - which user owns which book.

Invariants:
    - At most one row per (user, book); record() surfaces a duplicate as
      IntegrityError at flush time so the engine can roll back the whole unit
    - remove() reports whether a row was actually deleted
    - list_owned_items() returns an empty list, not an error, for users owning nothing
"""

from sqlalchemy import delete, exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from bookstore.core.domain_types import Item, ItemId, UserId
from bookstore.models.book import Book
from bookstore.models.user_book import UserBook
from bookstore.services.catalog_store import to_item


class OwnershipLedger:
    """Persistence for ownership records."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def is_owned(self, user_id: UserId, item_id: ItemId) -> bool:
        result = await self.db.execute(
            select(
                exists().where(
                    UserBook.user_id == user_id, UserBook.book_id == item_id,
                ),
            ),
        )
        return bool(result.scalar())

    async def record(self, user_id: UserId, item_id: ItemId) -> None:
        self.db.add(UserBook(user_id=user_id, book_id=item_id))
        await self.db.flush()

    async def remove(self, user_id: UserId, item_id: ItemId) -> bool:
        result = await self.db.execute(
            delete(UserBook)
            .where(UserBook.user_id == user_id, UserBook.book_id == item_id)
            .execution_options(synchronize_session=False),
        )
        return result.rowcount == 1

    async def remove_all(self, user_id: UserId) -> int:
        result = await self.db.execute(
            delete(UserBook)
            .where(UserBook.user_id == user_id)
            .execution_options(synchronize_session=False),
        )
        return result.rowcount

    async def list_owned_items(self, user_id: UserId) -> list[Item]:
        result = await self.db.execute(
            select(Book)
            .join(UserBook, UserBook.book_id == Book.id)
            .where(UserBook.user_id == user_id)
            .order_by(UserBook.acquired_at, Book.title),
        )
        return [to_item(b) for b in result.scalars().all()]
