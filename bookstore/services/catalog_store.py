"""Catalog Store - read-only access to purchasable books.

Invariants:
    - Never writes; listing is a consistent snapshot, stale reads acceptable
    - Results are frozen Item records, ordered by title then author
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bookstore.core.domain_types import Item, ItemId
from bookstore.models.book import Book


def to_item(book: Book) -> Item:
    return Item(
        item_id=ItemId(book.id), title=book.title,
        author=book.author, price=book.price,
    )


class CatalogStore:
    """Persistence for catalog items."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_item(self, item_id: ItemId) -> Item | None:
        book = await self.db.get(Book, item_id)
        return to_item(book) if book else None

    async def list_items(self) -> list[Item]:
        result = await self.db.execute(
            select(Book).order_by(Book.title, Book.author, Book.id),
        )
        return [to_item(b) for b in result.scalars().all()]

    async def count(self) -> int:
        return await self.db.scalar(select(func.count()).select_from(Book))
