"""Book Schemas - public catalog entries."""

from uuid import UUID

from pydantic import BaseModel

from bookstore.core.domain_types import Item
from bookstore.core.money import format_money


class BookResponse(BaseModel):
    """Catalog entry as returned by the API."""
    id: UUID
    title: str
    author: str
    price: str

    @classmethod
    def from_item(cls, item: Item) -> "BookResponse":
        return cls(
            id=item.item_id, title=item.title,
            author=item.author, price=format_money(item.price),
        )
