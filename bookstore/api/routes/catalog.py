"""Catalog Routes - unauthenticated listing of every book for sale."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bookstore.infrastructure.database import get_db
from bookstore.schemas.books import BookResponse
from bookstore.services.catalog_store import CatalogStore

router = APIRouter(prefix="/api/v1/books", tags=["catalog"])


@router.get("", response_model=list[BookResponse])
async def list_books(db: AsyncSession = Depends(get_db)):
    items = await CatalogStore(db).list_items()
    return [BookResponse.from_item(i) for i in items]
