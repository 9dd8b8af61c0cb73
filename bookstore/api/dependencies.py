"""Request Dependencies - token resolution, purchase engine, and password hasher.

Invariants:
    - get_current_user runs before any business logic on user-scoped routes
    - The Access-Token header is passed through verbatim (no stripping, no case folding)
    - db_manager is looked up at call time, so startup (or a test) can replace it
    - get_current_user hands its pooled connection back before returning: a request
      never holds one connection while the purchase engine waits for another
"""

from functools import lru_cache

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from bookstore.config import get_settings
from bookstore.core.domain_types import UserIdentity
from bookstore.infrastructure import database
from bookstore.infrastructure.database import get_db
from bookstore.infrastructure.password_hasher import PasswordHasher
from bookstore.services.purchase_engine import PurchaseEngine
from bookstore.services.session_resolver import SessionResolver


async def get_current_user(
    access_token: str | None = Header(None, alias="Access-Token"),
    db: AsyncSession = Depends(get_db),
) -> UserIdentity:
    try:
        return await SessionResolver(db).resolve(access_token)
    finally:
        # The session stays usable; the next query checks out a connection again
        await db.close()


def get_purchase_engine() -> PurchaseEngine:
    if not database.db_manager:
        raise RuntimeError("Database not initialized")
    settings = get_settings()
    return PurchaseEngine(
        database.db_manager.session_factory,
        max_retries=settings.transaction_max_retries,
        base_delay_ms=settings.transaction_base_delay_ms,
        max_delay_ms=settings.transaction_max_delay_ms,
    )


@lru_cache
def _hasher_for(rounds: int) -> PasswordHasher:
    return PasswordHasher(rounds)


def get_password_hasher() -> PasswordHasher:
    return _hasher_for(get_settings().password_hash_rounds)
