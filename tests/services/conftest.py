"""Service test fixtures - async DB, purchase engine, seed helpers, FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use the test session factory
    - db_manager patched so get_purchase_engine and readiness use the test DB
    - Balances are read through a fresh session (never a stale identity map)

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for
      sequential engine and route tests (multi-connection races live in
      test_purchase_engine_concurrency.py with a file-backed DB)
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from bookstore.core.domain_types import UserId
from bookstore.db.base import Base
from bookstore.db.session import enable_sqlite_foreign_keys
from bookstore.infrastructure.database import get_db, DatabaseSessionManager
from bookstore.models.book import Book
from bookstore.models.user import User
from bookstore.services.account_store import AccountStore
from bookstore.services.ownership_ledger import OwnershipLedger
from bookstore.services.purchase_engine import PurchaseEngine
import bookstore.infrastructure.database as db_module
from bookstore.main import app


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def purchase_engine(test_session_factory):
    return PurchaseEngine(test_session_factory, max_retries=3, base_delay_ms=0)


@pytest.fixture
def make_user(test_session_factory):
    """Insert a user with a given balance and token. Returns its UserId."""

    async def _make(
        cash: str = "0.00", token: str | None = None, username: str | None = None,
    ) -> UserId:
        async with test_session_factory() as db:
            user = User(
                username=username or f"reader-{uuid4().hex[:12]}",
                password_hash="not-a-real-hash",
                access_token=token,
                cash=Decimal(cash),
            )
            db.add(user)
            await db.commit()
            return UserId(user.id)

    return _make


@pytest.fixture
def make_book(test_session_factory):
    """Insert a catalog book. Returns its id."""

    async def _make(
        price: str = "7.50", title: str = "Dune", author: str = "Frank Herbert",
    ):
        async with test_session_factory() as db:
            book = Book(title=title, author=author, price=Decimal(price))
            db.add(book)
            await db.commit()
            return book.id

    return _make


@pytest.fixture
def balance_of(test_session_factory):
    async def _balance(user_id) -> Decimal:
        async with test_session_factory() as db:
            return await AccountStore(db).get_balance(user_id)

    return _balance


@pytest.fixture
def owned_ids(test_session_factory):
    async def _owned(user_id) -> set:
        async with test_session_factory() as db:
            items = await OwnershipLedger(db).list_owned_items(user_id)
            return {i.item_id for i in items}

    return _owned


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
