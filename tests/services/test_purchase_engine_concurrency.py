"""Purchase Engine under concurrency - real parallel transactions on separate connections.

Invariants:
    - Balance equal to one price, two concurrent buys of different books at that
      price: exactly one Owned and one InsufficientFunds
    - Concurrent buys of the same (user, book): exactly one ownership record,
      exactly one debit
    - Concurrent buy + return on the same pair: balance stays consistent with
      the final ownership state
    - Concurrent deposits: no lost updates

Design Decisions:
    - File-backed SQLite (tmp_path) so each task gets its own connection and
      aiosqlite thread; writers genuinely contend for the database lock
"""

import asyncio
from decimal import Decimal

import pytest

from bookstore.core.domain_types import TransactionOutcome
from bookstore.core.errors import AlreadyOwnedError, InsufficientFundsError
from bookstore.db.base import Base
from bookstore.db.session import create_session_factory
from bookstore.models.book import Book
from bookstore.models.user import User
from bookstore.services.account_store import AccountStore
from bookstore.services.ownership_ledger import OwnershipLedger
from bookstore.services.purchase_engine import PurchaseEngine


@pytest.fixture
async def race_factory(tmp_path):
    factory = create_session_factory(
        f"sqlite+aiosqlite:///{tmp_path / 'race.db'}",
    )
    engine = factory.kw["bind"]
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield factory
    await engine.dispose()


@pytest.fixture
def race_engine(race_factory):
    return PurchaseEngine(race_factory, max_retries=5, base_delay_ms=5)


async def _seed(factory, cash: str, prices: list[str]):
    async with factory() as db:
        user = User(
            username="racer", password_hash="x", cash=Decimal(cash),
        )
        books = [
            Book(title=f"Book {i}", author="Anon", price=Decimal(p))
            for i, p in enumerate(prices)
        ]
        db.add(user)
        db.add_all(books)
        await db.commit()
        return user.id, [b.id for b in books]


async def _state(factory, user_id):
    async with factory() as db:
        balance = await AccountStore(db).get_balance(user_id)
        owned = await OwnershipLedger(db).list_owned_items(user_id)
        return balance, [i.item_id for i in owned]


def _outcomes(results):
    return sorted(
        r.outcome.value if hasattr(r, "outcome") else type(r).__name__
        for r in results
    )


async def test_two_buys_with_funds_for_one(race_factory, race_engine):
    user, (book_a, book_b) = await _seed(race_factory, "7.50", ["7.50", "7.50"])

    results = await asyncio.gather(
        race_engine.buy(user, book_a),
        race_engine.buy(user, book_b),
        return_exceptions=True,
    )

    assert _outcomes(results) == ["InsufficientFundsError", "owned"]
    balance, owned = await _state(race_factory, user)
    assert balance == Decimal("0.00")
    assert len(owned) == 1


async def test_same_book_bought_twice_concurrently(race_factory, race_engine):
    user, (book,) = await _seed(race_factory, "20.00", ["7.50"])

    results = await asyncio.gather(
        race_engine.buy(user, book),
        race_engine.buy(user, book),
        return_exceptions=True,
    )

    assert _outcomes(results) == ["AlreadyOwnedError", "owned"]
    balance, owned = await _state(race_factory, user)
    assert balance == Decimal("12.50")
    assert owned == [book]


async def test_many_buys_never_overdraw(race_factory, race_engine):
    user, books = await _seed(race_factory, "10.00", ["3.00"] * 5)

    results = await asyncio.gather(
        *(race_engine.buy(user, b) for b in books),
        return_exceptions=True,
    )

    owned_results = [r for r in results if not isinstance(r, Exception)]
    rejected = [r for r in results if isinstance(r, Exception)]
    assert len(owned_results) == 3
    assert all(isinstance(r, InsufficientFundsError) for r in rejected)
    balance, owned = await _state(race_factory, user)
    assert balance == Decimal("1.00")
    assert len(owned) == 3


async def test_buy_and_return_race_stays_consistent(race_factory, race_engine):
    user, (book,) = await _seed(race_factory, "7.50", ["7.50"])
    await race_engine.buy(user, book)

    results = await asyncio.gather(
        race_engine.buy(user, book),
        race_engine.return_item(user, book),
        return_exceptions=True,
    )

    buy_result, return_result = results
    assert getattr(return_result, "outcome", None) == TransactionOutcome.RETURNED
    balance, owned = await _state(race_factory, user)
    if isinstance(buy_result, AlreadyOwnedError):
        assert owned == [] and balance == Decimal("7.50")
    else:
        assert buy_result.outcome == TransactionOutcome.OWNED
        assert owned == [book] and balance == Decimal("0.00")


async def test_concurrent_deposits_do_not_lose_updates(race_factory, race_engine):
    user, _ = await _seed(race_factory, "0.00", [])

    await asyncio.gather(
        *(race_engine.deposit(user, Decimal("1.25")) for _ in range(8)),
    )

    balance, _ = await _state(race_factory, user)
    assert balance == Decimal("10.00")
