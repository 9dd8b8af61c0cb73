"""Purchase Engine retry loop - bounded retries of storage conflicts with full rollback.

Invariants:
    - Retryable conflicts re-run the whole transaction from scratch
    - After max_retries + 1 attempts the caller gets TransactionConflictError
      and nothing was committed
    - Non-retryable storage errors fail at once as DatabaseError
    - Business-rule errors are never retried
    - A conflict after some writes already ran (debit, ownership delete, credit)
      still leaves balance and ownership exactly as before the call
"""

import random
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from bookstore.core.errors import (
    DatabaseError, InsufficientFundsError, TransactionConflictError,
)
from bookstore.services.account_store import AccountStore
from bookstore.services.ownership_ledger import OwnershipLedger
from bookstore.services.purchase_engine import PurchaseEngine


def _locked() -> OperationalError:
    return OperationalError("UPDATE users", {}, Exception("database is locked"))


def _flaky(original, failures: int, error_factory=_locked):
    """Wrap a transaction body so its first `failures` calls raise."""
    calls = {"count": 0}

    async def _body(*args, **kwargs):
        calls["count"] += 1
        if calls["count"] <= failures:
            raise error_factory()
        return await original(*args, **kwargs)

    return _body, calls


async def test_buy_succeeds_after_transient_conflicts(
    purchase_engine, make_user, make_book, balance_of, owned_ids, monkeypatch,
):
    user = await make_user(cash="10.00")
    book = await make_book(price="7.50")
    body, calls = _flaky(purchase_engine._buy_once, failures=2)
    monkeypatch.setattr(purchase_engine, "_buy_once", body)

    receipt = await purchase_engine.buy(user, book)

    assert calls["count"] == 3
    assert receipt.balance == Decimal("2.50")
    assert await owned_ids(user) == {book}


async def test_buy_gives_up_after_max_retries(
    test_session_factory, make_user, make_book, balance_of, owned_ids,
    monkeypatch,
):
    engine = PurchaseEngine(
        test_session_factory, max_retries=2, base_delay_ms=0,
        rng=random.Random(7),
    )
    user = await make_user(cash="10.00")
    book = await make_book(price="7.50")
    body, calls = _flaky(engine._buy_once, failures=99)
    monkeypatch.setattr(engine, "_buy_once", body)

    with pytest.raises(TransactionConflictError) as exc_info:
        await engine.buy(user, book)

    assert calls["count"] == 3
    assert exc_info.value.attempts == 3
    assert exc_info.value.http_status == 503
    assert await balance_of(user) == Decimal("10.00")
    assert await owned_ids(user) == set()


async def test_zero_retries_fails_on_first_conflict(
    test_session_factory, make_user, make_book, monkeypatch,
):
    engine = PurchaseEngine(test_session_factory, max_retries=0, base_delay_ms=0)
    user = await make_user(cash="10.00")
    book = await make_book()
    body, calls = _flaky(engine._return_once, failures=1)
    monkeypatch.setattr(engine, "_return_once", body)

    with pytest.raises(TransactionConflictError):
        await engine.return_item(user, book)

    assert calls["count"] == 1


async def test_non_retryable_storage_error_is_database_error(
    purchase_engine, make_user, make_book, balance_of, monkeypatch,
):
    user = await make_user(cash="10.00")
    book = await make_book()
    body, calls = _flaky(
        purchase_engine._buy_once, failures=99,
        error_factory=lambda: OperationalError("SELECT", {}, Exception("disk I/O error")),
    )
    monkeypatch.setattr(purchase_engine, "_buy_once", body)

    with pytest.raises(DatabaseError):
        await purchase_engine.buy(user, book)

    assert calls["count"] == 1
    assert await balance_of(user) == Decimal("10.00")


async def test_business_rule_errors_are_not_retried(
    purchase_engine, make_user, make_book, monkeypatch,
):
    user = await make_user(cash="1.00")
    book = await make_book(price="7.50")
    body, calls = _flaky(purchase_engine._buy_once, failures=0)
    monkeypatch.setattr(purchase_engine, "_buy_once", body)

    with pytest.raises(InsufficientFundsError):
        await purchase_engine.buy(user, book)

    assert calls["count"] == 1


async def test_deposit_retries_conflicts(
    purchase_engine, make_user, balance_of, monkeypatch,
):
    user = await make_user(cash="0.00")
    body, calls = _flaky(purchase_engine._deposit_once, failures=1)
    monkeypatch.setattr(purchase_engine, "_deposit_once", body)

    balance = await purchase_engine.deposit(user, "3.00")

    assert calls["count"] == 2
    assert balance == Decimal("3.00")
    assert await balance_of(user) == Decimal("3.00")


# ─── Conflicts after partial writes ──────────────────────────────

async def test_conflict_after_debit_rolls_back_debit(
    purchase_engine, make_user, make_book, balance_of, owned_ids, monkeypatch,
):
    user = await make_user(cash="10.00")
    book = await make_book(price="7.50")

    async def _record_locked(self, user_id, item_id):
        raise _locked()

    monkeypatch.setattr(OwnershipLedger, "record", _record_locked)

    with pytest.raises(TransactionConflictError):
        await purchase_engine.buy(user, book)

    assert await balance_of(user) == Decimal("10.00")
    assert await owned_ids(user) == set()


async def test_conflict_after_refund_rolls_back_return(
    purchase_engine, make_user, make_book, balance_of, owned_ids, monkeypatch,
):
    user = await make_user(cash="10.00")
    book = await make_book(price="7.50")
    await purchase_engine.buy(user, book)
    real_credit = AccountStore.credit

    async def _credit_then_locked(self, user_id, amount):
        await real_credit(self, user_id, amount)
        raise _locked()

    monkeypatch.setattr(AccountStore, "credit", _credit_then_locked)

    with pytest.raises(TransactionConflictError):
        await purchase_engine.return_item(user, book)

    assert await balance_of(user) == Decimal("2.50")
    assert await owned_ids(user) == {book}
