"""Purchase Engine - atomic buy, return, and deposit transitions over balance and ownership.

Invariants:
    - Every call runs in exactly one storage transaction: either the debit and the
      ownership insert (or the delete and the credit) both commit, or neither does
    - The user row is locked before any read that drives a decision, so all
      transitions of one user are totally ordered (lock order: user, then ownership)
    - The debit is a conditional UPDATE (cash >= price): the database, not Python,
      has the last word on overdraft
    - The (user_id, book_id) primary key has the last word on duplicate ownership
    - Business-rule failures are raised immediately and never retried
    - Retryable storage conflicts are re-run from scratch at most max_retries times;
      a surfaced TransactionConflictError means nothing was committed
    - A credit that would push the balance past the cash column's range is
      rejected as InvalidAmountError and the whole unit rolls back
    - No deduplication of identical calls: each call is a fresh attempt

Design Decisions:
    - Engine owns its sessions (injected async_sessionmaker) instead of borrowing the
      request session: a retry needs a clean session, and nothing the request did
      before can leak into the unit
    - Exponential backoff with ±25% jitter between attempts: concurrent losers of the
      same row lock do not retry in lockstep
"""

import asyncio
import logging
import random
from decimal import Decimal
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bookstore.core.domain_types import (
    ItemId, PurchaseReceipt, TransactionKind, TransactionOutcome, UserId,
)
from bookstore.core.errors import (
    AlreadyOwnedError, BookstoreError, DatabaseError, ErrorContext,
    InsufficientFundsError, ItemNotFoundError, NotOwnedError,
    TransactionConflictError, UnauthorizedError,
)
from bookstore.core.repository_protocols import (
    AccountStoreLike, CatalogStoreLike, OwnershipLedgerLike,
)
from bookstore.core.money import (
    check_balance_limit, has_sufficient_funds, validate_deposit,
)
from bookstore.core.transaction_retry import backoff_ms, is_retryable_conflict
from bookstore.services.account_store import AccountStore
from bookstore.services.catalog_store import CatalogStore
from bookstore.services.ownership_ledger import OwnershipLedger

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PurchaseEngine:
    """Runs balance/ownership transitions as retried, all-or-nothing transactions."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_retries: int = 3,
        base_delay_ms: int = 25,
        max_delay_ms: int = 1000,
        rng: random.Random | None = None,
    ):
        self._session_factory = session_factory
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self._rng = rng

    # ─── Public operations ──────────────────────────────────────

    async def buy(self, user_id: UserId, item_id: ItemId) -> PurchaseReceipt:
        """Debit the item's price and record ownership, atomically."""
        context = _context(user_id, item_id)
        return await self._run(
            TransactionKind.BUY, context,
            lambda db: self._buy_once(db, user_id, item_id, context),
        )

    async def return_item(self, user_id: UserId, item_id: ItemId) -> PurchaseReceipt:
        """Delete ownership and refund the current catalog price, atomically."""
        context = _context(user_id, item_id)
        return await self._run(
            TransactionKind.RETURN, context,
            lambda db: self._return_once(db, user_id, item_id, context),
        )

    async def deposit(self, user_id: UserId, amount: Decimal | int | str) -> Decimal:
        """Credit a positive amount; returns the new balance."""
        cents = validate_deposit(amount)
        context = _context(user_id)
        return await self._run(
            TransactionKind.DEPOSIT, context,
            lambda db: self._deposit_once(db, user_id, cents, context),
        )

    # ─── Transaction bodies (one attempt each) ──────────────────

    async def _buy_once(
        self, db: AsyncSession, user_id: UserId, item_id: ItemId,
        context: ErrorContext,
    ) -> PurchaseReceipt:
        accounts, catalog, ledger = _stores(db)

        item = await catalog.get_item(item_id)
        if item is None:
            raise ItemNotFoundError(str(item_id), context)

        balance = await accounts.lock_user(user_id)
        if balance is None:
            raise UnauthorizedError(context)

        if await ledger.is_owned(user_id, item_id):
            raise AlreadyOwnedError(str(item_id), context)

        if not has_sufficient_funds(balance, item.price):
            raise InsufficientFundsError(balance, item.price, context)

        if not await accounts.debit_if_sufficient(user_id, item.price):
            # Balance moved between the read and the guarded UPDATE
            current = await accounts.get_balance(user_id)
            raise InsufficientFundsError(current, item.price, context)

        try:
            await ledger.record(user_id, item_id)
        except IntegrityError:
            # Concurrent buy of the same pair committed first; the debit rolls back
            raise AlreadyOwnedError(str(item_id), context)

        new_balance = await accounts.get_balance(user_id)
        return PurchaseReceipt(
            outcome=TransactionOutcome.OWNED, item_id=item_id,
            price=item.price, balance=new_balance,
        )

    async def _return_once(
        self, db: AsyncSession, user_id: UserId, item_id: ItemId,
        context: ErrorContext,
    ) -> PurchaseReceipt:
        accounts, catalog, ledger = _stores(db)

        balance = await accounts.lock_user(user_id)
        if balance is None:
            raise UnauthorizedError(context)

        if not await ledger.remove(user_id, item_id):
            raise NotOwnedError(str(item_id), context)

        # FK RESTRICT keeps an owned book in the catalog
        item = await catalog.get_item(item_id)
        check_balance_limit(balance, item.price)
        await accounts.credit(user_id, item.price)

        new_balance = await accounts.get_balance(user_id)
        return PurchaseReceipt(
            outcome=TransactionOutcome.RETURNED, item_id=item_id,
            price=item.price, balance=new_balance,
        )

    async def _deposit_once(
        self, db: AsyncSession, user_id: UserId, amount: Decimal,
        context: ErrorContext,
    ) -> Decimal:
        accounts: AccountStoreLike = AccountStore(db)
        balance = await accounts.lock_user(user_id)
        if balance is None:
            raise UnauthorizedError(context)
        check_balance_limit(balance, amount)
        await accounts.credit(user_id, amount)
        return await accounts.get_balance(user_id)

    # ─── Retry loop ─────────────────────────────────────────────

    async def _run(
        self,
        kind: TransactionKind,
        context: ErrorContext,
        body: Callable[[AsyncSession], Awaitable[T]],
    ) -> T:
        """Run body in a fresh transaction, retrying serialization conflicts."""
        log_extra = {
            "operation": kind.value,
            "user_id": context.user_id,
            "item_id": context.item_id,
        }
        for attempt in range(self.max_retries + 1):
            try:
                async with self._session_factory() as db:
                    async with db.begin():
                        result = await body(db)
                logger.info(
                    f"{kind.value} committed",
                    extra={**log_extra, "attempt": attempt + 1, "outcome": "committed"},
                )
                return result

            except BookstoreError as e:
                logger.info(
                    f"{kind.value} rejected: {e.code}",
                    extra={**log_extra, "error_code": e.code, "outcome": "rejected"},
                )
                raise

            except DBAPIError as e:
                if not is_retryable_conflict(e):
                    logger.error(
                        f"{kind.value} failed: {e}",
                        extra={**log_extra, "attempt": attempt + 1},
                    )
                    raise DatabaseError("Transaction aborted", kind.value, context)
                await self._handle_conflict(e, attempt, kind, context, log_extra)

            except SQLAlchemyError as e:
                logger.error(
                    f"{kind.value} failed: {e}",
                    extra={**log_extra, "attempt": attempt + 1},
                )
                raise DatabaseError("Transaction aborted", kind.value, context)

        # Unreachable: the last attempt either returns or raises
        raise TransactionConflictError(self.max_retries + 1, context=context)

    async def _handle_conflict(
        self,
        e: Exception,
        attempt: int,
        kind: TransactionKind,
        context: ErrorContext,
        log_extra: dict,
    ) -> None:
        """Sleep before the next attempt, or raise once retries are exhausted."""
        if attempt >= self.max_retries:
            logger.warning(
                f"{kind.value} gave up after {attempt + 1} attempt(s): {e}",
                extra={**log_extra, "attempt": attempt + 1, "outcome": "conflict"},
            )
            raise TransactionConflictError(
                attempt + 1,
                retry_after_ms=self._backoff(attempt),
                context=context,
            )
        delay = self._backoff(attempt)
        logger.warning(
            f"{kind.value} conflict, retry after {delay}ms (attempt {attempt + 1})",
            extra={**log_extra, "attempt": attempt + 1, "delay_ms": delay},
        )
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        return backoff_ms(
            attempt, self.base_delay_ms, self.max_delay_ms, self._rng,
        )


def _stores(
    db: AsyncSession,
) -> tuple[AccountStoreLike, CatalogStoreLike, OwnershipLedgerLike]:
    return AccountStore(db), CatalogStore(db), OwnershipLedger(db)


def _context(user_id: UserId, item_id: ItemId | None = None) -> ErrorContext:
    return ErrorContext(
        user_id=str(user_id),
        item_id=str(item_id) if item_id is not None else None,
    )
