"""Account Store - users, balances, and tokens on top of an AsyncSession.

Invariants:
    - Balance writes are single UPDATE statements evaluated by the database
      (cash = cash +/- amount), never a Python read-modify-write
    - debit_if_sufficient() only succeeds when the row still has cash >= amount
      at the moment the UPDATE runs
    - lock_user() takes a row lock (SELECT ... FOR UPDATE) on PostgreSQL and
      the database write lock on SQLite; either way it is held until commit

Design Decisions:
    - Store wraps the caller's session: it joins whatever transaction is open,
      so the engine can span account, catalog and ownership writes in one unit
"""

import logging
from decimal import Decimal

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bookstore.core.domain_types import UserId, UserIdentity
from bookstore.models.user import User

logger = logging.getLogger(__name__)


class AccountStore:
    """Persistence for user accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_token(self, token: str) -> UserIdentity | None:
        result = await self.db.execute(
            select(User.id, User.username).where(User.access_token == token),
        )
        row = result.one_or_none()
        if row is None:
            return None
        return UserIdentity(user_id=UserId(row.id), username=row.username)

    async def get_by_username(self, username: str) -> User | None:
        result = await self.db.execute(
            select(User).where(User.username == username),
        )
        return result.scalar_one_or_none()

    async def get_balance(self, user_id: UserId) -> Decimal | None:
        result = await self.db.execute(
            select(User.cash).where(User.id == user_id),
        )
        return result.scalar_one_or_none()

    async def lock_user(self, user_id: UserId) -> Decimal | None:
        """Lock the user row for the rest of the transaction; returns the balance.

        SQLite has no row locks and ignores FOR UPDATE. There a no-op write
        opens the transaction instead, taking the database write lock before
        any decision-driving read.
        """
        if self.db.get_bind().dialect.name == "sqlite":
            touched = await self.db.execute(
                update(User)
                .where(User.id == user_id)
                .values(cash=User.cash)
                .execution_options(synchronize_session=False),
            )
            if touched.rowcount == 0:
                return None
            return await self.get_balance(user_id)
        result = await self.db.execute(
            select(User.cash).where(User.id == user_id).with_for_update(),
        )
        return result.scalar_one_or_none()

    async def debit_if_sufficient(self, user_id: UserId, amount: Decimal) -> bool:
        """Subtract amount unless it would overdraw. Returns False if nothing changed."""
        result = await self.db.execute(
            update(User)
            .where(User.id == user_id, User.cash >= amount)
            .values(cash=User.cash - amount)
            .execution_options(synchronize_session=False),
        )
        return result.rowcount == 1

    async def credit(self, user_id: UserId, amount: Decimal) -> None:
        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(cash=User.cash + amount)
            .execution_options(synchronize_session=False),
        )

    async def create(
        self, username: str, password_hash: str, token: str,
    ) -> User:
        user = User(
            username=username, password_hash=password_hash,
            access_token=token, cash=Decimal("0.00"),
        )
        self.db.add(user)
        await self.db.flush()
        return user

    async def set_token(self, user_id: UserId, token: str | None) -> None:
        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(access_token=token)
            .execution_options(synchronize_session=False),
        )

    async def delete(self, user_id: UserId) -> None:
        await self.db.execute(
            delete(User)
            .where(User.id == user_id)
            .execution_options(synchronize_session=False),
        )
