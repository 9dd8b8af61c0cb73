"""Boundary Protocols - contracts between the purchase engine and the stores.

Invariants:
    - Core NEVER imports from shell: dependency arrows point inward only
    - Store writes never commit; the caller owns the transaction boundary
    - lock_user() must be called before any balance or ownership write in a
      transaction, so every transition of one user happens in a single total order

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Async in Protocol: implementations do IO, the engine orchestrates them
"""

from decimal import Decimal
from typing import Protocol

from bookstore.core.domain_types import Item, ItemId, UserId, UserIdentity


class AccountStoreLike(Protocol):
    """Contract for users, balances and tokens."""
    async def get_by_token(self, token: str) -> UserIdentity | None: ...
    async def get_balance(self, user_id: UserId) -> Decimal | None: ...
    async def lock_user(self, user_id: UserId) -> Decimal | None: ...
    async def debit_if_sufficient(self, user_id: UserId, amount: Decimal) -> bool: ...
    async def credit(self, user_id: UserId, amount: Decimal) -> None: ...


class CatalogStoreLike(Protocol):
    """Contract for the read-only catalog."""
    async def get_item(self, item_id: ItemId) -> Item | None: ...
    async def list_items(self) -> list[Item]: ...


class OwnershipLedgerLike(Protocol):
    """Contract for (user, item) ownership facts."""
    async def is_owned(self, user_id: UserId, item_id: ItemId) -> bool: ...
    async def record(self, user_id: UserId, item_id: ItemId) -> None: ...
    async def remove(self, user_id: UserId, item_id: ItemId) -> bool: ...
    async def list_owned_items(self, user_id: UserId) -> list[Item]: ...
