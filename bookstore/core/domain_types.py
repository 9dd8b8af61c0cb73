"""Domain Types - rich types that replace bare primitives across the codebase.

Invariants:
    - UserId and ItemId wrap UUIDs; never pass a bare UUID where the other is expected
    - Money is always a Decimal quantized to cents (see core/money.py)
    - Records handed out of the stores are frozen: callers cannot mutate persisted state through them

Design Decisions:
    - NewType over dataclass wrappers for ids: zero runtime cost, full type-checker support
    - Frozen dataclasses for records instead of ORM objects: a detached snapshot
      stays valid after the store's session closes
    - str Enums: serialize to JSON without custom encoders
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", UUID)
ItemId = NewType("ItemId", UUID)


# ─── Enums ───────────────────────────────────────────────────────

class TransactionKind(str, Enum):
    """Balance-changing operations performed by the purchase engine."""
    BUY = "buy"
    RETURN = "return"
    DEPOSIT = "deposit"


class TransactionOutcome(str, Enum):
    """Successful end states reported to the caller."""
    OWNED = "owned"
    RETURNED = "returned"


# ─── Records ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class UserIdentity:
    """A user resolved from an access token."""
    user_id: UserId
    username: str


@dataclass(frozen=True)
class Item:
    """A catalog entry. Price is immutable for purchase purposes."""
    item_id: ItemId
    title: str
    author: str
    price: Decimal


@dataclass(frozen=True)
class PurchaseReceipt:
    """Result of a committed buy or return."""
    outcome: TransactionOutcome
    item_id: ItemId
    price: Decimal
    balance: Decimal
