"""Money Rules - cent quantization, funds checks, and deposit validation.

Invariants:
    - Every amount leaving this module has exactly 2 fractional digits
    - Amounts with sub-cent precision are rejected, never rounded silently
    - A balance is sufficient iff balance >= price (equality buys the item)
    - No credit may lift a balance past MAX_BALANCE, the largest value the
      Numeric(12, 2) cash column holds
"""

from decimal import Decimal, InvalidOperation

from bookstore.core.errors import InvalidAmountError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
MAX_DEPOSIT = Decimal("1000000.00")
MAX_BALANCE = Decimal("9999999999.99")


def to_money(value: Decimal | int | str) -> Decimal:
    """Quantize a value to cents. Raises InvalidAmountError on sub-cent input."""
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(f"Not a valid amount: {value!r}")
    if not amount.is_finite():
        raise InvalidAmountError(f"Not a valid amount: {value!r}")
    quantized = amount.quantize(CENT)
    if quantized != amount:
        raise InvalidAmountError("Amounts are limited to 2 decimal places")
    return quantized


def has_sufficient_funds(balance: Decimal, price: Decimal) -> bool:
    return balance >= price


def validate_deposit(value: Decimal | int | str) -> Decimal:
    """Return the deposit as cents, or raise InvalidAmountError."""
    amount = to_money(value)
    if amount <= ZERO:
        raise InvalidAmountError("Deposit amount must be positive")
    if amount > MAX_DEPOSIT:
        raise InvalidAmountError(f"Deposit amount must not exceed {MAX_DEPOSIT}")
    return amount


def check_balance_limit(balance: Decimal, amount: Decimal) -> None:
    """Raise InvalidAmountError if crediting amount would overflow the balance."""
    if balance + amount > MAX_BALANCE:
        raise InvalidAmountError(f"Balance cannot exceed {MAX_BALANCE}")


def format_money(amount: Decimal) -> str:
    """Render an amount for JSON responses, e.g. Decimal('2.5') -> '2.50'."""
    return str(Decimal(amount).quantize(CENT))
