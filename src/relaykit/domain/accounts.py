"""Balance arithmetic for deposits and withdrawals."""

from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal, InvalidOperation

from .errors import InsufficientBalanceError, ValidationError
from .types import Balance

NANO_PER_TOKEN = 1_000_000_000


def parse_amount(value: str | Decimal | float) -> Decimal:
    """Parse a token amount given on the command line."""

    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValidationError(f"Invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    return amount


def to_nano(amount: Decimal) -> int:
    return int((amount * NANO_PER_TOKEN).to_integral_value(rounding=ROUND_FLOOR))


def from_nano(nano: int) -> Decimal:
    return Decimal(nano) / NANO_PER_TOKEN


def format_tokens(nano: int) -> str:
    return f"{from_nano(nano):.9f}"


def validate_deposit(amount_nano: int) -> int:
    if amount_nano < 0:
        raise ValidationError(f"Deposit amount must not be negative, got {amount_nano} nano")
    return amount_nano


def plan_withdrawal(balance: Balance, requested: int | None = None) -> int:
    """Return the nano amount to withdraw.

    ``None`` withdraws everything available. A request larger than the available
    balance raises :class:`InsufficientBalanceError` so the account service is
    never asked to withdraw funds that are not there.
    """

    available = max(balance.available, 0)
    if requested is None:
        return available
    if requested <= 0:
        raise ValidationError(f"Withdrawal amount must be positive, got {requested} nano")
    if requested > available:
        raise InsufficientBalanceError(available=available, requested=requested)
    return requested
