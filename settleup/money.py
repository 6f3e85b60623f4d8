from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable

from .errors import ValidationError

MONETARY_SCALE = 2
CALCULATION_SCALE = 10
ZERO_THRESHOLD = Decimal("0.005")
DEFAULT_CURRENCY = "USD"

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def to_decimal(value: Any) -> Decimal:
    """Exact decimal for ``value`` without touching its scale.

    Floats go through ``str`` so ``10.01`` stays ``10.01``.
    """
    if isinstance(value, Money):
        return value.amount
    if isinstance(value, bool):
        raise ValidationError(f"cannot convert {value!r} to a decimal amount")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise ValidationError(f"cannot convert {value!r} to a decimal amount") from None
    else:
        raise ValidationError(f"cannot convert {value!r} to a decimal amount")
    if not result.is_finite():
        raise ValidationError(f"amount {value!r} is not a finite number")
    return result


def round2(value: Decimal) -> Decimal:
    try:
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"amount {value} is too large", code="invalid_amount") from None


def to_cents(value: Any) -> Decimal:
    """Like ``to_decimal`` but refuses anything finer than a cent."""
    result = to_decimal(value)
    if result != round2(result):
        raise ValidationError(
            f"amount {value!r} has more than {MONETARY_SCALE} decimal places", code="invalid_amount"
        )
    return result


def is_negligible(value: Decimal) -> bool:
    return abs(value) < ZERO_THRESHOLD


def amounts_close(a: Decimal, b: Decimal, tolerance: Decimal = ZERO_THRESHOLD) -> bool:
    return abs(a - b) <= tolerance


def normalize_currency(currency: str) -> str:
    code = (currency or "").strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValidationError(f"invalid currency code {currency!r}")
    return code


@dataclass(frozen=True)
class Money:
    """A 2-decimal amount in a single currency.

    Arithmetic and ordering only work between equal currencies; anything else
    is a ``ValidationError``.
    """

    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", round2(to_decimal(self.amount)))
        object.__setattr__(self, "currency", normalize_currency(self.currency))

    @classmethod
    def of(cls, value: Any, currency: str = DEFAULT_CURRENCY) -> "Money":
        return cls(to_decimal(value), currency)

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> "Money":
        return cls(ZERO, currency)

    @classmethod
    def total(cls, values: Iterable["Money"], currency: str = DEFAULT_CURRENCY) -> "Money":
        result = cls.zero(currency)
        for value in values:
            result = result + value
        return result

    def _check(self, other: Any) -> "Money":
        if not isinstance(other, Money):
            raise TypeError(f"cannot combine Money with {type(other).__name__}")
        if other.currency != self.currency:
            raise ValidationError(
                f"currency mismatch: {self.currency} and {other.currency} in one computation"
            )
        return other

    def __add__(self, other: "Money") -> "Money":
        return Money(self.amount + self._check(other).amount, self.currency)

    def __sub__(self, other: "Money") -> "Money":
        return Money(self.amount - self._check(other).amount, self.currency)

    def __neg__(self) -> "Money":
        return Money(-self.amount, self.currency)

    def __abs__(self) -> "Money":
        return Money(abs(self.amount), self.currency)

    def __lt__(self, other: "Money") -> bool:
        return self.amount < self._check(other).amount

    def __le__(self, other: "Money") -> bool:
        return self.amount <= self._check(other).amount

    def __gt__(self, other: "Money") -> bool:
        return self.amount > self._check(other).amount

    def __ge__(self, other: "Money") -> bool:
        return self.amount >= self._check(other).amount

    def is_zero(self) -> bool:
        return is_negligible(self.amount)

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"
