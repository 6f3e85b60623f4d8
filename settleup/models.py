from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Hashable, Optional, Tuple

from .errors import ValidationError
from .money import DEFAULT_CURRENCY, Money, normalize_currency

ParticipantId = Hashable


class SplitPolicy(str, Enum):
    EQUAL = "EQUAL"  # total divided evenly, last participant takes the remainder
    EXACT = "EXACT"  # each participant states the amount owed
    PERCENTAGE = "PERCENTAGE"  # percentages must add up to 100
    SHARE = "SHARE"  # owed in proportion to share counts

    @classmethod
    def parse(cls, value: Any) -> "SplitPolicy":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        raise ValidationError(f"unknown split policy {value!r}", code="unknown_split_policy")

    @property
    def needs_values(self) -> bool:
        return self is not SplitPolicy.EQUAL


@dataclass(frozen=True)
class SplitParticipant:
    participant: ParticipantId
    value: Optional[Decimal] = None


@dataclass(frozen=True)
class Allocation:
    """A participant paired with an amount paid or owed."""

    participant: ParticipantId
    amount: Money


@dataclass(frozen=True)
class ExpenseRecord:
    amount: Money
    policy: SplitPolicy
    payers: Tuple[Allocation, ...]
    owed: Tuple[Allocation, ...]
    expense_id: Optional[Any] = None
    group_id: Optional[Any] = None
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "payers", tuple(self.payers))
        object.__setattr__(self, "owed", tuple(self.owed))

    @property
    def currency(self) -> str:
        return self.amount.currency


@dataclass(frozen=True)
class PaymentRecord:
    """A direct settlement from ``paid_by`` to ``paid_to``."""

    amount: Money
    paid_by: ParticipantId
    paid_to: ParticipantId
    payment_id: Optional[Any] = None
    group_id: Optional[Any] = None

    @property
    def currency(self) -> str:
        return self.amount.currency


@dataclass(frozen=True)
class GroupSnapshot:
    """Everything the aggregator needs about one group, read in one go."""

    group_id: Any
    members: Tuple[ParticipantId, ...]
    expenses: Tuple[ExpenseRecord, ...] = ()
    payments: Tuple[PaymentRecord, ...] = ()
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        object.__setattr__(self, "members", tuple(self.members))
        object.__setattr__(self, "expenses", tuple(self.expenses))
        object.__setattr__(self, "payments", tuple(self.payments))
        object.__setattr__(self, "currency", normalize_currency(self.currency))


@dataclass(frozen=True)
class PeerBalance:
    """Signed balance of ``peer`` seen from an observer; positive means the peer owes."""

    peer: ParticipantId
    amount: Money


@dataclass(frozen=True)
class BalanceSummary:
    total_owed_to_observer: Money
    total_owed_by_observer: Money

    @property
    def currency(self) -> str:
        return self.total_owed_to_observer.currency

    @property
    def net(self) -> Money:
        return self.total_owed_to_observer - self.total_owed_by_observer


@dataclass(frozen=True)
class SimplifiedPayment:
    from_user: ParticipantId
    to_user: ParticipantId
    amount: Money

    @property
    def currency(self) -> str:
        return self.amount.currency
