"""Split shared expenses, aggregate balances and suggest settlements."""

from .balances import group_balances, group_net_balances, overall_summary, pairwise_balance
from .errors import (
    AuthorizationError,
    NotFoundError,
    SettleUpError,
    SplitCalculationError,
    ValidationError,
)
from .models import (
    Allocation,
    BalanceSummary,
    ExpenseRecord,
    GroupSnapshot,
    PaymentRecord,
    PeerBalance,
    SimplifiedPayment,
    SplitParticipant,
    SplitPolicy,
)
from .money import Money
from .simplify import simplify, simplify_group
from .splits import build_expense, compute_split, validate_expense, validate_payers

__all__ = [
    "Allocation",
    "AuthorizationError",
    "BalanceSummary",
    "ExpenseRecord",
    "GroupSnapshot",
    "Money",
    "NotFoundError",
    "PaymentRecord",
    "PeerBalance",
    "SettleUpError",
    "SimplifiedPayment",
    "SplitCalculationError",
    "SplitParticipant",
    "SplitPolicy",
    "ValidationError",
    "build_expense",
    "compute_split",
    "group_balances",
    "group_net_balances",
    "overall_summary",
    "pairwise_balance",
    "simplify",
    "simplify_group",
    "validate_expense",
    "validate_payers",
]
