"""Record builders shared by the test modules."""

from settleup.models import Allocation, ExpenseRecord, GroupSnapshot, PaymentRecord, SplitPolicy
from settleup.money import Money
from settleup.splits import build_expense


def usd(value):
    return Money.of(value, "USD")


def equal_expense(total, paid_by, participants, expense_id=None):
    return build_expense(
        usd(total),
        SplitPolicy.EQUAL,
        participants,
        [Allocation(paid_by, usd(total))],
        expense_id=expense_id,
    )


def expense(total, paid, owed, expense_id=None, currency="USD"):
    """Expense from ``{user: amount}`` maps for payers and owed amounts."""
    return ExpenseRecord(
        amount=Money.of(total, currency),
        policy=SplitPolicy.EXACT,
        payers=tuple(Allocation(user, Money.of(amount, currency)) for user, amount in paid.items()),
        owed=tuple(Allocation(user, Money.of(amount, currency)) for user, amount in owed.items()),
        expense_id=expense_id,
    )


def payment(amount, paid_by, paid_to, currency="USD"):
    return PaymentRecord(Money.of(amount, currency), paid_by, paid_to)


def snapshot(members, expenses=(), payments=(), group_id=1, currency="USD"):
    return GroupSnapshot(
        group_id=group_id,
        members=tuple(members),
        expenses=tuple(expenses),
        payments=tuple(payments),
        currency=currency,
    )
