"""Balance aggregation over fully materialized group snapshots.

Signs are always taken from the observer's side: a positive balance means the
peer owes the observer, a negative one means the observer owes the peer.
Per-expense transfers use the min(|netO|, |netM|) rule, so
``pairwise_balance(a, b) == -pairwise_balance(b, a)`` holds by construction.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from .errors import ValidationError
from .models import (
    BalanceSummary,
    ExpenseRecord,
    GroupSnapshot,
    ParticipantId,
    PeerBalance,
)
from .money import DEFAULT_CURRENCY, ZERO, Money, is_negligible, round2
from .splits import validate_expense

logger = logging.getLogger(__name__)


def net_contributions(expense: ExpenseRecord) -> Dict[ParticipantId, Decimal]:
    """Amount paid minus amount owed, per participant, for one expense."""
    net: Dict[ParticipantId, Decimal] = {}
    for payer in expense.payers:
        net[payer.participant] = net.get(payer.participant, ZERO) + payer.amount.amount
    for entry in expense.owed:
        net[entry.participant] = net.get(entry.participant, ZERO) - entry.amount.amount
    return net


def validate_snapshot(snapshot: GroupSnapshot) -> None:
    for expense in snapshot.expenses:
        if expense.currency != snapshot.currency:
            raise ValidationError(
                f"group {snapshot.group_id!r}: expense {expense.expense_id!r} is in "
                f"{expense.currency}, expected {snapshot.currency}",
                code="currency_mismatch",
            )
        validate_expense(expense)
    for payment in snapshot.payments:
        if payment.currency != snapshot.currency:
            raise ValidationError(
                f"group {snapshot.group_id!r}: payment {payment.payment_id!r} is in "
                f"{payment.currency}, expected {snapshot.currency}",
                code="currency_mismatch",
            )
        if payment.amount.amount <= ZERO:
            raise ValidationError(
                f"group {snapshot.group_id!r}: payment {payment.payment_id!r} must be positive",
                code="invalid_amount",
            )


def _raw_group_balances(
    observer: ParticipantId, snapshot: GroupSnapshot
) -> Dict[ParticipantId, Decimal]:
    balances: Dict[ParticipantId, Decimal] = {
        member: ZERO for member in snapshot.members if member != observer
    }

    for expense in snapshot.expenses:
        contributions = net_contributions(expense)
        observer_net = contributions.get(observer, ZERO)
        if observer_net == ZERO:
            continue
        for member in balances:
            member_net = contributions.get(member, ZERO)
            if observer_net < ZERO < member_net:
                balances[member] -= min(-observer_net, member_net)
            elif member_net < ZERO < observer_net:
                balances[member] += min(observer_net, -member_net)

    for payment in snapshot.payments:
        if payment.paid_by == observer and payment.paid_to in balances:
            balances[payment.paid_to] += payment.amount.amount
        elif payment.paid_to == observer and payment.paid_by in balances:
            balances[payment.paid_by] -= payment.amount.amount

    return balances


def group_balances(observer: ParticipantId, snapshot: GroupSnapshot) -> List[PeerBalance]:
    """Non-zero balances between ``observer`` and every other group member, by peer id."""
    validate_snapshot(snapshot)
    balances = _raw_group_balances(observer, snapshot)
    result = [
        PeerBalance(peer, Money(round2(amount), snapshot.currency))
        for peer, amount in balances.items()
        if not is_negligible(amount)
    ]
    result.sort(key=lambda balance: balance.peer)
    logger.debug(
        "Calculated %d non-zero group balances for %r in group %r",
        len(result), observer, snapshot.group_id,
        extra={"group_id": snapshot.group_id, "observer_id": observer},
    )
    return result


def pairwise_balance(
    observer: ParticipantId, peer: ParticipantId, snapshot: GroupSnapshot
) -> Money:
    """What ``peer`` owes ``observer`` within the group (negative: observer owes peer)."""
    if observer == peer:
        validate_snapshot(snapshot)
        return Money.zero(snapshot.currency)
    for balance in group_balances(observer, snapshot):
        if balance.peer == peer:
            return balance.amount
    return Money.zero(snapshot.currency)


def group_net_balances(snapshot: GroupSnapshot) -> Dict[ParticipantId, Money]:
    """Each member's overall position in the group; positive means they are owed."""
    validate_snapshot(snapshot)
    members = set(snapshot.members)
    net: Dict[ParticipantId, Decimal] = {member: ZERO for member in snapshot.members}

    for expense in snapshot.expenses:
        for participant, amount in net_contributions(expense).items():
            if participant in members:
                net[participant] += amount

    for payment in snapshot.payments:
        if payment.paid_by in members and payment.paid_to in members:
            net[payment.paid_by] += payment.amount.amount
            net[payment.paid_to] -= payment.amount.amount

    return {
        member: Money(round2(amount), snapshot.currency)
        for member, amount in net.items()
        if not is_negligible(amount)
    }


def overall_summary(
    observer: ParticipantId, snapshots: Iterable[GroupSnapshot], currency: Optional[str] = None
) -> BalanceSummary:
    """Totals owed to and by ``observer`` across every group snapshot given.

    Only group activity is counted; expenses and payments outside any group
    are not part of the summary.
    """
    per_peer: Dict[ParticipantId, Decimal] = {}
    for snapshot in snapshots:
        if currency is None:
            currency = snapshot.currency
        elif snapshot.currency != currency:
            raise ValidationError(
                f"group {snapshot.group_id!r} is in {snapshot.currency}, expected {currency}",
                code="currency_mismatch",
            )
        for balance in group_balances(observer, snapshot):
            per_peer[balance.peer] = per_peer.get(balance.peer, ZERO) + balance.amount.amount

    owed_to_observer = ZERO
    owed_by_observer = ZERO
    for amount in per_peer.values():
        if amount > ZERO:
            owed_to_observer += amount
        else:
            owed_by_observer += -amount

    currency = currency or DEFAULT_CURRENCY
    return BalanceSummary(
        total_owed_to_observer=Money(round2(owed_to_observer), currency),
        total_owed_by_observer=Money(round2(owed_by_observer), currency),
    )
