"""Greedy debt simplification.

Largest remaining debtor pays largest remaining creditor until one side runs
out. This is a heuristic: it usually needs at most n - 1 payments but is not
guaranteed to find the fewest possible. Ties are broken by ascending
participant id.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .balances import group_net_balances
from .errors import ValidationError
from .models import GroupSnapshot, ParticipantId, SimplifiedPayment
from .money import DEFAULT_CURRENCY, ZERO_THRESHOLD, Money, normalize_currency, round2, to_decimal

logger = logging.getLogger(__name__)


def simplify(
    net_balances: Mapping[ParticipantId, Any],
    currency: Optional[str] = None,
) -> List[SimplifiedPayment]:
    """Suggest payments that bring every balance in ``net_balances`` to zero.

    Values are Money or plain decimals; positive means the participant is owed.
    Plain decimals take ``currency`` (or the default currency). Mixing currencies
    raises ``ValidationError``.
    """
    currency, amounts = _normalize_balances(net_balances, currency)

    debtors: List[List[Any]] = []
    creditors: List[List[Any]] = []
    for participant, amount in amounts.items():
        if amount < -ZERO_THRESHOLD:
            debtors.append([participant, -amount])
        elif amount > ZERO_THRESHOLD:
            creditors.append([participant, amount])

    try:
        debtors.sort(key=lambda entry: entry[0])
        debtors.sort(key=lambda entry: entry[1], reverse=True)
        creditors.sort(key=lambda entry: entry[0])
        creditors.sort(key=lambda entry: entry[1], reverse=True)
    except TypeError:
        raise ValidationError("participant ids must be mutually comparable") from None

    payments: List[SimplifiedPayment] = []
    debtor_idx = 0
    creditor_idx = 0

    while debtor_idx < len(debtors) and creditor_idx < len(creditors):
        debtor = debtors[debtor_idx]
        creditor = creditors[creditor_idx]

        transfer = round2(min(debtor[1], creditor[1]))
        if transfer < ZERO_THRESHOLD:
            # rounding dust: step past the smaller side so the loop ends
            if debtor[1] < creditor[1]:
                debtor_idx += 1
            else:
                creditor_idx += 1
            continue

        payments.append(SimplifiedPayment(debtor[0], creditor[0], Money(transfer, currency)))
        debtor[1] -= transfer
        creditor[1] -= transfer

        if abs(debtor[1]) < ZERO_THRESHOLD:
            debtor_idx += 1
        if abs(creditor[1]) < ZERO_THRESHOLD:
            creditor_idx += 1

    logger.debug("Generated %d simplified payment suggestions", len(payments))
    return payments


def simplify_group(snapshot: GroupSnapshot) -> List[SimplifiedPayment]:
    """Settlement suggestions for everyone in one group."""
    payments = simplify(group_net_balances(snapshot), snapshot.currency)
    logger.debug(
        "Generated %d simplified payment suggestions for group %r",
        len(payments), snapshot.group_id,
        extra={"group_id": snapshot.group_id},
    )
    return payments


def _normalize_balances(
    net_balances: Mapping[ParticipantId, Any], currency: Optional[str]
) -> Tuple[str, Dict[ParticipantId, Decimal]]:
    if currency is not None:
        currency = normalize_currency(currency)

    amounts: Dict[ParticipantId, Decimal] = {}
    for participant, value in net_balances.items():
        if isinstance(value, Money):
            if currency is None:
                currency = value.currency
            elif value.currency != currency:
                raise ValidationError(
                    f"balance of {participant!r} is in {value.currency}, expected {currency}",
                    code="currency_mismatch",
                )
            amounts[participant] = value.amount
        else:
            amounts[participant] = round2(to_decimal(value))

    return currency or DEFAULT_CURRENCY, amounts
