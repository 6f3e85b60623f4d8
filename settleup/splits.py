"""Split calculation: one expense total and a split policy in, exact owed amounts out.

Every successful split sums to the expense total to the cent. Rounding dust
lands on one participant, picked by ascending participant id so the same
input always yields the same output.
"""

from __future__ import annotations

import logging
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from .errors import SplitCalculationError, ValidationError
from .models import Allocation, ExpenseRecord, ParticipantId, SplitParticipant, SplitPolicy
from .money import (
    CALCULATION_SCALE,
    CENT,
    HUNDRED,
    ZERO,
    Money,
    amounts_close,
    round2,
    to_decimal,
)

logger = logging.getLogger(__name__)

_CALCULATION_QUANTUM = Decimal(1).scaleb(-CALCULATION_SCALE)


def compute_split(
    total: Money,
    policy: Any,
    participants: Iterable[Any],
) -> List[Allocation]:
    """Divide ``total`` among ``participants`` according to ``policy``.

    ``participants`` holds ``SplitParticipant`` values or ``(participant, value)``
    pairs; bare ids are accepted for EQUAL splits. The result is ordered by
    participant id and sums exactly to ``total``.

    Raises ``ValidationError`` for any malformed input before computing anything.
    """
    split_policy = SplitPolicy.parse(policy)
    if not isinstance(total, Money):
        raise ValidationError(f"total must be Money, got {type(total).__name__}")
    if total.amount <= ZERO:
        raise ValidationError(f"total amount {total.amount} must be positive", code="invalid_amount")

    entries = _normalize_participants(participants, split_policy)

    if split_policy is SplitPolicy.EQUAL:
        amounts = _equal_amounts(total.amount, len(entries))
    elif split_policy is SplitPolicy.EXACT:
        amounts = _exact_amounts(total.amount, [value for _, value in entries])
    elif split_policy is SplitPolicy.PERCENTAGE:
        amounts = _percentage_amounts(total.amount, [value for _, value in entries])
    else:
        amounts = _share_amounts(total.amount, [value for _, value in entries])

    calculated = sum(amounts, ZERO)
    if calculated != total.amount:
        logger.error(
            "%s split sum mismatch. Expected: %s, Got: %s",
            split_policy.value, total.amount, calculated,
        )
        raise SplitCalculationError(
            f"internal calculation error during {split_policy.value} split"
        )

    logger.debug(
        "Computed %s split of %s across %d participants",
        split_policy.value, total, len(entries),
        extra={"policy": split_policy.value},
    )
    return [
        Allocation(participant, Money(amount, total.currency))
        for (participant, _), amount in zip(entries, amounts)
    ]


def validate_payers(total: Money, payers: Sequence[Allocation]) -> None:
    """Payers must be unique, positive, in ``total``'s currency and add up to it exactly."""
    if not payers:
        raise ValidationError("at least one payer must be specified", code="missing_payers")

    seen = set()
    paid = ZERO
    for payer in payers:
        if payer.participant in seen:
            raise ValidationError(
                f"payer {payer.participant!r} listed more than once",
                code="duplicate_contribution_entry",
            )
        seen.add(payer.participant)
        _check_currency(payer.amount, total.currency)
        if payer.amount.amount <= ZERO:
            raise ValidationError(
                f"amount paid by {payer.participant!r} must be positive",
                code="invalid_contribution_amount",
            )
        paid += payer.amount.amount

    if paid != total.amount:
        raise ValidationError(
            f"sum of amounts paid {paid} does not match total expense amount {total.amount}",
            code="contribution_total_mismatch",
        )


def validate_expense(expense: ExpenseRecord) -> None:
    if expense.amount.amount <= ZERO:
        raise ValidationError(
            f"expense {expense.expense_id!r}: amount {expense.amount.amount} must be positive",
            code="invalid_amount",
        )
    validate_payers(expense.amount, expense.payers)

    if not expense.owed:
        raise ValidationError(
            f"expense {expense.expense_id!r}: at least one split must be specified",
            code="missing_splits",
        )
    seen = set()
    owed = ZERO
    for entry in expense.owed:
        if entry.participant in seen:
            raise ValidationError(
                f"expense {expense.expense_id!r}: {entry.participant!r} owes more than once",
                code="duplicate_share_entry",
            )
        seen.add(entry.participant)
        _check_currency(entry.amount, expense.currency)
        if entry.amount.amount < ZERO:
            raise ValidationError(
                f"expense {expense.expense_id!r}: amount owed by {entry.participant!r} is negative",
                code="invalid_share_amount",
            )
        owed += entry.amount.amount

    if not amounts_close(owed, expense.amount.amount):
        raise ValidationError(
            f"expense {expense.expense_id!r}: sum of owed amounts {owed} "
            f"does not match total {expense.amount.amount}",
            code="share_total_mismatch",
        )


def build_expense(
    total: Money,
    policy: Any,
    participants: Iterable[Any],
    payers: Sequence[Allocation],
    expense_id: Optional[Any] = None,
    group_id: Optional[Any] = None,
    description: str = "",
) -> ExpenseRecord:
    """Validate payers, compute the owed side and return a new ExpenseRecord."""
    split_policy = SplitPolicy.parse(policy)
    if not isinstance(total, Money):
        raise ValidationError(f"total must be Money, got {type(total).__name__}")
    validate_payers(total, payers)
    owed = compute_split(total, split_policy, participants)
    return ExpenseRecord(
        amount=total,
        policy=split_policy,
        payers=tuple(payers),
        owed=tuple(owed),
        expense_id=expense_id,
        group_id=group_id,
        description=description,
    )


def _check_currency(amount: Money, currency: str) -> None:
    if amount.currency != currency:
        raise ValidationError(
            f"currency mismatch: {amount.currency} and {currency} in one expense",
            code="currency_mismatch",
        )


def _normalize_participants(
    participants: Iterable[Any], policy: SplitPolicy
) -> List[Tuple[ParticipantId, Decimal]]:
    entries: List[Tuple[ParticipantId, Optional[Decimal]]] = []
    seen = set()
    for item in participants:
        if isinstance(item, SplitParticipant):
            participant, raw_value = item.participant, item.value
        elif isinstance(item, tuple) and len(item) == 2:
            participant, raw_value = item
        elif policy is SplitPolicy.EQUAL:
            participant, raw_value = item, None
        else:
            raise ValidationError(
                f"invalid split entry {item!r}: expected (participant, value)",
                code="invalid_share_payload",
            )

        if participant is None:
            raise ValidationError("split entry without a participant", code="invalid_share_payload")
        if participant in seen:
            raise ValidationError(
                f"participant {participant!r} listed more than once",
                code="duplicate_share_entry",
            )
        seen.add(participant)

        value = None
        if policy.needs_values:
            if raw_value is None:
                raise ValidationError(
                    f"no {policy.value} value provided for participant {participant!r}",
                    code="missing_split_value",
                )
            value = to_decimal(raw_value)
            if value < ZERO:
                raise ValidationError(
                    f"{policy.value} value {value} for participant {participant!r} is negative",
                    code="invalid_share_amount",
                )
        entries.append((participant, value))

    if not entries:
        raise ValidationError("participant list must not be empty", code="missing_participants")

    try:
        entries.sort(key=lambda entry: entry[0])
    except TypeError:
        raise ValidationError(
            "participant ids must be mutually comparable", code="invalid_share_payload"
        ) from None
    return entries


def _equal_amounts(total: Decimal, count: int) -> List[Decimal]:
    per_person = (total / count).quantize(CENT, rounding=ROUND_DOWN)
    amounts = [per_person] * (count - 1)
    amounts.append(total - per_person * (count - 1))
    return amounts


def _exact_amounts(total: Decimal, values: List[Decimal]) -> List[Decimal]:
    amounts = [round2(value) for value in values]
    provided = sum(amounts, ZERO)
    if not amounts_close(provided, total):
        raise ValidationError(
            f"sum of exact amounts {provided} does not match total {total}",
            code="share_total_mismatch",
        )
    return amounts


def _percentage_amounts(total: Decimal, percentages: List[Decimal]) -> List[Decimal]:
    provided = sum(percentages, ZERO)
    if not amounts_close(provided, HUNDRED):
        raise ValidationError(
            f"percentages add up to {provided}, expected 100",
            code="percentage_total_mismatch",
        )
    raw = [_precise(total * pct / HUNDRED) for pct in percentages]
    return _absorb_remainder(total, raw, percentages)


def _share_amounts(total: Decimal, shares: List[Decimal]) -> List[Decimal]:
    total_shares = sum(shares, ZERO)
    if total_shares <= ZERO:
        raise ValidationError("total shares must be greater than zero", code="zero_shares")
    value_per_share = _precise(total / total_shares)
    raw = [shares_count * value_per_share for shares_count in shares]
    return _absorb_remainder(total, raw, shares)


def _absorb_remainder(total: Decimal, raw: List[Decimal], weights: List[Decimal]) -> List[Decimal]:
    # the last participant with a non-zero weight takes total - sum(others)
    absorber = max(index for index, weight in enumerate(weights) if weight > ZERO)
    amounts = [round2(value) for value in raw]
    amounts[absorber] = ZERO
    amounts[absorber] = total - sum(amounts, ZERO)
    return amounts


def _precise(value: Decimal) -> Decimal:
    try:
        return value.quantize(_CALCULATION_QUANTUM, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"amount {value} is too large to split", code="invalid_amount") from None
