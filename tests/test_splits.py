"""Tests for compute_split and expense validation: pure, no IO."""

from decimal import Decimal

import pytest

from settleup.errors import ValidationError
from settleup.models import Allocation, ExpenseRecord, SplitParticipant, SplitPolicy
from settleup.money import Money
from settleup.splits import build_expense, compute_split, validate_expense, validate_payers
from tests.factories import expense, usd


def _amounts(allocations):
    return {a.participant: a.amount.amount for a in allocations}


def _total(allocations):
    return sum((a.amount.amount for a in allocations), Decimal("0"))


# ─── EQUAL ──────────────────────────────────────────────────────

def test_equal_split_gives_remainder_to_last_participant():
    result = compute_split(usd("10.01"), "EQUAL", [1, 2])
    assert _amounts(result) == {1: Decimal("5.00"), 2: Decimal("5.01")}
    assert _total(result) == Decimal("10.01")


def test_equal_split_orders_by_participant_id():
    result = compute_split(usd("10.00"), SplitPolicy.EQUAL, [3, 1, 2])
    assert [a.participant for a in result] == [1, 2, 3]
    assert [a.amount.amount for a in result] == [Decimal("3.33"), Decimal("3.33"), Decimal("3.34")]


def test_equal_split_truncates_instead_of_rounding():
    # 20.00 / 3 = 6.666..., floor is 6.66, last absorbs 6.68
    result = compute_split(usd("20.00"), "EQUAL", [1, 2, 3])
    assert [a.amount.amount for a in result] == [Decimal("6.66"), Decimal("6.66"), Decimal("6.68")]


def test_equal_split_amounts_differ_by_at_most_remainder():
    for total in ("0.01", "0.05", "1.00", "99.99", "1234.57"):
        for count in range(1, 8):
            result = compute_split(usd(total), "EQUAL", list(range(count)))
            amounts = [a.amount.amount for a in result]
            assert sum(amounts) == Decimal(total)
            assert max(amounts[:-1] or amounts) == min(amounts[:-1] or amounts)


def test_equal_split_ignores_values():
    result = compute_split(usd("9.00"), "equal", [(1, "100"), SplitParticipant(2, Decimal("1"))])
    assert _amounts(result) == {1: Decimal("4.50"), 2: Decimal("4.50")}


def test_equal_split_rejects_empty_participants():
    with pytest.raises(ValidationError, match="must not be empty"):
        compute_split(usd("10.00"), "EQUAL", [])


def test_split_keeps_total_currency():
    result = compute_split(Money.of("12.00", "eur"), "EQUAL", [1, 2])
    assert {a.amount.currency for a in result} == {"EUR"}


# ─── EXACT ──────────────────────────────────────────────────────

def test_exact_split_accepts_matching_amounts():
    result = compute_split(usd("50.00"), "EXACT", [(1, "20.00"), (2, "30.00")])
    assert _amounts(result) == {1: Decimal("20.00"), 2: Decimal("30.00")}


def test_exact_split_rejects_mismatch_with_both_sums_in_message():
    with pytest.raises(ValidationError) as exc_info:
        compute_split(usd("50.00"), "EXACT", [(1, "20.00"), (2, "30.01")])
    assert "50.01" in exc_info.value.message
    assert "50.00" in exc_info.value.message
    assert exc_info.value.code == "share_total_mismatch"


def test_exact_split_requires_a_value_for_everyone():
    with pytest.raises(ValidationError, match="participant 2"):
        compute_split(usd("50.00"), "EXACT", [(1, "50.00"), (2, None)])


def test_exact_split_allows_zero_for_a_participant():
    result = compute_split(usd("50.00"), "EXACT", [(1, "50.00"), (2, "0")])
    assert _amounts(result) == {1: Decimal("50.00"), 2: Decimal("0.00")}


def test_exact_split_rejects_negative_amounts():
    with pytest.raises(ValidationError, match="negative"):
        compute_split(usd("50.00"), "EXACT", [(1, "60.00"), (2, "-10.00")])


# ─── PERCENTAGE ─────────────────────────────────────────────────

def test_percentage_split_rejects_total_other_than_100():
    with pytest.raises(ValidationError) as exc_info:
        compute_split(usd("100.00"), "PERCENTAGE", [(1, "40.0"), (2, "60.1")])
    assert exc_info.value.code == "percentage_total_mismatch"


def test_percentage_split_last_participant_absorbs_rounding():
    result = compute_split(usd("10.00"), "PERCENTAGE", [(1, "33.33"), (2, "33.33"), (3, "33.34")])
    assert _amounts(result) == {1: Decimal("3.33"), 2: Decimal("3.33"), 3: Decimal("3.34")}
    assert _total(result) == Decimal("10.00")


def test_percentage_split_rounds_half_up():
    # 10.01 * 50% = 5.005 rounds up to 5.01 for the first participant
    result = compute_split(usd("10.01"), "PERCENTAGE", [(1, 50), (2, 50)])
    assert _amounts(result) == {1: Decimal("5.01"), 2: Decimal("5.00")}


def test_percentage_split_zero_percent_participant_owes_nothing():
    result = compute_split(usd("10.01"), "PERCENTAGE", [(1, 50), (2, 50), (3, 0)])
    assert _amounts(result) == {1: Decimal("5.01"), 2: Decimal("5.00"), 3: Decimal("0.00")}


def test_percentage_split_tolerates_repeating_thirds():
    thirds = "33.3333333"
    result = compute_split(usd("100.00"), "PERCENTAGE", [(1, thirds), (2, thirds), (3, thirds)])
    assert _total(result) == Decimal("100.00")
    assert _amounts(result)[3] == Decimal("33.34")


def test_percentage_split_of_oversized_total_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        compute_split(usd("1e20"), "PERCENTAGE", [(1, 50), (2, 50)])
    assert exc_info.value.code == "invalid_amount"


# ─── SHARE ──────────────────────────────────────────────────────

def test_share_split_one_to_two():
    result = compute_split(usd("75.00"), "SHARE", [(1, 1), (2, 2)])
    assert _amounts(result) == {1: Decimal("25.00"), 2: Decimal("50.00")}


def test_share_split_uneven_total():
    result = compute_split(usd("100.00"), "SHARE", [(1, 1), (2, 1), (3, 1)])
    assert [a.amount.amount for a in result] == [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")]


def test_share_split_rejects_zero_total_shares():
    with pytest.raises(ValidationError) as exc_info:
        compute_split(usd("75.00"), "SHARE", [(1, 0), (2, 0)])
    assert exc_info.value.code == "zero_shares"


def test_share_split_rejects_negative_shares():
    with pytest.raises(ValidationError):
        compute_split(usd("75.00"), "SHARE", [(1, 3), (2, -1)])


def test_share_split_accepts_fractional_shares():
    result = compute_split(usd("10.00"), "SHARE", [(1, "0.5"), (2, "1.5")])
    assert _amounts(result) == {1: Decimal("2.50"), 2: Decimal("7.50")}


# ─── Common validation ──────────────────────────────────────────

@pytest.mark.parametrize("total", ["0", "-5.00"])
def test_non_positive_total_is_rejected(total):
    with pytest.raises(ValidationError, match="must be positive"):
        compute_split(usd(total), "EQUAL", [1, 2])


def test_unknown_policy_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        compute_split(usd("10.00"), "BY_VIBES", [1, 2])
    assert exc_info.value.code == "unknown_split_policy"


def test_duplicate_participant_is_rejected():
    with pytest.raises(ValidationError, match="more than once"):
        compute_split(usd("10.00"), "SHARE", [(1, 1), (1, 2)])


def test_non_numeric_value_is_rejected():
    with pytest.raises(ValidationError, match="decimal"):
        compute_split(usd("10.00"), "SHARE", [(1, "two"), (2, 1)])


@pytest.mark.parametrize(
    "policy, participants",
    [
        ("EQUAL", [4, 2, 9, 1]),
        ("PERCENTAGE", [(4, "12.5"), (2, "37.5"), (9, "25"), (1, "25")]),
        ("SHARE", [(4, 3), (2, 7), (9, 1), (1, 2)]),
    ],
)
def test_split_sums_exactly_and_is_repeatable(policy, participants):
    first = compute_split(usd("123.47"), policy, participants)
    second = compute_split(usd("123.47"), policy, list(reversed(participants)))
    assert _total(first) == Decimal("123.47")
    assert first == second


# ─── Payers and whole expenses ──────────────────────────────────

def test_validate_payers_rejects_mismatch():
    payers = [Allocation(1, usd("20.00")), Allocation(2, usd("20.00"))]
    with pytest.raises(ValidationError, match="sum of amounts paid 40.00"):
        validate_payers(usd("50.00"), payers)


def test_validate_payers_rejects_currency_mix():
    payers = [Allocation(1, usd("20.00")), Allocation(2, Money.of("30.00", "EUR"))]
    with pytest.raises(ValidationError, match="currency"):
        validate_payers(usd("50.00"), payers)


def test_validate_payers_requires_someone():
    with pytest.raises(ValidationError, match="at least one payer"):
        validate_payers(usd("50.00"), [])


def test_build_expense_with_two_payers():
    record = build_expense(
        usd("90.00"),
        "SHARE",
        [(1, 1), (2, 2)],
        [Allocation(1, usd("45.00")), Allocation(3, usd("45.00"))],
        expense_id=7,
        description="cabin",
    )
    assert record.policy is SplitPolicy.SHARE
    assert _amounts(record.owed) == {1: Decimal("30.00"), 2: Decimal("60.00")}
    assert record.expense_id == 7
    validate_expense(record)


def test_validate_expense_rejects_owed_mismatch():
    record = expense("30.00", {1: "30.00"}, {1: "10.00", 2: "10.00"})
    with pytest.raises(ValidationError) as exc_info:
        validate_expense(record)
    assert exc_info.value.code == "share_total_mismatch"


def test_validate_expense_rejects_duplicate_owed_participant():
    record = ExpenseRecord(
        amount=usd("30.00"),
        policy=SplitPolicy.EXACT,
        payers=(Allocation(1, usd("30.00")),),
        owed=(Allocation(2, usd("15.00")), Allocation(2, usd("15.00"))),
    )
    with pytest.raises(ValidationError, match="more than once"):
        validate_expense(record)
