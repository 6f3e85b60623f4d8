"""Collaborator contract for reading group data.

Implementations return fully materialized lists; the calculators never reach
back into storage. Unknown groups raise NotFoundError.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Protocol

from .errors import NotFoundError
from .models import ExpenseRecord, GroupSnapshot, ParticipantId, PaymentRecord
from .money import DEFAULT_CURRENCY


class GroupRepository(Protocol):
    def fetch_group_expenses(self, group_id: Any) -> List[ExpenseRecord]: ...
    def fetch_group_payments(self, group_id: Any) -> List[PaymentRecord]: ...
    def fetch_group_members(self, group_id: Any) -> List[ParticipantId]: ...
    def fetch_groups_for_user(self, user_id: ParticipantId) -> List[Any]: ...


def load_snapshot(repository: GroupRepository, group_id: Any, currency: str) -> GroupSnapshot:
    """Read one group. Repositories offering fetch_group_snapshot read it in a single transaction."""
    fetch_snapshot = getattr(repository, "fetch_group_snapshot", None)
    if fetch_snapshot is not None:
        return fetch_snapshot(group_id)
    members = repository.fetch_group_members(group_id)
    return GroupSnapshot(
        group_id=group_id,
        members=tuple(members),
        expenses=tuple(repository.fetch_group_expenses(group_id)),
        payments=tuple(repository.fetch_group_payments(group_id)),
        currency=currency,
    )


class InMemoryGroupRepository:
    """Dict-backed repository for tests and embedding."""

    def __init__(self, currency: str = DEFAULT_CURRENCY) -> None:
        self.currency = currency
        self._members: Dict[Any, List[ParticipantId]] = {}
        self._expenses: Dict[Any, List[ExpenseRecord]] = {}
        self._payments: Dict[Any, List[PaymentRecord]] = {}

    def add_group(self, group_id: Any, members: Iterable[ParticipantId]) -> None:
        self._members[group_id] = list(members)
        self._expenses.setdefault(group_id, [])
        self._payments.setdefault(group_id, [])

    def add_expense(self, group_id: Any, expense: ExpenseRecord) -> None:
        self._require(group_id)
        self._expenses[group_id].append(expense)

    def add_payment(self, group_id: Any, payment: PaymentRecord) -> None:
        self._require(group_id)
        self._payments[group_id].append(payment)

    def fetch_group_members(self, group_id: Any) -> List[ParticipantId]:
        return list(self._require(group_id))

    def fetch_group_expenses(self, group_id: Any) -> List[ExpenseRecord]:
        self._require(group_id)
        return list(self._expenses[group_id])

    def fetch_group_payments(self, group_id: Any) -> List[PaymentRecord]:
        self._require(group_id)
        return list(self._payments[group_id])

    def fetch_groups_for_user(self, user_id: ParticipantId) -> List[Any]:
        return [group_id for group_id, members in self._members.items() if user_id in members]

    def _require(self, group_id: Any) -> List[ParticipantId]:
        members: Optional[List[ParticipantId]] = self._members.get(group_id)
        if members is None:
            raise NotFoundError(f"group {group_id!r} not found", code="group_not_found")
        return members
