from __future__ import annotations

import logging
from typing import Any, List

from . import balances
from .errors import AuthorizationError
from .models import BalanceSummary, GroupSnapshot, ParticipantId, PeerBalance, SimplifiedPayment
from .money import DEFAULT_CURRENCY, Money, normalize_currency
from .repository import GroupRepository, load_snapshot
from .simplify import simplify_group

logger = logging.getLogger(__name__)


class BalanceService:
    """Reads group snapshots through a repository and runs the calculators on them.

    Holds no state between calls beyond the repository handle.
    """

    def __init__(self, repository: GroupRepository, currency: str = DEFAULT_CURRENCY) -> None:
        self.repository = repository
        self.currency = normalize_currency(currency)

    def snapshot(self, group_id: Any) -> GroupSnapshot:
        return load_snapshot(self.repository, group_id, self.currency)

    def member_snapshot(self, user_id: ParticipantId, group_id: Any) -> GroupSnapshot:
        """Load the group once and refuse users outside its member list."""
        snapshot = self.snapshot(group_id)
        if user_id not in snapshot.members:
            raise AuthorizationError(f"user {user_id!r} is not a member of group {group_id!r}")
        return snapshot

    def pairwise_balance(self, observer: ParticipantId, peer: ParticipantId, group_id: Any) -> Money:
        logger.info(
            "Calculating balance between %r and %r in group %r", observer, peer, group_id,
            extra={"group_id": group_id, "observer_id": observer, "peer_id": peer},
        )
        return balances.pairwise_balance(observer, peer, self.member_snapshot(observer, group_id))

    def group_balances(self, observer: ParticipantId, group_id: Any) -> List[PeerBalance]:
        logger.info(
            "Calculating group balances for %r in group %r", observer, group_id,
            extra={"group_id": group_id, "observer_id": observer},
        )
        return balances.group_balances(observer, self.member_snapshot(observer, group_id))

    def overall_summary(self, observer: ParticipantId) -> BalanceSummary:
        group_ids = self.repository.fetch_groups_for_user(observer)
        logger.info(
            "Calculating overall balance summary for %r across %d groups", observer, len(group_ids),
            extra={"observer_id": observer},
        )
        # TODO: include non-group expenses and payments once the repository exposes them
        logger.debug("Overall balance summary only considers group balances")
        snapshots = [self.snapshot(group_id) for group_id in group_ids]
        summary = balances.overall_summary(observer, snapshots, self.currency)
        logger.info(
            "Overall balance summary for %r: owed_to=%s owed_by=%s",
            observer, summary.total_owed_to_observer, summary.total_owed_by_observer,
            extra={"observer_id": observer},
        )
        return summary

    def simplified_group_payments(
        self, observer: ParticipantId, group_id: Any
    ) -> List[SimplifiedPayment]:
        logger.info(
            "Calculating simplified payments for group %r", group_id,
            extra={"group_id": group_id, "observer_id": observer},
        )
        return simplify_group(self.member_snapshot(observer, group_id))
