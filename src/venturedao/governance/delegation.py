"""
Vote delegation for governance.

Delegation is single-hop: a member hands its own power to one delegatee, and
the delegatee votes with its own power plus everything delegated to it.
Received power is never forwarded further.
"""

import logging

logger = logging.getLogger(__name__)
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..errors.exceptions import ErrorCode, ResourceError, StateError, ValidationError
from .core import is_null_principal
from .environment import Clock, SystemClock
from .membership import MembershipRegistry
from .observability import EventType, GovernanceEvents


@dataclass
class Delegation:
    """An active delegation edge."""

    delegator: str
    delegatee: str
    created_at: int

    def __post_init__(self):
        """Validate delegation after initialization."""
        if self.delegator == self.delegatee:
            raise ValidationError(
                "Cannot delegate to self", error_code=ErrorCode.SELF_DELEGATION
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "delegator": self.delegator,
            "delegatee": self.delegatee,
            "created_at": self.created_at,
        }


class DelegationGraph:
    """Maintains delegation edges and the delegatees' received power."""

    def __init__(
        self,
        membership: MembershipRegistry,
        events: GovernanceEvents,
        clock: Optional[Clock] = None,
    ):
        self.membership = membership
        self.events = events
        self.clock = clock or SystemClock()
        self.journal = membership.journal
        self._delegations: Dict[str, Delegation] = {}

    def delegate(self, delegator: str, delegatee: str) -> Delegation:
        """Delegate the delegator's own power to the delegatee."""
        if is_null_principal(delegatee):
            raise ValidationError(
                "Cannot delegate to the null principal",
                error_code=ErrorCode.INVALID_DELEGATE,
                field="delegatee",
                value=delegatee,
            )

        if delegator == delegatee:
            raise ValidationError(
                "Cannot delegate to self",
                error_code=ErrorCode.SELF_DELEGATION,
                field="delegatee",
                value=delegatee,
            )

        source = self.membership.record(delegator)
        if source is None or source.stake == 0:
            raise ResourceError(
                f"{delegator} has no stake to delegate",
                error_code=ErrorCode.NO_STAKE,
                available=0,
            )

        if source.delegate_to is not None:
            raise StateError(
                f"{delegator} already delegates to {source.delegate_to}",
                error_code=ErrorCode.ALREADY_DELEGATED,
                current_state="delegating",
            )

        source = self.membership.record_for_update(delegator)
        target = self.membership.ensure_record(delegatee)
        self.journal.record(self._delegations, delegator)
        source.delegate_to = delegatee
        target.delegated_power_received += source.power

        delegation = Delegation(
            delegator=delegator, delegatee=delegatee, created_at=self.clock.now()
        )
        self._delegations[delegator] = delegation

        self.events.emit_event(
            EventType.VOTING_POWER_DELEGATED,
            principal=delegator,
            metadata={"delegatee": delegatee, "power": source.power},
        )
        logger.info(f"{delegator} delegated {source.power} power to {delegatee}")
        return delegation

    def revoke(self, delegator: str) -> str:
        """Revoke the delegator's delegation; returns the former delegatee."""
        source = self.membership.record(delegator)
        if source is None or source.delegate_to is None:
            raise StateError(
                f"{delegator} has no active delegation",
                error_code=ErrorCode.NO_ACTIVE_DELEGATION,
            )

        delegatee = source.delegate_to
        source = self.membership.record_for_update(delegator)
        target = self.membership.record_for_update(delegatee)
        self.journal.record(self._delegations, delegator)
        target.delegated_power_received -= source.power
        source.delegate_to = None
        self._delegations.pop(delegator, None)

        self.events.emit_event(
            EventType.DELEGATION_REVOKED,
            principal=delegator,
            metadata={"delegatee": delegatee, "power": source.power},
        )
        logger.info(f"{delegator} revoked delegation to {delegatee}")
        return delegatee

    def delegate_of(self, delegator: str) -> Optional[str]:
        source = self.membership.record(delegator)
        return source.delegate_to if source else None

    def delegators_of(self, delegatee: str) -> List[str]:
        """Principals currently delegating to the delegatee, sorted."""
        return sorted(
            member.principal
            for member in self.membership.records()
            if member.delegate_to == delegatee
        )

    def get_delegation(self, delegator: str) -> Optional[Delegation]:
        return self._delegations.get(delegator)

    def verify_consistency(self) -> bool:
        """Recompute every received total from the edges and compare."""
        expected: Dict[str, int] = {}
        for member in self.membership.records():
            if member.delegate_to is not None:
                expected[member.delegate_to] = expected.get(member.delegate_to, 0) + member.power

        for member in self.membership.records():
            if member.delegated_power_received != expected.get(member.principal, 0):
                logger.warning(
                    f"Delegation mismatch for {member.principal}: "
                    f"{member.delegated_power_received} != {expected.get(member.principal, 0)}"
                )
                return False
        return True

    def get_delegation_statistics(self) -> Dict[str, Any]:
        delegatees = {d.delegatee for d in self._delegations.values()}
        return {
            "active_delegations": len(self._delegations),
            "unique_delegatees": len(delegatees),
            "delegated_power": sum(
                self.membership.voting_power(d.delegator) for d in self._delegations.values()
            ),
        }
