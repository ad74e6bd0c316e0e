"""
Member stake and voting power registry.

Members stake value to acquire square-root voting power. The registry keeps
each member's own power in step with its stake and keeps the running totals
used as the quorum base.
"""

import logging

logger = logging.getLogger(__name__)
import copy
from typing import Any, Dict, List, Optional

from ..errors.exceptions import (
    ErrorCode,
    ErrorContext,
    ResourceError,
    StateError,
    ValidationError,
)
from .core import Capability, Member, is_integer_amount, is_null_principal
from .environment import Clock, SystemClock, ValueTransfer, send_value
from .journal import ChangeJournal
from .observability import EventType, GovernanceEvents
from .power import VotingPowerModel
from .security import AccessGate


class MembershipRegistry:
    """Tracks stake, own power and received delegated power per principal."""

    def __init__(
        self,
        power_model: VotingPowerModel,
        access_gate: AccessGate,
        events: GovernanceEvents,
        transfer: ValueTransfer,
        clock: Optional[Clock] = None,
        journal: Optional[ChangeJournal] = None,
    ):
        self.power_model = power_model
        self.access_gate = access_gate
        self.events = events
        self.transfer = transfer
        self.clock = clock or SystemClock()
        self.journal = journal or ChangeJournal()

        self._members: Dict[str, Member] = {}
        self._total_staked = 0
        self._total_voting_power = 0

    def join(self, principal: str, amount: int) -> Member:
        """Deposit stake, registering the principal on first deposit.

        A first deposit also grants the PROPOSER capability.
        """
        if is_null_principal(principal):
            raise ValidationError(
                "Null principal cannot join",
                error_code=ErrorCode.INVALID_PRINCIPAL,
                field="principal",
                value=principal,
            )
        if not is_integer_amount(amount) or amount <= 0:
            raise ValidationError(
                "Deposit must be a positive integer",
                error_code=ErrorCode.INSUFFICIENT_DEPOSIT,
                field="amount",
                value=amount,
                expected="> 0",
            )

        member = self.ensure_record(principal)
        first_deposit = member.joined_at is None
        if first_deposit:
            member.joined_at = self.clock.now()
            self.access_gate.grant(principal, Capability.PROPOSER)

        old_power = member.power
        self._set_stake(member, member.stake + amount)

        if first_deposit:
            self.events.emit_event(
                EventType.MEMBER_JOINED,
                principal=principal,
                metadata={"stake": member.stake, "power": member.power},
            )
            logger.info(f"Member {principal} joined with stake {amount}")
        else:
            self.events.emit_event(
                EventType.STAKE_INCREASED,
                principal=principal,
                metadata={
                    "amount": amount,
                    "stake": member.stake,
                    "power": member.power,
                    "power_delta": member.power - old_power,
                },
            )
            logger.info(f"Member {principal} increased stake by {amount}")

        return copy.copy(member)

    def withdraw(self, principal: str, amount: int) -> Member:
        """Return stake to the member; the transfer runs after all bookkeeping."""
        if not is_integer_amount(amount) or amount <= 0:
            raise ValidationError(
                "Withdrawal must be a positive integer",
                error_code=ErrorCode.INVALID_AMOUNT,
                field="amount",
                value=amount,
                expected="> 0",
            )

        member = self.record_for_update(principal)
        available = member.stake if member else 0
        if amount > available:
            raise ResourceError(
                f"{principal} has {available} staked, cannot withdraw {amount}",
                error_code=ErrorCode.INSUFFICIENT_STAKE,
                available=available,
                requested=amount,
                context=ErrorContext(
                    component="membership", operation="withdraw", principal=principal
                ),
            )

        if member.is_delegating():
            raise StateError(
                f"{principal} must revoke its delegation before withdrawing",
                error_code=ErrorCode.DELEGATION_ACTIVE,
                current_state="delegating",
            )

        self._set_stake(member, member.stake - amount)
        self.events.emit_event(
            EventType.STAKE_WITHDRAWN,
            principal=principal,
            metadata={"amount": amount, "stake": member.stake, "power": member.power},
        )

        send_value(self.transfer, principal, amount)
        logger.info(f"Member {principal} withdrew {amount}")
        return copy.copy(member)

    def _set_stake(self, member: Member, new_stake: int) -> None:
        self.journal.record_attr(self, "_total_staked")
        self.journal.record_attr(self, "_total_voting_power")
        new_power = self.power_model.power(new_stake)
        power_delta = new_power - member.power

        self._total_staked += new_stake - member.stake
        self._total_voting_power += power_delta
        member.stake = new_stake
        member.power = new_power

        # Keep the delegatee's received total in step
        if member.delegate_to is not None and power_delta:
            self.record_for_update(member.delegate_to).delegated_power_received += power_delta

    # Record access shared with the delegation graph

    def record(self, principal: str) -> Optional[Member]:
        """The live record for a principal, if any."""
        return self._members.get(principal)

    def record_for_update(self, principal: str) -> Optional[Member]:
        """The live record, journaled so the caller may change it."""
        self.journal.record(self._members, principal)
        return self._members.get(principal)

    def ensure_record(self, principal: str) -> Member:
        """The live record for a principal, creating an empty one if needed."""
        self.journal.record(self._members, principal)
        member = self._members.get(principal)
        if member is None:
            member = Member(principal=principal)
            self._members[principal] = member
        return member

    def records(self) -> List[Member]:
        return list(self._members.values())

    # Queries

    def get_member(self, principal: str) -> Optional[Member]:
        member = self._members.get(principal)
        return copy.copy(member) if member else None

    def is_member(self, principal: str) -> bool:
        member = self._members.get(principal)
        return member is not None and member.joined_at is not None

    def stake_of(self, principal: str) -> int:
        member = self._members.get(principal)
        return member.stake if member else 0

    def voting_power(self, principal: str) -> int:
        """Own power, excluding anything delegated in."""
        member = self._members.get(principal)
        return member.power if member else 0

    def effective_power(self, principal: str) -> int:
        """Own power plus power delegated to the principal."""
        member = self._members.get(principal)
        return member.effective_power() if member else 0

    def total_staked(self) -> int:
        return self._total_staked

    def total_voting_power(self) -> int:
        return self._total_voting_power

    def member_count(self) -> int:
        return sum(1 for member in self._members.values() if member.joined_at is not None)

    def get_membership_statistics(self) -> Dict[str, Any]:
        return {
            "member_count": self.member_count(),
            "total_staked": self._total_staked,
            "total_voting_power": self._total_voting_power,
            "delegating_members": sum(
                1 for member in self._members.values() if member.is_delegating()
            ),
        }
