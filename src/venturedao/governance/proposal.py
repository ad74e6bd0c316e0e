"""
Proposal registry and lifecycle controller.

Proposals move through a fixed state machine: PENDING becomes ACTIVE on
activation; an ACTIVE proposal is resolved to QUEUED or DEFEATED once voting
ends; a QUEUED proposal is EXECUTED after its timelock. Guardians may cancel
ACTIVE and QUEUED proposals. DEFEATED, EXECUTED and CANCELLED are final.

This module owns creation, activation, resolution and cancellation, plus the
pure quorum/approval arithmetic shared with the voting engine.
"""

import logging

logger = logging.getLogger(__name__)
import copy
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..errors.exceptions import (
    ErrorCode,
    ErrorContext,
    ResourceError,
    StateError,
    ValidationError,
    create_validation_error,
    create_wrong_state_error,
)
from .core import (
    BASIS_POINTS,
    Capability,
    GovernanceConfig,
    Proposal,
    ProposalState,
    ProposalType,
    TreasuryCategory,
    TYPE_TO_CATEGORY,
    is_integer_amount,
    is_null_principal,
)
from .environment import Clock, SystemClock
from .membership import MembershipRegistry
from .observability import EventType, GovernanceEvents
from .security import AccessGate

VALID_TRANSITIONS: Dict[ProposalState, frozenset] = {
    ProposalState.PENDING: frozenset({ProposalState.ACTIVE}),
    ProposalState.ACTIVE: frozenset(
        {ProposalState.DEFEATED, ProposalState.QUEUED, ProposalState.CANCELLED}
    ),
    ProposalState.QUEUED: frozenset({ProposalState.EXECUTED, ProposalState.CANCELLED}),
    ProposalState.DEFEATED: frozenset(),
    ProposalState.EXECUTED: frozenset(),
    ProposalState.CANCELLED: frozenset(),
}


@dataclass(frozen=True)
class TallyOutcome:
    """Verdict of a tally against quorum and approval thresholds."""

    total_votes: int
    required_quorum: int
    quorum_reached: bool
    decisive_votes: int
    approval_bp: Optional[int]
    passed: bool
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_votes": self.total_votes,
            "required_quorum": self.required_quorum,
            "quorum_reached": self.quorum_reached,
            "decisive_votes": self.decisive_votes,
            "approval_bp": self.approval_bp,
            "passed": self.passed,
            "reason": self.reason,
        }


def evaluate_outcome(
    for_votes: int,
    against_votes: int,
    abstain_votes: int,
    total_voting_power: int,
    quorum_bp: int,
    approval_bp: int,
) -> TallyOutcome:
    """Apply quorum then approval, both in integer basis points.

    Abstentions count toward quorum but not toward approval.
    """
    total = for_votes + against_votes + abstain_votes
    required_quorum = total_voting_power * quorum_bp // BASIS_POINTS
    decisive = for_votes + against_votes

    if total < required_quorum:
        return TallyOutcome(total, required_quorum, False, decisive, None, False, "quorum_not_met")

    if decisive == 0:
        return TallyOutcome(total, required_quorum, True, 0, None, False, "no_decisive_votes")

    approval = for_votes * BASIS_POINTS // decisive
    if approval >= approval_bp:
        return TallyOutcome(total, required_quorum, True, decisive, approval, True, "approved")
    return TallyOutcome(total, required_quorum, True, decisive, approval, False, "approval_not_met")


class ProposalRegistry:
    """Creates proposals and drives them through their lifecycle."""

    def __init__(
        self,
        membership: MembershipRegistry,
        access_gate: AccessGate,
        events: GovernanceEvents,
        config: GovernanceConfig,
        clock: Optional[Clock] = None,
    ):
        self.membership = membership
        self.access_gate = access_gate
        self.events = events
        self.config = config
        self.clock = clock or SystemClock()
        self.journal = membership.journal

        self._proposals: Dict[int, Proposal] = {}
        self._next_id = 1

    def create(
        self,
        proposer: str,
        recipient: str,
        amount: int,
        description: str,
        proposal_type: ProposalType,
        category: TreasuryCategory,
    ) -> Proposal:
        """Create a PENDING proposal and return it."""
        stake = self.membership.stake_of(proposer)
        minimum = self.config.minimum_stake_to_propose
        if stake < minimum:
            raise ResourceError(
                f"{proposer} has {stake} staked, {minimum} required to propose",
                error_code=ErrorCode.INSUFFICIENT_STAKE,
                available=stake,
                requested=minimum,
            )

        self.access_gate.require(proposer, Capability.PROPOSER, "create_proposal")
        self._validate_terms(recipient, amount, description, proposal_type, category)

        now = self.clock.now()
        proposal = Proposal(
            proposal_id=self._next_id,
            proposer=proposer,
            recipient=recipient,
            amount=amount,
            description=description,
            proposal_type=proposal_type,
            category=category,
            created_at=now,
        )
        self.journal.record(self._proposals, proposal.proposal_id)
        self.journal.record_attr(self, "_next_id")
        self._proposals[proposal.proposal_id] = proposal
        self._next_id += 1

        self.events.emit_event(
            EventType.PROPOSAL_CREATED,
            principal=proposer,
            proposal_id=proposal.proposal_id,
            metadata={
                "recipient": recipient,
                "amount": amount,
                "proposal_type": proposal_type.value,
                "category": category.value,
            },
        )
        logger.info(
            f"Proposal {proposal.proposal_id} created by {proposer}: "
            f"{amount} from {category.value} to {recipient}"
        )
        return proposal

    def _validate_terms(
        self,
        recipient: str,
        amount: int,
        description: str,
        proposal_type: ProposalType,
        category: TreasuryCategory,
    ) -> None:
        if is_null_principal(recipient):
            raise create_validation_error(
                "recipient", recipient, "non-null principal", ErrorCode.INVALID_RECIPIENT
            )

        if not is_integer_amount(amount) or amount <= 0:
            raise create_validation_error("amount", amount, "> 0", ErrorCode.INVALID_AMOUNT)

        if not description:
            raise ValidationError(
                "Proposal description is required",
                error_code=ErrorCode.MISSING_DESCRIPTION,
                field="description",
            )

        max_length = self.config.max_description_length
        if len(description) > max_length:
            raise create_validation_error(
                "description",
                f"{len(description)} characters",
                f"at most {max_length} characters",
                ErrorCode.DESCRIPTION_TOO_LONG,
            )

        if not isinstance(proposal_type, ProposalType):
            raise create_validation_error(
                "proposal_type", proposal_type, "a ProposalType", ErrorCode.INVALID_PROPOSAL_TYPE
            )

        if not isinstance(category, TreasuryCategory):
            raise create_validation_error(
                "category", category, "a TreasuryCategory", ErrorCode.INVALID_CATEGORY
            )

        expected = TYPE_TO_CATEGORY[proposal_type]
        if category != expected:
            raise create_validation_error(
                "category", category.value, expected.value, ErrorCode.CATEGORY_MISMATCH
            )

    def activate(self, proposal_id: int, caller: str) -> Proposal:
        """Open voting on a PENDING proposal."""
        proposal = self.require_proposal(proposal_id, for_update=True)
        self._require_state(proposal, ProposalState.PENDING)

        if caller != proposal.proposer:
            self.access_gate.require(caller, Capability.GUARDIAN, "activate_proposal")

        now = self.clock.now()
        voting_period = self.config.proposal_configs[proposal.proposal_type].voting_period
        proposal.start_time = now
        proposal.end_time = now + voting_period
        self.transition(proposal, ProposalState.ACTIVE)

        self.events.emit_event(
            EventType.PROPOSAL_ACTIVATED,
            principal=caller,
            proposal_id=proposal_id,
            metadata={"start_time": proposal.start_time, "end_time": proposal.end_time},
        )
        logger.info(f"Proposal {proposal_id} active until {proposal.end_time}")
        return proposal

    def resolve(self, proposal_id: int) -> Proposal:
        """Close voting and queue or defeat the proposal."""
        proposal = self.require_proposal(proposal_id, for_update=True)
        self._require_state(proposal, ProposalState.ACTIVE)

        now = self.clock.now()
        if now <= proposal.end_time:
            raise StateError(
                f"Voting on proposal {proposal_id} is open until {proposal.end_time}",
                error_code=ErrorCode.VOTING_STILL_OPEN,
                current_state=proposal.state.value,
                context=ErrorContext(proposal_id=proposal_id),
            )

        outcome = self.evaluate(proposal)
        metadata = {
            "for_votes": proposal.for_votes,
            "against_votes": proposal.against_votes,
            "abstain_votes": proposal.abstain_votes,
            **outcome.to_dict(),
        }

        if outcome.passed:
            proposal.queued_time = now
            self.transition(proposal, ProposalState.QUEUED)
            self.events.emit_event(
                EventType.PROPOSAL_QUEUED, proposal_id=proposal_id, metadata=metadata
            )
            logger.info(f"Proposal {proposal_id} queued with approval {outcome.approval_bp}bp")
        else:
            self.transition(proposal, ProposalState.DEFEATED)
            self.events.emit_event(
                EventType.PROPOSAL_DEFEATED, proposal_id=proposal_id, metadata=metadata
            )
            logger.info(f"Proposal {proposal_id} defeated: {outcome.reason}")

        return proposal

    def evaluate(self, proposal: Proposal) -> TallyOutcome:
        """Current verdict for a proposal under its type's live thresholds."""
        config = self.config.proposal_configs[proposal.proposal_type]
        return evaluate_outcome(
            proposal.for_votes,
            proposal.against_votes,
            proposal.abstain_votes,
            self.membership.total_voting_power(),
            config.quorum_bp,
            config.approval_bp,
        )

    def cancel(self, proposal_id: int, guardian: str) -> Proposal:
        """Cancel an ACTIVE or QUEUED proposal."""
        self.access_gate.require(guardian, Capability.GUARDIAN, "cancel_proposal")
        proposal = self.require_proposal(proposal_id, for_update=True)
        if proposal.state not in (ProposalState.ACTIVE, ProposalState.QUEUED):
            raise create_wrong_state_error(proposal_id, proposal.state.value, "active or queued")

        proposal.cancelled_time = self.clock.now()
        self.transition(proposal, ProposalState.CANCELLED)

        self.events.emit_event(
            EventType.PROPOSAL_CANCELLED, principal=guardian, proposal_id=proposal_id
        )
        logger.info(f"Proposal {proposal_id} cancelled by {guardian}")
        return proposal

    def transition(self, proposal: Proposal, new_state: ProposalState) -> None:
        """Move a proposal to a new state along an allowed edge."""
        if new_state not in VALID_TRANSITIONS[proposal.state]:
            raise create_wrong_state_error(
                proposal.proposal_id, proposal.state.value, f"a state leading to {new_state.value}"
            )
        proposal.state = new_state

    def require_proposal(self, proposal_id: int, for_update: bool = False) -> Proposal:
        """The live proposal record; raises NotFound for unknown ids.

        With ``for_update`` the record is journaled so the caller may change it.
        """
        proposal = self._proposals.get(proposal_id)
        if proposal is None:
            raise StateError(
                f"Proposal {proposal_id} not found",
                error_code=ErrorCode.NOT_FOUND,
                context=ErrorContext(proposal_id=proposal_id),
            )
        if for_update:
            self.journal.record(self._proposals, proposal_id)
        return proposal

    @staticmethod
    def _require_state(proposal: Proposal, expected: ProposalState) -> None:
        if proposal.state != expected:
            raise create_wrong_state_error(
                proposal.proposal_id, proposal.state.value, expected.value
            )

    # Queries

    def get_proposal(self, proposal_id: int) -> Optional[Proposal]:
        proposal = self._proposals.get(proposal_id)
        return copy.deepcopy(proposal) if proposal else None

    def get_state(self, proposal_id: int) -> ProposalState:
        return self.require_proposal(proposal_id).state

    def proposal_count(self) -> int:
        return len(self._proposals)

    def proposals_in_state(self, state: ProposalState) -> List[int]:
        return [pid for pid, proposal in self._proposals.items() if proposal.state == state]

    def get_proposal_statistics(self) -> Dict[str, Any]:
        counts = {state.value: 0 for state in ProposalState}
        for proposal in self._proposals.values():
            counts[proposal.state.value] += 1
        return {"total_proposals": len(self._proposals), "by_state": counts}
