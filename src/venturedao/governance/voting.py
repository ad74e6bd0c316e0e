"""
Ballot casting for active proposals.

A member votes with its effective power (own power plus power delegated to
it) at the moment the ballot is cast. Members who delegate cannot vote
themselves.
"""

import logging

logger = logging.getLogger(__name__)
import copy
from typing import Any, Dict, Optional

from ..errors.exceptions import (
    ErrorCode,
    ErrorContext,
    ResourceError,
    StateError,
    create_validation_error,
    create_wrong_state_error,
)
from .core import Ballot, ProposalState, VoteChoice
from .environment import Clock, SystemClock
from .membership import MembershipRegistry
from .observability import EventType, GovernanceEvents
from .proposal import ProposalRegistry


class VotingEngine:
    """Records ballots and reports live tallies."""

    def __init__(
        self,
        membership: MembershipRegistry,
        proposals: ProposalRegistry,
        events: GovernanceEvents,
        clock: Optional[Clock] = None,
    ):
        self.membership = membership
        self.proposals = proposals
        self.events = events
        self.clock = clock or SystemClock()

    def cast_vote(self, proposal_id: int, voter: str, choice: VoteChoice) -> Ballot:
        """Cast a ballot weighted by the voter's effective power."""
        if not isinstance(choice, VoteChoice):
            raise create_validation_error(
                "choice", choice, "a VoteChoice", ErrorCode.INVALID_CHOICE
            )

        proposal = self.proposals.require_proposal(proposal_id)
        if proposal.state != ProposalState.ACTIVE:
            raise create_wrong_state_error(
                proposal_id, proposal.state.value, ProposalState.ACTIVE.value
            )

        now = self.clock.now()
        context = ErrorContext(component="voting", principal=voter, proposal_id=proposal_id)
        if now < proposal.start_time:
            raise StateError(
                f"Voting on proposal {proposal_id} starts at {proposal.start_time}",
                error_code=ErrorCode.NOT_STARTED,
                context=context,
            )
        if now > proposal.end_time:
            raise StateError(
                f"Voting on proposal {proposal_id} ended at {proposal.end_time}",
                error_code=ErrorCode.PERIOD_ENDED,
                context=context,
            )

        if proposal.has_voted(voter):
            raise StateError(
                f"{voter} has already voted on proposal {proposal_id}",
                error_code=ErrorCode.ALREADY_VOTED,
                context=context,
            )

        member = self.membership.record(voter)
        if member is not None and member.is_delegating():
            raise StateError(
                f"{voter} delegates to {member.delegate_to} and cannot vote",
                error_code=ErrorCode.DELEGATED_CANNOT_VOTE,
                current_state="delegating",
                context=context,
            )

        weight = member.effective_power() if member else 0
        if weight == 0:
            raise ResourceError(
                f"{voter} has no voting power",
                error_code=ErrorCode.NO_VOTING_POWER,
                available=0,
                context=context,
            )

        ballot = Ballot(voter=voter, choice=choice, weight=weight, cast_at=now)
        proposal.journal_ballot(self.proposals.journal, voter)
        proposal.record_ballot(ballot)

        self.events.emit_event(
            EventType.VOTE_CAST,
            principal=voter,
            proposal_id=proposal_id,
            metadata={"choice": choice.value, "weight": weight},
        )
        logger.info(f"{voter} voted {choice.value} on proposal {proposal_id} with {weight}")
        return ballot

    def has_voted(self, proposal_id: int, voter: str) -> bool:
        return self.proposals.require_proposal(proposal_id).has_voted(voter)

    def get_ballot(self, proposal_id: int, voter: str) -> Optional[Ballot]:
        ballot = self.proposals.require_proposal(proposal_id).ballots.get(voter)
        return copy.copy(ballot) if ballot else None

    def get_tally(self, proposal_id: int) -> Dict[str, Any]:
        """Current tally with the verdict it would produce if resolved now."""
        proposal = self.proposals.require_proposal(proposal_id)
        outcome = self.proposals.evaluate(proposal)
        return {
            "proposal_id": proposal_id,
            "state": proposal.state.value,
            "for_votes": proposal.for_votes,
            "against_votes": proposal.against_votes,
            "abstain_votes": proposal.abstain_votes,
            "voter_count": len(proposal.ballots),
            "total_voting_power": self.membership.total_voting_power(),
            **outcome.to_dict(),
        }
