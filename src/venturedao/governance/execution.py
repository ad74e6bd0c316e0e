"""
Timelocked execution of queued proposals.

A QUEUED proposal becomes executable once its type's timelock delay has
elapsed since it was queued. Execution debits the proposal's treasury
category and then pays the recipient; every internal change is made before
the outbound transfer.
"""

import logging

logger = logging.getLogger(__name__)
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..errors.exceptions import (
    ErrorCode,
    ErrorContext,
    ResourceError,
    StateError,
    create_wrong_state_error,
)
from .core import Capability, GovernanceConfig, Proposal, ProposalState, TreasuryCategory
from .environment import Clock, SystemClock, ValueTransfer, send_value
from .observability import EventType, GovernanceEvents
from .proposal import ProposalRegistry
from .security import AccessGate
from .treasury import Treasury


@dataclass
class ExecutionResult:
    """Result of proposal execution."""

    proposal_id: int
    executor: str
    recipient: str
    amount: int
    category: TreasuryCategory
    executed_at: Optional[int] = None
    remaining_balance: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposal_id": self.proposal_id,
            "executor": self.executor,
            "recipient": self.recipient,
            "amount": self.amount,
            "category": self.category.value,
            "executed_at": self.executed_at,
            "remaining_balance": self.remaining_balance,
        }


class TimelockExecutor:
    """Executes queued proposals once their timelock has elapsed."""

    def __init__(
        self,
        proposals: ProposalRegistry,
        treasury: Treasury,
        access_gate: AccessGate,
        events: GovernanceEvents,
        config: GovernanceConfig,
        transfer: ValueTransfer,
        clock: Optional[Clock] = None,
    ):
        self.proposals = proposals
        self.treasury = treasury
        self.access_gate = access_gate
        self.events = events
        self.config = config
        self.transfer = transfer
        self.clock = clock or SystemClock()

        self.execution_history: List[ExecutionResult] = []

    def eta(self, proposal: Proposal) -> int:
        """Earliest execution time under the type's current delay."""
        delay = self.config.proposal_configs[proposal.proposal_type].timelock_delay
        return proposal.queued_time + delay

    def execute(self, proposal_id: int, caller: str) -> ExecutionResult:
        """Execute a queued proposal and pay its recipient."""
        self.access_gate.require(caller, Capability.EXECUTOR, "execute_proposal")

        proposal = self.proposals.require_proposal(proposal_id, for_update=True)
        if proposal.state != ProposalState.QUEUED:
            raise create_wrong_state_error(
                proposal_id, proposal.state.value, ProposalState.QUEUED.value
            )

        now = self.clock.now()
        eta = self.eta(proposal)
        if now < eta:
            raise StateError(
                f"Proposal {proposal_id} is timelocked until {eta}",
                error_code=ErrorCode.TIMELOCK_NOT_ELAPSED,
                current_state=proposal.state.value,
                context=ErrorContext(proposal_id=proposal_id, metadata={"eta": eta, "now": now}),
            )

        available = self.treasury.balance(proposal.category)
        if available < proposal.amount:
            raise ResourceError(
                f"{proposal.category.value} holds {available}, proposal {proposal_id} "
                f"needs {proposal.amount}",
                error_code=ErrorCode.INSUFFICIENT_TREASURY,
                available=available,
                requested=proposal.amount,
                context=ErrorContext(proposal_id=proposal_id),
            )

        proposal.executed_time = now
        self.proposals.transition(proposal, ProposalState.EXECUTED)
        remaining = self.treasury.debit(proposal.category, proposal.amount)

        result = ExecutionResult(
            proposal_id=proposal_id,
            executor=caller,
            recipient=proposal.recipient,
            amount=proposal.amount,
            category=proposal.category,
            executed_at=now,
            remaining_balance=remaining,
        )
        self.proposals.journal.record_append(self.execution_history)
        self.execution_history.append(result)

        self.events.emit_event(
            EventType.PROPOSAL_EXECUTED,
            principal=caller,
            proposal_id=proposal_id,
            metadata={
                "recipient": proposal.recipient,
                "amount": proposal.amount,
                "category": proposal.category.value,
                "remaining_balance": remaining,
            },
        )

        send_value(self.transfer, proposal.recipient, proposal.amount)
        logger.info(
            f"Proposal {proposal_id} executed by {caller}: "
            f"{proposal.amount} paid to {proposal.recipient}"
        )
        return result

    def timelock_status(self, proposal_id: int) -> Optional[Dict[str, Any]]:
        """Get timelock status for a queued proposal."""
        proposal = self.proposals.require_proposal(proposal_id)
        if proposal.state != ProposalState.QUEUED:
            return None

        now = self.clock.now()
        eta = self.eta(proposal)
        return {
            "proposal_id": proposal_id,
            "queued_time": proposal.queued_time,
            "eta": eta,
            "current_time": now,
            "seconds_remaining": max(0, eta - now),
            "can_execute": now >= eta,
        }

    def get_execution_history(self) -> List[ExecutionResult]:
        return list(self.execution_history)
