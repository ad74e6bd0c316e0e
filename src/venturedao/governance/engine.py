"""
Governance engine facade.

The engine owns every governance component and is the only entry point for
mutating state. Each mutating call runs as a single transaction: callers are
serialized by one lock, nested entry from inside an outbound transfer is
rejected, and any exception undoes every change the call journaled. Events
staged during a call reach the audit trail only when the call succeeds.
"""

import logging

logger = logging.getLogger(__name__)
import copy
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from ..errors.exceptions import ErrorCode, ValidationError
from .core import (
    Ballot,
    Capability,
    GovernanceConfig,
    Member,
    Proposal,
    ProposalConfig,
    ProposalState,
    ProposalType,
    TreasuryCategory,
    VoteChoice,
    is_null_principal,
)
from .delegation import Delegation, DelegationGraph
from .environment import Clock, InMemoryLedger, SystemClock, ValueTransfer
from .execution import ExecutionResult, TimelockExecutor
from .journal import ChangeJournal
from .membership import MembershipRegistry
from .observability import AuditTrail, EventType, GovernanceEvents
from .power import VotingPowerModel
from .proposal import ProposalRegistry
from .security import AccessGate, EmergencyManager, ReentrancyGuard
from .treasury import Treasury
from .voting import VotingEngine


class GovernanceEngine:
    """Main governance engine for VentureDAO."""

    def __init__(
        self,
        admin: str,
        config: Optional[GovernanceConfig] = None,
        clock: Optional[Clock] = None,
        transfer: Optional[ValueTransfer] = None,
    ):
        """Initialize governance engine.

        Args:
            admin: Principal bootstrapped with ADMIN, GUARDIAN and EXECUTOR
            config: Governance configuration; defaults apply when omitted
            clock: Time source; wall clock when omitted
            transfer: Outbound value transfer; an in-memory ledger when omitted
        """
        if is_null_principal(admin):
            raise ValidationError(
                "Admin principal is required",
                error_code=ErrorCode.INVALID_PRINCIPAL,
                field="admin",
                value=admin,
            )

        config = config or GovernanceConfig()
        config.validate()
        self.config = config
        self.admin = admin
        self.clock = clock or SystemClock()
        self.transfer = transfer or InMemoryLedger()

        self.events = GovernanceEvents(self.clock)
        self.journal = ChangeJournal()
        self.access_gate = AccessGate(self.events, self.journal)
        self.power_model = VotingPowerModel(config.voting_power_coefficient)
        self.membership = MembershipRegistry(
            self.power_model,
            self.access_gate,
            self.events,
            self.transfer,
            self.clock,
            journal=self.journal,
        )
        self.delegation = DelegationGraph(self.membership, self.events, self.clock)
        self.treasury = Treasury(
            self.access_gate,
            self.events,
            self.clock,
            limits=config.treasury_limits,
            journal=self.journal,
        )
        self.proposals = ProposalRegistry(
            self.membership, self.access_gate, self.events, config, self.clock
        )
        self.voting = VotingEngine(self.membership, self.proposals, self.events, self.clock)
        self.executor = TimelockExecutor(
            self.proposals,
            self.treasury,
            self.access_gate,
            self.events,
            config,
            self.transfer,
            self.clock,
        )
        self.emergency = EmergencyManager(self.access_gate, self.events, self.clock)
        self.reentrancy_guard = ReentrancyGuard()

        self._lock = threading.RLock()

        for capability in (Capability.ADMIN, Capability.GUARDIAN, Capability.EXECUTOR):
            self.access_gate.grant(admin, capability)

        logger.info(f"Governance engine initialized with admin {admin}")

    # Transactions

    @contextmanager
    def _transaction(self, operation: str, pausable: bool = False) -> Iterator[None]:
        """Run one mutating operation atomically."""
        with self._lock:
            with self.reentrancy_guard.guard(operation):
                self.journal.begin()
                self.events.begin()
                try:
                    if pausable:
                        self.emergency.require_not_paused(operation)
                    yield
                except Exception as e:
                    undone = self.journal.rollback()
                    dropped = self.events.discard()
                    logger.warning(
                        f"{operation} rolled back ({undone} changes undone, "
                        f"{dropped} staged events dropped): {e}"
                    )
                    raise
                else:
                    self.journal.commit()
                    self.events.commit()

    # Membership

    def join(self, principal: str, amount: int) -> Member:
        """Stake ``amount``; the first deposit also grants PROPOSER."""
        with self._transaction("join", pausable=True):
            return self.membership.join(principal, amount)

    def withdraw(self, principal: str, amount: int) -> Member:
        """Unstake ``amount`` and transfer it back to the member."""
        with self._transaction("withdraw"):
            return self.membership.withdraw(principal, amount)

    # Delegation

    def delegate(self, delegator: str, delegatee: str) -> Delegation:
        with self._transaction("delegate", pausable=True):
            return self.delegation.delegate(delegator, delegatee)

    def revoke_delegation(self, delegator: str) -> str:
        with self._transaction("revoke_delegation"):
            return self.delegation.revoke(delegator)

    # Treasury

    def deposit(
        self, category: TreasuryCategory, amount: int, depositor: Optional[str] = None
    ) -> int:
        """Deposit into a treasury category; returns the new balance."""
        with self._transaction("deposit", pausable=True):
            return self.treasury.deposit(category, amount, depositor)

    def receive(self, amount: int, sender: Optional[str] = None) -> int:
        """Unsolicited inbound value lands in the operational fund."""
        return self.deposit(TreasuryCategory.OPERATIONAL_FUND, amount, sender)

    def set_treasury_limit(
        self, caller: str, category: TreasuryCategory, limit: Optional[int]
    ) -> None:
        with self._transaction("set_treasury_limit"):
            self.treasury.set_limit(caller, category, limit)
            self.journal.record(self.config.treasury_limits, category)
            self.config.treasury_limits[category] = limit

    # Configuration and capabilities

    def set_proposal_config(
        self, caller: str, proposal_type: ProposalType, proposal_config: ProposalConfig
    ) -> None:
        """Replace the voting and timelock parameters for a proposal type.

        Changes apply to existing proposals from their next lifecycle step on.
        """
        with self._transaction("set_proposal_config"):
            self.access_gate.require(caller, Capability.ADMIN, "set_proposal_config")
            if not isinstance(proposal_type, ProposalType):
                raise ValidationError(
                    f"Unknown proposal type: {proposal_type!r}",
                    error_code=ErrorCode.INVALID_PROPOSAL_TYPE,
                    field="proposal_type",
                    value=proposal_type,
                )
            proposal_config.validate()

            self.journal.record(self.config.proposal_configs, proposal_type)
            self.config.proposal_configs[proposal_type] = copy.copy(proposal_config)
            self.events.emit_event(
                EventType.PROPOSAL_CONFIG_UPDATED,
                principal=caller,
                metadata={"proposal_type": proposal_type.value, **proposal_config.to_dict()},
            )
            logger.info(f"Proposal config for {proposal_type.value} updated by {caller}")

    def grant_capability(self, admin: str, principal: str, capability: Capability) -> bool:
        with self._transaction("grant_capability"):
            return self.access_gate.grant_capability(admin, principal, capability)

    def revoke_capability(self, admin: str, principal: str, capability: Capability) -> bool:
        with self._transaction("revoke_capability"):
            return self.access_gate.revoke_capability(admin, principal, capability)

    def pause(self, guardian: str, reason: str) -> None:
        with self._transaction("pause"):
            self.emergency.pause(guardian, reason)

    def unpause(self, guardian: str) -> None:
        with self._transaction("unpause"):
            self.emergency.unpause(guardian)

    # Proposal lifecycle

    def create_proposal(
        self,
        proposer: str,
        recipient: str,
        amount: int,
        description: str,
        proposal_type: ProposalType,
        category: TreasuryCategory,
    ) -> int:
        """Create a PENDING proposal and return its id."""
        with self._transaction("create_proposal", pausable=True):
            proposal = self.proposals.create(
                proposer, recipient, amount, description, proposal_type, category
            )
            return proposal.proposal_id

    def activate_proposal(self, proposal_id: int, caller: str) -> Proposal:
        with self._transaction("activate_proposal", pausable=True):
            return copy.deepcopy(self.proposals.activate(proposal_id, caller))

    def cast_vote(self, proposal_id: int, voter: str, choice: VoteChoice) -> Ballot:
        with self._transaction("cast_vote", pausable=True):
            return copy.copy(self.voting.cast_vote(proposal_id, voter, choice))

    def resolve_proposal(self, proposal_id: int) -> Proposal:
        """Close voting; anyone may resolve once the voting period is over."""
        with self._transaction("resolve_proposal"):
            return copy.deepcopy(self.proposals.resolve(proposal_id))

    def cancel_proposal(self, proposal_id: int, guardian: str) -> Proposal:
        with self._transaction("cancel_proposal"):
            return copy.deepcopy(self.proposals.cancel(proposal_id, guardian))

    def execute_proposal(self, proposal_id: int, caller: str) -> ExecutionResult:
        with self._transaction("execute_proposal", pausable=True):
            return copy.copy(self.executor.execute(proposal_id, caller))

    # Queries

    def get_member(self, principal: str) -> Optional[Member]:
        with self._lock:
            return self.membership.get_member(principal)

    def is_member(self, principal: str) -> bool:
        with self._lock:
            return self.membership.is_member(principal)

    def stake_of(self, principal: str) -> int:
        with self._lock:
            return self.membership.stake_of(principal)

    def voting_power(self, principal: str) -> int:
        with self._lock:
            return self.membership.voting_power(principal)

    def effective_power(self, principal: str) -> int:
        with self._lock:
            return self.membership.effective_power(principal)

    def total_staked(self) -> int:
        with self._lock:
            return self.membership.total_staked()

    def total_voting_power(self) -> int:
        with self._lock:
            return self.membership.total_voting_power()

    def member_count(self) -> int:
        with self._lock:
            return self.membership.member_count()

    def delegate_of(self, delegator: str) -> Optional[str]:
        with self._lock:
            return self.delegation.delegate_of(delegator)

    def delegators_of(self, delegatee: str) -> List[str]:
        with self._lock:
            return self.delegation.delegators_of(delegatee)

    def verify_consistency(self) -> bool:
        """Check delegation totals against the delegation edges."""
        with self._lock:
            return self.delegation.verify_consistency()

    def get_proposal(self, proposal_id: int) -> Optional[Proposal]:
        with self._lock:
            return self.proposals.get_proposal(proposal_id)

    def get_state(self, proposal_id: int) -> ProposalState:
        with self._lock:
            return self.proposals.get_state(proposal_id)

    def proposal_count(self) -> int:
        with self._lock:
            return self.proposals.proposal_count()

    def proposals_in_state(self, state: ProposalState) -> List[int]:
        with self._lock:
            return self.proposals.proposals_in_state(state)

    def get_tally(self, proposal_id: int) -> Dict[str, Any]:
        with self._lock:
            return self.voting.get_tally(proposal_id)

    def has_voted(self, proposal_id: int, voter: str) -> bool:
        with self._lock:
            return self.voting.has_voted(proposal_id, voter)

    def get_ballot(self, proposal_id: int, voter: str) -> Optional[Ballot]:
        with self._lock:
            return self.voting.get_ballot(proposal_id, voter)

    def treasury_balance(self, category: TreasuryCategory) -> int:
        with self._lock:
            return self.treasury.balance(category)

    def treasury_limit(self, category: TreasuryCategory) -> Optional[int]:
        with self._lock:
            return self.treasury.limit(category)

    def total_treasury_balance(self) -> int:
        with self._lock:
            return self.treasury.total_balance()

    def timelock_status(self, proposal_id: int) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self.executor.timelock_status(proposal_id)

    def get_execution_history(self) -> List[ExecutionResult]:
        with self._lock:
            return [copy.copy(result) for result in self.executor.get_execution_history()]

    def has_capability(self, principal: str, capability: Capability) -> bool:
        with self._lock:
            return self.access_gate.has_capability(principal, capability)

    def proposal_config(self, proposal_type: ProposalType) -> ProposalConfig:
        with self._lock:
            return copy.copy(self.config.proposal_configs[proposal_type])

    @property
    def is_paused(self) -> bool:
        with self._lock:
            return self.emergency.is_paused

    @property
    def audit_trail(self) -> AuditTrail:
        """A detached copy of the committed audit trail."""
        with self._lock:
            return self.events.get_audit_trail().copy()

    def verify_audit_integrity(self) -> bool:
        with self._lock:
            return self.events.verify_audit_integrity()

    def get_statistics(self) -> Dict[str, Any]:
        """Summary of members, proposals, treasury and audit trail."""
        with self._lock:
            return {
                "membership": self.membership.get_membership_statistics(),
                "delegation": self.delegation.get_delegation_statistics(),
                "proposals": self.proposals.get_proposal_statistics(),
                "treasury": self.treasury.get_treasury_statistics(),
                "executions": len(self.executor.execution_history),
                "emergency": self.emergency.get_status(),
                "audit": self.events.audit_trail.get_audit_summary(),
            }
