"""
Treasury governance for VentureDAO.

This module provides the governance engine for a member-staked investment
treasury:
- Square-root stake-weighted voting power
- Single-hop vote delegation
- Segregated, capped treasury categories
- Proposal lifecycle with quorum and approval thresholds
- Timelocked execution of approved proposals
- Capability-gated administration and emergency pause
- Hash-chained audit trail of committed events
"""

from .core import (
    BASIS_POINTS,
    DAY,
    HOUR,
    NULL_PRINCIPAL,
    TYPE_TO_CATEGORY,
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
    default_proposal_configs,
    is_null_principal,
)
from .delegation import Delegation, DelegationGraph
from .engine import GovernanceEngine
from .environment import (
    Clock,
    InMemoryLedger,
    ManualClock,
    SystemClock,
    ValueTransfer,
)
from .execution import ExecutionResult, TimelockExecutor
from .journal import ChangeJournal
from .membership import MembershipRegistry
from .observability import AuditTrail, EventType, GovernanceEvent, GovernanceEvents
from .power import VotingPowerModel, integer_sqrt
from .proposal import ProposalRegistry, TallyOutcome, evaluate_outcome
from .security import AccessGate, EmergencyManager, ReentrancyGuard
from .treasury import Treasury, TreasuryBalance
from .voting import VotingEngine

__all__ = [
    # Core
    "BASIS_POINTS",
    "DAY",
    "HOUR",
    "NULL_PRINCIPAL",
    "TYPE_TO_CATEGORY",
    "Ballot",
    "Capability",
    "GovernanceConfig",
    "Member",
    "Proposal",
    "ProposalConfig",
    "ProposalState",
    "ProposalType",
    "TreasuryCategory",
    "VoteChoice",
    "default_proposal_configs",
    "is_null_principal",
    # Engine
    "GovernanceEngine",
    # Power and membership
    "VotingPowerModel",
    "integer_sqrt",
    "MembershipRegistry",
    # Delegation
    "Delegation",
    "DelegationGraph",
    # Treasury
    "Treasury",
    "TreasuryBalance",
    # Proposals and voting
    "ProposalRegistry",
    "TallyOutcome",
    "evaluate_outcome",
    "VotingEngine",
    # Execution
    "ExecutionResult",
    "TimelockExecutor",
    # Transactions
    "ChangeJournal",
    # Security
    "AccessGate",
    "EmergencyManager",
    "ReentrancyGuard",
    # Observability
    "AuditTrail",
    "EventType",
    "GovernanceEvent",
    "GovernanceEvents",
    # Environment
    "Clock",
    "SystemClock",
    "ManualClock",
    "ValueTransfer",
    "InMemoryLedger",
]
