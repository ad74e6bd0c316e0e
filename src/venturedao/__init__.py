"""
VentureDAO - governance engine for a member-staked investment treasury.

Members stake value for square-root voting power, submit risk-tiered funding
proposals, vote, and release treasury funds only after a timelock.
"""

__version__ = "0.1.0"
__author__ = "VentureDAO Team"

from .governance import (
    Capability,
    GovernanceConfig,
    GovernanceEngine,
    ProposalConfig,
    ProposalState,
    ProposalType,
    TreasuryCategory,
    VoteChoice,
)

__all__ = [
    "__version__",
    "Capability",
    "GovernanceConfig",
    "GovernanceEngine",
    "ProposalConfig",
    "ProposalState",
    "ProposalType",
    "TreasuryCategory",
    "VoteChoice",
]
