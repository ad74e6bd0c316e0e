"""
Core governance types and data structures.

This module defines the fundamental types used throughout the governance
system: proposal types and their treasury categories, lifecycle states,
capabilities, configuration, member records, ballots and proposals.
"""

import logging

logger = logging.getLogger(__name__)
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from ..errors.exceptions import ConfigurationError, ErrorCode, StateError

NULL_PRINCIPAL = "0x" + "0" * 40
BASIS_POINTS = 10_000

HOUR = 60 * 60
DAY = 24 * HOUR


def is_null_principal(principal: Optional[str]) -> bool:
    """Check whether a principal is the distinguished null value."""
    return not principal or principal == NULL_PRINCIPAL


def is_integer_amount(value: Any) -> bool:
    """Amounts are plain ints; bools and floats are rejected."""
    return isinstance(value, int) and not isinstance(value, bool)


class ProposalType(Enum):
    """Risk tier of a funding proposal."""

    HIGH_CONVICTION = "high_conviction"
    EXPERIMENTAL = "experimental"
    OPERATIONAL = "operational"

    @property
    def category(self) -> "TreasuryCategory":
        """The treasury category this proposal type draws from."""
        return TYPE_TO_CATEGORY[self]


class TreasuryCategory(Enum):
    """Segregated treasury fund pools."""

    HIGH_CONVICTION_FUND = "high_conviction_fund"
    EXPERIMENTAL_FUND = "experimental_fund"
    OPERATIONAL_FUND = "operational_fund"


TYPE_TO_CATEGORY: Dict[ProposalType, TreasuryCategory] = {
    ProposalType.HIGH_CONVICTION: TreasuryCategory.HIGH_CONVICTION_FUND,
    ProposalType.EXPERIMENTAL: TreasuryCategory.EXPERIMENTAL_FUND,
    ProposalType.OPERATIONAL: TreasuryCategory.OPERATIONAL_FUND,
}


class ProposalState(Enum):
    """Lifecycle state of a governance proposal."""

    PENDING = "pending"
    ACTIVE = "active"
    DEFEATED = "defeated"
    QUEUED = "queued"
    EXECUTED = "executed"
    CANCELLED = "cancelled"

    def is_terminal(self) -> bool:
        """Terminal states admit no further transitions."""
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset(
    {ProposalState.DEFEATED, ProposalState.EXECUTED, ProposalState.CANCELLED}
)


class VoteChoice(Enum):
    """Vote choices for governance proposals."""

    AGAINST = "against"
    FOR = "for"
    ABSTAIN = "abstain"


class Capability(Enum):
    """Capabilities evaluated by the access gate."""

    PROPOSER = "proposer"
    EXECUTOR = "executor"
    GUARDIAN = "guardian"
    ADMIN = "admin"


@dataclass
class ProposalConfig:
    """Voting and timelock parameters for one proposal type."""

    voting_period: int
    quorum_bp: int
    approval_bp: int
    timelock_delay: int

    def validate(self) -> None:
        """Validate configuration."""
        if not isinstance(self.voting_period, int) or self.voting_period <= 0:
            raise ConfigurationError(
                "Voting period must be a positive number of seconds",
                config_key="voting_period",
                config_value=self.voting_period,
            )

        for key in ("quorum_bp", "approval_bp"):
            value = getattr(self, key)
            if not isinstance(value, int) or not 0 <= value <= BASIS_POINTS:
                raise ConfigurationError(
                    f"{key} must be between 0 and {BASIS_POINTS} basis points",
                    config_key=key,
                    config_value=value,
                )

        if not isinstance(self.timelock_delay, int) or self.timelock_delay < 0:
            raise ConfigurationError(
                "Timelock delay cannot be negative",
                config_key="timelock_delay",
                config_value=self.timelock_delay,
            )

    def to_dict(self) -> Dict[str, int]:
        """Convert configuration to dictionary."""
        return {
            "voting_period": self.voting_period,
            "quorum_bp": self.quorum_bp,
            "approval_bp": self.approval_bp,
            "timelock_delay": self.timelock_delay,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProposalConfig":
        """Create configuration from dictionary."""
        try:
            config = cls(
                voting_period=data["voting_period"],
                quorum_bp=data["quorum_bp"],
                approval_bp=data["approval_bp"],
                timelock_delay=data["timelock_delay"],
            )
        except KeyError as e:
            raise ConfigurationError(
                f"Missing proposal config key: {e.args[0]}", config_key=e.args[0]
            ) from e
        config.validate()
        return config


def default_proposal_configs() -> Dict[ProposalType, ProposalConfig]:
    """Default parameters; stricter tiers vote longer and wait longer."""
    return {
        ProposalType.HIGH_CONVICTION: ProposalConfig(
            voting_period=7 * DAY, quorum_bp=4000, approval_bp=6500, timelock_delay=2 * DAY
        ),
        ProposalType.EXPERIMENTAL: ProposalConfig(
            voting_period=5 * DAY, quorum_bp=2500, approval_bp=5500, timelock_delay=1 * DAY
        ),
        ProposalType.OPERATIONAL: ProposalConfig(
            voting_period=3 * DAY, quorum_bp=1500, approval_bp=5000, timelock_delay=12 * HOUR
        ),
    }


def default_treasury_limits() -> Dict[TreasuryCategory, Optional[int]]:
    """No category is capped until an admin sets a limit."""
    return {category: None for category in TreasuryCategory}


@dataclass
class GovernanceConfig:
    """Configuration for the governance system."""

    proposal_configs: Dict[ProposalType, ProposalConfig] = field(
        default_factory=default_proposal_configs
    )
    treasury_limits: Dict[TreasuryCategory, Optional[int]] = field(
        default_factory=default_treasury_limits
    )

    # Fixed for the lifetime of an engine
    minimum_stake_to_propose: int = 10**17
    voting_power_coefficient: int = 100
    max_description_length: int = 10_000

    def __post_init__(self):
        """Validate configuration after initialization."""
        for category in TreasuryCategory:
            self.treasury_limits.setdefault(category, None)
        self.validate()

    def validate(self) -> None:
        """Validate configuration."""
        for proposal_type in ProposalType:
            if proposal_type not in self.proposal_configs:
                raise ConfigurationError(
                    f"Missing configuration for proposal type {proposal_type.value}",
                    config_key="proposal_configs",
                )
            self.proposal_configs[proposal_type].validate()

        for category in TreasuryCategory:
            limit = self.treasury_limits.get(category)
            if limit is not None and (not isinstance(limit, int) or limit < 0):
                raise ConfigurationError(
                    f"Treasury limit for {category.value} must be a non-negative integer",
                    config_key="treasury_limits",
                    config_value=limit,
                )

        if self.minimum_stake_to_propose < 0:
            raise ConfigurationError(
                "Minimum stake to propose cannot be negative",
                config_key="minimum_stake_to_propose",
                config_value=self.minimum_stake_to_propose,
            )

        if self.voting_power_coefficient <= 0:
            raise ConfigurationError(
                "Voting power coefficient must be positive",
                config_key="voting_power_coefficient",
                config_value=self.voting_power_coefficient,
            )

        if self.max_description_length <= 0:
            raise ConfigurationError(
                "Max description length must be positive",
                config_key="max_description_length",
                config_value=self.max_description_length,
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "proposal_configs": {
                proposal_type.value: config.to_dict()
                for proposal_type, config in self.proposal_configs.items()
            },
            "treasury_limits": {
                category.value: limit for category, limit in self.treasury_limits.items()
            },
            "minimum_stake_to_propose": self.minimum_stake_to_propose,
            "voting_power_coefficient": self.voting_power_coefficient,
            "max_description_length": self.max_description_length,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GovernanceConfig":
        """Create configuration from a plain mapping; omitted keys keep defaults."""
        proposal_configs = default_proposal_configs()
        for key, value in data.get("proposal_configs", {}).items():
            try:
                proposal_type = ProposalType(key)
            except ValueError as e:
                raise ConfigurationError(
                    f"Unknown proposal type: {key}", config_key="proposal_configs"
                ) from e
            proposal_configs[proposal_type] = ProposalConfig.from_dict(value)

        treasury_limits = default_treasury_limits()
        for key, value in data.get("treasury_limits", {}).items():
            try:
                category = TreasuryCategory(key)
            except ValueError as e:
                raise ConfigurationError(
                    f"Unknown treasury category: {key}", config_key="treasury_limits"
                ) from e
            treasury_limits[category] = value

        defaults = cls.__dataclass_fields__
        return cls(
            proposal_configs=proposal_configs,
            treasury_limits=treasury_limits,
            minimum_stake_to_propose=data.get(
                "minimum_stake_to_propose", defaults["minimum_stake_to_propose"].default
            ),
            voting_power_coefficient=data.get(
                "voting_power_coefficient", defaults["voting_power_coefficient"].default
            ),
            max_description_length=data.get(
                "max_description_length", defaults["max_description_length"].default
            ),
        )


@dataclass
class Member:
    """Stake and voting power bookkeeping for one principal."""

    principal: str
    stake: int = 0
    power: int = 0
    delegate_to: Optional[str] = None
    delegated_power_received: int = 0
    joined_at: Optional[int] = None

    def effective_power(self) -> int:
        """Own power plus power delegated to this member."""
        return self.power + self.delegated_power_received

    def is_delegating(self) -> bool:
        """Check if this member currently delegates its power."""
        return self.delegate_to is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert member to dictionary."""
        return {
            "principal": self.principal,
            "stake": self.stake,
            "power": self.power,
            "delegate_to": self.delegate_to,
            "delegated_power_received": self.delegated_power_received,
            "effective_power": self.effective_power(),
            "joined_at": self.joined_at,
        }


@dataclass
class Ballot:
    """A recorded vote on a proposal."""

    voter: str
    choice: VoteChoice
    weight: int
    cast_at: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert ballot to dictionary."""
        return {
            "voter": self.voter,
            "choice": self.choice.value,
            "weight": self.weight,
            "cast_at": self.cast_at,
        }


_IMMUTABLE_PROPOSAL_FIELDS = frozenset(
    {
        "proposal_id",
        "proposer",
        "recipient",
        "amount",
        "description",
        "proposal_type",
        "category",
    }
)


@dataclass
class Proposal:
    """A treasury funding proposal.

    The terms of a proposal (proposer, recipient, amount, description, type and
    category) cannot be reassigned once the record exists.
    """

    proposal_id: int
    proposer: str
    recipient: str
    amount: int
    description: str
    proposal_type: ProposalType
    category: TreasuryCategory
    state: ProposalState = ProposalState.PENDING

    # Timestamps (clock seconds)
    created_at: int = 0
    start_time: Optional[int] = None
    end_time: Optional[int] = None
    queued_time: Optional[int] = None
    executed_time: Optional[int] = None
    cancelled_time: Optional[int] = None

    # Tally
    for_votes: int = 0
    against_votes: int = 0
    abstain_votes: int = 0
    ballots: Dict[str, Ballot] = field(default_factory=dict)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _IMMUTABLE_PROPOSAL_FIELDS and name in self.__dict__:
            raise AttributeError(f"Proposal field '{name}' is immutable")
        super().__setattr__(name, value)

    def has_voted(self, voter: str) -> bool:
        """Check whether a principal already holds a ballot."""
        return voter in self.ballots

    def journal_ballot(self, journal: Any, voter: str) -> None:
        """Journal only what recording one ballot changes."""
        journal.record(self.ballots, voter)
        for name in ("for_votes", "against_votes", "abstain_votes"):
            journal.record_attr(self, name)

    def record_ballot(self, ballot: Ballot) -> None:
        """Add a ballot and its weight to the matching tally."""
        if ballot.voter in self.ballots:
            raise StateError(
                f"{ballot.voter} has already voted on proposal {self.proposal_id}",
                error_code=ErrorCode.ALREADY_VOTED,
            )

        self.ballots[ballot.voter] = ballot
        if ballot.choice == VoteChoice.FOR:
            self.for_votes += ballot.weight
        elif ballot.choice == VoteChoice.AGAINST:
            self.against_votes += ballot.weight
        else:
            self.abstain_votes += ballot.weight

    def total_votes(self) -> int:
        """All participating power, abstentions included."""
        return self.for_votes + self.against_votes + self.abstain_votes

    def decisive_votes(self) -> int:
        """Power cast either for or against."""
        return self.for_votes + self.against_votes

    def is_terminal(self) -> bool:
        return self.state.is_terminal()

    def to_dict(self) -> Dict[str, Any]:
        """Convert proposal to dictionary."""
        return {
            "proposal_id": self.proposal_id,
            "proposer": self.proposer,
            "recipient": self.recipient,
            "amount": self.amount,
            "description": self.description,
            "proposal_type": self.proposal_type.value,
            "category": self.category.value,
            "state": self.state.value,
            "created_at": self.created_at,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "queued_time": self.queued_time,
            "executed_time": self.executed_time,
            "cancelled_time": self.cancelled_time,
            "for_votes": self.for_votes,
            "against_votes": self.against_votes,
            "abstain_votes": self.abstain_votes,
            "ballots": {voter: ballot.to_dict() for voter, ballot in self.ballots.items()},
        }
