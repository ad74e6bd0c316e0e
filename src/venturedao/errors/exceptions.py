"""Exception hierarchy for VentureDAO.

This module defines the structured exception hierarchy used by the governance
engine. Every rejection raised by an entry point is one of the four governance
categories (validation, authorization, state, resource) and carries a stable
``error_code`` so callers can branch on the reason without parsing messages.
"""

import time
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories."""

    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    STATE = "state"
    RESOURCE = "resource"
    CONFIGURATION = "configuration"
    SYSTEM = "system"


class ErrorCode(Enum):
    """Stable rejection codes for governance operations."""

    # Validation
    INSUFFICIENT_DEPOSIT = "InsufficientDeposit"
    INVALID_AMOUNT = "InvalidAmount"
    INVALID_RECIPIENT = "InvalidRecipient"
    MISSING_DESCRIPTION = "MissingDescription"
    DESCRIPTION_TOO_LONG = "DescriptionTooLong"
    CATEGORY_MISMATCH = "CategoryMismatch"
    INVALID_PROPOSAL_TYPE = "InvalidProposalType"
    INVALID_CATEGORY = "InvalidCategory"
    INVALID_CHOICE = "InvalidChoice"
    INVALID_DELEGATE = "InvalidDelegate"
    INVALID_PRINCIPAL = "InvalidPrincipal"
    SELF_DELEGATION = "SelfDelegation"

    # Authorization
    UNAUTHORIZED = "Unauthorized"

    # State
    NOT_FOUND = "NotFound"
    WRONG_STATE = "WrongState"
    NOT_STARTED = "NotStarted"
    PERIOD_ENDED = "PeriodEnded"
    VOTING_STILL_OPEN = "VotingStillOpen"
    ALREADY_VOTED = "AlreadyVoted"
    DELEGATED_CANNOT_VOTE = "DelegatedCannotVote"
    ALREADY_DELEGATED = "AlreadyDelegated"
    NO_ACTIVE_DELEGATION = "NoActiveDelegation"
    DELEGATION_ACTIVE = "DelegationActive"
    TIMELOCK_NOT_ELAPSED = "TimelockNotElapsed"
    REENTRANT_CALL = "ReentrantCall"
    PAUSED = "Paused"

    # Resource
    INSUFFICIENT_STAKE = "InsufficientStake"
    NO_STAKE = "NoStake"
    NO_VOTING_POWER = "NoVotingPower"
    EXCEEDS_LIMIT = "ExceedsLimit"
    INSUFFICIENT_FUNDS = "InsufficientFunds"
    INSUFFICIENT_TREASURY = "InsufficientTreasury"

    # Configuration
    INVALID_CONFIG = "InvalidConfig"

    # Collaborators
    TRANSFER_FAILED = "TransferFailed"


@dataclass
class ErrorContext:
    """Context information for an error."""

    timestamp: float = field(default_factory=time.time)
    component: Optional[str] = None
    operation: Optional[str] = None
    principal: Optional[str] = None
    proposal_id: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary."""
        return {
            "timestamp": self.timestamp,
            "component": self.component,
            "operation": self.operation,
            "principal": self.principal,
            "proposal_id": self.proposal_id,
            "metadata": self.metadata,
        }


class VentureDAOError(Exception):
    """Base exception for all VentureDAO errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = error_code
        self.error_code = error_code.value if error_code else None
        self.severity = severity
        self.category = category
        self.context = context or ErrorContext()
        self.cause = cause
        self.metadata = metadata or {}
        self.timestamp = time.time()
        self.traceback = traceback.format_exc() if cause is not None else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "severity": self.severity.value,
            "category": self.category.value,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
            "metadata": self.metadata,
            "timestamp": self.timestamp,
        }

    def __str__(self) -> str:
        """String representation of the error."""
        parts = [f"{self.__class__.__name__}: {self.message}"]

        if self.error_code:
            parts.append(f"Code: {self.error_code}")

        if self.severity != ErrorSeverity.MEDIUM:
            parts.append(f"Severity: {self.severity.value}")

        return " | ".join(parts)


class GovernanceError(VentureDAOError):
    """Base class for rejections raised by governance operations."""


class ValidationError(GovernanceError):
    """Malformed input: zero amounts, empty descriptions, type mismatches."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        expected: Optional[Any] = None,
        **kwargs,
    ):
        super().__init__(
            message, error_code=error_code, category=ErrorCategory.VALIDATION, **kwargs
        )
        self.field = field
        self.value = value
        self.expected = expected

    def to_dict(self) -> Dict[str, Any]:
        """Convert validation error to dictionary."""
        data = super().to_dict()
        data.update(
            {
                "field": self.field,
                "value": str(self.value) if self.value is not None else None,
                "expected": str(self.expected) if self.expected is not None else None,
            }
        )
        return data


class AuthorizationError(GovernanceError):
    """Missing capability or wrong caller."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNAUTHORIZED,
        principal: Optional[str] = None,
        required_capability: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(
            message,
            error_code=error_code,
            category=ErrorCategory.AUTHORIZATION,
            severity=ErrorSeverity.HIGH,
            **kwargs,
        )
        self.principal = principal
        self.required_capability = required_capability

    def to_dict(self) -> Dict[str, Any]:
        """Convert authorization error to dictionary."""
        data = super().to_dict()
        data.update(
            {
                "principal": self.principal,
                "required_capability": self.required_capability,
            }
        )
        return data


class StateError(GovernanceError):
    """Operation not allowed in the current lifecycle or delegation state."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        current_state: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(
            message, error_code=error_code, category=ErrorCategory.STATE, **kwargs
        )
        self.current_state = current_state

    def to_dict(self) -> Dict[str, Any]:
        """Convert state error to dictionary."""
        data = super().to_dict()
        data.update({"current_state": self.current_state})
        return data


class ResourceError(GovernanceError):
    """Insufficient stake, power or funds, or a limit would be exceeded."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        available: Optional[int] = None,
        requested: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(
            message, error_code=error_code, category=ErrorCategory.RESOURCE, **kwargs
        )
        self.available = available
        self.requested = requested

    def to_dict(self) -> Dict[str, Any]:
        """Convert resource error to dictionary."""
        data = super().to_dict()
        data.update({"available": self.available, "requested": self.requested})
        return data


class ConfigurationError(VentureDAOError):
    """Configuration error."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        **kwargs,
    ):
        kwargs.setdefault("error_code", ErrorCode.INVALID_CONFIG)
        super().__init__(message, category=ErrorCategory.CONFIGURATION, **kwargs)
        self.config_key = config_key
        self.config_value = config_value

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration error to dictionary."""
        data = super().to_dict()
        data.update(
            {
                "config_key": self.config_key,
                "config_value": str(self.config_value)
                if self.config_value is not None
                else None,
            }
        )
        return data


class TransferError(VentureDAOError):
    """The value-transfer collaborator failed to move funds."""

    def __init__(
        self,
        message: str,
        destination: Optional[str] = None,
        amount: Optional[int] = None,
        **kwargs,
    ):
        kwargs.setdefault("error_code", ErrorCode.TRANSFER_FAILED)
        super().__init__(
            message, category=ErrorCategory.SYSTEM, severity=ErrorSeverity.HIGH, **kwargs
        )
        self.destination = destination
        self.amount = amount

    def to_dict(self) -> Dict[str, Any]:
        """Convert transfer error to dictionary."""
        data = super().to_dict()
        data.update({"destination": self.destination, "amount": self.amount})
        return data


# Convenience functions for common error patterns
def create_validation_error(
    field: str,
    value: Any,
    expected: Any,
    error_code: ErrorCode,
    message: Optional[str] = None,
) -> ValidationError:
    """Create a validation error."""
    if message is None:
        message = f"Invalid value for field '{field}': expected {expected}, got {value}"

    return ValidationError(
        message=message, error_code=error_code, field=field, value=value, expected=expected
    )


def create_wrong_state_error(
    proposal_id: int, current_state: str, expected: str
) -> StateError:
    """Create a lifecycle state error for a proposal."""
    return StateError(
        f"Proposal {proposal_id} is {current_state}, expected {expected}",
        error_code=ErrorCode.WRONG_STATE,
        current_state=current_state,
        context=ErrorContext(proposal_id=proposal_id),
    )
