"""VentureDAO error handling.

This module exposes the exception hierarchy used across the governance
engine.
"""

from .exceptions import (
    AuthorizationError,
    ConfigurationError,
    ErrorCategory,
    ErrorCode,
    ErrorContext,
    ErrorSeverity,
    GovernanceError,
    ResourceError,
    StateError,
    TransferError,
    ValidationError,
    VentureDAOError,
    create_validation_error,
    create_wrong_state_error,
)

__all__ = [
    "VentureDAOError",
    "GovernanceError",
    "ValidationError",
    "AuthorizationError",
    "StateError",
    "ResourceError",
    "ConfigurationError",
    "TransferError",
    "ErrorCategory",
    "ErrorCode",
    "ErrorContext",
    "ErrorSeverity",
    "create_validation_error",
    "create_wrong_state_error",
]
