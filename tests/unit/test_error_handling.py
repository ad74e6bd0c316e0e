"""Tests for the VentureDAO error handling system."""

import logging

logger = logging.getLogger(__name__)
import pytest

from venturedao.errors.exceptions import (
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


class TestExceptions:
    """Test exception classes."""

    def test_base_error(self):
        """Test the base error carries structured fields."""
        context = ErrorContext(component="treasury", operation="deposit")
        error = VentureDAOError(
            "Something failed",
            error_code=ErrorCode.TRANSFER_FAILED,
            severity=ErrorSeverity.HIGH,
            context=context,
            metadata={"attempt": 1},
        )

        assert error.message == "Something failed"
        assert error.code is ErrorCode.TRANSFER_FAILED
        assert error.error_code == "TransferFailed"
        assert error.category == ErrorCategory.SYSTEM
        assert error.context is context

        data = error.to_dict()
        assert data["type"] == "VentureDAOError"
        assert data["severity"] == "high"
        assert data["context"]["component"] == "treasury"
        assert data["metadata"] == {"attempt": 1}

    def test_str(self):
        """Test string representation."""
        error = StateError("Proposal 3 not found", error_code=ErrorCode.NOT_FOUND)
        assert str(error) == "StateError: Proposal 3 not found | Code: NotFound"

    @pytest.mark.parametrize(
        "error_class,category",
        [
            (ValidationError, ErrorCategory.VALIDATION),
            (AuthorizationError, ErrorCategory.AUTHORIZATION),
            (StateError, ErrorCategory.STATE),
            (ResourceError, ErrorCategory.RESOURCE),
        ],
    )
    def test_governance_categories(self, error_class, category):
        """Test each governance rejection class has its category."""
        error = error_class("rejected")

        assert isinstance(error, GovernanceError)
        assert isinstance(error, VentureDAOError)
        assert error.category == category

    def test_authorization_defaults(self):
        """Test authorization errors default to Unauthorized."""
        error = AuthorizationError("no", principal="0xa", required_capability="admin")

        assert error.error_code == "Unauthorized"
        assert error.severity == ErrorSeverity.HIGH
        assert error.to_dict()["required_capability"] == "admin"

    def test_resource_error_details(self):
        """Test resource errors report available and requested amounts."""
        error = ResourceError(
            "short", error_code=ErrorCode.INSUFFICIENT_FUNDS, available=5, requested=9
        )

        assert error.to_dict()["available"] == 5
        assert error.to_dict()["requested"] == 9

    def test_configuration_error(self):
        """Test configuration errors are not governance rejections."""
        error = ConfigurationError("bad", config_key="quorum_bp", config_value=-1)

        assert not isinstance(error, GovernanceError)
        assert error.error_code == "InvalidConfig"
        assert error.to_dict()["config_value"] == "-1"

    def test_transfer_error_keeps_cause(self):
        """Test transfer errors wrap the underlying failure."""
        cause = ConnectionError("reset")
        error = TransferError("failed", destination="0xr", amount=5, cause=cause)

        assert error.cause is cause
        assert error.error_code == "TransferFailed"
        assert error.to_dict()["cause"] == "reset"

    def test_error_codes_are_unique(self):
        """Test every code has a distinct value."""
        values = [code.value for code in ErrorCode]
        assert len(values) == len(set(values))


class TestErrorHelpers:
    """Test convenience constructors."""

    def test_create_validation_error(self):
        """Test the validation error helper."""
        error = create_validation_error("amount", 0, "> 0", ErrorCode.INVALID_AMOUNT)

        assert error.field == "amount"
        assert error.error_code == "InvalidAmount"
        assert "expected > 0, got 0" in error.message

    def test_create_wrong_state_error(self):
        """Test the wrong state helper."""
        error = create_wrong_state_error(4, "pending", "active")

        assert error.error_code == "WrongState"
        assert error.current_state == "pending"
        assert error.context.proposal_id == 4
        assert error.message == "Proposal 4 is pending, expected active"
