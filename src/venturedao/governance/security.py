"""
Security mechanisms for the governance system.

This module holds the capability gate that guards privileged operations, the
reentrancy guard that rejects nested engine calls made from inside an
outbound transfer, and the guardian-controlled emergency pause.
"""

import logging

logger = logging.getLogger(__name__)
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Set

from ..errors.exceptions import (
    AuthorizationError,
    ErrorCode,
    ErrorContext,
    StateError,
    ValidationError,
)
from .core import Capability, is_null_principal
from .environment import Clock, SystemClock
from .journal import ChangeJournal
from .observability import EventType, GovernanceEvents


class AccessGate:
    """Capability evaluator for principals."""

    def __init__(
        self,
        events: Optional[GovernanceEvents] = None,
        journal: Optional[ChangeJournal] = None,
    ):
        self.events = events
        self.journal = journal or ChangeJournal()
        self.capabilities: Dict[str, Set[Capability]] = {}

    def has_capability(self, principal: str, capability: Capability) -> bool:
        """Check whether a principal holds a capability."""
        return capability in self.capabilities.get(principal, set())

    def capabilities_of(self, principal: str) -> Set[Capability]:
        return set(self.capabilities.get(principal, set()))

    def holders_of(self, capability: Capability) -> List[str]:
        """All principals holding a capability, sorted."""
        return sorted(p for p, caps in self.capabilities.items() if capability in caps)

    def require(
        self, principal: str, capability: Capability, operation: Optional[str] = None
    ) -> None:
        """Raise ``Unauthorized`` unless the principal holds the capability."""
        if not self.has_capability(principal, capability):
            logger.warning(
                f"Rejected {operation or 'operation'}: {principal} lacks {capability.value}"
            )
            raise AuthorizationError(
                f"{principal} lacks the {capability.value} capability",
                principal=principal,
                required_capability=capability.value,
                context=ErrorContext(
                    component="access_gate", operation=operation, principal=principal
                ),
            )

    def grant(self, principal: str, capability: Capability) -> bool:
        """Grant a capability without any authorization check.

        Returns True if the capability was newly granted.
        """
        if self.has_capability(principal, capability):
            return False
        self.journal.record(self.capabilities, principal)
        self.capabilities.setdefault(principal, set()).add(capability)
        return True

    def revoke(self, principal: str, capability: Capability) -> bool:
        held = self.capabilities.get(principal)
        if not held or capability not in held:
            return False
        self.journal.record(self.capabilities, principal)
        held.discard(capability)
        if not held:
            del self.capabilities[principal]
        return True

    def grant_capability(self, admin: str, principal: str, capability: Capability) -> bool:
        """Grant a capability on behalf of an admin."""
        self.require(admin, Capability.ADMIN, "grant_capability")
        self._validate_principal(principal)

        granted = self.grant(principal, capability)
        if granted and self.events is not None:
            self.events.emit_event(
                EventType.CAPABILITY_GRANTED,
                principal=principal,
                metadata={"capability": capability.value, "granted_by": admin},
            )
        return granted

    def revoke_capability(self, admin: str, principal: str, capability: Capability) -> bool:
        """Revoke a capability on behalf of an admin."""
        self.require(admin, Capability.ADMIN, "revoke_capability")

        revoked = self.revoke(principal, capability)
        if revoked and self.events is not None:
            self.events.emit_event(
                EventType.CAPABILITY_REVOKED,
                principal=principal,
                metadata={"capability": capability.value, "revoked_by": admin},
            )
        return revoked

    @staticmethod
    def _validate_principal(principal: str) -> None:
        if is_null_principal(principal):
            raise ValidationError(
                "Cannot grant capabilities to the null principal",
                error_code=ErrorCode.INVALID_PRINCIPAL,
                field="principal",
                value=principal,
            )


class ReentrancyGuard:
    """Call-scoped exclusive flag.

    The engine serializes callers with a lock; this guard catches the same
    thread entering again while a call is still in flight.
    """

    def __init__(self):
        self._active_operation: Optional[str] = None

    @property
    def entered(self) -> bool:
        return self._active_operation is not None

    @contextmanager
    def guard(self, operation: str) -> Iterator[None]:
        """Hold the flag for the duration of one operation."""
        if self._active_operation is not None:
            logger.warning(
                f"Reentrant call to {operation} while {self._active_operation} is in flight"
            )
            raise StateError(
                f"Reentrant call to {operation} rejected",
                error_code=ErrorCode.REENTRANT_CALL,
                current_state=self._active_operation,
                context=ErrorContext(component="reentrancy_guard", operation=operation),
            )

        self._active_operation = operation
        try:
            yield
        finally:
            self._active_operation = None


class EmergencyManager:
    """Manages the guardian emergency pause."""

    def __init__(
        self,
        access_gate: AccessGate,
        events: Optional[GovernanceEvents] = None,
        clock: Optional[Clock] = None,
    ):
        self.access_gate = access_gate
        self.events = events
        self.clock = clock or SystemClock()
        self.journal = access_gate.journal

        self.is_paused = False
        self.pause_reason: Optional[str] = None
        self.paused_at: Optional[int] = None
        self.pause_initiator: Optional[str] = None

    def pause(self, guardian: str, reason: str) -> None:
        """Pause governance due to emergency."""
        self.access_gate.require(guardian, Capability.GUARDIAN, "pause")
        if self.is_paused:
            raise StateError(
                "Governance is already paused",
                error_code=ErrorCode.PAUSED,
                current_state="paused",
            )

        self._record_status()
        self.is_paused = True
        self.pause_reason = reason
        self.paused_at = self.clock.now()
        self.pause_initiator = guardian

        if self.events is not None:
            self.events.emit_event(
                EventType.EMERGENCY_PAUSE, principal=guardian, metadata={"reason": reason}
            )
        logger.warning(f"Governance paused by {guardian}: {reason}")

    def unpause(self, guardian: str) -> None:
        """Resume governance after emergency."""
        self.access_gate.require(guardian, Capability.GUARDIAN, "unpause")
        if not self.is_paused:
            raise StateError(
                "Governance is not paused",
                error_code=ErrorCode.WRONG_STATE,
                current_state="running",
            )

        self._record_status()
        self.is_paused = False
        self.pause_reason = None
        self.paused_at = None
        self.pause_initiator = None

        if self.events is not None:
            self.events.emit_event(EventType.EMERGENCY_RESUME, principal=guardian)
        logger.info(f"Governance resumed by {guardian}")

    def require_not_paused(self, operation: str) -> None:
        if self.is_paused:
            raise StateError(
                f"Cannot {operation} while governance is paused",
                error_code=ErrorCode.PAUSED,
                current_state="paused",
                context=ErrorContext(component="emergency_manager", operation=operation),
            )

    def _record_status(self) -> None:
        for name in ("is_paused", "pause_reason", "paused_at", "pause_initiator"):
            self.journal.record_attr(self, name)

    def get_status(self) -> Dict[str, Any]:
        return {
            "is_paused": self.is_paused,
            "pause_reason": self.pause_reason,
            "paused_at": self.paused_at,
            "pause_initiator": self.pause_initiator,
        }
