"""
Observability and audit trail system for governance.

Every committed state change emits a :class:`GovernanceEvent`. Events are
chained by SHA-256 hashes in an append-only :class:`AuditTrail`. While an
engine transaction is open, events are staged and only reach the trail (and
the listeners) once the transaction commits.
"""

import logging

logger = logging.getLogger(__name__)
import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..crypto.hashing import SHA256Hasher
from .environment import Clock, SystemClock


class EventType(Enum):
    """Types of governance events."""

    MEMBER_JOINED = "member_joined"
    STAKE_INCREASED = "stake_increased"
    STAKE_WITHDRAWN = "stake_withdrawn"

    VOTING_POWER_DELEGATED = "voting_power_delegated"
    DELEGATION_REVOKED = "delegation_revoked"

    TREASURY_DEPOSIT = "treasury_deposit"
    TREASURY_LIMIT_UPDATED = "treasury_limit_updated"

    PROPOSAL_CREATED = "proposal_created"
    PROPOSAL_ACTIVATED = "proposal_activated"
    PROPOSAL_QUEUED = "proposal_queued"
    PROPOSAL_DEFEATED = "proposal_defeated"
    PROPOSAL_EXECUTED = "proposal_executed"
    PROPOSAL_CANCELLED = "proposal_cancelled"
    PROPOSAL_CONFIG_UPDATED = "proposal_config_updated"

    VOTE_CAST = "vote_cast"

    CAPABILITY_GRANTED = "capability_granted"
    CAPABILITY_REVOKED = "capability_revoked"

    EMERGENCY_PAUSE = "emergency_pause"
    EMERGENCY_RESUME = "emergency_resume"


@dataclass
class GovernanceEvent:
    """A governance event for audit trail."""

    event_id: str
    event_type: EventType
    timestamp: int
    principal: Optional[str] = None
    proposal_id: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    # Cryptographic integrity
    event_hash: Optional[str] = None
    previous_event_hash: Optional[str] = None

    def __post_init__(self):
        """Calculate event hash after initialization."""
        self.event_hash = self._calculate_hash()

    def _calculate_hash(self) -> str:
        """Calculate hash of this event."""
        event_data = {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "timestamp": self.timestamp,
            "principal": self.principal,
            "proposal_id": self.proposal_id,
            "metadata": self.metadata,
            "previous_event_hash": self.previous_event_hash,
        }
        return str(SHA256Hasher.hash_json(event_data))

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary."""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "timestamp": self.timestamp,
            "principal": self.principal,
            "proposal_id": self.proposal_id,
            "metadata": self.metadata,
            "event_hash": self.event_hash,
            "previous_event_hash": self.previous_event_hash,
        }


class AuditTrail:
    """Maintains an append-only audit trail of governance events."""

    def __init__(self):
        """Initialize audit trail."""
        self.events: List[GovernanceEvent] = []
        self.event_index: Dict[str, int] = {}  # event_id -> index
        self.proposal_events: Dict[int, List[GovernanceEvent]] = {}
        self.principal_events: Dict[str, List[GovernanceEvent]] = {}

    def __len__(self) -> int:
        return len(self.events)

    def add_event(self, event: GovernanceEvent) -> None:
        """Add an event to the audit trail."""
        # Chain to the previous event
        if self.events:
            event.previous_event_hash = self.events[-1].event_hash
        event.event_hash = event._calculate_hash()

        self.events.append(event)
        self.event_index[event.event_id] = len(self.events) - 1

        if event.proposal_id is not None:
            self.proposal_events.setdefault(event.proposal_id, []).append(event)

        if event.principal:
            self.principal_events.setdefault(event.principal, []).append(event)

    def copy(self) -> "AuditTrail":
        """Detached copy; changes made to it never reach this trail."""
        return copy.deepcopy(self)

    def get_event(self, event_id: str) -> Optional[GovernanceEvent]:
        """Get an event by ID."""
        if event_id in self.event_index:
            return self.events[self.event_index[event_id]]
        return None

    def get_proposal_events(self, proposal_id: int) -> List[GovernanceEvent]:
        """Get all events for a proposal."""
        return list(self.proposal_events.get(proposal_id, []))

    def get_principal_events(self, principal: str) -> List[GovernanceEvent]:
        """Get all events initiated by or concerning a principal."""
        return list(self.principal_events.get(principal, []))

    def get_events_by_type(self, event_type: EventType) -> List[GovernanceEvent]:
        return [event for event in self.events if event.event_type == event_type]

    def get_events_in_range(self, start_time: int, end_time: int) -> List[GovernanceEvent]:
        """Get events within a time range."""
        return [event for event in self.events if start_time <= event.timestamp <= end_time]

    def verify_integrity(self) -> bool:
        """Verify the integrity of the audit trail."""
        for i, event in enumerate(self.events):
            if event.event_hash != event._calculate_hash():
                return False

            if i > 0 and event.previous_event_hash != self.events[i - 1].event_hash:
                return False

        return True

    def get_audit_summary(self) -> Dict[str, Any]:
        """Get audit trail summary."""
        event_counts: Dict[str, int] = {}
        for event in self.events:
            event_type = event.event_type.value
            event_counts[event_type] = event_counts.get(event_type, 0) + 1

        return {
            "total_events": len(self.events),
            "event_counts": event_counts,
            "unique_proposals": len(self.proposal_events),
            "unique_principals": len(self.principal_events),
            "integrity_verified": self.verify_integrity(),
        }


class GovernanceEvents:
    """Event system for governance observability."""

    def __init__(self, clock: Optional[Clock] = None):
        """Initialize governance events system."""
        self.clock = clock or SystemClock()
        self.audit_trail = AuditTrail()
        self.event_listeners: Dict[EventType, List[Callable[[GovernanceEvent], None]]] = {}

        self._sequence = 0
        self._staged: Optional[List[GovernanceEvent]] = None
        self._staged_sequence = 0

    @property
    def is_staging(self) -> bool:
        return self._staged is not None

    def add_event_listener(
        self, event_type: EventType, listener: Callable[[GovernanceEvent], None]
    ) -> None:
        """Add an event listener."""
        self.event_listeners.setdefault(event_type, []).append(listener)

    def remove_event_listener(
        self, event_type: EventType, listener: Callable[[GovernanceEvent], None]
    ) -> bool:
        listeners = self.event_listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)
            return True
        return False

    def begin(self) -> None:
        """Start staging events for a transaction."""
        if self._staged is not None:
            raise RuntimeError("Event staging already in progress")
        self._staged = []
        self._staged_sequence = self._sequence

    def commit(self) -> List[GovernanceEvent]:
        """Append staged events to the audit trail and notify listeners."""
        staged = self._staged or []
        self._staged = None
        for event in staged:
            self._publish(event)
        return staged

    def discard(self) -> int:
        """Drop staged events; returns how many were dropped."""
        dropped = len(self._staged or [])
        self._staged = None
        self._sequence = self._staged_sequence
        return dropped

    def emit_event(
        self,
        event_type: EventType,
        principal: Optional[str] = None,
        proposal_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> GovernanceEvent:
        """Emit a governance event."""
        self._sequence += 1
        event = GovernanceEvent(
            event_id=f"{event_type.value}_{self._sequence}",
            event_type=event_type,
            timestamp=self.clock.now(),
            principal=principal,
            proposal_id=proposal_id,
            metadata=metadata or {},
        )

        if self._staged is not None:
            self._staged.append(event)
        else:
            self._publish(event)

        return event

    def _publish(self, event: GovernanceEvent) -> None:
        self.audit_trail.add_event(event)

        # Listeners observe committed events only; a failing listener cannot
        # undo a commit.
        for listener in self.event_listeners.get(event.event_type, []):
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Error in event listener for {event.event_type.value}: {e}")

    def get_audit_trail(self) -> AuditTrail:
        """Get the audit trail."""
        return self.audit_trail

    def export_audit_trail(self, start_time: int, end_time: int) -> List[Dict[str, Any]]:
        """Export audit trail for a time range."""
        events = self.audit_trail.get_events_in_range(start_time, end_time)
        return [event.to_dict() for event in events]

    def verify_audit_integrity(self) -> bool:
        """Verify audit trail integrity."""
        return self.audit_trail.verify_integrity()
