"""
Unit tests for governance events and the audit trail.
"""

import logging

logger = logging.getLogger(__name__)
from unittest.mock import Mock

import pytest

from venturedao.governance.environment import ManualClock
from venturedao.governance.observability import (
    AuditTrail,
    EventType,
    GovernanceEvent,
    GovernanceEvents,
)


class TestGovernanceEvent:
    """Test GovernanceEvent class."""

    def test_hash_is_computed(self):
        """Test the event hash is set on creation."""
        event = GovernanceEvent(
            event_id="vote_cast_1", event_type=EventType.VOTE_CAST, timestamp=5, principal="0xa"
        )

        assert len(event.event_hash) == 64
        assert event.to_dict()["event_type"] == "vote_cast"

    def test_hash_depends_on_content(self):
        """Test different metadata yields different hashes."""
        first = GovernanceEvent("e1", EventType.VOTE_CAST, 5, metadata={"weight": 1})
        second = GovernanceEvent("e1", EventType.VOTE_CAST, 5, metadata={"weight": 2})

        assert first.event_hash != second.event_hash


class TestAuditTrail:
    """Test AuditTrail class."""

    def make_trail(self):
        trail = AuditTrail()
        trail.add_event(GovernanceEvent("e1", EventType.MEMBER_JOINED, 1, principal="0xa"))
        trail.add_event(GovernanceEvent("e2", EventType.PROPOSAL_CREATED, 2, "0xa", proposal_id=1))
        trail.add_event(GovernanceEvent("e3", EventType.VOTE_CAST, 3, "0xb", proposal_id=1))
        return trail

    def test_chain_links(self):
        """Test each event links to its predecessor."""
        trail = self.make_trail()

        assert trail.events[0].previous_event_hash is None
        assert trail.events[1].previous_event_hash == trail.events[0].event_hash
        assert trail.events[2].previous_event_hash == trail.events[1].event_hash
        assert trail.verify_integrity()

    def test_tampering_detected(self):
        """Test modifying a committed event breaks integrity."""
        trail = self.make_trail()

        trail.events[1].metadata["amount"] = 10**9

        assert trail.verify_integrity() is False

    def test_indexes(self):
        """Test lookup by id, proposal, principal, type and time."""
        trail = self.make_trail()

        assert trail.get_event("e2").event_type == EventType.PROPOSAL_CREATED
        assert trail.get_event("missing") is None
        assert [e.event_id for e in trail.get_proposal_events(1)] == ["e2", "e3"]
        assert [e.event_id for e in trail.get_principal_events("0xa")] == ["e1", "e2"]
        assert len(trail.get_events_by_type(EventType.VOTE_CAST)) == 1
        assert [e.event_id for e in trail.get_events_in_range(2, 3)] == ["e2", "e3"]
        assert len(trail) == 3

    def test_audit_summary(self):
        """Test the audit summary."""
        summary = self.make_trail().get_audit_summary()

        assert summary["total_events"] == 3
        assert summary["event_counts"]["vote_cast"] == 1
        assert summary["unique_proposals"] == 1
        assert summary["unique_principals"] == 2
        assert summary["integrity_verified"] is True

    def test_copy_is_detached(self):
        """Test changes to a copy never reach the original trail."""
        trail = self.make_trail()
        detached = trail.copy()

        detached.events[0].metadata["stake"] = 1
        detached.add_event(GovernanceEvent("e4", EventType.VOTE_CAST, 4, "0xc", proposal_id=1))

        assert len(trail) == 3
        assert len(detached) == 4
        assert [e.event_id for e in trail.get_proposal_events(1)] == ["e2", "e3"]
        assert trail.verify_integrity()


class TestGovernanceEvents:
    """Test GovernanceEvents class."""

    @pytest.fixture
    def events(self):
        return GovernanceEvents(ManualClock(start=42))

    def test_emit_outside_transaction(self, events):
        """Test events publish immediately without staging."""
        event = events.emit_event(EventType.MEMBER_JOINED, principal="0xa")

        assert event.timestamp == 42
        assert event.event_id == "member_joined_1"
        assert len(events.audit_trail) == 1

    def test_staged_events_commit(self, events):
        """Test staged events reach the trail only on commit."""
        listener = Mock()
        events.add_event_listener(EventType.VOTE_CAST, listener)

        events.begin()
        events.emit_event(EventType.VOTE_CAST, principal="0xa", proposal_id=1)
        assert len(events.audit_trail) == 0
        listener.assert_not_called()

        committed = events.commit()

        assert len(committed) == 1
        assert len(events.audit_trail) == 1
        listener.assert_called_once_with(committed[0])
        assert not events.is_staging

    def test_discard_drops_events(self, events):
        """Test discarded events never reach the trail and ids are reused."""
        events.begin()
        events.emit_event(EventType.VOTE_CAST, principal="0xa")
        assert events.discard() == 1

        event = events.emit_event(EventType.VOTE_CAST, principal="0xa")

        assert len(events.audit_trail) == 1
        assert event.event_id == "vote_cast_1"

    def test_nested_begin_rejected(self, events):
        """Test staging cannot be nested."""
        events.begin()
        with pytest.raises(RuntimeError):
            events.begin()

    def test_failing_listener_does_not_break_publish(self, events):
        """Test listener errors are logged and ignored."""
        events.add_event_listener(EventType.MEMBER_JOINED, Mock(side_effect=ValueError("bad")))
        second = Mock()
        events.add_event_listener(EventType.MEMBER_JOINED, second)

        events.emit_event(EventType.MEMBER_JOINED, principal="0xa")

        assert len(events.audit_trail) == 1
        second.assert_called_once()

    def test_remove_listener(self, events):
        """Test removing a listener."""
        listener = Mock()
        events.add_event_listener(EventType.VOTE_CAST, listener)

        assert events.remove_event_listener(EventType.VOTE_CAST, listener)
        assert not events.remove_event_listener(EventType.VOTE_CAST, listener)

        events.emit_event(EventType.VOTE_CAST)
        listener.assert_not_called()

    def test_export(self, events):
        """Test exporting events as dictionaries."""
        events.emit_event(EventType.MEMBER_JOINED, principal="0xa")

        exported = events.export_audit_trail(0, 100)

        assert exported[0]["principal"] == "0xa"
        assert events.verify_audit_integrity()
