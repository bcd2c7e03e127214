"""
Unit tests for roster models.

Tests derived state (slot status, event counters), cascades and the
typed audit payload.
"""

import pytest

from backend.src.models import (
    Absence,
    AuditAction,
    AuditEntry,
    CommunicationNode,
    Slot,
    SlotStatus,
    Squad,
)
from backend.src.models.communication_node import NodeType
from backend.src.schemas.audit import SlotAssignedDetails


class TestSlotModel:
    """Tests for derived slot status."""

    def test_free_without_user(self):
        slot = Slot(role="Medic")
        assert slot.status == SlotStatus.FREE
        assert slot.is_occupied is False

    def test_status_follows_user_id(self, roster_event, find_slot, occupy, member_user):
        slot = find_slot(roster_event, "Bravo", "Medic")
        occupy(slot, member_user)

        assert slot.status == SlotStatus.OCCUPIED
        assert slot.user.nickname == "Sparrow"

    def test_status_is_read_only(self):
        slot = Slot(role="Medic")
        with pytest.raises(AttributeError):
            slot.status = SlotStatus.OCCUPIED


class TestEventModel:
    """Tests for event counters and cascades."""

    def test_counters(self, roster_event, find_slot, occupy, member_user):
        assert roster_event.total_slots == 3
        assert roster_event.occupied_slots == 0

        occupy(find_slot(roster_event, "Alpha", "Leader"), member_user)

        assert roster_event.occupied_slots == 1
        assert roster_event.is_active is True

    def test_squads_ordered(self, sample_event):
        event = sample_event(roster=[("Alpha", ["Leader"]), ("Bravo", ["Medic"]), ("Charlie", ["Pilot"])])
        assert [s.name for s in event.squads] == ["Alpha", "Bravo", "Charlie"]

    def test_delete_cascades(self, test_db_session, roster_event, member_user):
        node = CommunicationNode(event_id=roster_event.id, name="HQ", type=NodeType.COMMAND)
        absence = Absence(event_id=roster_event.id, user_id=member_user.id)
        test_db_session.add_all([node, absence])
        test_db_session.commit()

        test_db_session.delete(roster_event)
        test_db_session.commit()

        assert test_db_session.query(Squad).count() == 0
        assert test_db_session.query(Slot).count() == 0
        assert test_db_session.query(CommunicationNode).count() == 0
        assert test_db_session.query(Absence).count() == 0


class TestCommunicationNodeModel:
    """Tests for the self-referencing parent link."""

    def test_children_deleted_with_parent(self, test_db_session, roster_event):
        root = CommunicationNode(event_id=roster_event.id, name="HQ", type=NodeType.COMMAND)
        child = CommunicationNode(event_id=roster_event.id, name="ALPHA", type=NodeType.SQUAD)
        child.parent = root
        test_db_session.add_all([root, child])
        test_db_session.commit()

        assert root.children == [child]
        assert child.guid.startswith("cnd_")

        test_db_session.delete(root)
        test_db_session.commit()

        assert test_db_session.query(CommunicationNode).count() == 0


class TestAuditEntryModel:
    """Tests for typed audit details."""

    def test_typed_details_roundtrip(self, test_db_session, roster_event, member_user):
        details = SlotAssignedDetails(
            assigned_user_guid=member_user.guid,
            slot_role="Medic",
            squad_name="Bravo",
        )
        entry = AuditEntry(
            action=AuditAction.SLOT_ASSIGNED,
            entity="Slot",
            entity_guid="slt_01hgw2bbg00000000000000002",
            user_id=member_user.id,
            event_id=roster_event.id,
            details=details.model_dump(mode="json"),
        )
        test_db_session.add(entry)
        test_db_session.commit()
        test_db_session.expire_all()

        loaded = test_db_session.query(AuditEntry).one()
        typed = loaded.typed_details

        assert isinstance(typed, SlotAssignedDetails)
        assert typed.assigned_user_guid == member_user.guid
        assert typed.admin_override is False
        assert loaded.guid.startswith("aud_")
