"""
Unit tests for AssignmentService.

Tests cover:
- Self-service and clan-leader assignment with auto-release
- Conflict on occupied slots, InvalidState on inactive events and free slots
- Admin tools ignoring event status and displacing occupants
- Slot changes refused once an event date has passed
- Absences freeing the absent user's slot
- The one-slot-per-user-per-event invariant across operation sequences
"""

from datetime import datetime, timedelta
from unittest.mock import patch

import pytest

from backend.src.models import AuditAction, Absence, Slot, Squad
from backend.src.models.event import EventStatus
from backend.src.services.assignment_service import AssignmentService
from backend.src.services.audit_service import AuditService
from backend.src.services.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
)
from backend.src.services.guid import GuidService


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def assignment_service(test_db_session, event_locks):
    """Create an AssignmentService instance for testing."""
    return AssignmentService(test_db_session, locks=event_locks)


@pytest.fixture
def slots(roster_event, find_slot):
    """The default roster's slots keyed by squad and role."""
    return {
        "alpha_leader": find_slot(roster_event, "Alpha", "Leader"),
        "alpha_rifleman": find_slot(roster_event, "Alpha", "Rifleman"),
        "bravo_medic": find_slot(roster_event, "Bravo", "Medic"),
    }


def held_slots(db, event, user):
    """Slots of an event currently occupied by user."""
    db.expire_all()
    return (
        db.query(Slot)
        .join(Squad, Slot.squad_id == Squad.id)
        .filter(Squad.event_id == event.id, Slot.user_id == user.id)
        .all()
    )


def last_audit(db, event):
    return AuditService(db).list_for_event(event.id)[-1]


# ============================================================================
# assign
# ============================================================================


class TestAssign:
    """Tests for self-service assignment."""

    def test_self_assign(self, test_db_session, assignment_service, roster_event, slots, actor_for, member_user):
        slot = assignment_service.assign(slots["alpha_leader"].guid, member_user.guid, actor_for(member_user))

        assert slot.user_id == member_user.id
        assert slot.is_occupied is True
        entry = last_audit(test_db_session, roster_event)
        assert entry.action == AuditAction.SLOT_ASSIGNED
        assert entry.details["previous_slot_guid"] is None
        assert entry.details["admin_override"] is False

    def test_auto_release_previous_slot(
        self, test_db_session, assignment_service, roster_event, slots, actor_for, member_user
    ):
        """Moving from Alpha.Leader to Bravo.Medic frees Alpha.Leader in the same operation."""
        actor = actor_for(member_user)
        leader_guid = slots["alpha_leader"].guid
        assignment_service.assign(leader_guid, member_user.guid, actor)

        assignment_service.assign(slots["bravo_medic"].guid, member_user.guid, actor)

        held = held_slots(test_db_session, roster_event, member_user)
        assert [s.guid for s in held] == [slots["bravo_medic"].guid]
        assert slots["alpha_leader"].user_id is None
        assert last_audit(test_db_session, roster_event).details["previous_slot_guid"] == leader_guid

    def test_occupied_slot_conflict(
        self, assignment_service, slots, occupy, actor_for, member_user, teammate_user
    ):
        occupy(slots["bravo_medic"], teammate_user)

        with pytest.raises(ConflictError) as exc_info:
            assignment_service.assign(slots["bravo_medic"].guid, member_user.guid, actor_for(member_user))

        assert exc_info.value.slot_guid == slots["bravo_medic"].guid
        assert slots["bravo_medic"].user_id == teammate_user.id

    def test_conflict_keeps_current_slot(
        self, test_db_session, assignment_service, roster_event, slots, occupy, actor_for, member_user, teammate_user
    ):
        """A failed move must not auto-release the user's existing slot."""
        occupy(slots["alpha_leader"], member_user)
        occupy(slots["bravo_medic"], teammate_user)

        with pytest.raises(ConflictError):
            assignment_service.assign(slots["bravo_medic"].guid, member_user.guid, actor_for(member_user))

        assert [s.guid for s in held_slots(test_db_session, roster_event, member_user)] == [slots["alpha_leader"].guid]

    def test_inactive_event(self, assignment_service, sample_event, find_slot, actor_for, member_user):
        event = sample_event(status=EventStatus.INACTIVE)
        slot = find_slot(event, "Bravo", "Medic")

        with pytest.raises(InvalidStateError):
            assignment_service.assign(slot.guid, member_user.guid, actor_for(member_user))

        assert slot.user_id is None

    def test_past_event_still_active(self, test_db_session, assignment_service, sample_event, find_slot, actor_for, member_user):
        """An event left ACTIVE after its date no longer takes slot changes."""
        event = sample_event(scheduled_date=datetime.utcnow() - timedelta(days=3))
        slot = find_slot(event, "Bravo", "Medic")

        with pytest.raises(InvalidStateError) as exc_info:
            assignment_service.assign(slot.guid, member_user.guid, actor_for(member_user))

        assert "already taken place" in str(exc_info.value)
        test_db_session.expire_all()
        assert slot.user_id is None

    def test_leader_assigns_clan_member(self, assignment_service, slots, actor_for, leader_user, member_user):
        slot = assignment_service.assign(slots["bravo_medic"].guid, member_user.guid, actor_for(leader_user))
        assert slot.user_id == member_user.id

    def test_leader_cannot_assign_other_clan(self, assignment_service, slots, actor_for, leader_user, outsider_user):
        with pytest.raises(PermissionDeniedError):
            assignment_service.assign(slots["bravo_medic"].guid, outsider_user.guid, actor_for(leader_user))

    def test_member_cannot_assign_teammate(self, assignment_service, slots, actor_for, member_user, teammate_user):
        with pytest.raises(PermissionDeniedError):
            assignment_service.assign(slots["bravo_medic"].guid, teammate_user.guid, actor_for(member_user))

        assert slots["bravo_medic"].user_id is None

    def test_admin_assigns_anyone(self, assignment_service, slots, actor_for, admin_user, outsider_user):
        slot = assignment_service.assign(slots["alpha_rifleman"].guid, outsider_user.guid, actor_for(admin_user))
        assert slot.user_id == outsider_user.id

    def test_unknown_slot(self, assignment_service, roster_event, actor_for, member_user):
        with pytest.raises(NotFoundError) as exc_info:
            assignment_service.assign(GuidService.generate_guid("slt"), member_user.guid, actor_for(member_user))

        assert exc_info.value.resource == "Slot"

    def test_unknown_user(self, assignment_service, slots, actor_for, admin_user):
        with pytest.raises(NotFoundError) as exc_info:
            assignment_service.assign(slots["bravo_medic"].guid, GuidService.generate_guid("usr"), actor_for(admin_user))

        assert exc_info.value.resource == "User"


# ============================================================================
# unassign
# ============================================================================


class TestUnassign:
    """Tests for self-service release."""

    def test_occupant_releases(self, test_db_session, assignment_service, roster_event, slots, occupy, actor_for, member_user):
        occupy(slots["alpha_leader"], member_user)

        slot = assignment_service.unassign(slots["alpha_leader"].guid, actor_for(member_user))

        assert slot.user_id is None
        entry = last_audit(test_db_session, roster_event)
        assert entry.action == AuditAction.SLOT_UNASSIGNED
        assert entry.details["unassigned_user_guid"] == member_user.guid

    def test_free_slot_is_invalid_state(self, assignment_service, slots, actor_for, member_user):
        with pytest.raises(InvalidStateError):
            assignment_service.unassign(slots["alpha_leader"].guid, actor_for(member_user))

    def test_second_unassign_fails(self, assignment_service, slots, occupy, actor_for, member_user):
        occupy(slots["alpha_leader"], member_user)
        assignment_service.unassign(slots["alpha_leader"].guid, actor_for(member_user))

        with pytest.raises(InvalidStateError):
            assignment_service.unassign(slots["alpha_leader"].guid, actor_for(member_user))

    def test_permission_keyed_off_occupant(self, assignment_service, slots, occupy, actor_for, member_user, teammate_user):
        occupy(slots["alpha_leader"], teammate_user)

        with pytest.raises(PermissionDeniedError):
            assignment_service.unassign(slots["alpha_leader"].guid, actor_for(member_user))

        assert slots["alpha_leader"].user_id == teammate_user.id

    def test_leader_releases_clan_member(self, assignment_service, slots, occupy, actor_for, leader_user, teammate_user):
        occupy(slots["alpha_leader"], teammate_user)

        assert assignment_service.unassign(slots["alpha_leader"].guid, actor_for(leader_user)).user_id is None

    def test_inactive_event(self, test_db_session, assignment_service, roster_event, slots, occupy, actor_for, member_user):
        occupy(slots["alpha_leader"], member_user)
        roster_event.status = EventStatus.INACTIVE
        test_db_session.commit()

        with pytest.raises(InvalidStateError):
            assignment_service.unassign(slots["alpha_leader"].guid, actor_for(member_user))

    def test_past_event_still_active(self, test_db_session, assignment_service, roster_event, slots, occupy, actor_for, member_user):
        occupy(slots["alpha_leader"], member_user)
        roster_event.scheduled_date = datetime.utcnow() - timedelta(hours=1)
        test_db_session.commit()

        with pytest.raises(InvalidStateError):
            assignment_service.unassign(slots["alpha_leader"].guid, actor_for(member_user))

        test_db_session.expire_all()
        assert slots["alpha_leader"].user_id == member_user.id


# ============================================================================
# Admin tools
# ============================================================================


class TestAdminAssign:
    """Tests for admin/clan-leader assignment."""

    def test_ignores_inactive_status(self, assignment_service, sample_event, find_slot, actor_for, admin_user, member_user):
        event = sample_event(status=EventStatus.INACTIVE)
        slot = find_slot(event, "Bravo", "Medic")

        result = assignment_service.admin_assign(slot.guid, member_user.guid, actor_for(admin_user))

        assert result.user_id == member_user.id

    def test_displaces_occupant(
        self, test_db_session, assignment_service, roster_event, slots, occupy, actor_for, leader_user, member_user, teammate_user
    ):
        occupy(slots["alpha_leader"], teammate_user)

        slot = assignment_service.admin_assign(slots["alpha_leader"].guid, member_user.guid, actor_for(leader_user))

        assert slot.user_id == member_user.id
        assert held_slots(test_db_session, roster_event, teammate_user) == []
        details = last_audit(test_db_session, roster_event).typed_details
        assert details.admin_override is True
        assert details.displaced_user_guid == teammate_user.guid

    def test_auto_release_applies(
        self, test_db_session, assignment_service, roster_event, slots, occupy, actor_for, admin_user, member_user
    ):
        occupy(slots["alpha_leader"], member_user)

        assignment_service.admin_assign(slots["bravo_medic"].guid, member_user.guid, actor_for(admin_user))

        assert [s.guid for s in held_slots(test_db_session, roster_event, member_user)] == [slots["bravo_medic"].guid]

    def test_reassigning_occupant_is_noop(
        self, test_db_session, assignment_service, roster_event, slots, occupy, actor_for, admin_user, member_user
    ):
        occupy(slots["alpha_leader"], member_user)

        with patch("backend.src.services.assignment_service.logger") as mock_logger:
            slot = assignment_service.admin_assign(slots["alpha_leader"].guid, member_user.guid, actor_for(admin_user))

        assert slot.user_id == member_user.id
        assert AuditService(test_db_session).list_for_event(roster_event.id) == []
        mock_logger.debug.assert_called_once()
        assert "already the occupant" in mock_logger.debug.call_args[0][0]
        mock_logger.info.assert_not_called()

    def test_ignores_past_date(self, assignment_service, sample_event, find_slot, actor_for, admin_user, member_user):
        event = sample_event(scheduled_date=datetime.utcnow() - timedelta(days=1))
        slot = find_slot(event, "Alpha", "Leader")

        assert assignment_service.admin_assign(slot.guid, member_user.guid, actor_for(admin_user)).user_id == member_user.id

    def test_member_cannot_use_admin_tools(self, assignment_service, slots, actor_for, member_user):
        with pytest.raises(PermissionDeniedError):
            assignment_service.admin_assign(slots["alpha_leader"].guid, member_user.guid, actor_for(member_user))

    def test_leader_cannot_roster_other_clan(self, assignment_service, slots, actor_for, leader_user, outsider_user):
        with pytest.raises(PermissionDeniedError):
            assignment_service.admin_assign(slots["alpha_leader"].guid, outsider_user.guid, actor_for(leader_user))

    def test_leader_cannot_displace_other_clan(
        self, assignment_service, slots, occupy, actor_for, leader_user, member_user, outsider_user
    ):
        occupy(slots["alpha_leader"], outsider_user)

        with pytest.raises(PermissionDeniedError):
            assignment_service.admin_assign(slots["alpha_leader"].guid, member_user.guid, actor_for(leader_user))

        assert slots["alpha_leader"].user_id == outsider_user.id


class TestAdminUnassign:
    """Tests for admin/clan-leader release."""

    def test_free_slot_returned_unchanged(self, test_db_session, assignment_service, roster_event, slots, actor_for, admin_user):
        slot = assignment_service.admin_unassign(slots["alpha_leader"].guid, actor_for(admin_user))

        assert slot.user_id is None
        assert AuditService(test_db_session).list_for_event(roster_event.id) == []

    def test_releases_on_inactive_event(
        self, test_db_session, assignment_service, roster_event, slots, occupy, actor_for, admin_user, outsider_user
    ):
        occupy(slots["alpha_leader"], outsider_user)
        roster_event.status = EventStatus.INACTIVE
        test_db_session.commit()

        slot = assignment_service.admin_unassign(slots["alpha_leader"].guid, actor_for(admin_user))

        assert slot.user_id is None
        assert last_audit(test_db_session, roster_event).details["admin_override"] is True

    def test_leader_cannot_release_other_clan(self, assignment_service, slots, occupy, actor_for, leader_user, outsider_user):
        occupy(slots["alpha_leader"], outsider_user)

        with pytest.raises(PermissionDeniedError):
            assignment_service.admin_unassign(slots["alpha_leader"].guid, actor_for(leader_user))


# ============================================================================
# mark_absence
# ============================================================================


class TestMarkAbsence:
    """Tests for absences."""

    def test_absence_frees_slot(
        self, test_db_session, assignment_service, roster_event, slots, occupy, actor_for, member_user
    ):
        occupy(slots["bravo_medic"], member_user)

        result = assignment_service.mark_absence(roster_event.guid, actor_for(member_user), reason="Work trip")

        assert result.slot_freed is True
        assert result.freed_slot.guid == slots["bravo_medic"].guid
        assert result.absence.guid.startswith("abs_")
        assert result.absence.reason == "Work trip"
        assert held_slots(test_db_session, roster_event, member_user) == []
        assert last_audit(test_db_session, roster_event).action == AuditAction.ABSENCE_MARKED

    def test_absence_without_slot(self, test_db_session, assignment_service, roster_event, actor_for, member_user):
        result = assignment_service.mark_absence(roster_event.guid, actor_for(member_user))

        assert result.slot_freed is False
        assert result.freed_slot is None
        assert test_db_session.query(Absence).count() == 1

    def test_absence_on_inactive_event(self, assignment_service, sample_event, actor_for, member_user):
        event = sample_event(status=EventStatus.INACTIVE)

        result = assignment_service.mark_absence(event.guid, actor_for(member_user))

        assert result.absence.user_id == member_user.id

    def test_leader_marks_clan_member_absent(
        self, test_db_session, assignment_service, roster_event, slots, occupy, actor_for, leader_user, teammate_user
    ):
        occupy(slots["alpha_rifleman"], teammate_user)

        result = assignment_service.mark_absence(roster_event.guid, actor_for(leader_user), user_guid=teammate_user.guid)

        assert result.slot_freed is True
        assert result.absence.user_id == teammate_user.id

    def test_member_cannot_mark_teammate(self, assignment_service, roster_event, actor_for, member_user, teammate_user):
        with pytest.raises(PermissionDeniedError):
            assignment_service.mark_absence(roster_event.guid, actor_for(member_user), user_guid=teammate_user.guid)

    def test_unknown_event(self, assignment_service, actor_for, member_user):
        with pytest.raises(NotFoundError):
            assignment_service.mark_absence(GuidService.generate_guid("evt"), actor_for(member_user))


# ============================================================================
# Invariants
# ============================================================================


class TestSingleOccupancy:
    """A user holds at most one slot per event after any operation sequence."""

    def test_operation_sequence(
        self, test_db_session, assignment_service, roster_event, slots, actor_for, admin_user, leader_user, member_user
    ):
        me = actor_for(member_user)
        admin = actor_for(admin_user)
        leader = actor_for(leader_user)

        steps = [
            lambda: assignment_service.assign(slots["alpha_leader"].guid, member_user.guid, me),
            lambda: assignment_service.admin_assign(slots["alpha_rifleman"].guid, member_user.guid, admin),
            lambda: assignment_service.assign(slots["bravo_medic"].guid, member_user.guid, leader),
            lambda: assignment_service.admin_assign(slots["alpha_leader"].guid, member_user.guid, leader),
            lambda: assignment_service.unassign(slots["alpha_leader"].guid, me),
            lambda: assignment_service.assign(slots["alpha_rifleman"].guid, member_user.guid, me),
            lambda: assignment_service.mark_absence(roster_event.guid, me),
        ]

        for step in steps:
            step()
            assert len(held_slots(test_db_session, roster_event, member_user)) <= 1

        assert held_slots(test_db_session, roster_event, member_user) == []

    def test_roster_scenario(
        self, test_db_session, event_locks, assignment_service, roster_event, slots, actor_for, leader_user, member_user
    ):
        """Assign, move, then delete the freed and the occupied slot."""
        from backend.src.services.roster_service import RosterService

        me = actor_for(member_user)
        roster = RosterService(test_db_session, locks=event_locks)

        assignment_service.assign(slots["alpha_leader"].guid, member_user.guid, me)
        assignment_service.assign(slots["bravo_medic"].guid, member_user.guid, me)

        assert slots["alpha_leader"].user_id is None
        assert slots["bravo_medic"].user_id == member_user.id

        roster.delete_slot(slots["alpha_leader"].guid, actor_for(leader_user))
        with pytest.raises(ConflictError):
            roster.delete_slot(slots["bravo_medic"].guid, actor_for(leader_user))

        assignment_service.unassign(slots["bravo_medic"].guid, me)
        roster.delete_slot(slots["bravo_medic"].guid, actor_for(leader_user))

        assert test_db_session.query(Slot).count() == 1
