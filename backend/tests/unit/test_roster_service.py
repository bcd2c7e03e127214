"""
Unit tests for RosterService.

Tests squad and slot CRUD, default ordering, the delete-while-occupied
guard on slots and the unconditional cascade of squad deletion.
"""

import pytest

from backend.src.models import AuditAction, Slot, Squad
from backend.src.schemas.roster import SlotCreate, SlotSpec, SlotUpdate, SquadCreate, SquadUpdate
from backend.src.services.audit_service import AuditService
from backend.src.services.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from backend.src.services.guid import GuidService
from backend.src.services.roster_service import RosterService


@pytest.fixture
def roster_service(test_db_session, event_locks):
    """Create a RosterService instance for testing."""
    return RosterService(test_db_session, locks=event_locks)


def last_audit(db, event_id):
    return AuditService(db).list_for_event(event_id)[-1]


# ============================================================================
# Squads
# ============================================================================


class TestCreateSquad:
    """Tests for adding squads."""

    def test_appends_after_last_squad(self, roster_service, roster_event, actor_for, leader_user):
        squad = roster_service.create_squad(
            roster_event.guid,
            SquadCreate(name="Charlie", slots=[SlotSpec(role="Pilot"), SlotSpec(role="Gunner")]),
            actor_for(leader_user),
        )

        assert squad.guid.startswith("sqd_")
        assert squad.order == 2
        assert [(s.role, s.order) for s in squad.slots] == [("Pilot", 0), ("Gunner", 1)]
        assert all(not s.is_occupied for s in squad.slots)

    def test_explicit_order(self, roster_service, roster_event, actor_for, admin_user):
        squad = roster_service.create_squad(
            roster_event.guid,
            SquadCreate(name="Zulu", order=0, slots=[SlotSpec(role="Sniper")]),
            actor_for(admin_user),
        )

        assert squad.order == 0

    def test_requires_slots(self, test_db_session, roster_service, roster_event, actor_for, leader_user):
        with pytest.raises(ValidationError) as exc_info:
            roster_service.create_squad(roster_event.guid, SquadCreate(name="Empty"), actor_for(leader_user))

        assert exc_info.value.field == "slots"
        assert test_db_session.query(Squad).count() == 2

    def test_member_denied(self, roster_service, roster_event, actor_for, member_user):
        with pytest.raises(PermissionDeniedError):
            roster_service.create_squad(
                roster_event.guid,
                SquadCreate(name="Charlie", slots=[SlotSpec(role="Pilot")]),
                actor_for(member_user),
            )

    def test_rival_leader_denied(self, test_db_session, roster_service, roster_event, actor_for, rival_leader_user):
        with pytest.raises(PermissionDeniedError):
            roster_service.create_squad(
                roster_event.guid,
                SquadCreate(name="Charlie", slots=[SlotSpec(role="Pilot")]),
                actor_for(rival_leader_user),
            )

        assert test_db_session.query(Squad).count() == 2

    def test_unknown_event(self, roster_service, actor_for, admin_user):
        with pytest.raises(NotFoundError):
            roster_service.create_squad(
                GuidService.generate_guid("evt"),
                SquadCreate(name="Charlie", slots=[SlotSpec(role="Pilot")]),
                actor_for(admin_user),
            )


class TestUpdateSquad:
    """Tests for renaming and reordering squads."""

    def test_rename(self, test_db_session, roster_service, roster_event, actor_for, leader_user):
        alpha = roster_event.squads[0]

        squad = roster_service.update_squad(alpha.guid, SquadUpdate(name="Anvil"), actor_for(leader_user))

        assert squad.name == "Anvil"
        entry = last_audit(test_db_session, roster_event.id)
        assert entry.action == AuditAction.SQUAD_UPDATED
        assert entry.details["changed_fields"] == ["name"]

    def test_empty_update_rejected(self, roster_service, roster_event, actor_for, leader_user):
        with pytest.raises(ValidationError):
            roster_service.update_squad(roster_event.squads[0].guid, SquadUpdate(), actor_for(leader_user))


class TestDeleteSquad:
    """Tests for squad deletion."""

    def test_deletes_occupied_slots_too(
        self, test_db_session, roster_service, roster_event, find_slot, occupy, member_user, actor_for, leader_user
    ):
        occupy(find_slot(roster_event, "Alpha", "Rifleman"), member_user)
        alpha_guid = roster_event.squads[0].guid

        result = roster_service.delete_squad(alpha_guid, actor_for(leader_user))

        assert result.guid == alpha_guid
        assert result.deleted_slots == 2
        assert test_db_session.query(Squad).count() == 1
        assert test_db_session.query(Slot).count() == 1
        assert test_db_session.query(Slot).filter(Slot.user_id == member_user.id).count() == 0

        entry = last_audit(test_db_session, roster_event.id)
        assert entry.action == AuditAction.SQUAD_DELETED
        assert entry.details["released_user_guids"] == [member_user.guid]

    def test_unknown_squad(self, roster_service, actor_for, admin_user):
        with pytest.raises(NotFoundError):
            roster_service.delete_squad(GuidService.generate_guid("sqd"), actor_for(admin_user))


# ============================================================================
# Slots
# ============================================================================


class TestCreateSlot:
    """Tests for adding slots."""

    def test_appends_after_last_slot(self, roster_service, roster_event, actor_for, leader_user):
        alpha = roster_event.squads[0]

        slot = roster_service.create_slot(alpha.guid, SlotCreate(role="Grenadier"), actor_for(leader_user))

        assert slot.guid.startswith("slt_")
        assert slot.order == 2
        assert slot.is_occupied is False
        assert slot.squad_id == alpha.id

    def test_member_denied(self, roster_service, roster_event, actor_for, member_user):
        with pytest.raises(PermissionDeniedError):
            roster_service.create_slot(roster_event.squads[0].guid, SlotCreate(role="Grenadier"), actor_for(member_user))


class TestUpdateSlot:
    """Tests for slot updates."""

    def test_update_keeps_occupant(
        self, roster_service, roster_event, find_slot, occupy, member_user, actor_for, leader_user
    ):
        slot = occupy(find_slot(roster_event, "Bravo", "Medic"), member_user)

        updated = roster_service.update_slot(slot.guid, SlotUpdate(role="Combat Medic"), actor_for(leader_user))

        assert updated.role == "Combat Medic"
        assert updated.user_id == member_user.id

    def test_empty_update_rejected(self, roster_service, roster_event, find_slot, actor_for, leader_user):
        slot = find_slot(roster_event, "Bravo", "Medic")

        with pytest.raises(ValidationError):
            roster_service.update_slot(slot.guid, SlotUpdate(), actor_for(leader_user))


class TestDeleteSlot:
    """Tests for the delete-while-occupied guard."""

    def test_delete_free_slot(self, test_db_session, roster_service, roster_event, find_slot, actor_for, leader_user):
        slot = find_slot(roster_event, "Alpha", "Leader")

        roster_service.delete_slot(slot.guid, actor_for(leader_user))

        assert test_db_session.query(Slot).count() == 2
        assert last_audit(test_db_session, roster_event.id).action == AuditAction.SLOT_DELETED

    def test_occupied_slot_conflict(
        self, test_db_session, roster_service, roster_event, find_slot, occupy, member_user, actor_for, leader_user
    ):
        slot = occupy(find_slot(roster_event, "Bravo", "Medic"), member_user)

        with pytest.raises(ConflictError) as exc_info:
            roster_service.delete_slot(slot.guid, actor_for(leader_user))

        assert exc_info.value.slot_guid == slot.guid
        assert test_db_session.query(Slot).count() == 3

    def test_rival_leader_denied(self, roster_service, roster_event, find_slot, actor_for, rival_leader_user):
        with pytest.raises(PermissionDeniedError):
            roster_service.delete_slot(find_slot(roster_event, "Alpha", "Leader").guid, actor_for(rival_leader_user))
