"""
Pytest configuration and fixtures for backend tests.

Provides shared fixtures for:
- Test database sessions
- Per-test event lock registry
- Sample data factories (clans, users, events with a roster)
- FastAPI test client with authentication resolved from a header
"""

import os
import pytest
from datetime import datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app modules
os.environ['ROSTER_DB_URL'] = 'sqlite:///:memory:'
os.environ.setdefault('ROSTER_ENV', 'test')

from backend.src.models import Base, Clan, Event, Slot, Squad, User
from backend.src.models.event import EventStatus, GameType
from backend.src.models.user import UserRole
from backend.src.services.permissions import Actor
from backend.src.utils.event_locks import EventLockRegistry


TEST_USER_HEADER = 'X-Test-User-Guid'


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture(scope='function')
def test_db_engine():
    """Create an in-memory SQLite database engine for testing."""
    from sqlalchemy import event

    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )

    # Cascading deletes rely on foreign keys, which SQLite enables per connection
    def _fk_pragma_on_connect(dbapi_con, con_record):
        dbapi_con.execute('pragma foreign_keys=ON')

    event.listen(engine, 'connect', _fk_pragma_on_connect)

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope='function')
def test_db_session(test_db_engine):
    """Create a test database session."""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_db_engine
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope='function')
def event_locks():
    """Fresh per-event lock registry, isolated from the process-wide one."""
    return EventLockRegistry()


# ============================================================================
# Sample Data Factories
# ============================================================================

@pytest.fixture
def sample_clan(test_db_session):
    """Factory for creating sample Clan models in the database."""
    def _create(name='Mentalhouse', tag='MTLH'):
        clan = Clan(name=name, tag=tag)
        test_db_session.add(clan)
        test_db_session.commit()
        test_db_session.refresh(clan)
        return clan
    return _create


@pytest.fixture
def sample_user(test_db_session):
    """Factory for creating sample User models in the database."""
    def _create(nickname='Player', role=UserRole.MEMBER, clan=None):
        user = User(
            nickname=nickname,
            role=role,
            clan_id=clan.id if clan else None,
        )
        test_db_session.add(user)
        test_db_session.commit()
        test_db_session.refresh(user)
        return user
    return _create


@pytest.fixture
def home_clan(sample_clan):
    return sample_clan(name='Mentalhouse', tag='MTLH')


@pytest.fixture
def rival_clan(sample_clan):
    return sample_clan(name='Night Ravens', tag='RVN')


@pytest.fixture
def admin_user(sample_user):
    return sample_user(nickname='Overlord', role=UserRole.ADMIN)


@pytest.fixture
def leader_user(sample_user, home_clan):
    return sample_user(nickname='Havoc', role=UserRole.CLAN_LEADER, clan=home_clan)


@pytest.fixture
def member_user(sample_user, home_clan):
    return sample_user(nickname='Sparrow', role=UserRole.MEMBER, clan=home_clan)


@pytest.fixture
def teammate_user(sample_user, home_clan):
    return sample_user(nickname='Wrench', role=UserRole.MEMBER, clan=home_clan)


@pytest.fixture
def outsider_user(sample_user, rival_clan):
    return sample_user(nickname='Ghost', role=UserRole.MEMBER, clan=rival_clan)


@pytest.fixture
def rival_leader_user(sample_user, rival_clan):
    return sample_user(nickname='Raven', role=UserRole.CLAN_LEADER, clan=rival_clan)


@pytest.fixture
def actor_for():
    """Build the Actor of a persisted user."""
    def _actor(user):
        return Actor.from_user(user)
    return _actor


DEFAULT_ROSTER = [
    ('Alpha', ['Leader', 'Rifleman']),
    ('Bravo', ['Medic']),
]


@pytest.fixture
def sample_event(test_db_session, leader_user):
    """
    Factory for creating sample Event models with a roster.

    The default roster is Alpha (Leader, Rifleman) and Bravo (Medic), all
    slots FREE, created by the home clan leader one week from now.
    """
    def _create(
        name='Operation Dawn',
        creator=None,
        status=EventStatus.ACTIVE,
        game_type=GameType.ARMA_3,
        scheduled_date=None,
        roster=None,
    ):
        creator = creator or leader_user
        event = Event(
            name=name,
            description='Night raid on the coastal airfield',
            briefing='Insert by boat, exfil by helicopter.',
            game_type=game_type,
            status=status,
            scheduled_date=scheduled_date or datetime.utcnow() + timedelta(days=7),
            creator_id=creator.id,
        )
        event.squads = [
            Squad(
                name=squad_name,
                order=squad_index,
                slots=[Slot(role=role, order=slot_index) for slot_index, role in enumerate(roles)],
            )
            for squad_index, (squad_name, roles) in enumerate(roster or DEFAULT_ROSTER)
        ]
        test_db_session.add(event)
        test_db_session.commit()
        test_db_session.refresh(event)
        return event
    return _create


@pytest.fixture
def roster_event(sample_event):
    """Default event: Alpha (Leader, Rifleman), Bravo (Medic), all FREE."""
    return sample_event()


@pytest.fixture
def find_slot():
    """Look up a slot of an event by squad name and role."""
    def _find(event, squad_name, role):
        for squad in event.squads:
            if squad.name != squad_name:
                continue
            for slot in squad.slots:
                if slot.role == role:
                    return slot
        raise LookupError(f"No slot {squad_name}.{role} in {event.name}")
    return _find


@pytest.fixture
def occupy(test_db_session):
    """Put a user in a slot directly, bypassing the assignment engine."""
    def _occupy(slot, user):
        slot.user_id = user.id
        test_db_session.commit()
        test_db_session.refresh(slot)
        return slot
    return _occupy


# ============================================================================
# API Fixtures
# ============================================================================

@pytest.fixture
def test_client(test_db_session):
    """
    Create a FastAPI test client with the test database.

    The authentication layer is simulated: the GUID sent in the
    X-Test-User-Guid header is placed on request.state.user_guid before the
    real get_current_actor dependency runs. Requests without the header are
    unauthenticated.
    """
    from fastapi import Depends, Request
    from fastapi.testclient import TestClient
    from sqlalchemy.orm import Session

    from backend.src.db.database import get_db
    from backend.src.main import app
    from backend.src.middleware.auth import get_current_actor

    def get_test_db():
        try:
            yield test_db_session
        finally:
            pass

    async def get_test_actor(request: Request, db: Session = Depends(get_db)):
        request.state.user_guid = request.headers.get(TEST_USER_HEADER)
        return await get_current_actor(request, db)

    app.dependency_overrides[get_db] = get_test_db
    app.dependency_overrides[get_current_actor] = get_test_actor

    with TestClient(app) as client:
        yield client

    # Clear overrides
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Headers authenticating a request as the given user."""
    def _headers(user):
        return {TEST_USER_HEADER: user.guid}
    return _headers
