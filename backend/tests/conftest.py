"""
Pytest configuration and fixtures for backend tests.

Provides shared fixtures for:
- Test database sessions
- Sample data factories (users, teams, members, events)
- A fake fixture feed client
- The FastAPI test client
"""

import logging
import os
import pytest
from datetime import datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app modules
os.environ['TEAMRSVP_DB_URL'] = 'sqlite:///:memory:'
os.environ['TEAMRSVP_TIMEZONE'] = 'Europe/Berlin'
os.environ['AUTO_GAME_IMPORT_ENABLED'] = 'false'
os.environ['FIXTURE_FEED_TOKEN'] = 'test-token'

from backend.src.models import (
    Base, Event, EventCategory, MemberRole, Team, TeamMember, User,
)
from backend.src.services.exceptions import ExternalServiceError


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

    # Enable foreign key constraints for SQLite
    # This must be set for each connection
    def _fk_pragma_on_connect(dbapi_con, con_record):
        dbapi_con.execute('pragma foreign_keys=ON')

    event.listen(engine, 'connect', _fk_pragma_on_connect)

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope='function')
def test_session_factory(test_db_engine):
    """Session factory bound to the test engine."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_db_engine
    )


@pytest.fixture(scope='function')
def test_db_session(test_session_factory):
    """Create a test database session."""
    session = test_session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# ============================================================================
# Sample Data Factories
# ============================================================================

@pytest.fixture
def sample_user(test_db_session):
    """Factory for creating User models in the database."""
    counter = {'n': 0}

    def _create(name=None, email=None):
        counter['n'] += 1
        user = User(
            name=name or f'Player {counter["n"]}',
            email=email or f'player{counter["n"]}@example.com',
        )
        test_db_session.add(user)
        test_db_session.commit()
        test_db_session.refresh(user)
        return user
    return _create


@pytest.fixture
def sample_team(test_db_session):
    """Factory for creating Team models in the database."""
    def _create(name='SV Musterstadt', **kwargs):
        team = Team(name=name, **kwargs)
        test_db_session.add(team)
        test_db_session.commit()
        test_db_session.refresh(team)
        return team
    return _create


@pytest.fixture
def sample_member(test_db_session):
    """Factory for adding a user to a team without touching events."""
    def _create(team, user, role=MemberRole.PLAYER):
        member = TeamMember(team_id=team.id, user_id=user.id, role=role.value)
        test_db_session.add(member)
        test_db_session.commit()
        test_db_session.refresh(member)
        return member
    return _create


@pytest.fixture
def team_setup(sample_user, sample_team, sample_member):
    """A team with one trainer and two players."""
    team = sample_team()
    trainer = sample_user(name='Trainer')
    player1 = sample_user(name='Player One')
    player2 = sample_user(name='Player Two')
    sample_member(team, trainer, MemberRole.TRAINER)
    sample_member(team, player1)
    sample_member(team, player2)
    return {
        'team': team,
        'trainer': trainer,
        'players': [player1, player2],
    }


@pytest.fixture
def sample_event(test_db_session):
    """Factory for creating bare Event rows (no response rows)."""
    def _create(team, start=None, duration=timedelta(minutes=90), **kwargs):
        start = start or datetime(2031, 5, 6, 18, 0)
        values = {
            'title': 'Training',
            'category': EventCategory.TRAINING.value,
        }
        values.update(kwargs)
        event = Event(
            team_id=team.id,
            start_time=start,
            end_time=start + duration,
            duration_minutes=int(duration.total_seconds() // 60),
            **values,
        )
        test_db_session.add(event)
        test_db_session.commit()
        test_db_session.refresh(event)
        return event
    return _create


# ============================================================================
# Fixture Feed Fake
# ============================================================================

class FakeFeedClient:
    """
    In-memory stand-in for FixtureFeedClient.

    Payloads (or exceptions to raise) are configured per resource; every
    call is recorded.
    """

    def __init__(self, team_info=None, team_table=None):
        self.team_info = team_info if team_info is not None else {'data': {'nextGames': []}}
        self.team_table = team_table
        self.calls = []
        self.closed = False

    def _answer(self, value):
        if isinstance(value, Exception):
            raise value
        return value

    def fetch_team_info(self, external_team_id):
        self.calls.append(('info', external_team_id))
        return self._answer(self.team_info)

    def fetch_team_table(self, external_team_id):
        self.calls.append(('table', external_team_id))
        if self.team_table is None:
            raise ExternalServiceError('No table configured', upstream_status=404)
        return self._answer(self.team_table)

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


@pytest.fixture
def make_feed():
    """Factory for FakeFeedClient instances with given payloads."""
    def _create(team_info=None, team_table=None):
        return FakeFeedClient(team_info=team_info, team_table=team_table)
    return _create


@pytest.fixture
def fake_feed(make_feed):
    """A FakeFeedClient with an empty games payload."""
    return make_feed()


# ============================================================================
# Logging Fixtures
# ============================================================================

class RecordCollector(logging.Handler):
    """Handler keeping every emitted record in memory."""

    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def services_log():
    """Records of the services channel logger, captured at INFO."""
    from backend.src.utils.logging_config import get_logger

    logger = get_logger("services")
    previous_level = logger.level
    collector = RecordCollector()
    logger.addHandler(collector)
    logger.setLevel(logging.INFO)
    yield collector.records
    logger.removeHandler(collector)
    logger.setLevel(previous_level)


# ============================================================================
# FastAPI Test Client Fixture
# ============================================================================

@pytest.fixture
def test_client(test_db_session, fake_feed):
    """Create a test client for FastAPI application."""
    from fastapi.testclient import TestClient
    from backend.src.main import app

    # Override dependencies
    def get_test_db():
        try:
            yield test_db_session
        finally:
            pass

    def get_test_feed_client():
        return fake_feed

    # Import and override dependencies
    from backend.src.db.database import get_db
    from backend.src.api.teams import get_feed_client

    app.dependency_overrides[get_db] = get_test_db
    app.dependency_overrides[get_feed_client] = get_test_feed_client

    with TestClient(app) as client:
        yield client

    # Clear overrides
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build headers identifying the acting user to the API."""
    def _headers(user):
        return {"X-User-Id": str(user.id)}
    return _headers
