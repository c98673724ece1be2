"""Initial TeamRSVP schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2024-01-01

Creates the scheduling schema with:
- users, teams, team_members and home_venues
- events (occurrences) with series key and fixture feed identity
- event_responses (one RSVP answer per event and member)
- event_deletions (tombstones of deleted events)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """
    Create all tables.

    Tables:
    - users: People who can answer events
    - teams: Teams with response, deadline and arrival defaults
    - team_members: Membership with role (trainer, player)
    - home_venues: Named home venues of a team
    - events: Event occurrences
    - event_responses: RSVP answers
    - event_deletions: Deletion tombstones
    """

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table(
        'teams',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('external_team_id', sa.String(length=64), nullable=True),
        sa.Column('default_response', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('default_rsvp_deadline_hours', sa.Integer(), nullable=True),
        sa.Column('default_rsvp_deadline_hours_training', sa.Integer(), nullable=True),
        sa.Column('default_rsvp_deadline_hours_match', sa.Integer(), nullable=True),
        sa.Column('default_rsvp_deadline_hours_other', sa.Integer(), nullable=True),
        sa.Column('default_arrival_minutes', sa.Integer(), nullable=True),
        sa.Column('default_arrival_minutes_training', sa.Integer(), nullable=True),
        sa.Column('default_arrival_minutes_match', sa.Integer(), nullable=True),
        sa.Column('default_arrival_minutes_other', sa.Integer(), nullable=True),
        sa.Column('default_home_venue_name', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_teams_external_team_id', 'teams', ['external_team_id'])

    op.create_table(
        'team_members',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('team_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='player'),
        sa.Column('joined_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['team_id'], ['teams.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('team_id', 'user_id', name='uq_team_members_team_user')
    )
    op.create_index('ix_team_members_team_id', 'team_members', ['team_id'])
    op.create_index('ix_team_members_user_id', 'team_members', ['user_id'])

    op.create_table(
        'home_venues',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('team_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('street', sa.String(length=255), nullable=True),
        sa.Column('zip_city', sa.String(length=255), nullable=True),
        sa.Column('pitch_type', sa.String(length=100), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['team_id'], ['teams.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('team_id', 'name', name='uq_home_venues_team_name')
    )
    op.create_index('ix_home_venues_team_id', 'home_venues', ['team_id'])

    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('team_id', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False, server_default='training'),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('location_venue', sa.String(length=255), nullable=True),
        sa.Column('location_street', sa.String(length=255), nullable=True),
        sa.Column('location_zip_city', sa.String(length=255), nullable=True),
        sa.Column('pitch_type', sa.String(length=100), nullable=True),
        sa.Column('meeting_point', sa.String(length=255), nullable=True),
        sa.Column('arrival_minutes', sa.Integer(), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('rsvp_deadline', sa.DateTime(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=True),
        sa.Column('visibility_all', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('invite_all', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('series_key', sa.String(length=64), nullable=True),
        sa.Column('external_fixture_key', sa.String(length=128), nullable=True),
        sa.Column('is_home_match', sa.Boolean(), nullable=True),
        sa.Column('opponent_crest_url', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['team_id'], ['teams.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('team_id', 'external_fixture_key', name='uq_events_team_external_fixture_key'),
        sa.CheckConstraint('end_time >= start_time', name='ck_events_end_after_start')
    )
    op.create_index('ix_events_team_id', 'events', ['team_id'])
    op.create_index('ix_events_start_time', 'events', ['start_time'])
    op.create_index('ix_events_rsvp_deadline', 'events', ['rsvp_deadline'])
    op.create_index('ix_events_series_key', 'events', ['series_key'])
    op.create_index('ix_events_team_start', 'events', ['team_id', 'start_time'])

    op.create_table(
        'event_responses',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('responded_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('event_id', 'user_id', name='uq_event_responses_event_user')
    )
    op.create_index('ix_event_responses_event_id', 'event_responses', ['event_id'])
    op.create_index('ix_event_responses_user_id', 'event_responses', ['user_id'])
    op.create_index('ix_event_responses_status', 'event_responses', ['status'])

    # Tombstones keep event_id without a foreign key: the event row is gone
    op.create_table(
        'event_deletions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('team_id', sa.Integer(), nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['team_id'], ['teams.id'], ondelete='CASCADE')
    )
    op.create_index('ix_event_deletions_team_id', 'event_deletions', ['team_id'])
    op.create_index('ix_event_deletions_event_id', 'event_deletions', ['event_id'])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""

    op.drop_index('ix_event_deletions_event_id', table_name='event_deletions')
    op.drop_index('ix_event_deletions_team_id', table_name='event_deletions')
    op.drop_table('event_deletions')

    op.drop_index('ix_event_responses_status', table_name='event_responses')
    op.drop_index('ix_event_responses_user_id', table_name='event_responses')
    op.drop_index('ix_event_responses_event_id', table_name='event_responses')
    op.drop_table('event_responses')

    op.drop_index('ix_events_team_start', table_name='events')
    op.drop_index('ix_events_series_key', table_name='events')
    op.drop_index('ix_events_rsvp_deadline', table_name='events')
    op.drop_index('ix_events_start_time', table_name='events')
    op.drop_index('ix_events_team_id', table_name='events')
    op.drop_table('events')

    op.drop_index('ix_home_venues_team_id', table_name='home_venues')
    op.drop_table('home_venues')

    op.drop_index('ix_team_members_user_id', table_name='team_members')
    op.drop_index('ix_team_members_team_id', table_name='team_members')
    op.drop_table('team_members')

    op.drop_index('ix_teams_external_team_id', table_name='teams')
    op.drop_table('teams')

    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
