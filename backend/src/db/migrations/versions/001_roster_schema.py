"""Create clan roster schema

Revision ID: 001_roster_schema
Revises:
Create Date: 2026-10-19

Creates:
- clans, users: minimal identity tables read by the roster
- events, squads, slots: event roster (squad/slot partition)
- communication_nodes: per-event radio tree (self-referencing parent_id)
- absences: declared non-attendance
- audit_entries: append-only audit log (event_id is a plain column so
  entries outlive their event)
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '001_roster_schema'
down_revision = None
branch_labels = None
depends_on = None


def _uuid_column() -> sa.Column:
    return sa.Column(
        'uuid',
        sa.LargeBinary(length=16).with_variant(postgresql.UUID(as_uuid=True), 'postgresql'),
        nullable=False,
    )


def _timestamps(with_updated: bool = True) -> list:
    columns = [sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP'))]
    if with_updated:
        columns.append(sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')))
    return columns


def upgrade() -> None:
    """
    Create roster tables.

    Tables:
    - clans, users
    - events, squads, slots
    - communication_nodes
    - absences
    - audit_entries
    """

    op.create_table(
        'clans',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('tag', sa.String(length=10), nullable=False),
        *_timestamps(with_updated=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )
    op.create_index('ix_clans_uuid', 'clans', ['uuid'], unique=True)

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('nickname', sa.String(length=50), nullable=False),
        sa.Column('role', sa.Enum('member', 'clan_leader', 'admin', name='user_role'), nullable=False),
        sa.Column('clan_id', sa.Integer(), nullable=True),
        *_timestamps(with_updated=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['clan_id'], ['clans.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_users_uuid', 'users', ['uuid'], unique=True)
    op.create_index('ix_users_nickname', 'users', ['nickname'], unique=True)
    op.create_index('ix_users_clan_id', 'users', ['clan_id'], unique=False)

    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('briefing', sa.Text(), nullable=True),
        sa.Column('game_type', sa.Enum('arma_3', 'arma_reforger', name='game_type'), nullable=False),
        sa.Column('status', sa.Enum('active', 'inactive', name='event_status'), nullable=False),
        sa.Column('scheduled_date', sa.DateTime(), nullable=False),
        sa.Column('creator_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['creator_id'], ['users.id']),
    )
    op.create_index('ix_events_uuid', 'events', ['uuid'], unique=True)
    op.create_index('ix_events_status', 'events', ['status'], unique=False)
    op.create_index('ix_events_scheduled_date', 'events', ['scheduled_date'], unique=False)
    op.create_index('ix_events_creator_id', 'events', ['creator_id'], unique=False)
    op.create_index('idx_events_status_date', 'events', ['status', 'scheduled_date'], unique=False)

    op.create_table(
        'squads',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_squads_uuid', 'squads', ['uuid'], unique=True)
    op.create_index('ix_squads_event_id', 'squads', ['event_id'], unique=False)
    op.create_index('idx_squads_event_order', 'squads', ['event_id', 'order'], unique=False)

    op.create_table(
        'slots',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('squad_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=100), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('user_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['squad_id'], ['squads.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_slots_uuid', 'slots', ['uuid'], unique=True)
    op.create_index('ix_slots_squad_id', 'slots', ['squad_id'], unique=False)
    op.create_index('ix_slots_user_id', 'slots', ['user_id'], unique=False)
    op.create_index('idx_slots_squad_order', 'slots', ['squad_id', 'order'], unique=False)

    op.create_table(
        'communication_nodes',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('frequency', sa.String(length=20), nullable=True),
        sa.Column('type', sa.Enum('command', 'squad', 'element', 'support', name='node_type'), nullable=False),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        sa.Column('position_x', sa.Float(), nullable=False, server_default='0'),
        sa.Column('position_y', sa.Float(), nullable=False, server_default='0'),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['parent_id'], ['communication_nodes.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_communication_nodes_uuid', 'communication_nodes', ['uuid'], unique=True)
    op.create_index('ix_communication_nodes_event_id', 'communication_nodes', ['event_id'], unique=False)
    op.create_index('ix_communication_nodes_parent_id', 'communication_nodes', ['parent_id'], unique=False)
    op.create_index('idx_comm_nodes_event_order', 'communication_nodes', ['event_id', 'order'], unique=False)

    op.create_table(
        'absences',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        *_timestamps(with_updated=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_absences_uuid', 'absences', ['uuid'], unique=True)
    op.create_index('ix_absences_user_id', 'absences', ['user_id'], unique=False)
    op.create_index('ix_absences_event_id', 'absences', ['event_id'], unique=False)

    op.create_table(
        'audit_entries',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('action', sa.String(length=40), nullable=False),
        sa.Column('entity', sa.String(length=50), nullable=False),
        sa.Column('entity_guid', sa.String(length=30), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('event_id', sa.Integer(), nullable=True),
        sa.Column('details', sa.JSON(), nullable=False),
        *_timestamps(with_updated=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_audit_entries_uuid', 'audit_entries', ['uuid'], unique=True)
    op.create_index('ix_audit_entries_user_id', 'audit_entries', ['user_id'], unique=False)
    op.create_index('ix_audit_entries_event_id', 'audit_entries', ['event_id'], unique=False)
    op.create_index('idx_audit_entries_event_created', 'audit_entries', ['event_id', 'created_at'], unique=False)


def downgrade() -> None:
    """Drop roster tables in reverse dependency order."""
    op.drop_table('audit_entries')
    op.drop_table('absences')
    op.drop_table('communication_nodes')
    op.drop_table('slots')
    op.drop_table('squads')
    op.drop_table('events')
    op.drop_table('users')
    op.drop_table('clans')

    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        for enum_name in ('node_type', 'event_status', 'game_type', 'user_role'):
            op.execute(f'DROP TYPE IF EXISTS {enum_name}')
