"""initial_booking_schema

Revision ID: a1c4e9d27b3f
Revises:
Create Date: 2026-10-19 09:12:41.118204

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'a1c4e9d27b3f'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Needed for "host_id WITH =" inside the gist exclusion constraint
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")

    op.create_table('hosts',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('business_name', sa.String(length=255), nullable=True),
        sa.Column('timezone', sa.String(length=64), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_hosts_email'), 'hosts', ['email'], unique=True)

    op.create_table('availability_schedules',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('host_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('timezone', sa.String(length=64), nullable=False),
        sa.Column('is_default', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['host_id'], ['hosts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_availability_schedules_host_id'), 'availability_schedules', ['host_id'], unique=False)
    op.create_index(
        'uq_availability_schedules_host_default', 'availability_schedules', ['host_id'],
        unique=True, postgresql_where=sa.text('is_default')
    )

    op.create_table('availability_rules',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('schedule_id', sa.Uuid(), nullable=False),
        sa.Column('rule_type', sa.String(length=20), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=True),
        sa.Column('specific_date', sa.Date(), nullable=True),
        sa.Column('start_time', sa.Time(), nullable=True),
        sa.Column('end_time', sa.Time(), nullable=True),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "(rule_type = 'weekly' AND day_of_week BETWEEN 0 AND 6 AND specific_date IS NULL)"
            " OR (rule_type = 'date_override' AND specific_date IS NOT NULL AND day_of_week IS NULL)",
            name='ck_availability_rules_variant'
        ),
        sa.CheckConstraint(
            "start_time IS NULL OR end_time IS NULL OR start_time < end_time OR end_time < '00:00:01'",
            name='ck_availability_rules_range'
        ),
        sa.ForeignKeyConstraint(['schedule_id'], ['availability_schedules.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_availability_rules_schedule_id'), 'availability_rules', ['schedule_id'], unique=False)
    op.create_index('ix_availability_rules_schedule_date', 'availability_rules', ['schedule_id', 'specific_date'], unique=False)

    op.create_table('event_types',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('host_id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('slug', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('scheduling_type', sa.String(length=20), nullable=False),
        sa.Column('location_type', sa.String(length=20), nullable=False),
        sa.Column('location_value', sa.String(length=500), nullable=True),
        sa.Column('availability_schedule_id', sa.Uuid(), nullable=True),
        sa.Column('min_notice', sa.Integer(), nullable=False),
        sa.Column('max_future_days', sa.Integer(), nullable=False),
        sa.Column('slot_interval', sa.Integer(), nullable=True),
        sa.Column('buffer_before', sa.Integer(), nullable=False),
        sa.Column('buffer_after', sa.Integer(), nullable=False),
        sa.Column('requires_confirmation', sa.Boolean(), nullable=False),
        sa.Column('custom_questions', postgresql.JSON(astext_type=sa.Text()), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_hidden', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('duration > 0', name='ck_event_types_duration'),
        sa.CheckConstraint('min_notice >= 0', name='ck_event_types_min_notice'),
        sa.CheckConstraint('max_future_days >= 0', name='ck_event_types_max_future_days'),
        sa.CheckConstraint('slot_interval IS NULL OR slot_interval > 0', name='ck_event_types_slot_interval'),
        sa.CheckConstraint('buffer_before >= 0 AND buffer_after >= 0', name='ck_event_types_buffers'),
        sa.ForeignKeyConstraint(['availability_schedule_id'], ['availability_schedules.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['host_id'], ['hosts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('host_id', 'slug', name='uq_event_types_host_slug')
    )
    op.create_index(op.f('ix_event_types_host_id'), 'event_types', ['host_id'], unique=False)

    op.create_table('bookings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('uid', sa.String(length=64), nullable=False),
        sa.Column('event_type_id', sa.Uuid(), nullable=False),
        sa.Column('host_id', sa.Uuid(), nullable=False),
        sa.Column('rescheduled_from', sa.Uuid(), nullable=True),
        sa.Column('invitee_name', sa.String(length=255), nullable=False),
        sa.Column('invitee_email', sa.String(length=255), nullable=False),
        sa.Column('invitee_timezone', sa.String(length=64), nullable=False),
        sa.Column('invitee_notes', sa.Text(), nullable=True),
        sa.Column('responses', postgresql.JSON(astext_type=sa.Text()), nullable=True),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('blocked_start', sa.DateTime(timezone=True), nullable=False),
        sa.Column('blocked_end', sa.DateTime(timezone=True), nullable=False),
        sa.Column('location', sa.String(length=500), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('cancelled_by', sa.String(length=10), nullable=True),
        sa.Column('source', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('start_time < end_time', name='ck_bookings_interval'),
        sa.CheckConstraint('blocked_start <= start_time AND blocked_end >= end_time', name='ck_bookings_blocked'),
        sa.ForeignKeyConstraint(['event_type_id'], ['event_types.id']),
        sa.ForeignKeyConstraint(['host_id'], ['hosts.id']),
        sa.ForeignKeyConstraint(['rescheduled_from'], ['bookings.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uid')
    )
    op.create_index(op.f('ix_bookings_event_type_id'), 'bookings', ['event_type_id'], unique=False)
    op.create_index('ix_bookings_host_blocked', 'bookings', ['host_id', 'blocked_start', 'blocked_end'], unique=False)
    op.create_index('ix_bookings_host_status_start', 'bookings', ['host_id', 'status', 'start_time'], unique=False)

    # No two active bookings of one host may hold overlapping blocked ranges
    op.execute(
        "ALTER TABLE bookings ADD CONSTRAINT ex_bookings_host_no_overlap "
        "EXCLUDE USING gist (host_id WITH =, tstzrange(blocked_start, blocked_end, '[)') WITH &&) "
        "WHERE (status IN ('pending', 'confirmed'))"
    )

    op.create_table('booking_attendees',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('booking_id', sa.Uuid(), nullable=False),
        sa.Column('host_id', sa.Uuid(), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('response_status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['host_id'], ['hosts.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_booking_attendees_booking_id'), 'booking_attendees', ['booking_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_booking_attendees_booking_id'), table_name='booking_attendees')
    op.drop_table('booking_attendees')
    op.execute("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS ex_bookings_host_no_overlap")
    op.drop_index('ix_bookings_host_status_start', table_name='bookings')
    op.drop_index('ix_bookings_host_blocked', table_name='bookings')
    op.drop_index(op.f('ix_bookings_event_type_id'), table_name='bookings')
    op.drop_table('bookings')
    op.drop_index(op.f('ix_event_types_host_id'), table_name='event_types')
    op.drop_table('event_types')
    op.drop_index('ix_availability_rules_schedule_date', table_name='availability_rules')
    op.drop_index(op.f('ix_availability_rules_schedule_id'), table_name='availability_rules')
    op.drop_table('availability_rules')
    op.drop_index('uq_availability_schedules_host_default', table_name='availability_schedules')
    op.drop_index(op.f('ix_availability_schedules_host_id'), table_name='availability_schedules')
    op.drop_table('availability_schedules')
    op.drop_index(op.f('ix_hosts_email'), table_name='hosts')
    op.drop_table('hosts')
