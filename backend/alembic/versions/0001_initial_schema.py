"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'profiles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('display_name', sa.Text()),
        sa.Column('current_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('admin_notes', sa.Text()),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('current_points >= 0', name='ck_profiles_points_non_negative'),
    )

    op.create_table(
        'courses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('price_points', sa.Integer(), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('price_points >= 0', name='ck_courses_price_non_negative'),
        sa.CheckConstraint('duration_minutes > 0', name='ck_courses_duration_positive'),
    )

    op.create_table(
        'schedule_overrides',
        sa.Column('date', sa.Date(), primary_key=True),
        sa.Column('open_time', sa.Time(), nullable=False),
        sa.Column('close_time', sa.Time(), nullable=False),
        sa.Column('is_closed', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'reservations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('course_id', sa.Integer(), sa.ForeignKey('courses.id'), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column(
            'status',
            sa.Enum('confirmed', 'cancelled', name='reservation_status'),
            nullable=False,
            server_default='confirmed',
        ),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('end_time > start_time', name='ck_reservations_interval'),
    )
    op.create_index('ix_reservations_user_id', 'reservations', ['user_id'])
    op.create_index('ix_reservations_status_start', 'reservations', ['status', 'start_time'])

    op.create_table(
        'point_ledger_entries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column(
            'entry_type',
            sa.Enum('booking', 'refund', 'charge', 'admin_credit', 'admin_cancel', name='ledger_entry_type'),
            nullable=False,
        ),
        sa.Column('description', sa.Text()),
        sa.Column('reservation_id', sa.Integer(), sa.ForeignKey('reservations.id', ondelete='SET NULL')),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='SET NULL')),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_point_ledger_entries_user_id', 'point_ledger_entries', ['user_id'])

    op.create_table(
        'admin_notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('reservation_id', sa.Integer(), sa.ForeignKey('reservations.id', ondelete='SET NULL')),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    resource_locks = op.create_table(
        'resource_locks',
        sa.Column('name', sa.Text(), primary_key=True),
    )
    # Row locked by every calendar mutation
    op.bulk_insert(resource_locks, [{'name': 'calendar'}])


def downgrade() -> None:
    op.drop_table('resource_locks')
    op.drop_table('admin_notifications')
    op.drop_index('ix_point_ledger_entries_user_id', table_name='point_ledger_entries')
    op.drop_table('point_ledger_entries')
    op.drop_index('ix_reservations_status_start', table_name='reservations')
    op.drop_index('ix_reservations_user_id', table_name='reservations')
    op.drop_table('reservations')
    op.drop_table('schedule_overrides')
    op.drop_table('courses')
    op.drop_table('profiles')
