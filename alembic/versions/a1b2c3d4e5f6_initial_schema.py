"""initial_schema

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2025-01-10 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1b2c3d4e5f6'
down_revision = None
branch_labels = None
depends_on = None

VISITOR_STATUSES = ('pending', 'approved', 'denied', 'checked-in', 'checked-out')
VISITOR_TYPES = ('expected', 'walk-in', 'delivery', 'service', 'guest')
ROLE_TYPES = ('admin', 'manager', 'guard', 'resident')


def upgrade():
    op.create_table(
        'societies',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'units',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('society_id', sa.String(length=36), sa.ForeignKey('societies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('block_name', sa.String(length=50), nullable=True),
        sa.Column('unit_number', sa.String(length=20), nullable=False),
        sa.UniqueConstraint('society_id', 'unit_number', name='uq_society_unit_number'),
    )
    op.create_index('idx_units_society', 'units', ['society_id'])

    op.create_table(
        'profiles',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('phone', sa.String(length=16), nullable=False),
        sa.Column('full_name', sa.String(length=100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_profiles_phone', 'profiles', ['phone'], unique=True)

    op.create_table(
        'user_roles',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('profile_id', sa.String(length=36), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('society_id', sa.String(length=36), sa.ForeignKey('societies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('unit_id', sa.String(length=36), sa.ForeignKey('units.id', ondelete='SET NULL'), nullable=True),
        sa.Column('role', sa.Enum(*ROLE_TYPES, name='user_role', native_enum=False), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
    )
    op.create_index('idx_user_roles_profile', 'user_roles', ['profile_id'])
    op.create_index('idx_user_roles_unit_role', 'user_roles', ['unit_id', 'role'])

    op.create_table(
        'visitors',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('society_id', sa.String(length=36), sa.ForeignKey('societies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('unit_id', sa.String(length=36), sa.ForeignKey('units.id'), nullable=False),
        sa.Column('host_id', sa.String(length=36), sa.ForeignKey('profiles.id'), nullable=True),
        sa.Column('visitor_name', sa.String(length=100), nullable=False),
        sa.Column('visitor_phone', sa.String(length=10), nullable=True),
        sa.Column('visitor_type', sa.Enum(*VISITOR_TYPES, name='visitor_type', native_enum=False), nullable=False),
        sa.Column('purpose', sa.String(length=200), nullable=True),
        sa.Column('expected_date', sa.Date(), nullable=True),
        sa.Column('expected_time', sa.Time(), nullable=True),
        sa.Column('status', sa.Enum(*VISITOR_STATUSES, name='visitor_status', native_enum=False), nullable=False),
        sa.Column('rejection_reason', sa.String(length=200), nullable=True),
        sa.Column('otp', sa.String(length=6), nullable=True),
        sa.Column('otp_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('checked_in_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('checked_in_by', sa.String(length=36), sa.ForeignKey('profiles.id'), nullable=True),
        sa.Column('checked_out_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('checked_out_by', sa.String(length=36), sa.ForeignKey('profiles.id'), nullable=True),
    )
    op.create_index('idx_visitors_society_status', 'visitors', ['society_id', 'status'])
    op.create_index('idx_visitors_unit_status', 'visitors', ['unit_id', 'status'])
    op.create_index('idx_visitors_society_otp', 'visitors', ['society_id', 'otp'])
    op.create_index('idx_visitors_society_phone', 'visitors', ['society_id', 'visitor_phone'])

    op.create_table(
        'visitor_logs',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('visitor_id', sa.String(length=36), sa.ForeignKey('visitors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('action', sa.String(length=30), nullable=False),
        sa.Column('from_status', sa.String(length=20), nullable=True),
        sa.Column('to_status', sa.String(length=20), nullable=False),
        sa.Column('actor_id', sa.String(length=36), sa.ForeignKey('profiles.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('idx_visitor_logs_visitor', 'visitor_logs', ['visitor_id'])

    op.create_table(
        'auth_otps',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('phone', sa.String(length=16), nullable=False),
        sa.Column('otp_hash', sa.String(length=128), nullable=False),
        sa.Column('verified', sa.Boolean(), nullable=False),
        sa.Column('attempts', sa.Integer(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_auth_otps_phone', 'auth_otps', ['phone'], unique=True)

    op.create_table(
        'announcements',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('society_id', sa.String(length=36), sa.ForeignKey('societies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('target_role', sa.String(length=20), nullable=True),
        sa.Column('created_by', sa.String(length=36), sa.ForeignKey('profiles.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('idx_announcements_society', 'announcements', ['society_id'])


def downgrade():
    op.drop_index('idx_announcements_society', table_name='announcements')
    op.drop_table('announcements')
    op.drop_index('ix_auth_otps_phone', table_name='auth_otps')
    op.drop_table('auth_otps')
    op.drop_index('idx_visitor_logs_visitor', table_name='visitor_logs')
    op.drop_table('visitor_logs')
    for index in ('idx_visitors_society_phone', 'idx_visitors_society_otp',
                  'idx_visitors_unit_status', 'idx_visitors_society_status'):
        op.drop_index(index, table_name='visitors')
    op.drop_table('visitors')
    op.drop_index('idx_user_roles_unit_role', table_name='user_roles')
    op.drop_index('idx_user_roles_profile', table_name='user_roles')
    op.drop_table('user_roles')
    op.drop_index('ix_profiles_phone', table_name='profiles')
    op.drop_table('profiles')
    op.drop_index('idx_units_society', table_name='units')
    op.drop_table('units')
    op.drop_table('societies')
