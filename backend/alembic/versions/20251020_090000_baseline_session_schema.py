"""Baseline schema: clinics, users, patients, sessions and notifications

Revision ID: baseline_session_schema
Revises: 
Create Date: 2025-10-20 09:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'baseline_session_schema'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'clinics',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('timezone', sa.String(length=64), nullable=False, server_default='UTC'),
        *_timestamps(),
    )
    op.create_index('ix_clinics_id', 'clinics', ['id'])

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('clinic_id', sa.Integer(), sa.ForeignKey('clinics.id'), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False, unique=True),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('role', sa.String(length=50), nullable=False),
        sa.Column('job_title', sa.String(length=100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('idx_users_clinic_role', 'users', ['clinic_id', 'role'])

    op.create_table(
        'patients',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('clinic_id', sa.Integer(), sa.ForeignKey('clinics.id'), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        *_timestamps(),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index('ix_patients_id', 'patients', ['id'])
    op.create_index('idx_patients_clinic', 'patients', ['clinic_id'])

    op.create_table(
        'sessions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('clinic_id', sa.Integer(), sa.ForeignKey('clinics.id'), nullable=False),
        sa.Column('patient_id', sa.Integer(), sa.ForeignKey('patients.id'), nullable=False),
        sa.Column('therapist_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='scheduled'),
        sa.Column('periodicity', sa.String(length=20), nullable=False, server_default='None'),
        sa.Column('is_follow_up', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('parent_session_id', sa.Integer(), sa.ForeignKey('sessions.id'), nullable=True),
        sa.Column('series_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_sessions_id', 'sessions', ['id'])
    op.create_index('idx_sessions_clinic_start_time', 'sessions', ['clinic_id', 'start_time'])
    op.create_index('idx_sessions_parent', 'sessions', ['parent_session_id'])
    op.create_index('idx_sessions_patient', 'sessions', ['patient_id'])
    op.create_index('idx_sessions_therapist', 'sessions', ['therapist_id'])
    op.create_index('idx_sessions_status', 'sessions', ['status'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('clinic_id', sa.Integer(), sa.ForeignKey('clinics.id'), nullable=False),
        sa.Column('recipient_type', sa.String(length=20), nullable=False),
        sa.Column('recipient_id', sa.Integer(), nullable=False),
        sa.Column('notification_type', sa.String(length=50), nullable=False),
        sa.Column('channel', sa.String(length=20), nullable=False),
        sa.Column('subject', sa.String(length=255), nullable=True),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('scheduled_for', sa.DateTime(timezone=True), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('related_session_id', sa.Integer(), sa.ForeignKey('sessions.id'), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('extra_data', sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_notifications_id', 'notifications', ['id'])
    op.create_index('idx_notifications_status_scheduled', 'notifications', ['status', 'scheduled_for'])
    op.create_index('idx_notifications_session_status', 'notifications', ['related_session_id', 'status'])

    op.create_table(
        'notification_settings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('clinic_id', sa.Integer(), sa.ForeignKey('clinics.id'), nullable=False),
        sa.Column('notification_type', sa.String(length=50), nullable=False),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('timing_hours', sa.Integer(), nullable=False, server_default='24'),
        sa.Column('channels', sa.JSON(), nullable=False),
        sa.Column('template', sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('clinic_id', 'notification_type', 'timing_hours', name='uq_notification_setting'),
    )
    op.create_index('ix_notification_settings_id', 'notification_settings', ['id'])


def downgrade() -> None:
    op.drop_table('notification_settings')
    op.drop_table('notifications')
    op.drop_table('sessions')
    op.drop_table('patients')
    op.drop_table('users')
    op.drop_table('clinics')
