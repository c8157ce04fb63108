"""initial schema: users, templates, programs, sessions, logs

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:12:40.118204

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '20261018_0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = sa.Enum('user', 'admin', name='user_role')
difficulty_level = sa.Enum('easier', 'same', 'harder', name='difficulty_level')
program_status = sa.Enum('active', 'completed', 'paused', name='program_status')
feedback_value = sa.Enum('too_easy', 'just_right', 'too_hard', name='feedback_value')


def _item_columns():
    return [
        sa.Column('exercise_name', sa.String(length=200), nullable=False),
        sa.Column('sets', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('reps', sa.String(length=20), nullable=True),
        sa.Column('seconds', sa.Integer(), nullable=True),
        sa.Column('weight_kg', sa.Numeric(6, 2), nullable=True),
        sa.Column('rest_seconds', sa.Integer(), nullable=True),
        sa.Column('coach_notes', sa.Text(), nullable=True),
        sa.Column('video_url', sa.String(length=500), nullable=True),
        sa.Column('order_in_day', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('is_unilateral', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reps_per_side', sa.Integer(), nullable=True),
        sa.Column('total_reps', sa.Integer(), nullable=True),
    ]


def _alternative_columns():
    return [
        sa.Column('alternative_name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('video_url', sa.String(length=500), nullable=True),
        sa.Column('difficulty_level', difficulty_level, nullable=False, server_default='same'),
        sa.Column('equipment_required', sa.JSON(), nullable=True),
        sa.Column('muscle_groups', sa.JSON(), nullable=True),
    ]


def upgrade() -> None:
    # 1) users
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('role', user_role, nullable=False, server_default='user'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # 2) templates
    op.create_table(
        'workout_templates',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('goal', sa.Text(), nullable=True),
        sa.Column('duration_weeks', sa.Integer(), nullable=False, server_default='4'),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_table(
        'template_days',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('template_id', sa.Uuid(), sa.ForeignKey('workout_templates.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('day_order', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
    )
    op.create_table(
        'template_items',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('template_day_id', sa.Uuid(), sa.ForeignKey('template_days.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        *_item_columns(),
    )
    op.create_table(
        'template_alternatives',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('template_item_id', sa.Uuid(), sa.ForeignKey('template_items.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        *_alternative_columns(),
    )

    # 3) client programs (template copies)
    op.create_table(
        'client_programs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('template_id', sa.Uuid(), sa.ForeignKey('workout_templates.id', ondelete='SET NULL'),
                  nullable=True),
        sa.Column('assigned_to', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('assigned_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('title_override', sa.String(length=200), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('duration_weeks', sa.Integer(), nullable=False, server_default='4'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('status', program_status, nullable=False, server_default='active'),
        sa.Column('auto_progression_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('inserted_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_table(
        'client_days',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('client_program_id', sa.Uuid(), sa.ForeignKey('client_programs.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('day_order', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
    )
    op.create_table(
        'client_items',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('client_day_id', sa.Uuid(), sa.ForeignKey('client_days.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        *_item_columns(),
    )
    op.create_table(
        'exercise_alternatives',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('client_item_id', sa.Uuid(), sa.ForeignKey('client_items.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        *_alternative_columns(),
    )

    # 4) sessions and what gets logged in them
    op.create_table(
        'workout_sessions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('client_program_id', sa.Uuid(), sa.ForeignKey('client_programs.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('client_day_id', sa.Uuid(), sa.ForeignKey('client_days.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=True),
        sa.Column('last_activity_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('feedback', sa.JSON(), nullable=True),
    )
    # at most one open session per (user, day)
    op.create_index('uq_workout_sessions_open_user_day', 'workout_sessions', ['user_id', 'client_day_id'],
                    unique=True, postgresql_where=sa.text('ended_at IS NULL'),
                    sqlite_where=sa.text('ended_at IS NULL'))
    op.create_table(
        'set_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('session_id', sa.Uuid(), sa.ForeignKey('workout_sessions.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('client_item_id', sa.Uuid(), sa.ForeignKey('client_items.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('client_day_id', sa.Uuid(), sa.ForeignKey('client_days.id', ondelete='CASCADE'), nullable=False),
        sa.Column('program_id', sa.Uuid(), sa.ForeignKey('client_programs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('set_number', sa.Integer(), nullable=False),
        sa.Column('reps_done', sa.Integer(), nullable=True),
        sa.Column('seconds_done', sa.Integer(), nullable=True),
        sa.Column('weight_kg_done', sa.Numeric(6, 2), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('marked_done_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('session_id', 'client_item_id', 'set_number', name='uq_set_logs_session_item_set'),
    )
    op.create_table(
        'exercise_notes',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('session_id', sa.Uuid(), sa.ForeignKey('workout_sessions.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('client_item_id', sa.Uuid(), sa.ForeignKey('client_items.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('client_day_id', sa.Uuid(), sa.ForeignKey('client_days.id', ondelete='CASCADE'), nullable=False),
        sa.Column('program_id', sa.Uuid(), sa.ForeignKey('client_programs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('rpe', sa.Integer(), nullable=True),
        sa.Column('rir_done', sa.Integer(), nullable=True),
        sa.Column('rpe_history', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('session_id', 'client_item_id', name='uq_exercise_notes_session_item'),
    )
    op.create_table(
        'set_weight_preferences',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('client_item_id', sa.Uuid(), sa.ForeignKey('client_items.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('set_number', sa.Integer(), nullable=False),
        sa.Column('weight_kg', sa.Numeric(6, 2), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('client_item_id', 'user_id', 'set_number', name='uq_set_weight_item_user_set'),
    )
    op.create_table(
        'exercise_feedback',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('client_item_id', sa.Uuid(), sa.ForeignKey('client_items.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('session_id', sa.Uuid(), sa.ForeignKey('workout_sessions.id', ondelete='SET NULL'), nullable=True),
        sa.Column('feedback', feedback_value, nullable=False),
        sa.Column('consumed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    )


def downgrade() -> None:
    for table in ('exercise_feedback', 'set_weight_preferences', 'exercise_notes', 'set_logs',
                  'workout_sessions', 'exercise_alternatives', 'client_items', 'client_days',
                  'client_programs', 'template_alternatives', 'template_items', 'template_days',
                  'workout_templates'):
        if table == 'workout_sessions':
            op.drop_index('uq_workout_sessions_open_user_day', table_name='workout_sessions')
        op.drop_table(table)
    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_id', table_name='users')
    op.drop_table('users')

    bind = op.get_bind()
    for enum in (feedback_value, program_status, difficulty_level, user_role):
        enum.drop(bind, checkfirst=True)
