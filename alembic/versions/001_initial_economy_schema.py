"""Initial practice rewards economy schema

Revision ID: 001_initial_economy_schema
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID, ENUM


# revision identifiers, used by Alembic.
revision = '001_initial_economy_schema'
down_revision = None
branch_labels = None
depends_on = None

# Enum labels are the Python member names, as SQLAlchemy's Enum type stores them
user_role = ENUM('STUDENT', 'PARENT', 'ADMIN', name='userrole', create_type=False)
subscription_tier = ENUM('CORE', 'PLUS', 'PRO', name='subscriptiontier', create_type=False)
mood = ENUM('SAD', 'NEUTRAL', 'HAPPY', name='mood', create_type=False)
pet_rarity = ENUM('COMMON', 'RARE', 'EPIC', 'LEGENDARY', name='petrarity', create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in (user_role, subscription_tier, mood, pet_rarity):
        enum_type.create(bind, checkfirst=True)

    # Identity & curriculum references
    op.create_table(
        'users',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('name', sa.String(200), nullable=False, server_default=''),
        sa.Column('role', user_role, nullable=False),
        sa.Column('is_active', sa.Boolean, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        'subjects',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('grade_level', sa.String(50)),
        sa.Column('is_active', sa.Boolean, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        'topics',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('subject_id', UUID(as_uuid=True), sa.ForeignKey('subjects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('order_index', sa.Integer, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        'questions',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('topic_id', UUID(as_uuid=True), sa.ForeignKey('topics.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('question_type', sa.String(20), nullable=False),
        sa.Column('question_text', sa.Text, nullable=False),
        sa.Column('options', sa.JSON),
        sa.Column('correct_options', sa.JSON),
        sa.Column('answer', sa.Text),
        sa.Column('explanation', sa.Text),
        sa.Column('is_active', sa.Boolean, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Pets (students.selected_pet_id points here)
    op.create_table(
        'pets',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False, unique=True),
        sa.Column('rarity', pet_rarity, nullable=False, index=True),
        sa.Column('image_path', sa.String(500), nullable=False, server_default=''),
        sa.Column('tier2_image_path', sa.String(500)),
        sa.Column('tier3_image_path', sa.String(500)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Student economy record
    op.create_table(
        'students',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('name', sa.String(200), nullable=False, server_default=''),
        sa.Column('grade_level', sa.String(50)),
        sa.Column('xp', sa.Integer, nullable=False, server_default='0'),
        sa.Column('coins', sa.Integer, nullable=False, server_default='0'),
        sa.Column('food', sa.Integer, nullable=False, server_default='0'),
        sa.Column('current_streak', sa.Integer, nullable=False, server_default='0'),
        sa.Column('subscription_tier', subscription_tier, nullable=False, server_default='CORE'),
        sa.Column('selected_pet_id', UUID(as_uuid=True), sa.ForeignKey('pets.id', ondelete='SET NULL')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint('xp >= 0', name='ck_students_xp_non_negative'),
        sa.CheckConstraint('coins >= 0', name='ck_students_coins_non_negative'),
        sa.CheckConstraint('food >= 0', name='ck_students_food_non_negative'),
        sa.CheckConstraint('current_streak >= 0', name='ck_students_streak_non_negative'),
    )

    op.create_table(
        'parent_student_links',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('parent_user_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('student_id', UUID(as_uuid=True), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('linked_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('parent_user_id', 'student_id', name='unique_parent_student'),
        sa.UniqueConstraint('student_id', name='parent_student_links_student_id_unique'),
    )

    # Subscriptions
    op.create_table(
        'subscription_plans',
        sa.Column('tier', subscription_tier, primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('price_monthly', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('sessions_per_day', sa.Integer, nullable=False),
        sa.Column('features', sa.JSON),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        'child_subscriptions',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('parent_user_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('student_id', UUID(as_uuid=True), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('tier', subscription_tier, nullable=False),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Practice sessions
    op.create_table(
        'practice_sessions',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('student_id', UUID(as_uuid=True), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('topic_id', UUID(as_uuid=True), sa.ForeignKey('topics.id', ondelete='CASCADE'), nullable=False),
        sa.Column('subject_id', UUID(as_uuid=True), sa.ForeignKey('subjects.id', ondelete='SET NULL')),
        sa.Column('grade_level', sa.String(50)),
        sa.Column('total_questions', sa.Integer, nullable=False),
        sa.Column('current_question_index', sa.Integer, nullable=False, server_default='0'),
        sa.Column('correct_count', sa.Integer, nullable=False, server_default='0'),
        sa.Column('xp_earned', sa.Integer),
        sa.Column('coins_earned', sa.Integer),
        sa.Column('total_time_seconds', sa.Integer),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime(timezone=True)),
    )
    op.create_index('idx_practice_sessions_completed_student', 'practice_sessions', ['completed_at', 'student_id'])
    op.create_index('idx_practice_sessions_student_created', 'practice_sessions', ['student_id', 'created_at'])

    op.create_table(
        'session_questions',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('session_id', UUID(as_uuid=True), sa.ForeignKey('practice_sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('question_id', UUID(as_uuid=True), sa.ForeignKey('questions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('question_order', sa.Integer, nullable=False),
        sa.UniqueConstraint('session_id', 'question_id', name='unique_session_question'),
    )

    op.create_table(
        'practice_answers',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('session_id', UUID(as_uuid=True), sa.ForeignKey('practice_sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('question_id', UUID(as_uuid=True), sa.ForeignKey('questions.id', ondelete='SET NULL')),
        sa.Column('selected_options', sa.JSON),
        sa.Column('text_answer', sa.Text),
        sa.Column('is_correct', sa.Boolean, nullable=False),
        sa.Column('time_spent_seconds', sa.Integer),
        sa.Column('answered_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('session_id', 'question_id', name='unique_session_answer'),
    )

    op.create_table(
        'student_question_progress',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('student_id', UUID(as_uuid=True), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('topic_id', UUID(as_uuid=True), sa.ForeignKey('topics.id', ondelete='CASCADE'), nullable=False),
        sa.Column('question_id', UUID(as_uuid=True), sa.ForeignKey('questions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('cycle_number', sa.Integer, nullable=False, server_default='1'),
        sa.Column('seen_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint(
            'student_id', 'topic_id', 'question_id', 'cycle_number',
            name='unique_student_question_cycle'
        ),
    )

    # Gamification
    op.create_table(
        'daily_statuses',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('student_id', UUID(as_uuid=True), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date, nullable=False),
        sa.Column('has_practiced', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('mood', mood),
        sa.Column('has_spun', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('spin_reward', sa.Integer),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('student_id', 'date', name='unique_student_daily_status'),
    )

    op.create_table(
        'owned_pets',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('student_id', UUID(as_uuid=True), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('pet_id', UUID(as_uuid=True), sa.ForeignKey('pets.id', ondelete='CASCADE'), nullable=False),
        sa.Column('count', sa.Integer, nullable=False, server_default='1'),
        sa.Column('tier', sa.Integer, nullable=False, server_default='1'),
        sa.Column('food_fed', sa.Integer, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('student_id', 'pet_id', name='unique_student_pet'),
        sa.CheckConstraint('count >= 1', name='ck_owned_pets_count_positive'),
        sa.CheckConstraint('tier >= 1 AND tier <= 3', name='ck_owned_pets_tier_range'),
        sa.CheckConstraint('food_fed >= 0', name='ck_owned_pets_food_fed_non_negative'),
    )

    op.create_table(
        'weekly_leaderboard_rewards',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('week_start', sa.Date, nullable=False, index=True),
        sa.Column('student_id', UUID(as_uuid=True), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('rank', sa.Integer, nullable=False),
        sa.Column('weekly_xp', sa.Integer, nullable=False),
        sa.Column('coins_awarded', sa.Integer, nullable=False),
        sa.Column('seen_at', sa.DateTime(timezone=True)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('week_start', 'student_id', name='unique_weekly_reward'),
    )


def downgrade() -> None:
    for table in (
        'weekly_leaderboard_rewards', 'owned_pets', 'daily_statuses',
        'student_question_progress', 'practice_answers', 'session_questions',
        'practice_sessions', 'child_subscriptions', 'subscription_plans',
        'parent_student_links', 'students', 'pets', 'questions', 'topics',
        'subjects', 'users',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_type in (pet_rarity, mood, subscription_tier, user_role):
        enum_type.drop(bind, checkfirst=True)
