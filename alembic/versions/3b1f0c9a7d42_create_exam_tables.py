"""create_exam_tables

Revision ID: 3b1f0c9a7d42
Revises:
Create Date: 2026-10-19 10:12:40.118274

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b1f0c9a7d42'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('questions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('options_json', sa.Text(), nullable=False),
        sa.Column('correct_answer', sa.Integer(), nullable=False),
        sa.Column('difficulty', sa.String(16), nullable=False, server_default='medium'),
        sa.Column('topic', sa.String(100), nullable=False, server_default='general'),
        sa.Column('points', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('explanation', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('usage_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_questions_id', 'questions', ['id'])
    op.create_index('ix_questions_difficulty', 'questions', ['difficulty'])
    op.create_index('ix_questions_is_active', 'questions', ['is_active'])

    op.create_table('exam_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('singleton_key', sa.String(16), nullable=False),
        sa.Column('is_open', sa.Boolean(), nullable=False),
        sa.Column('window_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('window_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('questions_per_session', sa.Integer(), nullable=False),
        sa.Column('stratified_sampling', sa.Boolean(), nullable=False),
        sa.Column('show_correct_answers', sa.Boolean(), nullable=False),
        sa.Column('passing_percentage', sa.Integer(), nullable=False),
        sa.Column('show_results_immediately', sa.Boolean(), nullable=False),
        sa.Column('instructions', sa.Text(), nullable=False),
        sa.Column('welcome_message', sa.String(500), nullable=False),
        sa.Column('updated_by', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('singleton_key')
    )

    op.create_table('exam_sessions',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('candidate_id', sa.String(64), nullable=False),
        sa.Column('question_ids_json', sa.Text(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('max_score', sa.Integer(), nullable=False),
        sa.Column('answered_count', sa.Integer(), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('time_spent_seconds', sa.Integer(), nullable=False),
        sa.Column('is_completed', sa.Boolean(), nullable=False),
        sa.Column('completion_reason', sa.String(20), nullable=True),
        sa.Column('generation_strategy', sa.String(32), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_exam_sessions_id', 'exam_sessions', ['id'])
    op.create_index('ix_exam_sessions_candidate_id', 'exam_sessions', ['candidate_id'], unique=True)
    op.create_index('ix_exam_sessions_is_completed', 'exam_sessions', ['is_completed'])

    op.create_table('session_answers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.String(64), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('question_id', sa.Integer(), nullable=False),
        sa.Column('selected_option', sa.Integer(), nullable=False),
        sa.Column('is_correct', sa.Boolean(), nullable=False),
        sa.Column('points_awarded', sa.Integer(), nullable=False),
        sa.Column('answered_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['session_id'], ['exam_sessions.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('session_id', 'position', name='uq_session_position')
    )
    op.create_index('ix_session_answers_id', 'session_answers', ['id'])
    op.create_index('ix_session_answers_session_id', 'session_answers', ['session_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_session_answers_session_id', table_name='session_answers')
    op.drop_index('ix_session_answers_id', table_name='session_answers')
    op.drop_table('session_answers')
    op.drop_index('ix_exam_sessions_is_completed', table_name='exam_sessions')
    op.drop_index('ix_exam_sessions_candidate_id', table_name='exam_sessions')
    op.drop_index('ix_exam_sessions_id', table_name='exam_sessions')
    op.drop_table('exam_sessions')
    op.drop_table('exam_settings')
    op.drop_index('ix_questions_is_active', table_name='questions')
    op.drop_index('ix_questions_difficulty', table_name='questions')
    op.drop_index('ix_questions_id', table_name='questions')
    op.drop_table('questions')
