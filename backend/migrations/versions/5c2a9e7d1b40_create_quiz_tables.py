"""create quiz session, question, participant, attempt and response tables

Revision ID: 5c2a9e7d1b40
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2a9e7d1b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'question',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_code', sa.String(length=12), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_question_session_code', 'question', ['session_code'])

    op.create_table(
        'question_option',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('question_id', sa.Integer(), sa.ForeignKey('question.id'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('text', sa.String(length=512), nullable=False),
        sa.Column('is_correct', sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index('ix_question_option_question_id', 'question_option', ['question_id'])

    op.create_table(
        'quiz_session',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_code', sa.String(length=12), nullable=False),
        sa.Column('title', sa.String(length=128), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='WAITING'),
        sa.Column(
            'current_question_id',
            sa.Integer(),
            sa.ForeignKey('question.id', name='fk_quiz_session_current_question_id'),
            nullable=True,
        ),
        sa.Column('question_ends_at', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_quiz_session_session_code', 'quiz_session', ['session_code'], unique=True)

    op.create_table(
        'participant',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_code', sa.String(length=12), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('unique_code', sa.String(length=16), nullable=False),
        sa.Column('total_score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_participant_session_code', 'participant', ['session_code'])

    op.create_table(
        'attempt',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('participant_id', sa.Integer(), sa.ForeignKey('participant.id'), nullable=False),
        sa.Column('question_id', sa.Integer(), nullable=False),
        sa.Column('is_correct', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('participant_id', 'question_id', name='uq_attempt_participant_question'),
    )
    op.create_index('ix_attempt_participant_id', 'attempt', ['participant_id'])

    op.create_table(
        'response',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('participant_id', sa.Integer(), nullable=False),
        sa.Column('question_id', sa.Integer(), nullable=False),
        sa.Column('session_code', sa.String(length=12), nullable=False),
        sa.Column('selected_option', sa.String(length=512), nullable=True),
        sa.Column('is_correct', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_response_participant_id', 'response', ['participant_id'])
    op.create_index('ix_response_session_code', 'response', ['session_code'])


def downgrade():
    op.drop_table('response')
    op.drop_table('attempt')
    op.drop_table('participant')
    op.drop_table('quiz_session')
    op.drop_table('question_option')
    op.drop_table('question')
