"""create user, room, player, question, answer and guess tables

Revision ID: 3a7c1e9b2f40
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3a7c1e9b2f40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=True),
        sa.Column('password_hash', sa.String(length=128), nullable=True),
        sa.Column('display_name', sa.String(length=64), nullable=False),
        sa.Column('is_anonymous_account', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_user_username', 'user', ['username'], unique=True)

    op.create_table(
        'room',
        sa.Column('code', sa.String(length=16), nullable=False),
        sa.Column('passcode', sa.String(length=16), nullable=False),
        sa.Column('host_id', sa.String(length=32), nullable=False),
        sa.Column('phase', sa.String(length=32), nullable=False),
        sa.Column('current_round_index', sa.Integer(), nullable=False),
        sa.Column('total_rounds', sa.Integer(), nullable=False),
        sa.Column('prompts_json', sa.Text(), nullable=False),
        sa.Column('participant_count', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('code'),
    )
    op.create_index('ix_room_host_id', 'room', ['host_id'], unique=False)

    op.create_table(
        'player',
        sa.Column('room_code', sa.String(length=16), nullable=False),
        sa.Column('user_id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('is_host', sa.Boolean(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('has_answered', sa.Boolean(), nullable=False),
        sa.Column('has_guessed', sa.Boolean(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['room_code'], ['room.code']),
        sa.PrimaryKeyConstraint('room_code', 'user_id'),
    )

    op.create_table(
        'question',
        sa.Column('room_code', sa.String(length=16), nullable=False),
        sa.Column('round_index', sa.Integer(), nullable=False),
        sa.Column('prompt', sa.Text(), nullable=False),
        sa.Column('reveal', sa.Boolean(), nullable=False),
        sa.Column('scored', sa.Boolean(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['room_code'], ['room.code']),
        sa.PrimaryKeyConstraint('room_code', 'round_index'),
    )

    op.create_table(
        'answer',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('room_code', sa.String(length=16), nullable=False),
        sa.Column('round_index', sa.Integer(), nullable=False),
        sa.Column('author_id', sa.String(length=32), nullable=False),
        sa.Column('payload', sa.Text(), nullable=False),
        sa.Column('released', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['room_code'], ['room.code']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('room_code', 'round_index', 'author_id', name='uq_answer_author_round'),
    )
    op.create_index('ix_answer_room_code', 'answer', ['room_code'], unique=False)

    op.create_table(
        'guess',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('room_code', sa.String(length=16), nullable=False),
        sa.Column('round_index', sa.Integer(), nullable=False),
        sa.Column('answer_id', sa.String(length=32), nullable=False),
        sa.Column('guesser_id', sa.String(length=32), nullable=False),
        sa.Column('guessed_player_id', sa.String(length=32), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['answer_id'], ['answer.id']),
        sa.ForeignKeyConstraint(['room_code'], ['room.code']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('answer_id', 'guesser_id', name='uq_guess_guesser_answer'),
    )
    op.create_index('ix_guess_room_code', 'guess', ['room_code'], unique=False)
    op.create_index('ix_guess_answer_id', 'guess', ['answer_id'], unique=False)


def downgrade():
    op.drop_index('ix_guess_answer_id', table_name='guess')
    op.drop_index('ix_guess_room_code', table_name='guess')
    op.drop_table('guess')
    op.drop_index('ix_answer_room_code', table_name='answer')
    op.drop_table('answer')
    op.drop_table('question')
    op.drop_table('player')
    op.drop_index('ix_room_host_id', table_name='room')
    op.drop_table('room')
    op.drop_index('ix_user_username', table_name='user')
    op.drop_table('user')
