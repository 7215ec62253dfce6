"""create game, player, card, winner and message tables

Revision ID: 5c2a9e7d1b40
Revises:
Create Date: 2026-10-19 09:00:00.000000

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
        'game',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_code', sa.String(length=12), nullable=False),
        sa.Column('host_id', sa.String(length=36), nullable=True),
        sa.Column('host_name', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='waiting'),
        sa.Column('player_limit', sa.Integer(), nullable=False),
        sa.Column('win_pattern', sa.String(length=16), nullable=False, server_default='line'),
        sa.Column('called_numbers', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('staged_number', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_game_game_code', 'game', ['game_code'], unique=True)

    op.create_table(
        'player',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('card_count', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('is_developer', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['game.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_player_game_id', 'player', ['game_id'])

    op.create_table(
        'card',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('player_id', sa.String(length=36), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('numbers', sa.Text(), nullable=False),
        sa.Column('marked', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('position', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['player_id'], ['player.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['game_id'], ['game.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_card_player_id', 'card', ['player_id'])
    op.create_index('ix_card_game_id', 'card', ['game_id'])

    op.create_table(
        'winner',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('player_id', sa.String(length=36), nullable=False),
        sa.Column('player_name', sa.String(length=64), nullable=False),
        sa.Column('card_id', sa.String(length=36), nullable=True),
        sa.Column('pattern', sa.String(length=16), nullable=False),
        sa.Column('missed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('won_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['game.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_winner_game_id', 'winner', ['game_id'])

    op.create_table(
        'message',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('sender', sa.String(length=64), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('is_system', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['game.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_message_game_id', 'message', ['game_id'])


def downgrade():
    op.drop_index('ix_message_game_id', table_name='message')
    op.drop_table('message')
    op.drop_index('ix_winner_game_id', table_name='winner')
    op.drop_table('winner')
    op.drop_index('ix_card_game_id', table_name='card')
    op.drop_index('ix_card_player_id', table_name='card')
    op.drop_table('card')
    op.drop_index('ix_player_game_id', table_name='player')
    op.drop_table('player')
    op.drop_index('ix_game_game_code', table_name='game')
    op.drop_table('game')
