"""create board, board_owner and quarter_winner tables

Revision ID: 5c2e9a1f7b30
Revises:
Create Date: 2026-01-20 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2e9a1f7b30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'board' not in existing_tables:
        op.create_table(
            'board',
            sa.Column('id', sa.String(length=80), primary_key=True),
            sa.Column('name', sa.String(length=120), nullable=False),
            sa.Column('default_game_id', sa.String(length=40), nullable=True),
            sa.Column('top_team_label', sa.String(length=64), nullable=False),
            sa.Column('side_team_label', sa.String(length=64), nullable=False),
            sa.Column('column_markers', sa.Text(), nullable=False),
            sa.Column('row_markers', sa.Text(), nullable=False),
            sa.Column('assignments', sa.Text(), nullable=False),
            sa.Column('theme_defaults', sa.Text(), nullable=True),
            sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        )

    if 'board_owner' not in existing_tables:
        op.create_table(
            'board_owner',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('board_id', sa.String(length=80), sa.ForeignKey('board.id', ondelete='CASCADE'), nullable=False),
            sa.Column('initials', sa.String(length=4), nullable=False),
            sa.Column('display_name', sa.String(length=64), nullable=False),
            sa.Column('bg_color', sa.String(length=7), nullable=False),
            sa.Column('text_color', sa.String(length=7), nullable=False),
            sa.Column('sort_order', sa.Integer(), nullable=False),
            sa.Column('locked_at', sa.DateTime(timezone=True), nullable=True),
            sa.UniqueConstraint('board_id', 'initials', name='uq_board_owner_initials'),
        )
        op.create_index('ix_board_owner_board_id', 'board_owner', ['board_id'])

    if 'quarter_winner' not in existing_tables:
        op.create_table(
            'quarter_winner',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('board_id', sa.String(length=80), sa.ForeignKey('board.id', ondelete='CASCADE'), nullable=False),
            sa.Column('quarter', sa.Integer(), nullable=False),
            sa.Column('owner_id', sa.Integer(), sa.ForeignKey('board_owner.id', ondelete='SET NULL'), nullable=True),
            sa.Column('home_score', sa.Integer(), nullable=False),
            sa.Column('away_score', sa.Integer(), nullable=False),
            sa.Column('game_period_recorded', sa.Integer(), nullable=False),
            sa.UniqueConstraint('board_id', 'quarter', name='uq_quarter_winner_board_quarter'),
        )


def downgrade():
    op.drop_table('quarter_winner')
    op.drop_index('ix_board_owner_board_id', table_name='board_owner')
    op.drop_table('board_owner')
    op.drop_table('board')
