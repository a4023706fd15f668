"""create user and match_record tables

Revision ID: 5a7c1e9d2b40
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5a7c1e9d2b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('password_hash', sa.String(length=256), nullable=False),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_user_username', 'user', ['username'], unique=True)

    if 'match_record' not in existing_tables:
        op.create_table(
            'match_record',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('room_code', sa.String(length=16), nullable=False),
            sa.Column('mode', sa.String(length=16), nullable=False),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('opponent_username', sa.String(length=256), nullable=True),
            sa.Column('points', sa.Integer(), nullable=False),
            sa.Column('result', sa.String(length=8), nullable=False),
            sa.Column('started_at', sa.DateTime(), nullable=True),
            sa.Column('finished_at', sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_match_record_room_code', 'match_record', ['room_code'])
        op.create_index('ix_match_record_username', 'match_record', ['username'])


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'match_record' in existing_tables:
        op.drop_index('ix_match_record_username', table_name='match_record')
        op.drop_index('ix_match_record_room_code', table_name='match_record')
        op.drop_table('match_record')
    if 'user' in existing_tables:
        op.drop_index('ix_user_username', table_name='user')
        op.drop_table('user')
