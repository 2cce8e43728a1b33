"""create participant and won_item tables

Revision ID: 1c4e7a9b2d10
Revises:
Create Date: 2026-09-02 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '1c4e7a9b2d10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'participant',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('identity', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('password_hash', sa.String(length=128), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('is_girl', sa.Boolean(), nullable=False),
        sa.Column('assigned_number', sa.Integer(), nullable=True),
        sa.Column('coins', sa.Integer(), nullable=False),
        sa.Column('is_eliminated', sa.Boolean(), nullable=False),
        sa.Column('session_token', sa.String(length=64), nullable=True),
        sa.Column('connection_id', sa.String(length=64), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('assigned_number'),
    )
    with op.batch_alter_table('participant') as batch_op:
        batch_op.create_index(batch_op.f('ix_participant_identity'), ['identity'], unique=True)
        batch_op.create_index(batch_op.f('ix_participant_connection_id'), ['connection_id'], unique=False)

    op.create_table(
        'won_item',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('participant_id', sa.Integer(), nullable=False),
        sa.Column('item_name', sa.String(length=128), nullable=False),
        sa.Column('winning_bid', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['participant_id'], ['participant.id']),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade():
    op.drop_table('won_item')
    with op.batch_alter_table('participant') as batch_op:
        batch_op.drop_index(batch_op.f('ix_participant_connection_id'))
        batch_op.drop_index(batch_op.f('ix_participant_identity'))
    op.drop_table('participant')
