"""group expenses

Revision ID: 20261019_02
Revises: 20261019_01
Create Date: 2026-10-19

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

revision: str = '20261019_02'
down_revision: Union[str, Sequence[str], None] = '20261019_01'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    if 'expenses' in inspect(bind).get_table_names():
        return
    op.create_table(
        'expenses',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('date', sa.String(length=10), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('amount', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_expenses_title', 'expenses', ['title'])
    op.create_index('ix_expenses_date', 'expenses', ['date'])


def downgrade() -> None:
    op.drop_index('ix_expenses_date', table_name='expenses')
    op.drop_index('ix_expenses_title', table_name='expenses')
    op.drop_table('expenses')
