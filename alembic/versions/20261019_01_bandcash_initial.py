"""bandcash initial schema

Revision ID: 20261019_01
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

revision: str = '20261019_01'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    tables = set(inspect(bind).get_table_names())

    if 'users' not in tables:
        op.create_table(
            'users',
            sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
            sa.Column('email', sa.String(), nullable=False),
            sa.Column('name', sa.String(), nullable=True),
            sa.Column('preferred_lang', sa.String(length=8), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True, server_default=sa.func.now()),
            sa.Column('last_login_at', sa.DateTime(), nullable=True),
        )
        op.create_index('ix_users_email', 'users', ['email'], unique=True)

    if 'magic_links' not in tables:
        op.create_table(
            'magic_links',
            sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
            sa.Column('token', sa.String(length=64), nullable=False),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
            sa.Column('expires_at', sa.DateTime(), nullable=False),
            sa.Column('used_at', sa.DateTime(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True, server_default=sa.func.now()),
        )
        op.create_index('ix_magic_links_token', 'magic_links', ['token'], unique=True)

    if 'entries' not in tables:
        op.create_table(
            'entries',
            sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
            sa.Column('title', sa.String(length=255), nullable=False),
            sa.Column('time', sa.String(length=32), nullable=False),
            sa.Column('description', sa.Text(), nullable=False, server_default=''),
            sa.Column('amount', sa.BigInteger(), nullable=False, server_default='0'),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index('ix_entries_title', 'entries', ['title'])
        op.create_index('ix_entries_time', 'entries', ['time'])

    if 'payees' not in tables:
        op.create_table(
            'payees',
            sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
            sa.Column('name', sa.String(length=255), nullable=False),
            sa.Column('description', sa.Text(), nullable=False, server_default=''),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index('ix_payees_name', 'payees', ['name'])

    if 'participants' not in tables:
        op.create_table(
            'participants',
            sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
            sa.Column('entry_id', sa.Integer(), sa.ForeignKey('entries.id', ondelete='CASCADE'), nullable=False),
            sa.Column('payee_id', sa.Integer(), sa.ForeignKey('payees.id', ondelete='CASCADE'), nullable=False),
            sa.Column('amount', sa.BigInteger(), nullable=False, server_default='0'),
            sa.Column('expense', sa.BigInteger(), nullable=False, server_default='0'),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.UniqueConstraint('entry_id', 'payee_id', name='uq_entry_payee'),
        )
        op.create_index('ix_participants_entry_id', 'participants', ['entry_id'])
        op.create_index('ix_participants_payee_id', 'participants', ['payee_id'])


def downgrade() -> None:
    for table in ('participants', 'payees', 'entries', 'magic_links', 'users'):
        op.drop_table(table)
