"""Create system settings table

Revision ID: 001
Revises:
Create Date: 2024-06-07

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from scoped_settings.config import config
from scoped_settings.db.models import configurable_id_column_type


revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TABLE_NAME = config.SETTINGS_TABLE_NAME


def upgrade() -> None:
    op.create_table(
        TABLE_NAME,
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('group_name', sa.String(255), nullable=False),
        sa.Column('key_name', sa.String(255), nullable=False),
        sa.Column('configurable_id', configurable_id_column_type(), nullable=True),
        sa.Column('configurable_table', sa.String(255), nullable=True),
        sa.Column('value', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'group_name', 'key_name', 'configurable_id', 'configurable_table',
            name=f'uq_{TABLE_NAME}_natural_key'
        )
    )
    op.create_index(op.f(f'ix_{TABLE_NAME}_group_name'), TABLE_NAME, ['group_name'])
    op.create_index(op.f(f'ix_{TABLE_NAME}_key_name'), TABLE_NAME, ['key_name'])
    op.create_index(op.f(f'ix_{TABLE_NAME}_configurable_id'), TABLE_NAME, ['configurable_id'])
    op.create_index(op.f(f'ix_{TABLE_NAME}_configurable_table'), TABLE_NAME, ['configurable_table'])


def downgrade() -> None:
    op.drop_index(op.f(f'ix_{TABLE_NAME}_configurable_table'), table_name=TABLE_NAME)
    op.drop_index(op.f(f'ix_{TABLE_NAME}_configurable_id'), table_name=TABLE_NAME)
    op.drop_index(op.f(f'ix_{TABLE_NAME}_key_name'), table_name=TABLE_NAME)
    op.drop_index(op.f(f'ix_{TABLE_NAME}_group_name'), table_name=TABLE_NAME)
    op.drop_table(TABLE_NAME)
