"""initial_proxy_schema

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.sql import func

# revision identifiers, used by Alembic.
revision = '3f1c9a7d2b10'
down_revision = None
branch_labels = None
depends_on = None

# Settings recognised by the admin API; seeded empty so GET /settings is stable.
_SETTING_KEYS = (
    'global_webhook_url',
    'watchdog_interval_ms',
    'audit_retention_days',
    'health_retention_days',
)


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(), nullable=False, index=True),
        sa.Column('role', sa.String(), nullable=False, server_default=sa.text("'viewer'")),
        sa.Column('created_at', sa.DateTime(), server_default=func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username')
    )

    op.create_table(
        'host_groups',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('webhook_url', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'hosts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('group_id', sa.Integer(), nullable=True),
        sa.Column('domains', sa.JSON(), nullable=False),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('ssl_type', sa.String(), nullable=False, server_default=sa.text("'none'")),
        sa.Column('ssl_force_https', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('ssl_cert_path', sa.String(), nullable=True),
        sa.Column('ssl_key_path', sa.String(), nullable=True),
        sa.Column('hsts', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('http2', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('locations', sa.JSON(), nullable=False),
        sa.Column('stream_ports', sa.JSON(), nullable=True),
        sa.Column('webhook_url', sa.String(), nullable=True),
        sa.Column('advanced_yaml', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=func.now(), nullable=False),
        sa.ForeignKeyConstraint(['group_id'], ['host_groups.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'access_lists',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('satisfy', sa.String(), nullable=False, server_default=sa.text("'any'")),
        sa.Column('created_at', sa.DateTime(), server_default=func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'access_list_clients',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('access_list_id', sa.Integer(), nullable=False, index=True),
        sa.Column('address', sa.String(), nullable=False),
        sa.Column('directive', sa.String(), nullable=False, server_default=sa.text("'allow'")),
        sa.ForeignKeyConstraint(['access_list_id'], ['access_lists.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'access_list_auth',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('access_list_id', sa.Integer(), nullable=False, index=True),
        sa.Column('username', sa.String(), nullable=False),
        sa.Column('password', sa.String(), nullable=False),
        sa.ForeignKeyConstraint(['access_list_id'], ['access_lists.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'settings',
        sa.Column('key', sa.String(), nullable=False),
        sa.Column('value', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('key')
    )

    op.bulk_insert(
        sa.table(
            'settings',
            sa.Column('key', sa.String()),
            sa.Column('value', sa.String())
        ),
        [{'key': key, 'value': ''} for key in _SETTING_KEYS]
    )


def downgrade() -> None:
    op.drop_table('settings')
    op.drop_table('access_list_auth')
    op.drop_table('access_list_clients')
    op.drop_table('access_lists')
    op.drop_table('hosts')
    op.drop_table('host_groups')
    op.drop_table('users')
