"""create device identity, device address and score record tables

Revision ID: 5b7e2c1d9a40
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5b7e2c1d9a40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'device_identity' not in existing_tables:
        op.create_table(
            'device_identity',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('device_id', sa.String(length=64), nullable=False),
            sa.Column('display_id', sa.String(length=16), nullable=False),
            sa.Column('fingerprint_user_agent', sa.String(length=512), nullable=False, server_default=''),
            sa.Column('screen_resolution', sa.String(length=32), nullable=False, server_default=''),
            sa.Column('timezone', sa.String(length=64), nullable=False, server_default=''),
            sa.Column('language', sa.String(length=32), nullable=False, server_default=''),
            sa.Column('platform', sa.String(length=64), nullable=False, server_default=''),
            sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('last_active_at', sa.DateTime(), nullable=False),
        )
        op.create_index('ix_device_identity_device_id', 'device_identity', ['device_id'], unique=True)
        op.create_index('ix_device_identity_display_id', 'device_identity', ['display_id'], unique=True)
        op.create_index('ix_device_identity_created_at', 'device_identity', ['created_at'])

    if 'device_address' not in existing_tables:
        op.create_table(
            'device_address',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('identity_id', sa.Integer(), sa.ForeignKey('device_identity.id'), nullable=False),
            sa.Column('address', sa.String(length=64), nullable=False),
            sa.Column('first_seen', sa.DateTime(), nullable=False),
            sa.Column('last_seen', sa.DateTime(), nullable=False),
            sa.UniqueConstraint('identity_id', 'address', name='uq_device_address_identity_address'),
        )
        op.create_index('ix_device_address_identity_id', 'device_address', ['identity_id'])
        op.create_index('ix_device_address_address', 'device_address', ['address'])

    if 'score_record' not in existing_tables:
        op.create_table(
            'score_record',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('device_id', sa.String(length=64), nullable=False),
            sa.Column('display_id', sa.String(length=16), nullable=False),
            sa.Column('score', sa.Integer(), nullable=False),
            sa.Column('level', sa.Integer(), nullable=False),
            sa.Column('game_time_seconds', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('enemies_defeated', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('treasures_found', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('submission_user_agent', sa.String(length=512), nullable=False, server_default=''),
            sa.Column('submission_address', sa.String(length=64), nullable=False, server_default=''),
            sa.Column('submitted_at', sa.DateTime(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
        )
        op.create_index('ix_score_record_rank', 'score_record', [sa.text('score DESC'), sa.text('created_at DESC')])
        op.create_index('ix_score_record_device_recent', 'score_record', ['device_id', sa.text('created_at DESC')])


def downgrade():
    op.drop_index('ix_score_record_device_recent', table_name='score_record')
    op.drop_index('ix_score_record_rank', table_name='score_record')
    op.drop_table('score_record')
    op.drop_index('ix_device_address_address', table_name='device_address')
    op.drop_index('ix_device_address_identity_id', table_name='device_address')
    op.drop_table('device_address')
    op.drop_index('ix_device_identity_created_at', table_name='device_identity')
    op.drop_index('ix_device_identity_display_id', table_name='device_identity')
    op.drop_index('ix_device_identity_device_id', table_name='device_identity')
    op.drop_table('device_identity')
