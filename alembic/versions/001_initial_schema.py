"""Initial schema

Revision ID: 001
Revises: 
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create record_tables registry
    op.create_table('record_tables',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('year', sa.Integer(), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=False),
    sa.Column('location', sa.String(length=255), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('location')
    )
    op.create_index(op.f('ix_record_tables_id'), 'record_tables', ['id'], unique=False)
    op.create_index(op.f('ix_record_tables_year'), 'record_tables', ['year'], unique=False)

    # Create record_rows table
    op.create_table('record_rows',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('table_location', sa.String(length=255), nullable=False),
    sa.Column('time_entry_id', sa.BigInteger(), nullable=False),
    sa.Column('workspace_id', sa.BigInteger(), nullable=False),
    sa.Column('workspace', sa.String(length=255), nullable=True),
    sa.Column('project_id', sa.BigInteger(), nullable=True),
    sa.Column('project', sa.String(length=255), nullable=True),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('tags', sa.Text(), nullable=False),
    sa.Column('start', sa.String(length=40), nullable=False),
    sa.Column('stop', sa.String(length=40), nullable=False),
    sa.Column('duration_sec', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.BigInteger(), nullable=True),
    sa.Column('guid', sa.String(length=64), nullable=True),
    sa.Column('billable', sa.Boolean(), nullable=False),
    sa.Column('duronly', sa.Boolean(), nullable=False),
    sa.Column('last_modified', sa.String(length=40), nullable=True),
    sa.Column('ical_id', sa.String(length=255), nullable=True),
    sa.Column('timestamp', sa.String(length=40), nullable=True),
    sa.Column('calendar_id', sa.String(length=255), nullable=True),
    sa.Column('update_flag', sa.Integer(), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_record_rows_table_location'), 'record_rows', ['table_location'], unique=False)
    op.create_index('idx_record_rows_table_entry', 'record_rows', ['table_location', 'time_entry_id'], unique=False)

    # Create properties table
    op.create_table('properties',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('scope', sa.String(length=255), nullable=False),
    sa.Column('key', sa.String(length=100), nullable=False),
    sa.Column('value', sa.Text(), nullable=True),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('scope', 'key', name='uq_properties_scope_key')
    )
    op.create_index(op.f('ix_properties_id'), 'properties', ['id'], unique=False)

    # Create sync_locks table
    op.create_table('sync_locks',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('key', sa.String(length=255), nullable=False),
    sa.Column('owner', sa.String(length=100), nullable=False),
    sa.Column('acquired_at', sa.DateTime(timezone=True), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('key')
    )
    op.create_index(op.f('ix_sync_locks_id'), 'sync_locks', ['id'], unique=False)

    # Create sync_runs table
    op.create_table('sync_runs',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('job', sa.String(length=50), nullable=False),
    sa.Column('trigger_type', sa.String(length=50), nullable=False),
    sa.Column('table_location', sa.String(length=255), nullable=True),
    sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
    sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
    sa.Column('status', sa.String(length=50), nullable=False),
    sa.Column('outcome', sa.String(length=50), nullable=True),
    sa.Column('entries_fetched', sa.Integer(), nullable=False),
    sa.Column('entries_synced', sa.Integer(), nullable=False),
    sa.Column('entries_failed', sa.Integer(), nullable=False),
    sa.Column('watermark_before', sa.BigInteger(), nullable=True),
    sa.Column('watermark_after', sa.BigInteger(), nullable=True),
    sa.Column('error_message', sa.Text(), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_sync_runs_id'), 'sync_runs', ['id'], unique=False)

    # Create audit_logs table
    op.create_table('audit_logs',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('action', sa.String(length=100), nullable=False),
    sa.Column('table_location', sa.String(length=255), nullable=True),
    sa.Column('time_entry_id', sa.BigInteger(), nullable=True),
    sa.Column('user', sa.String(length=100), nullable=True),
    sa.Column('message', sa.Text(), nullable=False),
    sa.Column('details', sa.JSON(), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_audit_logs_id'), 'audit_logs', ['id'], unique=False)
    op.create_index(op.f('ix_audit_logs_created_at'), 'audit_logs', ['created_at'], unique=False)
    op.create_index('idx_audit_logs_action', 'audit_logs', ['action'], unique=False)
    op.create_index('idx_audit_logs_table_created', 'audit_logs', ['table_location', 'created_at'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_audit_logs_table_created', table_name='audit_logs')
    op.drop_index('idx_audit_logs_action', table_name='audit_logs')
    op.drop_index(op.f('ix_audit_logs_created_at'), table_name='audit_logs')
    op.drop_index(op.f('ix_audit_logs_id'), table_name='audit_logs')
    op.drop_table('audit_logs')
    op.drop_index(op.f('ix_sync_runs_id'), table_name='sync_runs')
    op.drop_table('sync_runs')
    op.drop_index(op.f('ix_sync_locks_id'), table_name='sync_locks')
    op.drop_table('sync_locks')
    op.drop_index(op.f('ix_properties_id'), table_name='properties')
    op.drop_table('properties')
    op.drop_index('idx_record_rows_table_entry', table_name='record_rows')
    op.drop_index(op.f('ix_record_rows_table_location'), table_name='record_rows')
    op.drop_table('record_rows')
    op.drop_index(op.f('ix_record_tables_year'), table_name='record_tables')
    op.drop_index(op.f('ix_record_tables_id'), table_name='record_tables')
    op.drop_table('record_tables')
