"""Initial schema: users, clients, domains, issues, history, comments, files, notifications.

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ROLE = sa.Enum('ADMIN', 'ACCOUNT_MANAGER', 'DEVELOPER', 'USER', 'CLIENT', name='role')
ISSUE_STATUS = sa.Enum(
    'NEW', 'ASSIGNED', 'IN_PROGRESS', 'PENDING', 'NEEDS_REVIEW', 'FIXED', 'CLOSED', 'WONT_FIX',
    name='issuestatus',
)
ISSUE_PRIORITY = sa.Enum('LOW', 'MEDIUM', 'HIGH', 'CRITICAL', name='issuepriority')
ENVIRONMENT = sa.Enum('PRODUCTION', 'STAGING', 'DEVELOPMENT', 'TEST', 'LOCAL', name='environment')
HOW_DISCOVERED = sa.Enum(
    'AUTOMATED_TESTING', 'CLIENT_REFERRED', 'MANUAL_TESTING', 'MONITORING_TOOL', 'OTHER',
    'QA_TEAM', 'REFERRAL', 'SELF_DISCOVERED', 'SOCIAL_MEDIA', 'WEB_SEARCH',
    name='howdiscovered',
)
CLIENT_STATUS = sa.Enum('ACTIVE', 'INACTIVE', 'LEAD', 'FORMER', name='clientstatus')
DOMAIN_STATUS = sa.Enum('ACTIVE', 'EXPIRED', 'CANCELLED', name='domainstatus')
NOTIFICATION_TYPE = sa.Enum(
    'ISSUE_ASSIGNED', 'COMMENT_ADDED', 'STATUS_CHANGED', 'ISSUE_DUE_SOON',
    name='notificationtype',
)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
    ]


def upgrade() -> None:
    # Users (enums will be created automatically)
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255)),
        sa.Column('image', sa.String(500)),
        sa.Column('role', ROLE, nullable=False, server_default='USER'),
        *_timestamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    # Clients
    op.create_table(
        'clients',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255)),
        sa.Column('phone', sa.String(50)),
        sa.Column('address', sa.Text),
        sa.Column('website', sa.String(500)),
        sa.Column('description', sa.Text),
        sa.Column('primary_contact', sa.String(255)),
        sa.Column('sla', sa.String(255)),
        sa.Column('notes', sa.Text),
        sa.Column('status', CLIENT_STATUS, nullable=False, server_default='ACTIVE'),
        sa.Column('manager_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL')),
        *_timestamps(),
    )
    op.create_index('ix_clients_name', 'clients', ['name'])
    op.create_index('ix_clients_status', 'clients', ['status'])
    op.create_index('ix_clients_manager_id', 'clients', ['manager_id'])
    op.create_index('ix_clients_created_at', 'clients', ['created_at'])
    op.create_index('ix_clients_updated_at', 'clients', ['updated_at'])

    # Domain names
    op.create_table(
        'domain_names',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('client_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('clients.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('hosting_provider', sa.String(255)),
        sa.Column('domain_expiration', sa.DateTime),
        sa.Column('domain_status', DOMAIN_STATUS),
        *_timestamps(),
    )
    op.create_index('ix_domain_names_client_id', 'domain_names', ['client_id'])
    op.create_index('ix_domain_names_domain_expiration', 'domain_names', ['domain_expiration'])

    # Issues
    op.create_table(
        'issues',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('status', ISSUE_STATUS, nullable=False, server_default='NEW'),
        sa.Column('priority', ISSUE_PRIORITY, nullable=False, server_default='MEDIUM'),
        sa.Column('environment', ENVIRONMENT, server_default='LOCAL'),
        sa.Column('due_date', sa.DateTime),
        sa.Column('how_discovered', HOW_DISCOVERED),
        sa.Column('steps_to_reproduce', sa.Text),
        sa.Column('expected_result', sa.Text),
        sa.Column('actual_result', sa.Text),
        sa.Column('impact', sa.Text),
        sa.Column('related_logs', sa.Text),
        sa.Column('workaround_available', sa.Boolean),
        sa.Column('workaround_description', sa.Text),
        sa.Column('client_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('clients.id', ondelete='RESTRICT')),
        sa.Column('reported_by_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('assigned_to_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL')),
        *_timestamps(),
    )
    op.create_index('ix_issues_status', 'issues', ['status'])
    op.create_index('ix_issues_priority', 'issues', ['priority'])
    op.create_index('ix_issues_due_date', 'issues', ['due_date'])
    op.create_index('ix_issues_client_id', 'issues', ['client_id'])
    op.create_index('ix_issues_reported_by_id', 'issues', ['reported_by_id'])
    op.create_index('ix_issues_assigned_to_id', 'issues', ['assigned_to_id'])
    op.create_index('ix_issues_created_at', 'issues', ['created_at'])
    op.create_index('ix_issues_updated_at', 'issues', ['updated_at'])

    # Issue history
    op.create_table(
        'issue_history',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('issue_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('issues.id', ondelete='CASCADE'), nullable=False),
        sa.Column('change_type', sa.String(50), nullable=False),
        sa.Column('field_name', sa.String(100)),
        sa.Column('old_value', sa.Text),
        sa.Column('new_value', sa.Text),
        sa.Column('changed_by_user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('changed_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
    )
    op.create_index('ix_issue_history_issue_id', 'issue_history', ['issue_id'])
    op.create_index('ix_issue_history_changed_at', 'issue_history', ['changed_at'])

    # Comments
    op.create_table(
        'comments',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('text', sa.Text, nullable=False),
        sa.Column('created_by_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('issue_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('issues.id', ondelete='CASCADE'), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_comments_created_by_id', 'comments', ['created_by_id'])
    op.create_index('ix_comments_issue_id', 'comments', ['issue_id'])

    # Files
    op.create_table(
        'files',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('filename', sa.String(500), nullable=False),
        sa.Column('original_name', sa.String(500), nullable=False),
        sa.Column('mime_type', sa.String(255), nullable=False),
        sa.Column('size', sa.Integer, nullable=False),
        sa.Column('key', sa.String(500), nullable=False, unique=True),
        sa.Column('url', sa.String(1000), nullable=False),
        sa.Column('uploaded_by_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('issue_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('issues.id', ondelete='CASCADE')),
        *_timestamps(),
    )
    op.create_index('ix_files_uploaded_by_id', 'files', ['uploaded_by_id'])
    op.create_index('ix_files_issue_id', 'files', ['issue_id'])

    # Notifications
    op.create_table(
        'notifications',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('type', NOTIFICATION_TYPE, nullable=False),
        sa.Column('message', sa.Text, nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('issue_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('issues.id', ondelete='CASCADE')),
        sa.Column('read', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
    )
    op.create_index('ix_notifications_type', 'notifications', ['type'])
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_issue_id', 'notifications', ['issue_id'])
    op.create_index('ix_notifications_read', 'notifications', ['read'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])


def downgrade() -> None:
    # Drop tables
    op.drop_table('notifications')
    op.drop_table('files')
    op.drop_table('comments')
    op.drop_table('issue_history')
    op.drop_table('issues')
    op.drop_table('domain_names')
    op.drop_table('clients')
    op.drop_table('users')

    # Drop enums
    for enum_name in (
        'notificationtype', 'domainstatus', 'clientstatus', 'howdiscovered',
        'environment', 'issuepriority', 'issuestatus', 'role',
    ):
        op.execute(f'DROP TYPE IF EXISTS {enum_name}')
