"""
Initial schema: users, audit logs, sites, issues, issue type links and solutions.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = 'initial_schema_20261019'
down_revision = None
branch_labels = None
depends_on = None

_BACKUP_LOCATIONS = "'AWS','LOCAL','TELEGRAM'"
_PRIORITIES = "'CRITICAL','HIGH','LOW','MEDIUM'"
_ISSUE_TYPES = (
    "'CSS_ERROR','DATABASE_ERROR','HACKED','INTERNAL_SERVER_ERROR',"
    "'NOT_FOUND_404','NOT_RESPONDING','PERFORMANCE_ISSUE','SSL_ERROR'"
)


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('display_name', sa.String(), nullable=True),
        sa.Column('is_superadmin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'audit_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('actor_user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('action_type', sa.Text(), nullable=False),
        sa.Column('target_type', sa.Text(), nullable=True),
        sa.Column('target_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_audit_logs_actor_user_id_created_at', 'audit_logs', ['actor_user_id', 'created_at'])
    op.create_index('ix_audit_logs_action_type', 'audit_logs', ['action_type'])
    op.create_index('ix_audit_logs_target', 'audit_logs', ['target_type', 'target_id'])

    op.create_table(
        'sites',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name_of_agency', sa.Text(), nullable=False),
        sa.Column('url', sa.Text(), nullable=False),
        sa.Column('is_cpanel', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('cpanel_username', sa.Text(), nullable=True),
        sa.Column('cpanel_password', sa.Text(), nullable=True),
        sa.Column('is_vm', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('vpn_username', sa.Text(), nullable=True),
        sa.Column('vpn_password', sa.Text(), nullable=True),
        sa.Column('vm_ip', sa.Text(), nullable=True),
        sa.Column('vm_username', sa.Text(), nullable=True),
        sa.Column('vm_password', sa.Text(), nullable=True),
        sa.Column('province', sa.Text(), nullable=False),
        sa.Column('district', sa.Text(), nullable=False),
        sa.Column('has_taken_manual_backup', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_manual_backup_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_database_backup_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('backup_location', sa.String(16), nullable=True),
        sa.Column('has_issues', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            f"backup_location is null or backup_location in ({_BACKUP_LOCATIONS})",
            name='ck_sites_backup_location',
        ),
    )
    op.create_index('idx_sites_province_district', 'sites', ['province', 'district'])
    op.create_index('idx_sites_has_issues', 'sites', ['has_issues'])
    op.create_index('idx_sites_created_at', 'sites', ['created_at'])

    op.create_table(
        'issues',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            'site_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('sites.id', ondelete='CASCADE', onupdate='CASCADE'),
            nullable=False,
        ),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('priority', sa.String(16), nullable=False),
        sa.Column('is_solved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(f"priority in ({_PRIORITIES})", name='ck_issues_priority'),
    )
    op.create_index('idx_issues_site_id', 'issues', ['site_id'])
    op.create_index('idx_issues_is_solved', 'issues', ['is_solved'])
    op.create_index('idx_issues_created_at', 'issues', ['created_at'])

    op.create_table(
        'issue_type_links',
        sa.Column(
            'issue_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('issues.id', ondelete='CASCADE'),
            primary_key=True,
        ),
        sa.Column('issue_type', sa.String(32), primary_key=True),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.CheckConstraint(f"issue_type in ({_ISSUE_TYPES})", name='ck_issue_type_links_issue_type'),
    )
    op.create_index('idx_issue_type_links_issue_type', 'issue_type_links', ['issue_type'])

    op.create_table(
        'solutions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            'issue_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('issues.id', ondelete='CASCADE', onupdate='CASCADE'),
            nullable=False,
        ),
        sa.Column('who_solved', sa.Text(), nullable=False),
        sa.Column('how_solved', sa.Text(), nullable=False),
        sa.Column('solved_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('idx_solutions_issue_id', 'solutions', ['issue_id'])
    op.create_index('idx_solutions_solved_at', 'solutions', ['solved_at'])
    op.create_index('idx_solutions_who_solved', 'solutions', ['who_solved'])


def downgrade() -> None:
    op.drop_index('idx_solutions_who_solved', table_name='solutions')
    op.drop_index('idx_solutions_solved_at', table_name='solutions')
    op.drop_index('idx_solutions_issue_id', table_name='solutions')
    op.drop_table('solutions')

    op.drop_index('idx_issue_type_links_issue_type', table_name='issue_type_links')
    op.drop_table('issue_type_links')

    op.drop_index('idx_issues_created_at', table_name='issues')
    op.drop_index('idx_issues_is_solved', table_name='issues')
    op.drop_index('idx_issues_site_id', table_name='issues')
    op.drop_table('issues')

    op.drop_index('idx_sites_created_at', table_name='sites')
    op.drop_index('idx_sites_has_issues', table_name='sites')
    op.drop_index('idx_sites_province_district', table_name='sites')
    op.drop_table('sites')

    op.drop_index('ix_audit_logs_target', table_name='audit_logs')
    op.drop_index('ix_audit_logs_action_type', table_name='audit_logs')
    op.drop_index('ix_audit_logs_actor_user_id_created_at', table_name='audit_logs')
    op.drop_table('audit_logs')

    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
