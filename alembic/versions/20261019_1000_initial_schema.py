"""Initial LexGate schema

Revision ID: 20261019_1000_initial_schema
Revises:
Create Date: 2026-10-19 10:00:00.000000

Creates tables for:
- cases / creditors: case intake and retention-notice tracking
- drafts: AI-generated documents under lawyer review
- external_sends: executed sends with content snapshot
- audit_logs: tenant-keyed audit trail

CRITICAL: audit_logs and external_sends are append-only. Triggers reject
UPDATE and DELETE on both.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20261019_1000_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


CASE_TYPES = ('BANKRUPTCY', 'CIVIL_REHAB', 'VOLUNTARY_ARRANGEMENT')
CASE_STATUSES = ('INQUIRY', 'CONSULTATION', 'RETAINED', 'DOCUMENT_COLLECTING', 'DRAFTING', 'FILED', 'REJECTED')
CONFLICT_CHECK_STATUSES = ('PENDING', 'CHECKING', 'APPROVED', 'REJECTED')
DRAFT_TYPES = (
    'RETENTION_NOTICE', 'PETITION', 'STATEMENT', 'CREDITOR_LIST',
    'ASSET_LIST', 'INCOME_EXPENSE', 'RESPONSE', 'COURT_RESPONSE',
)
DRAFT_STATUSES = ('PENDING', 'APPROVED', 'MODIFIED', 'REJECTED')
SEND_TYPES = ('RETENTION_NOTICE', 'PETITION', 'SUPPLEMENTARY', 'COURT_RESPONSE', 'CLIENT_RESPONSE')
RECIPIENT_TYPES = ('CLIENT', 'CREDITOR', 'COURT')
SEND_METHODS = ('EMAIL', 'POSTAL', 'CERTIFIED_MAIL', 'FAX', 'PORTAL')
AUDIT_ACTIONS = (
    'AUTH_LOGIN', 'AUTH_LOGOUT', 'AUTH_MFA_VERIFY', 'AUTH_LOGIN_FAILED',
    'CASE_VIEW', 'CASE_CREATE', 'CASE_UPDATE', 'CASE_CONFLICT_CHECK', 'CASE_RETAIN',
    'DRAFT_VIEW', 'DRAFT_APPROVE', 'DRAFT_MODIFY', 'DRAFT_REJECT',
    'SEND_EXECUTE',
    'DOCUMENT_UPLOAD', 'DOCUMENT_DOWNLOAD', 'DOCUMENT_DELETE',
    'MESSAGE_SEND',
    'USER_CREATE', 'USER_UPDATE', 'USER_DELETE',
    'PERMISSION_DENIED',
)
AUDIT_RESULTS = ('SUCCESS', 'FAILURE', 'DENIED')

APPEND_ONLY_TABLES = ('audit_logs', 'external_sends')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # ===========================================
    # CASES
    # ===========================================
    op.create_table(
        'cases',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tenant_id', sa.Uuid(), nullable=False),
        sa.Column('case_number', sa.String(20), nullable=False),
        sa.Column('case_type', sa.Enum(*CASE_TYPES, name='casetype'), nullable=False),
        sa.Column('status', sa.Enum(*CASE_STATUSES, name='casestatus'), nullable=False),
        sa.Column('client_id', sa.Uuid(), nullable=True),
        sa.Column('client_name', sa.String(255), nullable=False),
        sa.Column('client_email', sa.String(255), nullable=True),
        sa.Column('lawyer_id', sa.Uuid(), nullable=True),
        sa.Column('staff_id', sa.Uuid(), nullable=True),
        sa.Column('total_debt', sa.BigInteger(), nullable=True),
        sa.Column('creditor_count', sa.Integer(), nullable=True),
        sa.Column('conflict_check_status', sa.Enum(*CONFLICT_CHECK_STATUSES, name='conflictcheckstatus'), nullable=False),
        sa.Column('conflict_check_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('conflict_check_by_id', sa.Uuid(), nullable=True),
        sa.Column('conflict_check_reason', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_cases'),
        sa.UniqueConstraint('tenant_id', 'case_number', name='uq_cases_tenant_case_number'),
    )
    op.create_index('ix_cases_tenant_id', 'cases', ['tenant_id'])
    op.create_index('ix_cases_status', 'cases', ['status'])
    op.create_index('ix_cases_client_id', 'cases', ['client_id'])
    op.create_index('ix_cases_lawyer_id', 'cases', ['lawyer_id'])
    op.create_index('ix_cases_staff_id', 'cases', ['staff_id'])

    # ===========================================
    # CREDITORS
    # ===========================================
    op.create_table(
        'creditors',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tenant_id', sa.Uuid(), nullable=False),
        sa.Column('case_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('debt_amount', sa.BigInteger(), nullable=True),
        sa.Column('debt_type', sa.String(50), nullable=True),
        sa.Column('notice_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notice_sent_by_id', sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_creditors'),
        sa.ForeignKeyConstraint(['case_id'], ['cases.id'], name='fk_creditors_case_id_cases', ondelete='CASCADE'),
    )
    op.create_index('ix_creditors_tenant_id', 'creditors', ['tenant_id'])
    op.create_index('ix_creditors_case_id', 'creditors', ['case_id'])
    op.create_index('ix_creditors_name', 'creditors', ['name'])

    # ===========================================
    # DRAFTS
    # ===========================================
    op.create_table(
        'drafts',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tenant_id', sa.Uuid(), nullable=False),
        sa.Column('case_id', sa.Uuid(), nullable=False),
        sa.Column('draft_type', sa.Enum(*DRAFT_TYPES, name='drafttype'), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('flags', sa.JSON(), nullable=False),
        sa.Column('status', sa.Enum(*DRAFT_STATUSES, name='draftstatus'), nullable=False),
        sa.Column('reviewed_by_id', sa.Uuid(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('review_comment', sa.Text(), nullable=True),
        sa.Column('final_content', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_drafts'),
        sa.ForeignKeyConstraint(['case_id'], ['cases.id'], name='fk_drafts_case_id_cases', ondelete='CASCADE'),
        sa.UniqueConstraint('case_id', 'draft_type', 'version', name='uq_drafts_lineage_version'),
    )
    op.create_index('ix_drafts_tenant_id', 'drafts', ['tenant_id'])
    op.create_index('ix_drafts_case_id', 'drafts', ['case_id'])
    op.create_index('ix_drafts_status', 'drafts', ['status'])

    # ===========================================
    # EXTERNAL SENDS (append-only)
    # ===========================================
    op.create_table(
        'external_sends',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tenant_id', sa.Uuid(), nullable=False),
        sa.Column('case_id', sa.Uuid(), nullable=False),
        sa.Column('send_type', sa.Enum(*SEND_TYPES, name='sendtype'), nullable=False),
        sa.Column('recipient_type', sa.Enum(*RECIPIENT_TYPES, name='recipienttype'), nullable=False),
        sa.Column('recipient_name', sa.String(255), nullable=False),
        sa.Column('recipient_address', sa.Text(), nullable=True),
        sa.Column('creditor_id', sa.Uuid(), nullable=True),
        sa.Column('draft_id', sa.Uuid(), nullable=True),
        sa.Column('content_snapshot', sa.Text(), nullable=False),
        sa.Column('send_method', sa.Enum(*SEND_METHODS, name='sendmethod'), nullable=False),
        sa.Column('sent_by_id', sa.Uuid(), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('confirmation_checked', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_external_sends'),
        sa.ForeignKeyConstraint(['case_id'], ['cases.id'], name='fk_external_sends_case_id_cases'),
        sa.ForeignKeyConstraint(['draft_id'], ['drafts.id'], name='fk_external_sends_draft_id_drafts'),
    )
    op.create_index('ix_external_sends_tenant_id', 'external_sends', ['tenant_id'])
    op.create_index('ix_external_sends_case_id', 'external_sends', ['case_id'])
    op.create_index('ix_external_sends_sent_at', 'external_sends', ['sent_at'])

    # ===========================================
    # AUDIT LOGS (append-only)
    # ===========================================
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tenant_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('user_role', sa.String(20), nullable=True),
        sa.Column('action', sa.Enum(*AUDIT_ACTIONS, name='auditaction'), nullable=False),
        sa.Column('resource_type', sa.String(50), nullable=False),
        sa.Column('resource_id', sa.String(100), nullable=True),
        sa.Column('case_id', sa.Uuid(), nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('result', sa.Enum(*AUDIT_RESULTS, name='auditresult'), nullable=False),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_audit_logs'),
    )
    op.create_index('ix_audit_logs_tenant_id', 'audit_logs', ['tenant_id'])
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_case_id', 'audit_logs', ['case_id'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])
    op.create_index('ix_audit_logs_tenant_action_created', 'audit_logs', ['tenant_id', 'action', 'created_at'])

    # ===========================================
    # APPEND-ONLY ENFORCEMENT
    # ===========================================
    op.execute("""
        CREATE OR REPLACE FUNCTION lexgate_reject_modification()
        RETURNS TRIGGER AS $$
        BEGIN
            RAISE EXCEPTION '% is append-only: % rejected', TG_TABLE_NAME, TG_OP;
        END;
        $$ LANGUAGE plpgsql;
    """)
    for table in APPEND_ONLY_TABLES:
        op.execute(f"""
            CREATE TRIGGER {table}_append_only
            BEFORE UPDATE OR DELETE ON {table}
            FOR EACH ROW EXECUTE FUNCTION lexgate_reject_modification();
        """)


def downgrade() -> None:
    for table in APPEND_ONLY_TABLES:
        op.execute(f"DROP TRIGGER IF EXISTS {table}_append_only ON {table}")
    op.execute("DROP FUNCTION IF EXISTS lexgate_reject_modification()")

    op.drop_table('audit_logs')
    op.drop_table('external_sends')
    op.drop_table('drafts')
    op.drop_table('creditors')
    op.drop_table('cases')

    for enum_name in (
        'auditresult', 'auditaction', 'sendmethod', 'recipienttype', 'sendtype',
        'draftstatus', 'drafttype', 'conflictcheckstatus', 'casestatus', 'casetype',
    ):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
