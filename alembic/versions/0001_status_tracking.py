"""Status tracking baseline: entities, status event log, email delivery.

Revision ID: 0001_status_tracking
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_status_tracking'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def upgrade() -> None:
    # ==========================================================================
    # quote_requests / contact_submissions
    # ==========================================================================
    op.create_table(
        'quote_requests',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('service_type', sa.String(50), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(30), nullable=True),
        sa.Column('passengers', sa.Integer(), nullable=False),
        sa.Column('origin', sa.String(255), nullable=False),
        sa.Column('destination', sa.String(255), nullable=False),
        sa.Column('departure_date', sa.Date(), nullable=False),
        sa.Column('departure_time', sa.String(10), nullable=True),
        sa.Column('additional_info', sa.Text(), nullable=True),
        sa.Column('locale', sa.String(10), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_quote_requests_created', 'quote_requests', ['created_at'])

    op.create_table(
        'contact_submissions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(30), nullable=True),
        sa.Column('subject', sa.String(255), nullable=True),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('contact_via_whatsapp', sa.Boolean(), nullable=False),
        sa.Column('locale', sa.String(10), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_contact_submissions_created', 'contact_submissions', ['created_at'])

    # ==========================================================================
    # status_change_events (append-only) + entity_status_summaries
    # ==========================================================================
    op.create_table(
        'status_change_events',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('stream', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('from_status', sa.String(50), nullable=False),
        sa.Column('to_status', sa.String(50), nullable=False),
        sa.Column('actor', sa.String(255), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('ip_address', sa.String(64), nullable=True),
        sa.Column('user_agent', sa.String(500), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('stream', 'entity_id', 'sequence', name='uq_status_events_sequence'),
    )
    op.create_index(
        'idx_status_events_entity',
        'status_change_events',
        ['stream', 'entity_id', 'occurred_at'],
    )

    op.create_table(
        'entity_status_summaries',
        sa.Column('stream', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False),
        sa.Column('status', sa.String(50), nullable=False),
        sa.Column('last_sequence', sa.Integer(), nullable=False),
        sa.Column('latest_occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('stream', 'entity_id'),
    )
    op.create_index(
        'idx_status_summaries_stream_status',
        'entity_status_summaries',
        ['stream', 'status'],
    )

    # ==========================================================================
    # email_deliveries / webhook_event_logs
    # ==========================================================================
    op.create_table(
        'email_deliveries',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('resend_message_id', sa.String(255), nullable=False),
        sa.Column('recipient_email', sa.String(255), nullable=False),
        sa.Column('subject', sa.String(255), nullable=False),
        sa.Column('email_type', sa.String(50), nullable=False),
        sa.Column('quote_request_id', sa.Uuid(), nullable=True),
        sa.Column('contact_submission_id', sa.Uuid(), nullable=True),
        sa.Column('status', sa.String(20), server_default=sa.text("'pending'"), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('bounced_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('failed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('complained_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('opened_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('open_count', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('clicked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('click_count', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('webhook_data', JSON_TYPE, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['quote_request_id'], ['quote_requests.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['contact_submission_id'], ['contact_submissions.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('uq_email_deliveries_resend_id', 'email_deliveries', ['resend_message_id'], unique=True)
    op.create_index('idx_email_deliveries_status_created', 'email_deliveries', ['status', 'created_at'])

    op.create_table(
        'webhook_event_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('provider', sa.String(30), nullable=False),
        sa.Column('event_key', sa.String(255), nullable=True),
        sa.Column('event_type', sa.String(50), nullable=False),
        sa.Column('email_id', sa.String(255), nullable=True),
        sa.Column('delivery_record_id', sa.Uuid(), nullable=True),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('processed', sa.Boolean(), nullable=False),
        sa.Column('duplicate', sa.Boolean(), nullable=False),
        sa.Column('new_status', sa.String(20), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('payload', JSON_TYPE, nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_webhook_logs_provider_received', 'webhook_event_logs', ['provider', 'received_at'])
    op.create_index('idx_webhook_logs_event_key', 'webhook_event_logs', ['provider', 'event_key'])


def downgrade() -> None:
    op.drop_index('idx_webhook_logs_event_key', table_name='webhook_event_logs')
    op.drop_index('idx_webhook_logs_provider_received', table_name='webhook_event_logs')
    op.drop_table('webhook_event_logs')
    op.drop_index('idx_email_deliveries_status_created', table_name='email_deliveries')
    op.drop_index('uq_email_deliveries_resend_id', table_name='email_deliveries')
    op.drop_table('email_deliveries')
    op.drop_index('idx_status_summaries_stream_status', table_name='entity_status_summaries')
    op.drop_table('entity_status_summaries')
    op.drop_index('idx_status_events_entity', table_name='status_change_events')
    op.drop_table('status_change_events')
    op.drop_index('idx_contact_submissions_created', table_name='contact_submissions')
    op.drop_table('contact_submissions')
    op.drop_index('idx_quote_requests_created', table_name='quote_requests')
    op.drop_table('quote_requests')
