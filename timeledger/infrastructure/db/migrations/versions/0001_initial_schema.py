"""
Initial schema: user profiles, time entries, timers, invoices, line items,
payments and the invoice number counter.
"""

from alembic import op
import sqlalchemy as sa

# Migration timestamp
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _enum(name, *values):
    return sa.Enum(*values, name=name, native_enum=False)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade():
    """Create all tables."""
    op.create_table(
        'user_profiles',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('role', _enum('user_role', 'employee', 'manager', 'admin'), nullable=False),
        sa.Column('work_schedule', sa.JSON()),
        *_timestamps(),
    )

    op.create_table(
        'time_entries',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('project_id', sa.String(36), nullable=False),
        sa.Column('task_id', sa.String(36)),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('entry_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.DateTime()),
        sa.Column('end_time', sa.DateTime()),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('is_billable', sa.Boolean(), nullable=False),
        sa.Column('hourly_rate', sa.Numeric(10, 2)),
        sa.Column(
            'status',
            _enum('time_entry_status', 'draft', 'submitted', 'approved', 'rejected'),
            nullable=False
        ),
        sa.Column('is_timer_entry', sa.Boolean(), nullable=False),
        sa.Column('submitted_at', sa.DateTime()),
        sa.Column('approved_at', sa.DateTime()),
        sa.Column('approved_by', sa.String(36)),
        sa.Column('rejected_at', sa.DateTime()),
        sa.Column('rejected_by', sa.String(36)),
        sa.Column('rejection_reason', sa.Text()),
        sa.Column('tags', sa.JSON()),
        sa.Column('notes', sa.Text()),
        *_timestamps(),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.CheckConstraint(
            'duration_minutes > 0 AND duration_minutes <= 1440',
            name='time_entry_valid_duration'
        ),
    )
    op.create_index('idx_time_entries_user_date', 'time_entries', ['user_id', 'entry_date'])
    op.create_index('idx_time_entries_project_date', 'time_entries', ['project_id', 'entry_date'])
    op.create_index('idx_time_entries_status_date', 'time_entries', ['status', 'entry_date'])

    op.create_table(
        'timer_sessions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('project_id', sa.String(36), nullable=False),
        sa.Column('task_id', sa.String(36)),
        sa.Column('description', sa.Text()),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('tags', sa.JSON()),
        sa.Column('notes', sa.Text()),
        *_timestamps(),
        sa.UniqueConstraint('user_id', name='unique_timer_per_user'),
    )

    op.create_table(
        'invoices',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('invoice_number', sa.String(50), nullable=False),
        sa.Column('client_id', sa.String(36), nullable=False),
        sa.Column('client_name', sa.String(255), nullable=False),
        sa.Column('project_ids', sa.JSON()),
        sa.Column('time_entry_ids', sa.JSON()),
        sa.Column(
            'status',
            _enum('invoice_status', 'draft', 'sent', 'viewed', 'paid', 'overdue', 'cancelled', 'refunded'),
            nullable=False
        ),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('paid_date', sa.Date()),
        sa.Column('tax_rate', sa.Numeric(5, 2), nullable=False),
        sa.Column('discount_rate', sa.Numeric(5, 2), nullable=False),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False),
        sa.Column('tax_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('discount_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('payment_terms', sa.String(50), nullable=False),
        sa.Column('is_recurring', sa.Boolean(), nullable=False),
        sa.Column('recurring_config', sa.JSON()),
        sa.Column('notes', sa.Text()),
        sa.Column('client_notes', sa.Text()),
        sa.Column('sent_at', sa.DateTime()),
        sa.Column('viewed_at', sa.DateTime()),
        sa.Column('created_by', sa.String(36), nullable=False),
        *_timestamps(),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.CheckConstraint('total_amount >= 0', name='invoice_non_negative_total'),
    )
    op.create_index('idx_invoices_client_issue_date', 'invoices', ['client_id', 'issue_date'])
    op.create_index('idx_invoices_status_due_date', 'invoices', ['status', 'due_date'])
    op.create_index('idx_invoices_number', 'invoices', ['invoice_number'], unique=True)

    op.create_table(
        'invoice_line_items',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column(
            'invoice_id',
            sa.String(36),
            sa.ForeignKey('invoices.id', ondelete='CASCADE'),
            nullable=False
        ),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('type', _enum('line_item_type', 'time', 'expense', 'fixed', 'discount'), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('quantity', sa.Numeric(12, 2), nullable=False),
        sa.Column('rate', sa.Numeric(12, 2), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('taxable', sa.Boolean(), nullable=False),
        sa.Column('time_entry_id', sa.String(36)),
        sa.Column('project_id', sa.String(36)),
        sa.Column('entry_date', sa.Date()),
    )
    op.create_index('idx_invoice_line_items_invoice', 'invoice_line_items', ['invoice_id', 'position'])
    op.create_index('idx_invoice_line_items_time_entry', 'invoice_line_items', ['time_entry_id'])

    op.create_table(
        'payments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('invoice_id', sa.String(36), sa.ForeignKey('invoices.id'), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('payment_method', sa.String(50), nullable=False),
        sa.Column('reference', sa.String(255)),
        sa.Column('notes', sa.Text()),
        sa.Column('external_payment_id', sa.String(255)),
        sa.Column('processor_fee', sa.Numeric(12, 2)),
        sa.Column(
            'status',
            _enum('payment_status', 'pending', 'completed', 'failed', 'refunded'),
            nullable=False
        ),
        sa.Column('recorded_by', sa.String(36), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('invoice_id', 'external_payment_id', name='unique_external_payment_per_invoice'),
        sa.CheckConstraint('amount > 0', name='payment_positive_amount'),
    )
    op.create_index('idx_payments_invoice_date', 'payments', ['invoice_id', 'payment_date'])
    op.create_index('idx_payments_status_date', 'payments', ['status', 'payment_date'])

    op.create_table(
        'invoice_number_sequences',
        sa.Column('period', sa.String(7), primary_key=True),
        sa.Column('last_value', sa.Integer(), nullable=False),
    )


def downgrade():
    """Drop all tables."""
    op.drop_table('invoice_number_sequences')
    op.drop_index('idx_payments_status_date', table_name='payments')
    op.drop_index('idx_payments_invoice_date', table_name='payments')
    op.drop_table('payments')
    op.drop_index('idx_invoice_line_items_time_entry', table_name='invoice_line_items')
    op.drop_index('idx_invoice_line_items_invoice', table_name='invoice_line_items')
    op.drop_table('invoice_line_items')
    op.drop_index('idx_invoices_number', table_name='invoices')
    op.drop_index('idx_invoices_status_due_date', table_name='invoices')
    op.drop_index('idx_invoices_client_issue_date', table_name='invoices')
    op.drop_table('invoices')
    op.drop_table('timer_sessions')
    op.drop_index('idx_time_entries_status_date', table_name='time_entries')
    op.drop_index('idx_time_entries_project_date', table_name='time_entries')
    op.drop_index('idx_time_entries_user_date', table_name='time_entries')
    op.drop_table('time_entries')
    op.drop_table('user_profiles')
