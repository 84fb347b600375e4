"""
SQLAlchemy models for the database.
Maps domain entities to database tables.
"""

from sqlalchemy import (
    Column, Integer, String, DateTime, Text, Boolean,
    Numeric, Date, ForeignKey, JSON, Enum as SQLEnum,
    Index, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship

from timeledger.domain.models.base import utcnow
from timeledger.domain.models.time_entry import TimeEntryStatus
from timeledger.domain.models.invoice import InvoiceStatus, LineItemType, PaymentStatus
from timeledger.domain.models.user import UserRole

from .database import Base


def _enum(enum_class, name: str) -> SQLEnum:
    """Store enum values rather than member names."""
    return SQLEnum(
        enum_class,
        name=name,
        values_callable=lambda members: [member.value for member in members],
        native_enum=False,
        validate_strings=True,
    )


class UserProfileModel(Base):
    """User profile table: role and work schedule of an authenticated user"""
    __tablename__ = 'user_profiles'

    id = Column(String(36), primary_key=True)
    role = Column(_enum(UserRole, 'user_role'), nullable=False, default=UserRole.EMPLOYEE)

    # Per-weekday {target_hours, start, end}
    work_schedule = Column(JSON)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class TimeEntryModel(Base):
    """Time entry table"""
    __tablename__ = 'time_entries'

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), nullable=False)
    project_id = Column(String(36), nullable=False)
    task_id = Column(String(36))

    description = Column(Text, nullable=False, default="")
    entry_date = Column(Date, nullable=False)
    start_time = Column(DateTime)
    end_time = Column(DateTime)
    duration_minutes = Column(Integer, nullable=False)

    # Billing
    is_billable = Column(Boolean, nullable=False, default=True)
    hourly_rate = Column(Numeric(10, 2))

    status = Column(_enum(TimeEntryStatus, 'time_entry_status'), nullable=False, default=TimeEntryStatus.DRAFT)
    is_timer_entry = Column(Boolean, nullable=False, default=False)

    # Approval workflow
    submitted_at = Column(DateTime)
    approved_at = Column(DateTime)
    approved_by = Column(String(36))
    rejected_at = Column(DateTime)
    rejected_by = Column(String(36))
    rejection_reason = Column(Text)

    # Metadata
    tags = Column(JSON)
    notes = Column(Text)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
    version = Column(Integer, nullable=False, default=1)

    # Constraints and indexes
    __table_args__ = (
        Index('idx_time_entries_user_date', 'user_id', 'entry_date'),
        Index('idx_time_entries_project_date', 'project_id', 'entry_date'),
        Index('idx_time_entries_status_date', 'status', 'entry_date'),
        CheckConstraint(
            'duration_minutes > 0 AND duration_minutes <= 1440',
            name='time_entry_valid_duration'
        ),
    )

    # UPDATEs carry "WHERE version = <loaded>" and bump the counter
    __mapper_args__ = {"version_id_col": version}


class TimerSessionModel(Base):
    """Running timer table; one row per user"""
    __tablename__ = 'timer_sessions'

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), nullable=False)
    project_id = Column(String(36), nullable=False)
    task_id = Column(String(36))
    description = Column(Text)
    start_time = Column(DateTime, nullable=False)
    tags = Column(JSON)
    notes = Column(Text)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint('user_id', name='unique_timer_per_user'),
    )


class InvoiceModel(Base):
    """Invoice table"""
    __tablename__ = 'invoices'

    id = Column(String(36), primary_key=True)
    invoice_number = Column(String(50), nullable=False)
    client_id = Column(String(36), nullable=False)
    client_name = Column(String(255), nullable=False, default="")
    project_ids = Column(JSON)
    time_entry_ids = Column(JSON)

    status = Column(_enum(InvoiceStatus, 'invoice_status'), nullable=False, default=InvoiceStatus.DRAFT)

    # Dates
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    paid_date = Column(Date)

    # Amounts
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0)
    discount_rate = Column(Numeric(5, 2), nullable=False, default=0)
    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default='USD')
    payment_terms = Column(String(50), nullable=False, default='Net 30')

    # Recurrence
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurring_config = Column(JSON)

    # Content
    notes = Column(Text)
    client_notes = Column(Text)

    # Tracking
    sent_at = Column(DateTime)
    viewed_at = Column(DateTime)
    created_by = Column(String(36), nullable=False)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
    version = Column(Integer, nullable=False, default=1)

    # Relationships
    line_items = relationship(
        "InvoiceLineItemModel",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLineItemModel.position"
    )
    payments = relationship("PaymentModel", back_populates="invoice")

    __table_args__ = (
        Index('idx_invoices_client_issue_date', 'client_id', 'issue_date'),
        Index('idx_invoices_status_due_date', 'status', 'due_date'),
        Index('idx_invoices_number', 'invoice_number', unique=True),
        CheckConstraint('total_amount >= 0', name='invoice_non_negative_total'),
    )

    __mapper_args__ = {"version_id_col": version}


class InvoiceLineItemModel(Base):
    """Invoice line item table"""
    __tablename__ = 'invoice_line_items'

    id = Column(String(36), primary_key=True)
    invoice_id = Column(String(36), ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    type = Column(_enum(LineItemType, 'line_item_type'), nullable=False, default=LineItemType.FIXED)
    description = Column(Text, nullable=False)
    quantity = Column(Numeric(12, 2), nullable=False)
    rate = Column(Numeric(12, 2), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    taxable = Column(Boolean, nullable=False, default=True)

    # Time tracking reference
    time_entry_id = Column(String(36))
    project_id = Column(String(36))
    entry_date = Column(Date)

    # Relationships
    invoice = relationship("InvoiceModel", back_populates="line_items")

    __table_args__ = (
        Index('idx_invoice_line_items_invoice', 'invoice_id', 'position'),
        Index('idx_invoice_line_items_time_entry', 'time_entry_id'),
    )


class PaymentModel(Base):
    """Payment table; rows are never updated or deleted"""
    __tablename__ = 'payments'

    id = Column(String(36), primary_key=True)
    invoice_id = Column(String(36), ForeignKey('invoices.id'), nullable=False)

    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default='USD')
    payment_date = Column(Date, nullable=False)
    payment_method = Column(String(50), nullable=False)
    reference = Column(String(255))
    notes = Column(Text)
    external_payment_id = Column(String(255))
    processor_fee = Column(Numeric(12, 2))
    status = Column(_enum(PaymentStatus, 'payment_status'), nullable=False, default=PaymentStatus.COMPLETED)
    recorded_by = Column(String(36), nullable=False)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    invoice = relationship("InvoiceModel", back_populates="payments")

    __table_args__ = (
        Index('idx_payments_invoice_date', 'invoice_id', 'payment_date'),
        Index('idx_payments_status_date', 'status', 'payment_date'),
        UniqueConstraint('invoice_id', 'external_payment_id', name='unique_external_payment_per_invoice'),
        CheckConstraint('amount > 0', name='payment_positive_amount'),
    )


class InvoiceNumberSequenceModel(Base):
    """Per-month invoice number counter"""
    __tablename__ = 'invoice_number_sequences'

    period = Column(String(7), primary_key=True)
    last_value = Column(Integer, nullable=False, default=0)
