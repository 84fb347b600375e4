"""
Domain models for the time ledger.
This module exports all domain entities and value objects.
"""

# Base classes
from .base import (
    BaseEntity,
    AggregateRoot,
    DomainEvent,
    DomainException,
    ValidationError,
    BusinessRuleViolation,
    InvalidStateError,
    InvariantViolation,
    AuthorizationError,
    EntityNotFoundError,
    DuplicateEntityError,
    StoreError,
    ValueObject,
    utcnow
)

# Value Objects
from .value_objects import DateRange, round_money, to_decimal

# Domain entities
from .user import ActingUser, UserRole, DaySchedule, WorkSchedule
from .time_entry import (
    TimeEntry,
    TimeEntryStatus,
    TimeEntrySubmittedEvent,
    TimeEntryApprovedEvent,
    TimeEntryRejectedEvent
)
from .timer_session import TimerSession
from .invoice import (
    Invoice,
    InvoiceStatus,
    InvoiceLineItem,
    InvoicePatch,
    LineItemType,
    RecurringFrequency,
    RecurringInvoiceConfig,
    Payment,
    PaymentStatus,
    calculate_totals,
    can_transition
)

__all__ = [
    # Base
    "BaseEntity",
    "AggregateRoot",
    "DomainEvent",
    "DomainException",
    "ValidationError",
    "BusinessRuleViolation",
    "InvalidStateError",
    "InvariantViolation",
    "AuthorizationError",
    "EntityNotFoundError",
    "DuplicateEntityError",
    "StoreError",
    "ValueObject",
    "utcnow",

    # Value Objects
    "DateRange",
    "round_money",
    "to_decimal",

    # Users
    "ActingUser",
    "UserRole",
    "DaySchedule",
    "WorkSchedule",

    # Time tracking
    "TimeEntry",
    "TimeEntryStatus",
    "TimeEntrySubmittedEvent",
    "TimeEntryApprovedEvent",
    "TimeEntryRejectedEvent",
    "TimerSession",

    # Billing
    "Invoice",
    "InvoiceStatus",
    "InvoiceLineItem",
    "InvoicePatch",
    "LineItemType",
    "RecurringFrequency",
    "RecurringInvoiceConfig",
    "Payment",
    "PaymentStatus",
    "calculate_totals",
    "can_transition",
]
