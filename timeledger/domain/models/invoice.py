"""
Invoice domain model.
Represents invoices, their line items, recurrence settings and payments.
"""

from dataclasses import dataclass, fields
from datetime import datetime, date
from typing import Optional, List, Dict, Any, FrozenSet, Tuple
from enum import Enum
from decimal import Decimal

from timeledger.domain.models.base import (
    AggregateRoot,
    BaseEntity,
    ValidationError,
    InvalidStateError,
    InvariantViolation,
    DomainEvent,
    utcnow
)
from timeledger.domain.models.value_objects import round_money, to_decimal


ZERO = Decimal("0.00")


class InvoiceStatus(str, Enum):
    """Invoice status."""
    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


INVOICE_STATUS_TRANSITIONS: Dict[InvoiceStatus, FrozenSet[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: frozenset({InvoiceStatus.SENT, InvoiceStatus.CANCELLED}),
    InvoiceStatus.SENT: frozenset({
        InvoiceStatus.VIEWED, InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED
    }),
    InvoiceStatus.VIEWED: frozenset({InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED}),
    InvoiceStatus.PAID: frozenset({InvoiceStatus.REFUNDED}),
    InvoiceStatus.OVERDUE: frozenset({InvoiceStatus.PAID, InvoiceStatus.CANCELLED}),
    InvoiceStatus.CANCELLED: frozenset(),
    InvoiceStatus.REFUNDED: frozenset(),
}

# Statuses in which content (line items, rates, dates) is frozen
LOCKED_STATUSES = frozenset({InvoiceStatus.PAID, InvoiceStatus.CANCELLED, InvoiceStatus.REFUNDED})

# Statuses that no longer accept payments
UNPAYABLE_STATUSES = frozenset({InvoiceStatus.CANCELLED, InvoiceStatus.REFUNDED})


def can_transition(current: InvoiceStatus, target: InvoiceStatus) -> bool:
    """Same-status moves are always allowed; anything else must be in the table."""
    current, target = InvoiceStatus(current), InvoiceStatus(target)
    return current == target or target in INVOICE_STATUS_TRANSITIONS[current]


class LineItemType(str, Enum):
    """Kind of invoice line."""
    TIME = "time"
    EXPENSE = "expense"
    FIXED = "fixed"
    DISCOUNT = "discount"


class RecurringFrequency(str, Enum):
    """Recurring invoice frequency."""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class PaymentStatus(str, Enum):
    """Payment status. Recorded payments are always completed."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


# Domain Events

class InvoiceCreatedEvent(DomainEvent):
    """Event raised when an invoice is created."""

    def __init__(self, invoice_id: str, invoice_number: str, client_id: str, total_amount: Decimal):
        super().__init__()
        self.invoice_id = invoice_id
        self.invoice_number = invoice_number
        self.client_id = client_id
        self.total_amount = str(total_amount)

    @property
    def event_name(self) -> str:
        return "invoice.created"


class InvoiceStatusChangedEvent(DomainEvent):
    """Event raised when an invoice moves to another status."""

    def __init__(self, invoice_id: str, old_status: str, new_status: str):
        super().__init__()
        self.invoice_id = invoice_id
        self.old_status = old_status
        self.new_status = new_status

    @property
    def event_name(self) -> str:
        return "invoice.status_changed"


class InvoicePaidEvent(DomainEvent):
    """Event raised when an invoice is fully paid."""

    def __init__(self, invoice_id: str, paid_date: date, total_amount: Decimal):
        super().__init__()
        self.invoice_id = invoice_id
        self.paid_date = paid_date.isoformat()
        self.total_amount = str(total_amount)

    @property
    def event_name(self) -> str:
        return "invoice.paid"


@dataclass
class InvoiceLineItem:
    """Individual line item in an invoice."""

    description: str
    quantity: Decimal
    rate: Decimal
    type: LineItemType = LineItemType.FIXED
    amount: Optional[Decimal] = None
    taxable: bool = True

    # Time tracking reference
    time_entry_id: Optional[str] = None
    project_id: Optional[str] = None
    entry_date: Optional[date] = None

    id: Optional[str] = None

    def __post_init__(self):
        """Normalize numbers and derive the amount when not given."""
        self.type = LineItemType(self.type)
        self.quantity = to_decimal(self.quantity)
        self.rate = to_decimal(self.rate)
        if self.amount is None:
            self.amount = round_money(self.quantity * self.rate)
        else:
            self.amount = round_money(self.amount)

    def validate(self) -> List[Dict[str, Any]]:
        """Return the violations of this line, if any."""
        errors = []
        if not self.description or not self.description.strip():
            errors.append({"field": "description", "message": "Line item description is required"})
        if self.quantity < 0:
            errors.append({"field": "quantity", "message": "Quantity cannot be negative"})
        if self.type != LineItemType.DISCOUNT and self.rate < 0:
            errors.append({"field": "rate", "message": "Rate cannot be negative"})
        return errors

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "type": self.type.value,
            "description": self.description,
            "quantity": str(self.quantity),
            "rate": str(self.rate),
            "amount": str(self.amount),
            "taxable": self.taxable,
            "time_entry_id": self.time_entry_id,
            "project_id": self.project_id,
            "date": self.entry_date.isoformat() if self.entry_date else None,
        }


@dataclass
class InvoiceTotals:
    """Derived monetary totals of an invoice."""

    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal


def calculate_totals(
    line_items: List[InvoiceLineItem],
    tax_rate: Decimal = ZERO,
    discount_rate: Decimal = ZERO
) -> InvoiceTotals:
    """
    Compute invoice totals.

    discount = subtotal * discount_rate / 100
    tax = (taxable subtotal - discount) * tax_rate / 100
    total = subtotal - discount + tax

    Intermediate values are kept exact and each reported figure is rounded
    to cents, so total == round(subtotal - discount + tax).
    """
    tax_rate = to_decimal(tax_rate or 0)
    discount_rate = to_decimal(discount_rate or 0)

    subtotal = sum((item.amount for item in line_items), ZERO)
    discount = subtotal * discount_rate / 100
    taxable = sum((item.amount for item in line_items if item.taxable), ZERO)
    tax = (taxable - discount) * tax_rate / 100

    return InvoiceTotals(
        subtotal=round_money(subtotal),
        discount_amount=round_money(discount),
        tax_amount=round_money(tax),
        total_amount=round_money(round_money(subtotal) - round_money(discount) + round_money(tax)),
    )


@dataclass
class RecurringInvoiceConfig:
    """Recurrence settings. The next date is computed, never scheduled."""

    frequency: RecurringFrequency
    start_date: date
    interval: int = 1
    end_date: Optional[date] = None
    max_invoices: Optional[int] = None
    invoices_generated: int = 0
    next_invoice_date: Optional[date] = None
    is_active: bool = True
    auto_send: bool = False
    generate_days_before: int = 0

    def __post_init__(self):
        self.frequency = RecurringFrequency(self.frequency)

    def validate(self) -> List[Dict[str, Any]]:
        errors = []
        if self.interval < 1:
            errors.append({"field": "recurring_config.interval", "message": "Interval must be at least 1"})
        if self.end_date and self.end_date < self.start_date:
            errors.append({
                "field": "recurring_config.end_date",
                "message": "Recurring end date cannot be before start date"
            })
        if self.max_invoices is not None and self.max_invoices < 1:
            errors.append({"field": "recurring_config.max_invoices", "message": "Max invoices must be at least 1"})
        return errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frequency": self.frequency.value,
            "interval": self.interval,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "max_invoices": self.max_invoices,
            "invoices_generated": self.invoices_generated,
            "next_invoice_date": self.next_invoice_date.isoformat() if self.next_invoice_date else None,
            "is_active": self.is_active,
            "auto_send": self.auto_send,
            "generate_days_before": self.generate_days_before,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecurringInvoiceConfig":
        def _date(value):
            return date.fromisoformat(value) if value else None

        return cls(
            frequency=data["frequency"],
            start_date=_date(data["start_date"]),
            interval=data.get("interval", 1),
            end_date=_date(data.get("end_date")),
            max_invoices=data.get("max_invoices"),
            invoices_generated=data.get("invoices_generated", 0),
            next_invoice_date=_date(data.get("next_invoice_date")),
            is_active=data.get("is_active", True),
            auto_send=data.get("auto_send", False),
            generate_days_before=data.get("generate_days_before", 0),
        )


@dataclass
class InvoicePatch:
    """
    Explicit partial update of an invoice.

    ``None`` means "leave unchanged". Optional text fields are emptied by
    naming them in ``cleared``. Which fields force a totals recomputation is
    declared in RECALCULATING_FIELDS.
    """

    due_date: Optional[date] = None
    payment_terms: Optional[str] = None
    tax_rate: Optional[Decimal] = None
    discount_rate: Optional[Decimal] = None
    line_items: Optional[List[InvoiceLineItem]] = None
    notes: Optional[str] = None
    client_notes: Optional[str] = None
    cleared: Tuple[str, ...] = ()

    RECALCULATING_FIELDS = frozenset({"line_items", "tax_rate", "discount_rate"})
    CLEARABLE_FIELDS = frozenset({"notes", "client_notes"})

    def provided_fields(self) -> List[str]:
        provided = [
            f.name for f in fields(self)
            if f.name != "cleared" and getattr(self, f.name) is not None
        ]
        return provided + [name for name in self.cleared if name not in provided]

    def requires_recalculation(self) -> bool:
        return bool(self.RECALCULATING_FIELDS.intersection(self.provided_fields()))


class Invoice(AggregateRoot):
    """
    Invoice aggregate.
    Created in ``draft``; status moves only along INVOICE_STATUS_TRANSITIONS,
    except that a payment settling the balance marks it ``paid``.
    """

    def __init__(
        self,
        client_id: str,
        created_by: str,
        issue_date: date,
        due_date: date,
        invoice_number: Optional[str] = None,
        client_name: str = "",
        project_ids: Optional[List[str]] = None,
        time_entry_ids: Optional[List[str]] = None,
        status: InvoiceStatus = InvoiceStatus.DRAFT,
        paid_date: Optional[date] = None,
        line_items: Optional[List[InvoiceLineItem]] = None,
        tax_rate: Decimal = ZERO,
        discount_rate: Decimal = ZERO,
        subtotal: Decimal = ZERO,
        tax_amount: Decimal = ZERO,
        discount_amount: Decimal = ZERO,
        total_amount: Decimal = ZERO,
        currency: str = "USD",
        payment_terms: str = "Net 30",
        is_recurring: bool = False,
        recurring_config: Optional[RecurringInvoiceConfig] = None,
        notes: Optional[str] = None,
        client_notes: Optional[str] = None,
        sent_at: Optional[datetime] = None,
        viewed_at: Optional[datetime] = None,
        **kwargs
    ):
        super().__init__(**kwargs)

        self.invoice_number = invoice_number
        self.client_id = client_id
        self.client_name = client_name
        self.project_ids = list(project_ids or [])
        self.time_entry_ids = list(time_entry_ids or [])
        self.status = InvoiceStatus(status)

        self.issue_date = issue_date
        self.due_date = due_date
        self.paid_date = paid_date

        self.line_items = list(line_items or [])
        self.tax_rate = to_decimal(tax_rate or 0)
        self.discount_rate = to_decimal(discount_rate or 0)
        self.subtotal = to_decimal(subtotal)
        self.tax_amount = to_decimal(tax_amount)
        self.discount_amount = to_decimal(discount_amount)
        self.total_amount = to_decimal(total_amount)
        self.currency = currency

        self.payment_terms = payment_terms
        self.is_recurring = is_recurring
        self.recurring_config = recurring_config

        self.notes = notes
        self.client_notes = client_notes
        self.sent_at = sent_at
        self.viewed_at = viewed_at
        self.created_by = created_by

    def validate(self) -> None:
        errors: List[Dict[str, Any]] = []
        if not self.client_id:
            errors.append({"field": "client_id", "message": "Client ID is required"})
        if self.due_date < self.issue_date:
            errors.append({"field": "due_date", "message": "Due date cannot be before issue date"})
        if not (0 <= self.tax_rate <= 100):
            errors.append({"field": "tax_rate", "message": "Tax rate must be between 0 and 100"})
        if not (0 <= self.discount_rate <= 100):
            errors.append({"field": "discount_rate", "message": "Discount rate must be between 0 and 100"})
        for index, item in enumerate(self.line_items):
            for error in item.validate():
                errors.append({"field": f"line_items[{index}].{error['field']}", "message": error["message"]})
        if self.is_recurring and not self.recurring_config:
            errors.append({"field": "recurring_config", "message": "Recurring invoices need a recurring config"})
        if self.recurring_config:
            errors.extend(self.recurring_config.validate())
        if self.total_amount < 0:
            errors.append({"field": "total_amount", "message": "Invoice total cannot be negative"})

        if errors:
            raise ValidationError.from_errors(errors)

    @property
    def is_locked(self) -> bool:
        return self.status in LOCKED_STATUSES

    def recalculate_totals(self) -> None:
        """Recalculate subtotal, discount, tax and total from the line items."""
        totals = calculate_totals(self.line_items, self.tax_rate, self.discount_rate)
        self.subtotal = totals.subtotal
        self.discount_amount = totals.discount_amount
        self.tax_amount = totals.tax_amount
        self.total_amount = totals.total_amount

    def ensure_modifiable(self) -> None:
        if self.is_locked:
            raise InvalidStateError(
                f"{self.status.value.capitalize()} invoices cannot be modified",
                "INVOICE_CANNOT_BE_MODIFIED"
            )

    def apply_patch(self, patch: InvoicePatch) -> List[str]:
        """Apply an explicit patch and return the names of the changed fields."""
        provided = patch.provided_fields()
        if not provided:
            raise ValidationError("No valid updates provided", code="NO_VALID_UPDATES")
        not_clearable = sorted(set(patch.cleared) - patch.CLEARABLE_FIELDS)
        if not_clearable:
            raise ValidationError(
                f"Fields cannot be cleared: {', '.join(not_clearable)}",
                field=not_clearable[0],
                code="FIELD_NOT_CLEARABLE"
            )
        self.ensure_modifiable()

        for name in provided:
            value = getattr(patch, name)
            if name in ("tax_rate", "discount_rate"):
                value = to_decimal(value)
            if name == "line_items":
                value = list(value)
            setattr(self, name, value)

        if patch.requires_recalculation():
            self.recalculate_totals()

        self.validate()
        self.mark_as_updated()
        return provided

    def transition_to(self, new_status: InvoiceStatus, at: Optional[datetime] = None) -> bool:
        """
        Move to ``new_status`` following the transition table.
        Returns False for a same-status no-op.
        """
        new_status = InvoiceStatus(new_status)
        if new_status == self.status:
            return False
        if not can_transition(self.status, new_status):
            raise InvariantViolation(
                f"Cannot transition from {self.status.value} to {new_status.value}",
                "INVALID_STATUS_TRANSITION"
            )

        at = at or utcnow()
        old_status = self.status
        self.status = new_status
        if new_status == InvoiceStatus.SENT and not self.sent_at:
            self.sent_at = at
        elif new_status == InvoiceStatus.VIEWED and not self.viewed_at:
            self.viewed_at = at
        elif new_status == InvoiceStatus.PAID and not self.paid_date:
            self.paid_date = at.date()

        self.mark_as_updated()
        self.add_event(InvoiceStatusChangedEvent(self.id, old_status.value, new_status.value))
        return True

    def ensure_payable(self) -> None:
        if self.status in UNPAYABLE_STATUSES:
            raise InvalidStateError(
                f"{self.status.value.capitalize()} invoices cannot accept payments",
                "INVOICE_NOT_PAYABLE"
            )

    def register_payment(self, amount: Decimal, payment_date: date, already_paid: Decimal) -> bool:
        """
        Check a new payment against the outstanding balance.

        Returns True when the payment settles the invoice, in which case the
        invoice is marked paid on ``payment_date``.
        """
        self.ensure_payable()
        amount = round_money(amount)
        if amount <= 0:
            raise ValidationError("Payment amount must be greater than 0", "amount")

        new_total = round_money(already_paid) + amount
        if new_total > self.total_amount:
            raise InvariantViolation(
                f"Payment of {amount} exceeds the outstanding balance of "
                f"{self.total_amount - round_money(already_paid)}",
                "PAYMENT_EXCEEDS_INVOICE"
            )

        if new_total < self.total_amount:
            return False

        old_status = self.status
        self.status = InvoiceStatus.PAID
        self.paid_date = payment_date
        self.mark_as_updated()
        if old_status != InvoiceStatus.PAID:
            self.add_event(InvoiceStatusChangedEvent(self.id, old_status.value, InvoiceStatus.PAID.value))
            self.add_event(InvoicePaidEvent(self.id, payment_date, self.total_amount))
        return True

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "client_id": self.client_id,
            "client_name": self.client_name,
            "project_ids": list(self.project_ids),
            "time_entry_ids": list(self.time_entry_ids),
            "status": self.status.value,
            "issue_date": self.issue_date.isoformat(),
            "due_date": self.due_date.isoformat(),
            "paid_date": self.paid_date.isoformat() if self.paid_date else None,
            "line_items": [item.to_dict() for item in self.line_items],
            "tax_rate": str(self.tax_rate),
            "discount_rate": str(self.discount_rate),
            "subtotal": str(self.subtotal),
            "tax_amount": str(self.tax_amount),
            "discount_amount": str(self.discount_amount),
            "total_amount": str(self.total_amount),
            "currency": self.currency,
            "payment_terms": self.payment_terms,
            "is_recurring": self.is_recurring,
            "recurring_config": self.recurring_config.to_dict() if self.recurring_config else None,
            "notes": self.notes,
            "client_notes": self.client_notes,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "viewed_at": self.viewed_at.isoformat() if self.viewed_at else None,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


class Payment(BaseEntity):
    """
    Payment recorded against an invoice.
    Append-only: never mutated or deleted once recorded.
    """

    def __init__(
        self,
        invoice_id: str,
        amount: Decimal,
        payment_date: date,
        payment_method: str,
        recorded_by: str,
        currency: str = "USD",
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        external_payment_id: Optional[str] = None,
        processor_fee: Optional[Decimal] = None,
        status: PaymentStatus = PaymentStatus.COMPLETED,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.invoice_id = invoice_id
        self.amount = round_money(amount)
        self.currency = currency
        self.payment_date = payment_date
        self.payment_method = payment_method
        self.reference = reference
        self.notes = notes
        self.external_payment_id = external_payment_id
        self.processor_fee = round_money(processor_fee) if processor_fee is not None else None
        self.status = PaymentStatus(status)
        self.recorded_by = recorded_by

    def validate(self) -> None:
        errors = []
        if self.amount <= 0:
            errors.append({"field": "amount", "message": "Payment amount must be greater than 0"})
        if not self.payment_method or not self.payment_method.strip():
            errors.append({"field": "payment_method", "message": "Payment method is required"})
        if self.processor_fee is not None and self.processor_fee < 0:
            errors.append({"field": "processor_fee", "message": "Processor fee cannot be negative"})
        if errors:
            raise ValidationError.from_errors(errors)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "amount": str(self.amount),
            "currency": self.currency,
            "payment_date": self.payment_date.isoformat(),
            "payment_method": self.payment_method,
            "reference": self.reference,
            "notes": self.notes,
            "external_payment_id": self.external_payment_id,
            "processor_fee": str(self.processor_fee) if self.processor_fee is not None else None,
            "status": self.status.value,
            "recorded_by": self.recorded_by,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
