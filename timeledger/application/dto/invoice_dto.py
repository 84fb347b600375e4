"""
Invoice DTOs for the application layer.
Data Transfer Objects for invoice and payment operations.
"""

from typing import Optional, List, Dict, Any
from datetime import datetime, date
from decimal import Decimal
from pydantic import Field, field_validator, model_validator

from timeledger.domain.models.invoice import (
    Invoice,
    InvoiceLineItem,
    InvoicePatch,
    InvoiceStatus,
    LineItemType,
    Payment,
    PaymentStatus,
    RecurringFrequency,
    RecurringInvoiceConfig
)
from .base_dto import BaseDTO, RequestDTO, ResponseDTO, ListRequestDTO


# Nested DTOs
class LineItemDTO(BaseDTO):
    """DTO for invoice line items."""

    type: LineItemType = Field(default=LineItemType.FIXED, description="Line item type")
    description: str = Field(min_length=1, max_length=500, description="Item description")
    quantity: Decimal = Field(ge=0, description="Quantity")
    rate: Decimal = Field(description="Rate per unit")
    taxable: bool = Field(default=True, description="Whether tax applies to this item")
    time_entry_id: Optional[str] = Field(default=None, description="Related time entry")
    project_id: Optional[str] = Field(default=None, description="Related project")
    entry_date: Optional[date] = Field(default=None, alias="date", description="Date of the work")

    def to_domain(self) -> InvoiceLineItem:
        return InvoiceLineItem(
            type=LineItemType(self.type),
            description=self.description,
            quantity=self.quantity,
            rate=self.rate,
            taxable=self.taxable,
            time_entry_id=self.time_entry_id,
            project_id=self.project_id,
            entry_date=self.entry_date
        )


class RecurringConfigDTO(BaseDTO):
    """DTO for recurring invoice configuration."""

    frequency: RecurringFrequency = Field(description="Recurrence frequency")
    interval: int = Field(default=1, ge=1, description="Every N periods")
    start_date: date = Field(description="First period start")
    end_date: Optional[date] = Field(default=None, description="Stop recurring after this date")
    max_invoices: Optional[int] = Field(default=None, ge=1, description="Stop after N invoices")
    auto_send: bool = Field(default=False, description="Send generated invoices automatically")
    generate_days_before: int = Field(default=0, ge=0, description="Generate N days before the date")

    @model_validator(mode='after')
    def validate_dates(self):
        if self.end_date and self.end_date < self.start_date:
            raise ValueError('end_date cannot be before start_date')
        return self

    def to_domain(self) -> RecurringInvoiceConfig:
        return RecurringInvoiceConfig(
            frequency=RecurringFrequency(self.frequency),
            interval=self.interval,
            start_date=self.start_date,
            end_date=self.end_date,
            max_invoices=self.max_invoices,
            auto_send=self.auto_send,
            generate_days_before=self.generate_days_before
        )


# Request DTOs
class CreateInvoiceRequestDTO(RequestDTO):
    """DTO for creating invoices from time entries and explicit line items."""

    client_id: str = Field(min_length=1, description="Client ID")
    client_name: str = Field(default="", max_length=200, description="Client name shown on the invoice")
    project_ids: List[str] = Field(default_factory=list, description="Projects covered")
    time_entry_ids: List[str] = Field(default_factory=list, description="Approved time entries to bill")
    line_items: List[LineItemDTO] = Field(default_factory=list, description="Additional line items")
    default_hourly_rate: Optional[Decimal] = Field(
        default=None, ge=0, description="Rate for time entries without their own rate"
    )

    issue_date: Optional[date] = Field(default=None, description="Issue date, today when omitted")
    due_date: Optional[date] = Field(default=None, description="Due date, derived from payment terms when omitted")
    payment_terms: Optional[str] = Field(default=None, max_length=100, description="Payment terms")
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3, description="Currency code")
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100, description="Tax rate percentage")
    discount_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100, description="Discount percentage")

    notes: Optional[str] = Field(default=None, max_length=2000, description="Internal notes")
    client_notes: Optional[str] = Field(default=None, max_length=2000, description="Notes for the client")

    is_recurring: bool = Field(default=False, description="Whether the invoice recurs")
    recurring_config: Optional[RecurringConfigDTO] = Field(default=None, description="Recurrence settings")

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v):
        return v.upper() if v else v

    @model_validator(mode='after')
    def validate_invoice(self):
        if self.issue_date and self.due_date and self.due_date < self.issue_date:
            raise ValueError('due_date cannot be before issue_date')
        if self.is_recurring and not self.recurring_config:
            raise ValueError('recurring_config is required for recurring invoices')
        return self


class UpdateInvoiceRequestDTO(RequestDTO):
    """DTO for partial invoice updates."""

    id: Optional[str] = Field(default=None, description="Invoice ID (from the path)")
    due_date: Optional[date] = Field(default=None, description="Due date")
    payment_terms: Optional[str] = Field(default=None, max_length=100, description="Payment terms")
    tax_rate: Optional[Decimal] = Field(default=None, ge=0, le=100, description="Tax rate percentage")
    discount_rate: Optional[Decimal] = Field(default=None, ge=0, le=100, description="Discount percentage")
    line_items: Optional[List[LineItemDTO]] = Field(default=None, description="Replacement line items")
    notes: Optional[str] = Field(default=None, max_length=2000, description="Internal notes")
    client_notes: Optional[str] = Field(default=None, max_length=2000, description="Notes for the client")

    def to_patch(self) -> InvoicePatch:
        return InvoicePatch(
            due_date=self.due_date,
            payment_terms=self.payment_terms,
            tax_rate=self.tax_rate,
            discount_rate=self.discount_rate,
            line_items=[item.to_domain() for item in self.line_items] if self.line_items is not None else None,
            notes=self.notes,
            client_notes=self.client_notes,
            # An explicit null empties the field; an omitted one leaves it alone
            cleared=tuple(sorted(
                name for name in InvoicePatch.CLEARABLE_FIELDS
                if name in self.model_fields_set and getattr(self, name) is None
            ))
        )


class UpdateInvoiceStatusRequestDTO(RequestDTO):
    """DTO for invoice status changes."""

    id: Optional[str] = Field(default=None, description="Invoice ID (from the path)")
    status: InvoiceStatus = Field(description="Target status")


class RecordPaymentRequestDTO(RequestDTO):
    """DTO for recording a payment against an invoice."""

    invoice_id: Optional[str] = Field(default=None, description="Invoice ID (from the path)")
    amount: Decimal = Field(gt=0, decimal_places=2, description="Payment amount")
    payment_date: Optional[date] = Field(default=None, description="Payment date, today when omitted")
    payment_method: str = Field(min_length=1, max_length=50, description="Payment method")
    reference: Optional[str] = Field(default=None, max_length=200, description="Payment reference")
    notes: Optional[str] = Field(default=None, max_length=2000, description="Notes")
    external_payment_id: Optional[str] = Field(default=None, max_length=200, description="Processor payment ID")
    processor_fee: Optional[Decimal] = Field(default=None, ge=0, description="Processor fee")


class ListInvoicesRequestDTO(ListRequestDTO):
    """DTO for listing invoices with filters."""

    client_id: Optional[str] = Field(default=None, description="Filter by client")
    status: Optional[InvoiceStatus] = Field(default=None, description="Filter by status")
    project_id: Optional[str] = Field(default=None, description="Filter by project")
    is_recurring: Optional[bool] = Field(default=None, description="Filter recurring invoices")
    issue_date_from: Optional[date] = Field(default=None, description="Issued on or after")
    issue_date_to: Optional[date] = Field(default=None, description="Issued on or before")
    due_date_from: Optional[date] = Field(default=None, description="Due on or after")
    due_date_to: Optional[date] = Field(default=None, description="Due on or before")
    min_amount: Optional[Decimal] = Field(default=None, ge=0, description="Minimum total amount")
    max_amount: Optional[Decimal] = Field(default=None, ge=0, description="Maximum total amount")
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3, description="Currency code")

    @model_validator(mode='after')
    def validate_ranges(self):
        if self.issue_date_from and self.issue_date_to and self.issue_date_to < self.issue_date_from:
            raise ValueError('issue_date_to must be after issue_date_from')
        if self.due_date_from and self.due_date_to and self.due_date_to < self.due_date_from:
            raise ValueError('due_date_to must be after due_date_from')
        if self.min_amount is not None and self.max_amount is not None and self.max_amount < self.min_amount:
            raise ValueError('max_amount must be greater than min_amount')
        return self


# Response DTOs
class InvoiceResponseDTO(ResponseDTO):
    """DTO for invoice response."""

    invoice_number: str = Field(description="Invoice number")
    client_id: str = Field(description="Client ID")
    client_name: str = Field(description="Client name")
    project_ids: List[str] = Field(default_factory=list, description="Projects covered")
    time_entry_ids: List[str] = Field(default_factory=list, description="Billed time entries")
    status: InvoiceStatus = Field(description="Invoice status")

    issue_date: date = Field(description="Issue date")
    due_date: date = Field(description="Due date")
    paid_date: Optional[date] = Field(default=None, description="Date fully paid")

    line_items: List[Dict[str, Any]] = Field(default_factory=list, description="Line items")
    tax_rate: Decimal = Field(description="Tax rate percentage")
    discount_rate: Decimal = Field(description="Discount percentage")
    subtotal: Decimal = Field(description="Sum of line items")
    discount_amount: Decimal = Field(description="Discount amount")
    tax_amount: Decimal = Field(description="Tax amount")
    total_amount: Decimal = Field(description="Total amount")
    currency: str = Field(description="Currency code")
    payment_terms: Optional[str] = Field(default=None, description="Payment terms")

    is_recurring: bool = Field(default=False, description="Whether the invoice recurs")
    recurring_config: Optional[Dict[str, Any]] = Field(default=None, description="Recurrence settings")

    notes: Optional[str] = Field(default=None, description="Internal notes")
    client_notes: Optional[str] = Field(default=None, description="Notes for the client")
    sent_at: Optional[datetime] = Field(default=None, description="When the invoice was sent")
    viewed_at: Optional[datetime] = Field(default=None, description="When the client viewed it")
    created_by: str = Field(description="Creator user ID")

    @classmethod
    def from_domain(cls, invoice: Invoice) -> "InvoiceResponseDTO":
        return cls(
            id=invoice.id,
            invoice_number=invoice.invoice_number,
            client_id=invoice.client_id,
            client_name=invoice.client_name,
            project_ids=list(invoice.project_ids),
            time_entry_ids=list(invoice.time_entry_ids),
            status=invoice.status,
            issue_date=invoice.issue_date,
            due_date=invoice.due_date,
            paid_date=invoice.paid_date,
            line_items=[item.to_dict() for item in invoice.line_items],
            tax_rate=invoice.tax_rate,
            discount_rate=invoice.discount_rate,
            subtotal=invoice.subtotal,
            discount_amount=invoice.discount_amount,
            tax_amount=invoice.tax_amount,
            total_amount=invoice.total_amount,
            currency=invoice.currency,
            payment_terms=invoice.payment_terms,
            is_recurring=invoice.is_recurring,
            recurring_config=invoice.recurring_config.to_dict() if invoice.recurring_config else None,
            notes=invoice.notes,
            client_notes=invoice.client_notes,
            sent_at=invoice.sent_at,
            viewed_at=invoice.viewed_at,
            created_by=invoice.created_by,
            created_at=invoice.created_at,
            updated_at=invoice.updated_at
        )


class PaymentResponseDTO(ResponseDTO):
    """DTO for payment response."""

    invoice_id: str = Field(description="Invoice ID")
    amount: Decimal = Field(description="Payment amount")
    currency: str = Field(description="Currency code")
    payment_date: date = Field(description="Payment date")
    payment_method: str = Field(description="Payment method")
    reference: Optional[str] = Field(default=None, description="Payment reference")
    notes: Optional[str] = Field(default=None, description="Notes")
    external_payment_id: Optional[str] = Field(default=None, description="Processor payment ID")
    processor_fee: Optional[Decimal] = Field(default=None, description="Processor fee")
    status: PaymentStatus = Field(description="Payment status")
    recorded_by: str = Field(description="User who recorded the payment")

    @classmethod
    def from_domain(cls, payment: Payment) -> "PaymentResponseDTO":
        return cls(
            id=payment.id,
            invoice_id=payment.invoice_id,
            amount=payment.amount,
            currency=payment.currency,
            payment_date=payment.payment_date,
            payment_method=payment.payment_method,
            reference=payment.reference,
            notes=payment.notes,
            external_payment_id=payment.external_payment_id,
            processor_fee=payment.processor_fee,
            status=payment.status,
            recorded_by=payment.recorded_by,
            created_at=payment.created_at,
            updated_at=payment.updated_at
        )


class RecordPaymentResponseDTO(BaseDTO):
    """A recorded payment together with the invoice it settled or reduced."""

    payment: PaymentResponseDTO = Field(description="The recorded payment")
    invoice: InvoiceResponseDTO = Field(description="The invoice after the payment")
    total_paid: Decimal = Field(description="Sum of all payments on the invoice")
    balance_due: Decimal = Field(description="Amount still outstanding")


class InvoiceListResponseDTO(BaseDTO):
    """Paginated list of invoices."""

    items: List[InvoiceResponseDTO] = Field(description="Invoices")
    total: int = Field(description="Total number of matching invoices")
    limit: int = Field(description="Maximum number of items")
    offset: int = Field(description="Items skipped")
    has_more: bool = Field(description="Whether more items follow")


class PaymentListResponseDTO(BaseDTO):
    """Payments of one invoice, oldest first."""

    invoice_id: str = Field(description="Invoice ID")
    payments: List[PaymentResponseDTO] = Field(description="Payments")
    total_paid: Decimal = Field(description="Sum of all payments")
    balance_due: Decimal = Field(description="Amount still outstanding")
