"""
Invoice use cases for the application layer.
Implements invoice creation, updates, status changes and payment recording.
"""

import logging
from typing import Callable, List, Optional
from datetime import datetime

from timeledger.application.use_cases.base_use_case import (
    CreateUseCase, UpdateUseCase, GetByIdUseCase, ListUseCase,
    AuthorizedUseCase
)
from timeledger.application.dto.base_dto import EntityIdRequestDTO
from timeledger.application.dto.invoice_dto import (
    CreateInvoiceRequestDTO, UpdateInvoiceRequestDTO, UpdateInvoiceStatusRequestDTO,
    RecordPaymentRequestDTO, ListInvoicesRequestDTO, InvoiceResponseDTO,
    PaymentResponseDTO, RecordPaymentResponseDTO, InvoiceListResponseDTO,
    PaymentListResponseDTO
)
from timeledger.config import settings
from timeledger.domain.models.base import BusinessRuleViolation, EntityNotFoundError, utcnow
from timeledger.domain.models.invoice import ZERO, Invoice, InvoiceCreatedEvent, InvoiceLineItem, Payment
from timeledger.domain.models.user import UserRole
from timeledger.domain.repositories.invoice_repository import InvoiceFilter, InvoiceRepository
from timeledger.domain.repositories.time_entry_repository import TimeEntryRepository
from timeledger.domain.services.billing_service import BillingService

logger = logging.getLogger(__name__)


class InvoiceAccessMixin:
    """Loading of a single invoice; approvers see every invoice, others their own."""

    invoice_repository: InvoiceRepository

    def _load_invoice(self, invoice_id: str) -> Invoice:
        invoice = self.invoice_repository.find_by_id(invoice_id)
        if not invoice:
            raise EntityNotFoundError("Invoice", invoice_id, code="INVOICE_NOT_FOUND")
        self._require_owner_or_approver(invoice.created_by)
        return invoice


def _unique(values: List[str]) -> List[str]:
    return list(dict.fromkeys(value for value in values if value))


class CreateInvoiceUseCase(AuthorizedUseCase, CreateUseCase[CreateInvoiceRequestDTO, InvoiceResponseDTO]):
    """
    Use case for creating a draft invoice.

    Approved billable time entries become ``time`` line items; explicit line
    items are appended after them. The invoice number is allocated by the
    repository in the same transaction as the insert.
    """

    def __init__(
        self,
        invoice_repository: InvoiceRepository,
        time_entry_repository: TimeEntryRepository,
        billing_service: Optional[BillingService] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        super().__init__()
        self.invoice_repository = invoice_repository
        self.time_entry_repository = time_entry_repository
        self.billing_service = billing_service or BillingService()
        self.clock = clock

    async def _check_authorization(self, request: CreateInvoiceRequestDTO) -> None:
        self._require_role(UserRole.MANAGER, UserRole.ADMIN)

    async def _execute_command_logic(self, request: CreateInvoiceRequestDTO) -> InvoiceResponseDTO:
        now = self.clock()
        issue_date = request.issue_date or now.date()

        entries = []
        time_items: List[InvoiceLineItem] = []
        if request.time_entry_ids:
            requested = _unique(request.time_entry_ids)
            found = self.time_entry_repository.find_by_ids(requested)
            invoiced = self.invoice_repository.find_invoiced_time_entry_ids(requested)
            entries = self.billing_service.check_billable_entries(requested, found, invoiced)
            time_items = self.billing_service.build_time_line_items(entries, request.default_hourly_rate)

        line_items = time_items + [item.to_domain() for item in request.line_items]
        if not line_items:
            raise BusinessRuleViolation(
                "No billable time entries or line items to invoice", "NO_BILLABLE_TIME_ENTRIES"
            )

        payment_terms = request.payment_terms or settings.default_payment_terms
        recurring_config = None
        if request.recurring_config:
            recurring_config = self.billing_service.prepare_recurring_config(request.recurring_config.to_domain())

        invoice = Invoice(
            client_id=request.client_id,
            client_name=request.client_name,
            created_by=self.current_user_id,
            issue_date=issue_date,
            due_date=request.due_date or self.billing_service.calculate_due_date(issue_date, payment_terms),
            project_ids=_unique(list(request.project_ids) + [entry.project_id for entry in entries]),
            time_entry_ids=[entry.id for entry in entries],
            line_items=line_items,
            tax_rate=request.tax_rate,
            discount_rate=request.discount_rate,
            currency=request.currency or settings.default_currency,
            payment_terms=payment_terms,
            is_recurring=request.is_recurring,
            recurring_config=recurring_config,
            notes=request.notes,
            client_notes=request.client_notes,
            created_at=now,
            updated_at=now
        )
        invoice.recalculate_totals()
        invoice.validate()

        invoice = self.invoice_repository.create(invoice)
        invoice.add_event(InvoiceCreatedEvent(
            invoice.id, invoice.invoice_number, invoice.client_id, invoice.total_amount
        ))
        self._collect_events(invoice)

        logger.info(
            f"Invoice {invoice.invoice_number} ({invoice.id}) created by {self.current_user_id} "
            f"with {len(invoice.line_items)} line items"
        )
        return InvoiceResponseDTO.from_domain(invoice)


class GetInvoiceUseCase(InvoiceAccessMixin, AuthorizedUseCase, GetByIdUseCase[EntityIdRequestDTO, InvoiceResponseDTO]):
    """Use case for reading one invoice."""

    def __init__(self, invoice_repository: InvoiceRepository):
        super().__init__()
        self.invoice_repository = invoice_repository

    async def _execute_business_logic(self, request: EntityIdRequestDTO) -> InvoiceResponseDTO:
        return InvoiceResponseDTO.from_domain(self._load_invoice(request.id))


class ListInvoicesUseCase(AuthorizedUseCase, ListUseCase[ListInvoicesRequestDTO, InvoiceListResponseDTO]):
    """Use case for listing invoices, newest issue date first."""

    def __init__(self, invoice_repository: InvoiceRepository):
        super().__init__(max_page_size=settings.max_page_size)
        self.invoice_repository = invoice_repository

    async def _execute_business_logic(self, request: ListInvoicesRequestDTO) -> InvoiceListResponseDTO:
        criteria = InvoiceFilter(
            client_id=request.client_id,
            status=request.status,
            project_id=request.project_id,
            is_recurring=request.is_recurring,
            issue_date_from=request.issue_date_from,
            issue_date_to=request.issue_date_to,
            due_date_from=request.due_date_from,
            due_date_to=request.due_date_to,
            min_amount=request.min_amount,
            max_amount=request.max_amount,
            currency=request.currency.upper() if request.currency else None,
            created_by=None if self.current_user.can_approve else self.current_user_id
        )
        invoices = self.invoice_repository.find_many(criteria, limit=request.limit, offset=request.offset)
        total = self.invoice_repository.count(criteria)

        return InvoiceListResponseDTO(
            items=[InvoiceResponseDTO.from_domain(invoice) for invoice in invoices],
            total=total,
            limit=request.limit,
            offset=request.offset,
            has_more=request.offset + len(invoices) < total
        )


class UpdateInvoiceUseCase(InvoiceAccessMixin, AuthorizedUseCase, UpdateUseCase[UpdateInvoiceRequestDTO, InvoiceResponseDTO]):
    """Use case for patching an invoice that is not yet paid, cancelled or refunded."""

    def __init__(self, invoice_repository: InvoiceRepository):
        super().__init__()
        self.invoice_repository = invoice_repository

    async def _execute_command_logic(self, request: UpdateInvoiceRequestDTO) -> InvoiceResponseDTO:
        invoice = self._load_invoice(request.id)
        changed = invoice.apply_patch(request.to_patch())

        invoice = self.invoice_repository.save(invoice)
        logger.info(f"Invoice {invoice.id} updated by {self.current_user_id}: {', '.join(changed)}")
        return InvoiceResponseDTO.from_domain(invoice)


class UpdateInvoiceStatusUseCase(InvoiceAccessMixin, AuthorizedUseCase, UpdateUseCase[UpdateInvoiceStatusRequestDTO, InvoiceResponseDTO]):
    """
    Use case for moving an invoice along the status transition table.
    Requesting the current status succeeds without writing.
    """

    def __init__(self, invoice_repository: InvoiceRepository, clock: Callable[[], datetime] = utcnow):
        super().__init__()
        self.invoice_repository = invoice_repository
        self.clock = clock

    async def _execute_command_logic(self, request: UpdateInvoiceStatusRequestDTO) -> InvoiceResponseDTO:
        invoice = self._load_invoice(request.id)
        previous = invoice.status

        if invoice.transition_to(request.status, at=self.clock()):
            invoice = self.invoice_repository.save(invoice)
            self._collect_events(invoice)
            logger.info(
                f"Invoice {invoice.id} {previous.value} -> {invoice.status.value} by {self.current_user_id}"
            )
        return InvoiceResponseDTO.from_domain(invoice)


class RecordPaymentUseCase(InvoiceAccessMixin, AuthorizedUseCase, CreateUseCase[RecordPaymentRequestDTO, RecordPaymentResponseDTO]):
    """
    Use case for recording a payment.

    The overpayment check, the payment insert and the move to ``paid`` all
    happen inside the repository's single locked transaction.
    """

    def __init__(self, invoice_repository: InvoiceRepository, clock: Callable[[], datetime] = utcnow):
        super().__init__()
        self.invoice_repository = invoice_repository
        self.clock = clock

    async def _execute_command_logic(self, request: RecordPaymentRequestDTO) -> RecordPaymentResponseDTO:
        invoice = self._load_invoice(request.invoice_id)
        invoice.ensure_payable()

        payment = Payment(
            invoice_id=invoice.id,
            amount=request.amount,
            payment_date=request.payment_date or self.clock().date(),
            payment_method=request.payment_method,
            recorded_by=self.current_user_id,
            currency=invoice.currency,
            reference=request.reference,
            notes=request.notes,
            external_payment_id=request.external_payment_id,
            processor_fee=request.processor_fee
        )
        payment.validate()

        payment, invoice = self.invoice_repository.record_payment(payment)
        self._collect_events(invoice)
        total_paid = self.invoice_repository.total_paid(invoice.id)

        return RecordPaymentResponseDTO(
            payment=PaymentResponseDTO.from_domain(payment),
            invoice=InvoiceResponseDTO.from_domain(invoice),
            total_paid=total_paid,
            balance_due=invoice.total_amount - total_paid
        )


class ListPaymentsUseCase(InvoiceAccessMixin, AuthorizedUseCase, GetByIdUseCase[EntityIdRequestDTO, PaymentListResponseDTO]):
    """Use case for listing the payments of an invoice."""

    def __init__(self, invoice_repository: InvoiceRepository):
        super().__init__()
        self.invoice_repository = invoice_repository

    async def _execute_business_logic(self, request: EntityIdRequestDTO) -> PaymentListResponseDTO:
        invoice = self._load_invoice(request.id)
        payments = self.invoice_repository.find_payments(invoice.id)
        total_paid = sum((payment.amount for payment in payments), ZERO)

        return PaymentListResponseDTO(
            invoice_id=invoice.id,
            payments=[PaymentResponseDTO.from_domain(payment) for payment in payments],
            total_paid=total_paid,
            balance_due=invoice.total_amount - total_paid
        )
