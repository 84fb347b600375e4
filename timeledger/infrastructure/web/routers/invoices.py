"""
Invoice router.
Handles invoice creation, updates, status changes and payments.
"""

from typing import Annotated
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from timeledger.infrastructure.auth import CurrentUser
from timeledger.application.use_cases import (
    CreateInvoiceUseCase,
    GetInvoiceUseCase,
    ListInvoicesUseCase,
    UpdateInvoiceUseCase,
    UpdateInvoiceStatusUseCase,
    RecordPaymentUseCase,
    ListPaymentsUseCase
)
from timeledger.application.dto import (
    EntityIdRequestDTO,
    CreateInvoiceRequestDTO,
    UpdateInvoiceRequestDTO,
    UpdateInvoiceStatusRequestDTO,
    RecordPaymentRequestDTO,
    ListInvoicesRequestDTO
)
from timeledger.infrastructure.db.database import get_db
from timeledger.infrastructure.repositories import SQLAlchemyInvoiceRepository, SQLAlchemyTimeEntryRepository
from timeledger.infrastructure.web.responses import run, success_response


router = APIRouter()


def get_invoice_repository(session: Session = Depends(get_db)):
    """Dependency to get invoice repository."""
    return SQLAlchemyInvoiceRepository(session)


def get_time_entry_repository(session: Session = Depends(get_db)):
    """Dependency to get time entry repository."""
    return SQLAlchemyTimeEntryRepository(session)


Invoices = Annotated[SQLAlchemyInvoiceRepository, Depends(get_invoice_repository)]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_invoice(
    request: CreateInvoiceRequestDTO,
    user: CurrentUser,
    repository: Invoices,
    time_entries: Annotated[SQLAlchemyTimeEntryRepository, Depends(get_time_entry_repository)]
):
    """
    Create a draft invoice. Requires the manager or admin role.

    - **client_id**: Client to bill (required)
    - **time_entry_ids**: Approved billable time entries, billed once each
    - **line_items**: Additional line items (fixed, expense, discount)
    - **default_hourly_rate**: Rate for entries without one
    - **issue_date**: Issue date (defaults to today)
    - **due_date**: Due date (defaults from payment terms)
    - **tax_rate** / **discount_rate**: Percentages between 0 and 100
    - **is_recurring** / **recurring_config**: Recurrence settings
    """
    invoice = await run(CreateInvoiceUseCase(repository, time_entries), user, request)
    return success_response(invoice, "Invoice created", status.HTTP_201_CREATED)


@router.get("")
async def list_invoices(
    request: Annotated[ListInvoicesRequestDTO, Query()],
    user: CurrentUser,
    repository: Invoices
):
    """
    List invoices, newest issue date first.

    - **client_id**: Filter by client
    - **status**: Filter by invoice status
    - **issue_date_from** / **issue_date_to**: Filter by issue date
    - **due_date_from** / **due_date_to**: Filter by due date
    - **min_amount** / **max_amount**: Filter by total amount
    - **limit** / **offset**: Pagination
    """
    page = await run(ListInvoicesUseCase(repository), user, request)
    return success_response(page)


@router.get("/{invoice_id}")
async def get_invoice(invoice_id: str, user: CurrentUser, repository: Invoices):
    """
    Get a specific invoice by ID.
    """
    invoice = await run(GetInvoiceUseCase(repository), user, EntityIdRequestDTO(id=invoice_id))
    return success_response(invoice)


@router.put("/{invoice_id}")
async def update_invoice(
    invoice_id: str,
    request: UpdateInvoiceRequestDTO,
    user: CurrentUser,
    repository: Invoices
):
    """
    Update an invoice. Totals are recalculated when line items or rates change.
    Paid, cancelled and refunded invoices cannot be modified.
    """
    request = request.model_copy(update={"id": invoice_id})
    invoice = await run(UpdateInvoiceUseCase(repository), user, request)
    return success_response(invoice, "Invoice updated")


@router.put("/{invoice_id}/status")
async def update_invoice_status(
    invoice_id: str,
    request: UpdateInvoiceStatusRequestDTO,
    user: CurrentUser,
    repository: Invoices
):
    """
    Move an invoice to another status.

    - **status**: Target status; illegal transitions fail with INVALID_STATUS_TRANSITION
    """
    request = request.model_copy(update={"id": invoice_id})
    invoice = await run(UpdateInvoiceStatusUseCase(repository), user, request)
    return success_response(invoice, "Invoice status updated")


@router.post("/{invoice_id}/payments", status_code=status.HTTP_201_CREATED)
async def record_payment(
    invoice_id: str,
    request: RecordPaymentRequestDTO,
    user: CurrentUser,
    repository: Invoices
):
    """
    Record a payment against an invoice.

    - **amount**: Positive amount, at most the outstanding balance
    - **payment_date**: Payment date (defaults to today)
    - **payment_method**: How the payment was made

    The invoice moves to paid once payments cover its total.
    """
    request = request.model_copy(update={"invoice_id": invoice_id})
    recorded = await run(RecordPaymentUseCase(repository), user, request)
    return success_response(recorded, "Payment recorded", status.HTTP_201_CREATED)


@router.get("/{invoice_id}/payments")
async def list_payments(invoice_id: str, user: CurrentUser, repository: Invoices):
    """
    List the payments of an invoice with the amount paid and the balance due.
    """
    payments = await run(ListPaymentsUseCase(repository), user, EntityIdRequestDTO(id=invoice_id))
    return success_response(payments)
