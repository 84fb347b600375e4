"""
Unit tests for invoice and payment use cases against an in-memory store.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from timeledger.application.dto.base_dto import EntityIdRequestDTO
from timeledger.application.dto.invoice_dto import (
    CreateInvoiceRequestDTO,
    LineItemDTO,
    ListInvoicesRequestDTO,
    RecordPaymentRequestDTO,
    UpdateInvoiceRequestDTO,
    UpdateInvoiceStatusRequestDTO
)
from timeledger.application.use_cases.invoice_use_cases import (
    CreateInvoiceUseCase,
    GetInvoiceUseCase,
    ListInvoicesUseCase,
    ListPaymentsUseCase,
    RecordPaymentUseCase,
    UpdateInvoiceStatusUseCase,
    UpdateInvoiceUseCase
)
from timeledger.domain.models.base import ConcurrentModificationError
from timeledger.domain.models.invoice import InvoiceStatus
from timeledger.domain.models.time_entry import TimeEntryStatus


NOW = datetime(2024, 3, 15, 10, 0)


def clock():
    return NOW


async def run_as(use_case, user, request):
    use_case.set_current_user(user)
    return await use_case.execute(request)


class InvoiceTestBase:
    """Shared wiring for invoice scenarios."""

    @pytest.fixture(autouse=True)
    def wire(self, invoice_repository, time_entry_repository, entry_factory, manager, employee):
        self.invoices = invoice_repository
        self.entries = time_entry_repository
        self.entry_factory = entry_factory
        self.manager = manager
        self.employee = employee

    def approved_entry(self, **kwargs):
        return self.entries.save(self.entry_factory(status=TimeEntryStatus.APPROVED, **kwargs))

    def create_use_case(self):
        return CreateInvoiceUseCase(self.invoices, self.entries, clock=clock)

    async def create_invoice(self, **overrides):
        values = dict(
            client_id="client-1",
            line_items=[LineItemDTO(description="Consulting", quantity=Decimal("10"), rate=Decimal("100"))]
        )
        values.update(overrides)
        result = await run_as(self.create_use_case(), self.manager, CreateInvoiceRequestDTO(**values))
        assert result.success is True, result.error
        return result.data


class TestCreateInvoiceUseCase(InvoiceTestBase):
    """Test cases for invoice creation."""

    @pytest.mark.asyncio
    async def test_bills_approved_entries(self):
        first = self.approved_entry(duration_minutes=90, hourly_rate=100.0)
        second = self.approved_entry(duration_minutes=60, project_id="project-2")

        invoice = await self.create_invoice(
            line_items=[],
            time_entry_ids=[first.id, second.id],
            default_hourly_rate=Decimal("80"),
            tax_rate=Decimal("10")
        )

        assert invoice.status == InvoiceStatus.DRAFT
        assert invoice.time_entry_ids == [first.id, second.id]
        assert invoice.project_ids == ["project-1", "project-2"]
        assert invoice.subtotal == Decimal("230.00")
        assert invoice.tax_amount == Decimal("23.00")
        assert invoice.total_amount == Decimal("253.00")
        assert invoice.issue_date == date(2024, 3, 15)
        assert invoice.due_date == date(2024, 4, 14)

    @pytest.mark.asyncio
    async def test_numbers_are_sequential_per_month(self):
        first = await self.create_invoice()
        second = await self.create_invoice()

        assert first.invoice_number == "INV-2024-03-001"
        assert second.invoice_number == "INV-2024-03-002"

    @pytest.mark.asyncio
    async def test_entry_cannot_be_billed_twice(self):
        entry = self.approved_entry(hourly_rate=100.0)
        await self.create_invoice(line_items=[], time_entry_ids=[entry.id])

        result = await run_as(
            self.create_use_case(),
            self.manager,
            CreateInvoiceRequestDTO(client_id="client-1", time_entry_ids=[entry.id])
        )

        assert result.error_code == "TIME_ENTRIES_ALREADY_INVOICED"
        assert result.error_type == "invalid_state"

    @pytest.mark.asyncio
    async def test_cancelled_invoice_releases_entries(self):
        entry = self.approved_entry(hourly_rate=100.0)
        invoice = await self.create_invoice(line_items=[], time_entry_ids=[entry.id])
        await run_as(
            UpdateInvoiceStatusUseCase(self.invoices, clock=clock),
            self.manager,
            UpdateInvoiceStatusRequestDTO(id=invoice.id, status=InvoiceStatus.CANCELLED)
        )

        again = await self.create_invoice(line_items=[], time_entry_ids=[entry.id])

        assert again.time_entry_ids == [entry.id]

    @pytest.mark.asyncio
    async def test_unapproved_entries_are_refused(self):
        entry = self.entries.save(self.entry_factory(hourly_rate=100.0))

        result = await run_as(
            self.create_use_case(),
            self.manager,
            CreateInvoiceRequestDTO(client_id="client-1", time_entry_ids=[entry.id])
        )

        assert result.error_code == "TIME_ENTRIES_NOT_APPROVED"

    @pytest.mark.asyncio
    async def test_nothing_to_invoice(self):
        result = await run_as(self.create_use_case(), self.manager, CreateInvoiceRequestDTO(client_id="client-1"))

        assert result.error_code == "NO_BILLABLE_TIME_ENTRIES"
        assert result.error_type == "business_rule"

    @pytest.mark.asyncio
    async def test_employee_cannot_create(self):
        result = await run_as(
            self.create_use_case(),
            self.employee,
            CreateInvoiceRequestDTO(client_id="client-1")
        )

        assert result.error_type == "forbidden"


class TestInvoiceLifecycle(InvoiceTestBase):
    """Test cases for reads, patches and status changes."""

    @pytest.mark.asyncio
    async def test_get_and_list(self):
        invoice = await self.create_invoice()
        await self.create_invoice(client_id="client-2")

        fetched = await run_as(GetInvoiceUseCase(self.invoices), self.manager, EntityIdRequestDTO(id=invoice.id))
        listed = await run_as(
            ListInvoicesUseCase(self.invoices), self.manager, ListInvoicesRequestDTO(client_id="client-2")
        )

        assert fetched.data.invoice_number == invoice.invoice_number
        assert listed.data.total == 1
        assert listed.data.items[0].client_id == "client-2"

    @pytest.mark.asyncio
    async def test_unknown_invoice(self):
        result = await run_as(GetInvoiceUseCase(self.invoices), self.manager, EntityIdRequestDTO(id="nope"))

        assert result.error_code == "INVOICE_NOT_FOUND"
        assert result.error_type == "not_found"

    @pytest.mark.asyncio
    async def test_patch_recalculates(self):
        invoice = await self.create_invoice()

        result = await run_as(
            UpdateInvoiceUseCase(self.invoices),
            self.manager,
            UpdateInvoiceRequestDTO(id=invoice.id, discount_rate=Decimal("10"), notes="Loyalty")
        )

        assert result.data.discount_amount == Decimal("100.00")
        assert result.data.total_amount == Decimal("900.00")
        assert self.invoices.find_by_id(invoice.id).notes == "Loyalty"

    @pytest.mark.asyncio
    async def test_explicit_null_clears_notes(self):
        invoice = await self.create_invoice()
        await run_as(
            UpdateInvoiceUseCase(self.invoices),
            self.manager,
            UpdateInvoiceRequestDTO(id=invoice.id, notes="Loyalty", client_notes="Thanks!")
        )

        result = await run_as(
            UpdateInvoiceUseCase(self.invoices),
            self.manager,
            UpdateInvoiceRequestDTO.model_validate({"id": invoice.id, "notes": None})
        )

        assert result.success is True, result.error
        stored = self.invoices.find_by_id(invoice.id)
        assert stored.notes is None
        assert stored.client_notes == "Thanks!"

    @pytest.mark.asyncio
    async def test_stale_update_is_rejected(self):
        invoice = await self.create_invoice()
        stale = self.invoices.find_by_id(invoice.id)
        await run_as(
            UpdateInvoiceStatusUseCase(self.invoices, clock=clock),
            self.manager,
            UpdateInvoiceStatusRequestDTO(id=invoice.id, status=InvoiceStatus.SENT)
        )
        stale.transition_to(InvoiceStatus.CANCELLED)

        with pytest.raises(ConcurrentModificationError):
            self.invoices.save(stale)

        stored = self.invoices.find_by_id(invoice.id)
        assert stored.status == InvoiceStatus.SENT
        assert stored.version == 2

    @pytest.mark.asyncio
    async def test_illegal_transition(self):
        invoice = await self.create_invoice()

        result = await run_as(
            UpdateInvoiceStatusUseCase(self.invoices, clock=clock),
            self.manager,
            UpdateInvoiceStatusRequestDTO(id=invoice.id, status=InvoiceStatus.PAID)
        )

        assert result.error_code == "INVALID_STATUS_TRANSITION"
        assert self.invoices.find_by_id(invoice.id).status == InvoiceStatus.DRAFT

    @pytest.mark.asyncio
    async def test_send_stamps_sent_at(self):
        invoice = await self.create_invoice()

        result = await run_as(
            UpdateInvoiceStatusUseCase(self.invoices, clock=clock),
            self.manager,
            UpdateInvoiceStatusRequestDTO(id=invoice.id, status=InvoiceStatus.SENT)
        )

        assert result.data.status == InvoiceStatus.SENT
        assert result.data.sent_at == NOW


class TestPayments(InvoiceTestBase):
    """Test cases for the payment ledger."""

    async def pay(self, invoice_id, amount, **kwargs):
        request = RecordPaymentRequestDTO(
            invoice_id=invoice_id,
            amount=Decimal(amount),
            payment_method="bank_transfer",
            payment_date=date(2024, 3, 20),
            **kwargs
        )
        return await run_as(RecordPaymentUseCase(self.invoices, clock=clock), self.manager, request)

    @pytest.mark.asyncio
    async def test_partial_then_full_payment(self):
        invoice = await self.create_invoice()

        partial = await self.pay(invoice.id, "400.00")
        assert partial.data.invoice.status == InvoiceStatus.DRAFT
        assert partial.data.balance_due == Decimal("600.00")

        full = await self.pay(invoice.id, "600.00")
        assert full.data.invoice.status == InvoiceStatus.PAID
        assert full.data.invoice.paid_date == date(2024, 3, 20)
        assert full.data.total_paid == Decimal("1000.00")
        assert full.data.balance_due == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_overpayment_is_refused(self):
        invoice = await self.create_invoice()
        await self.pay(invoice.id, "900.00")

        result = await self.pay(invoice.id, "100.01")

        assert result.error_code == "PAYMENT_EXCEEDS_INVOICE"
        assert self.invoices.total_paid(invoice.id) == Decimal("900.00")

    @pytest.mark.asyncio
    async def test_cancelled_invoice_refuses_payment(self):
        invoice = await self.create_invoice()
        await run_as(
            UpdateInvoiceStatusUseCase(self.invoices, clock=clock),
            self.manager,
            UpdateInvoiceStatusRequestDTO(id=invoice.id, status=InvoiceStatus.CANCELLED)
        )

        result = await self.pay(invoice.id, "10.00")

        assert result.error_code == "INVOICE_NOT_PAYABLE"

    @pytest.mark.asyncio
    async def test_duplicate_external_payment(self):
        invoice = await self.create_invoice()
        await self.pay(invoice.id, "10.00", external_payment_id="ch_1")

        result = await self.pay(invoice.id, "10.00", external_payment_id="ch_1")

        assert result.error_code == "PAYMENT_ALREADY_RECORDED"
        assert result.error_type == "conflict"

    @pytest.mark.asyncio
    async def test_list_payments(self):
        invoice = await self.create_invoice()
        await self.pay(invoice.id, "250.00")
        await self.pay(invoice.id, "250.00")

        result = await run_as(ListPaymentsUseCase(self.invoices), self.manager, EntityIdRequestDTO(id=invoice.id))

        assert len(result.data.payments) == 2
        assert result.data.total_paid == Decimal("500.00")
        assert result.data.balance_due == Decimal("500.00")
