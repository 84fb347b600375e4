"""
Tests for concurrent writers against a file-backed SQLite store.

Every actor gets its own session and connection, the way separate requests do.
"""

import threading
import time
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from unittest.mock import patch

import pytest

from timeledger.domain.models.base import (
    ConcurrentModificationError,
    DuplicateEntityError,
    InvalidStateError,
    InvariantViolation
)
from timeledger.domain.models.invoice import Invoice, InvoiceLineItem, InvoiceStatus, Payment
from timeledger.domain.models.time_entry import TimeEntry, TimeEntryStatus
from timeledger.infrastructure.repositories import SQLAlchemyInvoiceRepository, SQLAlchemyTimeEntryRepository


def _payment(invoice_id, amount, **kwargs):
    return Payment(
        invoice_id=invoice_id,
        amount=Decimal(amount),
        payment_date=date(2024, 3, 20),
        payment_method="bank_transfer",
        recorded_by="manager-1",
        **kwargs
    )


@contextmanager
def _invoices(session_factory):
    session = session_factory()
    try:
        yield SQLAlchemyInvoiceRepository(session)
    finally:
        session.close()


def _run_concurrently(session_factory, *actions):
    """Run each action on its own thread with its own session; collect results or raised errors."""
    outcomes = [None] * len(actions)
    ready = threading.Barrier(len(actions))

    def worker(index, action):
        session = session_factory()
        try:
            ready.wait()
            outcomes[index] = action(session)
        except Exception as exc:
            outcomes[index] = exc
        finally:
            session.close()

    threads = [threading.Thread(target=worker, args=(i, action)) for i, action in enumerate(actions)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return outcomes


def _slowed(method, delay=0.2):
    def wrapper(self, *args, **kwargs):
        result = method(self, *args, **kwargs)
        time.sleep(delay)
        return result
    return wrapper


class TestConcurrentPayments:
    """Payments racing on the same invoice."""

    @pytest.fixture(autouse=True)
    def sent_invoice(self, session_factory):
        self.session_factory = session_factory
        with _invoices(session_factory) as repository:
            invoice = Invoice(
                client_id="client-1",
                created_by="manager-1",
                issue_date=date(2024, 3, 10),
                due_date=date(2024, 4, 30),
                line_items=[InvoiceLineItem(description="Consulting", quantity=Decimal("1"), rate=Decimal("100"))],
                created_at=datetime(2024, 3, 10, 9, 0)
            )
            invoice.recalculate_totals()
            invoice = repository.create(invoice)
            invoice.transition_to(InvoiceStatus.SENT)
            repository.save(invoice)
            first_payment, _ = repository.record_payment(_payment(invoice.id, "80.00"))
        self.invoice_id = invoice.id
        self.first_payment_id = first_payment.id

    def test_racing_payments_never_overpay(self):
        def pay_rest(session):
            return SQLAlchemyInvoiceRepository(session).record_payment(_payment(self.invoice_id, "20.00"))

        # Widen the window between reading the paid total and inserting the payment
        with patch.object(
            SQLAlchemyInvoiceRepository, "_sum_payments", _slowed(SQLAlchemyInvoiceRepository._sum_payments)
        ):
            outcomes = _run_concurrently(self.session_factory, pay_rest, pay_rest)

        failures = [outcome for outcome in outcomes if isinstance(outcome, Exception)]
        assert len(failures) == 1, outcomes
        assert isinstance(failures[0], InvariantViolation)
        assert failures[0].code == "PAYMENT_EXCEEDS_INVOICE"
        with _invoices(self.session_factory) as repository:
            assert repository.total_paid(self.invoice_id) == Decimal("100.00")
            assert len(repository.find_payments(self.invoice_id)) == 2
            assert repository.find_by_id(self.invoice_id).status == InvoiceStatus.PAID

    def test_stale_cancel_cannot_reopen_settled_invoice(self):
        with _invoices(self.session_factory) as repository:
            stale = repository.find_by_id(self.invoice_id)

        with _invoices(self.session_factory) as repository:
            repository.record_payment(_payment(self.invoice_id, "20.00"))

        stale.transition_to(InvoiceStatus.CANCELLED)
        with _invoices(self.session_factory) as repository:
            with pytest.raises(ConcurrentModificationError) as exc_info:
                repository.save(stale)

        assert exc_info.value.category == "invalid_state"
        with _invoices(self.session_factory) as repository:
            stored = repository.find_by_id(self.invoice_id)
        assert stored.status == InvoiceStatus.PAID
        assert stored.version == 3

    def test_failed_settling_payment_leaves_invoice_open(self):
        with _invoices(self.session_factory) as repository:
            with pytest.raises(DuplicateEntityError, match="already exists"):
                repository.record_payment(_payment(self.invoice_id, "20.00", id=self.first_payment_id))

        with _invoices(self.session_factory) as repository:
            assert repository.total_paid(self.invoice_id) == Decimal("80.00")
            assert repository.find_by_id(self.invoice_id).status == InvoiceStatus.SENT


class TestConcurrentReviews:
    """Approve and reject racing on the same submitted entry."""

    def test_only_one_review_lands(self, session_factory):
        session = session_factory()
        try:
            entry = TimeEntry(
                user_id="employee-1",
                project_id="project-1",
                entry_date=date(2024, 3, 4),
                duration_minutes=60,
                description="Feature work"
            )
            entry.submit("employee-1")
            entry_id = SQLAlchemyTimeEntryRepository(session).save(entry).id
        finally:
            session.close()

        def review(decide):
            def action(session):
                repository = SQLAlchemyTimeEntryRepository(session)
                loaded = repository.find_by_id(entry_id)
                decide(loaded)
                return repository.save(loaded).status
            return action

        with patch.object(
            SQLAlchemyTimeEntryRepository, "find_by_id", _slowed(SQLAlchemyTimeEntryRepository.find_by_id)
        ):
            outcomes = _run_concurrently(
                session_factory,
                review(lambda loaded: loaded.approve("manager-1")),
                review(lambda loaded: loaded.reject("manager-2", "Wrong project"))
            )

        winners = [outcome for outcome in outcomes if isinstance(outcome, TimeEntryStatus)]
        losers = [outcome for outcome in outcomes if isinstance(outcome, Exception)]
        assert len(winners) == 1, outcomes
        assert len(losers) == 1 and isinstance(losers[0], InvalidStateError)

        session = session_factory()
        try:
            stored = SQLAlchemyTimeEntryRepository(session).find_by_id(entry_id)
        finally:
            session.close()
        assert stored.status == winners[0]
        assert (stored.approved_by is None) != (stored.rejected_by is None)
