"""
Invoice and payment repository implementation using SQLAlchemy.
"""

import json
import logging
from decimal import Decimal
from typing import Optional, List, Set, Tuple
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import String, and_, cast, desc, func, select, update
from sqlalchemy.exc import IntegrityError

from timeledger.domain.models.base import (
    ConcurrentModificationError,
    DuplicateEntityError,
    EntityNotFoundError,
    new_id
)
from timeledger.domain.models.invoice import Invoice, InvoiceStatus, Payment
from timeledger.domain.models.value_objects import round_money, to_decimal
from timeledger.domain.repositories.invoice_repository import (
    InvoiceFilter,
    InvoiceRepository as InvoiceRepositoryInterface
)
from timeledger.domain.services.numbering_service import NumberingService
from timeledger.infrastructure.db.concurrency import lock_for_update, run_with_retry, store_errors
from timeledger.infrastructure.db.models import (
    InvoiceModel,
    InvoiceLineItemModel,
    InvoiceNumberSequenceModel,
    PaymentModel
)
from timeledger.infrastructure.mappers.invoice_mapper import InvoiceMapper, PaymentMapper

logger = logging.getLogger(__name__)


class SQLAlchemyInvoiceRepository(InvoiceRepositoryInterface):
    """SQLAlchemy implementation of invoice repository."""

    def __init__(self, session: Session, numbering_service: Optional[NumberingService] = None):
        self.session = session
        self.mapper = InvoiceMapper()
        self.payment_mapper = PaymentMapper()
        self.numbering = numbering_service or NumberingService()

    def create(self, invoice: Invoice) -> Invoice:
        """Allocate the invoice number and insert the invoice in one transaction."""
        period = self.numbering.period_for(invoice.created_at.date())

        def _create():
            sequence = self._next_sequence(period)
            invoice.invoice_number = self.numbering.format_invoice_number(period, sequence)
            invoice.id = new_id()
            self.session.add(self.mapper.domain_to_model(invoice))
            try:
                self.session.commit()
            except IntegrityError:
                self.session.rollback()
                raise DuplicateEntityError("Invoice", "invoice_number", invoice.invoice_number)
            return invoice

        with store_errors(self.session, "create_invoice"):
            try:
                return run_with_retry(self.session, _create)
            except Exception:
                invoice.id = None
                invoice.invoice_number = None
                raise

    def save(self, invoice: Invoice) -> Invoice:
        """
        Update an existing invoice.

        Rejected with ConcurrentModificationError when the stored row moved past
        the version the invoice was loaded at.
        """
        def _save():
            model = self._query().filter(InvoiceModel.id == invoice.id).populate_existing().first()
            if not model:
                raise EntityNotFoundError("Invoice", invoice.id, code="INVOICE_NOT_FOUND")
            if model.version != invoice.version:
                raise ConcurrentModificationError("Invoice", invoice.id)
            self.mapper.update_model(model, invoice)
            self.session.flush()
            version = model.version
            self.session.commit()
            invoice.version = version
            return invoice

        with store_errors(self.session, "save_invoice", invoice.id, "Invoice"):
            return run_with_retry(self.session, _save)

    def find_by_id(self, invoice_id: str) -> Optional[Invoice]:
        """Get invoice by ID."""
        with store_errors(self.session, "find_invoice", invoice_id):
            model = self._query().filter(InvoiceModel.id == invoice_id).first()
            if not model:
                return None
            return self.mapper.model_to_domain(model)

    def find_by_number(self, invoice_number: str) -> Optional[Invoice]:
        """Get invoice by number."""
        with store_errors(self.session, "find_invoice_by_number"):
            model = self._query().filter(InvoiceModel.invoice_number == invoice_number).first()
            if not model:
                return None
            return self.mapper.model_to_domain(model)

    def find_many(self, criteria: InvoiceFilter, limit: int = 50, offset: int = 0) -> List[Invoice]:
        with store_errors(self.session, "list_invoices"):
            query = self._filtered_query(criteria, self._query()).order_by(
                desc(InvoiceModel.issue_date),
                desc(InvoiceModel.created_at)
            )
            if offset:
                query = query.offset(offset)
            if limit:
                query = query.limit(limit)
            return [self.mapper.model_to_domain(model) for model in query.all()]

    def count(self, criteria: InvoiceFilter) -> int:
        with store_errors(self.session, "count_invoices"):
            return self._filtered_query(criteria, self.session.query(InvoiceModel)).count()

    def find_invoiced_time_entry_ids(self, entry_ids: List[str]) -> Set[str]:
        if not entry_ids:
            return set()
        with store_errors(self.session, "find_invoiced_time_entries"):
            rows = self.session.query(InvoiceLineItemModel.time_entry_id).join(
                InvoiceModel, InvoiceLineItemModel.invoice_id == InvoiceModel.id
            ).filter(
                and_(
                    InvoiceLineItemModel.time_entry_id.in_(entry_ids),
                    InvoiceModel.status != InvoiceStatus.CANCELLED
                )
            ).all()
            return {row[0] for row in rows}

    def record_payment(self, payment: Payment) -> Tuple[Payment, Invoice]:
        """
        Record a payment against a locked invoice row.

        The payment insert and the invoice status update share one commit;
        a failure at any step leaves neither in the store.
        """
        def _record():
            model = lock_for_update(
                self._query().filter(InvoiceModel.id == payment.invoice_id)
            ).populate_existing().first()
            if not model:
                raise EntityNotFoundError("Invoice", payment.invoice_id, code="INVOICE_NOT_FOUND")
            invoice = self.mapper.model_to_domain(model)

            if payment.external_payment_id and self._external_payment_exists(invoice.id, payment.external_payment_id):
                raise DuplicateEntityError(
                    "Payment", "external_payment_id", payment.external_payment_id,
                    code="PAYMENT_ALREADY_RECORDED"
                )

            paid = self._sum_payments(invoice.id)
            settled = invoice.register_payment(payment.amount, payment.payment_date, paid)

            payment.id = payment.id or new_id()
            payment.currency = invoice.currency
            self.session.add(self.payment_mapper.domain_to_model(payment))
            if settled:
                model.status = invoice.status
                model.paid_date = invoice.paid_date
                model.updated_at = invoice.updated_at

            try:
                self.session.flush()
                version = model.version
                self.session.commit()
            except IntegrityError:
                self.session.rollback()
                duplicate_id, payment.id = payment.id, None
                raise DuplicateEntityError("Payment", "id", duplicate_id, code="PAYMENT_ALREADY_RECORDED")
            invoice.version = version

            logger.info(
                f"Payment {payment.id} of {payment.amount} recorded on invoice {invoice.id}"
                f"{' (settled)' if settled else ''}"
            )
            return payment, invoice

        with store_errors(self.session, "record_payment", payment.invoice_id, "Invoice"):
            return run_with_retry(self.session, _record)

    def find_payments(self, invoice_id: str) -> List[Payment]:
        with store_errors(self.session, "list_payments", invoice_id):
            models = self.session.query(PaymentModel).filter(
                PaymentModel.invoice_id == invoice_id
            ).order_by(PaymentModel.payment_date, PaymentModel.created_at).all()
            return [self.payment_mapper.model_to_domain(model) for model in models]

    def total_paid(self, invoice_id: str) -> Decimal:
        with store_errors(self.session, "sum_payments", invoice_id):
            return self._sum_payments(invoice_id)

    # Internal helpers

    def _query(self):
        return self.session.query(InvoiceModel).options(selectinload(InvoiceModel.line_items))

    def _sum_payments(self, invoice_id: str) -> Decimal:
        total = self.session.query(func.coalesce(func.sum(PaymentModel.amount), 0)).filter(
            PaymentModel.invoice_id == invoice_id
        ).scalar()
        return round_money(to_decimal(total or 0))

    def _external_payment_exists(self, invoice_id: str, external_payment_id: str) -> bool:
        return self.session.query(PaymentModel.id).filter(
            and_(
                PaymentModel.invoice_id == invoice_id,
                PaymentModel.external_payment_id == external_payment_id
            )
        ).first() is not None

    def _next_sequence(self, period: str) -> int:
        """
        Increment the counter row of ``period`` and return the new value.

        The UPDATE takes the row lock, so concurrent creators in the same month
        serialize on it. A missing row is created inside a savepoint, seeded from
        the invoices already numbered in that month.
        """
        increment = update(InvoiceNumberSequenceModel).where(
            InvoiceNumberSequenceModel.period == period
        ).values(last_value=InvoiceNumberSequenceModel.last_value + 1)

        if self.session.execute(increment).rowcount == 0:
            existing = self.session.query(func.count(InvoiceModel.id)).filter(
                InvoiceModel.invoice_number.like(f"INV-{period}-%")
            ).scalar() or 0
            try:
                with self.session.begin_nested():
                    self.session.add(InvoiceNumberSequenceModel(period=period, last_value=existing + 1))
                return existing + 1
            except IntegrityError:
                # Another transaction created the row first
                self.session.execute(increment)

        return self.session.execute(
            select(InvoiceNumberSequenceModel.last_value).where(InvoiceNumberSequenceModel.period == period)
        ).scalar_one()

    def _filtered_query(self, criteria: InvoiceFilter, query):
        if criteria.project_id:
            # project_ids is a JSON array of strings; match the quoted id in its text form
            query = query.filter(
                cast(InvoiceModel.project_ids, String).contains(json.dumps(criteria.project_id), autoescape=True)
            )
        if criteria.client_id:
            query = query.filter(InvoiceModel.client_id == criteria.client_id)
        if criteria.status:
            query = query.filter(InvoiceModel.status == criteria.status)
        if criteria.is_recurring is not None:
            query = query.filter(InvoiceModel.is_recurring == criteria.is_recurring)
        if criteria.issue_date_from:
            query = query.filter(InvoiceModel.issue_date >= criteria.issue_date_from)
        if criteria.issue_date_to:
            query = query.filter(InvoiceModel.issue_date <= criteria.issue_date_to)
        if criteria.due_date_from:
            query = query.filter(InvoiceModel.due_date >= criteria.due_date_from)
        if criteria.due_date_to:
            query = query.filter(InvoiceModel.due_date <= criteria.due_date_to)
        if criteria.min_amount is not None:
            query = query.filter(InvoiceModel.total_amount >= criteria.min_amount)
        if criteria.max_amount is not None:
            query = query.filter(InvoiceModel.total_amount <= criteria.max_amount)
        if criteria.currency:
            query = query.filter(InvoiceModel.currency == criteria.currency)
        if criteria.created_by:
            query = query.filter(InvoiceModel.created_by == criteria.created_by)
        return query
