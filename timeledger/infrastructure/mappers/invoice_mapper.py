"""
Invoice mapper for converting between domain entities and database models.
"""

from typing import List

from timeledger.domain.models.base import new_id
from timeledger.domain.models.invoice import (
    Invoice, InvoiceLineItem, InvoiceStatus, LineItemType,
    RecurringInvoiceConfig, Payment, PaymentStatus
)
from timeledger.infrastructure.db.models import InvoiceModel, InvoiceLineItemModel, PaymentModel


class InvoiceMapper:
    """Maps between Invoice domain entity and InvoiceModel database model."""

    def domain_to_model(self, invoice: Invoice) -> InvoiceModel:
        """Convert Invoice domain entity to a new InvoiceModel with its line items."""
        model = InvoiceModel(id=invoice.id)
        self.update_model(model, invoice)
        return model

    def update_model(self, model: InvoiceModel, invoice: Invoice) -> None:
        """Copy the invoice onto an existing row, replacing its line items."""
        model.invoice_number = invoice.invoice_number
        model.client_id = invoice.client_id
        model.client_name = invoice.client_name
        model.project_ids = list(invoice.project_ids)
        model.time_entry_ids = list(invoice.time_entry_ids)
        model.status = invoice.status
        model.issue_date = invoice.issue_date
        model.due_date = invoice.due_date
        model.paid_date = invoice.paid_date
        model.tax_rate = invoice.tax_rate
        model.discount_rate = invoice.discount_rate
        model.subtotal = invoice.subtotal
        model.tax_amount = invoice.tax_amount
        model.discount_amount = invoice.discount_amount
        model.total_amount = invoice.total_amount
        model.currency = invoice.currency
        model.payment_terms = invoice.payment_terms
        model.is_recurring = invoice.is_recurring
        model.recurring_config = invoice.recurring_config.to_dict() if invoice.recurring_config else None
        model.notes = invoice.notes
        model.client_notes = invoice.client_notes
        model.sent_at = invoice.sent_at
        model.viewed_at = invoice.viewed_at
        model.created_by = invoice.created_by
        model.created_at = invoice.created_at
        model.updated_at = invoice.updated_at
        model.line_items = self._line_items_to_models(invoice.line_items)

    def model_to_domain(self, model: InvoiceModel) -> Invoice:
        """Convert InvoiceModel to Invoice domain entity."""
        line_items = [self._line_item_model_to_domain(item) for item in model.line_items or []]

        return Invoice(
            id=model.id,
            invoice_number=model.invoice_number,
            client_id=model.client_id,
            client_name=model.client_name or "",
            project_ids=model.project_ids or [],
            time_entry_ids=model.time_entry_ids or [],
            status=InvoiceStatus(model.status) if model.status else InvoiceStatus.DRAFT,
            issue_date=model.issue_date,
            due_date=model.due_date,
            paid_date=model.paid_date,
            line_items=line_items,
            tax_rate=model.tax_rate,
            discount_rate=model.discount_rate,
            subtotal=model.subtotal,
            tax_amount=model.tax_amount,
            discount_amount=model.discount_amount,
            total_amount=model.total_amount,
            currency=model.currency or "USD",
            payment_terms=model.payment_terms,
            is_recurring=bool(model.is_recurring),
            recurring_config=(
                RecurringInvoiceConfig.from_dict(model.recurring_config) if model.recurring_config else None
            ),
            notes=model.notes,
            client_notes=model.client_notes,
            sent_at=model.sent_at,
            viewed_at=model.viewed_at,
            created_by=model.created_by,
            created_at=model.created_at,
            updated_at=model.updated_at,
            version=model.version or 1
        )

    def _line_items_to_models(self, items: List[InvoiceLineItem]) -> List[InvoiceLineItemModel]:
        models = []
        for position, item in enumerate(items):
            if item.id is None:
                item.id = new_id()
            models.append(InvoiceLineItemModel(
                id=item.id,
                position=position,
                type=item.type,
                description=item.description,
                quantity=item.quantity,
                rate=item.rate,
                amount=item.amount,
                taxable=item.taxable,
                time_entry_id=item.time_entry_id,
                project_id=item.project_id,
                entry_date=item.entry_date
            ))
        return models

    def _line_item_model_to_domain(self, model: InvoiceLineItemModel) -> InvoiceLineItem:
        return InvoiceLineItem(
            id=model.id,
            type=LineItemType(model.type) if model.type else LineItemType.FIXED,
            description=model.description,
            quantity=model.quantity,
            rate=model.rate,
            amount=model.amount,
            taxable=model.taxable if model.taxable is not None else True,
            time_entry_id=model.time_entry_id,
            project_id=model.project_id,
            entry_date=model.entry_date
        )


class PaymentMapper:
    """Maps between Payment and PaymentModel."""

    def domain_to_model(self, payment: Payment) -> PaymentModel:
        return PaymentModel(
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

    def model_to_domain(self, model: PaymentModel) -> Payment:
        return Payment(
            id=model.id,
            invoice_id=model.invoice_id,
            amount=model.amount,
            currency=model.currency,
            payment_date=model.payment_date,
            payment_method=model.payment_method,
            reference=model.reference,
            notes=model.notes,
            external_payment_id=model.external_payment_id,
            processor_fee=model.processor_fee,
            status=PaymentStatus(model.status) if model.status else PaymentStatus.COMPLETED,
            recorded_by=model.recorded_by,
            created_at=model.created_at,
            updated_at=model.updated_at
        )
