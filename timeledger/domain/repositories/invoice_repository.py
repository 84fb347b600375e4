"""Invoice repository interface.
Defines the contract for invoice and payment persistence operations.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Set, Tuple
from datetime import date

from timeledger.domain.models.invoice import Invoice, InvoiceStatus, Payment


@dataclass
class InvoiceFilter:
    """Criteria for listing invoices. ``None`` means unfiltered."""

    client_id: Optional[str] = None
    status: Optional[InvoiceStatus] = None
    project_id: Optional[str] = None
    is_recurring: Optional[bool] = None
    issue_date_from: Optional[date] = None
    issue_date_to: Optional[date] = None
    due_date_from: Optional[date] = None
    due_date_to: Optional[date] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    currency: Optional[str] = None
    created_by: Optional[str] = None


class InvoiceRepository(ABC):
    """
    Repository interface for Invoice aggregate and its payments.
    """

    @abstractmethod
    def create(self, invoice: Invoice) -> Invoice:
        """
        Insert a new invoice.

        Allocates the next invoice number for the invoice's issue month and
        inserts the invoice in the same transaction.
        """
        pass

    @abstractmethod
    def save(self, invoice: Invoice) -> Invoice:
        """Update an existing invoice, replacing its line items."""
        pass

    @abstractmethod
    def find_by_id(self, invoice_id: str) -> Optional[Invoice]:
        pass

    @abstractmethod
    def find_by_number(self, invoice_number: str) -> Optional[Invoice]:
        pass

    @abstractmethod
    def find_many(self, criteria: InvoiceFilter, limit: int = 50, offset: int = 0) -> List[Invoice]:
        """List invoices matching ``criteria``, most recent issue date first."""
        pass

    @abstractmethod
    def count(self, criteria: InvoiceFilter) -> int:
        pass

    @abstractmethod
    def find_invoiced_time_entry_ids(self, entry_ids: List[str]) -> Set[str]:
        """Which of ``entry_ids`` already appear on a non-cancelled invoice."""
        pass

    @abstractmethod
    def record_payment(self, payment: Payment) -> Tuple[Payment, Invoice]:
        """
        Record a payment atomically.

        Locks the invoice, checks the new payment against the sum of the
        existing ones, inserts it and, when the balance is settled, marks the
        invoice paid. Both writes commit together or not at all.
        """
        pass

    @abstractmethod
    def find_payments(self, invoice_id: str) -> List[Payment]:
        """Payments of an invoice ordered by payment date."""
        pass

    @abstractmethod
    def total_paid(self, invoice_id: str) -> Decimal:
        pass
