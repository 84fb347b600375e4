"""
Mappers between domain entities and SQLAlchemy models.
"""

from .time_entry_mapper import TimeEntryMapper, TimerSessionMapper
from .invoice_mapper import InvoiceMapper, PaymentMapper

__all__ = [
    "TimeEntryMapper",
    "TimerSessionMapper",
    "InvoiceMapper",
    "PaymentMapper",
]
