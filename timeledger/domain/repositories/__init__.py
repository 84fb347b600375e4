"""
Repository interfaces for the domain layer.
"""

from .time_entry_repository import TimeEntryRepository, TimeEntryFilter, TimerRepository
from .invoice_repository import InvoiceRepository, InvoiceFilter
from .user_repository import UserProfileRepository

__all__ = [
    "TimeEntryRepository",
    "TimeEntryFilter",
    "TimerRepository",
    "InvoiceRepository",
    "InvoiceFilter",
    "UserProfileRepository",
]
