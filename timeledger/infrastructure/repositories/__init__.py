"""
SQLAlchemy implementations of the domain repositories.
"""

from .time_entry_repository import SQLAlchemyTimeEntryRepository, SQLAlchemyTimerRepository
from .invoice_repository import SQLAlchemyInvoiceRepository
from .user_repository import SQLAlchemyUserProfileRepository

__all__ = [
    "SQLAlchemyTimeEntryRepository",
    "SQLAlchemyTimerRepository",
    "SQLAlchemyInvoiceRepository",
    "SQLAlchemyUserProfileRepository",
]
