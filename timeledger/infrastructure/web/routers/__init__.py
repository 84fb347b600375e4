from . import time_entries, invoices

__all__ = ["time_entries", "invoices"]
