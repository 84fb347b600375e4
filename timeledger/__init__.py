"""
Time Ledger: time tracking, approval workflow, invoicing and payments.
"""

__version__ = "1.0.0"
