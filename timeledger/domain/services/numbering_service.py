"""Numbering service for invoice numbers.
Handles period keys, formatting and parsing of sequential invoice numbers.
"""

import re
from datetime import date
from typing import Tuple

from timeledger.domain.models.base import ValidationError


INVOICE_PREFIX = "INV"

_INVOICE_NUMBER = re.compile(r"^INV-(\d{4})-(\d{2})-(\d{3,})$")


class NumberingService:
    """
    Domain service for invoice numbering.

    Numbers look like ``INV-2024-03-007``: year, month and the sequence within
    that month. The sequence itself comes from a per-month counter kept by the
    store; this service only formats and parses.
    """

    def period_for(self, day: date) -> str:
        """Counter key for the month of ``day``, e.g. ``2024-03``."""
        return f"{day.year:04d}-{day.month:02d}"

    def format_invoice_number(self, period: str, sequence: int) -> str:
        if sequence < 1:
            raise ValidationError("Invoice sequence must be positive", "sequence")
        return f"{INVOICE_PREFIX}-{period}-{sequence:03d}"

    def parse_invoice_number(self, invoice_number: str) -> Tuple[str, int]:
        """Split an invoice number into its period and sequence."""
        match = _INVOICE_NUMBER.match(invoice_number or "")
        if not match:
            raise ValidationError(f"Invalid invoice number: {invoice_number}", "invoice_number")
        year, month, sequence = match.groups()
        return f"{year}-{month}", int(sequence)
