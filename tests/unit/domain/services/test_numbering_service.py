"""
Unit tests for NumberingService.
"""

import pytest
from datetime import date

from timeledger.domain.models.base import ValidationError
from timeledger.domain.services.numbering_service import NumberingService


class TestNumberingService:
    """Test cases for NumberingService."""

    def setup_method(self):
        self.service = NumberingService()

    def test_period_for(self):
        assert self.service.period_for(date(2024, 3, 9)) == "2024-03"

    def test_format_invoice_number_pads_sequence(self):
        assert self.service.format_invoice_number("2024-03", 7) == "INV-2024-03-007"
        assert self.service.format_invoice_number("2024-03", 1234) == "INV-2024-03-1234"

    def test_format_rejects_non_positive_sequence(self):
        with pytest.raises(ValidationError):
            self.service.format_invoice_number("2024-03", 0)

    def test_parse_invoice_number(self):
        assert self.service.parse_invoice_number("INV-2024-12-042") == ("2024-12", 42)

    @pytest.mark.parametrize("value", ["", "INV-2024-3-001", "BILL-2024-03-001", "INV-2024-03-01"])
    def test_parse_rejects_malformed_numbers(self, value):
        with pytest.raises(ValidationError, match="Invalid invoice number"):
            self.service.parse_invoice_number(value)
