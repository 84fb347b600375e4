"""Billing service for invoice dates and line items.
Handles due dates, recurrence dates and turning time entries into invoice lines.
"""

import calendar
import re
from typing import List, Optional, Set
from decimal import Decimal
from datetime import date, timedelta

from timeledger.domain.models.base import ValidationError, InvalidStateError, BusinessRuleViolation
from timeledger.domain.models.time_entry import TimeEntry, TimeEntryStatus
from timeledger.domain.models.invoice import (
    InvoiceLineItem,
    LineItemType,
    RecurringFrequency,
    RecurringInvoiceConfig
)
from timeledger.domain.models.value_objects import round_money, to_decimal


DEFAULT_DUE_DAYS = 30
DUE_ON_RECEIPT = "Due on receipt"

_NET_TERMS = re.compile(r"^Net\s+(\d+)$", re.IGNORECASE)


def add_months(day: date, months: int) -> date:
    """Shift by whole months, clamping to the last day of shorter months."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


class BillingService:
    """
    Domain service for billing rules that span more than one entity.
    """

    def calculate_due_date(self, issue_date: date, payment_terms: Optional[str]) -> date:
        """
        Due date from payment terms.

        "Net N" gives N days, "Due on receipt" gives the issue date and
        anything else falls back to 30 days.
        """
        terms = (payment_terms or "").strip()
        match = _NET_TERMS.match(terms)
        if match:
            return issue_date + timedelta(days=int(match.group(1)))
        if terms.lower() == DUE_ON_RECEIPT.lower():
            return issue_date
        return issue_date + timedelta(days=DEFAULT_DUE_DAYS)

    def calculate_next_invoice_date(self, start_date: date, frequency: RecurringFrequency, interval: int = 1) -> date:
        """Next occurrence after ``start_date``. Pure date arithmetic, nothing is scheduled."""
        if interval < 1:
            raise ValidationError("Interval must be at least 1", "interval")

        frequency = RecurringFrequency(frequency)
        if frequency == RecurringFrequency.WEEKLY:
            return start_date + timedelta(weeks=interval)
        if frequency == RecurringFrequency.MONTHLY:
            return add_months(start_date, interval)
        if frequency == RecurringFrequency.QUARTERLY:
            return add_months(start_date, 3 * interval)
        return add_months(start_date, 12 * interval)

    def prepare_recurring_config(self, config: RecurringInvoiceConfig) -> RecurringInvoiceConfig:
        """Fill in the next invoice date of a fresh recurring config."""
        if config.next_invoice_date is None:
            config.next_invoice_date = self.calculate_next_invoice_date(
                config.start_date, config.frequency, config.interval
            )
        if config.end_date and config.next_invoice_date > config.end_date:
            config.is_active = False
        if config.max_invoices is not None and config.invoices_generated >= config.max_invoices:
            config.is_active = False
        return config

    def check_billable_entries(
        self,
        requested_ids: List[str],
        entries: List[TimeEntry],
        already_invoiced: Set[str]
    ) -> List[TimeEntry]:
        """
        Return the requested entries in request order, after checking each one
        can be billed.
        """
        by_id = {entry.id: entry for entry in entries}
        missing = [entry_id for entry_id in requested_ids if entry_id not in by_id]
        if missing:
            raise ValidationError(
                f"Time entries not found: {', '.join(missing)}",
                "time_entry_ids",
                code="TIME_ENTRIES_NOT_FOUND"
            )

        invoiced = [entry_id for entry_id in requested_ids if entry_id in already_invoiced]
        if invoiced:
            raise InvalidStateError(
                f"Time entries already invoiced: {', '.join(invoiced)}",
                "TIME_ENTRIES_ALREADY_INVOICED"
            )

        not_approved = [
            entry_id for entry_id in requested_ids
            if by_id[entry_id].status != TimeEntryStatus.APPROVED
        ]
        if not_approved:
            raise InvalidStateError(
                f"Only approved time entries can be invoiced: {', '.join(not_approved)}",
                "TIME_ENTRIES_NOT_APPROVED"
            )

        return [by_id[entry_id] for entry_id in requested_ids if by_id[entry_id].is_billable]

    def build_time_line_items(
        self,
        entries: List[TimeEntry],
        default_rate: Optional[Decimal] = None
    ) -> List[InvoiceLineItem]:
        """One ``time`` line per billable entry: hours at the entry's rate or the default."""
        items = []
        for entry in entries:
            rate = entry.hourly_rate if entry.hourly_rate is not None else default_rate
            if rate is None:
                raise BusinessRuleViolation(
                    f"Time entry {entry.id} has no hourly rate and no default rate was given",
                    "MISSING_HOURLY_RATE"
                )
            items.append(InvoiceLineItem(
                type=LineItemType.TIME,
                description=entry.description or f"Time entry {entry.id}",
                quantity=round_money(Decimal(entry.duration_minutes or 0) / 60),
                rate=to_decimal(rate),
                taxable=True,
                time_entry_id=entry.id,
                project_id=entry.project_id,
                entry_date=entry.entry_date,
            ))
        return items
