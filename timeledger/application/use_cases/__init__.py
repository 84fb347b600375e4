"""
Application layer use cases.
Business logic for time tracking, approvals, invoicing and summaries.
"""

from .base_use_case import (
    BaseUseCase,
    QueryUseCase,
    CommandUseCase,
    BulkUseCase,
    PaginatedQueryUseCase,
    CreateUseCase,
    UpdateUseCase,
    DeleteUseCase,
    GetByIdUseCase,
    ListUseCase,
    AuthorizedUseCase,
    UseCaseResult,
    BulkResult,
    BulkItemFailure
)
from .time_entry_use_cases import (
    CreateTimeEntryUseCase,
    GetTimeEntryUseCase,
    ListTimeEntriesUseCase,
    UpdateTimeEntryUseCase,
    DeleteTimeEntryUseCase,
    QuickAddTimeEntryUseCase,
    SubmitTimeEntriesUseCase,
    ApproveTimeEntriesUseCase,
    RejectTimeEntriesUseCase,
    StartTimerUseCase,
    StopTimerUseCase,
    TimerStatusUseCase
)
from .invoice_use_cases import (
    CreateInvoiceUseCase,
    GetInvoiceUseCase,
    ListInvoicesUseCase,
    UpdateInvoiceUseCase,
    UpdateInvoiceStatusUseCase,
    RecordPaymentUseCase,
    ListPaymentsUseCase
)
from .summary_use_cases import DailySummaryUseCase, WeeklyOverviewUseCase

__all__ = [
    # Base Use Cases
    "BaseUseCase",
    "QueryUseCase",
    "CommandUseCase",
    "BulkUseCase",
    "PaginatedQueryUseCase",
    "CreateUseCase",
    "UpdateUseCase",
    "DeleteUseCase",
    "GetByIdUseCase",
    "ListUseCase",
    "AuthorizedUseCase",
    "UseCaseResult",
    "BulkResult",
    "BulkItemFailure",

    # Time Entry Use Cases
    "CreateTimeEntryUseCase",
    "GetTimeEntryUseCase",
    "ListTimeEntriesUseCase",
    "UpdateTimeEntryUseCase",
    "DeleteTimeEntryUseCase",
    "QuickAddTimeEntryUseCase",
    "SubmitTimeEntriesUseCase",
    "ApproveTimeEntriesUseCase",
    "RejectTimeEntriesUseCase",
    "StartTimerUseCase",
    "StopTimerUseCase",
    "TimerStatusUseCase",

    # Invoice Use Cases
    "CreateInvoiceUseCase",
    "GetInvoiceUseCase",
    "ListInvoicesUseCase",
    "UpdateInvoiceUseCase",
    "UpdateInvoiceStatusUseCase",
    "RecordPaymentUseCase",
    "ListPaymentsUseCase",

    # Summary Use Cases
    "DailySummaryUseCase",
    "WeeklyOverviewUseCase",
]
