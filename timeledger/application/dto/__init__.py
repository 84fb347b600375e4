"""
Data Transfer Objects of the application layer.
"""

from .base_dto import (
    BaseDTO,
    RequestDTO,
    ResponseDTO,
    EntityIdRequestDTO,
    ListRequestDTO,
    BulkIdsRequestDTO
)
from .time_entry_dto import (
    CreateTimeEntryRequestDTO,
    UpdateTimeEntryRequestDTO,
    QuickAddTimeEntryRequestDTO,
    SubmitTimeEntriesRequestDTO,
    ApproveTimeEntriesRequestDTO,
    RejectTimeEntriesRequestDTO,
    StartTimerRequestDTO,
    StopTimerRequestDTO,
    TimerStatusRequestDTO,
    ListTimeEntriesRequestDTO,
    TimeEntryResponseDTO,
    RunningTimerResponseDTO,
    TimerStatusResponseDTO,
    TimeEntryListResponseDTO
)
from .invoice_dto import (
    LineItemDTO,
    RecurringConfigDTO,
    CreateInvoiceRequestDTO,
    UpdateInvoiceRequestDTO,
    UpdateInvoiceStatusRequestDTO,
    RecordPaymentRequestDTO,
    ListInvoicesRequestDTO,
    InvoiceResponseDTO,
    PaymentResponseDTO,
    RecordPaymentResponseDTO,
    InvoiceListResponseDTO,
    PaymentListResponseDTO
)
from .summary_dto import DailySummaryRequestDTO, WeeklyOverviewRequestDTO

__all__ = [
    "BaseDTO",
    "RequestDTO",
    "ResponseDTO",
    "EntityIdRequestDTO",
    "ListRequestDTO",
    "BulkIdsRequestDTO",
    "CreateTimeEntryRequestDTO",
    "UpdateTimeEntryRequestDTO",
    "QuickAddTimeEntryRequestDTO",
    "SubmitTimeEntriesRequestDTO",
    "ApproveTimeEntriesRequestDTO",
    "RejectTimeEntriesRequestDTO",
    "StartTimerRequestDTO",
    "StopTimerRequestDTO",
    "TimerStatusRequestDTO",
    "ListTimeEntriesRequestDTO",
    "TimeEntryResponseDTO",
    "RunningTimerResponseDTO",
    "TimerStatusResponseDTO",
    "TimeEntryListResponseDTO",
    "LineItemDTO",
    "RecurringConfigDTO",
    "CreateInvoiceRequestDTO",
    "UpdateInvoiceRequestDTO",
    "UpdateInvoiceStatusRequestDTO",
    "RecordPaymentRequestDTO",
    "ListInvoicesRequestDTO",
    "InvoiceResponseDTO",
    "PaymentResponseDTO",
    "RecordPaymentResponseDTO",
    "InvoiceListResponseDTO",
    "PaymentListResponseDTO",
    "DailySummaryRequestDTO",
    "WeeklyOverviewRequestDTO",
]
