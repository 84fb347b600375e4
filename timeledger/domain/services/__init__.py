"""
Domain services: rules spanning more than one entity.
"""

from .billing_service import BillingService
from .numbering_service import NumberingService
from .timer_service import TimerService
from .summary_service import SummaryService

__all__ = [
    "BillingService",
    "NumberingService",
    "TimerService",
    "SummaryService",
]
