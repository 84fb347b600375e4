"""
Summary use cases: daily summaries and the weekly overview.
Read-only; nothing here writes to the store.
"""

from typing import Any, Callable, Dict, Optional
from datetime import datetime

from timeledger.application.use_cases.base_use_case import AuthorizedUseCase, QueryUseCase
from timeledger.application.dto.summary_dto import DailySummaryRequestDTO, WeeklyOverviewRequestDTO
from timeledger.config import settings
from timeledger.domain.models.base import utcnow
from timeledger.domain.models.value_objects import DateRange
from timeledger.domain.repositories.time_entry_repository import TimeEntryRepository
from timeledger.domain.repositories.user_repository import UserProfileRepository
from timeledger.domain.services.summary_service import SummaryService


def default_summary_service() -> SummaryService:
    return SummaryService(
        gap_threshold_minutes=settings.gap_threshold_minutes,
        break_max_minutes=settings.break_max_minutes,
        max_range_days=settings.max_summary_days
    )


class SummaryUseCase(AuthorizedUseCase, QueryUseCase):
    """Common wiring of the summary reports."""

    def __init__(
        self,
        time_entry_repository: TimeEntryRepository,
        user_profile_repository: UserProfileRepository,
        summary_service: Optional[SummaryService] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        super().__init__()
        self.time_entry_repository = time_entry_repository
        self.user_profile_repository = user_profile_repository
        self.summary_service = summary_service or default_summary_service()
        self.clock = clock

    async def _check_authorization(self, request) -> None:
        if request.user_id:
            self._require_owner_or_approver(request.user_id)

    def _target_user(self, request) -> str:
        return request.user_id or self.current_user_id


class DailySummaryUseCase(SummaryUseCase):
    """Per-day totals, project breakdown and gaps over a date range of up to 31 days."""

    async def _execute_business_logic(self, request: DailySummaryRequestDTO) -> Dict[str, Any]:
        user_id = self._target_user(request)
        date_range = DateRange(request.start_date, request.end_date)
        self.summary_service.validate_range(date_range, self.clock().date())

        entries = self.time_entry_repository.find_by_user_and_date_range(
            user_id, date_range.start, date_range.end
        )
        schedule = self.user_profile_repository.get_work_schedule(user_id)

        report = self.summary_service.daily_summaries(
            entries,
            date_range,
            schedule,
            target_hours=request.target_hours,
            include_gaps=request.include_gaps
        )
        return {
            "user_id": user_id,
            "start_date": date_range.start.isoformat(),
            "end_date": date_range.end.isoformat(),
            **report.to_dict()
        }


class WeeklyOverviewUseCase(SummaryUseCase):
    """Monday to Friday overview with patterns and a comparison to the previous week."""

    async def _execute_business_logic(self, request: WeeklyOverviewRequestDTO) -> Dict[str, Any]:
        user_id = self._target_user(request)
        self.summary_service.validate_week_start(request.week_start_date, self.clock().date())

        week = self.summary_service.week_range(request.week_start_date)
        previous_week = week.shift(-7)

        entries = self.time_entry_repository.find_by_user_and_date_range(user_id, week.start, week.end)
        previous_entries = self.time_entry_repository.find_by_user_and_date_range(
            user_id, previous_week.start, previous_week.end
        )
        schedule = self.user_profile_repository.get_work_schedule(user_id)

        overview = self.summary_service.weekly_overview(
            request.week_start_date,
            entries,
            previous_entries,
            schedule,
            include_gaps=request.include_gaps
        )
        return {"user_id": user_id, **overview.to_dict()}
