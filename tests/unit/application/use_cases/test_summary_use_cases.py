"""
Unit tests for the daily summary and weekly overview use cases.
"""

import pytest
from datetime import date, datetime

from timeledger.application.dto.summary_dto import DailySummaryRequestDTO, WeeklyOverviewRequestDTO
from timeledger.application.use_cases.summary_use_cases import DailySummaryUseCase, WeeklyOverviewUseCase
from timeledger.domain.models.user import DaySchedule, WorkSchedule, default_schedule


def clock():
    return datetime(2024, 3, 20, 12, 0)


async def run_as(use_case, user, request):
    use_case.set_current_user(user)
    return await use_case.execute(request)


class TestDailySummaryUseCase:
    """Test cases for daily summaries."""

    @pytest.fixture(autouse=True)
    def wire(self, time_entry_repository, user_profile_repository, entry_factory):
        self.entries = time_entry_repository
        self.profiles = user_profile_repository
        self.entry_factory = entry_factory

    def use_case(self):
        return DailySummaryUseCase(self.entries, self.profiles, clock=clock)

    @pytest.mark.asyncio
    async def test_summarizes_callers_entries(self, employee, other_employee):
        self.entries.save(self.entry_factory(start="09:00", end="11:00"))
        self.entries.save(self.entry_factory(start="13:00", end="14:00", is_billable=False))
        self.entries.save(self.entry_factory(user_id=other_employee.user_id, duration_minutes=300))

        result = await run_as(
            self.use_case(),
            employee,
            DailySummaryRequestDTO(start_date=date(2024, 3, 4), end_date=date(2024, 3, 5))
        )

        assert result.success is True
        data = result.data
        assert data["user_id"] == employee.user_id
        monday = data["summaries"][0]
        assert monday["total_minutes"] == 180
        assert monday["billable_hours"] == 2.0
        assert monday["gaps"][0]["suggested_action"] == "untracked"
        assert data["period_summary"]["days_worked"] == 1

    @pytest.mark.asyncio
    async def test_uses_stored_work_schedule(self, employee):
        days = default_schedule()
        days["monday"] = DaySchedule(6.0, "08:00", "14:00")
        self.profiles.save_work_schedule(employee.user_id, WorkSchedule(days=days))
        self.entries.save(self.entry_factory(duration_minutes=180))

        result = await run_as(
            self.use_case(),
            employee,
            DailySummaryRequestDTO(start_date=date(2024, 3, 4), end_date=date(2024, 3, 4))
        )

        monday = result.data["summaries"][0]
        assert monday["target_hours"] == 6.0
        assert monday["completion_percentage"] == 50.0

    @pytest.mark.asyncio
    async def test_range_is_limited(self, employee):
        result = await run_as(
            self.use_case(),
            employee,
            DailySummaryRequestDTO(start_date=date(2024, 1, 1), end_date=date(2024, 2, 15))
        )

        assert result.error_code == "DATE_RANGE_TOO_LARGE"

    @pytest.mark.asyncio
    async def test_future_dates_are_refused(self, employee):
        result = await run_as(
            self.use_case(),
            employee,
            DailySummaryRequestDTO(start_date=date(2024, 3, 18), end_date=date(2024, 3, 22))
        )

        assert result.error_code == "FUTURE_DATE_NOT_ALLOWED"

    @pytest.mark.asyncio
    async def test_employee_cannot_read_others(self, employee, other_employee):
        result = await run_as(
            self.use_case(),
            employee,
            DailySummaryRequestDTO(
                start_date=date(2024, 3, 4), end_date=date(2024, 3, 4), user_id=other_employee.user_id
            )
        )

        assert result.error_type == "forbidden"

    @pytest.mark.asyncio
    async def test_manager_can_read_others(self, manager, employee):
        self.entries.save(self.entry_factory(duration_minutes=60))

        result = await run_as(
            self.use_case(),
            manager,
            DailySummaryRequestDTO(start_date=date(2024, 3, 4), end_date=date(2024, 3, 4), user_id=employee.user_id)
        )

        assert result.data["summaries"][0]["total_minutes"] == 60


class TestWeeklyOverviewUseCase:
    """Test cases for the weekly overview."""

    @pytest.fixture(autouse=True)
    def wire(self, time_entry_repository, user_profile_repository, entry_factory):
        self.entries = time_entry_repository
        self.profiles = user_profile_repository
        self.entry_factory = entry_factory

    def use_case(self):
        return WeeklyOverviewUseCase(self.entries, self.profiles, clock=clock)

    @pytest.mark.asyncio
    async def test_overview_compares_with_previous_week(self, employee):
        self.entries.save(self.entry_factory(duration_minutes=240))
        self.entries.save(self.entry_factory(entry_date=date(2024, 3, 6), duration_minutes=240))
        self.entries.save(self.entry_factory(entry_date=date(2024, 2, 27), duration_minutes=480))

        result = await run_as(self.use_case(), employee, WeeklyOverviewRequestDTO(week_start_date=date(2024, 3, 4)))

        data = result.data
        assert data["week_info"]["week_end"] == "2024-03-08"
        assert data["weekly_totals"]["total_hours"] == 8.0
        assert data["comparison"]["previous_week"]["previous_week_hours"] == 8.0
        assert data["comparison"]["previous_week"]["change"] == "+0.0"
        assert len(data["daily_summaries"]) == 5

    @pytest.mark.asyncio
    async def test_week_must_start_on_monday(self, employee):
        result = await run_as(self.use_case(), employee, WeeklyOverviewRequestDTO(week_start_date=date(2024, 3, 5)))

        assert result.error_code == "INVALID_DATE_RANGE"

    @pytest.mark.asyncio
    async def test_future_week_is_refused(self, employee):
        result = await run_as(self.use_case(), employee, WeeklyOverviewRequestDTO(week_start_date=date(2024, 3, 25)))

        assert result.error_code == "FUTURE_DATE_NOT_ALLOWED"
