"""
Unit tests for SummaryService daily and weekly reports.
"""

import pytest
from datetime import date, datetime

from timeledger.domain.models.base import ValidationError
from timeledger.domain.models.time_entry import TimeEntry
from timeledger.domain.models.user import WorkSchedule
from timeledger.domain.models.value_objects import DateRange
from timeledger.domain.services.summary_service import SummaryService, week_number


MONDAY = date(2024, 3, 4)


def timed(day, start, end, project_id="project-1", is_billable=True):
    start_h, start_m = map(int, start.split(":"))
    end_h, end_m = map(int, end.split(":"))
    return TimeEntry(
        user_id="employee-1",
        project_id=project_id,
        description="Work",
        entry_date=day,
        start_time=datetime(day.year, day.month, day.day, start_h, start_m),
        end_time=datetime(day.year, day.month, day.day, end_h, end_m),
        is_billable=is_billable
    )


def untimed(day, minutes, project_id="project-1"):
    return TimeEntry(
        user_id="employee-1",
        project_id=project_id,
        description="Work",
        entry_date=day,
        duration_minutes=minutes
    )


class TestDailySummary:
    """Test cases for single-day summaries."""

    def setup_method(self):
        self.service = SummaryService()
        self.schedule = WorkSchedule()
        self.entries = [
            timed(MONDAY, "09:00", "10:00"),
            timed(MONDAY, "10:30", "12:00", project_id="project-2", is_billable=False),
            timed(MONDAY, "14:00", "15:00"),
        ]

    def test_totals_and_completion(self):
        summary = self.service.summarize_day(MONDAY, self.entries, self.schedule)

        assert summary.day_of_week == "Monday"
        assert summary.total_minutes == 210
        assert summary.billable_minutes == 120
        assert summary.non_billable_minutes == 90
        assert summary.target_hours == 8.0
        assert summary.completion_percentage == 43.75
        assert summary.entry_count == 3

    def test_project_breakdown(self):
        summary = self.service.summarize_day(MONDAY, self.entries, self.schedule)

        breakdown = {item.project_id: item for item in summary.project_breakdown}
        assert breakdown["project-1"].minutes == 120
        assert breakdown["project-1"].percentage == 57.14
        assert breakdown["project-2"].percentage == 42.86

    def test_working_hours_span(self):
        summary = self.service.summarize_day(MONDAY, self.entries, self.schedule)

        assert summary.working_hours.first_entry == "09:00"
        assert summary.working_hours.last_entry == "15:00"
        assert summary.working_hours.total_span == "6h 0m"

    def test_gaps_are_classified(self):
        summary = self.service.summarize_day(MONDAY, self.entries, self.schedule)

        gaps = [(gap.start_time, gap.end_time, gap.duration_minutes, gap.suggested_action) for gap in summary.gaps]
        assert gaps == [
            ("10:00", "10:30", 30, "break"),
            ("12:00", "14:00", 120, "untracked"),
        ]

    def test_short_gaps_are_ignored(self):
        entries = [timed(MONDAY, "09:00", "10:00"), timed(MONDAY, "10:10", "11:00")]

        summary = self.service.summarize_day(MONDAY, entries, self.schedule)

        assert summary.gaps == []

    def test_untimed_entries_count_but_have_no_working_hours(self):
        summary = self.service.summarize_day(MONDAY, [untimed(MONDAY, 120)], self.schedule)

        assert summary.total_minutes == 120
        assert summary.working_hours.first_entry is None
        assert summary.gaps == []

    def test_weekend_has_zero_target(self):
        saturday = date(2024, 3, 9)

        summary = self.service.summarize_day(saturday, [untimed(saturday, 60)], self.schedule)

        assert summary.target_hours == 0.0
        assert summary.completion_percentage == 0.0

    def test_target_override(self):
        summary = self.service.summarize_day(MONDAY, self.entries, self.schedule, target_hours=7)

        assert summary.completion_percentage == 50.0

    def test_period_summary_over_a_week(self):
        week = DateRange(MONDAY, date(2024, 3, 10))

        report = self.service.daily_summaries(self.entries + [untimed(date(2024, 3, 5), 60)], week, self.schedule)

        assert len(report.summaries) == 7
        assert report.period.total_days == 7
        assert report.period.work_days == 5
        assert report.period.days_worked == 2
        assert report.period.total_hours == 4.5
        assert report.period.longest_day == "2024-03-04"
        assert report.period.shortest_day == "2024-03-05"
        assert report.period.average_hours_per_day == 0.9


class TestRangeValidation:
    """Test cases for summary range checks."""

    def setup_method(self):
        self.service = SummaryService()
        self.today = date(2024, 3, 20)

    def test_range_too_large(self):
        with pytest.raises(ValidationError) as exc_info:
            self.service.validate_range(DateRange(date(2024, 1, 1), date(2024, 2, 1)), self.today)

        assert exc_info.value.code == "DATE_RANGE_TOO_LARGE"

    def test_future_range(self):
        with pytest.raises(ValidationError) as exc_info:
            self.service.validate_range(DateRange(date(2024, 3, 18), date(2024, 3, 21)), self.today)

        assert exc_info.value.code == "FUTURE_DATE_NOT_ALLOWED"

    def test_week_must_start_on_monday(self):
        with pytest.raises(ValidationError) as exc_info:
            self.service.validate_week_start(date(2024, 3, 5), self.today)

        assert exc_info.value.code == "INVALID_DATE_RANGE"

    def test_reversed_range_is_invalid(self):
        with pytest.raises(ValidationError, match="End date cannot be before start date"):
            DateRange(date(2024, 3, 5), date(2024, 3, 4))


class TestWeeklyOverview:
    """Test cases for the weekly overview."""

    def setup_method(self):
        self.service = SummaryService()
        self.schedule = WorkSchedule()

    def test_week_number_counts_from_january_first(self):
        assert week_number(date(2024, 1, 1)) == 1
        assert week_number(MONDAY) == 10

    def test_overview(self):
        entries = [
            untimed(MONDAY, 120),
            untimed(date(2024, 3, 5), 180, project_id="project-2"),
            untimed(date(2024, 3, 5), 60),
            untimed(date(2024, 3, 9), 600),
        ]
        previous = [untimed(date(2024, 2, 26), 300)]

        overview = self.service.weekly_overview(MONDAY, entries, previous, self.schedule)

        assert overview.week_end == date(2024, 3, 8)
        assert len(overview.daily_summaries) == 5
        assert overview.totals.total_hours == 6.0
        assert overview.totals.target_hours == 40.0
        assert overview.totals.completion_percentage == 15.0
        assert overview.totals.entry_count == 3
        assert overview.patterns.most_productive_day == "Tuesday"
        assert overview.patterns.least_productive_day == "Monday"
        assert overview.comparison.previous_week_hours == 5.0
        assert overview.comparison.change == "+1.0"
        assert overview.comparison.change_percentage == "+20.0%"

        distribution = {item.project_id: item for item in overview.project_distribution}
        assert distribution["project-1"].total_hours == 3.0
        assert distribution["project-1"].daily_breakdown == [
            {"date": "2024-03-04", "hours": 2.0},
            {"date": "2024-03-05", "hours": 1.0},
        ]
        assert distribution["project-2"].percentage == 50.0

    def test_empty_week_has_no_patterns(self):
        overview = self.service.weekly_overview(MONDAY, [], [], self.schedule)

        assert overview.patterns.most_productive_day is None
        assert overview.comparison.change_percentage == "+0.0%"
