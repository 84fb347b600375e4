"""Summary service for daily and weekly time reports.
Pure read-side aggregation over a user's time entries.
"""

import math
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from timeledger.domain.models.base import ValidationError
from timeledger.domain.models.time_entry import TimeEntry, minutes_between
from timeledger.domain.models.user import WorkSchedule, WEEKDAYS
from timeledger.domain.models.value_objects import DateRange, round_money


WEEK_LENGTH_DAYS = 5


def round2(value: float) -> float:
    """Round half up to two decimals."""
    return float(round_money(value))


def percentage(part: float, whole: float) -> float:
    return round2(part / whole * 100) if whole > 0 else 0.0


def day_name(day: date) -> str:
    return WEEKDAYS[day.weekday()].capitalize()


def week_number(day: date) -> int:
    """
    Week of the year counted from January 1st, Sunday-started weeks.
    Not the ISO week.
    """
    jan_first = date(day.year, 1, 1)
    past_days = (day - jan_first).days
    jan_first_weekday = (jan_first.weekday() + 1) % 7
    return math.ceil((past_days + jan_first_weekday + 1) / 7)


def format_span(minutes: int) -> str:
    return f"{minutes // 60}h {minutes % 60}m"


def signed(value: float, suffix: str = "") -> str:
    return f"{value:+.1f}{suffix}"


@dataclass
class ProjectTimeBreakdown:
    project_id: str
    minutes: int
    hours: float
    percentage: float


@dataclass
class WorkingHours:
    first_entry: Optional[str] = None
    last_entry: Optional[str] = None
    total_span: Optional[str] = None


@dataclass
class TimeGap:
    start_time: str
    end_time: str
    duration_minutes: int
    suggested_action: str


@dataclass
class DailySummary:
    """Totals of one calendar day."""

    date: date
    day_of_week: str
    total_minutes: int
    billable_minutes: int
    non_billable_minutes: int
    target_hours: float
    completion_percentage: float
    entry_count: int
    project_breakdown: List[ProjectTimeBreakdown] = field(default_factory=list)
    working_hours: WorkingHours = field(default_factory=WorkingHours)
    gaps: List[TimeGap] = field(default_factory=list)

    @property
    def total_hours(self) -> float:
        return round2(self.total_minutes / 60)

    @property
    def billable_hours(self) -> float:
        return round2(self.billable_minutes / 60)

    @property
    def non_billable_hours(self) -> float:
        return round2(self.non_billable_minutes / 60)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "day_of_week": self.day_of_week,
            "total_minutes": self.total_minutes,
            "total_hours": self.total_hours,
            "billable_minutes": self.billable_minutes,
            "billable_hours": self.billable_hours,
            "non_billable_minutes": self.non_billable_minutes,
            "non_billable_hours": self.non_billable_hours,
            "target_hours": self.target_hours,
            "completion_percentage": self.completion_percentage,
            "entry_count": self.entry_count,
            "project_breakdown": [vars(item).copy() for item in self.project_breakdown],
            "working_hours": vars(self.working_hours).copy(),
            "gaps": [vars(gap).copy() for gap in self.gaps],
        }


@dataclass
class PeriodSummary:
    total_days: int
    work_days: int
    days_worked: int
    total_hours: float
    billable_hours: float
    average_hours_per_day: float
    target_hours: float
    completion_percentage: float
    longest_day: Optional[str] = None
    shortest_day: Optional[str] = None


@dataclass
class DailySummaryReport:
    summaries: List[DailySummary]
    period: PeriodSummary

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summaries": [summary.to_dict() for summary in self.summaries],
            "period_summary": vars(self.period).copy(),
        }


@dataclass
class WeeklyTotals:
    total_hours: float
    billable_hours: float
    non_billable_hours: float
    target_hours: float
    completion_percentage: float
    entry_count: int


@dataclass
class WeeklyPatterns:
    most_productive_day: Optional[str]
    least_productive_day: Optional[str]
    longest_work_day: Optional[str]
    shortest_work_day: Optional[str]


@dataclass
class ProjectDistribution:
    project_id: str
    total_hours: float
    percentage: float
    daily_breakdown: List[Dict[str, Any]]


@dataclass
class WeekComparison:
    previous_week_hours: float
    change: str
    change_percentage: str


@dataclass
class WeeklyOverview:
    week_start: date
    week_end: date
    week_number: int
    daily_summaries: List[DailySummary]
    totals: WeeklyTotals
    patterns: WeeklyPatterns
    project_distribution: List[ProjectDistribution]
    comparison: WeekComparison

    def to_dict(self) -> Dict[str, Any]:
        return {
            "week_info": {
                "week_start": self.week_start.isoformat(),
                "week_end": self.week_end.isoformat(),
                "week_number": self.week_number,
                "year": self.week_start.year,
            },
            "daily_summaries": [summary.to_dict() for summary in self.daily_summaries],
            "weekly_totals": vars(self.totals).copy(),
            "patterns": vars(self.patterns).copy(),
            "project_distribution": [vars(item).copy() for item in self.project_distribution],
            "comparison": {"previous_week": vars(self.comparison).copy()},
        }


class SummaryService:
    """
    Domain service deriving daily and weekly reports from time entries.
    Never writes; entries without start/end times count towards totals but
    are skipped by the working-hours and gap analysis.
    """

    def __init__(
        self,
        gap_threshold_minutes: int = 15,
        break_max_minutes: int = 60,
        max_range_days: int = 31
    ):
        self.gap_threshold_minutes = gap_threshold_minutes
        self.break_max_minutes = break_max_minutes
        self.max_range_days = max_range_days

    # Validation

    def validate_range(self, date_range: DateRange, today: date) -> None:
        if date_range.days > self.max_range_days:
            raise ValidationError(
                f"Date range cannot exceed {self.max_range_days} days",
                "end_date",
                code="DATE_RANGE_TOO_LARGE"
            )
        if date_range.end > today:
            raise ValidationError("Cannot analyze future dates", "end_date", code="FUTURE_DATE_NOT_ALLOWED")

    def validate_week_start(self, week_start: date, today: date) -> None:
        if week_start.weekday() != 0:
            raise ValidationError("weekStartDate must be a Monday", "week_start_date", code="INVALID_DATE_RANGE")
        if week_start > today:
            raise ValidationError("Cannot analyze future weeks", "week_start_date", code="FUTURE_DATE_NOT_ALLOWED")

    # Daily

    def summarize_day(
        self,
        day: date,
        entries: List[TimeEntry],
        schedule: WorkSchedule,
        target_hours: Optional[float] = None,
        include_gaps: bool = True
    ) -> DailySummary:
        day_schedule = schedule.for_date(day)
        if target_hours is None:
            target_hours = day_schedule.target_hours

        total = sum(entry.duration_minutes or 0 for entry in entries)
        billable = sum(entry.duration_minutes or 0 for entry in entries if entry.is_billable)

        return DailySummary(
            date=day,
            day_of_week=day_name(day),
            total_minutes=total,
            billable_minutes=billable,
            non_billable_minutes=total - billable,
            target_hours=round2(target_hours),
            completion_percentage=percentage(total, target_hours * 60),
            entry_count=len(entries),
            project_breakdown=self._project_breakdown(entries),
            working_hours=self._working_hours(entries),
            gaps=self._gaps(day, entries, schedule) if include_gaps else [],
        )

    def daily_summaries(
        self,
        entries: List[TimeEntry],
        date_range: DateRange,
        schedule: WorkSchedule,
        target_hours: Optional[float] = None,
        include_gaps: bool = True
    ) -> DailySummaryReport:
        by_day = self._group_by_day(entries)
        summaries = [
            self.summarize_day(day, by_day.get(day, []), schedule, target_hours, include_gaps)
            for day in date_range
        ]
        return DailySummaryReport(summaries=summaries, period=self._period_summary(summaries))

    # Weekly

    def weekly_overview(
        self,
        week_start: date,
        entries: List[TimeEntry],
        previous_week_entries: List[TimeEntry],
        schedule: WorkSchedule,
        include_gaps: bool = False
    ) -> WeeklyOverview:
        week = self.week_range(week_start)
        week_entries = [entry for entry in entries if entry.entry_date in week]
        report = self.daily_summaries(week_entries, week, schedule, include_gaps=include_gaps)
        summaries = report.summaries

        totals = self._weekly_totals(summaries)
        previous_minutes = sum(
            entry.duration_minutes or 0
            for entry in previous_week_entries
            if entry.entry_date in week.shift(-7)
        )

        return WeeklyOverview(
            week_start=week.start,
            week_end=week.end,
            week_number=week_number(week.start),
            daily_summaries=summaries,
            totals=totals,
            patterns=self._weekly_patterns(summaries),
            project_distribution=self._project_distribution(week_entries),
            comparison=self._compare(totals.total_hours, round2(previous_minutes / 60)),
        )

    def week_range(self, week_start: date) -> DateRange:
        return DateRange(week_start, week_start + timedelta(days=WEEK_LENGTH_DAYS - 1))

    # Helpers

    def _group_by_day(self, entries: List[TimeEntry]) -> Dict[date, List[TimeEntry]]:
        grouped: Dict[date, List[TimeEntry]] = {}
        for entry in entries:
            grouped.setdefault(entry.entry_date, []).append(entry)
        return grouped

    def _project_breakdown(self, entries: List[TimeEntry]) -> List[ProjectTimeBreakdown]:
        minutes_by_project: Dict[str, int] = OrderedDict()
        for entry in entries:
            minutes_by_project[entry.project_id] = (
                minutes_by_project.get(entry.project_id, 0) + (entry.duration_minutes or 0)
            )
        total = sum(minutes_by_project.values())
        return [
            ProjectTimeBreakdown(
                project_id=project_id,
                minutes=minutes,
                hours=round2(minutes / 60),
                percentage=percentage(minutes, total),
            )
            for project_id, minutes in minutes_by_project.items()
        ]

    def _timed(self, entries: List[TimeEntry]) -> List[TimeEntry]:
        return sorted(
            (entry for entry in entries if entry.start_time and entry.end_time),
            key=lambda entry: entry.start_time
        )

    def _working_hours(self, entries: List[TimeEntry]) -> WorkingHours:
        timed = self._timed(entries)
        if not timed:
            return WorkingHours()

        first = timed[0].start_time
        last = max(entry.end_time for entry in timed)
        return WorkingHours(
            first_entry=first.strftime("%H:%M"),
            last_entry=last.strftime("%H:%M"),
            total_span=format_span(minutes_between(first, last)),
        )

    def _gaps(self, day: date, entries: List[TimeEntry], schedule: WorkSchedule) -> List[TimeGap]:
        """Untracked stretches between consecutive entries inside the work-day window."""
        day_schedule = schedule.for_date(day)
        window_start = datetime.combine(day, day_schedule.start_time)
        window_end = datetime.combine(day, day_schedule.end_time)

        gaps = []
        timed = self._timed(entries)
        latest_end: Optional[datetime] = None
        for entry in timed:
            if latest_end is not None:
                gap_start = max(latest_end, window_start)
                gap_end = min(entry.start_time, window_end)
                gap_minutes = minutes_between(gap_start, gap_end) if gap_end > gap_start else 0
                if gap_minutes >= self.gap_threshold_minutes:
                    gaps.append(TimeGap(
                        start_time=gap_start.strftime("%H:%M"),
                        end_time=gap_end.strftime("%H:%M"),
                        duration_minutes=gap_minutes,
                        suggested_action="break" if gap_minutes <= self.break_max_minutes else "untracked",
                    ))
            latest_end = entry.end_time if latest_end is None else max(latest_end, entry.end_time)
        return gaps

    def _period_summary(self, summaries: List[DailySummary]) -> PeriodSummary:
        total_minutes = sum(summary.total_minutes for summary in summaries)
        billable_minutes = sum(summary.billable_minutes for summary in summaries)
        target_hours = sum(summary.target_hours for summary in summaries)
        work_days = len([summary for summary in summaries if summary.target_hours > 0])
        worked = [summary for summary in summaries if summary.total_minutes > 0]
        total_hours = total_minutes / 60

        longest = max(worked, key=lambda summary: summary.total_minutes) if worked else None
        shortest = min(worked, key=lambda summary: summary.total_minutes) if worked else None

        return PeriodSummary(
            total_days=len(summaries),
            work_days=work_days,
            days_worked=len(worked),
            total_hours=round2(total_hours),
            billable_hours=round2(billable_minutes / 60),
            average_hours_per_day=round2(total_hours / work_days) if work_days else 0.0,
            target_hours=round2(target_hours),
            completion_percentage=percentage(total_hours, target_hours),
            longest_day=longest.date.isoformat() if longest else None,
            shortest_day=shortest.date.isoformat() if shortest else None,
        )

    def _weekly_totals(self, summaries: List[DailySummary]) -> WeeklyTotals:
        total_minutes = sum(summary.total_minutes for summary in summaries)
        billable_minutes = sum(summary.billable_minutes for summary in summaries)
        target_hours = sum(summary.target_hours for summary in summaries)
        total_hours = total_minutes / 60
        return WeeklyTotals(
            total_hours=round2(total_hours),
            billable_hours=round2(billable_minutes / 60),
            non_billable_hours=round2((total_minutes - billable_minutes) / 60),
            target_hours=round2(target_hours),
            completion_percentage=percentage(total_hours, target_hours),
            entry_count=sum(summary.entry_count for summary in summaries),
        )

    def _weekly_patterns(self, summaries: List[DailySummary]) -> WeeklyPatterns:
        worked = [summary for summary in summaries if summary.total_minutes > 0]
        if not worked:
            return WeeklyPatterns(None, None, None, None)

        # First day wins ties
        most = max(worked, key=lambda summary: summary.total_minutes)
        least = min(worked, key=lambda summary: summary.total_minutes)
        return WeeklyPatterns(
            most_productive_day=most.day_of_week,
            least_productive_day=least.day_of_week,
            longest_work_day=most.day_of_week,
            shortest_work_day=least.day_of_week,
        )

    def _project_distribution(self, entries: List[TimeEntry]) -> List[ProjectDistribution]:
        per_project: Dict[str, Dict[date, int]] = OrderedDict()
        for entry in entries:
            days = per_project.setdefault(entry.project_id, OrderedDict())
            days[entry.entry_date] = days.get(entry.entry_date, 0) + (entry.duration_minutes or 0)

        total = sum(sum(days.values()) for days in per_project.values())
        distribution = []
        for project_id, days in per_project.items():
            minutes = sum(days.values())
            distribution.append(ProjectDistribution(
                project_id=project_id,
                total_hours=round2(minutes / 60),
                percentage=percentage(minutes, total),
                daily_breakdown=[
                    {"date": day.isoformat(), "hours": round2(day_minutes / 60)}
                    for day, day_minutes in sorted(days.items())
                ],
            ))
        return distribution

    def _compare(self, current_hours: float, previous_hours: float) -> WeekComparison:
        change = current_hours - previous_hours
        if previous_hours > 0:
            change_percentage = change / previous_hours * 100
        else:
            change_percentage = 100.0 if current_hours > 0 else 0.0
        return WeekComparison(
            previous_week_hours=previous_hours,
            change=signed(change),
            change_percentage=signed(change_percentage, "%"),
        )
