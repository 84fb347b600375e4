"""Timer service for managing time tracking logic.
Handles timer start/stop, quick entries and overlap detection.
"""

from typing import List, Optional
from datetime import datetime, timedelta

from timeledger.domain.models.base import ValidationError, BusinessRuleViolation, to_naive_utc, utcnow
from timeledger.domain.models.time_entry import (
    TimeEntry,
    TimeEntryStatus,
    MAX_DURATION_MINUTES,
    minutes_between
)
from timeledger.domain.models.timer_session import TimerSession


QUICK_ENTRY_GAP_NOTE = "Created via quick entry to fill time gap"


class TimerService:
    """
    Domain service for time tracking logic and validations.
    Builds timer sessions and the entries they produce; persistence is left
    to the repositories.
    """

    def __init__(self):
        self.min_session_minutes = 1
        self.max_session_minutes = MAX_DURATION_MINUTES

    def start_timer(
        self,
        user_id: str,
        project_id: str,
        task_id: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> TimerSession:
        """Create a new timer session starting ``now``."""
        timer = TimerSession(
            user_id=user_id,
            project_id=project_id,
            task_id=task_id,
            description=description,
            tags=tags,
            notes=notes,
            start_time=now or utcnow()
        )
        timer.validate()
        return timer

    def stop_timer(
        self,
        timer: TimerSession,
        now: Optional[datetime] = None,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
        notes: Optional[str] = None,
        is_billable: bool = True,
        hourly_rate: Optional[float] = None
    ) -> TimeEntry:
        """
        Turn a running timer into a draft time entry.

        The end is clamped so the entry lasts between one minute and a full
        day; timers left running longer are capped at 24 hours.
        """
        end_time = to_naive_utc(now) or utcnow()
        earliest = timer.start_time + timedelta(minutes=self.min_session_minutes)
        latest = timer.start_time + timedelta(minutes=self.max_session_minutes)
        end_time = min(max(end_time, earliest), latest)

        entry = TimeEntry(
            user_id=timer.user_id,
            project_id=timer.project_id,
            task_id=timer.task_id,
            description=description if description is not None else (timer.description or ""),
            entry_date=timer.start_time.date(),
            start_time=timer.start_time,
            end_time=end_time,
            is_billable=is_billable,
            hourly_rate=hourly_rate,
            tags=tags if tags is not None else timer.tags,
            notes=notes if notes is not None else timer.notes,
            status=TimeEntryStatus.DRAFT,
            is_timer_entry=True
        )
        entry.validate()
        return entry

    def create_quick_entry(
        self,
        user_id: str,
        project_id: str,
        start_time: datetime,
        end_time: datetime,
        description: str = "",
        task_id: Optional[str] = None,
        is_billable: bool = True,
        hourly_rate: Optional[float] = None,
        tags: Optional[List[str]] = None,
        fill_gap: bool = False
    ) -> TimeEntry:
        """Build a draft entry from an explicit start and end."""
        start_time = to_naive_utc(start_time)
        end_time = to_naive_utc(end_time)
        if end_time <= start_time:
            raise ValidationError("End time must be after start time", "end_time")

        duration = minutes_between(start_time, end_time)
        if duration < self.min_session_minutes:
            raise ValidationError("Quick entries must last at least 1 minute", "end_time")
        if duration > self.max_session_minutes:
            raise ValidationError("Quick entries cannot exceed 24 hours", "end_time")

        entry = TimeEntry(
            user_id=user_id,
            project_id=project_id,
            task_id=task_id,
            description=description,
            entry_date=start_time.date(),
            start_time=start_time,
            end_time=end_time,
            is_billable=is_billable,
            hourly_rate=hourly_rate,
            tags=tags,
            notes=QUICK_ENTRY_GAP_NOTE if fill_gap else None
        )
        entry.validate()
        return entry

    def detect_overlapping_entries(
        self,
        entries: List[TimeEntry],
        start_time: datetime,
        end_time: datetime,
        exclude_id: Optional[str] = None
    ) -> List[TimeEntry]:
        """Entries whose tracked interval intersects [start_time, end_time)."""
        return [
            entry for entry in entries
            if entry.id != exclude_id and entry.overlaps(start_time, end_time)
        ]

    def ensure_no_overlap(
        self,
        entries: List[TimeEntry],
        start_time: datetime,
        end_time: datetime,
        exclude_id: Optional[str] = None
    ) -> None:
        overlapping = self.detect_overlapping_entries(entries, start_time, end_time, exclude_id)
        if overlapping:
            raise BusinessRuleViolation(
                f"Time entry overlaps with {len(overlapping)} existing entr"
                f"{'y' if len(overlapping) == 1 else 'ies'}",
                "TIME_ENTRY_OVERLAP"
            )
