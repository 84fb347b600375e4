"""
Time entry mapper for converting between domain entities and database models.
"""

from typing import Optional

from timeledger.domain.models.time_entry import TimeEntry, TimeEntryStatus
from timeledger.domain.models.timer_session import TimerSession
from timeledger.infrastructure.db.models import TimeEntryModel, TimerSessionModel


def _float_or_none(value) -> Optional[float]:
    return float(value) if value is not None else None


class TimeEntryMapper:
    """Maps between TimeEntry domain entity and TimeEntryModel database model."""

    def domain_to_model(self, time_entry: TimeEntry) -> TimeEntryModel:
        """Convert TimeEntry domain entity to a new TimeEntryModel."""
        model = TimeEntryModel(id=time_entry.id)
        self.update_model(model, time_entry)
        return model

    def update_model(self, model: TimeEntryModel, time_entry: TimeEntry) -> None:
        """Copy every mutable field of the entity onto an existing row."""
        model.user_id = time_entry.user_id
        model.project_id = time_entry.project_id
        model.task_id = time_entry.task_id
        model.description = time_entry.description or ""
        model.entry_date = time_entry.entry_date
        model.start_time = time_entry.start_time
        model.end_time = time_entry.end_time
        model.duration_minutes = time_entry.duration_minutes
        model.is_billable = time_entry.is_billable
        model.hourly_rate = time_entry.hourly_rate
        model.status = time_entry.status
        model.is_timer_entry = time_entry.is_timer_entry
        model.submitted_at = time_entry.submitted_at
        model.approved_at = time_entry.approved_at
        model.approved_by = time_entry.approved_by
        model.rejected_at = time_entry.rejected_at
        model.rejected_by = time_entry.rejected_by
        model.rejection_reason = time_entry.rejection_reason
        model.tags = list(time_entry.tags)
        model.notes = time_entry.notes
        model.created_at = time_entry.created_at
        model.updated_at = time_entry.updated_at

    def model_to_domain(self, model: TimeEntryModel) -> TimeEntry:
        """Convert TimeEntryModel to TimeEntry domain entity."""
        return TimeEntry(
            id=model.id,
            user_id=model.user_id,
            project_id=model.project_id,
            task_id=model.task_id,
            description=model.description or "",
            entry_date=model.entry_date,
            start_time=model.start_time,
            end_time=model.end_time,
            duration_minutes=model.duration_minutes,
            is_billable=model.is_billable if model.is_billable is not None else True,
            hourly_rate=_float_or_none(model.hourly_rate),
            status=TimeEntryStatus(model.status) if model.status else TimeEntryStatus.DRAFT,
            tags=model.tags or [],
            notes=model.notes,
            is_timer_entry=bool(model.is_timer_entry),
            submitted_at=model.submitted_at,
            approved_at=model.approved_at,
            approved_by=model.approved_by,
            rejected_at=model.rejected_at,
            rejected_by=model.rejected_by,
            rejection_reason=model.rejection_reason,
            created_at=model.created_at,
            updated_at=model.updated_at,
            version=model.version or 1
        )


class TimerSessionMapper:
    """Maps between TimerSession and TimerSessionModel."""

    def domain_to_model(self, timer: TimerSession) -> TimerSessionModel:
        return TimerSessionModel(
            id=timer.id,
            user_id=timer.user_id,
            project_id=timer.project_id,
            task_id=timer.task_id,
            description=timer.description,
            start_time=timer.start_time,
            tags=list(timer.tags),
            notes=timer.notes,
            created_at=timer.created_at,
            updated_at=timer.updated_at
        )

    def model_to_domain(self, model: TimerSessionModel) -> TimerSession:
        return TimerSession(
            id=model.id,
            user_id=model.user_id,
            project_id=model.project_id,
            task_id=model.task_id,
            description=model.description,
            start_time=model.start_time,
            tags=model.tags or [],
            notes=model.notes,
            created_at=model.created_at,
            updated_at=model.updated_at
        )
