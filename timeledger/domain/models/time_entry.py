"""
TimeEntry domain model.
Represents time logged against a project and its approval workflow.
"""

from datetime import datetime, date
from typing import Optional, List, Dict, Any
from enum import Enum

from timeledger.domain.models.base import (
    AggregateRoot,
    ValidationError,
    InvalidStateError,
    DomainEvent,
    utcnow,
    to_naive_utc
)


MAX_DURATION_MINUTES = 1440
DURATION_TOLERANCE_MINUTES = 1
MAX_TAGS = 10
MAX_DESCRIPTION_LENGTH = 500
MAX_REJECTION_REASON_LENGTH = 500


class TimeEntryStatus(str, Enum):
    """Time entry approval status."""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


EDITABLE_STATUSES = frozenset({TimeEntryStatus.DRAFT, TimeEntryStatus.REJECTED})


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes between two instants, rounded to the nearest minute."""
    return round((end - start).total_seconds() / 60)


# Domain Events

class TimeEntrySubmittedEvent(DomainEvent):
    """Event raised when a time entry is submitted for approval."""

    def __init__(self, entry_id: str, user_id: str, submitted_by: str):
        super().__init__()
        self.entry_id = entry_id
        self.user_id = user_id
        self.submitted_by = submitted_by

    @property
    def event_name(self) -> str:
        return "time_entry.submitted"


class TimeEntryApprovedEvent(DomainEvent):
    """Event raised when time entry is approved."""

    def __init__(self, entry_id: str, approved_by: str, duration_minutes: int):
        super().__init__()
        self.entry_id = entry_id
        self.approved_by = approved_by
        self.duration_minutes = duration_minutes

    @property
    def event_name(self) -> str:
        return "time_entry.approved"


class TimeEntryRejectedEvent(DomainEvent):
    """Event raised when time entry is rejected."""

    def __init__(self, entry_id: str, rejected_by: str, reason: str):
        super().__init__()
        self.entry_id = entry_id
        self.rejected_by = rejected_by
        self.reason = reason

    @property
    def event_name(self) -> str:
        return "time_entry.rejected"


class TimeEntry(AggregateRoot):
    """
    TimeEntry aggregate.

    Created in ``draft`` by its owner. Editable and deletable only while in
    ``draft`` or ``rejected``; afterwards it changes only through
    submit / approve / reject.
    """

    UPDATABLE_FIELDS = (
        "project_id", "task_id", "description", "entry_date", "start_time",
        "end_time", "duration_minutes", "is_billable", "hourly_rate", "tags", "notes"
    )

    def __init__(
        self,
        user_id: str,
        project_id: str,
        description: str,
        entry_date: date,
        duration_minutes: Optional[int] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        task_id: Optional[str] = None,
        is_billable: bool = True,
        hourly_rate: Optional[float] = None,
        status: TimeEntryStatus = TimeEntryStatus.DRAFT,
        tags: Optional[List[str]] = None,
        notes: Optional[str] = None,
        is_timer_entry: bool = False,
        submitted_at: Optional[datetime] = None,
        approved_at: Optional[datetime] = None,
        approved_by: Optional[str] = None,
        rejected_at: Optional[datetime] = None,
        rejected_by: Optional[str] = None,
        rejection_reason: Optional[str] = None,
        **kwargs
    ):
        super().__init__(**kwargs)

        self.user_id = user_id
        self.project_id = project_id
        self.task_id = task_id
        self.description = description
        self.entry_date = entry_date

        self.start_time = to_naive_utc(start_time)
        self.end_time = to_naive_utc(end_time)
        if duration_minutes is None and self.start_time and self.end_time:
            duration_minutes = minutes_between(self.start_time, self.end_time)
        self.duration_minutes = duration_minutes

        self.is_billable = is_billable
        self.hourly_rate = hourly_rate
        self.status = TimeEntryStatus(status)
        self.tags = list(tags or [])
        self.notes = notes
        self.is_timer_entry = is_timer_entry

        # Approval workflow
        self.submitted_at = submitted_at
        self.approved_at = approved_at
        self.approved_by = approved_by
        self.rejected_at = rejected_at
        self.rejected_by = rejected_by
        self.rejection_reason = rejection_reason

    def validate(self) -> None:
        """Check every field invariant and report all violations at once."""
        errors: List[Dict[str, Any]] = []

        if not self.user_id:
            errors.append({"field": "user_id", "message": "User ID is required"})
        if not self.project_id:
            errors.append({"field": "project_id", "message": "Project ID is required"})
        if self.description and len(self.description) > MAX_DESCRIPTION_LENGTH:
            errors.append({
                "field": "description",
                "message": f"Description cannot exceed {MAX_DESCRIPTION_LENGTH} characters"
            })

        if self.duration_minutes is None or self.duration_minutes <= 0:
            errors.append({"field": "duration_minutes", "message": "Duration must be greater than 0 minutes"})
        elif self.duration_minutes > MAX_DURATION_MINUTES:
            errors.append({
                "field": "duration_minutes",
                "message": f"Duration cannot exceed {MAX_DURATION_MINUTES} minutes"
            })

        if self.start_time and self.end_time:
            if self.end_time <= self.start_time:
                errors.append({"field": "end_time", "message": "End time must be after start time"})
            elif self.duration_minutes is not None:
                expected = minutes_between(self.start_time, self.end_time)
                if abs(expected - self.duration_minutes) > DURATION_TOLERANCE_MINUTES:
                    errors.append({
                        "field": "duration_minutes",
                        "message": "Duration does not match start and end time"
                    })

        if len(self.tags) > MAX_TAGS:
            errors.append({"field": "tags", "message": f"At most {MAX_TAGS} tags are allowed"})
        if self.hourly_rate is not None and self.hourly_rate < 0:
            errors.append({"field": "hourly_rate", "message": "Hourly rate cannot be negative"})

        if errors:
            raise ValidationError.from_errors(errors)

    @property
    def is_editable(self) -> bool:
        """Only draft and rejected entries may be edited or deleted."""
        return self.status in EDITABLE_STATUSES

    @property
    def duration_hours(self) -> float:
        """Duration in hours, rounded to two decimals."""
        return round((self.duration_minutes or 0) / 60, 2)

    def is_owned_by(self, user_id: str) -> bool:
        return self.user_id == user_id

    def ensure_editable(self) -> None:
        if not self.is_editable:
            raise InvalidStateError(
                f"Time entry {self.id} is {self.status.value} and can no longer be changed",
                "ALREADY_SUBMITTED"
            )

    def apply_changes(self, changes: Dict[str, Any]) -> None:
        """
        Apply a partial update.

        Duration is recomputed from start/end whenever either changes and no
        explicit duration is part of the patch.
        """
        self.ensure_editable()

        unknown = set(changes) - set(self.UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

        for name, value in changes.items():
            if name in ("start_time", "end_time"):
                value = to_naive_utc(value)
            if name == "tags":
                value = list(value or [])
            setattr(self, name, value)

        times_changed = "start_time" in changes or "end_time" in changes
        if times_changed and "duration_minutes" not in changes and self.start_time and self.end_time:
            self.duration_minutes = minutes_between(self.start_time, self.end_time)

        self.validate()
        self.mark_as_updated()

    def submit(self, submitted_by: str) -> None:
        """Move a draft or rejected entry to ``submitted``."""
        if not self.is_editable:
            raise InvalidStateError(
                f"Time entry {self.id} is already {self.status.value}", "ALREADY_SUBMITTED"
            )
        if not self.description or not self.description.strip():
            raise ValidationError("Time entry is missing a description", "description", code="MISSING_DESCRIPTION")
        if not self.duration_minutes or self.duration_minutes <= 0:
            raise ValidationError("Time entry has an invalid duration", "duration_minutes", code="INVALID_DURATION")

        self.status = TimeEntryStatus.SUBMITTED
        self.submitted_at = utcnow()
        self.mark_as_updated()
        self.add_event(TimeEntrySubmittedEvent(self.id, self.user_id, submitted_by))

    def approve(self, approved_by: str) -> None:
        """Approve a submitted entry."""
        self._ensure_submitted()

        self.status = TimeEntryStatus.APPROVED
        self.approved_at = utcnow()
        self.approved_by = approved_by
        self.mark_as_updated()
        self.add_event(TimeEntryApprovedEvent(self.id, approved_by, self.duration_minutes))

    def reject(self, rejected_by: str, reason: str) -> None:
        """Reject a submitted entry, sending it back to its owner for edits."""
        if not reason or not reason.strip():
            raise ValidationError("Rejection reason is required", "reason")
        if len(reason) > MAX_REJECTION_REASON_LENGTH:
            raise ValidationError(
                f"Rejection reason cannot exceed {MAX_REJECTION_REASON_LENGTH} characters", "reason"
            )
        self._ensure_submitted()

        self.status = TimeEntryStatus.REJECTED
        self.rejected_at = utcnow()
        self.rejected_by = rejected_by
        self.rejection_reason = reason.strip()
        self.mark_as_updated()
        self.add_event(TimeEntryRejectedEvent(self.id, rejected_by, self.rejection_reason))

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Whether this entry's tracked interval intersects [start, end)."""
        if not self.start_time or not self.end_time:
            return False
        return self.start_time < end and start < self.end_time

    def _ensure_submitted(self) -> None:
        if self.status != TimeEntryStatus.SUBMITTED:
            raise InvalidStateError(
                f"Time entry {self.id} is {self.status.value}, not submitted", "NOT_SUBMITTED"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "project_id": self.project_id,
            "task_id": self.task_id,
            "description": self.description,
            "date": self.entry_date.isoformat(),
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_minutes": self.duration_minutes,
            "is_billable": self.is_billable,
            "hourly_rate": self.hourly_rate,
            "status": self.status.value,
            "tags": list(self.tags),
            "notes": self.notes,
            "is_timer_entry": self.is_timer_entry,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "approved_by": self.approved_by,
            "rejected_at": self.rejected_at.isoformat() if self.rejected_at else None,
            "rejection_reason": self.rejection_reason,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
