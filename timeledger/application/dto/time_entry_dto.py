"""
Time Entry DTOs for the application layer.
Data Transfer Objects for time tracking operations.
"""

from typing import Annotated, Optional, List, Dict, Any
from datetime import datetime, date
from pydantic import AfterValidator, Field, field_validator, model_validator

from timeledger.domain.models.time_entry import (
    TimeEntry,
    TimeEntryStatus,
    MAX_DURATION_MINUTES,
    MAX_TAGS,
    MAX_DESCRIPTION_LENGTH,
    MAX_REJECTION_REASON_LENGTH
)
from timeledger.domain.models.timer_session import TimerSession
from .base_dto import BaseDTO, RequestDTO, ResponseDTO, ListRequestDTO, BulkIdsRequestDTO


def _clean_tags(value: List[str]) -> List[str]:
    return [tag.strip() for tag in value if tag and tag.strip()]


Tags = Annotated[List[str], AfterValidator(_clean_tags)]


# Request DTOs
class CreateTimeEntryRequestDTO(RequestDTO):
    """DTO for manual time entry creation."""

    project_id: str = Field(min_length=1, description="Project ID")
    task_id: Optional[str] = Field(default=None, description="Task ID (optional)")
    description: str = Field(default="", max_length=MAX_DESCRIPTION_LENGTH, description="Work description")
    entry_date: date = Field(alias="date", description="Date when work was performed")

    # Time tracking
    start_time: Optional[datetime] = Field(default=None, description="Start timestamp")
    end_time: Optional[datetime] = Field(default=None, description="End timestamp")
    duration_minutes: Optional[int] = Field(
        default=None, ge=1, le=MAX_DURATION_MINUTES, description="Duration in minutes"
    )

    # Classification
    is_billable: bool = Field(default=True, description="Whether time is billable")
    hourly_rate: Optional[float] = Field(default=None, ge=0, description="Override hourly rate")
    tags: Tags = Field(default_factory=list, max_length=MAX_TAGS, description="Time entry tags")
    notes: Optional[str] = Field(default=None, max_length=2000, description="Notes")

    @model_validator(mode='after')
    def validate_times(self):
        """Either a duration or both start and end time must be given."""
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValueError('End time must be after start time')
        if self.duration_minutes is None and not (self.start_time and self.end_time):
            raise ValueError('Provide duration_minutes or both start_time and end_time')
        return self


class UpdateTimeEntryRequestDTO(RequestDTO):
    """DTO for time entry update requests. Only the fields sent are changed."""

    id: Optional[str] = Field(default=None, description="Time entry ID (from the path)")
    project_id: Optional[str] = Field(default=None, min_length=1, description="Project ID")
    task_id: Optional[str] = Field(default=None, description="Task ID")
    description: Optional[str] = Field(default=None, max_length=MAX_DESCRIPTION_LENGTH, description="Work description")
    entry_date: Optional[date] = Field(default=None, alias="date", description="Work date")
    start_time: Optional[datetime] = Field(default=None, description="Start timestamp")
    end_time: Optional[datetime] = Field(default=None, description="End timestamp")
    duration_minutes: Optional[int] = Field(
        default=None, ge=1, le=MAX_DURATION_MINUTES, description="Duration in minutes"
    )
    is_billable: Optional[bool] = Field(default=None, description="Whether time is billable")
    hourly_rate: Optional[float] = Field(default=None, ge=0, description="Override hourly rate")
    tags: Optional[Tags] = Field(default=None, max_length=MAX_TAGS, description="Time entry tags")
    notes: Optional[str] = Field(default=None, max_length=2000, description="Notes")

    def changes(self) -> Dict[str, Any]:
        """Fields explicitly sent by the client, keyed by domain attribute name."""
        return self.model_dump(exclude_unset=True, exclude={"id"})


class QuickAddTimeEntryRequestDTO(RequestDTO):
    """DTO for quick entries with explicit start and end."""

    project_id: str = Field(min_length=1, description="Project ID")
    task_id: Optional[str] = Field(default=None, description="Task ID (optional)")
    description: str = Field(default="", max_length=MAX_DESCRIPTION_LENGTH, description="Work description")
    start_time: datetime = Field(description="Start timestamp")
    end_time: datetime = Field(description="End timestamp")
    is_billable: bool = Field(default=True, description="Whether time is billable")
    hourly_rate: Optional[float] = Field(default=None, ge=0, description="Override hourly rate")
    tags: Tags = Field(default_factory=list, max_length=MAX_TAGS, description="Time entry tags")
    fill_gap: bool = Field(default=False, description="Entry fills a gap in the day")


class SubmitTimeEntriesRequestDTO(BulkIdsRequestDTO):
    """DTO for submitting time entries for approval."""
    pass


class ApproveTimeEntriesRequestDTO(BulkIdsRequestDTO):
    """DTO for approving time entries."""

    comment: Optional[str] = Field(default=None, max_length=500, description="Approval comment")


class RejectTimeEntriesRequestDTO(BulkIdsRequestDTO):
    """DTO for rejecting time entries."""

    reason: str = Field(min_length=1, max_length=MAX_REJECTION_REASON_LENGTH, description="Rejection reason")

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, v):
        if not v.strip():
            raise ValueError('Rejection reason is required')
        return v.strip()


class StartTimerRequestDTO(RequestDTO):
    """DTO for starting a timer."""

    project_id: str = Field(min_length=1, description="Project ID")
    task_id: Optional[str] = Field(default=None, description="Task ID (optional)")
    description: Optional[str] = Field(default=None, max_length=MAX_DESCRIPTION_LENGTH, description="Work description")
    tags: Tags = Field(default_factory=list, max_length=MAX_TAGS, description="Time entry tags")
    notes: Optional[str] = Field(default=None, max_length=2000, description="Notes")

    @field_validator('description')
    @classmethod
    def validate_description(cls, v):
        """Blank descriptions are dropped."""
        if v is not None and len(v.strip()) == 0:
            return None
        return v


class StopTimerRequestDTO(RequestDTO):
    """DTO for stopping a timer."""

    description: Optional[str] = Field(default=None, max_length=MAX_DESCRIPTION_LENGTH, description="Final work description")
    tags: Optional[Tags] = Field(default=None, max_length=MAX_TAGS, description="Time entry tags")
    notes: Optional[str] = Field(default=None, max_length=2000, description="Notes")
    is_billable: bool = Field(default=True, description="Whether time is billable")
    hourly_rate: Optional[float] = Field(default=None, ge=0, description="Hourly rate")


class TimerStatusRequestDTO(RequestDTO):
    """The running timer of the acting user has no parameters."""
    pass


class ListTimeEntriesRequestDTO(ListRequestDTO):
    """DTO for listing time entries with filters."""

    user_id: Optional[str] = Field(default=None, description="Filter by user ID")
    project_id: Optional[str] = Field(default=None, description="Filter by project ID")
    status: Optional[TimeEntryStatus] = Field(default=None, description="Filter by status")
    is_billable: Optional[bool] = Field(default=None, description="Filter by billable status")
    date_from: Optional[date] = Field(default=None, description="Filter entries from date")
    date_to: Optional[date] = Field(default=None, description="Filter entries to date")

    @model_validator(mode='after')
    def validate_date_range(self):
        """Validate that date_to is not before date_from."""
        if self.date_from and self.date_to and self.date_to < self.date_from:
            raise ValueError('date_to must be after date_from')
        return self


# Response DTOs
class TimeEntryResponseDTO(ResponseDTO):
    """DTO for time entry response."""

    user_id: str = Field(description="User ID")
    project_id: str = Field(description="Project ID")
    task_id: Optional[str] = Field(default=None, description="Task ID")
    description: str = Field(description="Work description")
    entry_date: date = Field(alias="date", description="Date when work was performed")
    start_time: Optional[datetime] = Field(default=None, description="Start timestamp")
    end_time: Optional[datetime] = Field(default=None, description="End timestamp")
    duration_minutes: int = Field(description="Duration in minutes")
    duration_hours: float = Field(description="Duration in hours")
    is_billable: bool = Field(description="Whether time is billable")
    hourly_rate: Optional[float] = Field(default=None, description="Hourly rate")
    status: TimeEntryStatus = Field(description="Entry status")
    tags: List[str] = Field(default_factory=list, description="Time entry tags")
    notes: Optional[str] = Field(default=None, description="Notes")
    is_timer_entry: bool = Field(default=False, description="Produced by stopping a timer")

    # Approval workflow
    submitted_at: Optional[datetime] = Field(default=None, description="Submission timestamp")
    approved_at: Optional[datetime] = Field(default=None, description="Approval timestamp")
    approved_by: Optional[str] = Field(default=None, description="Approver user ID")
    rejected_at: Optional[datetime] = Field(default=None, description="Rejection timestamp")
    rejection_reason: Optional[str] = Field(default=None, description="Rejection reason")

    can_edit: bool = Field(description="Whether entry can be edited or deleted")

    @classmethod
    def from_domain(cls, entry: TimeEntry) -> "TimeEntryResponseDTO":
        return cls(
            id=entry.id,
            user_id=entry.user_id,
            project_id=entry.project_id,
            task_id=entry.task_id,
            description=entry.description or "",
            entry_date=entry.entry_date,
            start_time=entry.start_time,
            end_time=entry.end_time,
            duration_minutes=entry.duration_minutes,
            duration_hours=entry.duration_hours,
            is_billable=entry.is_billable,
            hourly_rate=entry.hourly_rate,
            status=entry.status,
            tags=list(entry.tags),
            notes=entry.notes,
            is_timer_entry=entry.is_timer_entry,
            submitted_at=entry.submitted_at,
            approved_at=entry.approved_at,
            approved_by=entry.approved_by,
            rejected_at=entry.rejected_at,
            rejection_reason=entry.rejection_reason,
            can_edit=entry.is_editable,
            created_at=entry.created_at,
            updated_at=entry.updated_at
        )


class RunningTimerResponseDTO(ResponseDTO):
    """DTO for currently running timer."""

    user_id: str = Field(description="User ID")
    project_id: str = Field(description="Project ID")
    task_id: Optional[str] = Field(default=None, description="Task ID")
    description: Optional[str] = Field(default=None, description="Work description")
    start_time: datetime = Field(description="Timer start time")
    elapsed_minutes: int = Field(description="Minutes elapsed")
    tags: List[str] = Field(default_factory=list, description="Time entry tags")
    notes: Optional[str] = Field(default=None, description="Notes")

    @classmethod
    def from_domain(cls, timer: TimerSession, now: Optional[datetime] = None) -> "RunningTimerResponseDTO":
        return cls(
            id=timer.id,
            user_id=timer.user_id,
            project_id=timer.project_id,
            task_id=timer.task_id,
            description=timer.description,
            start_time=timer.start_time,
            elapsed_minutes=timer.elapsed_minutes(now),
            tags=list(timer.tags),
            notes=timer.notes,
            created_at=timer.created_at
        )


class TimerStatusResponseDTO(BaseDTO):
    """Whether a timer is running, and the timer when it is."""

    is_running: bool = Field(description="Whether a timer is running")
    timer: Optional[RunningTimerResponseDTO] = Field(default=None, description="The running timer")


class TimeEntryListResponseDTO(BaseDTO):
    """Paginated list of time entries."""

    items: List[TimeEntryResponseDTO] = Field(description="Time entries")
    total: int = Field(description="Total number of matching entries")
    limit: int = Field(description="Maximum number of items")
    offset: int = Field(description="Items skipped")
    has_more: bool = Field(description="Whether more items follow")
