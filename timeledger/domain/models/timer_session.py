"""
TimerSession domain model.
A user's single running timer, stored as one row keyed by user.
"""

from datetime import datetime
from typing import Optional, List

from timeledger.domain.models.base import BaseEntity, ValidationError, utcnow, to_naive_utc


class TimerSession(BaseEntity):
    """Running timer; at most one per user."""

    def __init__(
        self,
        user_id: str,
        project_id: str,
        start_time: Optional[datetime] = None,
        task_id: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
        notes: Optional[str] = None,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.user_id = user_id
        self.project_id = project_id
        self.task_id = task_id
        self.description = description
        self.start_time = to_naive_utc(start_time) or utcnow()
        self.tags = list(tags or [])
        self.notes = notes

    def validate(self) -> None:
        if not self.user_id:
            raise ValidationError("User ID is required", "user_id")
        if not self.project_id:
            raise ValidationError("Project ID is required", "project_id")

    def elapsed_minutes(self, now: Optional[datetime] = None) -> int:
        """Whole minutes elapsed since the timer started."""
        now = to_naive_utc(now) or utcnow()
        return max(0, int((now - self.start_time).total_seconds() // 60))

    def to_dict(self, now: Optional[datetime] = None) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "project_id": self.project_id,
            "task_id": self.task_id,
            "description": self.description,
            "start_time": self.start_time.isoformat(),
            "tags": list(self.tags),
            "notes": self.notes,
            "is_active": True,
            "elapsed_minutes": self.elapsed_minutes(now),
        }
