"""
User-side domain objects consumed by the core: the acting user and the
user's work schedule.
"""

from dataclasses import dataclass, field
from datetime import date, time
from typing import Dict, Optional, Any
from enum import Enum

from timeledger.domain.models.base import ValueObject, ValidationError


WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class UserRole(str, Enum):
    """Roles recognised by the approval workflow."""
    EMPLOYEE = "employee"
    MANAGER = "manager"
    ADMIN = "admin"


APPROVER_ROLES = frozenset({UserRole.MANAGER, UserRole.ADMIN})


@dataclass(frozen=True)
class ActingUser:
    """Authenticated caller, as supplied by the transport layer."""

    user_id: str
    role: UserRole = UserRole.EMPLOYEE

    @property
    def can_approve(self) -> bool:
        """Managers and admins may approve, reject and act on others' entries."""
        return self.role in APPROVER_ROLES

    @property
    def allow_self_approval(self) -> bool:
        # Nobody ranks above a manager or admin to approve their entries instead.
        return self.can_approve

    def can_act_on(self, owner_id: str) -> bool:
        return self.user_id == owner_id or self.can_approve


def parse_clock(value: str) -> time:
    """Parse an ``HH:MM`` wall-clock string."""
    try:
        hours, minutes = value.split(":")
        return time(int(hours), int(minutes))
    except (ValueError, AttributeError):
        raise ValidationError(f"Invalid time of day: {value!r}, expected HH:MM", "time")


@dataclass(frozen=True)
class DaySchedule(ValueObject):
    """Target hours and work-day window for one weekday."""

    target_hours: float = 8.0
    start: str = "09:00"
    end: str = "17:00"

    def validate(self) -> None:
        if self.target_hours < 0 or self.target_hours > 24:
            raise ValidationError("Target hours must be between 0 and 24", "target_hours")
        if parse_clock(self.end) <= parse_clock(self.start):
            raise ValidationError("Work day must end after it starts", "end")

    @property
    def start_time(self) -> time:
        return parse_clock(self.start)

    @property
    def end_time(self) -> time:
        return parse_clock(self.end)


def default_schedule(workday: Optional[DaySchedule] = None) -> Dict[str, DaySchedule]:
    workday = workday or DaySchedule(8.0, "09:00", "17:00")
    weekend = DaySchedule(0.0, workday.start, workday.end)
    return {
        day: workday if day not in ("saturday", "sunday") else weekend
        for day in WEEKDAYS
    }


@dataclass(frozen=True)
class WorkSchedule:
    """Per-weekday schedule; Monday to Friday 8h 09:00-17:00 unless configured."""

    days: Dict[str, DaySchedule] = field(default_factory=default_schedule)

    def for_date(self, day: date) -> DaySchedule:
        name = WEEKDAYS[day.weekday()]
        return self.days.get(name) or default_schedule()[name]

    @classmethod
    def from_dict(
        cls,
        data: Optional[Dict[str, Any]],
        workday: Optional[DaySchedule] = None
    ) -> "WorkSchedule":
        """Build a schedule from stored JSON, falling back to defaults per day."""
        days = default_schedule(workday)
        for name, value in (data or {}).items():
            name = name.lower()
            if name not in days or not isinstance(value, dict):
                continue
            days[name] = DaySchedule(
                target_hours=float(value.get("target_hours", days[name].target_hours)),
                start=value.get("start", days[name].start),
                end=value.get("end", days[name].end),
            )
        return cls(days=days)

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {
            name: {"target_hours": day.target_hours, "start": day.start, "end": day.end}
            for name, day in self.days.items()
        }
