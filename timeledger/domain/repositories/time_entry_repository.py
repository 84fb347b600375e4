"""Time Entry repository interface.
Defines the contract for time entry and timer persistence operations.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional
from datetime import datetime, date

from timeledger.domain.models.time_entry import TimeEntry, TimeEntryStatus
from timeledger.domain.models.timer_session import TimerSession


@dataclass
class TimeEntryFilter:
    """Criteria for listing time entries. ``None`` means unfiltered."""

    user_id: Optional[str] = None
    project_id: Optional[str] = None
    status: Optional[TimeEntryStatus] = None
    is_billable: Optional[bool] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None


class TimeEntryRepository(ABC):
    """
    Repository interface for TimeEntry entity.
    Every write commits on its own; callers never see a half-applied write.
    """

    @abstractmethod
    def save(self, time_entry: TimeEntry) -> TimeEntry:
        """
        Insert or update a time entry.
        New entries get their id assigned here.
        """
        pass

    @abstractmethod
    def find_by_id(self, entry_id: str) -> Optional[TimeEntry]:
        """
        Find a time entry by its ID.
        Returns None if not found.
        """
        pass

    @abstractmethod
    def find_by_ids(self, entry_ids: List[str]) -> List[TimeEntry]:
        """Find the entries among ``entry_ids`` that exist."""
        pass

    @abstractmethod
    def delete(self, entry_id: str) -> bool:
        """Hard-delete an entry. Returns False when it did not exist."""
        pass

    @abstractmethod
    def find_many(self, criteria: TimeEntryFilter, limit: int = 50, offset: int = 0) -> List[TimeEntry]:
        """List entries matching ``criteria``, newest date first."""
        pass

    @abstractmethod
    def count(self, criteria: TimeEntryFilter) -> int:
        pass

    @abstractmethod
    def find_by_user_and_date_range(self, user_id: str, start_date: date, end_date: date) -> List[TimeEntry]:
        """All of a user's entries dated within [start_date, end_date]."""
        pass

    @abstractmethod
    def find_overlapping(
        self,
        user_id: str,
        start_time: datetime,
        end_time: datetime,
        exclude_id: Optional[str] = None
    ) -> List[TimeEntry]:
        """A user's entries whose tracked interval intersects [start_time, end_time)."""
        pass


class TimerRepository(ABC):
    """
    Repository interface for running timers.
    The store keeps at most one timer row per user.
    """

    @abstractmethod
    def find_by_user(self, user_id: str) -> Optional[TimerSession]:
        pass

    @abstractmethod
    def start(self, timer: TimerSession) -> TimerSession:
        """
        Insert the user's timer row.
        Raises InvalidStateError(TIMER_ALREADY_RUNNING) if one already exists.
        """
        pass

    @abstractmethod
    def stop(self, timer: TimerSession, time_entry: TimeEntry) -> TimeEntry:
        """
        Delete the timer row and insert the resulting entry in one transaction.
        Raises InvalidStateError(NO_ACTIVE_TIMER) if the row is already gone.
        """
        pass
