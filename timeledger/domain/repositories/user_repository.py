"""User profile repository interface.
The core only reads a user's role and work schedule.
"""

from abc import ABC, abstractmethod

from timeledger.domain.models.user import WorkSchedule


class UserProfileRepository(ABC):
    """Lookup of per-user settings consumed by the summaries."""

    @abstractmethod
    def get_work_schedule(self, user_id: str) -> WorkSchedule:
        """
        The user's work schedule.
        Returns the default schedule when the user has none stored.
        """
        pass

    @abstractmethod
    def save_work_schedule(self, user_id: str, schedule: WorkSchedule) -> None:
        pass
