"""
User profile repository implementation using SQLAlchemy.
"""

from sqlalchemy.orm import Session

from timeledger.config import settings
from timeledger.domain.models.base import utcnow
from timeledger.domain.models.user import DaySchedule, WorkSchedule
from timeledger.domain.repositories.user_repository import UserProfileRepository as UserProfileRepositoryInterface
from timeledger.infrastructure.db.concurrency import store_errors
from timeledger.infrastructure.db.models import UserProfileModel


class SQLAlchemyUserProfileRepository(UserProfileRepositoryInterface):
    """Reads and stores per-user work schedules."""

    def __init__(self, session: Session):
        self.session = session

    def get_work_schedule(self, user_id: str) -> WorkSchedule:
        with store_errors(self.session, "get_work_schedule", user_id):
            model = self.session.get(UserProfileModel, user_id)
            workday = DaySchedule(settings.default_target_hours, settings.work_day_start, settings.work_day_end)
            return WorkSchedule.from_dict(model.work_schedule if model else None, workday)

    def save_work_schedule(self, user_id: str, schedule: WorkSchedule) -> None:
        with store_errors(self.session, "save_work_schedule", user_id):
            model = self.session.get(UserProfileModel, user_id)
            if model is None:
                model = UserProfileModel(id=user_id)
                self.session.add(model)
            model.work_schedule = schedule.to_dict()
            model.updated_at = utcnow()
            self.session.commit()
