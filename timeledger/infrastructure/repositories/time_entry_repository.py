"""
Time entry and timer repository implementations using SQLAlchemy.
"""

import logging
from typing import Optional, List
from datetime import datetime, date
from sqlalchemy.orm import Session
from sqlalchemy import and_, delete, desc
from sqlalchemy.exc import IntegrityError

from timeledger.domain.models.base import ConcurrentModificationError, EntityNotFoundError, InvalidStateError, new_id
from timeledger.domain.models.time_entry import TimeEntry
from timeledger.domain.models.timer_session import TimerSession
from timeledger.domain.repositories.time_entry_repository import (
    TimeEntryFilter,
    TimeEntryRepository as TimeEntryRepositoryInterface,
    TimerRepository as TimerRepositoryInterface
)
from timeledger.infrastructure.db.concurrency import run_with_retry, store_errors
from timeledger.infrastructure.db.models import TimeEntryModel, TimerSessionModel
from timeledger.infrastructure.mappers.time_entry_mapper import TimeEntryMapper, TimerSessionMapper

logger = logging.getLogger(__name__)


class SQLAlchemyTimeEntryRepository(TimeEntryRepositoryInterface):
    """SQLAlchemy implementation of time entry repository."""

    def __init__(self, session: Session):
        self.session = session
        self.mapper = TimeEntryMapper()

    def save(self, time_entry: TimeEntry) -> TimeEntry:
        """
        Save a time entry entity.

        Updates are rejected with ConcurrentModificationError when the stored row
        moved past the version the entry was loaded at.
        """
        is_new = time_entry.is_new

        def _save():
            if is_new:
                # Create new time entry
                time_entry.id = new_id()
                self.session.add(self.mapper.domain_to_model(time_entry))
                self.session.commit()
                return time_entry

            # Update existing time entry
            model = self.session.get(TimeEntryModel, time_entry.id, populate_existing=True)
            if not model:
                raise EntityNotFoundError("TimeEntry", time_entry.id)
            if model.version != time_entry.version:
                raise ConcurrentModificationError("TimeEntry", time_entry.id)
            self.mapper.update_model(model, time_entry)
            self.session.flush()
            version = model.version
            self.session.commit()
            time_entry.version = version
            return time_entry

        with store_errors(self.session, "save_time_entry", time_entry.id, "TimeEntry"):
            try:
                return run_with_retry(self.session, _save)
            except Exception:
                if is_new:
                    time_entry.id = None
                raise

    def find_by_id(self, entry_id: str) -> Optional[TimeEntry]:
        """Get time entry by ID."""
        with store_errors(self.session, "find_time_entry", entry_id):
            model = self.session.get(TimeEntryModel, entry_id)
            if not model:
                return None
            return self.mapper.model_to_domain(model)

    def find_by_ids(self, entry_ids: List[str]) -> List[TimeEntry]:
        if not entry_ids:
            return []
        with store_errors(self.session, "find_time_entries"):
            models = self.session.query(TimeEntryModel).filter(TimeEntryModel.id.in_(entry_ids)).all()
            return [self.mapper.model_to_domain(model) for model in models]

    def delete(self, entry_id: str) -> bool:
        """Delete time entry by ID."""
        with store_errors(self.session, "delete_time_entry", entry_id):
            result = self.session.execute(delete(TimeEntryModel).where(TimeEntryModel.id == entry_id))
            self.session.commit()
            return result.rowcount > 0

    def find_many(self, criteria: TimeEntryFilter, limit: int = 50, offset: int = 0) -> List[TimeEntry]:
        """List time entries matching the filter, newest first."""
        with store_errors(self.session, "list_time_entries"):
            query = self._filtered_query(criteria).order_by(
                desc(TimeEntryModel.entry_date),
                desc(TimeEntryModel.start_time),
                desc(TimeEntryModel.created_at)
            )
            if offset:
                query = query.offset(offset)
            if limit:
                query = query.limit(limit)
            return [self.mapper.model_to_domain(model) for model in query.all()]

    def count(self, criteria: TimeEntryFilter) -> int:
        with store_errors(self.session, "count_time_entries"):
            return self._filtered_query(criteria).count()

    def find_by_user_and_date_range(self, user_id: str, start_date: date, end_date: date) -> List[TimeEntry]:
        """Get time entries within date range."""
        with store_errors(self.session, "find_time_entries_by_date"):
            models = self.session.query(TimeEntryModel).filter(
                and_(
                    TimeEntryModel.user_id == user_id,
                    TimeEntryModel.entry_date >= start_date,
                    TimeEntryModel.entry_date <= end_date
                )
            ).order_by(TimeEntryModel.entry_date, TimeEntryModel.start_time).all()
            return [self.mapper.model_to_domain(model) for model in models]

    def find_overlapping(
        self,
        user_id: str,
        start_time: datetime,
        end_time: datetime,
        exclude_id: Optional[str] = None
    ) -> List[TimeEntry]:
        with store_errors(self.session, "find_overlapping_time_entries"):
            query = self.session.query(TimeEntryModel).filter(
                and_(
                    TimeEntryModel.user_id == user_id,
                    TimeEntryModel.start_time.is_not(None),
                    TimeEntryModel.end_time.is_not(None),
                    TimeEntryModel.start_time < end_time,
                    TimeEntryModel.end_time > start_time
                )
            )
            if exclude_id:
                query = query.filter(TimeEntryModel.id != exclude_id)
            return [self.mapper.model_to_domain(model) for model in query.all()]

    def _filtered_query(self, criteria: TimeEntryFilter):
        query = self.session.query(TimeEntryModel)
        if criteria.user_id:
            query = query.filter(TimeEntryModel.user_id == criteria.user_id)
        if criteria.project_id:
            query = query.filter(TimeEntryModel.project_id == criteria.project_id)
        if criteria.status:
            query = query.filter(TimeEntryModel.status == criteria.status)
        if criteria.is_billable is not None:
            query = query.filter(TimeEntryModel.is_billable == criteria.is_billable)
        if criteria.date_from:
            query = query.filter(TimeEntryModel.entry_date >= criteria.date_from)
        if criteria.date_to:
            query = query.filter(TimeEntryModel.entry_date <= criteria.date_to)
        return query


class SQLAlchemyTimerRepository(TimerRepositoryInterface):
    """SQLAlchemy implementation of the running-timer store."""

    def __init__(self, session: Session):
        self.session = session
        self.mapper = TimerSessionMapper()
        self.entry_mapper = TimeEntryMapper()

    def find_by_user(self, user_id: str) -> Optional[TimerSession]:
        with store_errors(self.session, "find_timer", user_id):
            model = self.session.query(TimerSessionModel).filter_by(user_id=user_id).first()
            if not model:
                return None
            return self.mapper.model_to_domain(model)

    def start(self, timer: TimerSession) -> TimerSession:
        """Insert the timer row; the unique user_id constraint rejects a second one."""
        with store_errors(self.session, "start_timer", timer.user_id):
            timer.id = timer.id or new_id()
            self.session.add(self.mapper.domain_to_model(timer))
            try:
                self.session.commit()
            except IntegrityError:
                self.session.rollback()
                timer.id = None
                raise InvalidStateError("A timer is already running for this user", "TIMER_ALREADY_RUNNING")
            return timer

    def stop(self, timer: TimerSession, time_entry: TimeEntry) -> TimeEntry:
        """Delete the timer and insert the produced entry in a single commit."""
        with store_errors(self.session, "stop_timer", timer.user_id):
            result = self.session.execute(
                delete(TimerSessionModel).where(
                    and_(TimerSessionModel.id == timer.id, TimerSessionModel.user_id == timer.user_id)
                )
            )
            if result.rowcount == 0:
                raise InvalidStateError("No active timer found", "NO_ACTIVE_TIMER")

            time_entry.id = new_id()
            try:
                self.session.add(self.entry_mapper.domain_to_model(time_entry))
                self.session.commit()
            except Exception:
                time_entry.id = None
                raise
            logger.info(f"Timer {timer.id} stopped into time entry {time_entry.id}")
            return time_entry
