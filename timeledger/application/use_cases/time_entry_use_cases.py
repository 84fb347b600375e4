"""
Time Entry use cases for the application layer.
Implements the approval workflow, manual entries and the running timer.
"""

import logging
from typing import Any, Callable, Dict, Optional
from datetime import datetime

from timeledger.application.use_cases.base_use_case import (
    CreateUseCase, UpdateUseCase, DeleteUseCase, GetByIdUseCase,
    ListUseCase, QueryUseCase, AuthorizedUseCase, BulkUseCase
)
from timeledger.application.dto.base_dto import EntityIdRequestDTO
from timeledger.application.dto.time_entry_dto import (
    CreateTimeEntryRequestDTO, UpdateTimeEntryRequestDTO, QuickAddTimeEntryRequestDTO,
    SubmitTimeEntriesRequestDTO, ApproveTimeEntriesRequestDTO, RejectTimeEntriesRequestDTO,
    StartTimerRequestDTO, StopTimerRequestDTO, TimerStatusRequestDTO, ListTimeEntriesRequestDTO,
    TimeEntryResponseDTO, RunningTimerResponseDTO, TimerStatusResponseDTO, TimeEntryListResponseDTO
)
from timeledger.config import settings
from timeledger.domain.models.base import (
    AuthorizationError,
    EntityNotFoundError,
    InvalidStateError,
    ValidationError,
    utcnow
)
from timeledger.domain.models.time_entry import TimeEntry
from timeledger.domain.models.user import UserRole
from timeledger.domain.repositories.time_entry_repository import (
    TimeEntryFilter,
    TimeEntryRepository,
    TimerRepository
)
from timeledger.domain.services.timer_service import TimerService

logger = logging.getLogger(__name__)


class TimeEntryAccessMixin:
    """Loading of a single entry with the ownership rule applied."""

    time_entry_repository: TimeEntryRepository

    def _load_entry(self, entry_id: str, forbidden_code: str = "FORBIDDEN") -> TimeEntry:
        entry = self.time_entry_repository.find_by_id(entry_id)
        if not entry:
            raise EntityNotFoundError("TimeEntry", entry_id)
        self._require_owner_or_approver(entry.user_id, forbidden_code)
        return entry


class CreateTimeEntryUseCase(AuthorizedUseCase, CreateUseCase[CreateTimeEntryRequestDTO, TimeEntryResponseDTO]):
    """Use case for creating a manual time entry in draft."""

    def __init__(self, time_entry_repository: TimeEntryRepository):
        super().__init__()
        self.time_entry_repository = time_entry_repository

    async def _execute_command_logic(self, request: CreateTimeEntryRequestDTO) -> TimeEntryResponseDTO:
        entry = TimeEntry(
            user_id=self.current_user_id,
            project_id=request.project_id,
            task_id=request.task_id,
            description=request.description,
            entry_date=request.entry_date,
            start_time=request.start_time,
            end_time=request.end_time,
            duration_minutes=request.duration_minutes,
            is_billable=request.is_billable,
            hourly_rate=request.hourly_rate,
            tags=request.tags,
            notes=request.notes
        )
        entry.validate()

        saved = self.time_entry_repository.save(entry)
        logger.info(f"Time entry {saved.id} created by {self.current_user_id}")
        return TimeEntryResponseDTO.from_domain(saved)


class GetTimeEntryUseCase(TimeEntryAccessMixin, AuthorizedUseCase, GetByIdUseCase[EntityIdRequestDTO, TimeEntryResponseDTO]):
    """Use case for reading one time entry."""

    def __init__(self, time_entry_repository: TimeEntryRepository):
        super().__init__()
        self.time_entry_repository = time_entry_repository

    async def _execute_business_logic(self, request: EntityIdRequestDTO) -> TimeEntryResponseDTO:
        return TimeEntryResponseDTO.from_domain(self._load_entry(request.id))


class ListTimeEntriesUseCase(AuthorizedUseCase, ListUseCase[ListTimeEntriesRequestDTO, TimeEntryListResponseDTO]):
    """
    Use case for listing time entries.
    Employees only ever see their own entries.
    """

    def __init__(self, time_entry_repository: TimeEntryRepository):
        super().__init__(max_page_size=settings.max_page_size)
        self.time_entry_repository = time_entry_repository

    async def _check_authorization(self, request: ListTimeEntriesRequestDTO) -> None:
        if request.user_id and not self.current_user.can_act_on(request.user_id):
            raise AuthorizationError("Employees can only list their own time entries")

    async def _execute_business_logic(self, request: ListTimeEntriesRequestDTO) -> TimeEntryListResponseDTO:
        user_id = request.user_id
        if not self.current_user.can_approve:
            user_id = self.current_user_id

        criteria = TimeEntryFilter(
            user_id=user_id,
            project_id=request.project_id,
            status=request.status,
            is_billable=request.is_billable,
            date_from=request.date_from,
            date_to=request.date_to
        )
        entries = self.time_entry_repository.find_many(criteria, limit=request.limit, offset=request.offset)
        total = self.time_entry_repository.count(criteria)

        return TimeEntryListResponseDTO(
            items=[TimeEntryResponseDTO.from_domain(entry) for entry in entries],
            total=total,
            limit=request.limit,
            offset=request.offset,
            has_more=request.offset + len(entries) < total
        )


class UpdateTimeEntryUseCase(TimeEntryAccessMixin, AuthorizedUseCase, UpdateUseCase[UpdateTimeEntryRequestDTO, TimeEntryResponseDTO]):
    """Use case for editing a draft or rejected time entry."""

    def __init__(self, time_entry_repository: TimeEntryRepository):
        super().__init__()
        self.time_entry_repository = time_entry_repository

    async def _execute_command_logic(self, request: UpdateTimeEntryRequestDTO) -> TimeEntryResponseDTO:
        changes = request.changes()
        if not changes:
            raise ValidationError("No valid updates provided", code="NO_VALID_UPDATES")

        entry = self._load_entry(request.id)
        entry.apply_changes(changes)

        saved = self.time_entry_repository.save(entry)
        logger.info(
            f"Time entry {saved.id} updated by {self.current_user_id}: {', '.join(sorted(changes))}"
        )
        return TimeEntryResponseDTO.from_domain(saved)


class DeleteTimeEntryUseCase(TimeEntryAccessMixin, AuthorizedUseCase, DeleteUseCase[EntityIdRequestDTO, Dict[str, Any]]):
    """Use case for hard-deleting a draft or rejected time entry."""

    def __init__(self, time_entry_repository: TimeEntryRepository):
        super().__init__()
        self.time_entry_repository = time_entry_repository

    async def _execute_command_logic(self, request: EntityIdRequestDTO) -> Dict[str, Any]:
        entry = self._load_entry(request.id)
        entry.ensure_editable()

        if not self.time_entry_repository.delete(entry.id):
            raise EntityNotFoundError("TimeEntry", entry.id)
        logger.info(f"Time entry {entry.id} deleted by {self.current_user_id}")
        return {"id": entry.id, "deleted": True}


class QuickAddTimeEntryUseCase(AuthorizedUseCase, CreateUseCase[QuickAddTimeEntryRequestDTO, TimeEntryResponseDTO]):
    """Use case for adding an entry from a start and end, refusing overlaps."""

    def __init__(self, time_entry_repository: TimeEntryRepository, timer_service: Optional[TimerService] = None):
        super().__init__()
        self.time_entry_repository = time_entry_repository
        self.timer_service = timer_service or TimerService()

    async def _execute_command_logic(self, request: QuickAddTimeEntryRequestDTO) -> TimeEntryResponseDTO:
        entry = self.timer_service.create_quick_entry(
            user_id=self.current_user_id,
            project_id=request.project_id,
            start_time=request.start_time,
            end_time=request.end_time,
            description=request.description,
            task_id=request.task_id,
            is_billable=request.is_billable,
            hourly_rate=request.hourly_rate,
            tags=request.tags,
            fill_gap=request.fill_gap
        )

        overlapping = self.time_entry_repository.find_overlapping(
            self.current_user_id, entry.start_time, entry.end_time
        )
        self.timer_service.ensure_no_overlap(overlapping, entry.start_time, entry.end_time)

        saved = self.time_entry_repository.save(entry)
        logger.info(f"Quick time entry {saved.id} created by {self.current_user_id}")
        return TimeEntryResponseDTO.from_domain(saved)


class SubmitTimeEntriesUseCase(BulkUseCase[SubmitTimeEntriesRequestDTO]):
    """Use case for submitting draft or rejected entries for approval."""

    def __init__(self, time_entry_repository: TimeEntryRepository):
        super().__init__(max_batch_size=settings.max_bulk_batch_size)
        self.time_entry_repository = time_entry_repository

    async def _process_item(self, item_id: str, request: SubmitTimeEntriesRequestDTO) -> None:
        entry = self.time_entry_repository.find_by_id(item_id)
        if not entry:
            raise EntityNotFoundError("TimeEntry", item_id)
        if not self.current_user.can_act_on(entry.user_id):
            raise AuthorizationError("Cannot submit another user's time entry", "UNAUTHORIZED")

        previous = entry.status
        entry.submit(self.current_user_id)
        self.time_entry_repository.save(entry)
        self._collect_events(entry)
        logger.info(
            f"Time entry {entry.id} {previous.value} -> {entry.status.value} by {self.current_user_id}"
        )


class ReviewTimeEntriesUseCase(BulkUseCase):
    """
    Shared rules of approve and reject: approver role for the whole batch,
    then per item the entry must exist, be submitted and not be the
    reviewer's own unless self-approval is allowed.
    """

    def __init__(self, time_entry_repository: TimeEntryRepository, allow_self_approval: Optional[bool] = None):
        super().__init__(max_batch_size=settings.max_bulk_batch_size)
        self.time_entry_repository = time_entry_repository
        self.allow_self_approval = allow_self_approval

    async def _check_authorization(self, request) -> None:
        self._require_role(UserRole.MANAGER, UserRole.ADMIN)

    @property
    def self_approval_allowed(self) -> bool:
        if self.allow_self_approval is not None:
            return self.allow_self_approval
        return self.current_user.allow_self_approval

    def _load_for_review(self, item_id: str) -> TimeEntry:
        entry = self.time_entry_repository.find_by_id(item_id)
        if not entry:
            raise EntityNotFoundError("TimeEntry", item_id)
        if entry.is_owned_by(self.current_user_id) and not self.self_approval_allowed:
            raise AuthorizationError("Cannot review your own time entry", "SELF_APPROVAL_NOT_ALLOWED")
        return entry

    def _store_review(self, entry: TimeEntry) -> None:
        self.time_entry_repository.save(entry)
        self._collect_events(entry)
        logger.info(
            f"Time entry {entry.id} submitted -> {entry.status.value} by {self.current_user_id}"
        )


class ApproveTimeEntriesUseCase(ReviewTimeEntriesUseCase):
    """Use case for approving submitted entries."""

    async def _process_item(self, item_id: str, request: ApproveTimeEntriesRequestDTO) -> None:
        entry = self._load_for_review(item_id)
        entry.approve(self.current_user_id)
        self._store_review(entry)


class RejectTimeEntriesUseCase(ReviewTimeEntriesUseCase):
    """Use case for rejecting submitted entries back to their owners."""

    async def _process_item(self, item_id: str, request: RejectTimeEntriesRequestDTO) -> None:
        entry = self._load_for_review(item_id)
        entry.reject(self.current_user_id, request.reason)
        self._store_review(entry)


class StartTimerUseCase(AuthorizedUseCase, CreateUseCase[StartTimerRequestDTO, RunningTimerResponseDTO]):
    """Use case for starting a timer."""

    def __init__(
        self,
        timer_repository: TimerRepository,
        timer_service: Optional[TimerService] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        super().__init__()
        self.timer_repository = timer_repository
        self.timer_service = timer_service or TimerService()
        self.clock = clock

    async def _execute_command_logic(self, request: StartTimerRequestDTO) -> RunningTimerResponseDTO:
        if self.timer_repository.find_by_user(self.current_user_id):
            raise InvalidStateError("A timer is already running for this user", "TIMER_ALREADY_RUNNING")

        now = self.clock()
        timer = self.timer_service.start_timer(
            user_id=self.current_user_id,
            project_id=request.project_id,
            task_id=request.task_id,
            description=request.description,
            tags=request.tags,
            notes=request.notes,
            now=now
        )
        timer = self.timer_repository.start(timer)
        logger.info(f"Timer {timer.id} started by {self.current_user_id} on project {timer.project_id}")
        return RunningTimerResponseDTO.from_domain(timer, now)


class StopTimerUseCase(AuthorizedUseCase, CreateUseCase[StopTimerRequestDTO, TimeEntryResponseDTO]):
    """Use case for stopping the running timer into a draft time entry."""

    def __init__(
        self,
        timer_repository: TimerRepository,
        timer_service: Optional[TimerService] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        super().__init__()
        self.timer_repository = timer_repository
        self.timer_service = timer_service or TimerService()
        self.clock = clock

    async def _execute_command_logic(self, request: StopTimerRequestDTO) -> TimeEntryResponseDTO:
        timer = self.timer_repository.find_by_user(self.current_user_id)
        if not timer:
            raise InvalidStateError("No active timer found", "NO_ACTIVE_TIMER")

        entry = self.timer_service.stop_timer(
            timer,
            now=self.clock(),
            description=request.description,
            tags=request.tags,
            notes=request.notes,
            is_billable=request.is_billable,
            hourly_rate=request.hourly_rate
        )
        entry = self.timer_repository.stop(timer, entry)
        return TimeEntryResponseDTO.from_domain(entry)


class TimerStatusUseCase(AuthorizedUseCase, QueryUseCase[TimerStatusRequestDTO, TimerStatusResponseDTO]):
    """Use case for reading the caller's running timer."""

    def __init__(self, timer_repository: TimerRepository, clock: Callable[[], datetime] = utcnow):
        super().__init__()
        self.timer_repository = timer_repository
        self.clock = clock

    async def _execute_business_logic(self, request: TimerStatusRequestDTO) -> TimerStatusResponseDTO:
        timer = self.timer_repository.find_by_user(self.current_user_id)
        if not timer:
            return TimerStatusResponseDTO(is_running=False)
        return TimerStatusResponseDTO(
            is_running=True,
            timer=RunningTimerResponseDTO.from_domain(timer, self.clock())
        )
