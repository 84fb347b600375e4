"""
Time tracking router.
Handles time entry management, the approval workflow, timer controls and summaries.
"""

from typing import Annotated
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from timeledger.infrastructure.auth import CurrentUser
from timeledger.application.use_cases import (
    CreateTimeEntryUseCase,
    GetTimeEntryUseCase,
    ListTimeEntriesUseCase,
    UpdateTimeEntryUseCase,
    DeleteTimeEntryUseCase,
    QuickAddTimeEntryUseCase,
    SubmitTimeEntriesUseCase,
    ApproveTimeEntriesUseCase,
    RejectTimeEntriesUseCase,
    StartTimerUseCase,
    StopTimerUseCase,
    TimerStatusUseCase,
    DailySummaryUseCase,
    WeeklyOverviewUseCase
)
from timeledger.application.dto import (
    EntityIdRequestDTO,
    CreateTimeEntryRequestDTO,
    UpdateTimeEntryRequestDTO,
    QuickAddTimeEntryRequestDTO,
    SubmitTimeEntriesRequestDTO,
    ApproveTimeEntriesRequestDTO,
    RejectTimeEntriesRequestDTO,
    StartTimerRequestDTO,
    StopTimerRequestDTO,
    TimerStatusRequestDTO,
    ListTimeEntriesRequestDTO,
    DailySummaryRequestDTO,
    WeeklyOverviewRequestDTO
)
from timeledger.infrastructure.db.database import get_db
from timeledger.infrastructure.repositories import (
    SQLAlchemyTimeEntryRepository,
    SQLAlchemyTimerRepository,
    SQLAlchemyUserProfileRepository
)
from timeledger.infrastructure.web.responses import bulk_response, run, success_response


router = APIRouter()


def get_time_entry_repository(session: Session = Depends(get_db)):
    """Dependency to get time entry repository."""
    return SQLAlchemyTimeEntryRepository(session)


def get_timer_repository(session: Session = Depends(get_db)):
    """Dependency to get timer repository."""
    return SQLAlchemyTimerRepository(session)


def get_user_profile_repository(session: Session = Depends(get_db)):
    return SQLAlchemyUserProfileRepository(session)


TimeEntries = Annotated[SQLAlchemyTimeEntryRepository, Depends(get_time_entry_repository)]
Timers = Annotated[SQLAlchemyTimerRepository, Depends(get_timer_repository)]
Profiles = Annotated[SQLAlchemyUserProfileRepository, Depends(get_user_profile_repository)]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_time_entry(
    request: CreateTimeEntryRequestDTO,
    user: CurrentUser,
    repository: TimeEntries
):
    """
    Create a new time entry in draft.

    - **project_id**: Project ID to log time for (required)
    - **date**: Date the work was performed (required)
    - **start_time** / **end_time**: Start and end timestamps (optional, both or neither)
    - **duration_minutes**: Duration in minutes (required without start and end)
    - **is_billable**: Whether this time is billable
    - **hourly_rate**: Override hourly rate for this entry
    - **tags**: List of tags for categorization
    """
    entry = await run(CreateTimeEntryUseCase(repository), user, request)
    return success_response(entry, "Time entry created", status.HTTP_201_CREATED)


@router.get("")
async def list_time_entries(
    request: Annotated[ListTimeEntriesRequestDTO, Query()],
    user: CurrentUser,
    repository: TimeEntries
):
    """
    List time entries, newest first.

    - **user_id**: Filter by user (managers and admins only for other users)
    - **project_id**: Filter by specific project
    - **status**: Filter by status
    - **is_billable**: Filter by billable status
    - **date_from** / **date_to**: Filter entries by work date
    - **limit**: Maximum number of entries to return (1-100, default 50)
    - **offset**: Number of entries to skip for pagination
    """
    page = await run(ListTimeEntriesUseCase(repository), user, request)
    return success_response(page)


@router.post("/quick-add", status_code=status.HTTP_201_CREATED)
async def quick_add_time_entry(
    request: QuickAddTimeEntryRequestDTO,
    user: CurrentUser,
    repository: TimeEntries
):
    """
    Add a time entry from a start and end time.
    Fails with TIME_ENTRY_OVERLAP when it overlaps another entry of the caller.
    """
    entry = await run(QuickAddTimeEntryUseCase(repository), user, request)
    return success_response(entry, "Time entry created", status.HTTP_201_CREATED)


@router.post("/submit")
async def submit_time_entries(
    request: SubmitTimeEntriesRequestDTO,
    user: CurrentUser,
    repository: TimeEntries
):
    """
    Submit draft or rejected entries for approval.

    Every id is processed on its own; the response lists the successful ids
    and the failed ones with their error.
    """
    result = await run(SubmitTimeEntriesUseCase(repository), user, request)
    return bulk_response(result, "submitted")


@router.post("/approve")
async def approve_time_entries(
    request: ApproveTimeEntriesRequestDTO,
    user: CurrentUser,
    repository: TimeEntries
):
    """
    Approve submitted entries. Requires the manager or admin role.
    """
    result = await run(ApproveTimeEntriesUseCase(repository), user, request)
    return bulk_response(result, "approved")


@router.post("/reject")
async def reject_time_entries(
    request: RejectTimeEntriesRequestDTO,
    user: CurrentUser,
    repository: TimeEntries
):
    """
    Reject submitted entries back to their owners. Requires the manager or admin role.

    - **reason**: Rejection reason shown to the owner (required)
    """
    result = await run(RejectTimeEntriesUseCase(repository), user, request)
    return bulk_response(result, "rejected")


@router.post("/timer/start", status_code=status.HTTP_201_CREATED)
async def start_timer(
    request: StartTimerRequestDTO,
    user: CurrentUser,
    timers: Timers
):
    """
    Start a timer for time tracking. Only one timer may run per user.
    """
    timer = await run(StartTimerUseCase(timers), user, request)
    return success_response(timer, "Timer started", status.HTTP_201_CREATED)


@router.post("/timer/stop")
async def stop_timer(
    request: StopTimerRequestDTO,
    user: CurrentUser,
    timers: Timers
):
    """
    Stop the running timer and create a draft time entry from it.
    """
    entry = await run(StopTimerUseCase(timers), user, request)
    return success_response(entry, "Timer stopped")


@router.get("/timer/status")
async def timer_status(user: CurrentUser, timers: Timers):
    """Get the caller's running timer, if any."""
    timer_state = await run(TimerStatusUseCase(timers), user, TimerStatusRequestDTO())
    return success_response(timer_state)


@router.get("/daily-summary")
async def daily_summary(
    request: Annotated[DailySummaryRequestDTO, Query()],
    user: CurrentUser,
    repository: TimeEntries,
    profiles: Profiles
):
    """
    Per-day totals over a range of at most 31 days.

    - **start_date** / **end_date**: Inclusive range, not in the future
    - **user_id**: User to summarize (managers and admins only for other users)
    - **target_hours**: Target hours per day, overriding the work schedule
    - **include_gaps**: Whether to report gaps between entries
    """
    summary = await run(DailySummaryUseCase(repository, profiles), user, request)
    return success_response(summary)


@router.get("/weekly-overview")
async def weekly_overview(
    request: Annotated[WeeklyOverviewRequestDTO, Query()],
    user: CurrentUser,
    repository: TimeEntries,
    profiles: Profiles
):
    """
    Monday to Friday overview with patterns and a comparison to the previous week.

    - **week_start_date**: Monday of the week
    """
    overview = await run(WeeklyOverviewUseCase(repository, profiles), user, request)
    return success_response(overview)


@router.get("/{time_entry_id}")
async def get_time_entry(time_entry_id: str, user: CurrentUser, repository: TimeEntries):
    """
    Get a specific time entry by ID.
    """
    entry = await run(GetTimeEntryUseCase(repository), user, EntityIdRequestDTO(id=time_entry_id))
    return success_response(entry)


@router.put("/{time_entry_id}")
async def update_time_entry(
    time_entry_id: str,
    request: UpdateTimeEntryRequestDTO,
    user: CurrentUser,
    repository: TimeEntries
):
    """
    Update a draft or rejected time entry. Only the provided fields change.
    """
    request = request.model_copy(update={"id": time_entry_id})
    entry = await run(UpdateTimeEntryUseCase(repository), user, request)
    return success_response(entry, "Time entry updated")


@router.delete("/{time_entry_id}")
async def delete_time_entry(time_entry_id: str, user: CurrentUser, repository: TimeEntries):
    """
    Delete a draft or rejected time entry.
    """
    deleted = await run(DeleteTimeEntryUseCase(repository), user, EntityIdRequestDTO(id=time_entry_id))
    return success_response(deleted, "Time entry deleted")
