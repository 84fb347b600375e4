"""
Unit tests for TimeEntry domain model.
"""

import pytest
from datetime import date, datetime

from timeledger.domain.models.base import InvalidStateError, ValidationError
from timeledger.domain.models.time_entry import TimeEntry, TimeEntryStatus


def _entry(**overrides):
    values = dict(
        user_id="user-1",
        project_id="project-1",
        description="Write report",
        entry_date=date(2024, 3, 4),
        duration_minutes=90,
    )
    values.update(overrides)
    return TimeEntry(**values)


class TestTimeEntry:
    """Test cases for TimeEntry domain model."""

    def test_new_entry_is_draft_and_editable(self):
        entry = _entry()

        assert entry.status == TimeEntryStatus.DRAFT
        assert entry.is_editable is True
        assert entry.duration_hours == 1.5

    def test_duration_derived_from_start_and_end(self):
        entry = _entry(
            duration_minutes=None,
            start_time=datetime(2024, 3, 4, 9, 0),
            end_time=datetime(2024, 3, 4, 10, 45)
        )

        assert entry.duration_minutes == 105

    def test_validate_reports_every_violation(self):
        entry = _entry(project_id="", duration_minutes=0, tags=[f"t{i}" for i in range(11)])

        with pytest.raises(ValidationError) as exc_info:
            entry.validate()

        fields = {error["field"] for error in exc_info.value.errors}
        assert fields == {"project_id", "duration_minutes", "tags"}

    def test_validate_rejects_duration_over_a_day(self):
        with pytest.raises(ValidationError, match="cannot exceed 1440"):
            _entry(duration_minutes=1441).validate()

    def test_validate_rejects_duration_not_matching_times(self):
        entry = _entry(
            start_time=datetime(2024, 3, 4, 9, 0),
            end_time=datetime(2024, 3, 4, 10, 0),
            duration_minutes=90
        )

        with pytest.raises(ValidationError, match="does not match"):
            entry.validate()

    def test_duration_within_one_minute_tolerance_is_accepted(self):
        entry = _entry(
            start_time=datetime(2024, 3, 4, 9, 0),
            end_time=datetime(2024, 3, 4, 10, 0),
            duration_minutes=61
        )

        entry.validate()

    def test_submit_moves_draft_to_submitted(self):
        entry = _entry(id="entry-1")

        entry.submit("user-1")

        assert entry.status == TimeEntryStatus.SUBMITTED
        assert entry.submitted_at is not None
        events = entry.pull_events()
        assert [event.event_name for event in events] == ["time_entry.submitted"]

    def test_submit_requires_description(self):
        entry = _entry(description="  ")

        with pytest.raises(ValidationError) as exc_info:
            entry.submit("user-1")

        assert exc_info.value.code == "MISSING_DESCRIPTION"

    def test_submit_twice_fails(self):
        entry = _entry()
        entry.submit("user-1")

        with pytest.raises(InvalidStateError) as exc_info:
            entry.submit("user-1")

        assert exc_info.value.code == "ALREADY_SUBMITTED"

    def test_approve_requires_submitted(self):
        entry = _entry()

        with pytest.raises(InvalidStateError) as exc_info:
            entry.approve("manager-1")

        assert exc_info.value.code == "NOT_SUBMITTED"

    def test_approve_sets_approver(self):
        entry = _entry()
        entry.submit("user-1")

        entry.approve("manager-1")

        assert entry.status == TimeEntryStatus.APPROVED
        assert entry.approved_by == "manager-1"
        assert entry.approved_at is not None
        assert entry.is_editable is False

    def test_reject_requires_reason(self):
        entry = _entry()
        entry.submit("user-1")

        with pytest.raises(ValidationError, match="reason is required"):
            entry.reject("manager-1", "   ")

    def test_rejected_entry_can_be_edited_and_resubmitted(self):
        entry = _entry()
        entry.submit("user-1")
        entry.reject("manager-1", " Wrong project ")

        assert entry.status == TimeEntryStatus.REJECTED
        assert entry.rejection_reason == "Wrong project"

        entry.apply_changes({"project_id": "project-2"})
        entry.submit("user-1")

        assert entry.status == TimeEntryStatus.SUBMITTED
        assert entry.project_id == "project-2"

    def test_apply_changes_on_approved_entry_fails(self):
        entry = _entry()
        entry.submit("user-1")
        entry.approve("manager-1")

        with pytest.raises(InvalidStateError):
            entry.apply_changes({"description": "Changed"})

    def test_apply_changes_recomputes_duration_from_times(self):
        entry = _entry(
            duration_minutes=None,
            start_time=datetime(2024, 3, 4, 9, 0),
            end_time=datetime(2024, 3, 4, 10, 0)
        )

        entry.apply_changes({"end_time": datetime(2024, 3, 4, 11, 30)})

        assert entry.duration_minutes == 150

    def test_apply_changes_rejects_unknown_fields(self):
        with pytest.raises(ValidationError, match="Unknown fields: status"):
            _entry().apply_changes({"status": "approved"})

    def test_overlaps_uses_half_open_intervals(self):
        entry = _entry(
            duration_minutes=None,
            start_time=datetime(2024, 3, 4, 9, 0),
            end_time=datetime(2024, 3, 4, 10, 0)
        )

        assert entry.overlaps(datetime(2024, 3, 4, 9, 30), datetime(2024, 3, 4, 11, 0)) is True
        assert entry.overlaps(datetime(2024, 3, 4, 10, 0), datetime(2024, 3, 4, 11, 0)) is False

    def test_untimed_entry_never_overlaps(self):
        assert _entry().overlaps(datetime(2024, 3, 4, 0, 0), datetime(2024, 3, 4, 23, 59)) is False
