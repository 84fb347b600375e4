"""
Summary DTOs for the daily summary and weekly overview reports.
"""

from typing import Optional
from datetime import date
from pydantic import Field, model_validator

from .base_dto import RequestDTO


class DailySummaryRequestDTO(RequestDTO):
    """DTO for daily summary requests."""

    start_date: date = Field(description="First day of the range")
    end_date: date = Field(description="Last day of the range (inclusive)")
    user_id: Optional[str] = Field(default=None, description="User to summarize, the caller when omitted")
    target_hours: Optional[float] = Field(
        default=None, ge=0, le=24, description="Target hours for every day, overriding the work schedule"
    )
    include_gaps: bool = Field(default=True, description="Whether to report gaps between entries")

    @model_validator(mode='after')
    def validate_date_range(self):
        if self.end_date < self.start_date:
            raise ValueError('end_date cannot be before start_date')
        return self


class WeeklyOverviewRequestDTO(RequestDTO):
    """DTO for weekly overview requests."""

    week_start_date: date = Field(description="Monday of the week")
    user_id: Optional[str] = Field(default=None, description="User to summarize, the caller when omitted")
    include_gaps: bool = Field(default=False, description="Whether to report gaps between entries")
