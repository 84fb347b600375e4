"""
Base DTOs for the application layer.
Provides common patterns for request/response data transfer objects.
"""

from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict


class BaseDTO(BaseModel):
    """Base DTO with common configuration."""

    model_config = ConfigDict(
        # Allow population by field name or alias
        populate_by_name=True,
        # Convert enum values to their values
        use_enum_values=True,
        # Validate assignment
        validate_assignment=True,
        # Unknown fields are rejected
        extra="forbid",
    )


class RequestDTO(BaseDTO):
    """Base class for request DTOs."""
    pass


class ResponseDTO(BaseDTO):
    """Base class for response DTOs."""

    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EntityIdRequestDTO(RequestDTO):
    """Request addressing a single entity by id."""

    id: str = Field(min_length=1, description="Entity ID")


class ListRequestDTO(RequestDTO):
    """Base class for list request DTOs with limit/offset pagination."""

    limit: int = Field(default=50, ge=1, le=100, description="Maximum number of items")
    offset: int = Field(default=0, ge=0, description="Items to skip")


class BulkIdsRequestDTO(RequestDTO):
    """
    Base class for bulk operation requests.
    Size limits are enforced by the bulk use case before any item is processed.
    """

    ids: List[str] = Field(description="List of IDs to process")
