"""
Base entity, events and exceptions for the domain layer.
This module contains the foundational classes for all domain entities.
"""

from datetime import datetime, timezone
from typing import Optional, Any, Dict, List
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import uuid


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize an aware datetime to naive UTC; naive values are assumed UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    """Generate a new entity identifier."""
    return str(uuid.uuid4())


class DomainEvent(ABC):
    """Base class for domain events."""

    def __init__(self):
        self.occurred_at = utcnow()
        self.event_id = new_id()

    @property
    @abstractmethod
    def event_name(self) -> str:
        """Return the name of the event."""
        pass

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary."""
        data = {
            key: value.isoformat() if isinstance(value, datetime) else value
            for key, value in self.__dict__.items()
            if key not in ("event_id", "occurred_at")
        }
        return {
            "event_id": self.event_id,
            "event_name": self.event_name,
            "occurred_at": self.occurred_at.isoformat(),
            "data": data
        }


@dataclass
class BaseEntity(ABC):
    """
    Base class for all domain entities.
    Provides common attributes and behavior for all entities.
    """

    id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    # Domain events
    _events: List[DomainEvent] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self):
        """Initialize entity after creation."""
        if self.created_at is None:
            self.created_at = utcnow()
        if self.updated_at is None:
            self.updated_at = self.created_at

    def __eq__(self, other: Any) -> bool:
        """Entities are equal if they have the same ID and are of the same type."""
        if not isinstance(other, self.__class__):
            return False
        if self.id is None or other.id is None:
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        """Hash based on entity ID."""
        if self.id is None:
            return hash(id(self))
        return hash((self.__class__.__name__, self.id))

    def mark_as_updated(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = utcnow()

    def add_event(self, event: DomainEvent) -> None:
        """Add a domain event."""
        self._events.append(event)

    def pull_events(self) -> List[DomainEvent]:
        """Get and clear all domain events."""
        events = self._events.copy()
        self._events.clear()
        return events

    @property
    def is_new(self) -> bool:
        """Check if entity is new (not persisted)."""
        return self.id is None

    def validate(self) -> None:
        """
        Validate the entity's state.
        Should be overridden by subclasses to implement specific validation rules.
        Raises ValidationError if the entity is in an invalid state.
        """
        pass


@dataclass(eq=False)
class AggregateRoot(BaseEntity):
    """
    Base class for aggregate roots.
    Aggregate roots are the entry points to aggregates and handle domain events.
    """

    # Store version the aggregate was loaded at; the store bumps it on every write
    version: int = field(default=1)


class DomainException(Exception):
    """Base exception for domain errors."""

    category = "domain"

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)


class ValidationError(DomainException):
    """
    Exception raised when input or entity validation fails.
    Carries every violation found, not only the first one.
    """

    category = "validation"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        code: str = "VALIDATION_ERROR"
    ):
        super().__init__(message, code)
        self.field = field
        self.errors = errors if errors is not None else [{"field": field, "message": message}]

    @classmethod
    def from_errors(cls, errors: List[Dict[str, Any]], code: str = "VALIDATION_ERROR") -> "ValidationError":
        """Build a single exception out of a collected list of violations."""
        message = "; ".join(error["message"] for error in errors)
        field = errors[0].get("field") if len(errors) == 1 else None
        return cls(message, field=field, errors=errors, code=code)


class BusinessRuleViolation(DomainException):
    """Exception raised when a business rule is violated."""

    category = "business_rule"

    def __init__(self, message: str, code: str = "BUSINESS_RULE_VIOLATION"):
        super().__init__(message, code)


class InvalidStateError(BusinessRuleViolation):
    """Operation attempted from a state that forbids it."""

    category = "invalid_state"


class ConcurrentModificationError(InvalidStateError):
    """The stored entity changed after it was loaded."""

    def __init__(self, entity_type: str, entity_id: Any):
        super().__init__(
            f"{entity_type} {entity_id} was modified by another request; reload and retry",
            "CONCURRENT_MODIFICATION"
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class InvariantViolation(BusinessRuleViolation):
    """Operation would break a ledger invariant or an allowed transition."""

    category = "invariant"


class AuthorizationError(DomainException):
    """Actor lacks ownership or role for the operation."""

    category = "forbidden"

    def __init__(self, message: str = "Access forbidden", code: str = "FORBIDDEN"):
        super().__init__(message, code)


class EntityNotFoundError(DomainException):
    """Exception raised when an entity is not found."""

    category = "not_found"

    def __init__(self, entity_type: str, entity_id: Any, code: str = "NOT_FOUND"):
        message = f"{entity_type} with id {entity_id} not found"
        super().__init__(message, code)
        self.entity_type = entity_type
        self.entity_id = entity_id


class DuplicateEntityError(DomainException):
    """Exception raised when trying to create a duplicate entity."""

    category = "conflict"

    def __init__(self, entity_type: str, field: str, value: Any, code: str = "DUPLICATE_ENTITY"):
        message = f"{entity_type} with {field}='{value}' already exists"
        super().__init__(message, code)
        self.entity_type = entity_type
        self.field = field
        self.value = value


class StoreError(DomainException):
    """Unexpected persistence failure, reported to callers as an internal error."""

    category = "internal"

    def __init__(self, operation: str, entity_id: Any = None):
        super().__init__("An internal error occurred", "INTERNAL_ERROR")
        self.operation = operation
        self.entity_id = entity_id


@dataclass(frozen=True)
class ValueObject(ABC):
    """
    Base class for value objects.
    Value objects are immutable and are compared by their values.
    """

    def __post_init__(self):
        """Validate value object after creation."""
        self.validate()

    @abstractmethod
    def validate(self) -> None:
        """Validate the value object's state."""
        pass
