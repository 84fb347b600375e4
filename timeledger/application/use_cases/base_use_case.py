"""
Base use case classes for the application layer.
Provides common patterns and structure for use case implementations.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, TypeVar, Generic, List
from dataclasses import dataclass, field
from datetime import datetime
from pydantic import ValidationError as PydanticValidationError

from timeledger.domain.models.base import (
    DomainException,
    DomainEvent,
    ValidationError,
    AuthorizationError,
    utcnow
)
from timeledger.domain.models.user import ActingUser, UserRole

logger = logging.getLogger(__name__)


T = TypeVar('T')
R = TypeVar('R')


@dataclass
class UseCaseResult(Generic[T]):
    """Result wrapper for use case operations."""

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    error_type: Optional[str] = None
    details: Optional[List[Dict[str, Any]]] = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def success_result(cls, data: T, metadata: Optional[Dict[str, Any]] = None) -> "UseCaseResult[T]":
        """Create a successful result."""
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def error_result(
        cls,
        error: str,
        error_code: Optional[str] = None,
        error_type: Optional[str] = None,
        details: Optional[List[Dict[str, Any]]] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> "UseCaseResult[T]":
        """Create an error result."""
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            error_type=error_type,
            details=details,
            metadata=metadata
        )

    @classmethod
    def from_exception(cls, exc: Exception) -> "UseCaseResult[T]":
        """Create error result from exception."""
        if isinstance(exc, ValidationError):
            return cls.error_result(exc.message, exc.code, exc.category, details=exc.errors)
        elif isinstance(exc, DomainException):
            return cls.error_result(exc.message, exc.code, exc.category)
        else:
            # Never leak internals of unexpected failures
            return cls.error_result("An internal error occurred", "INTERNAL_ERROR", "internal")


@dataclass
class BulkItemFailure:
    """Outcome of one failed item in a bulk operation."""

    id: str
    error_code: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "error": {"code": self.error_code, "message": self.message}}


@dataclass
class BulkResult:
    """
    Per-item outcome of a bulk operation.
    All succeeded maps to 200, a mix to 207 and all failed to 400.
    """

    successful: List[str] = field(default_factory=list)
    failed: List[BulkItemFailure] = field(default_factory=list)

    @property
    def http_status(self) -> int:
        if not self.failed:
            return 200
        if not self.successful:
            return 400
        return 207

    @property
    def all_failed(self) -> bool:
        return bool(self.failed) and not self.successful

    def to_dict(self) -> Dict[str, Any]:
        return {
            "successful": list(self.successful),
            "failed": [failure.to_dict() for failure in self.failed],
            "summary": {
                "requested": len(self.successful) + len(self.failed),
                "succeeded": len(self.successful),
                "failed": len(self.failed),
            },
        }


class BaseUseCase(ABC, Generic[T, R]):
    """
    Base class for all use cases.
    Provides common structure and error handling.
    """

    def __init__(self):
        self.execution_start: Optional[datetime] = None
        self.execution_end: Optional[datetime] = None

    async def execute(self, request: T) -> UseCaseResult[R]:
        """
        Execute the use case with proper error handling and logging.
        """
        self.execution_start = utcnow()

        try:
            # Validate input
            await self._validate_request(request)

            # Execute business logic
            result = await self._execute_business_logic(request)

            self.execution_end = utcnow()
            execution_time = (self.execution_end - self.execution_start).total_seconds()

            return UseCaseResult.success_result(
                result,
                metadata={
                    "execution_time_seconds": execution_time,
                    "executed_at": self.execution_end.isoformat()
                }
            )

        except Exception as exc:
            self.execution_end = utcnow()
            execution_time = (self.execution_end - self.execution_start).total_seconds()

            if not isinstance(exc, DomainException):
                logger.error(
                    f"{type(self).__name__} failed unexpectedly: {type(exc).__name__}",
                    exc_info=True,
                    extra={"operation": type(self).__name__}
                )

            error_result = UseCaseResult.from_exception(exc)
            error_result.metadata = {
                "execution_time_seconds": execution_time,
                "failed_at": self.execution_end.isoformat(),
                "exception_type": type(exc).__name__
            }

            return error_result

    async def _validate_request(self, request: T) -> None:
        """
        Validate the request. Override in subclasses if needed.
        """
        if hasattr(request, 'model_validate'):
            # Pydantic models
            try:
                request.model_validate(request.model_dump())
            except PydanticValidationError as exc:
                raise ValidationError.from_errors([
                    {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
                    for error in exc.errors()
                ])
        elif hasattr(request, 'validate'):
            # Custom validation
            request.validate()

    @abstractmethod
    async def _execute_business_logic(self, request: T) -> R:
        """
        Execute the core business logic. Must be implemented by subclasses.
        """
        pass


class QueryUseCase(BaseUseCase[T, R]):
    """
    Base class for query use cases (read operations).
    """
    pass


class CommandUseCase(BaseUseCase[T, R]):
    """
    Base class for command use cases (write operations).
    Collects domain events raised by the entities it changed.
    """

    def __init__(self):
        super().__init__()
        self.events: List[DomainEvent] = []

    async def _execute_business_logic(self, request: T) -> R:
        result = await self._execute_command_logic(request)
        await self._publish_events()
        return result

    @abstractmethod
    async def _execute_command_logic(self, request: T) -> R:
        """Execute the command logic. Must be implemented by subclasses."""
        pass

    def _collect_events(self, entity) -> None:
        self.events.extend(entity.pull_events())

    async def _publish_events(self) -> None:
        """Publish collected domain events. Without an event bus they are logged."""
        for event in self.events:
            logger.info(f"Domain event {event.event_name}", extra={"event_id": event.event_id})
        self.events.clear()


class PaginatedQueryUseCase(QueryUseCase[T, R]):
    """
    Base class for paginated query use cases.
    """

    def __init__(self, default_page_size: int = 50, max_page_size: int = 100):
        super().__init__()
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    async def _validate_request(self, request: T) -> None:
        """Validate paginated request."""
        await super()._validate_request(request)

        if hasattr(request, 'limit'):
            if request.limit > self.max_page_size:
                raise ValidationError(f"Limit cannot exceed {self.max_page_size}", "limit")
            if request.limit < 1:
                raise ValidationError("Limit must be positive", "limit")


# Specific use case patterns
class CreateUseCase(CommandUseCase[T, R]):
    """Base class for entity creation use cases."""
    pass


class UpdateUseCase(CommandUseCase[T, R]):
    """Base class for entity update use cases."""
    pass


class DeleteUseCase(CommandUseCase[T, R]):
    """Base class for entity deletion use cases."""
    pass


class GetByIdUseCase(QueryUseCase[T, R]):
    """Base class for get-by-id use cases."""

    async def _validate_request(self, request: T) -> None:
        await super()._validate_request(request)

        if hasattr(request, 'id') and not request.id:
            raise ValidationError("ID is required", "id")


class ListUseCase(PaginatedQueryUseCase[T, R]):
    """Base class for list use cases."""
    pass


# Authorization mixin
class AuthorizedUseCase(BaseUseCase[T, R]):
    """
    Mixin for use cases that require an authenticated actor.
    The actor comes from the transport layer and is never re-derived here.
    """

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.current_user: Optional[ActingUser] = None

    def set_current_user(self, user: ActingUser) -> None:
        """Set the current user context."""
        self.current_user = user

    @property
    def current_user_id(self) -> Optional[str]:
        return self.current_user.user_id if self.current_user else None

    async def _validate_request(self, request: T) -> None:
        """Validate request with authorization check."""
        if not self.current_user:
            raise AuthorizationError("User authentication required", "UNAUTHORIZED")

        await super()._validate_request(request)
        await self._check_authorization(request)

    async def _check_authorization(self, request: T) -> None:
        """Check if the current user is authorized. Override in subclasses."""
        pass

    def _require_role(self, *roles: UserRole) -> None:
        """Check if user has one of the required roles."""
        if self.current_user.role not in roles:
            raise AuthorizationError(
                f"Role {' or '.join(role.value for role in roles)} required", "FORBIDDEN"
            )

    def _require_owner_or_approver(self, resource_owner_id: str, code: str = "FORBIDDEN") -> None:
        """Check if user owns the resource or may act on others' resources."""
        if not self.current_user.can_act_on(resource_owner_id):
            raise AuthorizationError("Insufficient permissions", code)


class BulkUseCase(AuthorizedUseCase[T, BulkResult], CommandUseCase[T, BulkResult]):
    """
    Base class for bulk operations over a list of ids.

    The batch size is checked before any item is touched; afterwards every
    item is processed on its own and one item's failure never stops the rest.
    """

    def __init__(self, max_batch_size: int = 50):
        super().__init__()
        self.max_batch_size = max_batch_size

    async def _validate_request(self, request: T) -> None:
        """Validate bulk request."""
        ids = getattr(request, 'ids', None) or []
        if len(ids) < 1:
            raise ValidationError("At least one id is required", "ids", code="INVALID_BATCH_SIZE")
        if len(ids) > self.max_batch_size:
            raise ValidationError(
                f"Batch size cannot exceed {self.max_batch_size}", "ids", code="INVALID_BATCH_SIZE"
            )

        await super()._validate_request(request)

    async def _execute_command_logic(self, request: T) -> BulkResult:
        result = BulkResult()
        for item_id in request.ids:
            try:
                await self._process_item(item_id, request)
                result.successful.append(item_id)
            except DomainException as exc:
                logger.warning(
                    f"{type(self).__name__}: item {item_id} failed with {exc.code}: {exc.message}"
                )
                result.failed.append(BulkItemFailure(item_id, exc.code, exc.message))
            except Exception:
                logger.error(
                    f"{type(self).__name__}: item {item_id} failed unexpectedly",
                    exc_info=True,
                    extra={"operation": type(self).__name__, "entity_id": item_id}
                )
                result.failed.append(BulkItemFailure(item_id, "INTERNAL_ERROR", "An internal error occurred"))
        return result

    @abstractmethod
    async def _process_item(self, item_id: str, request: T) -> None:
        """Apply the operation to a single item. Raise a DomainException to fail it."""
        pass
