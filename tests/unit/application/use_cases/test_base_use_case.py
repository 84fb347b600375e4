"""
Unit tests for the use case base classes.
"""

import pytest
from pydantic import Field

from timeledger.application.dto.base_dto import BulkIdsRequestDTO, RequestDTO
from timeledger.application.use_cases.base_use_case import (
    AuthorizedUseCase,
    BulkItemFailure,
    BulkResult,
    BulkUseCase,
    QueryUseCase,
    UseCaseResult
)
from timeledger.domain.models.base import (
    EntityNotFoundError,
    InvalidStateError,
    StoreError,
    ValidationError
)
from timeledger.domain.models.user import ActingUser, UserRole


class EchoRequestDTO(RequestDTO):
    value: str = Field(min_length=1)


class EchoUseCase(QueryUseCase[EchoRequestDTO, str]):
    async def _execute_business_logic(self, request: EchoRequestDTO) -> str:
        return request.value.upper()


class FailingUseCase(QueryUseCase[EchoRequestDTO, str]):
    def __init__(self, exc: Exception):
        super().__init__()
        self.exc = exc

    async def _execute_business_logic(self, request: EchoRequestDTO) -> str:
        raise self.exc


class ManagerOnlyUseCase(AuthorizedUseCase, QueryUseCase[EchoRequestDTO, str]):
    async def _check_authorization(self, request: EchoRequestDTO) -> None:
        self._require_role(UserRole.MANAGER, UserRole.ADMIN)

    async def _execute_business_logic(self, request: EchoRequestDTO) -> str:
        return self.current_user_id


class OddFailsUseCase(BulkUseCase[BulkIdsRequestDTO]):
    def __init__(self):
        super().__init__(max_batch_size=3)

    async def _process_item(self, item_id: str, request: BulkIdsRequestDTO) -> None:
        if item_id == "missing":
            raise EntityNotFoundError("TimeEntry", item_id)
        if item_id == "boom":
            raise RuntimeError("database exploded")


class TestUseCaseResult:
    """Test cases for UseCaseResult."""

    def test_from_validation_error_keeps_details(self):
        exc = ValidationError.from_errors([
            {"field": "project_id", "message": "Project ID is required"},
            {"field": "tags", "message": "At most 10 tags are allowed"},
        ])

        result = UseCaseResult.from_exception(exc)

        assert result.success is False
        assert result.error_code == "VALIDATION_ERROR"
        assert result.error_type == "validation"
        assert len(result.details) == 2

    def test_from_domain_exception_keeps_category(self):
        result = UseCaseResult.from_exception(InvalidStateError("Already submitted", "ALREADY_SUBMITTED"))

        assert result.error_code == "ALREADY_SUBMITTED"
        assert result.error_type == "invalid_state"
        assert result.details is None

    def test_unexpected_exception_is_masked(self):
        result = UseCaseResult.from_exception(KeyError("secret column"))

        assert result.error == "An internal error occurred"
        assert result.error_code == "INTERNAL_ERROR"
        assert result.error_type == "internal"

    def test_store_error_is_internal(self):
        result = UseCaseResult.from_exception(StoreError("save_time_entry", "entry-1"))

        assert result.error_type == "internal"
        assert "entry-1" not in result.error


class TestBulkResult:
    """Test cases for bulk status mapping."""

    def test_all_succeeded(self):
        assert BulkResult(successful=["a", "b"]).http_status == 200

    def test_partial_failure(self):
        bulk = BulkResult(successful=["a"], failed=[BulkItemFailure("b", "NOT_FOUND", "missing")])

        assert bulk.http_status == 207
        assert bulk.all_failed is False

    def test_all_failed(self):
        bulk = BulkResult(failed=[BulkItemFailure("b", "NOT_FOUND", "missing")])

        assert bulk.http_status == 400
        assert bulk.all_failed is True
        assert bulk.to_dict()["summary"] == {"requested": 1, "succeeded": 0, "failed": 1}


class TestBaseUseCase:
    """Test cases for the execute pipeline."""

    @pytest.mark.asyncio
    async def test_success_carries_metadata(self):
        result = await EchoUseCase().execute(EchoRequestDTO(value="ok"))

        assert result.success is True
        assert result.data == "OK"
        assert "execution_time_seconds" in result.metadata

    @pytest.mark.asyncio
    async def test_domain_failure_becomes_error_result(self):
        result = await FailingUseCase(EntityNotFoundError("Invoice", "x")).execute(EchoRequestDTO(value="ok"))

        assert result.success is False
        assert result.error_type == "not_found"
        assert result.metadata["exception_type"] == "EntityNotFoundError"

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_internal(self):
        result = await FailingUseCase(RuntimeError("boom")).execute(EchoRequestDTO(value="ok"))

        assert result.error_code == "INTERNAL_ERROR"
        assert "boom" not in result.error


class TestAuthorizedUseCase:
    """Test cases for the actor checks."""

    @pytest.mark.asyncio
    async def test_missing_actor_is_rejected(self):
        result = await ManagerOnlyUseCase().execute(EchoRequestDTO(value="ok"))

        assert result.error_code == "UNAUTHORIZED"
        assert result.error_type == "forbidden"

    @pytest.mark.asyncio
    async def test_role_is_required(self):
        use_case = ManagerOnlyUseCase()
        use_case.set_current_user(ActingUser("employee-1", UserRole.EMPLOYEE))

        result = await use_case.execute(EchoRequestDTO(value="ok"))

        assert result.error_code == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_role_granted(self):
        use_case = ManagerOnlyUseCase()
        use_case.set_current_user(ActingUser("manager-1", UserRole.MANAGER))

        result = await use_case.execute(EchoRequestDTO(value="ok"))

        assert result.data == "manager-1"


class TestBulkUseCase:
    """Test cases for per-item isolation in bulk operations."""

    def setup_method(self):
        self.use_case = OddFailsUseCase()
        self.use_case.set_current_user(ActingUser("employee-1", UserRole.EMPLOYEE))

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_the_rest(self):
        result = await self.use_case.execute(BulkIdsRequestDTO(ids=["a", "missing", "b"]))

        bulk = result.data
        assert bulk.successful == ["a", "b"]
        assert [(failure.id, failure.error_code) for failure in bulk.failed] == [("missing", "NOT_FOUND")]
        assert bulk.http_status == 207

    @pytest.mark.asyncio
    async def test_unexpected_item_failure_is_masked(self):
        result = await self.use_case.execute(BulkIdsRequestDTO(ids=["boom"]))

        failure = result.data.failed[0]
        assert failure.error_code == "INTERNAL_ERROR"
        assert "exploded" not in failure.message

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ids", [[], ["a", "b", "c", "d"]])
    async def test_batch_size_is_checked_first(self, ids):
        result = await self.use_case.execute(BulkIdsRequestDTO(ids=ids))

        assert result.success is False
        assert result.error_code == "INVALID_BATCH_SIZE"
