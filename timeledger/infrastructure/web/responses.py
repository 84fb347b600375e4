"""
Response helpers shared by the routers.
Success bodies use ``{success: true, data, message}``.
"""

from typing import Any, Optional
from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from timeledger.application.use_cases.base_use_case import BulkResult, UseCaseResult
from timeledger.infrastructure.web.middleware.error_handler import BusinessException, status_for


def to_payload(data: Any) -> Any:
    """JSON-ready form of DTOs, dicts and lists."""
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True)
    if isinstance(data, list):
        return [to_payload(item) for item in data]
    return jsonable_encoder(data)


def unwrap(result: UseCaseResult) -> Any:
    """Return the data of a successful result, raise BusinessException otherwise."""
    if result.success:
        return result.data
    raise BusinessException(
        message=result.error or "Request failed",
        error_code=result.error_code,
        status_code=status_for(result.error_type),
        details=result.details if result.error_type == "validation" else None
    )


def success_response(
    data: Any = None,
    message: Optional[str] = None,
    status_code: int = status.HTTP_200_OK
) -> JSONResponse:
    body = {"success": True, "data": to_payload(data)}
    if message:
        body["message"] = message
    return JSONResponse(status_code=status_code, content=body)


def bulk_response(bulk: BulkResult, action: str) -> JSONResponse:
    """
    Per-item outcome of a bulk operation: 200 when every item succeeded,
    207 for a mix and 400 when all failed.
    """
    summary = f"{len(bulk.successful)} of {len(bulk.successful) + len(bulk.failed)} time entries {action}"

    body = {"success": not bulk.all_failed, "data": bulk.to_dict(), "message": summary}
    if bulk.all_failed:
        body["error"] = {"code": "BULK_OPERATION_FAILED", "message": summary}
    return JSONResponse(status_code=bulk.http_status, content=body)


async def run(use_case, user, request) -> Any:
    """Execute a use case as ``user`` and unwrap its result."""
    use_case.set_current_user(user)
    return unwrap(await use_case.execute(request))
