"""
Internal API router for the image resizer service.

- Admission checks (validate a key and debit its monthly quota)
- Usage lookups (read-only)

These endpoints are protected by internal API key authentication
(X-Internal-API-Key header) and are not meant for public consumption.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.apps.image_resizer.schemas.usage import (
    AdmissionResponse,
    UsageCheckRequest,
    UsageInfoResponse,
)
from app.apps.image_resizer.services.key_validator import (
    KeyValidation,
    MISSING_CREDENTIAL,
)
from app.apps.image_resizer.services.usage_meter import (
    AdmissionResult,
    usage_meter,
)
from app.core.dependencies import get_async_session, InternalAPIKeyDep
from app.core.enums import AdmissionDenial
from app.core.exceptions.handlers import exception_schema
from app.core.exceptions.types import (
    InvalidCredentialException,
    UpstreamUnavailableException,
)


router = APIRouter(prefix="/internal", tags=["Internal API"])


DENIAL_STATUS_CODES: dict[AdmissionDenial, int] = {
    AdmissionDenial.INVALID_CREDENTIAL: status.HTTP_401_UNAUTHORIZED,
    AdmissionDenial.QUOTA_EXCEEDED: status.HTTP_429_TOO_MANY_REQUESTS,
    AdmissionDenial.UPSTREAM_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    AdmissionDenial.PERSISTENCE_WRITE_FAILED: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def admission_status_code(result: AdmissionResult) -> int:
    """HTTP status for an admission result. A missing key is a 400."""
    if result.admitted:
        return status.HTTP_200_OK
    if result.reason == MISSING_CREDENTIAL:
        return status.HTTP_400_BAD_REQUEST
    return DENIAL_STATUS_CODES.get(
        result.kind, status.HTTP_500_INTERNAL_SERVER_ERROR
    )


@router.post(
    "/usage/check",
    response_model=AdmissionResponse,
    summary="Check an API key and consume one request",
    description="""
    Validate an API key and debit one request from its monthly quota.

    Usage resets on calendar-month boundaries (UTC). Keys with
    `limit_usage=false` are always admitted and report `usage=0, limit=0`.
    A denied request never consumes quota.

    **Security**: Requires X-Internal-API-Key header.

    **Status Codes**:
    - 200: Admitted
    - 400: No API key presented
    - 401: Unknown API key
    - 429: Monthly quota exceeded
    - 503: Key store unavailable, or the debit could not be recorded
    """,
    responses={
        200: {
            "description": "Admitted",
            "content": {
                "application/json": {
                    "example": {"admitted": True, "usage": 3, "limit": 5},
                }
            },
        },
        400: {
            "description": "Missing credential",
            "content": {
                "application/json": {
                    "example": {
                        "admitted": False,
                        "reason": "missing credential",
                        "kind": "invalid_credential",
                    },
                }
            },
        },
        429: {
            "description": "Quota exceeded",
            "content": {
                "application/json": {
                    "example": {
                        "admitted": False,
                        "usage": 5,
                        "limit": 5,
                        "reason": "Rate limit exceeded. Usage: 5/5 requests this month",
                        "kind": "quota_exceeded",
                    },
                }
            },
        },
    },
)
async def check_usage(
    request: UsageCheckRequest,
    _: InternalAPIKeyDep,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> JSONResponse:
    """
    Admit or deny a request for the presented key.

    The meter commits its own debit so a failed write can be reported as a
    denial instead of an error.
    """
    result = await usage_meter.check_and_consume(session, request.api_key)

    response_data = AdmissionResponse(
        admitted=result.admitted,
        usage=result.usage,
        limit=result.limit,
        reason=result.reason,
        kind=result.kind,
    )
    return JSONResponse(
        content=response_data.model_dump(mode="json", exclude_none=True),
        status_code=admission_status_code(result),
    )


@router.get(
    "/usage",
    response_model=UsageInfoResponse,
    summary="Get current monthly usage of an API key",
    description="""
    Report the usage counted against the current calendar month and the
    effective (clamped) monthly limit. Does not consume quota.

    **Security**: Requires X-Internal-API-Key header.
    """,
    responses={
        401: exception_schema[401],
        503: exception_schema[503],
    },
)
async def get_usage(
    _: InternalAPIKeyDep,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    api_key: Annotated[str | None, Query(description="The API key")] = None,
) -> JSONResponse:
    info = await usage_meter.get_usage_info(session, api_key)

    if isinstance(info, KeyValidation):
        if info.kind == AdmissionDenial.UPSTREAM_UNAVAILABLE:
            raise UpstreamUnavailableException(info.reason)
        raise InvalidCredentialException(info.reason)

    response_data = UsageInfoResponse(
        usage=info.usage,
        limit=info.limit,
        month=info.month,
        limit_usage=info.limit_usage,
    )
    return JSONResponse(
        content=response_data.model_dump(mode="json"),
        status_code=status.HTTP_200_OK,
    )


__all__ = ["router", "admission_status_code"]
