"""
API key management router.

Owners authenticate with a JWT access token (``Authorization: Bearer``).
Every endpoint is scoped to the owner from the token's ``sub`` claim.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.apps.image_resizer.schemas.api_key import (
    APIKeyCreate,
    APIKeyDeleteResponse,
    APIKeyListResponse,
    APIKeyResponse,
    APIKeyUpdate,
)
from app.apps.image_resizer.schemas.usage import (
    ValidateKeyRequest,
    ValidateKeyResponse,
)
from app.apps.image_resizer.services.api_key import api_key_service
from app.apps.image_resizer.services.key_validator import (
    key_validator,
    MISSING_CREDENTIAL,
)
from app.core.dependencies import CurrentOwnerId, get_async_session
from app.core.enums import AdmissionDenial
from app.core.exceptions.handlers import exception_schema
from app.core.exceptions.types import (
    AppException,
    BadRequestException,
    InvalidCredentialException,
)


router = APIRouter(prefix="/api-keys", tags=["API Keys"])
validation_router = APIRouter(tags=["API Keys"])


@router.get(
    "",
    response_model=APIKeyListResponse,
    summary="List API keys",
    description="List the caller's API keys, newest first.",
    responses={401: exception_schema[401]},
)
async def list_api_keys(
    owner_id: CurrentOwnerId,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> JSONResponse:
    api_keys = await api_key_service.list_keys(session, owner_id)
    response_data = APIKeyListResponse(
        api_keys=[APIKeyResponse.model_validate(k) for k in api_keys]
    )
    return JSONResponse(
        content=response_data.model_dump(mode="json"),
        status_code=status.HTTP_200_OK,
    )


@router.post(
    "",
    response_model=APIKeyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create API key",
    description="""
    Issue a new API key.

    Created keys always enforce a monthly quota. `monthly_limit` defaults
    to 5 and is clamped to the allowed range (1-10 by default).

    The secret is returned in `key` and can be read again later.
    """,
    responses={401: exception_schema[401]},
)
async def create_api_key(
    request: APIKeyCreate,
    owner_id: CurrentOwnerId,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> JSONResponse:
    async with session.begin():
        api_key = await api_key_service.create_key(
            session,
            owner_id=owner_id,
            name=request.name,
            description=request.description,
            permissions=request.permissions,
            key_type=request.key_type,
            monthly_limit=request.monthly_limit,
            commit_self=False,
        )
        response_data = APIKeyResponse.model_validate(api_key)

    return JSONResponse(
        content=response_data.model_dump(mode="json"),
        status_code=status.HTTP_201_CREATED,
    )


@router.get(
    "/{key_id}",
    response_model=APIKeyResponse,
    summary="Get API key",
    responses={401: exception_schema[401]},
)
async def get_api_key(
    key_id: UUID,
    owner_id: CurrentOwnerId,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> JSONResponse:
    api_key = await api_key_service.get_key(session, owner_id, key_id)
    response_data = APIKeyResponse.model_validate(api_key)
    return JSONResponse(
        content=response_data.model_dump(mode="json"),
        status_code=status.HTTP_200_OK,
    )


@router.put(
    "/{key_id}",
    response_model=APIKeyResponse,
    summary="Update API key",
    description="""
    Replace the editable fields of an API key.

    Omitted fields reset to their defaults (`limit_usage=false`,
    `monthly_limit=1000`). The stored limit is clamped at admission time.
    """,
    responses={401: exception_schema[401]},
)
async def update_api_key(
    key_id: UUID,
    request: APIKeyUpdate,
    owner_id: CurrentOwnerId,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> JSONResponse:
    async with session.begin():
        api_key = await api_key_service.update_key(
            session,
            owner_id=owner_id,
            key_id=key_id,
            name=request.name,
            description=request.description,
            permissions=request.permissions,
            key_type=request.key_type,
            limit_usage=request.limit_usage,
            monthly_limit=request.monthly_limit,
            commit_self=False,
        )
        response_data = APIKeyResponse.model_validate(api_key)

    return JSONResponse(
        content=response_data.model_dump(mode="json"),
        status_code=status.HTTP_200_OK,
    )


@router.delete(
    "/{key_id}",
    response_model=APIKeyDeleteResponse,
    summary="Revoke API key",
    description="Permanently delete an API key. Requests using it are rejected immediately.",
    responses={401: exception_schema[401]},
)
async def delete_api_key(
    key_id: UUID,
    owner_id: CurrentOwnerId,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> JSONResponse:
    async with session.begin():
        api_key = await api_key_service.delete_key(
            session, owner_id, key_id, commit_self=False
        )
        response_data = APIKeyDeleteResponse(
            deleted_key=APIKeyResponse.model_validate(api_key)
        )

    return JSONResponse(
        content=response_data.model_dump(mode="json"),
        status_code=status.HTTP_200_OK,
    )


@validation_router.post(
    "/validate-key",
    response_model=ValidateKeyResponse,
    summary="Validate an API key",
    description="""
    Check that an API key exists and return its data. Does not consume quota.

    **Status Codes**:
    - 200: Valid key
    - 400: No API key presented
    - 401: Unknown API key
    - 500: Key store lookup failed
    """,
    responses={401: exception_schema[401], 500: exception_schema[500]},
)
async def validate_key(
    request: ValidateKeyRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> JSONResponse:
    validation = await key_validator.validate(session, request.api_key)

    if not validation.valid:
        if validation.reason == MISSING_CREDENTIAL:
            raise BadRequestException("API key is required")
        if validation.kind == AdmissionDenial.INVALID_CREDENTIAL:
            raise InvalidCredentialException(validation.reason)
        raise AppException(
            message=validation.reason or "lookup failed",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    response_data = ValidateKeyResponse(
        api_key_data=APIKeyResponse.model_validate(validation.record)
    )
    return JSONResponse(
        content=response_data.model_dump(mode="json"),
        status_code=status.HTTP_200_OK,
    )


__all__ = ["router", "validation_router"]
