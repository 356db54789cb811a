"""
HTTP tests for API key management and key validation.

Run tests:
    pytest tests/apps/image_resizer/routers/test_api_keys.py -v
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from fastapi import status

from app.core.exceptions.types import DatabaseException
from app.core.utils import create_jwt_token


def other_owner_headers() -> dict[str, str]:
    token = create_jwt_token(
        data={"sub": str(uuid4()), "type": "access"},
        expires_delta=timedelta(minutes=15),
    )
    return {"Authorization": f"Bearer {token}"}


class TestOwnerAuth:

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get("/api-keys")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_invalid_token(self, client):
        response = await client.get(
            "/api-keys", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestCreateApiKey:

    @pytest.mark.asyncio
    async def test_create(self, client, auth_headers, owner_id):
        response = await client.post(
            "/api-keys",
            json={"name": "Figma plugin", "permissions": ["resize"]},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["name"] == "Figma plugin"
        assert data["user_id"] == str(owner_id)
        assert data["key"].startswith("dev_sk_")
        assert data["permissions"] == ["resize"]
        assert data["limit_usage"] is True
        assert data["monthly_limit"] == 5
        assert data["current_usage"] == 0

    @pytest.mark.asyncio
    async def test_create_production_key_with_clamped_limit(self, client, auth_headers):
        response = await client.post(
            "/api-keys",
            json={"name": "Server", "key_type": "production", "monthly_limit": 100},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["key"].startswith("prod_sk_")
        assert data["key_type"] == "production"
        assert data["monthly_limit"] == 10

    @pytest.mark.asyncio
    async def test_name_required(self, client, auth_headers):
        response = await client.post(
            "/api-keys", json={"description": "no name"}, headers=auth_headers
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "Name is required"


class TestReadApiKeys:

    @pytest.mark.asyncio
    async def test_list_only_own_keys(self, client, auth_headers, make_api_key):
        mine = await make_api_key(name="Mine")
        await make_api_key(name="Theirs", user_id=uuid4())

        response = await client.get("/api-keys", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        keys = response.json()["api_keys"]
        assert [k["id"] for k in keys] == [str(mine.id)]

    @pytest.mark.asyncio
    async def test_get_key_includes_secret(self, client, auth_headers, make_api_key):
        api_key = await make_api_key()

        response = await client.get(f"/api-keys/{api_key.id}", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["key"] == api_key.key

    @pytest.mark.asyncio
    async def test_get_other_owners_key(self, client, make_api_key):
        api_key = await make_api_key()

        response = await client.get(
            f"/api-keys/{api_key.id}", headers=other_owner_headers()
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"] == "API key not found"


class TestUpdateApiKey:

    @pytest.mark.asyncio
    async def test_update_resets_omitted_fields(
        self, client, auth_headers, make_api_key
    ):
        api_key = await make_api_key(limit_usage=True, monthly_limit=5)

        response = await client.put(
            f"/api-keys/{api_key.id}", json={"name": "Renamed"}, headers=auth_headers
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["name"] == "Renamed"
        assert data["limit_usage"] is False
        assert data["monthly_limit"] == 1000
        assert data["key_type"] == "development"

    @pytest.mark.asyncio
    async def test_update_other_owners_key(self, client, make_api_key):
        api_key = await make_api_key()

        response = await client.put(
            f"/api-keys/{api_key.id}",
            json={"name": "Hijack"},
            headers=other_owner_headers(),
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_update_requires_name(self, client, auth_headers, make_api_key):
        api_key = await make_api_key()

        response = await client.put(
            f"/api-keys/{api_key.id}", json={}, headers=auth_headers
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestDeleteApiKey:

    @pytest.mark.asyncio
    async def test_delete(self, client, auth_headers, make_api_key):
        api_key = await make_api_key()

        response = await client.delete(f"/api-keys/{api_key.id}", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["message"] == "API key deleted successfully"
        assert data["deleted_key"]["id"] == str(api_key.id)

        response = await client.get(f"/api-keys/{api_key.id}", headers=auth_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_deleted_key_is_rejected(
        self, client, auth_headers, internal_api_headers, make_api_key
    ):
        api_key = await make_api_key()

        await client.delete(f"/api-keys/{api_key.id}", headers=auth_headers)
        response = await client.post(
            "/internal/usage/check",
            json={"api_key": api_key.key},
            headers=internal_api_headers,
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_delete_unknown(self, client, auth_headers):
        response = await client.delete(f"/api-keys/{uuid4()}", headers=auth_headers)

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestValidateKey:

    @pytest.mark.asyncio
    async def test_valid(self, client, make_api_key):
        api_key = await make_api_key(current_usage=2)

        response = await client.post("/validate-key", json={"api_key": api_key.key})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["valid"] is True
        assert data["api_key_data"]["id"] == str(api_key.id)

    @pytest.mark.asyncio
    async def test_does_not_consume(self, client, make_api_key, db_session):
        api_key = await make_api_key(current_usage=2)

        await client.post("/validate-key", json={"api_key": api_key.key})

        await db_session.refresh(api_key)
        assert api_key.current_usage == 2

    @pytest.mark.asyncio
    async def test_missing(self, client):
        response = await client.post("/validate-key", json={"api_key": ""})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "API key is required"

    @pytest.mark.asyncio
    async def test_unknown(self, client):
        response = await client.post("/validate-key", json={"api_key": "dev_sk_nope"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"] == "unknown credential"

    @pytest.mark.asyncio
    async def test_lookup_failure(self, client):
        with patch(
            "app.apps.image_resizer.services.key_validator.api_key_db"
        ) as mock_db:
            mock_db.get_by_key = AsyncMock(side_effect=DatabaseException("down"))

            response = await client.post(
                "/validate-key", json={"api_key": "dev_sk_abc"}
            )

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
