"""
Integration tests for GET /api/v1/audit/{use_case_id}.

Source: https://fastapi.tiangolo.com/advanced/async-tests/
"""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tests.conftest import create_test_use_case
from tests.fixtures.factories import create_use_case_data


@pytest.mark.integration
class TestAuditTrail:
    """Tests for reading the audit trail."""

    @pytest.mark.asyncio
    async def test_newest_first(self, async_client: AsyncClient):
        created = await async_client.post("/api/v1/usecases", json=create_use_case_data())
        use_case_id = created.json()["id"]
        await async_client.post(f"/api/v1/usecases/{use_case_id}/submit")

        response = await async_client.get(f"/api/v1/audit/{use_case_id}")

        assert response.status_code == 200
        assert [e["event_type"] for e in response.json()] == ["Submitted", "Created"]

    @pytest.mark.asyncio
    async def test_limit(self, async_client: AsyncClient):
        created = await async_client.post("/api/v1/usecases", json=create_use_case_data())
        use_case_id = created.json()["id"]
        await async_client.post(f"/api/v1/usecases/{use_case_id}/submit")

        response = await async_client.get(f"/api/v1/audit/{use_case_id}", params={"limit": 1})

        assert [e["event_type"] for e in response.json()] == ["Submitted"]

    @pytest.mark.asyncio
    async def test_unknown_use_case(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/audit/missing")

        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_use_case_without_events(self, async_client: AsyncClient, db_session: AsyncSession):
        use_case = await create_test_use_case(db_session)

        response = await async_client.get(f"/api/v1/audit/{use_case.id}")

        assert response.json() == []
