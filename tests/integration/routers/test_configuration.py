"""
Integration tests for GET /api/v1/config.

Source: https://fastapi.tiangolo.com/advanced/async-tests/
"""

import pytest
from httpx import AsyncClient


@pytest.mark.integration
class TestConfiguration:
    """Tests for the configuration endpoint."""

    @pytest.mark.asyncio
    async def test_get_config(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/config")

        assert response.status_code == 200
        data = response.json()
        assert "lastUpdated" in data
        assert set(data["rules"]["tiers"]) == {"T1", "T2", "T3"}
        assert data["artifacts"]["artifacts"]
        assert data["validation"]["rules"] == {"valid": True, "errors": []}
        assert data["validation"]["artifacts"] == {"valid": True, "errors": []}
