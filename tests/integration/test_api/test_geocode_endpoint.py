"""Integration tests for the /geocode endpoints."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from ghost_api.api.v1.geocoding import geocoding_router
from ghost_api.core.config import Settings
from ghost_api.core.dependencies import get_geocoding_engine
from ghost_api.lib.geocoder import GeocodingEngine
from ghost_api.services.geocoding_service import create_geocoding_engine

PLACES = {
    "221b baker street, london": [
        {
            "lat": "51.5237",
            "lon": "-0.1585",
            "display_name": "221B, Baker Street, London",
            "address": {"city": "London", "country_code": "gb", "postcode": "NW1 6XE"},
        }
    ],
    "paris, france": [{"lat": "48.8566", "lon": "2.3522", "display_name": "Paris, France"}],
    "baker street": [
        {"lat": "51.52", "lon": "-0.15", "display_name": "Baker Avenue"},
        {"lat": "51.52", "lon": "-0.15", "display_name": "Baker Street, London", "address": {"road": "Baker Street"}},
    ],
}


@pytest.fixture
def nominatim_queries() -> list[str]:
    return []


@pytest.fixture
def engine(settings: Settings, nominatim_queries: list[str]) -> GeocodingEngine:
    def handler(request: httpx.Request) -> httpx.Response:
        query = request.url.params["q"]
        nominatim_queries.append(query)
        return httpx.Response(200, json=PLACES.get(query, []))

    return create_geocoding_engine(settings, httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.fixture
def app(engine: GeocodingEngine) -> FastAPI:
    """Create a minimal FastAPI app with the geocoding router."""
    app = FastAPI()
    app.include_router(geocoding_router, prefix="/api/v1")
    app.dependency_overrides[get_geocoding_engine] = lambda: engine
    return app


@pytest.fixture
def client(app: FastAPI) -> AsyncClient:
    """Create an async test client."""
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test", follow_redirects=False)


class TestGeocodeAddressEndpoint:
    """Tests for POST /api/v1/geocode/address."""

    async def test_success(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/geocode/address", json={"address": "221B Baker Street, London"})

        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["cached"] is False
        assert data["result"]["latitude"] == 51.5237
        assert data["result"]["confidence"] == 90
        assert data["result"]["country"] == "GB"
        assert data["result"]["postal_code"] == "NW1 6XE"

    async def test_second_call_is_cached(self, client: AsyncClient, nominatim_queries: list[str]) -> None:
        await client.post("/api/v1/geocode/address", json={"address": "221B Baker Street, London"})
        resp = await client.post("/api/v1/geocode/address", json={"address": "221b baker street, LONDON"})

        assert resp.json()["cached"] is True
        assert nominatim_queries == ["221b baker street, london"]

    async def test_not_found(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/geocode/address", json={"address": "Atlantis"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is False
        assert data["result"] is None
        assert data["message"] == "No results found or confidence too low"

    @pytest.mark.parametrize("address", ["", "   "])
    async def test_blank_address_is_422(self, client: AsyncClient, nominatim_queries: list[str], address: str) -> None:
        resp = await client.post("/api/v1/geocode/address", json={"address": address})
        assert resp.status_code == 422
        assert nominatim_queries == []

    async def test_min_confidence_out_of_range(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/geocode/address", json={"address": "Paris", "min_confidence": 101})
        assert resp.status_code == 422

    async def test_unexpected_error_is_500(self, client: AsyncClient) -> None:
        with patch("ghost_api.api.v1.geocoding.geocode_single_address", new_callable=AsyncMock) as mock_geocode:
            mock_geocode.side_effect = RuntimeError("boom")
            resp = await client.post("/api/v1/geocode/address", json={"address": "Paris"})
        assert resp.status_code == 500
        assert resp.json()["detail"] == "Failed to geocode address"


class TestBatchEndpoint:
    """Tests for POST /api/v1/geocode/batch-enhanced."""

    async def test_batch(self, client: AsyncClient) -> None:
        body = {
            "locations": [
                {"city": "Paris", "country": "France", "label": "Safehouse"},
                {"notes": "no location"},
                {"address": "Atlantis"},
            ],
            "max_concurrent": 2,
        }
        resp = await client.post("/api/v1/geocode/batch-enhanced", json=body)

        assert resp.status_code == 200
        data = resp.json()
        assert data["summary"] == {"total": 3, "geocoded": 1, "resolved": 1}
        first, second, third = data["results"]
        assert first["latitude"] == 48.8566
        assert first["geocode_provider"] == "nominatim"
        assert first["label"] == "Safehouse"
        assert second["notes"] == "no location"
        assert second["latitude"] is None
        assert third["geocode_confidence"] == 0

    async def test_max_concurrent_bounds(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/geocode/batch-enhanced", json={"locations": [], "max_concurrent": 0})
        assert resp.status_code == 422

    async def test_unexpected_error_is_500(self, client: AsyncClient) -> None:
        with patch("ghost_api.api.v1.geocoding.geocode_locations", new_callable=AsyncMock) as mock_batch:
            mock_batch.side_effect = RuntimeError("boom")
            resp = await client.post("/api/v1/geocode/batch-enhanced", json={"locations": [{"city": "Paris"}]})
        assert resp.status_code == 500
        assert resp.json()["detail"] == "Enhanced batch geocoding failed"


class TestSuggestionsEndpoint:
    """Tests for GET /api/v1/geocode/suggestions."""

    async def test_ranked_suggestions(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/geocode/suggestions", params={"q": "baker street"})

        assert resp.status_code == 200
        data = resp.json()
        assert [s["display_name"] for s in data] == ["Baker Street, London", "Baker Avenue"]
        assert data[0]["confidence"] == 90
        assert data[0]["address"]["street"] == "Baker Street"

    async def test_short_query(self, client: AsyncClient, nominatim_queries: list[str]) -> None:
        resp = await client.get("/api/v1/geocode/suggestions", params={"q": "ba"})
        assert resp.status_code == 200
        assert resp.json() == []
        assert nominatim_queries == []


class TestStatsEndpoint:
    """Tests for GET /api/v1/geocode/stats."""

    async def test_stats(self, client: AsyncClient) -> None:
        await client.post("/api/v1/geocode/address", json={"address": "Paris, France"})
        resp = await client.get("/api/v1/geocode/stats")

        assert resp.status_code == 200
        assert resp.json() == {
            "total_cached": 1,
            "successful_geocodes": 1,
            "avg_confidence": 90.0,
            "cached_today": 1,
        }
