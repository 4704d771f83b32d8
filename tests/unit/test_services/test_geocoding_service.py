"""Unit tests for the geocoding service layer, wired to a mocked Nominatim."""

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ghost_api.core.config import Settings
from ghost_api.lib.geocoder import DatabaseGeocodeCache, GeocodingEngine, InMemoryGeocodeCache
from ghost_api.schemas.geocoding import LocationRecord
from ghost_api.services.geocoding_service import (
    create_cache,
    create_geocoding_engine,
    create_http_client,
    geocode_locations,
    geocode_missing_locations,
    geocode_single_address,
    get_cache_stats,
    get_suggestions,
)

PLACES = {
    "221b baker street, london": [
        {"lat": "51.5237", "lon": "-0.1585", "display_name": "221B, Baker Street, London", "importance": 0.5},
        {"lat": "51.5200", "lon": "-0.1570", "display_name": "Baker Street Station, London"},
    ],
    "paris, france": [{"lat": "48.8566", "lon": "2.3522", "display_name": "Paris, France"}],
    "bak": [
        {"lat": "1.0", "lon": "1.0", "display_name": "Bakery Lane"},
        {"lat": "2.0", "lon": "2.0", "display_name": "Baku"},
        {"lat": "3.0", "lon": "3.0", "display_name": "Bakewell"},
    ],
}


class NominatimStub:
    """Answers Nominatim search requests from PLACES and counts them."""

    def __init__(self) -> None:
        self.queries: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        query = request.url.params["q"]
        self.queries.append(query)
        return httpx.Response(200, json=PLACES.get(query, []))


@pytest.fixture
def stub() -> NominatimStub:
    return NominatimStub()


@pytest.fixture
async def engine(settings: Settings, stub: NominatimStub) -> GeocodingEngine:
    client = httpx.AsyncClient(transport=httpx.MockTransport(stub))
    return create_geocoding_engine(settings, client)


class TestFactories:
    """Tests for engine, cache and HTTP client construction."""

    def test_memory_cache(self, settings: Settings) -> None:
        assert isinstance(create_cache(settings), InMemoryGeocodeCache)

    def test_database_cache_requires_session_factory(self, settings: Settings) -> None:
        settings.geocoder_cache_backend = "database"
        with pytest.raises(ValueError, match="session factory"):
            create_cache(settings)

    def test_database_cache(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        settings.geocoder_cache_backend = "database"
        assert isinstance(create_cache(settings, session_factory), DatabaseGeocodeCache)

    async def test_http_client_timeout(self, settings: Settings) -> None:
        settings.geocoder_nominatim_timeout = 4.0
        client = create_http_client(settings)
        try:
            assert client.timeout.read == 4.0
        finally:
            await client.aclose()

    def test_engine_defaults_from_settings(self, settings: Settings) -> None:
        settings.geocoder_min_confidence = 40
        settings.geocoder_max_concurrent = 2
        settings.geocoder_suggestion_limit = 7
        engine = create_geocoding_engine(settings, httpx.AsyncClient())
        assert (engine.min_confidence, engine.max_concurrent, engine.suggestion_limit) == (40, 2, 7)


class TestGeocodeSingleAddress:
    """Tests for geocode_single_address."""

    async def test_success_then_cached(self, engine: GeocodingEngine, stub: NominatimStub) -> None:
        first = await geocode_single_address(engine, "221B Baker Street, London")
        second = await geocode_single_address(engine, "221B Baker Street, London")

        assert first.success is True
        assert first.cached is False
        assert first.result is not None
        assert first.result.confidence == 95
        assert first.result.provider == "nominatim"
        assert [a.display_name for a in first.result.alternatives] == ["Baker Street Station, London"]
        assert second.cached is True
        assert stub.queries == ["221b baker street, london"]

    async def test_no_result_message(self, engine: GeocodingEngine) -> None:
        response = await geocode_single_address(engine, "Atlantis")
        assert response.success is False
        assert response.result is None
        assert response.message == "No results found or confidence too low"

    async def test_engine_default_threshold(self, settings: Settings, stub: NominatimStub) -> None:
        settings.geocoder_min_confidence = 95
        engine = create_geocoding_engine(settings, httpx.AsyncClient(transport=httpx.MockTransport(stub)))
        response = await geocode_single_address(engine, "221B Baker Street, London")
        assert response.success is False

    async def test_explicit_threshold_overrides_default(self, engine: GeocodingEngine) -> None:
        response = await geocode_single_address(engine, "221B Baker Street, London", min_confidence=99)
        assert response.success is False


class TestGeocodeLocations:
    """Tests for batch geocoding through the service layer."""

    async def test_batch_summary(self, engine: GeocodingEngine) -> None:
        locations = [
            LocationRecord(city="Paris", country="France", label="trip"),
            LocationRecord(address="Atlantis"),
            LocationRecord(latitude=10.0, longitude=20.0),
        ]

        response = await geocode_locations(engine, locations)

        assert response.summary.total == 3
        assert response.summary.geocoded == 2
        assert response.summary.resolved == 1
        assert response.results[0].latitude == 48.8566
        assert response.results[1].geocode_confidence == 0
        assert response.results[2].geocoded_at is None

    async def test_missing_only(self, engine: GeocodingEngine, stub: NominatimStub) -> None:
        located = LocationRecord(address="221B Baker Street", city="London", latitude=1.0, longitude=2.0)
        pending = LocationRecord(city="Paris", country="France")

        results = await geocode_missing_locations(engine, [located, pending])

        assert results == [located, pending]
        assert located.latitude == 1.0
        assert pending.latitude == 48.8566
        assert stub.queries == ["paris, france"]

    async def test_missing_only_nothing_pending(self, engine: GeocodingEngine, stub: NominatimStub) -> None:
        records = [LocationRecord(label="empty")]
        assert await geocode_missing_locations(engine, records) == records
        assert stub.queries == []


class TestSuggestionsAndStats:
    """Tests for get_suggestions and get_cache_stats."""

    async def test_suggestions_limit(self, engine: GeocodingEngine) -> None:
        suggestions = await get_suggestions(engine, "bak", limit=2)
        assert len(suggestions) == 2

    async def test_short_query(self, engine: GeocodingEngine, stub: NominatimStub) -> None:
        assert await get_suggestions(engine, "ba") == []
        assert stub.queries == []

    async def test_stats(self, engine: GeocodingEngine) -> None:
        await geocode_single_address(engine, "Paris, France")
        stats = await get_cache_stats(engine)
        assert stats.total_cached == 1
        assert stats.successful_geocodes == 1
        assert stats.avg_confidence == 90
        assert stats.cached_today == 1
