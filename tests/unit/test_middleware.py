"""Tests for CORS and request logging middleware."""

from collections.abc import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from loguru import logger

from ghost_api.api.middleware import RequestLoggingMiddleware, setup_cors
from ghost_api.core.config import Settings


def _create_test_app() -> FastAPI:
    """Create a minimal FastAPI app for middleware testing."""
    app = FastAPI()

    @app.get("/test")
    async def test_route() -> dict:
        return {"ok": True}

    return app


@pytest.fixture
def log_records() -> Iterator[list[tuple[str, str]]]:
    records: list[tuple[str, str]] = []
    sink_id = logger.add(lambda message: records.append((message.record["level"].name, message.record["message"])))
    yield records
    logger.remove(sink_id)


class TestRequestLoggingMiddleware:
    """Tests for RequestLoggingMiddleware."""

    @pytest.fixture
    def client(self) -> TestClient:
        app = _create_test_app()
        app.add_middleware(RequestLoggingMiddleware)
        return TestClient(app)

    def test_success_logged_at_info(self, client: TestClient, log_records: list[tuple[str, str]]) -> None:
        client.get("/test")
        assert any(level == "INFO" and msg.startswith("GET /test - 200") for level, msg in log_records)

    def test_error_logged_at_warning(self, client: TestClient, log_records: list[tuple[str, str]]) -> None:
        client.get("/missing")
        assert any(level == "WARNING" and msg.startswith("GET /missing - 404") for level, msg in log_records)


class TestCors:
    """Tests for setup_cors."""

    @pytest.fixture
    def client(self) -> TestClient:
        app = _create_test_app()
        settings = Settings(  # type: ignore[call-arg]
            _env_file=None,
            database_url="sqlite+aiosqlite://",
            cors_origins="http://localhost:3000",
            cors_origin_regex=r"https://.*\.example\.org",
        )
        setup_cors(app, settings)
        return TestClient(app)

    def test_listed_origin_allowed(self, client: TestClient) -> None:
        response = client.get("/test", headers={"Origin": "http://localhost:3000"})
        assert response.headers["access-control-allow-origin"] == "http://localhost:3000"

    def test_regex_origin_allowed(self, client: TestClient) -> None:
        response = client.get("/test", headers={"Origin": "https://crm.example.org"})
        assert response.headers["access-control-allow-origin"] == "https://crm.example.org"

    def test_unknown_origin_rejected(self, client: TestClient) -> None:
        response = client.get("/test", headers={"Origin": "https://evil.test"})
        assert "access-control-allow-origin" not in response.headers
