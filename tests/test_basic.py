"""
Basic application tests.

Validates that the FastAPI app starts correctly and the
health endpoint responds as expected.
"""

import pytest
from fastapi.testclient import TestClient

from app.domain.escrow.errors import GatewayFailureError
from app.interfaces.escrow.dependencies import (
    get_inventory_gateway,
    get_reaper_scheduler,
)
from app.main import app

client = TestClient(app)


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_returns_200(self) -> None:
        """Health endpoint must return HTTP 200 with status ok."""
        response = client.get("/api/v1/health")
        assert response.status_code == 200

    def test_health_response_body(self) -> None:
        """Health endpoint must return status, version and trade counters."""
        response = client.get("/api/v1/health")
        body = response.json()
        assert body["status"] == "ok"
        assert "version" in body
        assert body["active_trades"] >= 0
        assert "reaper_running" in body

    def test_unknown_route_returns_404(self) -> None:
        """Unknown routes are not swallowed by the error handlers."""
        assert client.get("/api/v1/escrow/nowhere").status_code == 404


class TestLifespan:
    """Tests for application startup and shutdown."""

    def test_shutdown_stops_reaper_and_gateway(self) -> None:
        """Leaving the app stops the reaper and the gateway worker pool."""
        get_inventory_gateway.cache_clear()
        get_reaper_scheduler.cache_clear()
        try:
            with TestClient(app):
                scheduler = get_reaper_scheduler()
                gateway = get_inventory_gateway()
                assert scheduler.is_running

            assert not scheduler.is_running
            with pytest.raises(GatewayFailureError):
                gateway.list_owned("alice")
        finally:
            get_inventory_gateway.cache_clear()
            get_reaper_scheduler.cache_clear()
