import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from signal_hunter.main import app
from signal_hunter.models.profile import BusinessProfile, SalesTrigger, TriggerStatus
from signal_hunter.services.hunting import fanout, hunter, retry, verifier
from tests.helpers.metrics_stub import StubMetrics


class _SyncASGIClient:
    """Minimal synchronous wrapper around httpx.AsyncClient for ASGI apps."""

    def __init__(self, app):
        transport = httpx.ASGITransport(app=app)
        self._client = httpx.AsyncClient(transport=transport, base_url="http://testserver")

    def request(self, method: str, url: str, **kwargs):
        return asyncio.run(self._client.request(method, url, **kwargs))

    def get(self, url: str, **kwargs):
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs):
        return self.request("POST", url, **kwargs)

    def close(self) -> None:
        asyncio.run(self._client.aclose())


@pytest.fixture
def client():
    """Create test client compatible with older/newer httpx releases."""
    try:
        test_client = TestClient(app)
        yield test_client
    except TypeError:
        fallback_client = _SyncASGIClient(app)
        try:
            yield fallback_client
        finally:
            fallback_client.close()


@pytest.fixture
def stub_metrics(monkeypatch):
    """Capture hunt metrics instead of logging them."""
    stub = StubMetrics()
    for module in (fanout, hunter, retry, verifier):
        monkeypatch.setattr(module, "metrics", stub)
    return stub


@pytest.fixture
def profile():
    return BusinessProfile(
        id="org-1",
        name="Acme Plant Hire",
        industry="Heavy equipment hire",
        products=["Excavators"],
        target_groups=["Civil contractors"],
        geography=["New South Wales", "Australia"],
        website="https://acmeplant.example",
    )


@pytest.fixture
def web_trigger():
    return SalesTrigger(
        id="t-web",
        product="Excavators",
        event="Civil works contract awarded",
        source="State tender portals",
        logic="Winning contractors need plant on site within weeks.",
        status=TriggerStatus.APPROVED,
    )
