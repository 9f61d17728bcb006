"""Shared fixtures for tickerregistry tests."""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Ensure src/ is on the path for editable-style imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from tickerregistry.models.asset import Asset, AssetType
from tickerregistry.providers.mock import MockSource

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


class FakeResponse:
    """Minimal stand-in for ``requests.Response``."""

    def __init__(self, status_code: int = 200, payload=None, content: bytes = b"") -> None:
        self.status_code = status_code
        self._payload = payload
        self.content = content

    def json(self):
        return self._payload


class FakeSession:
    """Records requests and replays queued responses in order."""

    def __init__(self, responses: list[FakeResponse] | None = None) -> None:
        self.responses = list(responses or [])
        self.calls: list[dict] = []

    def _next(self, method: str, url: str, **kwargs) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.responses:
            raise AssertionError(f"unexpected {method} {url}")
        return self.responses.pop(0)

    def get(self, url, **kwargs):
        return self._next("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._next("POST", url, **kwargs)


def make_asset(ticker: str, **kwargs) -> Asset:
    defaults = dict(
        name=f"{ticker} Inc.",
        asset_type=AssetType.COMMON_STOCK,
        composite_figi=f"BBG{ticker:0>9}",
        listing_date="2010-01-04",
        source="api.polygon.io",
    )
    defaults.update(kwargs)
    return Asset(ticker=ticker, **defaults)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def sample_assets() -> list[Asset]:
    """Three listed common stocks."""
    return [
        make_asset("AAPL", name="Apple Inc.", primary_exchange="XNAS", cik="0000320193"),
        make_asset("MSFT", name="Microsoft Corp", primary_exchange="XNAS"),
        make_asset("IBM", name="International Business Machines", primary_exchange="XNYS"),
    ]


@pytest.fixture
def mock_source(sample_assets) -> MockSource:
    return MockSource(sample_assets)
