"""Mock source and enricher for testing and CI; no API keys required."""

from __future__ import annotations

from tickerregistry.errors import RegistryError
from tickerregistry.models.asset import Asset
from tickerregistry.providers.base import BaseAssetSource, BaseEnricher


class MockSource(BaseAssetSource):
    """In-memory source returning a configurable listing.

    Use ``set_assets`` to pre-load records or ``set_error`` to make the next
    fetches fail. Every fetch returns copies so callers can mutate freely.
    """

    name = "mock"

    def __init__(self, assets: list[Asset] | None = None) -> None:
        self._assets: list[Asset] = list(assets or [])
        self._error: RegistryError | None = None
        self.calls = 0

    def set_assets(self, assets: list[Asset]) -> None:
        self._assets = list(assets)

    def set_error(self, error: RegistryError | None) -> None:
        self._error = error

    def fetch_assets(self) -> list[Asset]:
        self.calls += 1
        if self._error is not None:
            raise self._error
        return [a.copy() for a in self._assets]


class MockEnricher(BaseEnricher):
    """Fills fields from a ticker-keyed table of values."""

    name = "mock"

    def __init__(self, values: dict[str, dict[str, object]] | None = None) -> None:
        self._values = dict(values or {})
        self.seen: list[str] = []

    def enrich(self, assets: list[Asset]) -> None:
        for asset in assets:
            self.seen.append(asset.ticker)
            for attr, value in self._values.get(asset.ticker, {}).items():
                if not getattr(asset, attr):
                    setattr(asset, attr, value)
