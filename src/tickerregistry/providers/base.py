"""Abstract base classes for listing sources and enrichers."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any

from tickerregistry.errors import RegistryError, RegistryErrorCode
from tickerregistry.models.asset import Asset


class BaseAssetSource(ABC):
    """A feed that lists assets.

    Sources return fresh ``Asset`` objects on every call; the caller owns
    them afterwards.
    """

    name: str = "source"

    @abstractmethod
    def fetch_assets(self) -> list[Asset]:
        """Fetch the complete current listing of this feed."""
        ...


class BaseEnricher(ABC):
    """A service that fills missing fields on already-listed assets."""

    name: str = "enricher"

    @abstractmethod
    def enrich(self, assets: list[Asset]) -> None:
        """Fill missing fields in place. Failures for single assets are logged."""
        ...


class RateLimiter:
    """Spaces calls at least ``60 / per_minute`` seconds apart."""

    def __init__(self, per_minute: float) -> None:
        self.interval = 60.0 / per_minute if per_minute > 0 else 0.0
        self._last = 0.0

    def wait(self) -> None:
        if self.interval <= 0:
            return
        delay = self._last + self.interval - time.monotonic()
        if delay > 0:
            time.sleep(delay)
        self._last = time.monotonic()


def check_response(resp: Any, service: str) -> None:
    """Translate HTTP error statuses into RegistryError."""
    if resp.status_code == 429:
        raise RegistryError(
            f"{service} rate limited",
            code=RegistryErrorCode.RATE_LIMITED,
            retryable=True,
        )
    if resp.status_code in (401, 403):
        raise RegistryError(
            f"{service} authentication failed",
            code=RegistryErrorCode.AUTH_FAILED,
        )
    if resp.status_code == 404:
        raise RegistryError(
            f"Not found on {service}",
            code=RegistryErrorCode.NOT_FOUND,
        )
    if resp.status_code >= 400:
        raise RegistryError(
            f"{service} returned HTTP {resp.status_code}",
            code=RegistryErrorCode.SOURCE_ERROR,
            retryable=True,
        )
