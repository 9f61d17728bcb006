"""Ticker registry configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum

from tickerregistry.errors import RegistryError, RegistryErrorCode


class SourceType(Enum):
    """Supported listing sources."""

    POLYGON = "polygon"
    TIINGO = "tiingo"
    MOCK = "mock"


class EnricherType(Enum):
    """Supported enrichment services."""

    OPENFIGI = "openfigi"
    POLYGON_DETAIL = "polygon_detail"


DEFAULT_MAX_REMOVED = 25


@dataclass
class RegistryConfig:
    """Configuration for RegistryReconciler.

    Attributes:
        sources: Listing sources ordered by preference (earlier wins merges).
        enrichers: Enrichment services, run in order.
        max_removed: Maximum number of delisted assets a run may persist.
        parquet_file: Path of the Parquet registry snapshot.
        database_url: SQLAlchemy URL of the relational registry.
        polygon_api_key: Polygon.io API key.
        polygon_asset_types: Polygon ticker type codes to list.
        polygon_max_pages: Page cap per Polygon type listing.
        polygon_rate_limit: Polygon requests per minute.
        polygon_detail_max_age_days: Refetch Polygon details older than this.
        openfigi_api_key: OpenFIGI API key (optional, raises the rate limit).
        openfigi_rate_limit: OpenFIGI mapping requests per minute.
        limit: Truncate the combined listing to N assets (0 = no limit).
        dry_run: Reconcile and validate but do not persist.
    """

    sources: list[SourceType] = field(
        default_factory=lambda: [SourceType.POLYGON, SourceType.TIINGO]
    )
    enrichers: list[EnricherType] = field(
        default_factory=lambda: [EnricherType.OPENFIGI, EnricherType.POLYGON_DETAIL]
    )
    max_removed: int = DEFAULT_MAX_REMOVED
    parquet_file: str | None = None
    database_url: str | None = None

    polygon_api_key: str | None = None
    polygon_asset_types: list[str] = field(
        default_factory=lambda: ["CS", "ETF", "ETN", "FUND", "ADRC"]
    )
    polygon_max_pages: int = 25
    polygon_rate_limit: int = 5
    polygon_detail_max_age_days: int = 30
    openfigi_api_key: str | None = None
    openfigi_rate_limit: int = 25
    limit: int = 0
    dry_run: bool = False


def _split(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def load_config_from_env() -> RegistryConfig:
    """Build a RegistryConfig from environment variables.

    Environment variables:
        TICKER_REGISTRY_SOURCES: Comma-separated sources (default: "polygon,tiingo").
        TICKER_REGISTRY_ENRICHERS: Comma-separated enrichers
            (default: "openfigi,polygon_detail"; empty disables enrichment).
        TICKER_REGISTRY_MAX_REMOVED: Safety valve threshold (default: 25).
        TICKER_REGISTRY_PARQUET_FILE: Parquet snapshot path.
        TICKER_REGISTRY_DATABASE_URL: SQLAlchemy database URL.
        TICKER_REGISTRY_LIMIT: Process only the first N assets (default: 0, no limit).
        TICKER_REGISTRY_DRY_RUN: "1", "true" or "yes" to skip persistence.
        POLYGON_API_KEY: Polygon.io API key.
        POLYGON_ASSET_TYPES: Comma-separated Polygon type codes.
        POLYGON_MAX_PAGES: Page cap per Polygon type listing (default: 25).
        POLYGON_RATE_LIMIT: Polygon requests per minute (default: 5).
        POLYGON_DETAIL_MAX_AGE_DAYS: Refetch details older than this (default: 30).
        OPENFIGI_API_KEY: OpenFIGI API key.
        OPENFIGI_RATE_LIMIT: OpenFIGI mapping requests per minute (default: 25).
    """
    try:
        sources = [
            SourceType(name.lower())
            for name in _split(os.getenv("TICKER_REGISTRY_SOURCES", "polygon,tiingo"))
        ]
        enrichers = [
            EnricherType(name.lower())
            for name in _split(
                os.getenv("TICKER_REGISTRY_ENRICHERS", "openfigi,polygon_detail")
            )
        ]
        max_removed = int(
            os.getenv("TICKER_REGISTRY_MAX_REMOVED", str(DEFAULT_MAX_REMOVED))
        )
        limit = int(os.getenv("TICKER_REGISTRY_LIMIT", "0"))
        polygon_max_pages = int(os.getenv("POLYGON_MAX_PAGES", "25"))
        polygon_rate_limit = int(os.getenv("POLYGON_RATE_LIMIT", "5"))
        polygon_detail_max_age_days = int(os.getenv("POLYGON_DETAIL_MAX_AGE_DAYS", "30"))
        openfigi_rate_limit = int(os.getenv("OPENFIGI_RATE_LIMIT", "25"))
    except ValueError as exc:
        raise RegistryError(
            f"Invalid registry configuration: {exc}",
            code=RegistryErrorCode.CONFIG_ERROR,
        ) from exc

    config = RegistryConfig(
        sources=sources,
        enrichers=enrichers,
        max_removed=max_removed,
        parquet_file=os.getenv("TICKER_REGISTRY_PARQUET_FILE") or None,
        database_url=os.getenv("TICKER_REGISTRY_DATABASE_URL") or None,
        polygon_api_key=os.getenv("POLYGON_API_KEY"),
        polygon_max_pages=polygon_max_pages,
        polygon_rate_limit=polygon_rate_limit,
        polygon_detail_max_age_days=polygon_detail_max_age_days,
        openfigi_api_key=os.getenv("OPENFIGI_API_KEY"),
        openfigi_rate_limit=openfigi_rate_limit,
        limit=limit,
        dry_run=os.getenv("TICKER_REGISTRY_DRY_RUN", "").strip().lower() in ("1", "true", "yes"),
    )
    asset_types = os.getenv("POLYGON_ASSET_TYPES")
    if asset_types:
        config.polygon_asset_types = [t.upper() for t in _split(asset_types)]
    return config
