"""Tests for RegistryConfig and environment loading."""

import pytest

from tickerregistry.config import (
    DEFAULT_MAX_REMOVED,
    EnricherType,
    RegistryConfig,
    SourceType,
    load_config_from_env,
)
from tickerregistry.errors import RegistryError, RegistryErrorCode
from tickerregistry.providers import create_enricher, create_source
from tickerregistry.providers.mock import MockSource

ENV_VARS = [
    "TICKER_REGISTRY_SOURCES",
    "TICKER_REGISTRY_ENRICHERS",
    "TICKER_REGISTRY_MAX_REMOVED",
    "TICKER_REGISTRY_PARQUET_FILE",
    "TICKER_REGISTRY_DATABASE_URL",
    "TICKER_REGISTRY_LIMIT",
    "TICKER_REGISTRY_DRY_RUN",
    "POLYGON_API_KEY",
    "POLYGON_ASSET_TYPES",
    "POLYGON_MAX_PAGES",
    "POLYGON_RATE_LIMIT",
    "POLYGON_DETAIL_MAX_AGE_DAYS",
    "OPENFIGI_API_KEY",
    "OPENFIGI_RATE_LIMIT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestRegistryConfig:
    def test_defaults(self):
        config = RegistryConfig()
        assert config.sources == [SourceType.POLYGON, SourceType.TIINGO]
        assert config.enrichers == [EnricherType.OPENFIGI, EnricherType.POLYGON_DETAIL]
        assert config.max_removed == DEFAULT_MAX_REMOVED == 25
        assert config.polygon_asset_types == ["CS", "ETF", "ETN", "FUND", "ADRC"]
        assert not config.dry_run

    def test_defaults_not_shared(self):
        a, b = RegistryConfig(), RegistryConfig()
        a.sources.append(SourceType.MOCK)
        assert SourceType.MOCK not in b.sources


class TestLoadConfigFromEnv:
    def test_empty_env(self):
        config = load_config_from_env()
        assert config.sources == [SourceType.POLYGON, SourceType.TIINGO]
        assert config.parquet_file is None
        assert config.database_url is None

    def test_reads_env(self, monkeypatch):
        monkeypatch.setenv("TICKER_REGISTRY_SOURCES", "tiingo, Polygon")
        monkeypatch.setenv("TICKER_REGISTRY_ENRICHERS", "")
        monkeypatch.setenv("TICKER_REGISTRY_MAX_REMOVED", "50")
        monkeypatch.setenv("TICKER_REGISTRY_PARQUET_FILE", "/data/tickers.parquet")
        monkeypatch.setenv("TICKER_REGISTRY_DATABASE_URL", "sqlite:///registry.db")
        monkeypatch.setenv("POLYGON_API_KEY", "pk")
        monkeypatch.setenv("POLYGON_ASSET_TYPES", "cs,etf")
        monkeypatch.setenv("OPENFIGI_API_KEY", "fk")

        config = load_config_from_env()
        assert config.sources == [SourceType.TIINGO, SourceType.POLYGON]
        assert config.enrichers == []
        assert config.max_removed == 50
        assert config.parquet_file == "/data/tickers.parquet"
        assert config.database_url == "sqlite:///registry.db"
        assert config.polygon_api_key == "pk"
        assert config.polygon_asset_types == ["CS", "ETF"]
        assert config.openfigi_api_key == "fk"

    def test_reads_tuning_env(self, monkeypatch):
        monkeypatch.setenv("TICKER_REGISTRY_LIMIT", "100")
        monkeypatch.setenv("TICKER_REGISTRY_DRY_RUN", "true")
        monkeypatch.setenv("POLYGON_MAX_PAGES", "3")
        monkeypatch.setenv("POLYGON_RATE_LIMIT", "100")
        monkeypatch.setenv("POLYGON_DETAIL_MAX_AGE_DAYS", "7")
        monkeypatch.setenv("OPENFIGI_RATE_LIMIT", "250")

        config = load_config_from_env()
        assert config.limit == 100
        assert config.dry_run
        assert config.polygon_max_pages == 3
        assert config.polygon_rate_limit == 100
        assert config.polygon_detail_max_age_days == 7
        assert config.openfigi_rate_limit == 250

    def test_dry_run_off_by_default(self, monkeypatch):
        monkeypatch.setenv("TICKER_REGISTRY_DRY_RUN", "no")
        config = load_config_from_env()
        assert not config.dry_run
        assert config.limit == 0
        assert config.polygon_max_pages == 25

    def test_bad_source(self, monkeypatch):
        monkeypatch.setenv("TICKER_REGISTRY_SOURCES", "bloomberg")
        with pytest.raises(RegistryError) as exc_info:
            load_config_from_env()
        assert exc_info.value.code is RegistryErrorCode.CONFIG_ERROR

    def test_bad_number(self, monkeypatch):
        monkeypatch.setenv("TICKER_REGISTRY_MAX_REMOVED", "lots")
        with pytest.raises(RegistryError):
            load_config_from_env()


class TestProviderRegistry:
    def test_create_mock_source(self):
        assert isinstance(create_source(SourceType.MOCK), MockSource)

    def test_create_openfigi_enricher(self):
        enricher = create_enricher(EnricherType.OPENFIGI, api_key="fk", rate_limit=0)
        assert enricher.name == "openfigi"
        assert enricher.api_key == "fk"
