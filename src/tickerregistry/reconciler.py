"""RegistryReconciler: sources -> merge -> enrich -> dedup -> diff -> persist."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from tickerregistry.config import EnricherType, RegistryConfig, SourceType
from tickerregistry.database import RegistryDatabase
from tickerregistry.dedup import deduplicate
from tickerregistry.differ import reconcile
from tickerregistry.errors import RegistryError
from tickerregistry.filters import clean_assets, filter_mixed_case, trim_whitespace
from tickerregistry.merge import fill_missing, merge_asset_lists
from tickerregistry.models.asset import Asset
from tickerregistry.models.audit import DedupDecision
from tickerregistry.providers import create_enricher, create_source
from tickerregistry.providers.base import BaseAssetSource, BaseEnricher
from tickerregistry.quality import ValidationResult, validate_registry
from tickerregistry.safety import enforce_removal_limit
from tickerregistry.storage import ParquetRegistryStore

log = logging.getLogger(__name__)


@dataclass
class RunReport:
    """Outcome of one reconciliation run.

    Attributes:
        assets: The reconciled registry.
        new: Tickers added this run.
        updated: Tickers whose record changed (delistings included).
        delisted: Tickers marked delisted this run.
        decisions: One entry per collapsed composite FIGI group.
        validation: Consistency checks of the reconciled registry.
        committed: Whether the registry was persisted.
    """

    assets: list[Asset] = field(default_factory=list)
    new: set[str] = field(default_factory=set)
    updated: set[str] = field(default_factory=set)
    delisted: set[str] = field(default_factory=set)
    decisions: list[DedupDecision] = field(default_factory=list)
    validation: ValidationResult = field(default_factory=ValidationResult)
    committed: bool = False


class RegistryReconciler:
    """Runs one reconciliation pass over the configured feeds.

    Usage::

        from tickerregistry import load_config_from_env
        config = load_config_from_env()
        report = RegistryReconciler(config).run()

    Sources, enrichers and both persistence targets may be injected;
    otherwise they are built from ``config``.
    """

    def __init__(
        self,
        config: RegistryConfig,
        sources: list[BaseAssetSource] | None = None,
        enrichers: list[BaseEnricher] | None = None,
        store: ParquetRegistryStore | None = None,
        database: RegistryDatabase | None = None,
    ) -> None:
        self.config = config

        if sources is None:
            sources = [create_source(st, **self._source_kwargs(st)) for st in config.sources]
        self.sources = sources

        if enrichers is None:
            enrichers = [
                create_enricher(et, **self._enricher_kwargs(et)) for et in config.enrichers
            ]
        self.enrichers = enrichers

        if store is None and config.parquet_file:
            store = ParquetRegistryStore(config.parquet_file)
        self.store = store

        if database is None and config.database_url:
            database = RegistryDatabase(config.database_url)
        self.database = database

    # --------------------------------------------------------------- wiring

    def _source_kwargs(self, source_type: SourceType) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        if source_type is SourceType.POLYGON:
            kwargs["api_key"] = self.config.polygon_api_key
            kwargs["asset_types"] = self.config.polygon_asset_types
            kwargs["rate_limit"] = self.config.polygon_rate_limit
            kwargs["max_pages"] = self.config.polygon_max_pages
            if self.config.limit > 0:
                kwargs["max_pages"] = math.ceil(self.config.limit / 1000)
        return kwargs

    def _enricher_kwargs(self, enricher_type: EnricherType) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        if enricher_type is EnricherType.POLYGON_DETAIL:
            kwargs["api_key"] = self.config.polygon_api_key
            kwargs["rate_limit"] = self.config.polygon_rate_limit
            kwargs["max_age_days"] = self.config.polygon_detail_max_age_days
        elif enricher_type is EnricherType.OPENFIGI:
            kwargs["api_key"] = self.config.openfigi_api_key
            kwargs["rate_limit"] = self.config.openfigi_rate_limit
        return kwargs

    # ------------------------------------------------------------------ run

    def run(self, *, now: datetime | None = None) -> RunReport:
        """Execute one pass.

        Raises:
            RemovalLimitExceeded: Too many assets would be delisted; nothing
                was persisted.
            RegistryError: A source failed non-retryably, or persistence failed.
        """
        ts = now or datetime.now(timezone.utc)
        partial = self.config.limit > 0

        # 1-2. Fetch and combine, earlier sources preferred
        combined = self._combine_sources()
        if partial and len(combined) > self.config.limit:
            combined = combined[: self.config.limit]

        # 3. Previous generation
        existing = self.load_existing()
        if partial:
            wanted = {a.ticker for a in combined}
            existing = [a for a in existing if a.ticker in wanted]
        previous = {a.ticker: a for a in existing if a.active}
        for asset in combined:
            donor = previous.get(asset.ticker)
            if donor is not None:
                fill_missing(asset, donor)

        # 4. Enrichment
        for enricher in self.enrichers:
            log.info("running enricher %s on %d assets", enricher.name, len(combined))
            enricher.enrich(combined)

        # 5. Clean and dedup
        cleaned = clean_assets(combined)
        log.info("clean_assets kept %d of %d assets", len(cleaned), len(combined))
        dedup = deduplicate(cleaned)

        # 6. Diff against the previous generation
        diff = reconcile(existing, dedup.assets, now=ts)

        report = RunReport(
            assets=diff.assets,
            new=diff.new,
            updated=diff.updated,
            delisted=diff.delisted,
            decisions=dedup.decisions,
        )

        # 7. Quality gate and safety valve
        report.validation = validate_registry(diff.assets, self.config.max_removed)
        for check in report.validation.failed_checks:
            log.warning("validation check %s failed: %s", check.name, check.message)
        enforce_removal_limit(diff.assets, self.config.max_removed)

        # 8. Persist
        if self.config.dry_run or partial:
            log.info("dry run or partial run: registry not persisted")
            return report
        self.persist(diff.assets)
        report.committed = True
        return report

    def _combine_sources(self) -> list[Asset]:
        combined: list[Asset] | None = None
        for source in self.sources:
            try:
                assets = source.fetch_assets()
            except RegistryError as e:
                if not e.retryable:
                    raise
                log.warning("source %s failed, continuing without it: %s", source.name, e)
                assets = []
            trim_whitespace(assets)
            assets = filter_mixed_case(assets)
            log.info("source %s returned %d assets", source.name, len(assets))
            if combined is None:
                combined = assets
            else:
                combined = merge_asset_lists(combined, assets).combined
        return combined or []

    def load_existing(self) -> list[Asset]:
        """Previous generation: snapshot store, else database, else empty."""
        if self.store is not None and self.store.exists():
            return self.store.load()
        if self.database is not None:
            self.database.create_schema()
            return self.database.load()
        return []

    def persist(self, assets: list[Asset]) -> None:
        if self.store is not None:
            self.store.save(assets)
        if self.database is not None:
            self.database.create_schema()
            self.database.upsert(assets)
        if self.store is None and self.database is None:
            log.warning("no parquet file or database configured; nothing persisted")
