"""Listing source and enricher registry."""

from __future__ import annotations

from tickerregistry.config import EnricherType, SourceType
from tickerregistry.providers.base import BaseAssetSource, BaseEnricher

# Lazy registry: classes are imported on demand so optional SDKs are only
# needed when the matching feed is configured.
SOURCE_CLASSES: dict[SourceType, str] = {
    SourceType.POLYGON: "tickerregistry.providers.polygon.PolygonSource",
    SourceType.TIINGO: "tickerregistry.providers.tiingo.TiingoSource",
    SourceType.MOCK: "tickerregistry.providers.mock.MockSource",
}

ENRICHER_CLASSES: dict[EnricherType, str] = {
    EnricherType.OPENFIGI: "tickerregistry.providers.openfigi.OpenFigiEnricher",
    EnricherType.POLYGON_DETAIL: "tickerregistry.providers.polygon.PolygonDetailEnricher",
}


def _load(dotted: str) -> type:
    import importlib

    module_path, cls_name = dotted.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, cls_name)


def create_source(source_type: SourceType, **kwargs) -> BaseAssetSource:
    """Instantiate a source by type, forwarding kwargs to its constructor."""
    return _load(SOURCE_CLASSES[source_type])(**kwargs)


def create_enricher(enricher_type: EnricherType, **kwargs) -> BaseEnricher:
    """Instantiate an enricher by type, forwarding kwargs to its constructor."""
    return _load(ENRICHER_CLASSES[enricher_type])(**kwargs)


__all__ = [
    "BaseAssetSource",
    "BaseEnricher",
    "SOURCE_CLASSES",
    "ENRICHER_CLASSES",
    "create_source",
    "create_enricher",
]
