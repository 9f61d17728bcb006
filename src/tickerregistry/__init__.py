"""tickerregistry: canonical registry of US-listed instruments.

Combines Polygon and Tiingo listings, enriches them from OpenFIGI and
Polygon ticker details, collapses duplicate composite FIGIs, detects new
listings and delistings against the previous run, and refuses to persist a
run that would delist too many assets.

Quick start::

    from tickerregistry import create_reconciler_from_env
    report = create_reconciler_from_env().run()
"""

from __future__ import annotations

from tickerregistry.config import (
    EnricherType,
    RegistryConfig,
    SourceType,
    load_config_from_env,
)
from tickerregistry.database import RegistryDatabase
from tickerregistry.dedup import DedupResult, deduplicate
from tickerregistry.differ import ReconcileResult, reconcile
from tickerregistry.errors import RegistryError, RegistryErrorCode, RemovalLimitExceeded
from tickerregistry.filters import (
    clean_assets,
    filter_mixed_case,
    remove_assets,
    remove_tickers,
    subtract_assets,
    trim_whitespace,
)
from tickerregistry.merge import MergedLists, fill_missing, merge_asset, merge_asset_lists
from tickerregistry.models.asset import Asset, AssetType
from tickerregistry.models.audit import DedupDecision, FieldChange
from tickerregistry.quality import ValidationCheck, ValidationResult, validate_registry
from tickerregistry.reconciler import RegistryReconciler, RunReport
from tickerregistry.safety import count_removed, enforce_removal_limit
from tickerregistry.storage import ParquetRegistryStore

__version__ = "0.1.0"

__all__ = [
    # Orchestrator
    "RegistryReconciler",
    "RunReport",
    "create_reconciler_from_env",
    # Config
    "RegistryConfig",
    "SourceType",
    "EnricherType",
    "load_config_from_env",
    # Errors
    "RegistryError",
    "RegistryErrorCode",
    "RemovalLimitExceeded",
    # Models
    "Asset",
    "AssetType",
    "FieldChange",
    "DedupDecision",
    # Engine
    "merge_asset",
    "merge_asset_lists",
    "fill_missing",
    "MergedLists",
    "reconcile",
    "ReconcileResult",
    "deduplicate",
    "DedupResult",
    "count_removed",
    "enforce_removal_limit",
    # Filters
    "clean_assets",
    "filter_mixed_case",
    "trim_whitespace",
    "remove_tickers",
    "remove_assets",
    "subtract_assets",
    # Quality
    "ValidationCheck",
    "ValidationResult",
    "validate_registry",
    # Persistence
    "ParquetRegistryStore",
    "RegistryDatabase",
]


def create_reconciler_from_env() -> RegistryReconciler:
    """Zero-config factory. See ``load_config_from_env`` for the variables read."""
    return RegistryReconciler(load_config_from_env())
