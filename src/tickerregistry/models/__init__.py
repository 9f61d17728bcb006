"""Ticker registry models."""

from tickerregistry.models.asset import PERSISTED_FIELDS, Asset, AssetType
from tickerregistry.models.audit import DedupDecision, FieldChange

__all__ = [
    "Asset",
    "AssetType",
    "PERSISTED_FIELDS",
    "FieldChange",
    "DedupDecision",
]
