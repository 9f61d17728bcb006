"""Field-by-field merge policy for assets sharing a ticker."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from tickerregistry.models.asset import Asset
from tickerregistry.models.audit import FieldChange

log = logging.getLogger(__name__)

# (attribute, label used in update reasons)
MERGED_FIELDS: tuple[tuple[str, str], ...] = (
    ("cik", "CIK"),
    ("cusip", "CUSIP"),
    ("composite_figi", "CompositeFigi"),
    ("share_class_figi", "ShareClassFigi"),
    ("corporate_url", "CorporateUrl"),
    ("delisting_date", "DelistingDate"),
    ("description", "Description"),
    ("headquarters_location", "HeadquartersLocation"),
    ("isin", "ISIN"),
    ("icon_url", "IconUrl"),
    ("industry", "Industry"),
    ("listing_date", "ListingDate"),
    ("name", "Name"),
    ("primary_exchange", "PrimaryExchange"),
    ("sector", "Sector"),
)

# Carried forward like merged fields but never flagged as registry updates.
UNTRACKED_FIELDS: tuple[str, ...] = ("icon", "similar_tickers", "polygon_detail_age")

FILLABLE_FIELDS: tuple[str, ...] = (
    tuple(name for name, _ in MERGED_FIELDS) + UNTRACKED_FIELDS
)


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(timezone.utc)


def merge_asset(existing: Asset, incoming: Asset, *, now: datetime | None = None) -> Asset:
    """Merge fields from ``incoming`` into ``existing`` and return ``existing``.

    A non-empty incoming value that differs from the existing one replaces
    it, flags the asset as updated, appends a reason and refreshes
    ``last_updated``. Empty incoming values never erase data. The asset type
    only fills an unset value; a disagreement between two populated types is
    logged and the existing type kept. ``source`` is replaced whenever it
    differs, even by an empty value, and refreshes ``last_updated`` without
    flagging the asset as updated.

    Tickers must match; otherwise the mismatch is logged and ``existing`` is
    returned untouched.
    """
    if existing.ticker != incoming.ticker:
        log.error(
            "cannot merge assets with different tickers: %r != %r",
            existing.ticker,
            incoming.ticker,
        )
        return existing

    ts = _now(now)

    if incoming.asset_type is not None:
        if existing.asset_type is None:
            existing.asset_type = incoming.asset_type
            existing.last_updated = ts
            existing.changes.append(FieldChange(
                existing.ticker, "asset_type", "", incoming.asset_type.value,
                f"AssetType set to '{incoming.asset_type.value}'",
            ))
        elif existing.asset_type != incoming.asset_type:
            log.warning(
                "asset type conflict for %s: keeping %r, ignoring %r from %s",
                existing.ticker,
                existing.asset_type.value,
                incoming.asset_type.value,
                incoming.source or "unknown source",
            )

    for attr, label in MERGED_FIELDS:
        new = getattr(incoming, attr)
        old = getattr(existing, attr)
        if new == "" or new == old:
            continue
        reason = f"{label} changed '{old}' to '{new}'"
        setattr(existing, attr, new)
        existing.updated = True
        existing.last_updated = ts
        existing.add_reason(reason)
        existing.changes.append(FieldChange(existing.ticker, attr, old, new, reason))

    for attr in UNTRACKED_FIELDS:
        value = getattr(incoming, attr)
        if value and value != getattr(existing, attr):
            setattr(existing, attr, list(value) if isinstance(value, list) else value)

    # provenance follows the latest feed but is not a data change
    if incoming.source != existing.source:
        existing.changes.append(FieldChange(
            existing.ticker, "source", existing.source, incoming.source,
            f"Source changed '{existing.source}' to '{incoming.source}'",
        ))
        existing.source = incoming.source
        existing.last_updated = ts

    return existing


def fill_missing(target: Asset, donor: Asset) -> Asset:
    """Copy donor values into empty fields of ``target`` without flagging updates."""
    if target.ticker != donor.ticker:
        log.error(
            "cannot fill asset from a different ticker: %r != %r",
            target.ticker,
            donor.ticker,
        )
        return target

    if target.asset_type is None:
        target.asset_type = donor.asset_type
    for attr in FILLABLE_FIELDS:
        value = getattr(donor, attr)
        if value and not getattr(target, attr):
            setattr(target, attr, list(value) if isinstance(value, list) else value)
    return target


@dataclass
class MergedLists:
    """Result of combining two source lists."""

    combined: list[Asset] = field(default_factory=list)
    first_only: list[Asset] = field(default_factory=list)
    second_only: list[Asset] = field(default_factory=list)


def merge_asset_lists(
    first: list[Asset],
    second: list[Asset],
    *,
    now: datetime | None = None,
) -> MergedLists:
    """Combine two source lists by ticker; ``first`` wins on conflicts.

    Every record in the result is a copy, so the combined list never shares
    objects with either input.
    """
    ts = _now(now)
    first_map = {a.ticker: a for a in first}
    second_map = {a.ticker: a for a in second}
    result = MergedLists()

    for ticker, asset in second_map.items():
        if ticker in first_map:
            preferred = first_map[ticker]
            merged = asset.copy()
            merge_asset(merged, preferred, now=ts)
            if preferred.asset_type is not None:
                merged.asset_type = preferred.asset_type
            # combining feeds within one run is not a registry change
            merged.updated = False
            merged.update_reason = ""
            merged.last_updated = asset.last_updated
            merged.changes = []
            result.combined.append(merged)
        else:
            copy = asset.copy()
            result.second_only.append(copy)
            result.combined.append(copy)

    for ticker, asset in first_map.items():
        if ticker not in second_map:
            copy = asset.copy()
            result.first_only.append(copy)
            result.combined.append(copy)

    return result
