"""Collapse assets that share a composite FIGI into one survivor."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date

from tickerregistry.models.asset import Asset, AssetType
from tickerregistry.models.audit import DedupDecision

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Stage:
    """One comparison stage: lower keys are preferred."""

    name: str
    key: Callable[[Asset], tuple]


def _type_stage(asset_type: AssetType) -> Stage:
    return Stage(
        name=f"prefer {asset_type.value}",
        key=lambda a: (0 if a.asset_type is asset_type else 1,),
    )


def parse_listing_date(asset: Asset) -> date | None:
    """Listing date as a date, or None when empty or unparseable."""
    if not asset.listing_date:
        return None
    try:
        return date.fromisoformat(asset.listing_date)
    except ValueError:
        log.warning(
            "unparseable listing date %r for %s",
            asset.listing_date,
            asset.ticker,
        )
        return None


def _listing_key(asset: Asset) -> tuple:
    listed = parse_listing_date(asset)
    if listed is None:
        return (1, 0)
    return (0, -listed.toordinal())


LATEST_LISTING = Stage(name="prefer latest listing date", key=_listing_key)

DEFAULT_STAGES: tuple[Stage, ...] = (
    _type_stage(AssetType.COMMON_STOCK),
    _type_stage(AssetType.CLOSED_END_FUND),
    LATEST_LISTING,
)

INPUT_ORDER = "first encountered"


def select_survivor(
    candidates: list[Asset],
    stages: tuple[Stage, ...] = DEFAULT_STAGES,
) -> tuple[Asset, str]:
    """Pick the preferred asset and name the stage that decided it.

    Stages apply left to right, each narrowing the pool to its best-ranked
    candidates; the stage that leaves a single candidate decides. When none
    does, the earliest remaining candidate in input order wins.
    """
    pool = list(candidates)
    for stage in stages:
        keys = [stage.key(a) for a in pool]
        best = min(keys)
        pool = [a for a, k in zip(pool, keys) if k == best]
        if len(pool) == 1:
            return pool[0], stage.name
    return pool[0], INPUT_ORDER


@dataclass
class DedupResult:
    """Deduplicated assets plus one decision per collapsed group."""

    assets: list[Asset] = field(default_factory=list)
    decisions: list[DedupDecision] = field(default_factory=list)


def deduplicate(
    assets: list[Asset],
    stages: tuple[Stage, ...] = DEFAULT_STAGES,
) -> DedupResult:
    """Keep one asset per composite FIGI.

    Assets without a composite FIGI are never grouped. Preference order:
    common stock, then closed-end fund, then the latest parseable listing
    date, then input order.
    """
    result = DedupResult()
    groups: dict[str, list[Asset]] = {}
    for asset in assets:
        if asset.composite_figi == "":
            result.assets.append(asset)
        else:
            groups.setdefault(asset.composite_figi, []).append(asset)

    for figi, group in groups.items():
        if len(group) == 1:
            result.assets.append(group[0])
            continue

        survivor, stage = select_survivor(group, stages)
        others = tuple(a.summary() for a in group if a is not survivor)
        log.info(
            "deduping assets: composite_figi=%s selected=%s other=%s stage=%s",
            figi,
            survivor.summary(),
            list(others),
            stage,
        )
        result.decisions.append(DedupDecision(
            composite_figi=figi,
            selected=survivor.summary(),
            discarded=others,
            stage=stage,
        ))
        result.assets.append(survivor)

    return result
