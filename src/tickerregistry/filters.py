"""Collection filters applied around the reconciliation engine."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from tickerregistry.models.asset import Asset, AssetType

log = logging.getLogger(__name__)

TRIMMED_FIELDS: tuple[str, ...] = (
    "name",
    "description",
    "cik",
    "cusip",
    "industry",
    "sector",
    "isin",
    "headquarters_location",
)


def clean_assets(assets: list[Asset]) -> list[Asset]:
    """Drop assets without a composite FIGI or with an Unknown asset type."""
    return [
        a for a in assets
        if a.composite_figi != "" and a.asset_type is not AssetType.UNKNOWN
    ]


def filter_mixed_case(assets: list[Asset]) -> list[Asset]:
    """Drop assets whose ticker is not fully upper-case."""
    return [a for a in assets if a.ticker.upper() == a.ticker]


def trim_whitespace(assets: list[Asset]) -> None:
    """Strip surrounding whitespace from free-text fields, in place.

    Must run before any merge: merge compares values verbatim.
    """
    for asset in assets:
        asset.ticker = asset.ticker.strip()
        for attr in TRIMMED_FIELDS:
            setattr(asset, attr, getattr(asset, attr).strip())


def active_assets(assets: list[Asset]) -> list[Asset]:
    return [a for a in assets if a.active]


def remove_tickers(assets: list[Asset], tickers: Iterable[str]) -> list[Asset]:
    """Drop every asset whose ticker is listed in ``tickers``."""
    drop = set(tickers)
    kept = [a for a in assets if a.ticker not in drop]
    log.info("removed %d assets", len(assets) - len(kept))
    return kept


def remove_assets(assets: list[Asset], remove: list[Asset]) -> list[Asset]:
    """Drop assets matching an entry of ``remove`` on ticker and composite FIGI."""
    keys = {(a.ticker, a.composite_figi) for a in remove}
    return [a for a in assets if (a.ticker, a.composite_figi) not in keys]


def subtract_assets(a: list[Asset], b: list[Asset]) -> list[Asset]:
    """Assets of ``a`` whose ticker does not appear in ``b``."""
    tickers = {asset.ticker for asset in b}
    return [asset for asset in a if asset.ticker not in tickers]
