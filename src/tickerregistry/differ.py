"""Diff two generations of the registry into the next one."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from tickerregistry.merge import merge_asset
from tickerregistry.models.asset import Asset
from tickerregistry.models.audit import FieldChange

log = logging.getLogger(__name__)

DELISTED_REASON = "asset delisted"


@dataclass
class ReconcileResult:
    """Next registry generation plus what happened to each ticker.

    Attributes:
        assets: Survivors, new listings and delisted assets.
        new: Tickers seen for the first time.
        updated: Tickers whose existing record changed (delistings included).
        delisted: Tickers marked delisted in this run.
    """

    assets: list[Asset] = field(default_factory=list)
    new: set[str] = field(default_factory=set)
    updated: set[str] = field(default_factory=set)
    delisted: set[str] = field(default_factory=set)

    @property
    def changes(self) -> list[FieldChange]:
        return [change for asset in self.assets for change in asset.changes]


def _active_map(assets: list[Asset]) -> dict[str, Asset]:
    return {a.ticker: a for a in assets if a.active}


def reconcile(
    existing: list[Asset],
    incoming: list[Asset],
    *,
    now: datetime | None = None,
) -> ReconcileResult:
    """Merge ``incoming`` into ``existing`` and detect additions and delistings.

    Already-delisted records take part in neither lookup: they receive no
    merges and never count as "still present". Existing records mutate in
    place and are the survivors; incoming records without a counterpart
    become new; active existing records missing from ``incoming`` are marked
    delisted today. Incoming records a feed already reported as delisted
    are kept once so the delisting is persisted and counted.
    """
    ts = now or datetime.now(timezone.utc)
    today = ts.date().isoformat()

    existing_map = _active_map(existing)
    incoming_map = _active_map(incoming)
    result = ReconcileResult()

    # audit flags describe a single run
    for asset in existing_map.values():
        asset.updated = False
        asset.new = False
        asset.update_reason = ""
        asset.changes = []

    for ticker, asset in incoming_map.items():
        current = existing_map.get(ticker)
        if current is not None:
            merge_asset(current, asset, now=ts)
            if current.updated:
                result.updated.add(ticker)
            result.assets.append(current)
        else:
            if not asset.listing_date:
                asset.listing_date = today
            asset.new = True
            asset.last_updated = ts
            result.new.add(ticker)
            result.assets.append(asset)

    for ticker, asset in existing_map.items():
        if ticker in incoming_map:
            continue
        asset.changes.append(FieldChange(
            ticker, "delisting_date", asset.delisting_date, today, DELISTED_REASON,
        ))
        asset.delisting_date = today
        asset.last_updated = ts
        asset.updated = True
        asset.add_reason(DELISTED_REASON)
        result.updated.add(ticker)
        result.delisted.add(ticker)
        result.assets.append(asset)

    seen = {a.ticker for a in result.assets}
    retired = {a.ticker for a in existing if not a.active}
    for asset in incoming:
        if asset.active or asset.ticker in seen or asset.ticker in retired:
            continue
        seen.add(asset.ticker)
        result.delisted.add(asset.ticker)
        result.assets.append(asset)

    log.info(
        "reconciled %d assets: %d new, %d updated, %d delisted",
        len(result.assets),
        len(result.new),
        len(result.updated),
        len(result.delisted),
    )
    return result
