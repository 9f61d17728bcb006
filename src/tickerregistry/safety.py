"""Removal-count safety valve evaluated before anything is persisted."""

from __future__ import annotations

import logging

from tickerregistry.errors import RemovalLimitExceeded
from tickerregistry.models.asset import Asset
from tickerregistry.quality import ValidationCheck

log = logging.getLogger(__name__)


def count_removed(assets: list[Asset]) -> int:
    """Number of assets carrying a delisting date."""
    return sum(1 for a in assets if not a.active)


def check_removal_limit(assets: list[Asset], max_removed: int) -> ValidationCheck:
    removed = count_removed(assets)
    if removed > max_removed:
        return ValidationCheck(
            "removal_limit", False, f"{removed} delisted, limit {max_removed}"
        )
    return ValidationCheck("removal_limit", True, f"{removed} delisted")


def enforce_removal_limit(assets: list[Asset], max_removed: int) -> int:
    """Raise RemovalLimitExceeded when too many assets would be removed.

    Returns the removal count when the run may proceed. Exactly
    ``max_removed`` removals is allowed.
    """
    removed = count_removed(assets)
    if removed > max_removed:
        log.error(
            "safety valve tripped: %d assets marked delisted, limit is %d",
            removed,
            max_removed,
        )
        raise RemovalLimitExceeded(removed, max_removed)
    return removed
