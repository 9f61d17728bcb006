"""Audit records produced by merge, reconcile and dedup."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldChange:
    """A single field transition on one asset.

    Attributes:
        ticker: Ticker of the changed asset.
        field: Attribute name that changed.
        old: Previous value (stringified).
        new: New value (stringified).
        reason: Human-readable description of the change.
    """

    ticker: str
    field: str
    old: str
    new: str
    reason: str


@dataclass(frozen=True)
class DedupDecision:
    """Survivor selection for one composite FIGI group.

    Attributes:
        composite_figi: Shared identifier of the group.
        selected: Summary of the surviving asset (ticker, type, listing date).
        discarded: Summaries of the dropped alternatives.
        stage: Name of the comparison stage that decided the winner.
    """

    composite_figi: str
    selected: str
    discarded: tuple[str, ...]
    stage: str
