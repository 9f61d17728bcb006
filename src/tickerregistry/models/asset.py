"""Asset record data model."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum

from tickerregistry.models.audit import FieldChange


class AssetType(Enum):
    """Instrument classification as stored in the registry."""

    COMMON_STOCK = "Common Stock"
    ETF = "Exchange Traded Fund"
    ETN = "Exchange Traded Note"
    CLOSED_END_FUND = "Closed-End Fund"
    MUTUAL_FUND = "Mutual Fund"
    ADRC = "American Depository Receipt Common"
    UNKNOWN = "Unknown"


@dataclass
class Asset:
    """One tradeable instrument as seen by a source or the registry.

    Unlike the other models this one is mutable: merge and reconcile update
    records in place. String fields use ``""`` for "not known"; dates are
    ISO ``YYYY-MM-DD`` strings as delivered by the feeds.

    Attributes:
        ticker: Ticker symbol (primary, source-local identity).
        name: Full legal name.
        description: Business description.
        primary_exchange: Primary listing exchange (MIC or feed name).
        asset_type: Classification, ``None`` while unset.
        composite_figi: OpenFIGI composite identifier (cross-source identity).
        share_class_figi: OpenFIGI share class identifier.
        cusip: CUSIP identifier.
        isin: ISIN identifier.
        cik: SEC CIK number.
        listing_date: First trading day.
        delisting_date: Delisting day; non-empty means retired.
        industry: Industry classification.
        sector: Sector classification.
        headquarters_location: Headquarters city/state.
        icon: Raw icon image bytes.
        icon_url: URL of the icon image.
        corporate_url: Company homepage.
        similar_tickers: Related ticker symbols.
        polygon_detail_age: Unix seconds of the last Polygon detail fetch.
        source: Feed the record came from.
        last_updated: When a tracked field last changed.
        updated: Whether this run changed the record.
        new: Whether this run added the record.
        update_reason: Human-readable summary of this run's changes.
        changes: Structured audit trail of this run's changes.
    """

    ticker: str
    name: str = ""
    description: str = ""
    primary_exchange: str = ""
    asset_type: AssetType | None = None
    composite_figi: str = ""
    share_class_figi: str = ""
    cusip: str = ""
    isin: str = ""
    cik: str = ""
    listing_date: str = ""
    delisting_date: str = ""
    industry: str = ""
    sector: str = ""
    headquarters_location: str = ""
    icon: bytes = b""
    icon_url: str = ""
    corporate_url: str = ""
    similar_tickers: list[str] = field(default_factory=list)
    polygon_detail_age: int = 0
    source: str = ""

    last_updated: datetime | None = None
    updated: bool = False
    new: bool = False
    update_reason: str = ""
    changes: list[FieldChange] = field(default_factory=list, repr=False, compare=False)

    @property
    def active(self) -> bool:
        return self.delisting_date == ""

    def copy(self) -> Asset:
        """Independent copy, including list fields and the audit trail."""
        return replace(
            self,
            similar_tickers=list(self.similar_tickers),
            changes=list(self.changes),
        )

    def summary(self) -> str:
        asset_type = self.asset_type.value if self.asset_type else ""
        return f"{self.ticker}{{{asset_type} {self.listing_date}}}"

    def add_reason(self, reason: str) -> None:
        if self.update_reason:
            self.update_reason = f"{self.update_reason}; {reason}"
        else:
            self.update_reason = reason


# Fields carried into snapshots and database rows, i.e. everything except the
# per-run audit trail.
PERSISTED_FIELDS: tuple[str, ...] = tuple(
    f.name for f in fields(Asset) if f.name != "changes"
)
