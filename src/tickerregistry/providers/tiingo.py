"""Tiingo supported-tickers listing (the mutual fund feed)."""

from __future__ import annotations

import io
import logging
import re
import zipfile
from datetime import date, timedelta
from typing import Any

import pandas as pd
import requests

from tickerregistry.errors import RegistryError, RegistryErrorCode
from tickerregistry.models.asset import Asset, AssetType
from tickerregistry.providers.base import BaseAssetSource, check_response

log = logging.getLogger(__name__)

SOURCE_TAG = "api.tiingo.com"
TICKERS_URL = "https://apimedia.tiingo.com/docs/tiingo/daily/supported_tickers.zip"

VALID_EXCHANGES = frozenset({
    "AMEX", "BATS", "NASDAQ", "NMFQS", "NYSE", "NYSE ARCA", "NYSE MKT",
})

TIINGO_TYPES: dict[str, AssetType] = {
    "Stock": AssetType.COMMON_STOCK,
    "ETF": AssetType.ETF,
    "Mutual Fund": AssetType.MUTUAL_FUND,
}

# end dates this recent are usually the last completed trading day
RECENT_END = timedelta(days=7)

_SUFFIXED = re.compile(r"^[A-Za-z0-9]+-W?P?U?.*$")
_FIFTH_LETTER = re.compile(r"^[A-Za-z0-9]{4}[WPU].*$")


def ignore_ticker(ticker: str) -> bool:
    """True for test tickers and special share classes (warrants, units, preferreds)."""
    return (
        ticker.startswith(("ATEST", "NTEST", "PTEST"))
        or " " in ticker
        or bool(_SUFFIXED.match(ticker))
        or bool(_FIFTH_LETTER.match(ticker))
    )


class TiingoSource(BaseAssetSource):
    """Parse Tiingo's daily supported-tickers archive.

    Only listed tickers are returned: an end date within the last week is
    treated as the latest trading day, older end dates mean the ticker is
    gone and the registry infers the delisting itself.
    """

    name = "tiingo"

    def __init__(
        self,
        url: str = TICKERS_URL,
        session: Any | None = None,
        today: date | None = None,
    ) -> None:
        self.url = url
        self.session = session or requests.Session()
        self.today = today

    def fetch_assets(self) -> list[Asset]:
        try:
            resp = self.session.get(self.url, timeout=60)
        except requests.RequestException as exc:
            raise RegistryError(
                f"Tiingo download failed: {exc}",
                code=RegistryErrorCode.SOURCE_ERROR,
                retryable=True,
            ) from exc
        check_response(resp, "Tiingo")
        return self.parse_archive(resp.content)

    def parse_archive(self, content: bytes) -> list[Asset]:
        try:
            with zipfile.ZipFile(io.BytesIO(content)) as archive:
                names = archive.namelist()
                if not names:
                    raise RegistryError(
                        "Tiingo archive is empty",
                        code=RegistryErrorCode.SOURCE_ERROR,
                        retryable=True,
                    )
                with archive.open(names[0]) as fh:
                    df = pd.read_csv(fh, dtype=str, keep_default_na=False)
        except zipfile.BadZipFile as exc:
            raise RegistryError(
                f"Tiingo archive unreadable: {exc}",
                code=RegistryErrorCode.SOURCE_ERROR,
                retryable=True,
            ) from exc
        return self.parse_frame(df)

    def parse_frame(self, df: pd.DataFrame) -> list[Asset]:
        today = self.today or date.today()
        assets: list[Asset] = []
        for row in df.to_dict("records"):
            ticker = row.get("ticker", "")
            exchange = row.get("exchange", "")
            start = row.get("startDate", "")
            end = row.get("endDate", "")

            if exchange not in VALID_EXCHANGES:
                continue
            if not start and not end:
                continue
            if not ticker or ignore_ticker(ticker):
                continue

            if end:
                try:
                    if today - date.fromisoformat(end) >= RECENT_END:
                        continue
                except ValueError:
                    log.warning("could not parse end date %r for %s", end, ticker)
                    continue

            assets.append(Asset(
                ticker=ticker.replace("-", "/"),
                listing_date=start,
                primary_exchange=exchange,
                asset_type=TIINGO_TYPES.get(row.get("assetType", "")),
                source=SOURCE_TAG,
            ))

        log.info("loaded %d Tiingo tickers", len(assets))
        return assets
