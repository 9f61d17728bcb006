"""OpenFIGI mapping enricher: composite/share-class FIGIs and asset types."""

from __future__ import annotations

import logging
import os
from typing import Any

import requests

from tickerregistry.errors import RegistryError, RegistryErrorCode
from tickerregistry.models.asset import Asset, AssetType
from tickerregistry.providers.base import BaseEnricher, RateLimiter, check_response

log = logging.getLogger(__name__)

MAPPING_URL = "https://api.openfigi.com/v3/mapping"
BATCH_SIZE = 100

_TYPE2_MAP: dict[str, AssetType] = {
    "Common Stock": AssetType.COMMON_STOCK,
    "Partnership Shares": AssetType.COMMON_STOCK,
    "Depositary Receipt": AssetType.ADRC,
}

_FUND_MAP: dict[str, AssetType] = {
    "ETP": AssetType.ETF,
    "Open-End Fund": AssetType.MUTUAL_FUND,
    "Closed-End Fund": AssetType.CLOSED_END_FUND,
}


def classify_security_type(security_type: str, security_type2: str) -> AssetType | None:
    """Map OpenFIGI's securityType/securityType2 pair onto an AssetType.

    Returns None when OpenFIGI gives no classification at all, and
    ``AssetType.UNKNOWN`` (after a warning) for unrecognised values.
    """
    if not security_type2:
        return None
    if security_type2 in _TYPE2_MAP:
        return _TYPE2_MAP[security_type2]
    if security_type2 == "Mutual Fund":
        if security_type in _FUND_MAP:
            return _FUND_MAP[security_type]
        log.warning(
            "unrecognised OpenFIGI fund type: securityType=%r securityType2=%r",
            security_type,
            security_type2,
        )
        return AssetType.UNKNOWN
    log.warning(
        "unrecognised OpenFIGI security type: securityType=%r securityType2=%r",
        security_type,
        security_type2,
    )
    return AssetType.UNKNOWN


class OpenFigiEnricher(BaseEnricher):
    """Fill composite and share-class FIGIs via the OpenFIGI mapping API.

    Only active assets missing a composite FIGI or lacking a known asset
    type are queried, in batches of up to 100 tickers. A failed batch is
    logged and skipped; a rejected API key aborts the enrichment.
    """

    name = "openfigi"

    def __init__(
        self,
        api_key: str | None = None,
        rate_limit: int = 25,
        session: Any | None = None,
    ) -> None:
        self.api_key = api_key or os.getenv("OPENFIGI_API_KEY")
        self.limiter = RateLimiter(rate_limit)
        self.session = session or requests.Session()

    @staticmethod
    def needs_mapping(asset: Asset) -> bool:
        return asset.active and (
            asset.composite_figi == ""
            or asset.asset_type in (None, AssetType.UNKNOWN)
        )

    def enrich(self, assets: list[Asset]) -> None:
        pending = [a for a in assets if self.needs_mapping(a)]
        log.info("looking up OpenFIGI mappings for %d assets", len(pending))

        mapped = 0
        for start in range(0, len(pending), BATCH_SIZE):
            batch = pending[start:start + BATCH_SIZE]
            try:
                found = self.lookup([a.ticker for a in batch])
            except RegistryError as exc:
                if exc.code is RegistryErrorCode.AUTH_FAILED:
                    raise
                log.warning(
                    "OpenFIGI batch %d failed: %s", start // BATCH_SIZE + 1, exc
                )
                continue

            for asset in batch:
                item = found.get(asset.ticker)
                if item is None:
                    continue
                self._apply(asset, item)
                mapped += 1

        log.info("OpenFIGI mapped %d of %d assets", mapped, len(pending))

    def lookup(self, tickers: list[str]) -> dict[str, dict[str, Any]]:
        """POST one mapping request; returns the first match per ticker."""
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-OPENFIGI-APIKEY"] = self.api_key
        payload = [
            {"idType": "TICKER", "idValue": t, "exchCode": "US"} for t in tickers
        ]

        self.limiter.wait()
        try:
            resp = self.session.post(MAPPING_URL, json=payload, headers=headers, timeout=30)
        except requests.RequestException as exc:
            raise RegistryError(
                f"OpenFIGI request failed: {exc}",
                code=RegistryErrorCode.SOURCE_ERROR,
                retryable=True,
            ) from exc
        check_response(resp, "OpenFIGI")

        result: dict[str, dict[str, Any]] = {}
        for ticker, item in zip(tickers, resp.json()):
            data = item.get("data") or []
            if data:
                result[ticker] = data[0]
        return result

    @staticmethod
    def _apply(asset: Asset, item: dict[str, Any]) -> None:
        asset.composite_figi = item.get("compositeFIGI") or asset.composite_figi
        asset.share_class_figi = item.get("shareClassFIGI") or asset.share_class_figi
        if asset.asset_type in (None, AssetType.UNKNOWN):
            asset_type = classify_security_type(
                item.get("securityType") or "",
                item.get("securityType2") or "",
            )
            if asset_type is not None:
                asset.asset_type = asset_type
