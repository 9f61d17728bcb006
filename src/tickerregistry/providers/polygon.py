"""Polygon.io listing source and ticker-detail enricher.

Supports both the official ``polygon-api-client`` SDK and a direct
REST fallback using ``requests``.

Install the optional dependency:
    pip install tickerregistry[polygon]
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any

import certifi
import requests

from tickerregistry.errors import RegistryError, RegistryErrorCode
from tickerregistry.models.asset import Asset, AssetType
from tickerregistry.providers.base import (
    BaseAssetSource,
    BaseEnricher,
    RateLimiter,
    check_response,
)

try:
    from polygon import RESTClient
    _SDK_AVAILABLE = True
except ImportError:
    _SDK_AVAILABLE = False

log = logging.getLogger(__name__)

SOURCE_TAG = "api.polygon.io"
BASE_URL = "https://api.polygon.io"

POLYGON_TYPES: dict[str, AssetType] = {
    "CS": AssetType.COMMON_STOCK,
    "ETF": AssetType.ETF,
    "ETN": AssetType.ETN,
    "FUND": AssetType.CLOSED_END_FUND,
    "ADRC": AssetType.ADRC,
}


def _require_key(api_key: str | None) -> str:
    key = api_key or os.getenv("POLYGON_API_KEY")
    if not key:
        raise RegistryError(
            "Polygon API key required. Set POLYGON_API_KEY env var or pass api_key.",
            code=RegistryErrorCode.AUTH_FAILED,
        )
    return key


def _text(value: Any) -> str:
    return str(value) if value not in (None, "") else ""


class _PolygonClient:
    """SDK-or-REST access shared by the source and the enricher."""

    def __init__(
        self,
        api_key: str | None,
        rate_limit: int,
        session: Any | None,
    ) -> None:
        self.api_key = _require_key(api_key)
        self.limiter = RateLimiter(rate_limit)
        if session is None and _SDK_AVAILABLE:
            self.client: Any = RESTClient(self.api_key)
            self.session = None
        else:
            self.client = None
            if session is None:
                session = requests.Session()
                session.verify = certifi.where()
            self.session = session

    def get_json(self, url: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        self.limiter.wait()
        query = dict(params or {})
        query["apiKey"] = self.api_key
        try:
            resp = self.session.get(url, params=query, timeout=30)
        except requests.RequestException as exc:
            raise RegistryError(
                f"Polygon request failed: {exc}",
                code=RegistryErrorCode.SOURCE_ERROR,
                retryable=True,
            ) from exc
        check_response(resp, "Polygon")
        return resp.json()


class PolygonSource(BaseAssetSource):
    """List active US tickers from Polygon's reference endpoint."""

    name = "polygon"

    def __init__(
        self,
        api_key: str | None = None,
        asset_types: list[str] | None = None,
        max_pages: int = 25,
        rate_limit: int = 5,
        session: Any | None = None,
    ) -> None:
        self._api = _PolygonClient(api_key, rate_limit, session)
        self.asset_types = [t.upper() for t in (asset_types or list(POLYGON_TYPES))]
        self.max_pages = max_pages

    def fetch_assets(self) -> list[Asset]:
        assets: list[Asset] = []
        for type_code in self.asset_types:
            if type_code not in POLYGON_TYPES:
                log.warning("skipping unsupported Polygon ticker type %r", type_code)
                continue
            try:
                if self._api.client is not None:
                    rows = self._list_sdk(type_code)
                else:
                    rows = self._list_rest(type_code)
            except RegistryError:
                raise
            except Exception as exc:
                raise RegistryError(
                    f"Polygon ticker listing failed: {exc}",
                    code=RegistryErrorCode.SOURCE_ERROR,
                    retryable=True,
                ) from exc
            assets.extend(self._row_to_asset(r, type_code) for r in rows)
            log.info("loaded %d Polygon tickers of type %s", len(rows), type_code)
        return assets

    def _list_sdk(self, type_code: str) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        for t in self._api.client.list_tickers(
            type=type_code, market="stocks", active=True, limit=1000,
        ):
            rows.append({
                "ticker": t.ticker,
                "name": getattr(t, "name", None),
                "primary_exchange": getattr(t, "primary_exchange", None),
                "composite_figi": getattr(t, "composite_figi", None),
                "share_class_figi": getattr(t, "share_class_figi", None),
                "cik": getattr(t, "cik", None),
            })
            if len(rows) >= self.max_pages * 1000:
                break
        return rows

    def _list_rest(self, type_code: str) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        url: str | None = f"{BASE_URL}/v3/reference/tickers"
        params: dict[str, Any] | None = {
            "type": type_code,
            "market": "stocks",
            "active": "true",
            "sort": "ticker",
            "order": "asc",
            "limit": 1000,
        }
        pages = 0
        while url and pages < self.max_pages:
            data = self._api.get_json(url, params)
            pages += 1
            if data.get("status") not in ("OK", None):
                log.error("Polygon listing returned status %r", data.get("status"))
                break
            rows.extend(data.get("results", []))
            # next_url already carries the query; only the key is re-added
            url = data.get("next_url")
            params = None
        return rows

    @staticmethod
    def _row_to_asset(row: dict[str, Any], type_code: str) -> Asset:
        return Asset(
            ticker=_text(row.get("ticker")),
            name=_text(row.get("name")),
            primary_exchange=_text(row.get("primary_exchange")),
            composite_figi=_text(row.get("composite_figi")),
            share_class_figi=_text(row.get("share_class_figi")),
            cik=_text(row.get("cik")),
            asset_type=POLYGON_TYPES[type_code],
            source=SOURCE_TAG,
        )


class PolygonDetailEnricher(BaseEnricher):
    """Fill descriptions, listing dates and branding from ticker details.

    Mutual funds are not covered by Polygon and are skipped, as are assets
    whose details were fetched within ``max_age_days``.
    """

    name = "polygon_detail"

    def __init__(
        self,
        api_key: str | None = None,
        rate_limit: int = 5,
        max_age_days: int = 30,
        max_assets: int = 0,
        session: Any | None = None,
    ) -> None:
        self._api = _PolygonClient(api_key, rate_limit, session)
        self.max_age_seconds = max_age_days * 86400
        self.max_assets = max_assets

    def needs_detail(self, asset: Asset, now: int) -> bool:
        return (
            asset.active
            and asset.asset_type is not AssetType.MUTUAL_FUND
            and asset.polygon_detail_age + self.max_age_seconds < now
        )

    def enrich(self, assets: list[Asset]) -> None:
        now = int(time.time())
        pending = [a for a in assets if self.needs_detail(a, now)]
        if self.max_assets > 0:
            pending = pending[: self.max_assets]
        log.info("fetching Polygon details for %d assets", len(pending))

        for asset in pending:
            try:
                detail = self._fetch_detail(asset.ticker)
            except RegistryError as exc:
                if exc.code is RegistryErrorCode.AUTH_FAILED:
                    raise
                log.warning("Polygon detail failed for %s: %s", asset.ticker, exc)
                continue
            self._apply(asset, detail)
            asset.polygon_detail_age = now

    def _fetch_detail(self, ticker: str) -> dict[str, Any]:
        if self._api.client is not None:
            self._api.limiter.wait()
            try:
                det = self._api.client.get_ticker_details(ticker)
            except Exception as exc:
                raise RegistryError(
                    f"Polygon get_ticker_details failed: {exc}",
                    code=RegistryErrorCode.SOURCE_ERROR,
                    retryable=True,
                ) from exc
            branding = getattr(det, "branding", None)
            address = getattr(det, "address", None)
            return {
                "list_date": getattr(det, "list_date", None),
                "homepage_url": getattr(det, "homepage_url", None),
                "description": getattr(det, "description", None),
                "sic_description": getattr(det, "sic_description", None),
                "branding": {"icon_url": getattr(branding, "icon_url", None)},
                "address": {
                    "city": getattr(address, "city", None),
                    "state": getattr(address, "state", None),
                },
            }
        data = self._api.get_json(f"{BASE_URL}/v3/reference/tickers/{ticker}")
        return data.get("results") or {}

    @staticmethod
    def _apply(asset: Asset, detail: dict[str, Any]) -> None:
        address = detail.get("address") or {}
        location = ", ".join(
            p for p in (_text(address.get("city")), _text(address.get("state"))) if p
        )
        values = {
            "listing_date": _text(detail.get("list_date")),
            "corporate_url": _text(detail.get("homepage_url")),
            "description": _text(detail.get("description")).strip(),
            "industry": _text(detail.get("sic_description")).strip(),
            "icon_url": _text((detail.get("branding") or {}).get("icon_url")),
            "headquarters_location": location,
        }
        for attr, value in values.items():
            if value:
                setattr(asset, attr, value)
