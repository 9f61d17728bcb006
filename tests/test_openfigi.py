"""Tests for the OpenFIGI mapping enricher."""

import logging

import pytest

from conftest import FakeResponse, FakeSession, make_asset

from tickerregistry.errors import RegistryError, RegistryErrorCode
from tickerregistry.models.asset import Asset, AssetType
from tickerregistry.providers.openfigi import (
    BATCH_SIZE,
    MAPPING_URL,
    OpenFigiEnricher,
    classify_security_type,
)


def _hit(figi: str, security_type: str = "Common Stock", security_type2: str = "Common Stock"):
    return {"data": [{
        "figi": figi,
        "compositeFIGI": figi,
        "shareClassFIGI": f"SC{figi}",
        "securityType": security_type,
        "securityType2": security_type2,
    }]}


class TestClassifySecurityType:
    @pytest.mark.parametrize("security_type,security_type2,expected", [
        ("Common Stock", "Common Stock", AssetType.COMMON_STOCK),
        ("MLP", "Partnership Shares", AssetType.COMMON_STOCK),
        ("ADR", "Depositary Receipt", AssetType.ADRC),
        ("ETP", "Mutual Fund", AssetType.ETF),
        ("Open-End Fund", "Mutual Fund", AssetType.MUTUAL_FUND),
        ("Closed-End Fund", "Mutual Fund", AssetType.CLOSED_END_FUND),
    ])
    def test_known(self, security_type, security_type2, expected):
        assert classify_security_type(security_type, security_type2) is expected

    def test_unknown_fund_subtype(self, caplog):
        with caplog.at_level(logging.WARNING, logger="tickerregistry.providers.openfigi"):
            result = classify_security_type("Unit Trust", "Mutual Fund")
        assert result is AssetType.UNKNOWN
        assert "fund type" in caplog.text

    def test_unknown_security_type(self):
        assert classify_security_type("Warrant", "Warrant") is AssetType.UNKNOWN

    def test_empty(self):
        assert classify_security_type("", "") is None


class TestOpenFigiEnricher:
    def test_fills_missing_figi_and_type(self):
        session = FakeSession([FakeResponse(payload=[_hit("BBG000B9XRY4"), {"warning": "No identifier found."}])])
        enricher = OpenFigiEnricher(api_key="key", rate_limit=0, session=session)
        aapl = Asset(ticker="AAPL", asset_type=AssetType.UNKNOWN)
        nope = Asset(ticker="NOPE")
        enricher.enrich([aapl, nope])

        assert aapl.composite_figi == "BBG000B9XRY4"
        assert aapl.share_class_figi == "SCBBG000B9XRY4"
        assert aapl.asset_type is AssetType.COMMON_STOCK
        assert nope.composite_figi == ""

        call = session.calls[0]
        assert call["url"] == MAPPING_URL
        assert call["headers"]["X-OPENFIGI-APIKEY"] == "key"
        assert call["json"] == [
            {"idType": "TICKER", "idValue": "AAPL", "exchCode": "US"},
            {"idType": "TICKER", "idValue": "NOPE", "exchCode": "US"},
        ]

    def test_known_type_not_reclassified(self):
        session = FakeSession([FakeResponse(payload=[_hit("BBG1", "ETP", "Mutual Fund")])])
        enricher = OpenFigiEnricher(rate_limit=0, session=session)
        spy = Asset(ticker="SPY", asset_type=AssetType.COMMON_STOCK)
        enricher.enrich([spy])
        assert spy.composite_figi == "BBG1"
        assert spy.asset_type is AssetType.COMMON_STOCK

    def test_skips_complete_and_delisted(self):
        session = FakeSession()
        enricher = OpenFigiEnricher(rate_limit=0, session=session)
        enricher.enrich([make_asset("AAPL"), Asset(ticker="GONE", delisting_date="2023-01-03")])
        assert session.calls == []

    def test_batches_of_100(self):
        assets = [Asset(ticker=f"T{i}") for i in range(BATCH_SIZE + 5)]
        session = FakeSession([
            FakeResponse(payload=[{}] * BATCH_SIZE),
            FakeResponse(payload=[{}] * 5),
        ])
        OpenFigiEnricher(rate_limit=0, session=session).enrich(assets)
        assert [len(c["json"]) for c in session.calls] == [BATCH_SIZE, 5]

    def test_failed_batch_skipped(self):
        assets = [Asset(ticker=f"T{i}") for i in range(BATCH_SIZE + 1)]
        session = FakeSession([
            FakeResponse(status_code=500),
            FakeResponse(payload=[_hit("BBGLAST")]),
        ])
        OpenFigiEnricher(rate_limit=0, session=session).enrich(assets)
        assert assets[0].composite_figi == ""
        assert assets[-1].composite_figi == "BBGLAST"

    def test_auth_failure_propagates(self):
        session = FakeSession([FakeResponse(status_code=401)])
        with pytest.raises(RegistryError) as exc_info:
            OpenFigiEnricher(rate_limit=0, session=session).enrich([Asset(ticker="AAPL")])
        assert exc_info.value.code is RegistryErrorCode.AUTH_FAILED

    def test_no_key_header_without_key(self, monkeypatch):
        monkeypatch.delenv("OPENFIGI_API_KEY", raising=False)
        session = FakeSession([FakeResponse(payload=[{}])])
        OpenFigiEnricher(rate_limit=0, session=session).enrich([Asset(ticker="AAPL")])
        assert "X-OPENFIGI-APIKEY" not in session.calls[0]["headers"]
