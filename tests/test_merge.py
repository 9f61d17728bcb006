"""Tests for the field merge policy and source list combination."""

import logging

from conftest import NOW, make_asset

from tickerregistry.merge import MERGED_FIELDS, fill_missing, merge_asset, merge_asset_lists
from tickerregistry.models.asset import Asset, AssetType


class TestMergeAsset:
    def test_overwrites_differing_value(self):
        existing = make_asset("AAPL", name="Apple")
        incoming = Asset(ticker="AAPL", name="Apple Inc.", source="api.polygon.io")
        merge_asset(existing, incoming, now=NOW)
        assert existing.name == "Apple Inc."
        assert existing.updated
        assert existing.last_updated == NOW
        assert existing.update_reason == "Name changed 'Apple' to 'Apple Inc.'"
        assert len(existing.changes) == 1
        change = existing.changes[0]
        assert (change.field, change.old, change.new) == ("name", "Apple", "Apple Inc.")

    def test_empty_incoming_never_erases(self):
        populated = {attr: f"v-{attr}" for attr, _ in MERGED_FIELDS}
        existing = Asset(ticker="AAPL", asset_type=AssetType.COMMON_STOCK,
                         source="api.polygon.io", **populated)
        before = existing.copy()
        merge_asset(existing, Asset(ticker="AAPL", source="api.polygon.io"), now=NOW)
        assert existing == before
        for attr, _ in MERGED_FIELDS:
            assert getattr(existing, attr) == f"v-{attr}"
        assert not existing.updated
        assert existing.last_updated is None
        assert existing.changes == []

    def test_idempotent_with_copy(self):
        existing = make_asset("AAPL", description="Phones", similar_tickers=["MSFT"])
        merge_asset(existing, existing.copy(), now=NOW)
        assert not existing.updated
        assert existing.update_reason == ""
        assert existing.changes == []

    def test_multiple_reasons_joined(self):
        existing = make_asset("AAPL", name="Apple", cik="1")
        incoming = Asset(ticker="AAPL", name="Apple Inc.", cik="2")
        merge_asset(existing, incoming, now=NOW)
        assert existing.update_reason == (
            "CIK changed '1' to '2'; Name changed 'Apple' to 'Apple Inc.'"
        )

    def test_every_tracked_field_merges(self):
        existing = Asset(ticker="AAPL")
        incoming = Asset(ticker="AAPL", **{attr: f"v-{attr}" for attr, _ in MERGED_FIELDS})
        merge_asset(existing, incoming, now=NOW)
        for attr, _ in MERGED_FIELDS:
            assert getattr(existing, attr) == f"v-{attr}"
        assert len(existing.changes) == len(MERGED_FIELDS)

    def test_ticker_mismatch_is_noop(self, caplog):
        existing = make_asset("AAPL")
        before = existing.copy()
        with caplog.at_level(logging.ERROR, logger="tickerregistry.merge"):
            result = merge_asset(existing, make_asset("MSFT", name="Other"), now=NOW)
        assert result is existing
        assert existing == before
        assert "different tickers" in caplog.text

    def test_asset_type_fills_unset(self):
        existing = make_asset("SPY", asset_type=None)
        merge_asset(existing, Asset(ticker="SPY", asset_type=AssetType.ETF), now=NOW)
        assert existing.asset_type is AssetType.ETF
        assert existing.changes[0].field == "asset_type"
        assert existing.last_updated == NOW

    def test_asset_type_conflict_keeps_existing(self, caplog):
        existing = make_asset("SPY", asset_type=AssetType.ETF)
        with caplog.at_level(logging.WARNING, logger="tickerregistry.merge"):
            merge_asset(existing, Asset(ticker="SPY", asset_type=AssetType.COMMON_STOCK), now=NOW)
        assert existing.asset_type is AssetType.ETF
        assert not existing.updated
        assert "asset type conflict" in caplog.text

    def test_source_change_recorded_but_not_an_update(self):
        existing = make_asset("VFIAX", source="api.polygon.io")
        merge_asset(existing, Asset(ticker="VFIAX", source="api.tiingo.com"), now=NOW)
        assert existing.source == "api.tiingo.com"
        assert not existing.updated
        assert existing.last_updated == NOW
        assert existing.changes[-1].field == "source"

    def test_empty_source_replaces_populated(self):
        existing = make_asset("AAPL", source="api.polygon.io")
        merge_asset(existing, Asset(ticker="AAPL"), now=NOW)
        assert existing.source == ""
        assert existing.last_updated == NOW
        assert not existing.updated
        change = existing.changes[-1]
        assert (change.field, change.old, change.new) == ("source", "api.polygon.io", "")

    def test_untracked_fields_copied_silently(self):
        existing = make_asset("AAPL")
        incoming = Asset(ticker="AAPL", icon=b"\x89PNG", similar_tickers=["MSFT"])
        merge_asset(existing, incoming, now=NOW)
        assert existing.icon == b"\x89PNG"
        assert existing.similar_tickers == ["MSFT"]
        assert not existing.updated


class TestFillMissing:
    def test_fills_only_empty_fields(self):
        target = Asset(ticker="AAPL", name="Apple Inc.")
        donor = make_asset("AAPL", name="Old Name", description="Phones", polygon_detail_age=99)
        fill_missing(target, donor)
        assert target.name == "Apple Inc."
        assert target.description == "Phones"
        assert target.composite_figi == donor.composite_figi
        assert target.asset_type is AssetType.COMMON_STOCK
        assert target.polygon_detail_age == 99
        assert not target.updated
        assert target.changes == []

    def test_mismatch_ignored(self):
        target = Asset(ticker="AAPL")
        fill_missing(target, make_asset("MSFT"))
        assert target.name == ""


class TestMergeAssetLists:
    def test_partitions_by_ticker(self):
        first = [make_asset("AAPL"), make_asset("MSFT")]
        second = [make_asset("MSFT"), make_asset("VFIAX", asset_type=AssetType.MUTUAL_FUND)]
        result = merge_asset_lists(first, second, now=NOW)
        assert {a.ticker for a in result.combined} == {"AAPL", "MSFT", "VFIAX"}
        assert [a.ticker for a in result.first_only] == ["AAPL"]
        assert [a.ticker for a in result.second_only] == ["VFIAX"]

    def test_first_wins_conflicts(self):
        first = [make_asset("SPY", name="SPDR S&P 500", asset_type=AssetType.ETF)]
        second = [make_asset("SPY", name="SPY Trust", asset_type=AssetType.MUTUAL_FUND,
                             description="An index fund")]
        merged = merge_asset_lists(first, second, now=NOW).combined[0]
        assert merged.name == "SPDR S&P 500"
        assert merged.asset_type is AssetType.ETF
        assert merged.description == "An index fund"
        assert not merged.updated
        assert merged.changes == []

    def test_outputs_are_copies(self):
        first = [make_asset("AAPL")]
        second = [make_asset("MSFT")]
        result = merge_asset_lists(first, second, now=NOW)
        for asset in result.combined:
            assert asset is not first[0]
            assert asset is not second[0]
