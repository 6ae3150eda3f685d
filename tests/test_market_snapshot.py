"""Tests for live rates and the asset pair dictionary."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from market_gateway.core.exceptions import UpstreamFailureError
from market_gateway.models import MarketProfileEntry, MarketType
from market_gateway.services.market_snapshot import MarketSnapshotAssembler


def _entry(pair_id: str, bid: float, ask: float) -> MarketProfileEntry:
    return MarketProfileEntry(asset_pair=pair_id, bid_price=bid, ask_price=ask)


@pytest.fixture
def market_profile():
    profile = [
        _entry("BTCUSD", 49990.0, 50010.0),
        _entry("XRPUSD", 0.5, 0.51),
        _entry("LTCUSD", 180.0, 181.0),
    ]
    mock = MagicMock()
    mock.get_all_pairs = AsyncMock(return_value=profile)
    mock.try_get_pair = AsyncMock(
        side_effect=lambda pair_id: next((e for e in profile if e.asset_pair == pair_id), None)
    )
    return mock


@pytest.fixture
def candles_provider():
    mt_backend = MagicMock()
    mt_backend.get_available_asset_pairs = AsyncMock(return_value=["ETHUSD", "XRPUSD"])
    provider = MagicMock()
    provider.get = MagicMock(return_value=mt_backend)
    return provider


@pytest.fixture
def snapshot(directory, market_profile, candles_provider):
    return MarketSnapshotAssembler(directory, market_profile, candles_provider)


class TestRates:
    @pytest.mark.asyncio
    async def test_only_enabled_pairs_with_profile_entries(self, snapshot):
        rates = await snapshot.get_rates()

        assert [rate.id for rate in rates] == ["BTCUSD"]
        assert rates[0].bid == 49990.0
        assert rates[0].ask == 50010.0

    @pytest.mark.asyncio
    async def test_profile_failure_propagates(self, directory, candles_provider):
        market_profile = MagicMock()
        market_profile.get_all_pairs = AsyncMock(
            side_effect=UpstreamFailureError("down", source="market_profile")
        )
        snapshot = MarketSnapshotAssembler(directory, market_profile, candles_provider)

        with pytest.raises(UpstreamFailureError):
            await snapshot.get_rates()


class TestSingleRate:
    @pytest.mark.asyncio
    async def test_returns_profile_entry(self, snapshot):
        rate = await snapshot.get_rate("BTCUSD")

        assert rate.id == "BTCUSD"
        assert rate.bid == 49990.0

    @pytest.mark.asyncio
    async def test_absent_entry_is_none(self, snapshot):
        assert await snapshot.get_rate("ETHUSD") is None

    @pytest.mark.asyncio
    async def test_disabled_pair_is_not_filtered(self, snapshot, directory):
        rate = await snapshot.get_rate("XRPUSD")

        assert rate is not None
        assert rate.id == "XRPUSD"
        directory.get_enabled_asset_pairs.assert_not_awaited()


class TestDictionary:
    @pytest.mark.asyncio
    async def test_lists_enabled_pairs(self, snapshot, candles_provider):
        entries = await snapshot.get_dictionary()

        assert [entry.id for entry in entries] == ["BTCUSD", "ETHUSD"]
        assert entries[0].name == "BTC/USD"
        assert entries[0].inverted_accuracy == 8
        candles_provider.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_spot_market_is_unfiltered(self, snapshot, candles_provider):
        entries = await snapshot.get_dictionary(MarketType.SPOT)

        assert [entry.id for entry in entries] == ["BTCUSD", "ETHUSD"]
        candles_provider.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_margin_market_intersects_with_candle_series(self, snapshot, candles_provider):
        entries = await snapshot.get_dictionary(MarketType.MT)

        # XRPUSD has series but is disabled
        assert [entry.id for entry in entries] == ["ETHUSD"]
        candles_provider.get.assert_called_once_with(MarketType.MT)
