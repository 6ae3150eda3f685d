"""Tests for the asset pair directory read-through cache."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from market_gateway.models import Asset
from market_gateway.providers.assets_provider import AssetPairDirectory
from market_gateway.providers.base import ProviderError


@pytest.fixture
def assets_client(asset_pairs):
    mock = MagicMock()
    mock.get_asset_pairs = AsyncMock(return_value=asset_pairs)
    mock.get_assets = AsyncMock(return_value=[Asset(id="BTC", name="Bitcoin")])
    return mock


class TestAssetPairDirectory:
    @pytest.mark.asyncio
    async def test_loads_on_first_read(self, assets_client):
        directory = AssetPairDirectory(assets_client, ttl=300)

        pairs = await directory.get_all_asset_pairs()

        assert [pair.id for pair in pairs] == ["BTCUSD", "ETHUSD", "XRPUSD"]
        assert directory.last_update is not None

    @pytest.mark.asyncio
    async def test_enabled_pairs_exclude_disabled(self, assets_client):
        directory = AssetPairDirectory(assets_client, ttl=300)

        pairs = await directory.get_enabled_asset_pairs()

        assert [pair.id for pair in pairs] == ["BTCUSD", "ETHUSD"]

    @pytest.mark.asyncio
    async def test_fresh_data_is_served_from_memory(self, assets_client):
        directory = AssetPairDirectory(assets_client, ttl=300)

        await directory.get_all_asset_pairs()
        await directory.try_get_asset_pair("BTCUSD")
        await directory.try_get_asset("BTC")

        assets_client.get_asset_pairs.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stale_data_is_reloaded(self, assets_client):
        directory = AssetPairDirectory(assets_client, ttl=0)

        await directory.get_all_asset_pairs()
        await directory.get_all_asset_pairs()

        assert assets_client.get_asset_pairs.await_count == 2

    @pytest.mark.asyncio
    async def test_failed_reload_serves_previous_snapshot(self, assets_client):
        directory = AssetPairDirectory(assets_client, ttl=0)
        await directory.refresh()
        assets_client.get_asset_pairs.side_effect = ProviderError("down", "assets")

        pairs = await directory.get_enabled_asset_pairs()

        assert [pair.id for pair in pairs] == ["BTCUSD", "ETHUSD"]

    @pytest.mark.asyncio
    async def test_failed_first_load_raises(self, assets_client):
        assets_client.get_asset_pairs.side_effect = ProviderError("down", "assets")
        directory = AssetPairDirectory(assets_client, ttl=300)

        with pytest.raises(ProviderError):
            await directory.get_all_asset_pairs()

    @pytest.mark.asyncio
    async def test_lookups(self, assets_client):
        directory = AssetPairDirectory(assets_client, ttl=300)

        assert (await directory.try_get_asset_pair("XRPUSD")).is_disabled is True
        assert await directory.try_get_asset_pair("NOPE") is None
        assert (await directory.try_get_asset("BTC")).name == "Bitcoin"
        assert await directory.try_get_asset("DOGE") is None
        assert [asset.id for asset in await directory.get_all_assets()] == ["BTC"]

    @pytest.mark.asyncio
    async def test_failed_load_cancels_pending_assets_request(self, assets_client):
        cancelled = asyncio.Event()

        async def slow_assets():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        async def failing_pairs():
            await asyncio.sleep(0.01)
            raise ProviderError("down", "assets")

        assets_client.get_asset_pairs = MagicMock(side_effect=failing_pairs)
        assets_client.get_assets = MagicMock(side_effect=slow_assets)
        directory = AssetPairDirectory(assets_client, ttl=300)

        with pytest.raises(ProviderError):
            await directory.refresh()

        assert cancelled.is_set()
