"""Shared test fixtures for the market gateway."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from market_gateway.models import AssetPair, HistoricalTick, PriceSide


def make_pair(pair_id: str, disabled: bool = False) -> AssetPair:
    return AssetPair(
        id=pair_id,
        name=f"{pair_id[:3]}/{pair_id[3:]}",
        base_asset_id=pair_id[:3],
        quoting_asset_id=pair_id[3:],
        accuracy=3,
        inverted_accuracy=8,
        is_disabled=disabled,
    )


def make_tick(pair_id: str, side: PriceSide, price: float, moment: datetime) -> HistoricalTick:
    return HistoricalTick(asset_pair_id=pair_id, side=side, timestamp=moment, price=price)


@pytest.fixture
def asset_pairs() -> list[AssetPair]:
    """BTCUSD and ETHUSD enabled, XRPUSD disabled."""
    return [make_pair("BTCUSD"), make_pair("ETHUSD"), make_pair("XRPUSD", disabled=True)]


@pytest.fixture
def directory(asset_pairs) -> AsyncMock:
    """Mock AssetPairDirectory backed by the ``asset_pairs`` fixture."""
    mock = AsyncMock()
    mock.get_all_asset_pairs = AsyncMock(return_value=asset_pairs)
    mock.get_enabled_asset_pairs = AsyncMock(
        return_value=[pair for pair in asset_pairs if not pair.is_disabled]
    )
    mock.try_get_asset_pair = AsyncMock(
        side_effect=lambda pair_id: next((p for p in asset_pairs if p.id == pair_id), None)
    )
    return mock


@pytest.fixture
def ticks() -> dict:
    """Feed history keyed by (pair, side); every entry is at or before 2021-03-10."""
    moment = datetime(2021, 3, 9, 23, 59, tzinfo=timezone.utc)
    return {
        ("BTCUSD", PriceSide.ASK): make_tick("BTCUSD", PriceSide.ASK, 50010.0, moment),
        ("BTCUSD", PriceSide.BID): make_tick("BTCUSD", PriceSide.BID, 49990.0, moment),
        ("ETHUSD", PriceSide.ASK): make_tick("ETHUSD", PriceSide.ASK, 1801.0, moment),
    }


@pytest.fixture
def feed_history(ticks) -> MagicMock:
    """Mock feed history returning ticks at or before the requested moment."""
    mock = MagicMock()

    async def get_closest_tick(pair_id, side, moment):
        tick = ticks.get((pair_id, side))
        if tick is None or tick.timestamp > moment:
            return None
        return tick

    mock.get_closest_tick = AsyncMock(side_effect=get_closest_tick)
    return mock


@pytest.fixture
def pair_factory():
    return make_pair


@pytest.fixture
def tick_factory():
    return make_tick
