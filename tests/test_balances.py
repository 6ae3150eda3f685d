"""Tests for address balance lookups."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from market_gateway.core.exceptions import InvalidInputError, UpstreamFailureError
from market_gateway.models import Asset
from market_gateway.services.balances import BalanceService

ADDRESS = "mzBc4XEFSdzCDcTxAgf6EZXgsZWpztRhef"


@pytest.fixture
def assets():
    return {
        "BTC": Asset(id="BTC", name="Bitcoin", multiplier_power=8),
        "USD": Asset(id="USD", name="US Dollar", accuracy=2, blockchain_asset_id="AUSDcolored", multiplier_power=2),
        "LKK": Asset(id="LKK", name="Lykke", blockchain_asset_id="ALKKcolored", multiplier_power=0),
    }


@pytest.fixture
def asset_directory(assets):
    mock = MagicMock()
    mock.try_get_asset = AsyncMock(side_effect=lambda asset_id: assets.get(asset_id))
    return mock


@pytest.fixture
def explorer():
    mock = MagicMock()
    mock.get_balance_summary = AsyncMock(return_value={
        "spendable": {
            "amount": 150000000,
            "assets": [{"assetId": "AUSDcolored", "quantity": 12345}],
        }
    })
    return mock


class TestBalanceService:
    @pytest.mark.asyncio
    async def test_native_coin_balance(self, asset_directory, explorer):
        service = BalanceService(asset_directory, explorer)

        balance = await service.get_balance(ADDRESS, "BTC")

        assert balance == pytest.approx(1.5)
        explorer.get_balance_summary.assert_awaited_once_with(ADDRESS)

    @pytest.mark.asyncio
    async def test_colored_coin_balance(self, asset_directory, explorer):
        service = BalanceService(asset_directory, explorer)

        assert await service.get_balance(ADDRESS, "USD") == pytest.approx(123.45)

    @pytest.mark.asyncio
    async def test_colored_coin_not_held_is_zero(self, asset_directory, explorer):
        service = BalanceService(asset_directory, explorer)

        assert await service.get_balance(ADDRESS, "LKK") == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("address, asset_id", [("", "BTC"), ("   ", "BTC"), (ADDRESS, "")])
    async def test_blank_arguments_rejected(self, asset_directory, explorer, address, asset_id):
        service = BalanceService(asset_directory, explorer)

        with pytest.raises(InvalidInputError):
            await service.get_balance(address, asset_id)

        explorer.get_balance_summary.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_asset_rejected(self, asset_directory, explorer):
        service = BalanceService(asset_directory, explorer)

        with pytest.raises(InvalidInputError, match="no such an asset"):
            await service.get_balance(ADDRESS, "DOGE")

    @pytest.mark.asyncio
    async def test_explorer_failure_propagates(self, asset_directory):
        explorer = MagicMock()
        explorer.get_balance_summary = AsyncMock(
            side_effect=UpstreamFailureError("down", source="blockchain_explorer")
        )
        service = BalanceService(asset_directory, explorer)

        with pytest.raises(UpstreamFailureError):
            await service.get_balance(ADDRESS, "BTC")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("spendable, asset_id", [
        ({"amount": None, "assets": None}, "BTC"),
        ({"amount": 0, "assets": None}, "USD"),
        ({"amount": 0, "assets": [{"assetId": "AUSDcolored", "quantity": None}]}, "USD"),
    ])
    async def test_null_amounts_read_as_zero(self, asset_directory, spendable, asset_id):
        explorer = MagicMock()
        explorer.get_balance_summary = AsyncMock(return_value={"spendable": spendable})
        service = BalanceService(asset_directory, explorer)

        assert await service.get_balance(ADDRESS, asset_id) == 0
