"""
Address balances read from the blockchain explorer.
"""

from ..core.exceptions import InvalidInputError
from ..core.logging_config import create_logger
from ..providers.assets_provider import AssetPairDirectory
from ..providers.explorer_provider import BlockchainExplorerClient

logger = create_logger(__name__)

NATIVE_COIN_ASSET_ID = "BTC"


class BalanceService:
    """Converts explorer balance summaries into asset amounts."""

    def __init__(self, directory: AssetPairDirectory, explorer: BlockchainExplorerClient):
        self._directory = directory
        self._explorer = explorer

    async def get_balance(self, address: str, asset_id: str) -> float:
        """
        Spendable balance of ``asset_id`` held by ``address``.

        Raises:
            InvalidInputError: If the address is blank or the asset is unknown
            UpstreamFailureError: If the explorer fails
        """
        if not address or not address.strip():
            raise InvalidInputError("Address is required")
        if not asset_id or not asset_id.strip():
            raise InvalidInputError("Asset id is required")

        asset = await self._directory.try_get_asset(asset_id)
        if asset is None:
            raise InvalidInputError(f"There is no such an asset: {asset_id}")

        summary = await self._explorer.get_balance_summary(address.strip())
        spendable = summary["spendable"]

        # Native coin balances are reported as a plain amount
        if asset.blockchain_asset_id is None:
            native = await self._directory.try_get_asset(NATIVE_COIN_ASSET_ID)
            multiplier = native.multiplier() if native else asset.multiplier()
            return (spendable.get("amount") or 0) * multiplier

        quantity = next(
            (item.get("quantity") or 0 for item in spendable.get("assets") or []
             if item.get("assetId") == asset.blockchain_asset_id),
            0
        )

        logger.debug("Resolved colored balance", extra={
            "asset_id": asset_id,
            "blockchain_asset_id": asset.blockchain_asset_id,
            "quantity": quantity
        })

        return quantity * asset.multiplier()
