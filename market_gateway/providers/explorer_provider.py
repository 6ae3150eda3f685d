"""
Blockchain explorer client used for address balance lookups.
"""

from typing import Any, Dict, Optional

from .base import BaseServiceClient, ProviderError, path_segment
from ..core.config import settings


class BlockchainExplorerClient(BaseServiceClient):
    """HTTP client for the blockchain explorer."""

    def __init__(self, base_url: Optional[str] = None, **kwargs):
        super().__init__(
            name="blockchain_explorer",
            base_url=base_url or settings.blockchain_explorer_url,
            **kwargs
        )

    async def get_balance_summary(self, address: str) -> Dict[str, Any]:
        """
        Spendable balance summary of an address, colored coins included.

        The payload looks like::

            {"spendable": {"amount": 150000000,
                           "assets": [{"assetId": "...", "quantity": 42}]}}
        """
        data = await self._get_json(f"/balances/{path_segment(address)}/summary", params={"colored": "true"})
        if not isinstance(data, dict) or not isinstance(data.get("spendable"), dict):
            raise ProviderError(f"Missing spendable summary from {self.name}", self.name, key=address)
        return data
