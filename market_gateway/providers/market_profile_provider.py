"""
Market profile service client: live best bid/ask per asset pair.
"""

from typing import Any, Dict, List, Optional

from .base import BaseServiceClient, ProviderError, path_segment
from ..core.config import settings
from ..models import MarketProfileEntry


class MarketProfileClient(BaseServiceClient):
    """HTTP client for the market profile service."""

    def __init__(self, base_url: Optional[str] = None, **kwargs):
        super().__init__(
            name="market_profile",
            base_url=base_url or settings.market_profile_service_url,
            **kwargs
        )

    async def get_all_pairs(self) -> List[MarketProfileEntry]:
        data = await self._get_json("/api/MarketProfile")
        if not isinstance(data, list):
            raise ProviderError(f"Unexpected payload from {self.name}: expected a list", self.name)
        return [self._create_entry(item) for item in data]

    async def try_get_pair(self, asset_pair_id: str) -> Optional[MarketProfileEntry]:
        """Profile entry of one pair, or None when the service does not know it."""
        data = await self._get_json(f"/api/MarketProfile/{path_segment(asset_pair_id)}", allow_not_found=True)
        if data is None:
            return None
        return self._create_entry(data)

    def _create_entry(self, item: Dict[str, Any]) -> MarketProfileEntry:
        try:
            return MarketProfileEntry(
                asset_pair=item["assetPair"],
                bid_price=item["bidPrice"],
                ask_price=item["askPrice"],
                bid_price_timestamp=item.get("bidPriceTimestamp"),
                ask_price_timestamp=item.get("askPriceTimestamp")
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(f"Malformed profile entry from {self.name}: {str(e)}", self.name)
