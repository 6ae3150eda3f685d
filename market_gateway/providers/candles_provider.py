"""
Candle history backend clients.
One client per market segment, selected through CandlesHistoryServiceProvider.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from .base import BaseServiceClient, ProviderError, path_segment
from ..core.config import settings
from ..core.logging_config import create_logger
from ..core.periods import ensure_utc
from ..models import Candle, CandlePriceType, MarketType, PricePeriod

logger = create_logger(__name__)


def _format_moment(moment: datetime) -> str:
    return ensure_utc(moment).strftime("%Y-%m-%dT%H:%M:%SZ")


class CandlesHistoryClient(BaseServiceClient):
    """HTTP client for one candle history backend."""

    def __init__(self, market_type: MarketType, base_url: str, **kwargs):
        super().__init__(
            name=f"candles_{market_type.value}",
            base_url=base_url,
            **kwargs
        )
        self.market_type = market_type

    async def get_candles_history(
        self,
        asset_pair_id: str,
        price_type: CandlePriceType,
        period: PricePeriod,
        from_moment: datetime,
        to_moment: datetime
    ) -> List[Candle]:
        """
        Get candles of one price series within ``[from_moment, to_moment)``.

        Raises:
            ProviderError: If the backend fails or returns a malformed series
        """
        path = (
            f"/api/CandlesHistory/{path_segment(asset_pair_id)}/{price_type.value}/{period.value}"
            f"/{_format_moment(from_moment)}/{_format_moment(to_moment)}"
        )
        data = await self._get_json(path)

        history = data.get("history") if isinstance(data, dict) else None
        if history is None:
            raise ProviderError(f"Missing history in response from {self.name}", self.name, key=path)

        return [
            self._create_candle(item, asset_pair_id, price_type, period)
            for item in history
        ]

    async def get_available_asset_pairs(self) -> List[str]:
        """Ids of the asset pairs this backend keeps series for."""
        data = await self._get_json("/api/CandlesHistory/availableAssetPairs")
        if not isinstance(data, list):
            raise ProviderError(f"Unexpected payload from {self.name}: expected a list", self.name)
        return [str(pair_id) for pair_id in data]

    def _create_candle(
        self,
        item: Dict[str, Any],
        asset_pair_id: str,
        price_type: CandlePriceType,
        period: PricePeriod
    ) -> Candle:
        try:
            return Candle(
                asset_pair_id=asset_pair_id,
                price_type=price_type,
                period=period,
                timestamp=item["dateTime"],
                open=item["open"],
                close=item["close"],
                high=item["high"],
                low=item["low"],
                trading_volume=item.get("tradingVolume", 0.0),
                opposite_trading_volume=item.get("oppositeTradingVolume", 0.0),
                last_trade_price=item.get("lastTradePrice")
            )
        except (KeyError, ValueError) as e:
            raise ProviderError(f"Malformed candle from {self.name}: {str(e)}", self.name)


class CandlesHistoryServiceProvider:
    """Resolves the candle history backend of a market segment."""

    def __init__(self, clients: Optional[Dict[MarketType, CandlesHistoryClient]] = None):
        self._clients = clients if clients is not None else {
            MarketType.SPOT: CandlesHistoryClient(MarketType.SPOT, settings.candles_spot_url),
            MarketType.MT: CandlesHistoryClient(MarketType.MT, settings.candles_mt_url),
        }

    def get(self, market_type: MarketType) -> CandlesHistoryClient:
        try:
            return self._clients[market_type]
        except KeyError:
            raise ProviderError(
                f"No candle history backend configured for {market_type.value}",
                "candles"
            )

    async def connect(self) -> None:
        for client in self._clients.values():
            await client.connect()

    async def disconnect(self) -> None:
        for client in self._clients.values():
            try:
                await client.disconnect()
            except Exception as e:
                logger.warning("Error disconnecting candle backend", extra={
                    "provider": client.name,
                    "error": str(e)
                })
