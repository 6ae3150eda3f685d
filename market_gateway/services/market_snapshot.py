"""
Live market snapshot: current rates and the asset pair dictionary.
"""

from typing import List, Optional

from ..api.schemas import AssetPairDictionaryEntry, AssetPairRate
from ..core.logging_config import create_logger
from ..models import MarketType
from ..providers.assets_provider import AssetPairDirectory
from ..providers.candles_provider import CandlesHistoryServiceProvider
from ..providers.market_profile_provider import MarketProfileClient
from .concurrency import run_jointly

logger = create_logger(__name__)


class MarketSnapshotAssembler:
    """Filters live market profile data and reference data to public outputs."""

    def __init__(
        self,
        directory: AssetPairDirectory,
        market_profile: MarketProfileClient,
        candles_provider: CandlesHistoryServiceProvider
    ):
        self._directory = directory
        self._market_profile = market_profile
        self._candles_provider = candles_provider

    async def get_rates(self) -> List[AssetPairRate]:
        """Current rates of every enabled asset pair known to the market profile."""
        enabled_pairs, profile = await run_jointly(
            self._directory.get_enabled_asset_pairs(),
            self._market_profile.get_all_pairs()
        )
        enabled_ids = {pair.id for pair in enabled_pairs}

        rates = [
            AssetPairRate.from_profile(entry)
            for entry in profile
            if entry.asset_pair in enabled_ids
        ]

        logger.debug("Assembled market rates", extra={
            "profile_entries": len(profile),
            "rates": len(rates)
        })

        return rates

    async def get_rate(self, asset_pair_id: str) -> Optional[AssetPairRate]:
        """
        Current rate of one pair straight from the market profile.

        Disabled pairs are not filtered out here.
        """
        entry = await self._market_profile.try_get_pair(asset_pair_id)
        if entry is None:
            return None
        return AssetPairRate.from_profile(entry)

    async def get_dictionary(self, market: Optional[MarketType] = None) -> List[AssetPairDictionaryEntry]:
        """
        Enabled asset pairs.

        For margin trading only pairs with series in the margin candle backend
        are listed.
        """
        pairs = await self._directory.get_enabled_asset_pairs()

        if market == MarketType.MT:
            mt_pair_ids = set(await self._candles_provider.get(MarketType.MT).get_available_asset_pairs())
            pairs = [pair for pair in pairs if pair.id in mt_pair_ids]

        return [AssetPairDictionaryEntry.from_asset_pair(pair) for pair in pairs]
