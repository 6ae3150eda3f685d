"""
Historical rate services.

RateHistoryReconciler answers batch requests from the feed history store by
pairing the closest ask and bid ticks of every requested pair.
CandleAlignmentResolver answers single-pair requests from the candle history
backend, selecting the one bucket that contains the requested moment.
"""

from datetime import datetime
from typing import List, Optional, Sequence

from ..api.schemas import AssetPairHistoryRate, RateCandle
from ..core.config import settings
from ..core.exceptions import BackendInconsistencyError, InvalidInputError
from ..core.logging_config import create_logger
from ..core.periods import ensure_utc, single_bucket_window
from ..models import Candle, CandlePriceType, HistoricalTick, MarketType, PricePeriod, PriceSide
from ..providers.assets_provider import AssetPairDirectory
from ..providers.candles_provider import CandlesHistoryServiceProvider
from .cache import CacheService
from .concurrency import run_jointly

logger = create_logger(__name__)

SUPPORTED_BATCH_PERIODS = frozenset({PricePeriod.DAY})


def tick_to_candle(tick: HistoricalTick, period: PricePeriod) -> RateCandle:
    """Flat candle whose open, high, low and close are the tick price."""
    return RateCandle(
        period=period,
        timestamp=tick.timestamp,
        open=tick.price,
        close=tick.price,
        high=tick.price,
        low=tick.price,
        volume=0.0
    )


class RateHistoryReconciler:
    """Merges closest-available ask and bid ticks into per-pair history records."""

    def __init__(self, directory: AssetPairDirectory, feed_history: CacheService):
        self._directory = directory
        self._feed_history = feed_history

    async def get_history_rates(
        self,
        asset_pair_ids: Sequence[str],
        period: PricePeriod,
        timestamp: datetime
    ) -> List[AssetPairHistoryRate]:
        """
        One history record per requested pair, in request order.

        Pairs without an ask or a bid tick at or before ``timestamp`` get an
        empty record. The whole batch is rejected before any lookup when the
        period is unsupported or any id is not an enabled asset pair.

        Raises:
            InvalidInputError: On unsupported period or unknown asset pair id
            UpstreamFailureError: If the feed history store fails
        """
        if period not in SUPPORTED_BATCH_PERIODS:
            raise InvalidInputError("Sorry, only day candles are available (temporary).")

        pair_ids = list(dict.fromkeys(asset_pair_ids))
        enabled_ids = {pair.id for pair in await self._directory.get_enabled_asset_pairs()}
        unknown_ids = [pair_id for pair_id in pair_ids if pair_id not in enabled_ids]
        if unknown_ids:
            logger.info("Rejected history request with unknown asset pairs", extra={
                "unknown_asset_pairs": unknown_ids
            })
            raise InvalidInputError("Unknown asset pair id present")

        timestamp = ensure_utc(timestamp)
        records = await run_jointly(*(
            self._reconcile_pair(pair_id, period, timestamp) for pair_id in pair_ids
        ))

        logger.info("History rates reconciled", extra={
            "asset_pairs": len(records),
            "empty_records": sum(1 for record in records if record.is_empty()),
            "timestamp": timestamp.isoformat()
        })

        return records

    async def _reconcile_pair(
        self,
        asset_pair_id: str,
        period: PricePeriod,
        timestamp: datetime
    ) -> AssetPairHistoryRate:
        ask_tick, bid_tick = await run_jointly(
            self._feed_history.get_closest_tick(asset_pair_id, PriceSide.ASK, timestamp),
            self._feed_history.get_closest_tick(asset_pair_id, PriceSide.BID, timestamp)
        )

        if ask_tick is None or bid_tick is None:
            return AssetPairHistoryRate(id=asset_pair_id)

        return AssetPairHistoryRate(
            id=asset_pair_id,
            buy=tick_to_candle(bid_tick, period),
            sell=tick_to_candle(ask_tick, period)
        )


class CandleAlignmentResolver:
    """Fetches the single bid, ask and trades candle of one period bucket."""

    def __init__(
        self,
        candles_provider: CandlesHistoryServiceProvider,
        strict: Optional[bool] = None
    ):
        self._candles_provider = candles_provider
        self._strict = settings.strict_candle_alignment if strict is None else strict

    async def get_history_rate(
        self,
        asset_pair_id: str,
        period: PricePeriod,
        timestamp: datetime
    ) -> AssetPairHistoryRate:
        """
        History record of the bucket of ``period`` that starts at ``timestamp``.

        Raises:
            UpstreamFailureError: If the candle backend fails
            BackendInconsistencyError: In strict mode, if a window holds several buckets
        """
        from_moment, to_moment = single_bucket_window(timestamp, period)
        backend = self._candles_provider.get(MarketType.SPOT)

        buy_history, sell_history, trade_history = await run_jointly(*(
            backend.get_candles_history(asset_pair_id, price_type, period, from_moment, to_moment)
            for price_type in (CandlePriceType.BID, CandlePriceType.ASK, CandlePriceType.TRADES)
        ))

        window = (from_moment, to_moment)
        buy = self._single_candle(buy_history, asset_pair_id, CandlePriceType.BID, period, window)
        sell = self._single_candle(sell_history, asset_pair_id, CandlePriceType.ASK, period, window)
        trade = self._single_candle(trade_history, asset_pair_id, CandlePriceType.TRADES, period, window)

        return AssetPairHistoryRate(
            id=asset_pair_id,
            buy=RateCandle.from_candle(buy) if buy else None,
            sell=RateCandle.from_candle(sell) if sell else None,
            trade=RateCandle.from_candle(trade) if trade else None
        )

    def _single_candle(
        self,
        history: List[Candle],
        asset_pair_id: str,
        price_type: CandlePriceType,
        period: PricePeriod,
        window: tuple
    ) -> Optional[Candle]:
        if not history:
            return None

        if len(history) > 1:
            logger.error("Candle window holds more than one bucket", extra={
                "asset_pair_id": asset_pair_id,
                "price_type": price_type.value,
                "period": period.value,
                "from": window[0].isoformat(),
                "to": window[1].isoformat(),
                "candles": len(history)
            })
            if self._strict:
                raise BackendInconsistencyError(
                    f"Expected at most one {price_type.value} candle for {asset_pair_id}, got {len(history)}",
                    asset_pair_id=asset_pair_id,
                    count=len(history)
                )

        return history[0]
