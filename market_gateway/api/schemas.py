"""
Pydantic schemas for Market Gateway Service.
Request and response shapes of the public API.
"""

from datetime import datetime
from typing import List, Optional, Dict, Any, Literal
from pydantic import BaseModel, Field, validator

from ..core.exceptions import ErrorCode
from ..core.periods import ensure_utc
from ..models import AssetPair, Candle, MarketProfileEntry, PricePeriod


class AssetPairsRateHistoryRequest(BaseModel):
    """Model for batch rate history request."""
    asset_pair_ids: List[str] = Field(..., alias="assetPairIds", min_length=1, description="Asset pair ids to look up")
    period: PricePeriod = Field(..., description="Candle period; only Day is served")
    timestamp: datetime = Field(..., description="Moment to look up rates at")

    class Config:
        """Accept the public camelCase name and the field name."""
        populate_by_name = True

    @validator('asset_pair_ids')
    def validate_asset_pair_ids(cls, v: List[str]) -> List[str]:
        """Strip ids and drop duplicates while preserving order."""
        seen = set()
        unique_ids = []
        for pair_id in v:
            if not pair_id or not pair_id.strip():
                continue
            pair_id = pair_id.strip()
            if pair_id not in seen:
                seen.add(pair_id)
                unique_ids.append(pair_id)

        if not unique_ids:
            raise ValueError("At least one asset pair id is required")

        return unique_ids

    @validator('timestamp')
    def validate_timestamp(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class AssetPairRateHistoryRequest(BaseModel):
    """Model for single pair rate history request."""
    period: PricePeriod = Field(..., description="Candle period")
    timestamp: datetime = Field(..., description="Start of the requested bucket")

    @validator('timestamp')
    def validate_timestamp(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class AssetPairRate(BaseModel):
    """Current bid/ask rate of an asset pair."""
    id: str = Field(..., description="Asset pair id")
    bid: float = Field(..., description="Best bid price")
    ask: float = Field(..., description="Best ask price")

    @classmethod
    def from_profile(cls, entry: MarketProfileEntry) -> "AssetPairRate":
        return cls(id=entry.asset_pair, bid=entry.bid_price, ask=entry.ask_price)


class RateCandle(BaseModel):
    """Candle as exposed in history rate records."""
    period: PricePeriod = Field(..., description="Candle period")
    timestamp: datetime = Field(..., description="Candle time (UTC)")
    open: float
    close: float
    high: float
    low: float
    volume: float = Field(0.0, description="Traded volume in base asset")

    @classmethod
    def from_candle(cls, candle: Candle) -> "RateCandle":
        return cls(
            period=candle.period,
            timestamp=candle.timestamp,
            open=candle.open,
            close=candle.close,
            high=candle.high,
            low=candle.low,
            volume=candle.trading_volume,
        )


class AssetPairHistoryRate(BaseModel):
    """
    Historical rate of one asset pair.

    ``buy`` holds the bid-side candle, ``sell`` the ask-side candle and
    ``trade`` the trades candle. An absent field means no data in the window.
    """
    id: str = Field(..., description="Asset pair id")
    buy: Optional[RateCandle] = Field(None, description="Bid-side candle")
    sell: Optional[RateCandle] = Field(None, description="Ask-side candle")
    trade: Optional[RateCandle] = Field(None, description="Trades candle")

    def is_empty(self) -> bool:
        return self.buy is None and self.sell is None and self.trade is None


class AssetPairDictionaryEntry(BaseModel):
    """Public asset pair metadata."""
    id: str
    name: str
    accuracy: int
    inverted_accuracy: int
    base_asset_id: str
    quoting_asset_id: str

    @classmethod
    def from_asset_pair(cls, pair: AssetPair) -> "AssetPairDictionaryEntry":
        return cls(
            id=pair.id,
            name=pair.name,
            accuracy=pair.accuracy,
            inverted_accuracy=pair.inverted_accuracy,
            base_asset_id=pair.base_asset_id,
            quoting_asset_id=pair.quoting_asset_id,
        )


class BalanceResponse(BaseModel):
    """Model for address balance response."""
    address: str
    asset_id: str
    balance: float


class HealthResponse(BaseModel):
    """Model for health check response."""
    status: Literal["healthy", "unhealthy"] = Field(..., description="Service status")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Health check timestamp")
    version: str = Field(..., description="Service version")
    uptime_seconds: float = Field(..., description="Service uptime in seconds")
    redis_connected: bool = Field(..., description="Redis connection status")
    background_tasks_running: bool = Field(..., description="Background tasks status")
    last_directory_update: Optional[datetime] = Field(None, description="Last successful asset directory refresh")


class ErrorResponse(BaseModel):
    """Model for error responses."""
    code: ErrorCode = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
