"""
Domain models for Market Gateway Service.
Defines the data structures read from the backing stores: asset pairs, ticks,
candles, market profile entries and order books.
"""

from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, Field, validator
from enum import Enum


class MarketType(str, Enum):
    """Market segments served by the venue."""
    SPOT = "spot"
    MT = "mt"


class PriceSide(str, Enum):
    """Price side of a tick or order book."""
    ASK = "Ask"
    BID = "Bid"


class PricePeriod(str, Enum):
    """Candle bucket granularity."""
    SEC = "Sec"
    MINUTE = "Minute"
    HOUR = "Hour"
    DAY = "Day"
    MONTH = "Month"


class CandlePriceType(str, Enum):
    """Price series kept by the candle history backend."""
    BID = "Bid"
    ASK = "Ask"
    MID = "Mid"
    TRADES = "Trades"


def _as_utc(v: datetime) -> datetime:
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


class AssetPair(BaseModel):
    """Model for asset pair reference data."""
    id: str = Field(..., description="Asset pair identifier")
    name: str = Field(..., description="Display name, e.g. BTC/USD")
    base_asset_id: str = Field(..., description="Base asset identifier")
    quoting_asset_id: str = Field(..., description="Quoting asset identifier")
    accuracy: int = Field(5, ge=0, description="Display precision of prices")
    inverted_accuracy: int = Field(5, ge=0, description="Display precision of inverted prices")
    is_disabled: bool = Field(False, description="Whether the pair is hidden from public outputs")

    @validator('id')
    def validate_id(cls, v: str) -> str:
        """Asset pair ids must not be blank."""
        if not v or not v.strip():
            raise ValueError("Asset pair id cannot be empty")
        return v.strip()


class Asset(BaseModel):
    """Model for asset reference data."""
    id: str = Field(..., description="Asset identifier")
    name: str = Field(..., description="Asset display name")
    accuracy: int = Field(8, ge=0, description="Display precision of amounts")
    blockchain_asset_id: Optional[str] = Field(None, description="Colored coin id; absent for the native coin")
    multiplier_power: int = Field(8, ge=0, description="Power of ten between chain units and asset units")

    def multiplier(self) -> float:
        """Factor converting chain units into asset units."""
        return 10 ** -self.multiplier_power


class HistoricalTick(BaseModel):
    """Single timestamped price observation for one side of a pair."""
    asset_pair_id: str = Field(..., description="Asset pair identifier")
    side: PriceSide = Field(..., description="Price side")
    timestamp: datetime = Field(..., description="Observation time (UTC)")
    price: float = Field(..., description="Observed price")

    @validator('timestamp')
    def validate_timestamp(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @validator('price')
    def validate_price(cls, v: float) -> float:
        """Validate price is positive."""
        if v <= 0:
            raise ValueError("Price must be positive")
        return v


class Candle(BaseModel):
    """Aggregated OHLC summary over one period bucket."""
    asset_pair_id: str = Field(..., description="Asset pair identifier")
    price_type: CandlePriceType = Field(..., description="Price series of the candle")
    period: PricePeriod = Field(..., description="Bucket granularity")
    timestamp: datetime = Field(..., description="Bucket start (UTC)")
    open: float = Field(..., description="Opening price")
    close: float = Field(..., description="Closing price")
    high: float = Field(..., description="Highest price")
    low: float = Field(..., description="Lowest price")
    trading_volume: float = Field(0.0, description="Traded volume in base asset")
    opposite_trading_volume: float = Field(0.0, description="Traded volume in quoting asset")
    last_trade_price: Optional[float] = Field(None, description="Price of the last trade in the bucket")

    @validator('timestamp')
    def validate_timestamp(cls, v: datetime) -> datetime:
        return _as_utc(v)


class MarketProfileEntry(BaseModel):
    """Live best bid/ask snapshot of one asset pair."""
    asset_pair: str = Field(..., description="Asset pair identifier")
    bid_price: float = Field(..., description="Best bid price")
    ask_price: float = Field(..., description="Best ask price")
    bid_price_timestamp: Optional[datetime] = Field(None, description="Time of the best bid")
    ask_price_timestamp: Optional[datetime] = Field(None, description="Time of the best ask")


class OrderBookLevel(BaseModel):
    """One price level of an order book."""
    price: float = Field(..., description="Level price")
    volume: float = Field(..., description="Level volume; negative for sell side")


class OrderBook(BaseModel):
    """Current order book for one side of a pair, as published to the cache."""
    asset_pair: str = Field(..., description="Asset pair identifier")
    is_buy: bool = Field(..., description="True for the buy (bid) side")
    timestamp: datetime = Field(..., description="Snapshot time (UTC)")
    prices: List[OrderBookLevel] = Field(default_factory=list, description="Ordered price levels")

    @validator('timestamp')
    def validate_timestamp(cls, v: datetime) -> datetime:
        return _as_utc(v)
