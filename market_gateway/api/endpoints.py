"""
FastAPI endpoints for Market Gateway Service.
Public rates, history, dictionary, order book and balance routes.
"""

from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException

from ..api.dependencies import (
    get_balances, get_candle_alignment, get_gateway, get_market_snapshot,
    get_order_books as order_books_dependency, get_rate_history
)
from ..api.schemas import (
    AssetPairDictionaryEntry, AssetPairHistoryRate, AssetPairRate,
    AssetPairRateHistoryRequest, AssetPairsRateHistoryRequest, BalanceResponse,
    ErrorResponse, HealthResponse
)
from ..core.config import settings
from ..core.logging_config import create_logger
from ..models import MarketType, OrderBook
from ..services.balances import BalanceService
from ..services.gateway import GatewayService
from ..services.market_snapshot import MarketSnapshotAssembler
from ..services.order_books import OrderBookAssembler
from ..services.rate_history import CandleAlignmentResolver, RateHistoryReconciler

logger = create_logger(__name__)

# Create API router
router = APIRouter()

# Application startup time for uptime calculation
app_start_time = datetime.utcnow()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    500: {"model": ErrorResponse, "description": "Backing service failure"},
}


@router.get("/health", response_model=HealthResponse)
async def health_check(gateway: GatewayService = Depends(get_gateway)):
    """
    Health check endpoint.
    Returns overall service health status including Redis connectivity and background tasks.
    """
    try:
        redis_healthy = await gateway.cache.health_check()
        tasks_running = gateway.are_background_tasks_running()
        last_updates = gateway.get_last_update_times()

        uptime_seconds = (datetime.utcnow() - app_start_time).total_seconds()

        is_healthy = redis_healthy and tasks_running
        status = "healthy" if is_healthy else "unhealthy"

        return HealthResponse(
            status=status,
            version=settings.app_version,
            uptime_seconds=uptime_seconds,
            redis_connected=redis_healthy,
            background_tasks_running=tasks_running,
            last_directory_update=last_updates.get('asset_list_update')
        )

    except Exception as e:
        logger.error("Health check failed", extra={"error": str(e)})
        raise HTTPException(
            status_code=500,
            detail="Health check failed"
        )


@router.get("/api/AssetPairs/rate", response_model=List[AssetPairRate], responses=ERROR_RESPONSES)
async def get_rates(snapshot: MarketSnapshotAssembler = Depends(get_market_snapshot)):
    """Get current rates of all enabled asset pairs."""
    rates = await snapshot.get_rates()

    logger.info("Rates retrieved", extra={"count": len(rates)})

    return rates


@router.get("/api/AssetPairs/rate/{asset_pair_id}", response_model=Optional[AssetPairRate], responses=ERROR_RESPONSES)
async def get_rate(asset_pair_id: str, snapshot: MarketSnapshotAssembler = Depends(get_market_snapshot)):
    """
    Get current rate of one asset pair.

    Returns null when the market profile has no entry for the pair.
    """
    rate = await snapshot.get_rate(asset_pair_id)

    logger.info("Single rate retrieved", extra={
        "asset_pair_id": asset_pair_id,
        "found": rate is not None
    })

    return rate


@router.get("/api/AssetPairs/dictionary", response_model=List[AssetPairDictionaryEntry], responses=ERROR_RESPONSES)
@router.get("/api/AssetPairs/dictionary/{market}", response_model=List[AssetPairDictionaryEntry], responses=ERROR_RESPONSES)
async def get_dictionary(
    market: Optional[MarketType] = None,
    snapshot: MarketSnapshotAssembler = Depends(get_market_snapshot)
):
    """
    Get asset pairs dictionary.

    Args:
        market: Market segment (spot, mt); margin trading lists only pairs
            with configured candle series
    """
    pairs = await snapshot.get_dictionary(market)

    logger.info("Dictionary retrieved", extra={
        "market": market.value if market else None,
        "count": len(pairs)
    })

    return pairs


@router.post("/api/AssetPairs/rate/history", response_model=List[AssetPairHistoryRate], responses=ERROR_RESPONSES)
async def get_history_rates(
    request: AssetPairsRateHistoryRequest,
    rate_history: RateHistoryReconciler = Depends(get_rate_history)
):
    """
    Get rates of several asset pairs at a moment.

    Available period values: Sec, Minute, Hour, Day, Month. Only Day is
    currently served; any other period is rejected.
    """
    logger.info("History rates request received", extra={
        "asset_pair_ids": request.asset_pair_ids,
        "period": request.period.value,
        "timestamp": request.timestamp.isoformat()
    })

    return await rate_history.get_history_rates(request.asset_pair_ids, request.period, request.timestamp)


@router.post("/api/AssetPairs/rate/history/{asset_pair_id}", response_model=AssetPairHistoryRate, responses=ERROR_RESPONSES)
async def get_history_rate(
    asset_pair_id: str,
    request: AssetPairRateHistoryRequest,
    candle_alignment: CandleAlignmentResolver = Depends(get_candle_alignment)
):
    """
    Get bid, ask and trades candles of one asset pair for the period bucket
    starting at the requested moment.

    Available period values: Sec, Minute, Hour, Day, Month.
    """
    logger.info("History rate request received", extra={
        "asset_pair_id": asset_pair_id,
        "period": request.period.value,
        "timestamp": request.timestamp.isoformat()
    })

    return await candle_alignment.get_history_rate(asset_pair_id, request.period, request.timestamp)


@router.get("/api/OrderBook", response_model=List[OrderBook], responses=ERROR_RESPONSES)
async def get_order_books(order_books: OrderBookAssembler = Depends(order_books_dependency)):
    """Get cached order books of all enabled asset pairs."""
    books = await order_books.get_all()

    logger.info("Order books retrieved", extra={"count": len(books)})

    return books


@router.get("/api/OrderBook/{asset_pair_id}", response_model=List[OrderBook], responses=ERROR_RESPONSES)
async def get_order_book(asset_pair_id: str, order_books: OrderBookAssembler = Depends(order_books_dependency)):
    """Get cached buy and sell order books of one asset pair."""
    books = await order_books.get(asset_pair_id)

    logger.info("Order book retrieved", extra={
        "asset_pair_id": asset_pair_id,
        "count": len(books)
    })

    return books


@router.get("/api/Balance/{address}/{asset_id}", response_model=BalanceResponse, responses=ERROR_RESPONSES)
async def get_balance(address: str, asset_id: str, balances: BalanceService = Depends(get_balances)):
    """Get spendable balance of an asset held by a blockchain address."""
    balance = await balances.get_balance(address, asset_id)

    return BalanceResponse(address=address, asset_id=asset_id, balance=balance)
