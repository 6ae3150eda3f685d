"""
FastAPI dependency providers.
Core services are taken from the GatewayService stored on the application
state during startup.
"""

from fastapi import Depends, Request

from ..services.balances import BalanceService
from ..services.gateway import GatewayService
from ..services.market_snapshot import MarketSnapshotAssembler
from ..services.order_books import OrderBookAssembler
from ..services.rate_history import CandleAlignmentResolver, RateHistoryReconciler


def get_gateway(request: Request) -> GatewayService:
    """Gateway service created by the application lifespan."""
    return request.app.state.gateway


def get_rate_history(gateway: GatewayService = Depends(get_gateway)) -> RateHistoryReconciler:
    return gateway.rate_history


def get_candle_alignment(gateway: GatewayService = Depends(get_gateway)) -> CandleAlignmentResolver:
    return gateway.candle_alignment


def get_market_snapshot(gateway: GatewayService = Depends(get_gateway)) -> MarketSnapshotAssembler:
    return gateway.market_snapshot


def get_order_books(gateway: GatewayService = Depends(get_gateway)) -> OrderBookAssembler:
    return gateway.order_books


def get_balances(gateway: GatewayService = Depends(get_gateway)) -> BalanceService:
    return gateway.balances
