"""
Gateway service for Market Gateway.
Owns the backing-store clients, wires the core services and runs the
reference data refresh loop.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from ..core.config import settings
from ..core.logging_config import create_logger
from ..providers.assets_provider import AssetPairDirectory, AssetsServiceClient
from ..providers.base import BaseServiceClient, ProviderError
from ..providers.candles_provider import CandlesHistoryServiceProvider
from ..providers.explorer_provider import BlockchainExplorerClient
from ..providers.market_profile_provider import MarketProfileClient
from .balances import BalanceService
from .cache import CacheService
from .market_snapshot import MarketSnapshotAssembler
from .order_books import OrderBookAssembler
from .rate_history import CandleAlignmentResolver, RateHistoryReconciler

logger = create_logger(__name__)


class GatewayService:
    """Composition root of the gateway's collaborators and core services."""

    def __init__(
        self,
        cache: Optional[CacheService] = None,
        assets_client: Optional[AssetsServiceClient] = None,
        market_profile: Optional[MarketProfileClient] = None,
        candles_provider: Optional[CandlesHistoryServiceProvider] = None,
        explorer: Optional[BlockchainExplorerClient] = None
    ):
        self.cache = cache or CacheService()
        self.assets_client = assets_client or AssetsServiceClient()
        self.market_profile = market_profile or MarketProfileClient()
        self.candles_provider = candles_provider or CandlesHistoryServiceProvider()
        self.explorer = explorer or BlockchainExplorerClient()

        self.directory = AssetPairDirectory(self.assets_client)

        self.rate_history = RateHistoryReconciler(self.directory, self.cache)
        self.candle_alignment = CandleAlignmentResolver(self.candles_provider)
        self.market_snapshot = MarketSnapshotAssembler(self.directory, self.market_profile, self.candles_provider)
        self.order_books = OrderBookAssembler(self.directory, self.cache)
        self.balances = BalanceService(self.directory, self.explorer)

        self._running_tasks: List[asyncio.Task] = []
        self._shutdown_event = asyncio.Event()

    def _http_clients(self) -> Dict[str, BaseServiceClient]:
        return {
            self.assets_client.name: self.assets_client,
            self.market_profile.name: self.market_profile,
            self.explorer.name: self.explorer,
        }

    async def initialize(self) -> None:
        """Connect every collaborator and warm the asset directory."""
        try:
            logger.info("Initializing gateway service")

            await self.cache.connect()

            for name, client in self._http_clients().items():
                await client.connect()
                logger.info("Initialized service client", extra={"provider": name})

            await self.candles_provider.connect()

            try:
                await self.directory.refresh()
            except ProviderError as e:
                # The directory is read-through, requests will retry the load
                logger.warning("Initial asset directory load failed", extra={
                    "error": str(e)
                })

            logger.info("Gateway service initialized successfully")

        except Exception as e:
            logger.error("Failed to initialize gateway service", extra={
                "error": str(e)
            })
            raise

    async def shutdown(self) -> None:
        """Stop background tasks and close every collaborator."""
        logger.info("Shutting down gateway service")

        # Stops the refresh loop at its next wait
        self._shutdown_event.set()

        for task in self._running_tasks:
            if not task.done():
                task.cancel()

        if self._running_tasks:
            await asyncio.gather(*self._running_tasks, return_exceptions=True)

        for name, client in self._http_clients().items():
            try:
                await client.disconnect()
            except Exception as e:
                logger.warning("Error disconnecting service client", extra={
                    "provider": name,
                    "error": str(e)
                })

        await self.candles_provider.disconnect()
        await self.cache.disconnect()

        logger.info("Gateway service shutdown complete")

    async def start_background_tasks(self) -> None:
        """Start the asset directory refresh loop."""
        logger.info("Starting background tasks")

        asset_task = asyncio.create_task(self.run_asset_list_update())
        self._running_tasks.append(asset_task)

        logger.info("Background tasks started", extra={
            "tasks": len(self._running_tasks)
        })

    async def run_asset_list_update(self) -> None:
        """Background task keeping the asset directory warm."""
        logger.info("Starting asset list update loop", extra={
            "interval": settings.asset_list_update_interval
        })

        while not self._shutdown_event.is_set():
            try:
                start_time = datetime.utcnow()

                await self.directory.refresh()

                update_duration = (datetime.utcnow() - start_time).total_seconds()
                logger.info("Asset list update completed", extra={
                    "duration_seconds": update_duration,
                    "next_update": (datetime.utcnow() + timedelta(seconds=settings.asset_list_update_interval)).isoformat()
                })

            except ProviderError as e:
                logger.error("Error in asset list update loop", extra={
                    "provider": e.provider,
                    "error": str(e)
                })

            # Sleep until the next refresh or shutdown
            try:
                await asyncio.wait_for(
                    self._shutdown_event.wait(),
                    timeout=settings.asset_list_update_interval
                )
                break
            except asyncio.TimeoutError:
                continue

    async def get_provider_health_status(self) -> Dict[str, bool]:
        """Get connection status of all backing services."""
        health_status = {"redis": await self.cache.health_check()}

        for name, client in self._http_clients().items():
            health_status[name] = await client.health_check()

        return health_status

    def get_last_update_times(self) -> Dict[str, Optional[datetime]]:
        """Time of the last successful asset directory refresh."""
        return {
            'asset_list_update': self.directory.last_update
        }

    def are_background_tasks_running(self) -> bool:
        """True while the directory refresh loop is alive."""
        if not self._running_tasks:
            return False

        return any(not task.done() for task in self._running_tasks)
