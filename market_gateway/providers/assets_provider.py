"""
Asset and asset pair reference data.
Wraps the assets service in a read-through cache shared by all requests.
"""

import asyncio
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from .base import BaseServiceClient, ProviderError
from ..core.config import settings
from ..core.logging_config import create_logger
from ..models import Asset, AssetPair
from ..services.concurrency import run_jointly

logger = create_logger(__name__)


class AssetsServiceClient(BaseServiceClient):
    """HTTP client for the assets service."""

    def __init__(self, base_url: Optional[str] = None, **kwargs):
        super().__init__(
            name="assets",
            base_url=base_url or settings.assets_service_url,
            **kwargs
        )

    async def get_asset_pairs(self) -> List[AssetPair]:
        """Fetch every asset pair known to the venue."""
        data = await self._get_json("/api/v2/asset-pairs")
        return [self._create_asset_pair(item) for item in self._as_list(data)]

    async def get_assets(self) -> List[Asset]:
        """Fetch every asset known to the venue."""
        data = await self._get_json("/api/v2/assets")
        return [self._create_asset(item) for item in self._as_list(data)]

    def _as_list(self, data: Any) -> List[Dict[str, Any]]:
        if not isinstance(data, list):
            raise ProviderError(f"Unexpected payload from {self.name}: expected a list", self.name)
        return data

    def _create_asset_pair(self, item: Dict[str, Any]) -> AssetPair:
        try:
            return AssetPair(
                id=item["id"],
                name=item.get("name") or item["id"],
                base_asset_id=item["baseAssetId"],
                quoting_asset_id=item["quotingAssetId"],
                accuracy=item.get("accuracy", 5),
                inverted_accuracy=item.get("invertedAccuracy", 5),
                is_disabled=item.get("isDisabled", False)
            )
        except (KeyError, ValueError) as e:
            raise ProviderError(f"Malformed asset pair from {self.name}: {str(e)}", self.name)

    def _create_asset(self, item: Dict[str, Any]) -> Asset:
        try:
            return Asset(
                id=item["id"],
                name=item.get("name") or item["id"],
                accuracy=item.get("accuracy", 8),
                blockchain_asset_id=item.get("blockChainAssetId") or None,
                multiplier_power=item.get("multiplierPower", 8)
            )
        except (KeyError, ValueError) as e:
            raise ProviderError(f"Malformed asset from {self.name}: {str(e)}", self.name)


class AssetPairDirectory:
    """
    Read-through cache over the assets service.

    Exposes read methods only. Data older than ``ttl`` seconds is reloaded on
    the next read; a failed reload keeps serving the previous snapshot.
    """

    def __init__(self, client: AssetsServiceClient, ttl: Optional[int] = None):
        self._client = client
        self._ttl = ttl if ttl is not None else settings.assets_cache_ttl
        self._asset_pairs: Dict[str, AssetPair] = {}
        self._assets: Dict[str, Asset] = {}
        self._loaded_at: Optional[float] = None
        self._last_update: Optional[datetime] = None
        self._refresh_lock = asyncio.Lock()

    @property
    def last_update(self) -> Optional[datetime]:
        return self._last_update

    def _is_stale(self) -> bool:
        return self._loaded_at is None or time.monotonic() - self._loaded_at >= self._ttl

    async def refresh(self) -> None:
        """Reload asset pairs and assets from the assets service."""
        async with self._refresh_lock:
            await self._load()

    async def _load(self) -> None:
        pairs, assets = await run_jointly(
            self._client.get_asset_pairs(),
            self._client.get_assets()
        )
        self._asset_pairs = {pair.id: pair for pair in pairs}
        self._assets = {asset.id: asset for asset in assets}
        self._loaded_at = time.monotonic()
        self._last_update = datetime.utcnow()

        logger.info("Asset directory refreshed", extra={
            "asset_pairs": len(self._asset_pairs),
            "assets": len(self._assets)
        })

    async def _ensure_fresh(self) -> None:
        if not self._is_stale():
            return

        async with self._refresh_lock:
            if not self._is_stale():
                return
            try:
                await self._load()
            except ProviderError as e:
                if self._loaded_at is None:
                    raise
                logger.warning("Asset directory refresh failed, serving previous snapshot", extra={
                    "error": str(e),
                    "last_update": self._last_update
                })

    async def get_all_asset_pairs(self) -> List[AssetPair]:
        """All asset pairs, enabled or not."""
        await self._ensure_fresh()
        return list(self._asset_pairs.values())

    async def get_enabled_asset_pairs(self) -> List[AssetPair]:
        """Asset pairs visible to API callers."""
        return [pair for pair in await self.get_all_asset_pairs() if not pair.is_disabled]

    async def try_get_asset_pair(self, asset_pair_id: str) -> Optional[AssetPair]:
        await self._ensure_fresh()
        return self._asset_pairs.get(asset_pair_id)

    async def get_all_assets(self) -> List[Asset]:
        await self._ensure_fresh()
        return list(self._assets.values())

    async def try_get_asset(self, asset_id: str) -> Optional[Asset]:
        await self._ensure_fresh()
        return self._assets.get(asset_id)
