"""
Redis cache service for Market Gateway.
Reads order book blobs and historical feed ticks; never writes.
"""

import json
import asyncio
from datetime import datetime, timezone
from typing import List, Optional, Sequence
import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError

from ..core.config import settings
from ..core.exceptions import UpstreamFailureError
from ..core.logging_config import create_logger
from ..core.periods import ensure_utc
from ..models import HistoricalTick, PriceSide

logger = create_logger(__name__)


def encode_feed_tick(price: float, moment: datetime) -> str:
    """
    Sorted-set member for one feed history tick.

    Members are unique within a set, so the tick time is part of the member;
    otherwise a repeated price would move the earlier tick's score forward.
    """
    return json.dumps({"price": price, "timestamp": ensure_utc(moment).timestamp()})


class CacheService:
    """
    Read-only access to the shared Redis instance.

    Order books are stored as plain string keys (see
    ``Settings.order_book_key_pattern``). Feed history is stored as one sorted
    set per pair and side, scored by epoch seconds, with members encoded by
    ``encode_feed_tick``. The score is the tick time.
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None):
        self._pool: Optional[ConnectionPool] = None
        self._redis: Optional[redis.Redis] = redis_client
        self._connection_lock = asyncio.Lock()

    async def connect(self) -> None:
        """Open the pool to the shared Redis instance and verify it answers."""
        async with self._connection_lock:
            if self._redis is None:
                try:
                    self._pool = ConnectionPool.from_url(
                        settings.get_redis_url(),
                        max_connections=20,
                        retry_on_timeout=True,
                        socket_keepalive=True,
                        health_check_interval=30
                    )
                    self._redis = redis.Redis(connection_pool=self._pool)

                    await self._redis.ping()
                    logger.info("Successfully connected to Redis", extra={
                        "redis_host": settings.redis_host,
                        "redis_port": settings.redis_port,
                        "redis_db": settings.redis_db
                    })

                except Exception as e:
                    logger.error("Failed to connect to Redis", extra={
                        "error": str(e),
                        "redis_host": settings.redis_host,
                        "redis_port": settings.redis_port
                    })
                    raise

    async def disconnect(self) -> None:
        """Release the client and its pool."""
        async with self._connection_lock:
            if self._redis:
                await self._redis.aclose()
                self._redis = None
            if self._pool:
                await self._pool.disconnect()
                self._pool = None
            logger.info("Disconnected from Redis")

    async def health_check(self) -> bool:
        """True when Redis answers a PING."""
        try:
            if not self._redis:
                return False
            await self._redis.ping()
            return True
        except Exception as e:
            logger.warning("Redis health check failed", extra={"error": str(e)})
            return False

    def _client(self) -> redis.Redis:
        if self._redis is None:
            raise UpstreamFailureError("Redis is not connected", source="redis")
        return self._redis

    # Order Book Methods

    async def get_serialized_many(self, keys: Sequence[str]) -> List[Optional[bytes]]:
        """
        Get raw values for ``keys`` in one round trip.

        Missing keys yield ``None`` at their position.

        Raises:
            UpstreamFailureError: If Redis cannot be reached
        """
        if not keys:
            return []

        try:
            pipe = self._client().pipeline()
            for key in keys:
                pipe.get(key)
            results = await pipe.execute()
        except RedisError as e:
            logger.error("Failed to read keys from cache", extra={
                "keys": list(keys),
                "error": str(e)
            })
            raise UpstreamFailureError(f"Cache read failed: {str(e)}", source="redis")

        logger.debug("Read keys from cache", extra={
            "requested_keys": len(keys),
            "present_keys": sum(1 for result in results if result is not None)
        })

        return list(results)

    # Feed History Methods

    async def get_closest_tick(
        self,
        asset_pair_id: str,
        side: PriceSide,
        moment: datetime
    ) -> Optional[HistoricalTick]:
        """
        Most recent tick at or before ``moment``, or None if there is none.

        Raises:
            UpstreamFailureError: If Redis fails or the stored tick is undecodable
        """
        key = settings.get_feed_history_key(asset_pair_id, side.value)
        moment = ensure_utc(moment)

        try:
            members = await self._client().zrevrangebyscore(
                key, moment.timestamp(), "-inf", start=0, num=1, withscores=True
            )
        except RedisError as e:
            logger.error("Failed to read feed history", extra={
                "key": key,
                "error": str(e)
            })
            raise UpstreamFailureError(f"Feed history read failed: {str(e)}", source="redis", key=key)

        if not members:
            return None

        member, score = members[0]
        try:
            payload = json.loads(member)
            return HistoricalTick(
                asset_pair_id=asset_pair_id,
                side=side,
                timestamp=datetime.fromtimestamp(float(score), tz=timezone.utc),
                price=payload["price"]
            )
        except (ValueError, KeyError, TypeError) as e:
            logger.error("Failed to deserialize feed history tick", extra={
                "key": key,
                "error": str(e)
            })
            raise UpstreamFailureError(f"Undecodable feed history tick: {str(e)}", source="redis", key=key)
