"""
Order book relay from the shared cache.
"""

import json
from typing import List, Optional, Sequence

from pydantic import ValidationError

from ..core.config import settings
from ..core.exceptions import UpstreamFailureError
from ..core.logging_config import create_logger
from ..models import OrderBook
from ..providers.assets_provider import AssetPairDirectory
from .cache import CacheService

logger = create_logger(__name__)


class OrderBookAssembler:
    """Reads and decodes cached order books; missing books are skipped."""

    def __init__(self, directory: AssetPairDirectory, cache: CacheService):
        self._directory = directory
        self._cache = cache

    async def get(self, asset_pair_id: str) -> List[OrderBook]:
        """Buy and sell books of one pair, whichever are cached."""
        return await self._read_books([asset_pair_id])

    async def get_all(self) -> List[OrderBook]:
        """Buy and sell books of every enabled pair, whichever are cached."""
        pairs = await self._directory.get_enabled_asset_pairs()
        return await self._read_books([pair.id for pair in pairs])

    async def _read_books(self, asset_pair_ids: Sequence[str]) -> List[OrderBook]:
        keys = []
        for asset_pair_id in asset_pair_ids:
            keys.append(settings.get_order_book_key(asset_pair_id, True))
            keys.append(settings.get_order_book_key(asset_pair_id, False))

        blobs = await self._cache.get_serialized_many(keys)

        books = []
        for key, blob in zip(keys, blobs):
            book = self._decode(key, blob)
            if book is not None:
                books.append(book)

        logger.debug("Read order books from cache", extra={
            "asset_pairs": len(asset_pair_ids),
            "books": len(books)
        })

        return books

    def _decode(self, key: str, blob: Optional[bytes]) -> Optional[OrderBook]:
        if blob is None:
            return None

        try:
            return OrderBook(**json.loads(blob))
        except (ValueError, TypeError, ValidationError) as e:
            logger.error("Failed to deserialize order book from cache", extra={
                "key": key,
                "error": str(e)
            })
            raise UpstreamFailureError(f"Undecodable order book: {str(e)}", source="redis", key=key)
