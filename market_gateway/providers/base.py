"""
Base class for HTTP clients of the gateway's backing services.
Handles connection lifecycle, retries with backoff and error mapping.
"""

from typing import Dict, Optional, Any
from urllib.parse import quote
import httpx
import asyncio

from ..core.config import settings
from ..core.exceptions import UpstreamFailureError
from ..core.logging_config import create_logger

logger = create_logger(__name__)


def path_segment(value: str) -> str:
    """Percent-encode a caller-supplied value for use as one URL path segment."""
    return quote(str(value), safe="")


class ProviderError(UpstreamFailureError):
    """Base exception for backing service errors."""

    def __init__(self, message: str, provider: str, key: Optional[str] = None):
        self.provider = provider
        super().__init__(message, source=provider, key=key)


class BaseServiceClient:
    """Async HTTP client for one backing service."""

    def __init__(
        self,
        name: str,
        base_url: str,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.name = name
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout if timeout is not None else settings.http_timeout
        self.max_retries = max_retries if max_retries is not None else settings.http_max_retries
        self.client: Optional[httpx.AsyncClient] = None
        self._transport = transport

    async def __aenter__(self):
        """Connect on entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Disconnect on exit."""
        await self.disconnect()

    async def connect(self) -> None:
        """Create the pooled httpx client bound to ``base_url``."""
        if self.client is None:
            timeout = httpx.Timeout(self.timeout, connect=10.0)
            limits = httpx.Limits(max_keepalive_connections=10, max_connections=50)

            self.client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=timeout,
                limits=limits,
                headers=self._get_default_headers(),
                follow_redirects=True,
                transport=self._transport
            )

            logger.debug("Connected to service", extra={"provider": self.name, "base_url": self.base_url})

    async def disconnect(self) -> None:
        """Close the pooled httpx client."""
        if self.client:
            await self.client.aclose()
            self.client = None
            logger.debug("Disconnected from service", extra={"provider": self.name})

    def _get_default_headers(self) -> Dict[str, str]:
        """Headers sent with every request to the service."""
        return {
            'User-Agent': f'Market-Gateway/{settings.app_version}',
            'Accept': 'application/json'
        }

    async def _get_json(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        allow_not_found: bool = False
    ) -> Any:
        """
        GET ``path`` and decode the JSON body.

        Transient failures (timeouts, transport errors, 5xx) are retried with
        exponential backoff. With ``allow_not_found`` a 404 yields ``None``.

        Raises:
            ProviderError: If the service keeps failing or returns invalid JSON
        """
        if not self.client:
            await self.connect()

        attempts = self.max_retries + 1
        for attempt in range(attempts):
            try:
                logger.debug("Making request to service", extra={
                    "provider": self.name,
                    "path": path,
                    "attempt": attempt + 1
                })

                response = await self.client.get(path, params=params)

                if response.status_code == 404 and allow_not_found:
                    return None

                response.raise_for_status()

                try:
                    return response.json()
                except ValueError as e:
                    raise ProviderError(
                        f"Invalid JSON response from {self.name}: {str(e)}",
                        self.name,
                        key=path
                    )

            except httpx.HTTPStatusError as e:
                # Client errors are not retried
                if e.response.status_code < 500 or attempt == attempts - 1:
                    raise ProviderError(
                        f"HTTP error for {self.name}: {str(e)}",
                        self.name,
                        key=path
                    )

                logger.warning("Server error from service", extra={
                    "provider": self.name,
                    "status_code": e.response.status_code,
                    "attempt": attempt + 1
                })
                await asyncio.sleep(2 ** attempt * 0.1)

            except httpx.TransportError as e:
                if attempt == attempts - 1:
                    raise ProviderError(
                        f"Transport error for {self.name}: {str(e)}",
                        self.name,
                        key=path
                    )

                logger.warning("Transport error", extra={
                    "provider": self.name,
                    "error": str(e),
                    "attempt": attempt + 1
                })
                await asyncio.sleep(2 ** attempt * 0.1)

        raise ProviderError(f"Max retries exceeded for {self.name}", self.name, key=path)

    async def health_check(self) -> bool:
        """Check that the client is connected."""
        return self.client is not None and not self.client.is_closed
