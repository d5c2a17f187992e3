"""
Plain file retrieval for attachment URLs.
"""
import logging
from typing import Optional

import httpx

from flowtask.exceptions import TransportError

logger = logging.getLogger(__name__)


class FileFetcher:
    """Downloads raw bytes from attachment URLs."""

    def __init__(self, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout), follow_redirects=True)

    async def fetch(self, url: str) -> bytes:
        """
        Download a URL.

        Args:
            url: Absolute attachment URL

        Returns:
            Response body

        Raises:
            TransportError: On timeout, connection failure or non-2xx status
        """
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            raise TransportError(f"Failed to download {url}: {e}", original_error=e, context={"url": url})
        if not response.is_success:
            raise TransportError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
                context={"url": url},
            )
        logger.debug(f"Downloaded {len(response.content)} bytes from {url}")
        return response.content

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
