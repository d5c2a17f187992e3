"""
HTTP transport for the Flow API.

Every call is a single form-encoded POST whose only field, `_JSON_`, carries the
percent-encoded JSON payload. Every response is a JSON object whose
COMMON_HEAD envelope reports logical failures.
"""
import asyncio
import json
import time
import logging
from typing import Optional, Dict, Any
from urllib.parse import quote, urlencode

import httpx

from flowtask.exceptions import TransportError, RemoteError, ResponseFormatError
from flowtask.monitoring import record_flow_call

logger = logging.getLogger(__name__)

JSON_FIELD = "_JSON_"


def encode_payload(payload: Dict[str, Any]) -> str:
    """
    Serialize a payload into the value of the `_JSON_` form field.

    The JSON text is percent-encoded with the same safe set as JavaScript's
    encodeURIComponent; the form encoding is applied on top of that.
    """
    text = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    return quote(text, safe="!*'()")


class FlowTransport:
    """Request/response caller against one Flow base URL."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Args:
            base_url: Flow base URL, e.g. https://flow.team
            timeout: Deadline in seconds for a whole call, response body included
            client: Optional preconfigured AsyncClient (owned by the caller)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        self.headers = {
            "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
            "Accept": "*/*",
            "Origin": self.base_url,
            "Referer": f"{self.base_url}/main.act",
        }

    async def send(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a payload to an endpoint and return the parsed response.

        Args:
            endpoint: Path (and optional query) relative to the base URL
            payload: JSON-serializable request document

        Returns:
            Parsed response object

        Raises:
            TransportError: On timeout, connection failure or non-2xx status
            RemoteError: When the response envelope reports an error
            ResponseFormatError: When the body is not a JSON object
        """
        url = f"{self.base_url}{endpoint}"
        start_time = time.time()
        outcome = "ok"
        try:
            try:
                response = await asyncio.wait_for(
                    self._client.post(
                        url,
                        content=urlencode({JSON_FIELD: encode_payload(payload)}),
                        headers=self.headers,
                    ),
                    timeout=self.timeout,
                )
            except (httpx.TimeoutException, asyncio.TimeoutError) as e:
                outcome = "timeout"
                raise TransportError(f"Flow API timeout calling {endpoint}", endpoint=endpoint, original_error=e)
            except httpx.HTTPError as e:
                outcome = "transport_error"
                raise TransportError(f"Flow API connection error: {e}", endpoint=endpoint, original_error=e)

            if not response.is_success:
                outcome = "http_error"
                raise TransportError(
                    f"Flow API error: {response.status_code} {response.reason_phrase}",
                    status_code=response.status_code,
                    endpoint=endpoint,
                )

            try:
                data = response.json()
            except ValueError as e:
                outcome = "format_error"
                raise ResponseFormatError(
                    f"Flow API returned a non-JSON body for {endpoint}",
                    endpoint=endpoint,
                    original_error=e,
                )
            if not isinstance(data, dict):
                outcome = "format_error"
                raise ResponseFormatError(f"Flow API returned a non-object body for {endpoint}", endpoint=endpoint)

            head = data.get("COMMON_HEAD")
            if isinstance(head, dict) and head.get("ERROR"):
                outcome = "remote_error"
                raise RemoteError(
                    f"Flow API error: {head.get('MESSAGE') or 'unknown error'}",
                    code=head.get("CODE"),
                    endpoint=endpoint,
                )
            return data
        finally:
            duration = time.time() - start_time
            record_flow_call(endpoint, outcome, duration)
            logger.debug(f"Flow call {endpoint} -> {outcome} ({duration:.3f}s)")

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()
