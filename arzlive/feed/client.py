"""Async HTTP client for the upstream market-data API.

One attempt per request: the polling cadence is the retry mechanism, so
failures are mapped straight onto the FeedError hierarchy.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from arzlive.core.exceptions import FeedHTTPError, FeedParseError, FeedTransportError

DEFAULT_BASE_URL = "https://brsapi.ir/Api/Market/"
DEFAULT_TIMEOUT = 15.0


class AsyncMarketClient:
    """httpx-based client for the market-data API.

    The API key travels as the ``key`` query parameter.

    Example:
        >>> async with AsyncMarketClient(api_key="...") as client:
        ...     payload = await client.get_json("Gold_Currency.php")
    """

    def __init__(
        self,
        *,
        api_key: str = "",
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> AsyncMarketClient:
        """Enter async context: create httpx client."""
        self.open()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Exit async context: close httpx client."""
        await self.aclose()

    def open(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
                headers={"Accept": "application/json"},
                transport=self._transport,
            )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get_json(self, endpoint: str, **params: Any) -> Any:
        """GET *endpoint* and decode its JSON body.

        Args:
            endpoint: Path relative to base_url
            **params: Extra query parameters

        Returns:
            Decoded JSON (list or dict in practice)

        Raises:
            RuntimeError: Client not initialized
            FeedHTTPError: non-2xx status
            FeedTransportError: timeout or transport failure
            FeedParseError: body is not JSON
        """
        if self._client is None:
            msg = "Client not initialized. Use 'async with AsyncMarketClient(...)' context manager."
            raise RuntimeError(msg)

        query: dict[str, Any] = dict(params)
        if self._api_key:
            query["key"] = self._api_key

        try:
            response = await self._client.get(endpoint, params=query)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FeedHTTPError(
                f"HTTP {e.response.status_code} from market feed: {endpoint}",
                status_code=e.response.status_code,
                context={"endpoint": endpoint},
            ) from e
        except httpx.TimeoutException as e:
            raise FeedTransportError(
                f"Timeout from market feed: {endpoint}",
                context={"endpoint": endpoint, "timeout": self._timeout},
            ) from e
        except httpx.HTTPError as e:
            raise FeedTransportError(
                f"Request to market feed failed: {endpoint}",
                context={"endpoint": endpoint, "error": type(e).__name__},
            ) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise FeedParseError(
                f"Non-JSON body from market feed: {endpoint}",
                context={"endpoint": endpoint, "bytes": len(response.content)},
            ) from e

        logger.debug("Fetched {} ({} bytes)", endpoint, len(response.content))
        return payload
