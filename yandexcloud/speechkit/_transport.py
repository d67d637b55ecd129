"""
Transport layer for SpeechKit HTTP communication.

This module provides the Transport class that performs HTTP exchanges with
the SpeechKit and IAM REST APIs and funnels every failure into ApiError.
"""

from __future__ import annotations

import asyncio
import sys
import uuid
from collections.abc import Awaitable
from typing import Any
from typing import Callable
from typing import Optional
from typing import TypeVar

import aiohttp

from ._exceptions import ApiError
from ._exceptions import CancelledError
from ._helpers import get_version
from ._logging import get_logger
from ._models import ConnectionConfig

T = TypeVar("T")

RequestFunc = Callable[[aiohttp.ClientSession], Awaitable[aiohttp.ClientResponse]]
Extractor = Callable[[aiohttp.ClientResponse], Awaitable[T]]

UNREADABLE_BODY = "<failed to read response body>"


async def read_bytes(response: aiohttp.ClientResponse) -> bytes:
    """Extract the response body as bytes."""
    return await response.read()


async def read_text(response: aiohttp.ClientResponse) -> str:
    """Extract the response body as text."""
    return await response.text()


async def read_json(response: aiohttp.ClientResponse) -> Any:
    """Extract the response body as JSON, whatever its content type."""
    return await response.json(content_type=None)


class Transport:
    """
    HTTP transport for SpeechKit API communication.

    The transport owns a single aiohttp session that is created on first use
    and reused by every request until close() is called.

    Args:
        conn_config: Connection configuration with timeouts.
        request_id: Optional identifier sent as ``x-client-request-id``.

    Examples:
        >>> transport = Transport(ConnectionConfig())
        >>> data = await transport.post_json(url, json_data={"key": "value"})
        >>> await transport.close()
    """

    def __init__(
        self,
        conn_config: Optional[ConnectionConfig] = None,
        request_id: Optional[str] = None,
    ) -> None:
        self._conn_config = conn_config or ConnectionConfig()
        self._request_id = request_id or str(uuid.uuid4())
        self._session: Optional[aiohttp.ClientSession] = None
        self._closed = False
        self._logger = get_logger(__name__)

        self._logger.debug("Transport initialized (request_id=%s)", self._request_id)

    async def __aenter__(self) -> Transport:
        """Async context manager entry."""
        self._ensure_session()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit with automatic cleanup."""
        await self.close()

    @property
    def request_id(self) -> str:
        return self._request_id

    @property
    def is_connected(self) -> bool:
        """True when the transport has an open session."""
        return self._session is not None and not self._closed

    async def execute(self, request_func: RequestFunc, extractor: Extractor[T]) -> T:
        """
        Perform an HTTP exchange and extract the response body.

        Args:
            request_func: Coroutine function that sends the request using the
                given session and returns the response.
            extractor: Coroutine function that turns a successful response
                into the result, e.g. read_bytes or read_text.

        Returns:
            Whatever the extractor returns.

        Raises:
            ApiError: On a non-2xx status (``status_code`` and ``content`` set),
                or when sending the request or extracting the body fails
                (the original exception is chained).
            CancelledError: If the call was cancelled.
        """
        session = self._ensure_session()

        try:
            response = await request_func(session)
        except asyncio.CancelledError as e:
            raise CancelledError("Request cancelled") from e
        except asyncio.TimeoutError as e:
            self._logger.error("Request timed out")
            raise ApiError("Request timed out") from e
        except Exception as e:
            self._logger.error("Request failed: %s", e)
            raise ApiError(f"Request failed with exception: {e}") from e

        try:
            if not 200 <= response.status < 300:
                content = await self._read_error_body(response)
                self._logger.error("HTTP error %d %s: %s", response.status, response.reason, content)
                raise ApiError(
                    f"Request failed with code {response.status}",
                    status_code=response.status,
                    content=content,
                )
            try:
                return await extractor(response)
            finally:
                response.release()
        except ApiError:
            response.close()
            raise
        except asyncio.CancelledError as e:
            response.close()
            raise CancelledError("Request cancelled") from e
        except Exception as e:
            response.close()
            self._logger.error("Failed to read response: %s", e)
            raise ApiError(f"Failed to read response: {e}") from e

    async def post(
        self,
        url: str,
        extractor: Extractor[T],
        *,
        headers: Optional[dict[str, str]] = None,
        params: Optional[dict[str, str]] = None,
        data: Any = None,
        json_data: Optional[dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> T:
        """
        Send a POST request and extract the response body.

        Args:
            url: Absolute endpoint URL.
            extractor: Body extractor, see execute().
            headers: Extra headers, e.g. authorization.
            params: Query parameters.
            data: Raw body (bytes) or form fields (dict).
            json_data: JSON body.
            timeout: Overrides the configured operation timeout.

        Raises:
            ApiError: If the request fails.
            CancelledError: If the call was cancelled.
        """
        request_headers = self._default_headers()
        if headers:
            request_headers.update(headers)

        kwargs: dict[str, Any] = {"headers": request_headers, "params": params}
        if json_data is not None:
            kwargs["json"] = json_data
        elif data is not None:
            kwargs["data"] = data
        if timeout:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=timeout, connect=self._conn_config.connect_timeout)

        self._logger.debug("Sending HTTP request POST %s (params=%s)", url, params)

        async def request_func(session: aiohttp.ClientSession) -> aiohttp.ClientResponse:
            return await session.post(url, **kwargs)

        return await self.execute(request_func, extractor)

    async def post_bytes(self, url: str, **kwargs: Any) -> bytes:
        return await self.post(url, read_bytes, **kwargs)

    async def post_text(self, url: str, **kwargs: Any) -> str:
        return await self.post(url, read_text, **kwargs)

    async def post_json(self, url: str, **kwargs: Any) -> Any:
        return await self.post(url, read_json, **kwargs)

    async def close(self) -> None:
        """
        Close the HTTP session.

        Safe to call multiple times.
        """
        if self._session:
            try:
                await self._session.close()
            except Exception as e:
                self._logger.warning("Failed to close HTTP session: %s", e)
            finally:
                self._session = None
        self._closed = True

    def _ensure_session(self) -> aiohttp.ClientSession:
        """Create the HTTP session on first use."""
        if self._closed:
            raise ApiError("Transport is closed")

        if self._session is None:
            self._logger.debug(
                "Creating HTTP session (connect_timeout=%.1fs, operation_timeout=%.1fs)",
                self._conn_config.connect_timeout,
                self._conn_config.operation_timeout,
            )
            timeout = aiohttp.ClientTimeout(
                total=self._conn_config.operation_timeout,
                connect=self._conn_config.connect_timeout,
            )
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    def _default_headers(self) -> dict[str, str]:
        headers = {
            "User-Agent": (
                f"yandexcloud-speechkit-v{get_version()} python/{sys.version_info.major}.{sys.version_info.minor}"
            ),
        }
        if self._request_id:
            headers["x-client-request-id"] = self._request_id
        return headers

    async def _read_error_body(self, response: aiohttp.ClientResponse) -> str:
        """Read the body of a failed response for diagnostics, never raising."""
        try:
            return await response.text()
        except Exception as e:
            self._logger.debug("Failed to read error response body: %s", e)
            return UNREADABLE_BODY
