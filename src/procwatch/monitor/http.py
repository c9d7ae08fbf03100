"""Shared aiohttp plumbing for the supervisor REST clients."""

from __future__ import annotations

from types import TracebackType
from typing import Any, Self

import aiohttp

from procwatch.constants import DEFAULT_REQUEST_TIMEOUT
from procwatch.exceptions import FetchError
from procwatch.logging import get_logger

__all__ = ["ApiClient", "join_url"]

logger = get_logger(__name__)

#: Longest slice of an error body carried into exception messages
_ERROR_BODY_LIMIT = 200


def join_url(base_url: str, path: str) -> str:
    """Join a base URL and an endpoint path with exactly one slash."""
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


class ApiClient:
    """Base class for clients of the process supervisor API.

    Owns an ``aiohttp.ClientSession`` unless one is passed in, in which case
    the caller keeps ownership and ``close()`` leaves it open. Usable as an
    async context manager.

    Attributes:
        base_url: Base URL that endpoint paths are appended to.
        timeout: Total timeout for one request in seconds.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    def url(self, path: str) -> str:
        return join_url(self.base_url, path)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    def _client_timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(total=self.timeout)

    async def close(self) -> None:
        """Close the underlying session if this client created it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def get_json(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """GET an endpoint and decode its JSON body.

        Args:
            path: Endpoint path relative to ``base_url``.
            params: Optional query parameters.

        Returns:
            The decoded JSON document.

        Raises:
            FetchError: On transport failure, timeout, non-2xx status, or a
                body that is not JSON.
        """
        url = self.url(path)
        session = self._get_session()
        try:
            async with session.get(
                url, params=params, timeout=self._client_timeout()
            ) as resp:
                if not 200 <= resp.status < 300:
                    body = await resp.text()
                    raise FetchError(
                        f"HTTP {resp.status} from {path}: {body[:_ERROR_BODY_LIMIT]}",
                        endpoint=path,
                        status=resp.status,
                    )
                try:
                    return await resp.json(content_type=None)
                except ValueError as e:
                    raise FetchError(
                        f"Malformed JSON from {path}: {e}",
                        endpoint=path,
                        status=resp.status,
                    ) from e
        except TimeoutError:
            raise FetchError(f"Request to {path} timed out", endpoint=path) from None
        except aiohttp.ClientError as e:
            raise FetchError(f"Request to {path} failed: {e}", endpoint=path) from e
