"""Mock aiohttp session and response objects for client tests."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest


class MockResponse:
    """Async context manager yielding a mock aiohttp response."""

    def __init__(self, response: Mock) -> None:
        self._response = response

    async def __aenter__(self) -> Mock:
        return self._response

    async def __aexit__(self, *args: Any) -> None:
        pass


class MockClientSession:
    """Mock aiohttp ClientSession recording GET and DELETE calls.

    Set ``error`` to make every call raise instead of responding.
    """

    def __init__(self, response: Mock) -> None:
        self.response = response
        self.error: BaseException | None = None
        self.closed = False
        self.get_calls: list[tuple[tuple[Any, ...], dict[str, Any]]] = []
        self.delete_calls: list[tuple[tuple[Any, ...], dict[str, Any]]] = []

    def _respond(self) -> MockResponse:
        if self.error is not None:
            raise self.error
        return MockResponse(self.response)

    def get(self, *args: Any, **kwargs: Any) -> MockResponse:
        self.get_calls.append((args, kwargs))
        return self._respond()

    def delete(self, *args: Any, **kwargs: Any) -> MockResponse:
        self.delete_calls.append((args, kwargs))
        return self._respond()

    async def close(self) -> None:
        self.closed = True


def make_response(
    status: int = 200,
    body: Any = None,
    text: str = "",
    json_error: Exception | None = None,
) -> Mock:
    response = Mock()
    response.status = status
    if json_error is not None:
        response.json = AsyncMock(side_effect=json_error)
    else:
        response.json = AsyncMock(return_value=body)
    response.text = AsyncMock(return_value=text)
    return response


@pytest.fixture
def mock_response() -> Mock:
    return make_response(body={})


@pytest.fixture
def mock_session(mock_response: Mock) -> MockClientSession:
    return MockClientSession(mock_response)
