import copy
import json
from typing import Any, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp import ClientSession

from autopager.strategies import NextTokenStrategy


class ScriptedInvoker:
    """
    Fake operation invoker replaying a fixed script of responses.

    Each step is either a response (returned) or an exception (raised). Every
    request is recorded as a deep copy taken at call time.
    """

    def __init__(self, steps: List[Any]):
        self.steps = list(steps)
        self.requests: List[Any] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def _next(self, request: Any) -> Any:
        self.requests.append(copy.deepcopy(request))
        if not self.steps:
            raise AssertionError("invoke called more often than scripted")
        step = self.steps.pop(0)
        if isinstance(step, BaseException):
            raise step
        return step

    async def __call__(self, request: Any) -> Any:
        return self._next(request)


class SyncScriptedInvoker(ScriptedInvoker):
    def __call__(self, request: Any) -> Any:
        return self._next(request)


@pytest.fixture
def logger():
    """Create a mock logger for testing."""
    return MagicMock()


@pytest.fixture
def strategy():
    return NextTokenStrategy(items_field="Items")


@pytest.fixture
def token_page():
    """
    Factory fixture building a NextToken style response page.
    """
    counter = {"next_id": 0}

    def _create_page(count: int, next_token: Optional[str] = None) -> dict:
        start = counter["next_id"]
        counter["next_id"] += count
        page = {"Items": [{"Id": f"item{i}"} for i in range(start, start + count)]}
        if next_token is not None:
            page["NextToken"] = next_token
        return page

    return _create_page


@pytest.fixture
def scripted_invoke():
    """Factory fixture creating async scripted invokers."""

    def _create(*steps: Any) -> ScriptedInvoker:
        return ScriptedInvoker(list(steps))

    return _create


@pytest.fixture
def sync_scripted_invoke():
    """Factory fixture creating synchronous scripted invokers."""

    def _create(*steps: Any) -> SyncScriptedInvoker:
        return SyncScriptedInvoker(list(steps))

    return _create


@pytest.fixture
def base_url():
    return "https://athena.us-east-1.amazonaws.com"


@pytest.fixture
def mock_response_factory():
    """
    Factory fixture to create mock aiohttp responses.
    """

    def _create_response(status=200, json_data=None, text=None, headers=None):
        mock_response = MagicMock()
        mock_response.status = status
        mock_response.headers = headers or {}

        if text is None:
            text = "" if json_data is None else json.dumps(json_data)
        mock_response.text = AsyncMock(return_value=text)
        return mock_response

    return _create_response


@pytest.fixture
def mock_client_session():
    def _create_session(response=None, side_effect=None):
        mock_session = MagicMock(spec=ClientSession)
        mock_session.closed = False

        async def mock_close():
            mock_session.closed = True

        mock_session.close = mock_close

        if side_effect:
            mock_session.request = AsyncMock(side_effect=side_effect)
        else:
            mock_session.request = AsyncMock(return_value=response)

        mock_session.__aenter__ = AsyncMock(return_value=mock_session)
        mock_session.__aexit__ = AsyncMock(return_value=None)

        return mock_session

    return _create_session
