"""
Global pytest configuration and fixtures for the DCS branch merger test suite.

This file provides:
1. Environment records shared by the effect and workflow tests
2. A recorder for building test effects that log their invocations
3. A fake DCS API that replaces the HTTP transport of every leaf effect
"""

from typing import Any, Dict, List, Tuple
from unittest.mock import AsyncMock, patch

import pytest

from dcs_branch_merger.core import FAILURE, Environment, Success
from dcs_branch_merger.dcs.client import DCSClient
from dcs_branch_merger.error_handling import DCSAPIError, reset_error_stats
from fixtures.dcs_responses import DCSResponseFactory, dcs_response_factory  # noqa: F401


@pytest.fixture(autouse=True)
def clean_error_stats():
    """Error statistics are process-global; start every test from zero."""
    reset_error_stats()
    yield
    reset_error_stats()


@pytest.fixture
def environment() -> Environment:
    """A complete environment for one top-level invocation."""
    return Environment(
        server="qa.door43.org",
        owner="unfoldingWord",
        repo="en_tn",
        user_branch="user1-tc-create-1",
        default_branch="master",
        description="Sync with master",
    )


class EffectRecorder:
    """Builds effects that remember when, and with which environment, they ran."""

    def __init__(self):
        self.calls: List[Any] = []
        self.environments: List[Any] = []

    def _record(self, name: Any, env: Any) -> None:
        self.calls.append(name)
        self.environments.append(env)

    def succeed(self, name: Any, value: Any):
        async def effect(env):
            self._record(name, env)
            return Success(value)

        return effect

    def fail(self, name: Any):
        async def effect(env):
            self._record(name, env)
            return FAILURE

        return effect


@pytest.fixture
def recorder() -> EffectRecorder:
    return EffectRecorder()


class FakeDCS:
    """Routes ``(method, endpoint)`` pairs to canned JSON or exceptions.

    A callable response is called with the request keyword arguments.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Any] = {}
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []

    def route(self, method: str, endpoint: str, response: Any) -> None:
        self.routes[(method, endpoint)] = response

    async def request_json(self, method: str, endpoint: str, **kwargs) -> Any:
        self.calls.append((method, endpoint, kwargs))
        if (method, endpoint) not in self.routes:
            raise DCSAPIError(404, endpoint, "not found")
        response = self.routes[(method, endpoint)]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(**kwargs)
        return response

    def endpoints(self) -> List[Tuple[str, str]]:
        return [(method, endpoint) for method, endpoint, _ in self.calls]


@pytest.fixture
def fake_dcs():
    """Replace the HTTP layer of :class:`DCSClient` with a :class:`FakeDCS`."""
    fake = FakeDCS()
    with patch.object(
        DCSClient, "request_json", new=AsyncMock(side_effect=fake.request_json)
    ):
        yield fake


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Workflows run against the fake DCS API")
