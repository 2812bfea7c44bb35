"""DCS (Gitea) API client"""

import logging
import re
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

import aiohttp

from ..core.environment import DEFAULT_API_PATH, Environment
from ..error_handling import DCSAPIError
from ..metrics import global_metrics_collector

logger = logging.getLogger(__name__)

USER_AGENT = "dcs-branch-merger/1.4.1"


@dataclass
class DCSClient:
    """Thin JSON client for the DCS REST API."""

    base_url: str
    session: aiohttp.ClientSession
    token: Optional[str] = None
    api_path: str = DEFAULT_API_PATH

    def __post_init__(self):
        if self.token is not None and not self._is_valid_token(self.token):
            logger.warning("⚠️ DCS token format appears invalid")

    @staticmethod
    def _is_valid_token(token: str) -> bool:
        """Gitea access tokens are 40 hex characters"""
        return bool(re.match(r"^[0-9a-f]{40}$", token.strip()))

    def url(self, endpoint: str) -> str:
        return f"{self.base_url.rstrip('/')}/{self.api_path.strip('/')}/{endpoint.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    async def request_json(self, method: str, endpoint: str, **kwargs) -> Any:
        """Send a request and decode the JSON body (``None`` for an empty body).

        Raises:
            DCSAPIError: for any 4xx/5xx response
        """
        url = self.url(endpoint)
        start = time.monotonic()
        success = False
        try:
            async with self.session.request(
                method, url, headers=self._headers(), **kwargs
            ) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise DCSAPIError(response.status, url, body[:200])
                data = await response.json(content_type=None)
                success = True
                return data
        finally:
            duration_ms = (time.monotonic() - start) * 1000
            await global_metrics_collector.record_request(method, success, duration_ms)
            logger.debug(
                f"{method} {url} -> {'ok' if success else 'failed'}",
                extra={"duration_ms": round(duration_ms, 2)},
            )

    async def get_json(self, endpoint: str, **kwargs) -> Any:
        """Make GET request to DCS API"""
        return await self.request_json("GET", endpoint, **kwargs)

    async def post_json(self, endpoint: str, payload: Any = None, **kwargs) -> Any:
        """Make POST request to DCS API"""
        return await self.request_json("POST", endpoint, json=payload, **kwargs)

    @classmethod
    @asynccontextmanager
    async def for_environment(cls, env: Environment) -> AsyncIterator["DCSClient"]:
        """Open a client for one leaf call; the session is closed on exit."""
        timeout = aiohttp.ClientTimeout(total=env.timeout_seconds)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            yield cls(
                base_url=env.base_url,
                session=session,
                token=env.tokenid,
                api_path=env.api_path,
            )
