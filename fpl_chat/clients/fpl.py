"""Fantasy Premier League API client with retries and a short-lived cache."""

import logging
import os
import time
from dataclasses import dataclass
from typing import Any

import httpx
from tenacity import AsyncRetrying, before_sleep_log, retry_if_exception, stop_after_attempt, wait_exponential

from fpl_chat.exceptions import FPLApiError
from fpl_chat.models.fpl import BootstrapStatic, ElementSummary, Fixture, LeagueStandings, ManagerEntry, ManagerPicks
from fpl_chat.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; FPL-Chat/1.0)",
    "Accept": "application/json",
}


@dataclass
class FPLClientConfig:
    """Configuration for the FPL API client."""

    base_url: str = "https://fantasy.premierleague.com/api"
    timeout: float = 15.0
    max_retries: int = 3
    retry_delay: float = 0.5
    cache_ttl_seconds: float = 300.0


def _is_retryable(error: BaseException) -> bool:
    """Transport failures and 5xx responses are retried; 4xx are final."""
    if isinstance(error, httpx.TransportError):
        return True
    return isinstance(error, FPLApiError) and error.status_code >= 500


class FPLClient:
    """Async client for the public FPL endpoints used by the chat tools."""

    def __init__(self, config: FPLClientConfig | None = None, http_client: httpx.AsyncClient | None = None):
        """Initialize FPL client.

        Args:
            config: Client configuration (base URL falls back to FPL_API_BASE_URL)
            http_client: Pre-built HTTP client, mainly for tests
        """
        self.config = config or FPLClientConfig(
            base_url=os.getenv("FPL_API_BASE_URL", FPLClientConfig.base_url),
        )
        self.http = http_client or httpx.AsyncClient(
            base_url=self.config.base_url,
            headers=DEFAULT_HEADERS,
            timeout=self.config.timeout,
        )
        self._cache: dict[str, tuple[float, Any]] = {}

    async def aclose(self) -> None:
        await self.http.aclose()

    async def get_bootstrap_static(self) -> BootstrapStatic:
        """Players, teams, positions and gameweeks."""
        return BootstrapStatic.model_validate(await self._get_cached("/bootstrap-static/"))

    async def get_fixtures(self) -> list[Fixture]:
        """All fixtures of the season."""
        return [Fixture.model_validate(item) for item in await self._get_cached("/fixtures/")]

    async def get_player_summary(self, player_id: int) -> ElementSummary:
        """Season history and upcoming fixtures for one player."""
        return ElementSummary.model_validate(await self._get_json(f"/element-summary/{player_id}/"))

    async def get_manager(self, manager_id: int) -> ManagerEntry:
        return ManagerEntry.model_validate(await self._get_json(f"/entry/{manager_id}/"))

    async def get_manager_picks(self, manager_id: int, gameweek: int) -> ManagerPicks:
        return ManagerPicks.model_validate(await self._get_json(f"/entry/{manager_id}/event/{gameweek}/picks/"))

    async def get_league_standings(self, league_id: int, page: int = 1) -> LeagueStandings:
        return LeagueStandings.model_validate(
            await self._get_json(f"/leagues-classic/{league_id}/standings/", params={"page_standings": page})
        )

    async def _get_cached(self, endpoint: str) -> Any:
        cached = self._cache.get(endpoint)
        now = time.monotonic()
        if cached and now - cached[0] < self.config.cache_ttl_seconds:
            return cached[1]

        data = await self._get_json(endpoint)
        self._cache[endpoint] = (now, data)
        return data

    async def _get_json(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """GET an endpoint, retrying transport errors and 5xx with exponential backoff."""
        async for attempt in AsyncRetrying(
            retry=retry_if_exception(_is_retryable),
            wait=wait_exponential(multiplier=self.config.retry_delay),
            stop=stop_after_attempt(self.config.max_retries),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                response = await self.http.get(endpoint, params=params)
                if response.is_error:
                    raise FPLApiError(
                        f"FPL API error: {response.status_code} {response.reason_phrase}",
                        status_code=response.status_code,
                        endpoint=endpoint,
                    )
                return response.json()


_fpl_client: FPLClient | None = None


def get_fpl_client() -> FPLClient:
    """Get or create FPL client instance."""
    global _fpl_client
    if _fpl_client is None:
        _fpl_client = FPLClient()
    return _fpl_client
