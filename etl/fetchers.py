"""ETL Fetchers Module

Extracts data from the official FPL API.

Every transport problem is normalized into the TransportFailure taxonomy
(etl.errors) so callers can tell rate limiting, server outages and lost
connectivity apart. The fetcher holds no cache.
"""

import time
import requests
from typing import Any, Callable, Dict, List, Optional
import logging

from etl.errors import (
    NetworkUnreachable,
    NotFound,
    RateLimited,
    ServerUnavailable,
    Timeout,
    TransportFailure,
    Unexpected,
)
from etl.transformers import (
    BootstrapPayload,
    Fixture,
    decode_bootstrap,
    decode_fixtures,
    decode_player_summary,
)
from utils.config import API_BASE_URL, API_ENDPOINTS, API_RETRIES, API_TIMEOUT

logger = logging.getLogger(__name__)

# Failures worth retrying inside a single get() call
_RETRYABLE = (ServerUnavailable, NetworkUnreachable)


class FPLFetcher:
    """Fetches data from the official FPL API.

    Endpoints:
    - bootstrap: Players, teams, events (gameweeks), position types, game settings
    - element_summary: Player-specific history and fixtures
    - fixtures: All season fixtures
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
        endpoints: Optional[Dict[str, str]] = None,
        session: Optional[requests.Session] = None,
        sleep_func: Callable[[float], None] = time.sleep,
    ):
        """Initialize FPL fetcher.

        Args:
            base_url: API root. Defaults to config.yml / FPL_API_BASE_URL.
            timeout: Per-request deadline in seconds.
            retries: Total attempts for 5xx and connection failures.
            endpoints: Overrides for the resource paths.
            session: requests.Session to use (injectable for tests).
            sleep_func: Used for backoff between attempts.
        """
        self.base_url = (base_url or API_BASE_URL).rstrip('/')
        self.timeout = API_TIMEOUT if timeout is None else timeout
        self.retries = max(1, API_RETRIES if retries is None else retries)
        self.endpoints = {**API_ENDPOINTS, **(endpoints or {})}
        self.session = session or requests.Session()
        self.sleep_func = sleep_func

    def get(self, path: str) -> Any:
        """GET a resource path and return its parsed JSON body.

        Raises:
            TransportFailure: One of Timeout, RateLimited, ServerUnavailable,
                NotFound, NetworkUnreachable or Unexpected.
        """
        for attempt in range(self.retries):
            start = time.time()
            try:
                body = self._request(path)
                logger.debug(f"GET {path} ({time.time() - start:.2f}s)")
                return body
            except _RETRYABLE as e:
                logger.warning(f"Request {path} failed (attempt {attempt + 1}/{self.retries}): {e.kind}")
                if attempt < self.retries - 1:
                    self.sleep_func(2 ** attempt)  # Exponential backoff
                else:
                    raise
            except TransportFailure as e:
                logger.warning(f"Request {path} failed: {e.kind}")
                raise

    def _request(self, path: str) -> Any:
        url = f"{self.base_url}{path}"

        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise Timeout(path=path) from e
        except requests.exceptions.ConnectionError as e:
            raise NetworkUnreachable(path=path) from e
        except requests.exceptions.RequestException as e:
            raise Unexpected(str(e), path=path) from e

        status = response.status_code
        if status == 429:
            raise RateLimited(path=path, retry_after=_retry_after(response))
        if status >= 500:
            raise ServerUnavailable(path=path, status_code=status)
        if status == 404:
            raise NotFound(path=path)
        if status != 200:
            raise Unexpected(f"Response was code {status}", path=path,
                             status_code=status, payload=response.text)

        try:
            return response.json()
        except ValueError as e:
            raise Unexpected("Response was not valid JSON", path=path,
                             status_code=status, payload=response.text) from e

    def get_bootstrap_static(self) -> BootstrapPayload:
        """Fetch and decode bootstrap-static data.

        Returns a payload with:
        - players: All players with stats
        - teams: All PL teams
        - events: All gameweeks
        - position_types: Position definitions (GKP, DEF, MID, FWD)
        - game_settings: Squad and transfer rules (None if absent)
        """
        return decode_bootstrap(self.get(self.endpoints['bootstrap']))

    def get_player_summary(self, player_id: int) -> Dict[str, List[Dict]]:
        """Fetch detailed history for a specific player.

        Returns:
        - history: Past gameweek performance this season
        - history_past: Season-by-season totals (previous years)
        - fixtures: Upcoming fixtures with difficulty
        """
        path = self.endpoints['element_summary'].format(player_id=player_id)
        return decode_player_summary(self.get(path))

    def get_fixtures(self) -> List[Fixture]:
        """Fetch all fixtures, ordered as upstream returns them."""
        return decode_fixtures(self.get(self.endpoints['fixtures']))


def _retry_after(response) -> Optional[float]:
    value = response.headers.get('Retry-After')
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None
