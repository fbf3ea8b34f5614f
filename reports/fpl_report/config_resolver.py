"""Configuration Resolver Module

Derives the narrow, stable configuration views (positions, position limits,
teams, game rules, current gameweek, fixture difficulty scale) from the
bootstrap payload and keeps them available no matter what the API does.

Resolution order for every accessor:
    1. in-memory bundle younger than its own TTL
    2. on cold start, the persisted bundle if younger than the persisted TTL
    3. a fresh derivation from the bootstrap cache
    4. on failure, the persisted bundle of any age (is_fallback=True)
    5. otherwise the hardcoded defaults (is_fallback=True)

Accessors never raise on upstream failure.
"""

import copy
import logging
import threading
import time
from dataclasses import dataclass, asdict, replace
from typing import Any, Callable, Dict, Iterable, Optional

from etl.transformers import BootstrapPayload, Event
from .constants import (
    DEFAULT_TEAM_COLOR,
    FALLBACK_GAME_RULES,
    FALLBACK_POSITION_LIMITS,
    FALLBACK_POSITIONS,
    FIXTURE_DIFFICULTY,
    TEAM_COLORS,
)
from .session_cache import PersistedConfigCache, epoch_to_timestamp, timestamp_to_epoch
from utils.config import CONFIG_TTL, PERSISTED_TTL

logger = logging.getLogger(__name__)


@dataclass
class ConfigBundle:
    """All derived configuration views, cached and persisted as one unit."""
    positions: Dict[str, Dict[str, Any]]
    position_limits: Dict[str, Dict[str, int]]
    teams: Dict[int, Dict[str, Any]]
    game_rules: Dict[str, Any]
    current_gameweek: Optional[Dict[str, Any]]
    fixture_difficulty: Dict[int, Dict[str, str]]
    last_updated: str
    is_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConfigBundle":
        # JSON turns integer keys into strings
        return cls(
            positions=dict(data['positions']),
            position_limits=dict(data['position_limits']),
            teams={int(k): v for k, v in data['teams'].items()},
            game_rules=dict(data['game_rules']),
            current_gameweek=data.get('current_gameweek'),
            fixture_difficulty={int(k): v for k, v in data['fixture_difficulty'].items()},
            last_updated=data['last_updated'],
            is_fallback=bool(data.get('is_fallback', False)),
        )


# =============================================================================
# PROJECTIONS
# =============================================================================

def project_positions(payload: BootstrapPayload) -> Dict[str, Dict[str, Any]]:
    """Positions keyed by short code (GKP, DEF, MID, FWD)."""
    if not payload.position_types:
        return copy.deepcopy(FALLBACK_POSITIONS)

    return {
        pos.singular_name_short: {
            'id': pos.id,
            'name': pos.plural_name,
            'short': pos.singular_name_short,
            'squad_select': pos.squad_select,
            'squad_min_play': pos.squad_min_play,
            'squad_max_play': pos.squad_max_play,
        }
        for pos in payload.position_types
    }


def project_position_limits(payload: BootstrapPayload) -> Dict[str, Dict[str, int]]:
    """Squad composition limits keyed by position short code."""
    if not payload.position_types:
        return copy.deepcopy(FALLBACK_POSITION_LIMITS)

    return {
        pos.singular_name_short: {
            'min': pos.squad_select,
            'max': pos.squad_select,
            'min_play': pos.squad_min_play,
            'max_play': pos.squad_max_play,
        }
        for pos in payload.position_types
    }


def team_color(team_id: int) -> str:
    return TEAM_COLORS.get(team_id, DEFAULT_TEAM_COLOR)


def project_teams(payload: BootstrapPayload) -> Dict[int, Dict[str, Any]]:
    """Teams keyed by id, each with its display colour attached."""
    teams = {}
    for team in payload.teams:
        view = team.to_dict()
        view['color'] = team_color(team.id)
        teams[team.id] = view
    return teams


def project_game_rules(payload: BootstrapPayload) -> Dict[str, Any]:
    settings = payload.game_settings
    if settings is None:
        return dict(FALLBACK_GAME_RULES)

    return {
        'squad_size': settings.squad_size,
        'starting_xi': settings.starting_xi,
        'max_players_per_team': settings.max_per_team,
        'budget_limit': settings.total_budget / 10,
        'free_transfers': settings.free_transfers,
        'transfer_cost': settings.transfer_cost,
    }


def resolve_current_gameweek(events: Iterable[Event]) -> Optional[Event]:
    """The event flagged current, else the one flagged next, else None.

    None means the season is not active.
    """
    events = list(events)
    current = next((e for e in events if e.is_current), None)
    if current is not None:
        return current
    return next((e for e in events if e.is_next), None)


def build_bundle(payload: BootstrapPayload, now: float) -> ConfigBundle:
    gameweek = resolve_current_gameweek(payload.events)
    return ConfigBundle(
        positions=project_positions(payload),
        position_limits=project_position_limits(payload),
        teams=project_teams(payload),
        game_rules=project_game_rules(payload),
        current_gameweek=gameweek.to_dict() if gameweek else None,
        fixture_difficulty=copy.deepcopy(FIXTURE_DIFFICULTY),
        last_updated=epoch_to_timestamp(now),
    )


def fallback_bundle(now: float) -> ConfigBundle:
    return ConfigBundle(
        positions=copy.deepcopy(FALLBACK_POSITIONS),
        position_limits=copy.deepcopy(FALLBACK_POSITION_LIMITS),
        teams={},
        game_rules=dict(FALLBACK_GAME_RULES),
        current_gameweek=None,
        fixture_difficulty=copy.deepcopy(FIXTURE_DIFFICULTY),
        last_updated=epoch_to_timestamp(now),
        is_fallback=True,
    )


def failure_message(error: Optional[Exception]) -> Optional[str]:
    if error is None:
        return None
    return getattr(error, 'message', None) or str(error)


# =============================================================================
# RESOLVER
# =============================================================================

class ConfigResolver:
    """Serves configuration views with TTL caching and layered fallbacks."""

    def __init__(
        self,
        bootstrap_cache,
        store: Optional[PersistedConfigCache] = None,
        ttl: Optional[float] = None,
        persisted_ttl: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize resolver.

        Args:
            bootstrap_cache: BootstrapCache supplying the payload.
            store: Persisted bundle store. Defaults to a PersistedConfigCache.
            ttl: Lifetime of the in-memory bundle in seconds.
            persisted_ttl: Lifetime of the persisted bundle on cold start.
            clock: Returns the current time in seconds.
        """
        self.bootstrap_cache = bootstrap_cache
        self.store = store if store is not None else PersistedConfigCache()
        self.ttl = CONFIG_TTL if ttl is None else ttl
        self.persisted_ttl = PERSISTED_TTL if persisted_ttl is None else persisted_ttl
        self.clock = clock

        self._lock = threading.Lock()
        self._loading = False
        self._bundle: Optional[ConfigBundle] = None
        self._fetched_at: Optional[float] = None
        self.last_failure: Optional[Exception] = None

    def get_config(self, force_refresh: bool = False, allow_stale: bool = True) -> ConfigBundle:
        """Return the full configuration bundle."""
        if not force_refresh:
            bundle = self._valid_bundle()
            if bundle is not None:
                return bundle

        with self._lock:
            if not force_refresh:
                # Another caller may have finished loading while we waited
                bundle = self._valid_bundle()
                if bundle is not None:
                    return bundle
                if self._bundle is None:
                    bundle = self._adopt_persisted(max_age=self.persisted_ttl)
                    if bundle is not None:
                        return bundle

            self._loading = True
            try:
                return self._fetch_and_cache(force_refresh, allow_stale)
            finally:
                self._loading = False

    def positions(self, force_refresh: bool = False, allow_stale: bool = True) -> Dict[str, Dict[str, Any]]:
        return self.get_config(force_refresh, allow_stale).positions

    def position_limits(self, force_refresh: bool = False, allow_stale: bool = True) -> Dict[str, Dict[str, int]]:
        return self.get_config(force_refresh, allow_stale).position_limits

    def teams(self, force_refresh: bool = False, allow_stale: bool = True) -> Dict[int, Dict[str, Any]]:
        return self.get_config(force_refresh, allow_stale).teams

    def game_rules(self, force_refresh: bool = False, allow_stale: bool = True) -> Dict[str, Any]:
        return self.get_config(force_refresh, allow_stale).game_rules

    def current_gameweek(self, force_refresh: bool = False, allow_stale: bool = True) -> Optional[Dict[str, Any]]:
        """Current (or next) gameweek, None when the season is not active."""
        return self.get_config(force_refresh, allow_stale).current_gameweek

    def fixture_difficulty(self, force_refresh: bool = False, allow_stale: bool = True) -> Dict[int, Dict[str, str]]:
        return self.get_config(force_refresh, allow_stale).fixture_difficulty

    def refresh(self) -> ConfigBundle:
        """Drop every cached copy and derive the bundle from a forced fetch."""
        self.clear_cache()
        return self.get_config(force_refresh=True)

    def clear_cache(self):
        with self._lock:
            self._bundle = None
            self._fetched_at = None
        self.store.clear()

    def status(self) -> Dict[str, Any]:
        bundle = self._bundle
        return {
            'is_loaded': bundle is not None,
            'last_fetch': epoch_to_timestamp(self._fetched_at) if self._fetched_at else None,
            'is_valid': self._valid_bundle() is not None,
            'is_loading': self._loading,
            'is_fallback': bool(bundle and bundle.is_fallback),
            'error': failure_message(self.last_failure),
        }

    def _valid_bundle(self) -> Optional[ConfigBundle]:
        bundle, fetched_at = self._bundle, self._fetched_at
        if bundle is None or fetched_at is None:
            return None
        if self.clock() - fetched_at >= self.ttl:
            return None
        return bundle

    def _adopt_persisted(self, max_age: Optional[float], as_fallback: bool = False) -> Optional[ConfigBundle]:
        record = self.store.read()
        if record is None:
            return None

        saved_at = timestamp_to_epoch(record['timestamp'])
        if max_age is not None and self.clock() - saved_at >= max_age:
            return None

        try:
            bundle = ConfigBundle.from_dict(record['data'])
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable cached config: {e}")
            return None

        if as_fallback:
            bundle = replace(bundle, is_fallback=True)
        self._bundle = bundle
        self._fetched_at = saved_at
        return bundle

    def _fetch_and_cache(self, force_refresh: bool, allow_stale: bool) -> ConfigBundle:
        try:
            result = self.bootstrap_cache.get(
                force_refresh=force_refresh,
                allow_stale_while_revalidate=allow_stale,
            )
        except Exception as e:
            self.last_failure = e
            logger.warning(f"Failed to fetch FPL configuration ({getattr(e, 'kind', type(e).__name__)})")
            return self._fallback()

        now = self.clock()
        bundle = build_bundle(result.payload, now)
        self._bundle = bundle
        self.last_failure = result.failure

        if result.is_stale or result.is_degraded:
            # Re-derive once a newer payload lands
            self._fetched_at = result.fetched_at
        else:
            self._fetched_at = now
            self.store.write(bundle.to_dict(), bundle.last_updated)
            logger.info("FPL configuration loaded successfully")
        return bundle

    def _fallback(self) -> ConfigBundle:
        bundle = self._adopt_persisted(max_age=None, as_fallback=True)
        if bundle is not None:
            logger.warning("Using expired cached configuration")
            return bundle

        logger.warning("Using fallback configuration values")
        bundle = fallback_bundle(self.clock())
        self._bundle = bundle
        self._fetched_at = None
        return bundle
