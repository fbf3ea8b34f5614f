"""Data Fetcher Module

Single entry point to the FPL data layer. Wires the API client, the
bootstrap cache, the configuration resolver and the analyzers together so
consumers never talk to the network directly.

One instance is shared per process:

    init_data_layer()            # once, at startup
    layer = get_data_layer()     # everywhere else
    insights = layer.get_insights(UserPreferences(risk_tolerance='high'))
"""

import logging
import threading
from typing import Any, Dict, List, Optional

import pandas as pd

from etl.fetchers import FPLFetcher
from etl.transformers import Fixture
from .cache_manager import BootstrapCache, BootstrapResult
from .config_resolver import ConfigResolver
from .fixture_difficulty import FixtureDifficultyResolver, filter_fixtures, team_strength_metrics
from .identity import UserPreferences
from .player_analyzer import PlayerAnalyzer, join_players
from .session_cache import PersistedConfigCache, epoch_to_timestamp

logger = logging.getLogger(__name__)


def result_meta(result: BootstrapResult) -> Dict[str, Any]:
    """Freshness annotations attached to every payload-derived response."""
    return {
        'fetched_at': epoch_to_timestamp(result.fetched_at),
        'is_stale': result.is_stale,
        'is_degraded': result.is_degraded,
        'error': result.error,
    }


class FPLDataFetcher:
    """Facade over the cache, resolver and insight engine."""

    def __init__(
        self,
        fetcher: Optional[FPLFetcher] = None,
        bootstrap_cache: Optional[BootstrapCache] = None,
        config_resolver: Optional[ConfigResolver] = None,
        store: Optional[PersistedConfigCache] = None,
    ):
        self.fetcher = fetcher or FPLFetcher()
        self.bootstrap_cache = bootstrap_cache or BootstrapCache(self.fetcher)
        self.config = config_resolver or ConfigResolver(self.bootstrap_cache, store=store)

    def get_bootstrap(self, force_refresh: bool = False) -> BootstrapResult:
        """Current bootstrap payload.

        Raises:
            TransportFailure: Nothing cached and the fetch failed.
        """
        return self.bootstrap_cache.get(force_refresh=force_refresh)

    def get_analyzer(self, result: Optional[BootstrapResult] = None) -> PlayerAnalyzer:
        result = result or self.get_bootstrap()
        payload = result.payload
        return PlayerAnalyzer(join_players(payload), position_types=payload.position_types)

    def get_players(self, **filters) -> Dict[str, Any]:
        """Search the player list. Keyword arguments go to PlayerAnalyzer.search_players."""
        result = self.get_bootstrap()
        players = self.get_analyzer(result).search_players(**filters)
        return {'players': players, 'count': len(players), **result_meta(result)}

    def get_insights(self, preferences: Optional[UserPreferences] = None) -> Dict[str, Any]:
        """Every insight view plus recommendations for the given preferences."""
        preferences = preferences or UserPreferences()
        result = self.get_bootstrap()
        analyzer = self.get_analyzer(result)

        insights = analyzer.summary()
        insights['recommendations'] = analyzer.recommendations(
            preferences.risk_tolerance, preferences.favorite_team)
        insights.update(result_meta(result))
        return insights

    def get_recommendations(self, preferences: Optional[UserPreferences] = None) -> Dict[str, Any]:
        preferences = preferences or UserPreferences()
        result = self.get_bootstrap()
        recommendations = self.get_analyzer(result).recommendations(
            preferences.risk_tolerance, preferences.favorite_team)
        return {
            'risk_tolerance': preferences.risk_tolerance,
            'favorite_team': preferences.favorite_team,
            'recommendations': recommendations,
            **result_meta(result),
        }

    def get_fixtures(
        self,
        gameweek: Optional[int] = None,
        team_id: Optional[int] = None,
        finished: Optional[bool] = None,
    ) -> List[Dict[str, Any]]:
        """Fixtures annotated with team names and difficulty ratings.

        Fixtures are fetched on every call; only team strengths come from
        the cached bootstrap payload.
        """
        fixtures: List[Fixture] = self.fetcher.get_fixtures()
        resolver = FixtureDifficultyResolver(self.get_bootstrap().payload.teams)
        selected = filter_fixtures(fixtures, gameweek=gameweek, team_id=team_id, finished=finished)
        return [resolver.annotate(f) for f in selected]

    def get_team_strengths(self) -> Dict[int, Dict[str, Any]]:
        teams = self.get_bootstrap().payload.teams
        return {
            team.id: {'name': team.name, 'short_name': team.short_name, **team_strength_metrics(team)}
            for team in teams
        }

    def get_player_history(self, player_id: int) -> pd.DataFrame:
        """Gameweek-by-gameweek history for a player.

        Args:
            player_id: FPL element ID of the player.

        Returns:
            DataFrame with one row per gameweek played, empty if none.

        Raises:
            NotFound: Unknown player.
        """
        summary = self.fetcher.get_player_summary(player_id)
        return pd.DataFrame(summary['history'])

    def warm_up(self):
        """Populate the cache and configuration ahead of the first request."""
        bundle = self.config.get_config()
        if bundle.is_fallback:
            logger.warning("Data layer started on fallback configuration")
        else:
            logger.info("Data layer warmed up")

    def refresh(self) -> Dict[str, Any]:
        """Force a refetch of everything. Backs the dashboard's retry action.

        Raises:
            TransportFailure: The fetch failed and there is no cached payload
                to fall back to.
        """
        bundle = self.config.refresh()
        failure = self.config.last_failure
        if failure is not None and not self.bootstrap_cache.has_cached_data():
            raise failure

        status = self.status()
        status['is_fallback'] = bundle.is_fallback
        return status

    def status(self) -> Dict[str, Any]:
        state = self.bootstrap_cache.state
        return {
            'bootstrap': {
                'state': state.value,
                'has_cached_data': self.bootstrap_cache.has_cached_data(),
                'cache_age': self.bootstrap_cache.cache_age(),
            },
            'config': self.config.status(),
        }


_data_layer: Optional[FPLDataFetcher] = None
_init_lock = threading.Lock()


def init_data_layer(data_layer: Optional[FPLDataFetcher] = None) -> FPLDataFetcher:
    """Install the process-wide data layer. Repeated calls keep the first one.

    Args:
        data_layer: Pre-built instance to install instead of the default.
    """
    global _data_layer
    with _init_lock:
        if data_layer is not None:
            _data_layer = data_layer
        elif _data_layer is None:
            _data_layer = FPLDataFetcher()
        return _data_layer


def get_data_layer() -> FPLDataFetcher:
    if _data_layer is None:
        raise RuntimeError("Data layer not initialized; call init_data_layer() at startup")
    return _data_layer


def reset_data_layer():
    global _data_layer
    with _init_lock:
        _data_layer = None
