"""FPL Data Layer Package

Caching, fallback and derived-metrics pipeline over the FPL bootstrap
payload: configuration views that are always available and ranked player
insights.
"""

from .cache_manager import BootstrapCache, BootstrapResult, CacheState
from .config_resolver import ConfigBundle, ConfigResolver
from .data_fetcher import FPLDataFetcher, init_data_layer, get_data_layer
from .fixture_difficulty import FixtureDifficultyResolver
from .identity import IdentityProvider, UserPreferences, UserProfile
from .player_analyzer import PlayerAnalyzer, join_players
from .session_cache import PersistedConfigCache

__all__ = [
    'BootstrapCache',
    'BootstrapResult',
    'CacheState',
    'ConfigBundle',
    'ConfigResolver',
    'FPLDataFetcher',
    'init_data_layer',
    'get_data_layer',
    'FixtureDifficultyResolver',
    'IdentityProvider',
    'UserPreferences',
    'UserProfile',
    'PlayerAnalyzer',
    'join_players',
    'PersistedConfigCache',
]
