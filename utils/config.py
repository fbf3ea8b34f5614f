"""Central Configuration Module

Provides a single source of truth for the data layer configuration values.
Loads settings from config.yml and exposes typed constants for use throughout
the codebase.

Usage:
    from utils.config import API_BASE_URL, API_TIMEOUT
    from utils.config import BOOTSTRAP_TTL, CONFIG_TTL, PERSISTED_TTL
"""

import os
from pathlib import Path
from typing import Dict, Any
import yaml


def _get_project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


def load_config() -> Dict[str, Any]:
    """Load configuration from config.yml.

    Returns:
        Dict with config values or empty dict if not found.
    """
    config_path = _get_project_root() / 'config.yml'

    if config_path.exists():
        try:
            with open(config_path, 'r') as f:
                return yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError):
            return {}
    return {}


# Load config at module level (singleton pattern)
_CONFIG = load_config()


# =============================================================================
# UPSTREAM API
# =============================================================================

_API_CONFIG = _CONFIG.get('api', {})

API: Dict[str, Any] = {
    'base_url': os.getenv('FPL_API_BASE_URL') or _API_CONFIG.get(
        'base_url', 'https://fantasy.premierleague.com/api'),
    # Upstream can take well over a minute at peak times
    'timeout': _API_CONFIG.get('timeout', 120),
    'retries': _API_CONFIG.get('retries', 1),
    'endpoints': {
        'bootstrap': '/bootstrap-static/',
        'element_summary': '/element-summary/{player_id}/',
        'fixtures': '/fixtures/',
        **(_API_CONFIG.get('endpoints') or {}),
    },
}

# Convenience accessors
API_BASE_URL: str = API['base_url']
API_TIMEOUT: float = API['timeout']
API_RETRIES: int = API['retries']
API_ENDPOINTS: Dict[str, str] = API['endpoints']


# =============================================================================
# CACHE SETTINGS
# =============================================================================

_CACHE_CONFIG = _CONFIG.get('cache', {})

CACHE: Dict[str, Any] = {
    'bootstrap_ttl': _CACHE_CONFIG.get('bootstrap_ttl', 15 * 60),
    'revalidate_delay': _CACHE_CONFIG.get('revalidate_delay', 0.1),
    'config_ttl': _CACHE_CONFIG.get('config_ttl', 30 * 60),
    'persisted_ttl': _CACHE_CONFIG.get('persisted_ttl', 6 * 60 * 60),
    'cache_dir': _CACHE_CONFIG.get('cache_dir', 'cache'),
    'namespace': _CACHE_CONFIG.get('namespace', 'fpl_dynamic_config'),
}

# Convenience accessors
BOOTSTRAP_TTL: int = CACHE['bootstrap_ttl']
REVALIDATE_DELAY: float = CACHE['revalidate_delay']
CONFIG_TTL: int = CACHE['config_ttl']
PERSISTED_TTL: int = CACHE['persisted_ttl']
CACHE_NAMESPACE: str = CACHE['namespace']


# =============================================================================
# INSIGHTS
# =============================================================================

_INSIGHTS_CONFIG = _CONFIG.get('insights', {})

INSIGHTS: Dict[str, Any] = {
    'top_count': _INSIGHTS_CONFIG.get('top_count', 5),
    'template_count': _INSIGHTS_CONFIG.get('template_count', 8),
    # now_cost in tenths; filters out unused bench fodder
    'value_min_cost': _INSIGHTS_CONFIG.get('value_min_cost', 40),
}

TOP_COUNT: int = INSIGHTS['top_count']
TEMPLATE_COUNT: int = INSIGHTS['template_count']
VALUE_MIN_COST: int = INSIGHTS['value_min_cost']


# =============================================================================
# DASHBOARD
# =============================================================================

_DASHBOARD_CONFIG = _CONFIG.get('dashboard', {})

DASHBOARD: Dict[str, Any] = {
    'refresh_minutes': _DASHBOARD_CONFIG.get('refresh_minutes', 15),
    'log_level': _DASHBOARD_CONFIG.get('log_level', 'INFO'),
    'host': _DASHBOARD_CONFIG.get('host', '127.0.0.1'),
    'port': _DASHBOARD_CONFIG.get('port', 8000),
}

REFRESH_MINUTES: int = DASHBOARD['refresh_minutes']
LOG_LEVEL: str = DASHBOARD['log_level']
HOST: str = DASHBOARD['host']
PORT: int = DASHBOARD['port']


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def get_cache_dir() -> Path:
    """Get the directory holding persisted cache files.

    Relative paths in config.yml are resolved against the project root.
    """
    cache_dir = Path(CACHE['cache_dir'])
    if not cache_dir.is_absolute():
        cache_dir = _get_project_root() / cache_dir
    return cache_dir


def reload_config() -> None:
    """Reload configuration from disk.

    Updates all module-level constants. Useful for testing or when
    config.yml changes during runtime.
    """
    global _CONFIG, API, API_BASE_URL, API_TIMEOUT, API_RETRIES, API_ENDPOINTS
    global CACHE, BOOTSTRAP_TTL, REVALIDATE_DELAY, CONFIG_TTL, PERSISTED_TTL, CACHE_NAMESPACE
    global INSIGHTS, TOP_COUNT, TEMPLATE_COUNT, VALUE_MIN_COST
    global DASHBOARD, REFRESH_MINUTES, LOG_LEVEL

    _CONFIG = load_config()

    _api = _CONFIG.get('api', {})
    API = {
        'base_url': os.getenv('FPL_API_BASE_URL') or _api.get(
            'base_url', 'https://fantasy.premierleague.com/api'),
        'timeout': _api.get('timeout', 120),
        'retries': _api.get('retries', 1),
        'endpoints': {
            'bootstrap': '/bootstrap-static/',
            'element_summary': '/element-summary/{player_id}/',
            'fixtures': '/fixtures/',
            **(_api.get('endpoints') or {}),
        },
    }
    API_BASE_URL = API['base_url']
    API_TIMEOUT = API['timeout']
    API_RETRIES = API['retries']
    API_ENDPOINTS = API['endpoints']

    _cache = _CONFIG.get('cache', {})
    CACHE = {
        'bootstrap_ttl': _cache.get('bootstrap_ttl', 15 * 60),
        'revalidate_delay': _cache.get('revalidate_delay', 0.1),
        'config_ttl': _cache.get('config_ttl', 30 * 60),
        'persisted_ttl': _cache.get('persisted_ttl', 6 * 60 * 60),
        'cache_dir': _cache.get('cache_dir', 'cache'),
        'namespace': _cache.get('namespace', 'fpl_dynamic_config'),
    }
    BOOTSTRAP_TTL = CACHE['bootstrap_ttl']
    REVALIDATE_DELAY = CACHE['revalidate_delay']
    CONFIG_TTL = CACHE['config_ttl']
    PERSISTED_TTL = CACHE['persisted_ttl']
    CACHE_NAMESPACE = CACHE['namespace']

    _ins = _CONFIG.get('insights', {})
    INSIGHTS = {
        'top_count': _ins.get('top_count', 5),
        'template_count': _ins.get('template_count', 8),
        'value_min_cost': _ins.get('value_min_cost', 40),
    }
    TOP_COUNT = INSIGHTS['top_count']
    TEMPLATE_COUNT = INSIGHTS['template_count']
    VALUE_MIN_COST = INSIGHTS['value_min_cost']

    _dash = _CONFIG.get('dashboard', {})
    DASHBOARD = {
        'refresh_minutes': _dash.get('refresh_minutes', 15),
        'log_level': _dash.get('log_level', 'INFO'),
    }
    REFRESH_MINUTES = DASHBOARD['refresh_minutes']
    LOG_LEVEL = DASHBOARD['log_level']
