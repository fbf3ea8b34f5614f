"""Utils module - configuration helpers.

This module contains:
- Central configuration loaded from config.yml (config.py)
"""

from .config import load_config, reload_config, get_cache_dir
