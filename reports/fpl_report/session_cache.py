"""Persisted Config Cache

Keeps the derived configuration bundle on disk so that a restarted process
can serve configuration without waiting on the FPL API.

One JSON file per namespace holds a single blob:

    {"data": {...bundle...}, "timestamp": "2025-08-16T10:00:00+00:00"}

A missing, unreadable or malformed file reads as empty; it is never an error.

Usage:
    store = PersistedConfigCache(namespace="fpl_dynamic_config")
    record = store.read()
    if record is None:
        store.write(bundle.to_dict())
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from utils.config import CACHE_NAMESPACE, get_cache_dir

logger = logging.getLogger(__name__)


def timestamp_to_epoch(timestamp: str) -> Optional[float]:
    """Convert an ISO-8601 timestamp to epoch seconds, None if unparseable."""
    try:
        parsed = datetime.fromisoformat(timestamp)
    except (TypeError, ValueError):
        return None
    return parsed.timestamp()


def epoch_to_timestamp(epoch: float) -> str:
    return datetime.fromtimestamp(epoch, tz=timezone.utc).isoformat()


class PersistedConfigCache:
    """File-backed key-value blob for the configuration bundle."""

    def __init__(
        self,
        namespace: Optional[str] = None,
        cache_dir: Optional[Path] = None,
        enabled: bool = True,
    ):
        """Initialize persisted cache.

        Args:
            namespace: Fixed key the bundle is stored under.
            cache_dir: Directory to store cache files. Defaults to config.yml cache_dir.
            enabled: Whether persistence is enabled. Set to False to disable all reads/writes.
        """
        self.enabled = enabled
        self.namespace = namespace or CACHE_NAMESPACE

        if cache_dir is None:
            cache_dir = get_cache_dir()
        self.cache_dir = Path(cache_dir)
        self.cache_file = self.cache_dir / f"{self.namespace}.json"

    def read(self) -> Optional[Dict[str, Any]]:
        """Return ``{'data': ..., 'timestamp': ...}`` or None when empty."""
        if not self.enabled or not self.cache_file.exists():
            return None

        try:
            with open(self.cache_file, 'r', encoding='utf-8') as f:
                record = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read cached config {self.cache_file.name}: {e}")
            return None

        if not isinstance(record, dict) or not isinstance(record.get('data'), dict):
            logger.warning(f"Ignoring malformed cached config {self.cache_file.name}")
            return None
        if timestamp_to_epoch(record.get('timestamp')) is None:
            logger.warning("Ignoring cached config without a valid timestamp")
            return None
        return record

    def write(self, data: Dict[str, Any], timestamp: str):
        """Persist the bundle atomically. Failures are logged, not raised."""
        if not self.enabled:
            return

        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            tmp_path = self.cache_file.with_suffix(".tmp")
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump({'data': data, 'timestamp': timestamp}, f)
            tmp_path.replace(self.cache_file)
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to cache config: {e}")

    def clear(self):
        """Delete the persisted bundle."""
        if not self.enabled:
            return

        try:
            self.cache_file.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to clear cached config: {e}")
