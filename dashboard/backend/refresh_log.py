"""Job bookkeeping and JSON helpers for the FPL Dashboard.

The data layer owns every cached payload, so the backend only remembers
when each job last ran and how it went.
"""

import json
import math
import threading
from datetime import datetime, timezone
from typing import Dict


class _SafeEncoder(json.JSONEncoder):
    """JSON encoder that converts NaN/Inf to None."""

    def default(self, obj):
        if isinstance(obj, float) and (math.isnan(obj) or math.isinf(obj)):
            return None
        return super().default(obj)

    def encode(self, o):
        return super().encode(_sanitize_floats(o))


def _sanitize_floats(obj):
    """Recursively replace NaN/Inf floats with None."""
    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            return None
        return obj
    if isinstance(obj, dict):
        return {k: _sanitize_floats(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_sanitize_floats(v) for v in obj]
    return obj


def _dumps(obj) -> str:
    """JSON serialize with NaN/Inf safety."""
    return json.dumps(obj, default=str, cls=_SafeEncoder)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


_lock = threading.Lock()
_refresh_log: Dict[str, Dict] = {}


def log_refresh(job_name: str, status: str, message: str = ""):
    with _lock:
        _refresh_log[job_name] = {
            "job_name": job_name,
            "last_run_at": _now(),
            "status": status,
            "message": message,
        }


def get_refresh_status() -> Dict[str, Dict]:
    """Get last refresh info for all jobs."""
    with _lock:
        return {name: dict(row) for name, row in _refresh_log.items()}


def clear_refresh_log():
    with _lock:
        _refresh_log.clear()
