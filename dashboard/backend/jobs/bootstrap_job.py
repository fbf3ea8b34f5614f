"""Bootstrap job - keeps the FPL payload and derived config warm.

Runs at startup and on the scheduler interval.
"""

import logging

from dashboard.backend.refresh_log import log_refresh
from reports.fpl_report.data_fetcher import get_data_layer

logger = logging.getLogger(__name__)


def run_bootstrap_job(force: bool = False):
    """Refresh the bootstrap cache and configuration bundle.

    Args:
        force: Refetch even when the cached payload is still fresh.
    """
    logger.info("Bootstrap job starting")
    try:
        layer = get_data_layer()
        if force:
            layer.refresh()
        else:
            result = layer.bootstrap_cache.get(allow_stale_while_revalidate=False)
            if result.is_degraded:
                logger.warning("Bootstrap job served cached data: %s", result.error)
                log_refresh("bootstrap", "degraded", result.error or "")
                return
            layer.config.get_config()

        players = len(layer.get_bootstrap().payload.players)
        log_refresh("bootstrap", "ok", f"{players} players refreshed")
        logger.info("Bootstrap job completed (%d players)", players)

    except Exception as e:
        logger.exception("Bootstrap job failed")
        log_refresh("bootstrap", "error", str(e))
        raise
