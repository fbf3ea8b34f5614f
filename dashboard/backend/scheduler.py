"""APScheduler setup for periodic data refresh jobs."""

import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from utils.config import REFRESH_MINUTES

logger = logging.getLogger(__name__)

_scheduler: BackgroundScheduler = None


def _bootstrap():
    from dashboard.backend.jobs.bootstrap_job import run_bootstrap_job
    try:
        run_bootstrap_job()
    except Exception:
        logger.exception("Scheduled bootstrap job failed")


def start_scheduler(minutes: int = None):
    global _scheduler
    _scheduler = BackgroundScheduler(daemon=True)

    _scheduler.add_job(_bootstrap, IntervalTrigger(minutes=minutes or REFRESH_MINUTES), id="bootstrap",
                       name="Bootstrap (FPL API + config)", replace_existing=True)

    _scheduler.start()
    logger.info("Scheduler started with bootstrap refresh every %d minutes", minutes or REFRESH_MINUTES)


def shutdown_scheduler():
    global _scheduler
    if _scheduler:
        _scheduler.shutdown(wait=False)
        _scheduler = None
