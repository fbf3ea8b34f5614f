"""Cache Manager Module

Holds the single bootstrap payload slot shared by every reader.

The slot moves through EMPTY -> FRESH -> STALE (and back to EMPTY on
invalidate). Reads inside the freshness window never touch the network;
stale reads are served immediately while a detached refresh runs; failed
blocking fetches fall back to the last good payload when there is one.

Only one fetch is ever in flight. Blocking callers and background refreshes
that arrive while it runs wait on the same future instead of issuing their
own request, so a slow refresh cannot overwrite a newer result.

Usage:
    cache = BootstrapCache(FPLFetcher())
    result = cache.get()
    if result.is_degraded:
        show_banner(result.error)
    players = result.payload.players
"""

import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Tuple

from etl.errors import TransportFailure, Unexpected
from etl.transformers import BootstrapPayload
from utils.config import BOOTSTRAP_TTL, REVALIDATE_DELAY

logger = logging.getLogger(__name__)


class CacheState(str, Enum):
    EMPTY = "empty"
    FRESH = "fresh"
    STALE = "stale"


@dataclass(frozen=True)
class CacheEntry:
    """A fully fetched value and when it arrived. Replaced, never edited."""
    value: Any
    fetched_at: float


@dataclass(frozen=True)
class BootstrapResult:
    """What a cache read hands back.

    Attributes:
        payload: The bootstrap payload.
        fetched_at: Clock time the payload was fetched.
        is_stale: Served past the freshness window.
        is_degraded: Served because a fetch just failed.
        error: User-facing message of that failure.
        failure: The failure itself, for callers that branch on its kind.
    """
    payload: BootstrapPayload
    fetched_at: float
    is_stale: bool = False
    is_degraded: bool = False
    error: Optional[str] = None
    failure: Optional[TransportFailure] = field(default=None, compare=False)


def _start_daemon(fn: Callable[[], None], delay: float) -> None:
    if delay > 0:
        worker = threading.Timer(delay, fn)
        worker.daemon = True
    else:
        worker = threading.Thread(target=fn, daemon=True)
    worker.name = "bootstrap-revalidate"
    worker.start()


class BootstrapCache:
    """Time-boxed, single-entry cache of the bootstrap payload."""

    def __init__(
        self,
        fetcher,
        ttl: Optional[float] = None,
        clock: Callable[[], float] = time.time,
        spawn: Optional[Callable[[Callable[[], None]], None]] = None,
        revalidate_delay: Optional[float] = None,
    ):
        """Initialize bootstrap cache.

        Args:
            fetcher: Object with ``get_bootstrap_static()`` (an FPLFetcher).
            ttl: Freshness window in seconds (default: 15 minutes).
            clock: Returns the current time in seconds.
            spawn: Runs a callable detached from the caller. Defaults to a
                daemon thread started after ``revalidate_delay``.
            revalidate_delay: Seconds to wait before a background refresh.
        """
        self.fetcher = fetcher
        self.ttl = BOOTSTRAP_TTL if ttl is None else ttl
        self.clock = clock
        self.revalidate_delay = REVALIDATE_DELAY if revalidate_delay is None else revalidate_delay
        self.spawn = spawn or (lambda fn: _start_daemon(fn, self.revalidate_delay))

        self._lock = threading.Lock()
        self._entry: Optional[CacheEntry] = None
        self._inflight: Optional[Future] = None

    @property
    def state(self) -> CacheState:
        entry = self._entry
        if entry is None:
            return CacheState.EMPTY
        if self.clock() - entry.fetched_at < self.ttl:
            return CacheState.FRESH
        return CacheState.STALE

    def get(self, force_refresh: bool = False,
            allow_stale_while_revalidate: bool = True) -> BootstrapResult:
        """Return the bootstrap payload.

        Args:
            force_refresh: Skip the cached value and fetch.
            allow_stale_while_revalidate: Serve a stale value immediately and
                refresh it in the background.

        Returns:
            BootstrapResult. ``is_degraded`` is set when a fetch failed and the
            previous payload was served instead.

        Raises:
            TransportFailure: The fetch failed and nothing was cached.
        """
        entry = self._entry
        if entry is not None and not force_refresh:
            if self.clock() - entry.fetched_at < self.ttl:
                return BootstrapResult(entry.value, entry.fetched_at)
            if allow_stale_while_revalidate:
                self.revalidate()
                return BootstrapResult(entry.value, entry.fetched_at, is_stale=True)

        return self._blocking_get()

    def revalidate(self) -> bool:
        """Start a detached refresh unless one is already running.

        Failures are logged and otherwise ignored.

        Returns:
            True if a new refresh was started.
        """
        future, owner = self._claim_fetch()
        if not owner:
            return False

        future.add_done_callback(_log_background_result)
        try:
            self.spawn(lambda: self._run_fetch(future))
        except RuntimeError as e:
            # Thread could not be started; release the slot for the next reader
            self._finish_fetch(future, error=e)
        return True

    def invalidate(self):
        """Clear the slot. The next get() fetches regardless of flags."""
        with self._lock:
            self._entry = None
        logger.info("Bootstrap cache cleared")

    def has_cached_data(self) -> bool:
        return self._entry is not None

    def cache_age(self) -> Optional[int]:
        """Age of the cached payload in whole seconds, None when empty."""
        entry = self._entry
        if entry is None:
            return None
        return int(self.clock() - entry.fetched_at)

    def _blocking_get(self) -> BootstrapResult:
        future, owner = self._claim_fetch()
        if owner:
            self._run_fetch(future)

        try:
            entry = future.result()
        except TransportFailure as e:
            previous = self._entry
            if previous is None:
                raise
            logger.warning(f"Bootstrap fetch failed ({e.kind}), serving cached data")
            return BootstrapResult(
                previous.value,
                previous.fetched_at,
                is_stale=self.clock() - previous.fetched_at >= self.ttl,
                is_degraded=True,
                error=e.message,
                failure=e,
            )
        return BootstrapResult(entry.value, entry.fetched_at)

    def _claim_fetch(self) -> Tuple[Future, bool]:
        """Return the in-flight fetch, creating it if there is none.

        The boolean is True when the caller created it and must run it.
        """
        with self._lock:
            if self._inflight is not None:
                return self._inflight, False
            self._inflight = Future()
            return self._inflight, True

    def _run_fetch(self, future: Future):
        try:
            payload = self.fetcher.get_bootstrap_static()
        except Exception as e:
            self._finish_fetch(future, error=e)
            return
        self._finish_fetch(future, entry=CacheEntry(payload, self.clock()))

    def _finish_fetch(self, future: Future, entry: Optional[CacheEntry] = None,
                      error: Optional[BaseException] = None):
        with self._lock:
            if entry is not None:
                self._entry = entry
            self._inflight = None
        if error is not None:
            future.set_exception(_as_transport_failure(error))
        else:
            future.set_result(entry)


def _as_transport_failure(error: BaseException) -> TransportFailure:
    """Non-transport errors are surfaced as Unexpected so readers can degrade on them."""
    if isinstance(error, TransportFailure):
        return error
    failure = Unexpected(f"Unexpected error fetching bootstrap data: {error}")
    failure.__cause__ = error
    return failure

def _log_background_result(future: Future):
    error = future.exception()
    if error is None:
        logger.info("Background bootstrap refresh completed")
    else:
        logger.warning(f"Background refresh failed: {error}")
