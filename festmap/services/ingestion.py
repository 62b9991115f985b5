"""
ingestion.py — Live pin ingestion: one-shot fetch plus the polling loop.

IngestionClient
───────────────
Reads recent pins from the row store: created_at inside the lookback
window, optionally scoped to the festival, newest first, capped at 250.
A store without the festival_id column gets the same query without the
tenant filter (see services/fallback.py).

FeedPoller
──────────
Owns the live state the map shows: the pin set, the hotspot ranking and
a status line. It polls on a fixed interval without waiting for a slow
fetch to finish, so fetches can overlap and resolve out of order. Every
cycle is numbered; a response older than the newest cycle that already
finished (applied or failed) is dropped, and stop() cancels the timer
together with every fetch still in flight, so nothing lands after teardown.

    poller = FeedPoller(IngestionClient(store, config), config)
    poller.start()
    ...
    snapshot = poller.snapshot()
    ...
    await poller.stop()
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Callable, Optional

from pydantic import ValidationError

from festmap.core.clock import utcnow
from festmap.core.config import EngineConfig
from festmap.core.errors import IngestionError, StoreError
from festmap.models.feed import FeedSnapshot
from festmap.models.post import PostRecord
from festmap.services.fallback import call_with_tenant_fallback
from festmap.services.hotspots import compute_hotspots
from festmap.stores.posts import PostStore

logger = logging.getLogger(__name__)

STATUS_LOADING = "Loading…"
STATUS_PERMISSION_DENIED = "Location permission denied"


class IngestionClient:
    def __init__(
        self,
        store: PostStore,
        config: EngineConfig,
        clock: Callable = utcnow,
    ) -> None:
        self._store = store
        self._config = config
        self._clock = clock

    async def fetch_recent_posts(
        self,
        lookback_minutes: Optional[float] = None,
        festival_id: Optional[str] = None,
    ) -> list[PostRecord]:
        """
        Fetch pins created in the last `lookback_minutes`, newest first.

        Raises:
            IngestionError: the store failed for any reason other than a
                missing festival_id column, or the fallback query failed too.
        """
        minutes = lookback_minutes if lookback_minutes is not None else self._config.lookback_minutes
        since = self._clock() - timedelta(minutes=minutes)
        limit = self._config.feed_limit

        try:
            rows = await call_with_tenant_fallback(
                lambda fid: self._store.select_recent(since, festival_id=fid, limit=limit),
                festival_id,
                action="fetch posts",
            )
        except StoreError as exc:
            raise IngestionError(str(exc)) from exc

        posts = []
        for row in rows[:limit]:
            try:
                posts.append(PostRecord.model_validate(row))
            except ValidationError as exc:
                logger.warning("Skipping malformed post row %s: %s", row.get("id"), exc)
        return posts


class FeedPoller:
    """Polls the ingestion client and keeps pins + hotspots current."""

    def __init__(
        self,
        client: IngestionClient,
        config: EngineConfig,
        clock: Callable = utcnow,
    ) -> None:
        self._client = client
        self._config = config
        self._clock = clock

        self._state = FeedSnapshot(status=STATUS_LOADING)
        self._issued = 0        # last sequence number handed out
        self._settled = 0       # newest cycle that finished, applied or failed
        self._closed = False
        self._timer: Optional[asyncio.Task] = None
        self._in_flight: set[asyncio.Task] = set()
        self._listeners: list[Callable[[FeedSnapshot], None]] = []

    # ── State ────────────────────────────────────────────────────────────────

    @property
    def status(self) -> str:
        return self._state.status

    @property
    def blocked(self) -> bool:
        return self._state.blocked

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def snapshot(self) -> FeedSnapshot:
        return self._state.model_copy(
            update={"posts": list(self._state.posts), "hotspots": list(self._state.hotspots)}
        )

    def subscribe(self, callback: Callable[[FeedSnapshot], None]) -> None:
        """Call `callback(snapshot)` after every applied refresh."""
        self._listeners.append(callback)

    def block(self, reason: str = STATUS_PERMISSION_DENIED) -> None:
        """Stop applying fetches and report `reason` as the status."""
        logger.warning("Feed blocked: %s", reason)
        self._state.blocked = True
        self._state.status = reason

    # ── Polling ──────────────────────────────────────────────────────────────

    def start(self) -> None:
        """Refresh now, then every poll_interval_seconds until stop()."""
        if self.running:
            return
        if self._state.blocked:
            logger.info("Feed poller not started: %s", self._state.status)
            return
        self._closed = False
        self._timer = asyncio.create_task(self._run_timer(), name="feed-poll-timer")
        logger.info(
            "Feed poller started (every %.1fs, lookback %d min, festival %s)",
            self._config.poll_interval_seconds,
            self._config.lookback_minutes,
            self._config.tenant_id or "<all>",
        )

    async def stop(self) -> None:
        """Cancel the timer and every in-flight fetch; late responses are discarded."""
        self._closed = True
        tasks = list(self._in_flight)
        if self._timer is not None:
            tasks.append(self._timer)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._timer = None
        self._in_flight.clear()
        logger.info("Feed poller stopped")

    async def _run_timer(self) -> None:
        while True:
            task = asyncio.create_task(self.refresh())
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)
            await asyncio.sleep(self._config.poll_interval_seconds)

    async def refresh(self) -> bool:
        """
        Run one fetch cycle.

        Returns True when the result was applied; False when the poller is
        blocked or closed, the fetch failed, or a newer cycle already won.
        """
        if self._closed or self._state.blocked:
            return False

        self._issued += 1
        seq = self._issued

        try:
            posts = await self._client.fetch_recent_posts(
                self._config.lookback_minutes, self._config.tenant_id
            )
        except IngestionError as exc:
            if self._is_stale(seq):
                return False
            logger.warning("Fetch posts error (cycle %d): %s", seq, exc)
            self._settled = seq
            self._state.status = f"Error loading pins: {exc}"
            return False

        if self._is_stale(seq):
            logger.debug("Discarding stale feed response (cycle %d < %d)", seq, self._settled)
            return False

        self._apply(seq, posts)
        return True

    def _is_stale(self, seq: int) -> bool:
        return self._closed or self._state.blocked or seq < self._settled

    def _apply(self, seq: int, posts: list[PostRecord]) -> None:
        self._settled = seq
        now = self._clock()
        hotspots = compute_hotspots(
            posts,
            self._config.hotspot_window_minutes,
            self._config.cell_size_degrees,
            now=now,
            limit=self._config.hotspot_limit,
        )
        self._state = FeedSnapshot(
            posts=posts,
            hotspots=hotspots,
            status=f"Loaded {len(posts)} pins",
            sequence=seq,
            updated_at=now,
        )

        snapshot = self.snapshot()
        for callback in self._listeners:
            try:
                callback(snapshot)
            except Exception as exc:
                logger.warning("Feed listener failed: %s", exc)
