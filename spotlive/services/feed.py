"""
feed.py — Live spot feed: the one place that holds story state.

The spot engine (expiry → clustering → scoring → projection) is stateless.
SpotFeed owns the current story snapshot on its behalf and keeps it fresh
on two timers:

  every sweep_interval   (10 s)  drop expired stories from the snapshot
  every refresh_interval (30 s)  reload the snapshot from the story store

A refresh runs as a background task. If the previous one is still in
flight when the next is due, that tick is skipped. run() is cancellable;
cancelling it also cancels any in-flight refresh.

Used by the WebSocket route in routes/spots.py, one feed per connection.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from spotlive.core.config import settings
from spotlive.models.spot import Spot
from spotlive.models.story import Post
from spotlive.services.clustering import compute_spots
from spotlive.services.expiry import filter_active, now_ms

logger = logging.getLogger(__name__)

StoryLoader = Callable[[], Awaitable[list[Post]]]
SpotPublisher = Callable[[list[Spot]], Awaitable[None]]


def engine_options(default_label: Optional[str] = None) -> dict:
    """compute_spots() keyword arguments for the configured deployment."""
    return {
        "default_label": default_label or settings.default_city,
        "threshold": settings.cluster_threshold_deg,
        "neighborhood_radius": settings.neighborhood_radius_deg,
    }


def _signature(spots: list[Spot]) -> tuple:
    return tuple(
        (s.id, s.vibe_score, tuple(p.id for p in s.members))
        for s in spots
    )


class SpotFeed:
    """Snapshot holder + timers around the pure spot engine."""

    def __init__(
        self,
        loader: StoryLoader,
        *,
        default_label: Optional[str] = None,
        sweep_interval: float = settings.expiry_sweep_seconds,
        refresh_interval: float = settings.refresh_interval_seconds,
        clock: Callable[[], int] = now_ms,
    ):
        self._loader = loader
        self._options = engine_options(default_label)
        self.sweep_interval = sweep_interval
        self.refresh_interval = refresh_interval
        self._clock = clock

        self._posts: list[Post] = []
        self._refresh_lock = asyncio.Lock()
        self._refresh_task: Optional[asyncio.Task] = None

    @property
    def posts(self) -> list[Post]:
        return list(self._posts)

    async def refresh(self) -> bool:
        """
        Replace the snapshot with a fresh load from the store.

        Returns False without loading when another refresh is in flight, or
        when the load fails (the previous snapshot is kept).
        """
        if self._refresh_lock.locked():
            logger.debug("Story refresh already in flight, skipping tick")
            return False
        async with self._refresh_lock:
            try:
                posts = await self._loader()
            except Exception as exc:
                logger.warning("Story refresh failed, keeping previous snapshot: %s", exc)
                return False
            self._posts = filter_active(posts, self._clock())
            return True

    def sweep(self, now: Optional[int] = None) -> bool:
        """Drop expired / hidden stories. Returns True if the set of story ids changed."""
        now = self._clock() if now is None else now
        active = filter_active(self._posts, now)
        changed = [p.id for p in active] != [p.id for p in self._posts]
        self._posts = active
        return changed

    def spots(self) -> list[Spot]:
        return compute_spots(self._posts, **self._options)

    def _schedule_refresh(self) -> None:
        if self._refresh_task is not None and not self._refresh_task.done():
            logger.debug("Previous refresh still running, skipping")
            return
        self._refresh_task = asyncio.create_task(self.refresh())

    async def run(self, publish: SpotPublisher) -> None:
        """
        Publish the spot list now and again whenever it changes, until cancelled.
        """
        await self.refresh()
        last = self.spots()
        await publish(last)

        loop = asyncio.get_running_loop()
        last_refresh = loop.time()
        try:
            while True:
                await asyncio.sleep(self.sweep_interval)
                if loop.time() - last_refresh >= self.refresh_interval:
                    self._schedule_refresh()
                    last_refresh = loop.time()
                swept = self.sweep()

                current = self.spots()
                if swept or _signature(current) != _signature(last):
                    await publish(current)
                    last = current
        finally:
            if self._refresh_task is not None and not self._refresh_task.done():
                self._refresh_task.cancel()
