"""
expiry.py — Story expiry filter.

Stories live for a fixed lifetime (24 h by default). A story stops being
visible the instant `now >= expires_at`, or as soon as moderation hides it.
filter_active() runs before every clustering pass and on the live feed's
sweep timer (every 10 s); it is pure, so running it again with the same
`now` changes nothing.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Iterable

from spotlive.models.story import Post

logger = logging.getLogger(__name__)

MS_PER_HOUR = 60 * 60 * 1000
DEFAULT_LIFETIME_HOURS = 24


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def expires_at_for(created_at: int, lifetime_hours: float = DEFAULT_LIFETIME_HOURS) -> int:
    """Expiry instant for a story created at `created_at` (epoch ms)."""
    return created_at + int(lifetime_hours * MS_PER_HOUR)


def is_well_formed(post: Post) -> bool:
    """
    True when the post honours the input contract: finite coordinates and
    expires_at strictly after created_at. Validated Posts always do; this
    guards models built with model_construct() or patched in place.
    """
    return (
        math.isfinite(post.latitude)
        and math.isfinite(post.longitude)
        and post.expires_at > post.created_at
    )


def is_active(post: Post, now: int) -> bool:
    """A post is active while now < expires_at and it is not hidden."""
    return post.expires_at > now and not post.is_hidden


def filter_active(posts: Iterable[Post], now: int) -> list[Post]:
    """
    Return the posts that are still visible at `now`, in input order.

    Malformed posts are dropped here too, so nothing downstream has to
    reason about a story that "expires" before it was created.
    """
    active = []
    for post in posts:
        if not is_well_formed(post):
            logger.debug("Dropping malformed story %s", post.id)
            continue
        if is_active(post, now):
            active.append(post)
    return active
