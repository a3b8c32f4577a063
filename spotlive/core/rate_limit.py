"""
rate_limit.py — Global rate limiter instance.

Uses slowapi (a Starlette-compatible wrapper around the `limits` library).
Requests are keyed by client IP address.

Limited routes:
    POST /api/v1/stories              — settings.create_story_rate_limit
    POST /api/v1/stories/{id}/report  — settings.report_story_rate_limit

Usage in routes:
    from fastapi import Request
    from spotlive.core.rate_limit import limiter

    @router.post("")
    @limiter.limit(settings.create_story_rate_limit)
    async def create_story(request: Request, payload: StoryCreateRequest):
        ...
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Stories carry an author_id but no authenticated identity, so the client IP
# is the only key that cannot be spoofed from the request body.
limiter = Limiter(key_func=get_remote_address)
