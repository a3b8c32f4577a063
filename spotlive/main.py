"""
SpotLive API — Application entry point.

Bootstraps FastAPI, wires up middleware, registers route groups,
and manages the MongoDB connection lifecycle.

Spot views are computed per request from the story store; the WebSocket
stream keeps one SpotFeed per connection.

Extension points:
  - Add new route groups with app.include_router() below
  - Add new middleware in the middleware block
  - Change startup behaviour in the lifespan context manager
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from spotlive.core.config import settings
from spotlive.core.database import close_mongo_connection, connect_to_mongo
from spotlive.core.rate_limit import limiter
from spotlive.routes.health import router as health_router
from spotlive.routes.spots import router as spots_router
from spotlive.routes.stories import router as stories_router

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage startup and shutdown lifecycle.

    Code before `yield` runs on startup; code after runs on shutdown.
    """
    logger.info("Starting SpotLive API (env: %s)", settings.environment)
    await connect_to_mongo()
    yield
    logger.info("Shutting down SpotLive API")
    await close_mongo_connection()


# ─── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="SpotLive API",
    description=(
        "Ephemeral geotagged stories grouped into live spots, "
        "ranked by proximity or vibe score."
    ),
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)


# ─── Rate limiting ─────────────────────────────────────────────────────────────
# Routes opt-in with @limiter.limit("N/minute") + request: Request parameter.
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ─── Middleware ─────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Routes ────────────────────────────────────────────────────────────────────
app.include_router(health_router, prefix="/health", tags=["health"])
app.include_router(stories_router)
app.include_router(spots_router)


@app.get("/", tags=["root"])
async def root():
    """API root: metadata plus the entry points a client starts from."""
    return {
        "name": "SpotLive API",
        "version": "0.1.0",
        "status": "running",
        "environment": settings.environment,
        "story_lifetime_hours": settings.story_lifetime_hours,
        "endpoints": {
            "stories": "/api/v1/stories",
            "spots": "/api/v1/spots",
            "neighborhoods": "/api/v1/spots/neighborhoods",
            "stream": "/api/v1/spots/stream",
        },
        "docs": "/docs",
    }
