"""
pytest configuration and shared fixtures for the SpotLive API tests.

Tests must not require a live MongoDB. We achieve this by:
  1. Patching connect_to_mongo / close_mongo_connection to no-ops so
     FastAPI's lifespan doesn't try to reach a real database.
  2. Setting db_client.client = None (disconnected) so health check
     correctly reports "disconnected" — a valid test-mode state.
  3. Providing an in-memory FakeDB that understands the handful of Motor
     calls the story store makes, for route tests that need persistence.

Core engine tests (expiry, clustering, scoring, projection) need none of
this; they build Post models with the make_post factory.
"""

import os
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("ENVIRONMENT", "test")

BASE_NOW = 1_740_000_000_000       # fixed epoch ms used across tests
HOUR_MS = 60 * 60 * 1000


# ── Post factory ──────────────────────────────────────────────────────────────

@pytest.fixture()
def make_post():
    """
    Build a valid Post with sensible defaults.

    Usage:
        post = make_post("s1", 9.515, -13.710, likes=3, tags=["#beach"])
    """
    from spotlive.models.story import Post

    def _make(
        post_id="s1",
        lat=9.515,
        lng=-13.710,
        likes=0,
        created_at=BASE_NOW,
        expires_at=None,
        place="Le Petit Bateau",
        tags=None,
        hidden=False,
        author="u1",
    ):
        return Post(
            id=post_id,
            author_id=author,
            latitude=lat,
            longitude=lng,
            created_at=created_at,
            expires_at=expires_at if expires_at is not None else created_at + 24 * HOUR_MS,
            place_name=place,
            like_count=likes,
            tags=tags if tags is not None else ["#SpotLive"],
            is_hidden=hidden,
        )

    return _make


# ── In-memory Motor stand-in ──────────────────────────────────────────────────

def _matches(doc, query):
    for key, cond in query.items():
        value = doc.get(key)
        if isinstance(cond, dict):
            for op, operand in cond.items():
                if op == "$gt" and not (value is not None and value > operand):
                    return False
                if op == "$ne" and value == operand:
                    return False
        elif value != cond:
            return False
    return True


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, field, direction=1):
        self._docs = sorted(self._docs, key=lambda d: d.get(field), reverse=direction < 0)
        return self

    async def __aiter__(self):
        for doc in self._docs:
            yield doc


class FakeCollection:
    def __init__(self, unique_keys=None):
        self._docs = []
        self._unique_keys = unique_keys

    async def find_one(self, query):
        for doc in self._docs:
            if _matches(doc, query):
                return dict(doc)
        return None

    def find(self, query=None):
        return FakeCursor([dict(d) for d in self._docs if _matches(d, query or {})])

    async def insert_one(self, doc):
        if self._unique_keys:
            key = {k: doc.get(k) for k in self._unique_keys}
            if any(_matches(d, key) for d in self._docs):
                raise DuplicateKeyError("duplicate key")
        if "_id" in doc and any(d["_id"] == doc["_id"] for d in self._docs):
            raise DuplicateKeyError("duplicate _id")
        doc = dict(doc)
        doc.setdefault("_id", f"oid_{len(self._docs)}")
        self._docs.append(doc)
        result = MagicMock()
        result.inserted_id = doc["_id"]
        return result

    async def delete_one(self, query):
        for i, doc in enumerate(self._docs):
            if _matches(doc, query):
                del self._docs[i]
                return

    async def delete_many(self, query):
        self._docs = [d for d in self._docs if not _matches(d, query)]

    async def update_one(self, query, update):
        for doc in self._docs:
            if _matches(doc, query):
                self._apply(doc, update)
                return

    async def find_one_and_update(self, query, update, return_document=ReturnDocument.BEFORE):
        for doc in self._docs:
            if _matches(doc, query):
                before = dict(doc)
                self._apply(doc, update)
                return dict(doc) if return_document == ReturnDocument.AFTER else before
        return None

    async def count_documents(self, query):
        return sum(1 for d in self._docs if _matches(d, query))

    @staticmethod
    def _apply(doc, update):
        for field, delta in update.get("$inc", {}).items():
            doc[field] = doc.get(field, 0) + delta
        for field, value in update.get("$set", {}).items():
            doc[field] = value


class FakeDB:
    def __init__(self):
        self._cols = {
            "story_likes": FakeCollection(unique_keys=("story_id", "user_id")),
            "story_reports": FakeCollection(unique_keys=("story_id", "user_id")),
        }

    def __getitem__(self, name):
        if name not in self._cols:
            self._cols[name] = FakeCollection()
        return self._cols[name]


@pytest.fixture()
def fake_db():
    return FakeDB()


# ── App fixtures ──────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
async def mock_db():
    """
    Patch the MongoDB lifecycle for every test.

    - connect_to_mongo → no-op AsyncMock (startup doesn't attempt real connection)
    - close_mongo_connection → no-op AsyncMock
    - db_client.client / db_client.db → None
    """
    with (
        patch("spotlive.core.database.connect_to_mongo", new_callable=AsyncMock),
        patch("spotlive.core.database.close_mongo_connection", new_callable=AsyncMock),
    ):
        import spotlive.core.database as db_module

        original_client = db_module.db_client.client
        original_db = db_module.db_client.db

        db_module.db_client.client = None
        db_module.db_client.db = None

        yield

        db_module.db_client.client = original_client
        db_module.db_client.db = original_db


def _reset_limiter():
    from spotlive.core.rate_limit import limiter

    try:
        limiter._limiter.storage.reset()
    except Exception:
        pass  # Some storage backends don't support reset — safe to ignore.


@pytest.fixture()
async def client(mock_db):  # noqa: ARG001 — mock_db must run first
    """HTTPX async client against the app with no database (degraded mode)."""
    from spotlive.main import app

    _reset_limiter()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
async def db_client(fake_db):
    """HTTPX async client with get_db overridden to the in-memory FakeDB."""
    from spotlive.core.database import get_db
    from spotlive.main import app

    _reset_limiter()
    app.dependency_overrides[get_db] = lambda: fake_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
