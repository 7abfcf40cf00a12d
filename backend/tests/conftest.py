"""Shared test fixtures."""

from typing import Any, Dict, List, Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from wishlist_api.api.deps import get_offer_source, get_session_factory
from wishlist_api.db.models import Base
from wishlist_api.main import create_app


class FakeOfferSource:
    """Returns a fixed candidate list and records what it was asked."""

    def __init__(self, candidates: Optional[List[Any]] = None, error: Optional[Exception] = None):
        self.candidates = candidates or []
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def generate_candidates(self, title: str, context: Dict[str, Any]) -> List[Any]:
        self.calls.append({"title": title, "context": context})
        if self.error is not None:
            raise self.error
        return self.candidates


@pytest.fixture()
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture()
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture()
def offer_source() -> FakeOfferSource:
    return FakeOfferSource()


@pytest.fixture()
async def client(session_factory, offer_source):
    app = create_app()
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_offer_source] = lambda: offer_source

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture()
def user_headers() -> Dict[str, str]:
    return {"X-User-Id": "user-123"}
