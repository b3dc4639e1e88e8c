"""
Pytest configuration and fixtures for IP Check API tests.

Provides:
- Async SQLite in-memory database setup
- A scripted prober standing in for the system ping binary
- FastAPI app with dependency overrides
- AsyncClient for testing async endpoints
"""

from typing import Dict, List, Set

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker

import models  # noqa: F401
from database import Base, get_db
from main import app
from schemas import ProbeResult
from services.prober import get_prober


class FakeProber:
    """
    Prober with scripted outcomes.

    Addresses in ``alive`` answer, addresses in ``failing`` raise, everything
    else reports as unreachable.  Every probed address is recorded in
    ``calls``.
    """

    def __init__(self):
        self.alive: Set[str] = set()
        self.failing: Set[str] = set()
        self.latency: Dict[str, float] = {}
        self.calls: List[str] = []

    async def probe(self, address: str) -> ProbeResult:
        self.calls.append(address)
        if address in self.failing:
            raise RuntimeError(f"probe of {address} blew up")
        if address in self.alive:
            latency = self.latency.get(address, 1.2)
            return ProbeResult(
                ip=address,
                alive=True,
                time=latency,
                min=str(latency),
                max=str(latency),
                avg=str(round(latency)),
                packet_loss="0",
            )
        return ProbeResult(
            ip=address,
            alive=False,
            time="unknown",
            min="unknown",
            max="unknown",
            avg="-",
            packet_loss="100",
        )


@pytest_asyncio.fixture
async def session_factory():
    """
    Session factory bound to a fresh in-memory database.

    Yields:
        sessionmaker: Factory producing AsyncSession objects.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        future=True,
    )

    async_session = sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        future=True,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_session

    await engine.dispose()


@pytest.fixture
def fake_prober() -> FakeProber:
    return FakeProber()


@pytest_asyncio.fixture
async def async_client(session_factory, fake_prober):
    """
    Create an AsyncClient pointing to the FastAPI app with an in-memory
    test database and the scripted prober.

    Yields:
        httpx.AsyncClient: Async HTTP client for making requests to the app.
    """
    # Override the get_db dependency with test database
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_prober] = lambda: fake_prober

    # Create AsyncClient with ASGI transport
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    # Cleanup
    app.dependency_overrides.clear()
