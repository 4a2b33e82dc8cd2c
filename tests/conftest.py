"""Pytest configuration and fixtures."""
import os

# Set test env BEFORE any imports that use config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["EVENTS_WEBHOOK_URL"] = ""

import random

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

from engine.models import (
    BracketFormat,
    Participant,
    Tournament,
    TournamentStatus,
    get_async_session,
)
from engine.models.base import create_tables, make_session_factory
from engine.services.tournaments import TournamentService
from web.api.main import app
from web.api.routes import get_events


class RecordingEvents:
    """Event broadcaster that keeps everything it is given."""

    def __init__(self):
        self.published = []

    async def publish(self, tournament_id, event, data):
        self.published.append((tournament_id, event, data))

    def names(self):
        return [event for _, event, _ in self.published]


class FailingEvents:
    async def publish(self, tournament_id, event, data):
        raise ConnectionError("broadcast service unreachable")


class RecordingPrizes:
    """Prize distributor that counts calls; optionally fails every time."""

    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    async def distribute_prizes(self, tournament_id):
        self.calls.append(tournament_id)
        if self.fail:
            raise RuntimeError("wallet service down")
        return {"distributed": True, "message": "ok"}


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def session_factory():
    """Fresh in-memory database per test."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    await create_tables(engine)
    yield make_session_factory(engine)
    await engine.dispose()


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def events():
    return RecordingEvents()


@pytest.fixture
def service(session, events):
    return TournamentService(session, events=events, rng=random.Random(7))


@pytest.fixture
def make_tournament(session):
    """Create a tournament with ``n`` participants p1..pn (seeded 1..n unless seeded=False)."""

    async def _make(n, bracket_format=BracketFormat.SINGLE_ELIMINATION, prize_pool=0.0, seeded=True):
        t = Tournament(
            name=f"Cup of {n}",
            bracket_format=bracket_format.value,
            prize_pool=prize_pool,
            status=TournamentStatus.REGISTRATION_OPEN.value,
        )
        session.add(t)
        await session.flush()
        session.add_all(
            [
                Participant(
                    tournament_id=t.id,
                    user_id=f"p{i}",
                    display_name=f"Player {i}",
                    seed=i if seeded else None,
                )
                for i in range(1, n + 1)
            ]
        )
        await session.flush()
        return t

    return _make


@pytest.fixture
async def client(session_factory, events):
    """Async HTTP client for testing the API (ASGI lifespan doesn't run with httpx)."""

    async def _session():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_async_session] = _session
    app.dependency_overrides[get_events] = lambda: events
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def play_out(service):
    """Report results until no READY match is left. ``pick`` returns (score_a, score_b)."""

    async def _play(tournament_id, pick=lambda m: (3, 1)):
        played = 0
        while True:
            ready = [m for m in await service.repo.list_matches(tournament_id) if m.status == "READY"]
            if not ready:
                return played
            score_a, score_b = pick(ready[0])
            await service.report_score(tournament_id, ready[0].id, score_a, score_b)
            played += 1

    return _play
