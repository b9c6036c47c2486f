"""Pytest configuration and fixtures for service and API tests."""
import pytest
from httpx import ASGITransport, AsyncClient

from tabroom.models import Adjudicator, Room, Round, Team, Tournament, init_db
from web.api.main import create_app


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def app(tmp_path):
    """Fresh app on its own SQLite file. Tables are created here since ASGI lifespan doesn't run with httpx."""
    app = create_app(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(app.state.engine)
    yield app
    await app.state.engine.dispose()


@pytest.fixture
async def client(app):
    """Async HTTP client for testing the API."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
async def session(app):
    async with app.state.session_factory() as s:
        yield s


async def seed_tournament(session, teams=4, rooms=2, adjudicators=2, motions=("THW test",)):
    """Tournament with one setup round and named pools. Returns (tournament, round)."""
    t = Tournament(name="Test Open", format="AP", status="setup")
    session.add(t)
    await session.flush()
    for i in range(1, teams + 1):
        session.add(Team(tournament_id=t.id, name=f"T{i}", speaker_names=[f"T{i} A", f"T{i} B", f"T{i} C"]))
    for i in range(1, rooms + 1):
        session.add(Room(tournament_id=t.id, name=f"Room {i}"))
    for i in range(1, adjudicators + 1):
        session.add(Adjudicator(tournament_id=t.id, name=f"Adj {i}", strength=5.0))
    padded = list(motions) + [None] * (3 - len(motions))
    round_ = Round(
        tournament_id=t.id,
        round_number=1,
        name="Round 1",
        status="setup",
        motion_1=padded[0],
        motion_2=padded[1],
        motion_3=padded[2],
    )
    session.add(round_)
    await session.commit()
    return t, round_


@pytest.fixture
def seed():
    return seed_tournament
