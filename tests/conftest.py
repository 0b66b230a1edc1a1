from __future__ import annotations
import pytest
from fastapi.testclient import TestClient

from station_presence.repositories import MemoryRepository, SqlRepository
from station_presence.services import activities, members

STATION = "station-a"
OTHER_STATION = "station-b"

@pytest.fixture(params=["memory", "sql"])
async def repo(request, tmp_path):
    if request.param == "memory":
        r = MemoryRepository()
    else:
        r = SqlRepository(f"sqlite+aiosqlite:///{tmp_path / 'presence.db'}")
    await r.init()
    yield r
    await r.close()

@pytest.fixture
async def member(repo):
    return await members.create_member(repo, name="Alex Smith", rank="Firefighter", station_id=STATION)

@pytest.fixture
async def training(repo):
    acts = await activities.list_activities(repo, station_id=STATION)
    return next(a for a in acts if a.name == "Training")

@pytest.fixture
def client():
    from station_presence.main import app
    with TestClient(app) as c:
        yield c
