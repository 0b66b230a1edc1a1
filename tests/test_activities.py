import pytest

from station_presence.core.errors import NotFound, PreconditionFailed, ValidationFailure
from station_presence.services import activities as svc
from station_presence.services.activities import infer_category

from .conftest import OTHER_STATION, STATION

async def test_builtins_seeded_once_and_sorted(repo):
    first = await svc.list_activities(repo, station_id=STATION)
    second = await svc.list_activities(repo, station_id=STATION)
    assert [a.name for a in first] == [
        "Brigade Training", "District Training", "Maintenance", "Meeting", "Training",
    ]
    assert [a.id for a in first] == [a.id for a in second]
    assert all(not a.is_custom for a in first)

async def test_custom_activity_sorted_after_builtins(repo):
    await svc.create_activity(repo, name="  apparatus check ", station_id=STATION)
    acts = await svc.list_activities(repo, station_id=STATION)
    assert acts[-1].name == "apparatus check"
    assert acts[-1].is_custom
    assert acts[-1].category == "other"
    assert acts[-1].tag_color == "#bcbec0"

async def test_create_activity_rejects_blank_name(repo):
    with pytest.raises(ValidationFailure):
        await svc.create_activity(repo, name="   ", station_id=STATION)

@pytest.mark.parametrize("name,category", [
    ("Night Training", "training"),
    ("Pump maintenance", "maintenance"),
    ("Committee Meeting", "meeting"),
    ("Fundraiser", "other"),
])
def test_infer_category(name, category):
    assert infer_category(name) == category

async def test_active_activity_not_set(repo):
    with pytest.raises(NotFound, match="No active activity set"):
        await svc.get_active_activity(repo, station_id=STATION)

async def test_set_active_activity_replaces_pointer(repo, training):
    meeting = await svc.create_activity(repo, name="Meeting night", station_id=STATION)
    await svc.set_active_activity(repo, activity_id=training.id, station_id=STATION, set_by="kiosk")
    pointer, activity = await svc.set_active_activity(repo, activity_id=meeting.id, station_id=STATION)
    assert pointer.activity_id == meeting.id
    assert activity.name == "Meeting night"
    assert await repo.count_active_activity_pointers(STATION) == 1

async def test_cannot_activate_other_station_activity(repo, training):
    with pytest.raises(NotFound):
        await svc.set_active_activity(repo, activity_id=training.id, station_id=OTHER_STATION)

async def test_delete_custom_activity_is_soft(repo):
    a = await svc.create_activity(repo, name="Open day", station_id=STATION)
    await svc.delete_activity(repo, activity_id=a.id, station_id=STATION)
    names = [x.name for x in await svc.list_activities(repo, station_id=STATION)]
    assert "Open day" not in names
    stored = await svc.get_activity(repo, activity_id=a.id, station_id=STATION, usable=False)
    assert stored.is_deleted
    with pytest.raises(NotFound):
        await svc.set_active_activity(repo, activity_id=a.id, station_id=STATION)

async def test_builtin_activity_cannot_be_deleted(repo, training):
    with pytest.raises(PreconditionFailed):
        await svc.delete_activity(repo, activity_id=training.id, station_id=STATION)
