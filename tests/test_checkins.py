import asyncio
import pytest

from station_presence.core.errors import NotFound, PreconditionFailed
from station_presence.services import activities, checkins, members

from .conftest import OTHER_STATION, STATION

async def test_check_in_without_active_activity(repo, member):
    with pytest.raises(PreconditionFailed, match="No active activity set"):
        await checkins.check_in(repo, member_id=member.id, station_id=STATION)

async def test_toggle_is_symmetric(repo, member, training):
    await activities.set_active_activity(repo, activity_id=training.id, station_id=STATION)
    action, first = await checkins.check_in(repo, member_id=member.id, station_id=STATION, method="kiosk")
    assert action == "checked-in"
    assert first.is_active and first.activity_name == "Training"
    assert first.member_name == "Alex Smith"

    action, second = await checkins.check_in(repo, member_id=member.id, station_id=STATION)
    assert action == "undone"
    assert second.id == first.id and not second.is_active
    assert await checkins.list_active_check_ins(repo, station_id=STATION) == []

async def test_explicit_activity_overrides_pointer(repo, member, training):
    meeting = await activities.create_activity(repo, name="Meeting", station_id=STATION)
    await activities.set_active_activity(repo, activity_id=training.id, station_id=STATION)
    _, c = await checkins.check_in(repo, member_id=member.id, activity_id=meeting.id, station_id=STATION)
    assert c.activity_id == meeting.id

async def test_deleted_activity_rejected(repo, member):
    a = await activities.create_activity(repo, name="Open day", station_id=STATION)
    await activities.delete_activity(repo, activity_id=a.id, station_id=STATION)
    with pytest.raises(NotFound):
        await checkins.check_in(repo, member_id=member.id, activity_id=a.id, station_id=STATION)

async def test_member_from_other_station_not_found(repo, member, training):
    with pytest.raises(NotFound):
        await checkins.check_in(repo, member_id=member.id, activity_id=training.id, station_id=OTHER_STATION)

async def test_concurrent_toggles_flip_once_each(repo, member, training):
    await activities.set_active_activity(repo, activity_id=training.id, station_id=STATION)
    results = await asyncio.gather(*[
        checkins.check_in(repo, member_id=member.id, station_id=STATION) for _ in range(3)
    ])
    actions = sorted(a for a, _ in results)
    assert actions == ["checked-in", "checked-in", "undone"]
    active = await checkins.list_active_check_ins(repo, station_id=STATION)
    assert len(active) == 1

async def test_undo_check_in(repo, member, training):
    await activities.set_active_activity(repo, activity_id=training.id, station_id=STATION)
    await checkins.check_in(repo, member_id=member.id, station_id=STATION)
    closed = await checkins.undo_check_in(repo, member_id=member.id, station_id=STATION)
    assert not closed.is_active
    with pytest.raises(NotFound):
        await checkins.undo_check_in(repo, member_id=member.id, station_id=STATION)

async def test_url_check_in_is_not_a_toggle(repo, member, training):
    await activities.set_active_activity(repo, activity_id=training.id, station_id=STATION)
    action, m, c = await checkins.url_check_in(repo, identifier="alex SMITH", station_id=STATION)
    assert action == "checked-in" and m.id == member.id and c.method == "qr"
    action, _, again = await checkins.url_check_in(repo, identifier=member.qr_code, station_id=STATION)
    assert action == "already-checked-in"
    assert again.id == c.id and again.is_active

async def test_url_check_in_unknown_member(repo, member, training):
    await activities.set_active_activity(repo, activity_id=training.id, station_id=STATION)
    with pytest.raises(NotFound):
        await checkins.url_check_in(repo, identifier="Nobody", station_id=STATION)

async def test_member_history_keeps_snapshot_names(repo, member, training):
    await activities.set_active_activity(repo, activity_id=training.id, station_id=STATION)
    await checkins.check_in(repo, member_id=member.id, station_id=STATION)
    await members.update_member(repo, member_id=member.id, station_id=STATION, name="Alex Jones")
    history = await members.member_history(repo, member_id=member.id, station_id=STATION)
    assert [c.member_name for c in history] == ["Alex Smith"]
