import asyncio
from datetime import datetime, timedelta, timezone
import pytest

from station_presence.core.errors import Forbidden, NotFound, PreconditionFailed
from station_presence.repositories import MemoryRepository
from station_presence.schemas import Event
from station_presence.services import events, members

from .conftest import OTHER_STATION, STATION

@pytest.fixture
async def event(repo, training):
    return await events.create_event(repo, activity_id=training.id, station_id=STATION, created_by="officer")

async def test_create_event_snapshots_activity(repo, event, training):
    assert event.is_active and event.end_time is None
    assert event.activity_name == training.name
    assert event.station_id == STATION

async def test_end_event_is_idempotent(repo, event):
    ended = await events.end_event(repo, event_id=event.id)
    assert not ended.is_active and ended.end_time is not None
    again = await events.end_event(repo, event_id=event.id, now=ended.end_time + timedelta(hours=1))
    assert again.end_time == ended.end_time

async def test_end_event_other_station(repo, event):
    with pytest.raises(NotFound):
        await events.end_event(repo, event_id=event.id, station_id=OTHER_STATION)

async def test_reactivate_window_is_inclusive(repo, event):
    ended = await events.end_event(repo, event_id=event.id)
    back = await events.reactivate_event(
        repo, event_id=event.id, window_hours=24, now=ended.end_time + timedelta(hours=24)
    )
    assert back.is_active and back.end_time is None

async def test_reactivate_outside_window_forbidden(repo, event):
    ended = await events.end_event(repo, event_id=event.id)
    with pytest.raises(Forbidden):
        await events.reactivate_event(
            repo, event_id=event.id, window_hours=24, now=ended.end_time + timedelta(hours=24, seconds=1)
        )

async def test_reactivate_active_event_unchanged(repo, event):
    same = await events.reactivate_event(repo, event_id=event.id)
    assert same.is_active and same.updated_at == event.updated_at

async def test_participant_toggle_and_audit(repo, event, member):
    action, p = await events.add_or_remove_participant(
        repo, event_id=event.id, member_id=member.id, method="kiosk", performed_by="officer"
    )
    assert action == "added"
    assert p.station_id == STATION and p.member_rank == "Firefighter"

    action, removed = await events.add_or_remove_participant(repo, event_id=event.id, member_id=member.id)
    assert action == "removed" and removed.id == p.id

    logs = await events.get_audit_logs(repo, event_id=event.id)
    assert [entry.action for entry in logs] == ["participant-added", "participant-removed"]
    assert logs[0].performed_by == "officer"

async def test_at_most_one_participant_per_member(repo, event, member):
    results = await asyncio.gather(*[
        events.add_or_remove_participant(repo, event_id=event.id, member_id=member.id) for _ in range(3)
    ])
    assert sorted(a for a, _ in results) == ["added", "added", "removed"]
    detail = await events.get_event_with_participants(repo, event_id=event.id)
    assert detail.participant_count == 1

async def test_ended_event_rejects_participants(repo, event, member):
    await events.end_event(repo, event_id=event.id)
    with pytest.raises(PreconditionFailed, match="ended event"):
        await events.add_or_remove_participant(repo, event_id=event.id, member_id=member.id)

async def test_missing_event_checked_before_member(repo):
    with pytest.raises(NotFound, match="Event not found"):
        await events.add_or_remove_participant(repo, event_id="nope", member_id="nobody")

async def test_member_from_other_station_cannot_join(repo, event):
    stranger = await members.create_member(repo, name="Sam", station_id=OTHER_STATION)
    with pytest.raises(NotFound, match="Member not found"):
        await events.add_or_remove_participant(repo, event_id=event.id, member_id=stranger.id)

async def test_remove_participant_by_id(repo, event, member):
    _, p = await events.add_or_remove_participant(repo, event_id=event.id, member_id=member.id)
    await events.remove_participant(repo, event_id=event.id, participant_id=p.id)
    with pytest.raises(NotFound):
        await events.remove_participant(repo, event_id=event.id, participant_id=p.id)
    logs = await events.get_audit_logs(repo, event_id=event.id)
    assert logs[-1].action == "participant-removed"

async def test_listings_are_station_scoped(repo, training, member):
    e1 = await events.create_event(repo, activity_id=training.id, station_id=STATION)
    e2 = await events.create_event(repo, activity_id=training.id, station_id=STATION)
    await events.add_or_remove_participant(repo, event_id=e1.id, member_id=member.id)
    assert [e.id for e in await events.get_events(repo, station_id=STATION)] == [e2.id, e1.id]
    assert await events.get_events(repo, station_id=OTHER_STATION) == []
    assert len(await events.get_active_events(repo, station_id=STATION)) == 2
    active = await events.list_active_participants(repo, station_id=STATION)
    assert [p.member_id for p in active] == [member.id]
    with pytest.raises(NotFound):
        await events.get_event_with_participants(repo, event_id=e1.id, station_id=OTHER_STATION)

async def test_get_events_caps_limit(repo, training):
    for _ in range(3):
        await events.create_event(repo, activity_id=training.id, station_id=STATION)
    assert len(await events.get_events(repo, station_id=STATION, limit=1000)) == 3
    assert len(await events.get_events(repo, station_id=STATION, limit=2, offset=2)) == 1

async def test_listings_include_rosters(repo, event, member):
    await events.add_or_remove_participant(repo, event_id=event.id, member_id=member.id)
    listed = await events.get_events(repo, station_id=STATION)
    assert listed[0].participant_count == 1
    assert listed[0].participants[0].member_id == member.id
    active = await events.get_active_events(repo, station_id=STATION)
    assert [p.member_id for p in active[0].participants] == [member.id]

async def test_reactivate_without_end_time_unchanged():
    repo = MemoryRepository()
    now = datetime.now(timezone.utc)
    odd = await repo.create_event(Event(
        id="legacy", station_id=STATION, activity_id="a", activity_name="Training",
        start_time=now - timedelta(hours=2), end_time=None, is_active=False,
        created_at=now, updated_at=now,
    ))
    same = await events.reactivate_event(repo, event_id=odd.id)
    assert not same.is_active and same.end_time is None

async def test_roster_never_grows_after_end(repo, event, member):
    await asyncio.gather(
        events.end_event(repo, event_id=event.id),
        events.add_or_remove_participant(repo, event_id=event.id, member_id=member.id),
        return_exceptions=True,
    )
    ended = await repo.get_event(event.id)
    for p in await repo.list_participants(event.id):
        assert p.check_in_time <= ended.end_time

async def test_remove_and_toggle_off_audit_once(repo, event, member):
    _, p = await events.add_or_remove_participant(repo, event_id=event.id, member_id=member.id)
    await asyncio.gather(
        events.add_or_remove_participant(repo, event_id=event.id, member_id=member.id),
        events.remove_participant(repo, event_id=event.id, participant_id=p.id),
        return_exceptions=True,
    )
    logs = await events.get_audit_logs(repo, event_id=event.id)
    assert [entry.action for entry in logs].count("participant-removed") == 1
