from __future__ import annotations
import logging
import uuid
from datetime import datetime, timedelta, timezone

from ..core.config import get_settings
from ..core.errors import Forbidden, NotFound, PreconditionFailed
from ..repositories import Repository
from ..schemas import Event, EventAuditLog, EventParticipant, EventWithParticipants
from .activities import get_activity
from .members import get_member
from .rollover import deactivate_expired_events

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

def _now():
    return datetime.now(timezone.utc)

async def _load_event(repo: Repository, event_id: str, station_id: str | None) -> Event:
    e = await repo.get_event(event_id)
    if not e or (station_id is not None and e.station_id != station_id):
        raise NotFound("Event not found")
    return e

async def create_event(
    repo: Repository, *, activity_id: str, station_id: str, created_by: str | None = None
) -> Event:
    activity = await get_activity(repo, activity_id=activity_id, station_id=station_id)
    now = _now()
    event = await repo.create_event(Event(
        id=str(uuid.uuid4()),
        station_id=station_id,
        activity_id=activity.id,
        activity_name=activity.name,
        start_time=now,
        is_active=True,
        created_by=created_by,
        created_at=now,
        updated_at=now,
    ))
    logger.info(f"Event {event.id} started for '{activity.name}' at station {station_id}")
    return event

async def end_event(
    repo: Repository, *, event_id: str, station_id: str | None = None, now: datetime | None = None
) -> Event:
    e = await _load_event(repo, event_id, station_id)
    if not e.is_active:
        return e
    async with repo.lock("event", e.id):
        ended = await repo.end_event(e.id, now or _now())
    if not ended:
        raise NotFound("Event not found")
    logger.info(f"Event {e.id} ended at {ended.end_time.isoformat()}")
    return ended

async def reactivate_event(
    repo: Repository,
    *,
    event_id: str,
    station_id: str | None = None,
    window_hours: float | None = None,
    now: datetime | None = None,
) -> Event:
    """Bring an ended event back, as long as it ended within the window."""
    if window_hours is None:
        window_hours = get_settings().reactivate_window_hours
    now = now or _now()
    e = await _load_event(repo, event_id, station_id)
    if e.is_active or e.end_time is None:
        return e
    if now - e.end_time > timedelta(hours=window_hours):
        raise Forbidden(f"Cannot reactivate events that ended more than {window_hours:g} hours ago")
    async with repo.lock("event", e.id):
        reactivated = await repo.reactivate_event(e.id, now)
    if not reactivated:
        raise NotFound("Event not found")
    logger.info(f"Event {e.id} reactivated")
    return reactivated

async def _audit(
    repo: Repository,
    *,
    action: str,
    participant: EventParticipant,
    performed_by: str | None,
    notes: str | None,
    at: datetime,
) -> EventAuditLog:
    return await repo.append_audit_log(EventAuditLog(
        id=str(uuid.uuid4()),
        event_id=participant.event_id,
        station_id=participant.station_id,
        action=action,
        participant_id=participant.id,
        member_id=participant.member_id,
        member_name=participant.member_name,
        member_rank=participant.member_rank,
        method=participant.method,
        performed_by=performed_by,
        notes=notes,
        request_id=str(uuid.uuid4()),
        timestamp=at,
    ))

async def add_or_remove_participant(
    repo: Repository,
    *,
    event_id: str,
    member_id: str,
    station_id: str | None = None,
    method: str = "mobile",
    location: str | None = None,
    is_offsite: bool = False,
    performed_by: str | None = None,
    notes: str | None = None,
) -> tuple[str, EventParticipant]:
    """Toggle a member on an event's roster.

    Returns ``("removed", participant)`` if the member was already on it,
    otherwise ``("added", participant)``. Each outcome appends one audit entry.
    """
    event = await _load_event(repo, event_id, station_id)
    if not event.is_active:
        raise PreconditionFailed("Cannot add participants to an ended event")
    member = await get_member(repo, member_id=member_id, station_id=event.station_id)

    async with repo.lock("participant", event.id, member.id), repo.lock("event", event.id):
        current = await repo.get_event(event.id)
        if not current or not current.is_active:
            raise PreconditionFailed("Cannot add participants to an ended event")
        now = _now()
        existing = await repo.get_participant_for_member(event.id, member.id)
        if existing:
            await repo.remove_participant(event.id, existing.id)
            await _audit(repo, action="participant-removed", participant=existing,
                         performed_by=performed_by, notes=notes, at=now)
            logger.info(f"Participant removed: member={member.id} event={event.id}")
            return "removed", existing
        participant = await repo.add_participant(EventParticipant(
            id=str(uuid.uuid4()),
            event_id=event.id,
            station_id=event.station_id,
            member_id=member.id,
            member_name=member.name,
            member_rank=member.rank,
            check_in_time=now,
            method=method,
            location=location,
            is_offsite=is_offsite,
        ))
        await _audit(repo, action="participant-added", participant=participant,
                     performed_by=performed_by, notes=notes, at=now)
    logger.info(f"Participant added: member={member.id} event={event.id} method={method}")
    return "added", participant

async def remove_participant(
    repo: Repository,
    *,
    event_id: str,
    participant_id: str,
    station_id: str | None = None,
    performed_by: str | None = None,
) -> EventParticipant:
    event = await _load_event(repo, event_id, station_id)
    target = next((p for p in await repo.list_participants(event.id) if p.id == participant_id), None)
    if not target:
        raise NotFound("Participant not found")
    async with repo.lock("participant", event.id, target.member_id):
        removed = await repo.remove_participant(event.id, participant_id)
        if not removed:
            raise NotFound("Participant not found")
        await _audit(repo, action="participant-removed", participant=removed,
                     performed_by=performed_by, notes=None, at=_now())
    logger.info(f"Participant {participant_id} removed from event {event.id}")
    return removed

async def _with_participants(repo: Repository, e: Event) -> EventWithParticipants:
    participants = await repo.list_participants(e.id)
    return EventWithParticipants(
        **e.model_dump(),
        participants=participants,
        participant_count=len(participants),
    )

async def get_events(
    repo: Repository, *, station_id: str, limit: int = 50, offset: int = 0
) -> list[EventWithParticipants]:
    await deactivate_expired_events(repo, station_id=station_id)
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    rows = await repo.list_events(station_id, limit=limit, offset=max(0, offset))
    return [await _with_participants(repo, e) for e in rows]

async def get_active_events(repo: Repository, *, station_id: str) -> list[EventWithParticipants]:
    await deactivate_expired_events(repo, station_id=station_id)
    return [await _with_participants(repo, e) for e in await repo.list_active_events(station_id)]

async def get_event_with_participants(
    repo: Repository, *, event_id: str, station_id: str | None = None
) -> EventWithParticipants:
    await deactivate_expired_events(repo, station_id=station_id)
    e = await _load_event(repo, event_id, station_id)
    return await _with_participants(repo, e)

async def list_active_participants(repo: Repository, *, station_id: str) -> list[EventParticipant]:
    await deactivate_expired_events(repo, station_id=station_id)
    rows: list[EventParticipant] = []
    for e in await repo.list_active_events(station_id):
        rows.extend(await repo.list_participants(e.id))
    rows.sort(key=lambda p: p.check_in_time, reverse=True)
    return rows

async def get_audit_logs(
    repo: Repository, *, event_id: str, station_id: str | None = None
) -> list[EventAuditLog]:
    e = await _load_event(repo, event_id, station_id)
    return await repo.list_audit_logs(e.id)
