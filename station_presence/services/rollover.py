"""Automatic end-of-day rollover for events.

An event counts as expired once ``event_expiry_hours`` have passed since its
start, whether or not anyone ended it. Expired active events are ended through
the repository's conditional ``end_event``, so concurrent sweeps (the
scheduler, the admin endpoint, listing calls) never stamp an event twice.
"""
from __future__ import annotations
import logging
from datetime import datetime, timedelta, timezone

from ..core.config import get_settings
from ..repositories import Repository
from ..schemas import Event

logger = logging.getLogger(__name__)

def _now():
    return datetime.now(timezone.utc)

def is_expired(event: Event, threshold_hours: float, now: datetime | None = None) -> bool:
    now = now or _now()
    return now - event.start_time >= timedelta(hours=threshold_hours)

async def auto_expire_events(
    repo: Repository,
    events: list[Event],
    *,
    threshold_hours: float | None = None,
    now: datetime | None = None,
) -> list[str]:
    if threshold_hours is None:
        threshold_hours = get_settings().event_expiry_hours
    now = now or _now()
    deactivated: list[str] = []
    for e in events:
        if not e.is_active or not is_expired(e, threshold_hours, now):
            continue
        async with repo.lock("event", e.id):
            ended = await repo.end_event(e.id, now)
        # another sweep may have won the race; only count our own transition
        if ended and ended.end_time == now:
            deactivated.append(e.id)
            logger.info(f"Auto-expired event {e.id} ({e.activity_name}) for station {e.station_id}")
    return deactivated

async def deactivate_expired_events(
    repo: Repository,
    *,
    station_id: str | None = None,
    threshold_hours: float | None = None,
    now: datetime | None = None,
) -> list[str]:
    events = await repo.list_active_events(station_id)
    ids = await auto_expire_events(repo, events, threshold_hours=threshold_hours, now=now)
    if ids:
        scope = station_id or "all stations"
        logger.info(f"Rollover deactivated {len(ids)} event(s) for {scope}")
    return ids
