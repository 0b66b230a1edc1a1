from __future__ import annotations
import logging
import uuid
from datetime import datetime, timezone

from ..core.errors import NotFound, PreconditionFailed
from ..repositories import Repository
from ..schemas import CheckIn
from .activities import get_activity
from .members import find_member_by_identifier, get_member

logger = logging.getLogger(__name__)

def _now():
    return datetime.now(timezone.utc)

async def _current_activity_id(repo: Repository, station_id: str) -> str:
    pointer = await repo.get_active_activity(station_id)
    if not pointer:
        raise PreconditionFailed("No active activity set")
    return pointer.activity_id

async def check_in(
    repo: Repository,
    *,
    member_id: str,
    station_id: str,
    activity_id: str | None = None,
    method: str = "mobile",
    location: str | None = None,
    is_offsite: bool = False,
) -> tuple[str, CheckIn]:
    """Toggle a member's presence at a station.

    Returns ``("undone", check_in)`` when an active check-in was closed, or
    ``("checked-in", check_in)`` when a new one was opened. Explicit
    ``activity_id`` wins over the station's active activity.
    """
    member = await get_member(repo, member_id=member_id, station_id=station_id)
    if not activity_id:
        activity_id = await _current_activity_id(repo, station_id)
    activity = await get_activity(repo, activity_id=activity_id, station_id=station_id)

    async with repo.lock("check-in", station_id, member.id):
        now = _now()
        existing = await repo.get_active_check_in(member.id, station_id)
        if existing:
            closed = await repo.deactivate_check_in(existing.id, now)
            logger.info(f"Check-in undone: member={member.id} station={station_id}")
            return "undone", closed
        created = await repo.create_check_in(CheckIn(
            id=str(uuid.uuid4()),
            station_id=station_id,
            member_id=member.id,
            member_name=member.name,
            activity_id=activity.id,
            activity_name=activity.name,
            check_in_time=now,
            method=method,
            location=location,
            is_offsite=is_offsite,
            is_active=True,
            created_at=now,
            updated_at=now,
        ))
    logger.info(f"Checked in: member={member.id} activity={activity.id} station={station_id} method={method}")
    return "checked-in", created

async def undo_check_in(repo: Repository, *, member_id: str, station_id: str) -> CheckIn:
    async with repo.lock("check-in", station_id, member_id):
        existing = await repo.get_active_check_in(member_id, station_id)
        if not existing:
            raise NotFound("No active check-in found for this member")
        closed = await repo.deactivate_check_in(existing.id, _now())
    logger.info(f"Check-in undone: member={member_id} station={station_id}")
    return closed

async def list_active_check_ins(repo: Repository, *, station_id: str) -> list[CheckIn]:
    return await repo.list_active_check_ins(station_id)

async def url_check_in(repo: Repository, *, identifier: str, station_id: str):
    """Sign a member in from a shared link. Never signs anyone out."""
    member = await find_member_by_identifier(repo, identifier=identifier, station_id=station_id)
    activity_id = await _current_activity_id(repo, station_id)
    activity = await get_activity(repo, activity_id=activity_id, station_id=station_id)

    async with repo.lock("check-in", station_id, member.id):
        existing = await repo.get_active_check_in(member.id, station_id)
        if existing:
            return "already-checked-in", member, existing
        now = _now()
        created = await repo.create_check_in(CheckIn(
            id=str(uuid.uuid4()),
            station_id=station_id,
            member_id=member.id,
            member_name=member.name,
            activity_id=activity.id,
            activity_name=activity.name,
            check_in_time=now,
            method="qr",
            is_active=True,
            created_at=now,
            updated_at=now,
        ))
    logger.info(f"URL check-in: member={member.id} station={station_id}")
    return "checked-in", member, created
