from __future__ import annotations
import logging
import uuid
from datetime import datetime, timezone

from ..core.errors import NotFound, ValidationFailure
from ..repositories import Repository
from ..schemas import CheckIn, Member

logger = logging.getLogger(__name__)

def _now():
    return datetime.now(timezone.utc)

def _clean_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationFailure("Valid name is required")
    return cleaned

async def list_members(repo: Repository, *, station_id: str) -> list[Member]:
    return await repo.list_members(station_id)

async def get_member(repo: Repository, *, member_id: str, station_id: str) -> Member:
    m = await repo.get_member(member_id)
    if not m or m.station_id != station_id:
        raise NotFound("Member not found")
    return m

async def get_member_by_qr_code(repo: Repository, *, qr_code: str, station_id: str) -> Member:
    m = await repo.get_member_by_qr_code(qr_code)
    if not m or m.station_id != station_id:
        raise NotFound("Member not found")
    return m

async def find_member_by_identifier(repo: Repository, *, identifier: str, station_id: str) -> Member:
    """Match a sign-in link identifier: a scannable code, else a name (case-insensitive)."""
    ident = (identifier or "").strip()
    if not ident:
        raise ValidationFailure("User identifier is required")
    m = await repo.get_member_by_qr_code(ident)
    if m and m.station_id == station_id:
        return m
    wanted = ident.lower()
    for m in await repo.list_members(station_id):
        if m.name.lower() == wanted:
            return m
    raise NotFound("Member not found")

async def create_member(
    repo: Repository,
    *,
    name: str,
    station_id: str,
    rank: str | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
    member_number: str | None = None,
) -> Member:
    now = _now()
    member = await repo.create_member(Member(
        id=str(uuid.uuid4()),
        station_id=station_id,
        name=_clean_name(name),
        qr_code=uuid.uuid4().hex,
        rank=rank or None,
        first_name=first_name or None,
        last_name=last_name or None,
        member_number=member_number or None,
        created_at=now,
        updated_at=now,
    ))
    logger.info(f"Created member {member.id} for station {station_id}")
    return member

async def update_member(
    repo: Repository, *, member_id: str, station_id: str, name: str, rank: str | None = None
) -> Member:
    m = await get_member(repo, member_id=member_id, station_id=station_id)
    # existing check-in/participant rows keep the name they were recorded with
    updated = await repo.update_member(m.model_copy(update={
        "name": _clean_name(name),
        "rank": rank or None,
        "updated_at": _now(),
    }))
    if not updated:
        raise NotFound("Member not found")
    return updated

async def member_history(repo: Repository, *, member_id: str, station_id: str) -> list[CheckIn]:
    await get_member(repo, member_id=member_id, station_id=station_id)
    return await repo.list_check_ins_for_member(member_id, station_id)
