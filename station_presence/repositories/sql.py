from __future__ import annotations

from datetime import datetime, timezone
from typing import TypeVar

from pydantic import BaseModel
from sqlalchemy import select, update, func

from ..db import init_db, make_engine, make_session_maker
from ..models import (
    ActiveActivityRow,
    ActivityRow,
    CheckInRow,
    EventAuditLogRow,
    EventParticipantRow,
    EventRow,
    MemberRow,
)
from ..schemas import (
    ActiveActivity,
    Activity,
    CheckIn,
    Event,
    EventAuditLog,
    EventParticipant,
    Member,
)
from .base import Repository

M = TypeVar("M", bound=BaseModel)


def _aware(value):
    # SQLite hands back naive datetimes; everything is stored as UTC
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to(model: type[M], row) -> M:
    data = {c.key: _aware(getattr(row, c.key)) for c in row.__table__.columns}
    return model.model_validate(data)


class SqlRepository(Repository):
    """SQLAlchemy (asyncio) backend.

    Invariants are backed by the schema as well as by ``lock``: a partial
    unique index on active check-ins, a unique (event, member) pair on
    participants, and ``station_id`` as the primary key of the active-activity
    pointer.
    """

    def __init__(self, database_url: str) -> None:
        super().__init__()
        self.engine = make_engine(database_url)
        self.session_maker = make_session_maker(self.engine)

    async def init(self) -> None:
        await init_db(self.engine)

    async def close(self) -> None:
        await self.engine.dispose()

    async def _add(self, row, model: type[M]) -> M:
        async with self.session_maker() as db:
            db.add(row)
            await db.commit()
            await db.refresh(row)
            return _to(model, row)

    async def _one(self, stmt, model: type[M]) -> M | None:
        async with self.session_maker() as db:
            row = (await db.execute(stmt)).scalar_one_or_none()
            return _to(model, row) if row else None

    async def _all(self, stmt, model: type[M]) -> list[M]:
        async with self.session_maker() as db:
            rows = (await db.execute(stmt)).scalars().all()
            return [_to(model, r) for r in rows]

    # ---- members ----
    async def list_members(self, station_id: str) -> list[Member]:
        stmt = select(MemberRow).where(MemberRow.station_id == station_id).order_by(func.lower(MemberRow.name))
        return await self._all(stmt, Member)

    async def get_member(self, member_id: str) -> Member | None:
        return await self._one(select(MemberRow).where(MemberRow.id == member_id), Member)

    async def get_member_by_qr_code(self, qr_code: str) -> Member | None:
        return await self._one(select(MemberRow).where(MemberRow.qr_code == qr_code), Member)

    async def create_member(self, member: Member) -> Member:
        return await self._add(MemberRow(**member.model_dump()), Member)

    async def update_member(self, member: Member) -> Member | None:
        async with self.session_maker() as db:
            row = (await db.execute(select(MemberRow).where(MemberRow.id == member.id))).scalar_one_or_none()
            if not row:
                return None
            for key, value in member.model_dump(exclude={"id", "created_at"}).items():
                setattr(row, key, value)
            await db.commit()
            await db.refresh(row)
            return _to(Member, row)

    # ---- activities ----
    async def list_activities(self, station_id: str, *, include_deleted: bool = False) -> list[Activity]:
        stmt = select(ActivityRow).where(ActivityRow.station_id == station_id)
        if not include_deleted:
            stmt = stmt.where(ActivityRow.is_deleted.is_(False))
        return await self._all(stmt, Activity)

    async def get_activity(self, activity_id: str) -> Activity | None:
        return await self._one(select(ActivityRow).where(ActivityRow.id == activity_id), Activity)

    async def create_activity(self, activity: Activity) -> Activity:
        return await self._add(ActivityRow(**activity.model_dump()), Activity)

    async def mark_activity_deleted(self, activity_id: str) -> Activity | None:
        async with self.session_maker() as db:
            row = (await db.execute(select(ActivityRow).where(ActivityRow.id == activity_id))).scalar_one_or_none()
            if not row:
                return None
            row.is_deleted = True
            await db.commit()
            await db.refresh(row)
            return _to(Activity, row)

    # ---- active activity pointer ----
    async def get_active_activity(self, station_id: str) -> ActiveActivity | None:
        stmt = select(ActiveActivityRow).where(ActiveActivityRow.station_id == station_id)
        return await self._one(stmt, ActiveActivity)

    async def replace_active_activity(self, pointer: ActiveActivity) -> ActiveActivity:
        async with self.session_maker() as db:
            row = await db.merge(ActiveActivityRow(**pointer.model_dump()))
            await db.commit()
            await db.refresh(row)
            return _to(ActiveActivity, row)

    async def count_active_activity_pointers(self, station_id: str) -> int:
        async with self.session_maker() as db:
            q = select(func.count()).select_from(ActiveActivityRow).where(ActiveActivityRow.station_id == station_id)
            return (await db.execute(q)).scalar_one()

    # ---- legacy check-ins ----
    async def get_active_check_in(self, member_id: str, station_id: str) -> CheckIn | None:
        stmt = select(CheckInRow).where(
            CheckInRow.member_id == member_id,
            CheckInRow.station_id == station_id,
            CheckInRow.is_active.is_(True),
        )
        return await self._one(stmt, CheckIn)

    async def list_active_check_ins(self, station_id: str) -> list[CheckIn]:
        stmt = (
            select(CheckInRow)
            .where(CheckInRow.station_id == station_id, CheckInRow.is_active.is_(True))
            .order_by(CheckInRow.check_in_time.desc())
        )
        return await self._all(stmt, CheckIn)

    async def list_check_ins_for_member(self, member_id: str, station_id: str) -> list[CheckIn]:
        stmt = (
            select(CheckInRow)
            .where(CheckInRow.member_id == member_id, CheckInRow.station_id == station_id)
            .order_by(CheckInRow.check_in_time.desc())
        )
        return await self._all(stmt, CheckIn)

    async def create_check_in(self, check_in: CheckIn) -> CheckIn:
        return await self._add(CheckInRow(**check_in.model_dump()), CheckIn)

    async def deactivate_check_in(self, check_in_id: str, at: datetime) -> CheckIn | None:
        async with self.session_maker() as db:
            await db.execute(
                update(CheckInRow)
                .where(CheckInRow.id == check_in_id, CheckInRow.is_active.is_(True))
                .values(is_active=False, updated_at=at)
            )
            await db.commit()
        return await self._one(select(CheckInRow).where(CheckInRow.id == check_in_id), CheckIn)

    # ---- events ----
    async def create_event(self, event: Event) -> Event:
        return await self._add(EventRow(**event.model_dump()), Event)

    async def get_event(self, event_id: str) -> Event | None:
        return await self._one(select(EventRow).where(EventRow.id == event_id), Event)

    async def list_events(self, station_id: str | None, *, limit: int, offset: int) -> list[Event]:
        stmt = select(EventRow)
        if station_id is not None:
            stmt = stmt.where(EventRow.station_id == station_id)
        stmt = stmt.order_by(EventRow.start_time.desc()).limit(limit).offset(offset)
        return await self._all(stmt, Event)

    async def list_active_events(self, station_id: str | None) -> list[Event]:
        stmt = select(EventRow).where(EventRow.is_active.is_(True))
        if station_id is not None:
            stmt = stmt.where(EventRow.station_id == station_id)
        return await self._all(stmt.order_by(EventRow.start_time.desc()), Event)

    async def end_event(self, event_id: str, at: datetime) -> Event | None:
        # conditional write: an already-ended event keeps its original end_time
        async with self.session_maker() as db:
            await db.execute(
                update(EventRow)
                .where(EventRow.id == event_id, EventRow.is_active.is_(True))
                .values(is_active=False, end_time=at, updated_at=at)
            )
            await db.commit()
        return await self.get_event(event_id)

    async def reactivate_event(self, event_id: str, at: datetime) -> Event | None:
        async with self.session_maker() as db:
            await db.execute(
                update(EventRow)
                .where(EventRow.id == event_id, EventRow.is_active.is_(False))
                .values(is_active=True, end_time=None, updated_at=at)
            )
            await db.commit()
        return await self.get_event(event_id)

    # ---- participants ----
    async def list_participants(self, event_id: str) -> list[EventParticipant]:
        stmt = (
            select(EventParticipantRow)
            .where(EventParticipantRow.event_id == event_id)
            .order_by(EventParticipantRow.check_in_time.asc())
        )
        return await self._all(stmt, EventParticipant)

    async def get_participant_for_member(self, event_id: str, member_id: str) -> EventParticipant | None:
        stmt = select(EventParticipantRow).where(
            EventParticipantRow.event_id == event_id, EventParticipantRow.member_id == member_id
        )
        return await self._one(stmt, EventParticipant)

    async def add_participant(self, participant: EventParticipant) -> EventParticipant:
        return await self._add(EventParticipantRow(**participant.model_dump()), EventParticipant)

    async def remove_participant(self, event_id: str, participant_id: str) -> EventParticipant | None:
        async with self.session_maker() as db:
            row = (await db.execute(
                select(EventParticipantRow).where(
                    EventParticipantRow.id == participant_id, EventParticipantRow.event_id == event_id
                )
            )).scalar_one_or_none()
            if not row:
                return None
            removed = _to(EventParticipant, row)
            await db.delete(row)
            await db.commit()
            return removed

    # ---- audit ----
    async def append_audit_log(self, entry: EventAuditLog) -> EventAuditLog:
        return await self._add(EventAuditLogRow(**entry.model_dump()), EventAuditLog)

    async def list_audit_logs(self, event_id: str) -> list[EventAuditLog]:
        stmt = (
            select(EventAuditLogRow)
            .where(EventAuditLogRow.event_id == event_id)
            .order_by(EventAuditLogRow.timestamp.asc())
        )
        return await self._all(stmt, EventAuditLog)
