from __future__ import annotations

from datetime import datetime

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


class MemoryRepository(Repository):
    """Process-local store, used for development, demos and tests.

    Every method returns a copy, so callers can't mutate stored records.
    """

    def __init__(self) -> None:
        super().__init__()
        self._members: dict[str, Member] = {}
        self._activities: dict[str, Activity] = {}
        self._active_activity: dict[str, ActiveActivity] = {}
        self._check_ins: dict[str, CheckIn] = {}
        self._events: dict[str, Event] = {}
        self._participants: dict[str, dict[str, EventParticipant]] = {}
        self._audit: dict[str, list[EventAuditLog]] = {}

    # ---- members ----
    async def list_members(self, station_id: str) -> list[Member]:
        rows = [m for m in self._members.values() if m.station_id == station_id]
        rows.sort(key=lambda m: m.name.lower())
        return [m.model_copy() for m in rows]

    async def get_member(self, member_id: str) -> Member | None:
        m = self._members.get(member_id)
        return m.model_copy() if m else None

    async def get_member_by_qr_code(self, qr_code: str) -> Member | None:
        for m in self._members.values():
            if m.qr_code == qr_code:
                return m.model_copy()
        return None

    async def create_member(self, member: Member) -> Member:
        self._members[member.id] = member.model_copy()
        return member.model_copy()

    async def update_member(self, member: Member) -> Member | None:
        if member.id not in self._members:
            return None
        self._members[member.id] = member.model_copy()
        return member.model_copy()

    # ---- activities ----
    async def list_activities(self, station_id: str, *, include_deleted: bool = False) -> list[Activity]:
        return [
            a.model_copy()
            for a in self._activities.values()
            if a.station_id == station_id and (include_deleted or not a.is_deleted)
        ]

    async def get_activity(self, activity_id: str) -> Activity | None:
        a = self._activities.get(activity_id)
        return a.model_copy() if a else None

    async def create_activity(self, activity: Activity) -> Activity:
        self._activities[activity.id] = activity.model_copy()
        return activity.model_copy()

    async def mark_activity_deleted(self, activity_id: str) -> Activity | None:
        a = self._activities.get(activity_id)
        if a is None:
            return None
        a.is_deleted = True
        return a.model_copy()

    # ---- active activity pointer ----
    async def get_active_activity(self, station_id: str) -> ActiveActivity | None:
        p = self._active_activity.get(station_id)
        return p.model_copy() if p else None

    async def replace_active_activity(self, pointer: ActiveActivity) -> ActiveActivity:
        self._active_activity[pointer.station_id] = pointer.model_copy()
        return pointer.model_copy()

    async def count_active_activity_pointers(self, station_id: str) -> int:
        return 1 if station_id in self._active_activity else 0

    # ---- legacy check-ins ----
    async def get_active_check_in(self, member_id: str, station_id: str) -> CheckIn | None:
        for c in self._check_ins.values():
            if c.member_id == member_id and c.station_id == station_id and c.is_active:
                return c.model_copy()
        return None

    async def list_active_check_ins(self, station_id: str) -> list[CheckIn]:
        rows = [c for c in self._check_ins.values() if c.station_id == station_id and c.is_active]
        rows.sort(key=lambda c: c.check_in_time, reverse=True)
        return [c.model_copy() for c in rows]

    async def list_check_ins_for_member(self, member_id: str, station_id: str) -> list[CheckIn]:
        rows = [c for c in self._check_ins.values() if c.member_id == member_id and c.station_id == station_id]
        rows.sort(key=lambda c: c.check_in_time, reverse=True)
        return [c.model_copy() for c in rows]

    async def create_check_in(self, check_in: CheckIn) -> CheckIn:
        self._check_ins[check_in.id] = check_in.model_copy()
        return check_in.model_copy()

    async def deactivate_check_in(self, check_in_id: str, at: datetime) -> CheckIn | None:
        c = self._check_ins.get(check_in_id)
        if c is None:
            return None
        if c.is_active:
            c.is_active = False
            c.updated_at = at
        return c.model_copy()

    # ---- events ----
    async def create_event(self, event: Event) -> Event:
        self._events[event.id] = event.model_copy()
        self._participants.setdefault(event.id, {})
        return event.model_copy()

    async def get_event(self, event_id: str) -> Event | None:
        e = self._events.get(event_id)
        return e.model_copy() if e else None

    async def list_events(self, station_id: str | None, *, limit: int, offset: int) -> list[Event]:
        rows = [e for e in self._events.values() if station_id is None or e.station_id == station_id]
        rows.sort(key=lambda e: e.start_time, reverse=True)
        return [e.model_copy() for e in rows[offset:offset + limit]]

    async def list_active_events(self, station_id: str | None) -> list[Event]:
        rows = [
            e for e in self._events.values()
            if e.is_active and (station_id is None or e.station_id == station_id)
        ]
        rows.sort(key=lambda e: e.start_time, reverse=True)
        return [e.model_copy() for e in rows]

    async def end_event(self, event_id: str, at: datetime) -> Event | None:
        e = self._events.get(event_id)
        if e is None:
            return None
        if e.is_active:
            e.is_active = False
            e.end_time = at
            e.updated_at = at
        return e.model_copy()

    async def reactivate_event(self, event_id: str, at: datetime) -> Event | None:
        e = self._events.get(event_id)
        if e is None:
            return None
        if not e.is_active:
            e.is_active = True
            e.end_time = None
            e.updated_at = at
        return e.model_copy()

    # ---- participants ----
    async def list_participants(self, event_id: str) -> list[EventParticipant]:
        rows = sorted(self._participants.get(event_id, {}).values(), key=lambda p: p.check_in_time)
        return [p.model_copy() for p in rows]

    async def get_participant_for_member(self, event_id: str, member_id: str) -> EventParticipant | None:
        for p in self._participants.get(event_id, {}).values():
            if p.member_id == member_id:
                return p.model_copy()
        return None

    async def add_participant(self, participant: EventParticipant) -> EventParticipant:
        self._participants.setdefault(participant.event_id, {})[participant.id] = participant.model_copy()
        return participant.model_copy()

    async def remove_participant(self, event_id: str, participant_id: str) -> EventParticipant | None:
        p = self._participants.get(event_id, {}).pop(participant_id, None)
        return p.model_copy() if p else None

    # ---- audit ----
    async def append_audit_log(self, entry: EventAuditLog) -> EventAuditLog:
        self._audit.setdefault(entry.event_id, []).append(entry.model_copy())
        return entry.model_copy()

    async def list_audit_logs(self, event_id: str) -> list[EventAuditLog]:
        return [a.model_copy() for a in self._audit.get(event_id, [])]
