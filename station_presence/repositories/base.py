"""Storage contract for the presence engine.

The engine only ever talks to :class:`Repository`. Backends must honour these
atomicity rules:

* ``lock(*key)`` serializes read-modify-write sequences that share a key. The
  engine takes it around every toggle and around the active-activity replace,
  so two concurrent requests for the same (member, station) or
  (event, member) produce exactly one flip. Ending, reactivating and roster
  writes also share an ``("event", id)`` key.
* ``end_event`` is a conditional write: it only stamps ``end_time`` when the
  event is still active, and otherwise returns the stored event unchanged.
* ``replace_active_activity`` overwrites the single pointer of a station.

Records go in and come out as the pydantic models in
:mod:`station_presence.schemas`; callers never share mutable state with the
store.
"""
from __future__ import annotations

import asyncio
import weakref
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Hashable

from ..schemas import (
    ActiveActivity,
    Activity,
    CheckIn,
    Event,
    EventAuditLog,
    EventParticipant,
    Member,
)


class Repository(ABC):
    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[tuple, asyncio.Lock] = weakref.WeakValueDictionary()

    @asynccontextmanager
    async def lock(self, *key: Hashable) -> AsyncIterator[None]:
        lk = self._locks.get(key)
        if lk is None:
            lk = asyncio.Lock()
            self._locks[key] = lk
        async with lk:
            yield

    async def init(self) -> None:
        """Prepare the backend (create tables, connect)."""

    async def close(self) -> None:
        """Release backend resources."""

    # ---- members ----
    @abstractmethod
    async def list_members(self, station_id: str) -> list[Member]: ...

    @abstractmethod
    async def get_member(self, member_id: str) -> Member | None: ...

    @abstractmethod
    async def get_member_by_qr_code(self, qr_code: str) -> Member | None: ...

    @abstractmethod
    async def create_member(self, member: Member) -> Member: ...

    @abstractmethod
    async def update_member(self, member: Member) -> Member | None: ...

    # ---- activities ----
    @abstractmethod
    async def list_activities(self, station_id: str, *, include_deleted: bool = False) -> list[Activity]: ...

    @abstractmethod
    async def get_activity(self, activity_id: str) -> Activity | None: ...

    @abstractmethod
    async def create_activity(self, activity: Activity) -> Activity: ...

    @abstractmethod
    async def mark_activity_deleted(self, activity_id: str) -> Activity | None: ...

    # ---- active activity pointer ----
    @abstractmethod
    async def get_active_activity(self, station_id: str) -> ActiveActivity | None: ...

    @abstractmethod
    async def replace_active_activity(self, pointer: ActiveActivity) -> ActiveActivity: ...

    @abstractmethod
    async def count_active_activity_pointers(self, station_id: str) -> int: ...

    # ---- legacy check-ins ----
    @abstractmethod
    async def get_active_check_in(self, member_id: str, station_id: str) -> CheckIn | None: ...

    @abstractmethod
    async def list_active_check_ins(self, station_id: str) -> list[CheckIn]: ...

    @abstractmethod
    async def list_check_ins_for_member(self, member_id: str, station_id: str) -> list[CheckIn]: ...

    @abstractmethod
    async def create_check_in(self, check_in: CheckIn) -> CheckIn: ...

    @abstractmethod
    async def deactivate_check_in(self, check_in_id: str, at: datetime) -> CheckIn | None: ...

    # ---- events ----
    @abstractmethod
    async def create_event(self, event: Event) -> Event: ...

    @abstractmethod
    async def get_event(self, event_id: str) -> Event | None: ...

    @abstractmethod
    async def list_events(self, station_id: str | None, *, limit: int, offset: int) -> list[Event]: ...

    @abstractmethod
    async def list_active_events(self, station_id: str | None) -> list[Event]: ...

    @abstractmethod
    async def end_event(self, event_id: str, at: datetime) -> Event | None: ...

    @abstractmethod
    async def reactivate_event(self, event_id: str, at: datetime) -> Event | None: ...

    # ---- participants ----
    @abstractmethod
    async def list_participants(self, event_id: str) -> list[EventParticipant]: ...

    @abstractmethod
    async def get_participant_for_member(self, event_id: str, member_id: str) -> EventParticipant | None: ...

    @abstractmethod
    async def add_participant(self, participant: EventParticipant) -> EventParticipant: ...

    @abstractmethod
    async def remove_participant(self, event_id: str, participant_id: str) -> EventParticipant | None: ...

    # ---- audit ----
    @abstractmethod
    async def append_audit_log(self, entry: EventAuditLog) -> EventAuditLog: ...

    @abstractmethod
    async def list_audit_logs(self, event_id: str) -> list[EventAuditLog]: ...
