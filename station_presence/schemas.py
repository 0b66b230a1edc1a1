from __future__ import annotations
from typing import Annotated, Literal
from datetime import datetime
from pydantic import BaseModel, Field

Str255     = Annotated[str, Field(min_length=1, max_length=255)]
OptStr255  = Annotated[str | None, Field(max_length=255)]
CheckInMethod = Literal["kiosk", "mobile", "qr"]
ActivityCategory = Literal["training", "maintenance", "meeting", "other"]

# ---- Records ----
# Records are what the repository stores and returns. Denormalized display
# fields (member_name, activity_name, ...) are snapshots taken at the time of
# the action, not live references.

class Member(BaseModel):
    id: str
    station_id: str
    name: str
    qr_code: str
    rank: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    member_number: str | None = None
    created_at: datetime
    updated_at: datetime

class Activity(BaseModel):
    id: str
    station_id: str
    name: str
    is_custom: bool
    category: ActivityCategory = "other"
    tag_color: str | None = None
    created_by: str | None = None
    is_deleted: bool = False
    created_at: datetime

class ActiveActivity(BaseModel):
    station_id: str
    activity_id: str
    set_at: datetime
    set_by: str | None = None

class CheckIn(BaseModel):
    id: str
    station_id: str
    member_id: str
    member_name: str
    activity_id: str
    activity_name: str
    check_in_time: datetime
    method: CheckInMethod
    location: str | None = None
    is_offsite: bool = False
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

class Event(BaseModel):
    id: str
    station_id: str
    activity_id: str
    activity_name: str
    start_time: datetime
    end_time: datetime | None = None
    is_active: bool = True
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime

class EventParticipant(BaseModel):
    id: str
    event_id: str
    station_id: str
    member_id: str
    member_name: str
    member_rank: str | None = None
    check_in_time: datetime
    method: CheckInMethod
    location: str | None = None
    is_offsite: bool = False

class EventAuditLog(BaseModel):
    id: str
    event_id: str
    station_id: str
    action: Literal["participant-added", "participant-removed"]
    participant_id: str
    member_id: str
    member_name: str
    member_rank: str | None = None
    method: CheckInMethod
    performed_by: str | None = None
    notes: str | None = None
    request_id: str | None = None
    timestamp: datetime

class EventWithParticipants(Event):
    participants: list[EventParticipant] = []
    participant_count: int = 0

# ---- Members ----
class MemberCreate(BaseModel):
    name: Str255
    rank: OptStr255 = None
    first_name: OptStr255 = None
    last_name: OptStr255 = None
    member_number: OptStr255 = None

class MemberUpdate(BaseModel):
    name: Str255
    rank: OptStr255 = None

# ---- Activities ----
class ActivityCreate(BaseModel):
    name: str
    created_by: OptStr255 = None

class ActiveActivitySet(BaseModel):
    activity_id: str
    set_by: OptStr255 = None

class ActiveActivityRead(ActiveActivity):
    activity: Activity

# ---- Check-ins ----
class CheckInCreate(BaseModel):
    member_id: str
    activity_id: str | None = None
    method: CheckInMethod = "mobile"
    location: OptStr255 = None
    is_offsite: bool = False

class CheckInResult(BaseModel):
    action: Literal["checked-in", "undone"]
    check_in: CheckIn

class UrlCheckInCreate(BaseModel):
    identifier: Str255
    station_id: str | None = None  # overrides header/query scope

class UrlCheckInResult(BaseModel):
    action: Literal["checked-in", "already-checked-in"]
    member: str
    check_in: CheckIn

# ---- Events ----
class EventCreate(BaseModel):
    activity_id: str
    created_by: OptStr255 = None

class ParticipantToggle(BaseModel):
    member_id: str
    method: CheckInMethod = "mobile"
    location: OptStr255 = None
    is_offsite: bool = False
    performed_by: OptStr255 = None
    notes: Annotated[str | None, Field(max_length=500)] = None

class ParticipantToggleResult(BaseModel):
    action: Literal["added", "removed"]
    participant: EventParticipant

class AuditLogList(BaseModel):
    event_id: str
    total_logs: int
    logs: list[EventAuditLog]

class RolloverResult(BaseModel):
    message: str
    deactivated_count: int
    deactivated_event_ids: list[str]
    expiry_hours: float
    timestamp: datetime

class MessageResponse(BaseModel):
    message: str
