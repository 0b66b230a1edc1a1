from __future__ import annotations
from datetime import datetime, timezone
from typing import Literal
from fastapi import APIRouter, Depends, Query, Response

from ..core.config import get_settings
from ..core.nats import publish_participant
from ..core.station import get_station_id
from ..deps import get_repo, rate_limit
from ..repositories import Repository
from ..schemas import (
    AuditLogList,
    Event,
    EventCreate,
    EventParticipant,
    EventWithParticipants,
    MessageResponse,
    ParticipantToggle,
    ParticipantToggleResult,
    RolloverResult,
)
from ..services import events as svc
from ..services.rollover import deactivate_expired_events

settings = get_settings()
router = APIRouter(prefix="/events", tags=["events"])

def _now():
    return datetime.now(timezone.utc)

async def _emit(action: str, p: EventParticipant):
    await publish_participant({
        "action": action,
        "station_id": p.station_id,
        "event_id": p.event_id,
        "member_id": p.member_id,
        "participant_id": p.id,
        "at": _now().isoformat().replace("+00:00", "Z"),
    })

# static paths must stay above /{event_id}
@router.get("", response_model=list[EventWithParticipants])
async def list_events(
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    station_id: str = Depends(get_station_id),
    repo: Repository = Depends(get_repo),
):
    return await svc.get_events(repo, station_id=station_id, limit=limit, offset=offset)

@router.post("", response_model=Event, status_code=201)
async def create_event(payload: EventCreate, station_id: str = Depends(get_station_id), repo: Repository = Depends(get_repo)):
    return await svc.create_event(repo, activity_id=payload.activity_id, created_by=payload.created_by, station_id=station_id)

@router.get("/active", response_model=list[EventWithParticipants])
async def list_active_events(station_id: str = Depends(get_station_id), repo: Repository = Depends(get_repo)):
    return await svc.get_active_events(repo, station_id=station_id)

@router.get("/participants/active", response_model=list[EventParticipant])
async def list_active_participants(station_id: str = Depends(get_station_id), repo: Repository = Depends(get_repo)):
    return await svc.list_active_participants(repo, station_id=station_id)

@router.post("/admin/rollover", response_model=RolloverResult)
async def rollover(
    scope: Literal["all", "station"] = Query("all"),
    station_id: str = Depends(get_station_id),
    repo: Repository = Depends(get_repo),
):
    ids = await deactivate_expired_events(repo, station_id=station_id if scope == "station" else None)
    return RolloverResult(
        message="Rollover completed successfully",
        deactivated_count=len(ids),
        deactivated_event_ids=ids,
        expiry_hours=settings.event_expiry_hours,
        timestamp=_now(),
    )

@router.get("/{event_id}", response_model=EventWithParticipants)
async def get_event(event_id: str, station_id: str = Depends(get_station_id), repo: Repository = Depends(get_repo)):
    return await svc.get_event_with_participants(repo, event_id=event_id, station_id=station_id)

@router.put("/{event_id}/end", response_model=Event)
async def end_event(event_id: str, station_id: str = Depends(get_station_id), repo: Repository = Depends(get_repo)):
    return await svc.end_event(repo, event_id=event_id, station_id=station_id)

@router.put("/{event_id}/reactivate", response_model=Event)
async def reactivate_event(event_id: str, station_id: str = Depends(get_station_id), repo: Repository = Depends(get_repo)):
    return await svc.reactivate_event(repo, event_id=event_id, station_id=station_id)

@router.post(
    "/{event_id}/participants",
    response_model=ParticipantToggleResult,
    dependencies=[Depends(rate_limit("events.participants"))],
)
async def toggle_participant(
    event_id: str,
    payload: ParticipantToggle,
    response: Response,
    station_id: str = Depends(get_station_id),
    repo: Repository = Depends(get_repo),
):
    action, p = await svc.add_or_remove_participant(
        repo,
        event_id=event_id,
        station_id=station_id,
        **payload.model_dump(),
    )
    response.status_code = 201 if action == "added" else 200
    await _emit(action, p)
    return ParticipantToggleResult(action=action, participant=p)

@router.delete("/{event_id}/participants/{participant_id}", response_model=MessageResponse)
async def remove_participant(
    event_id: str,
    participant_id: str,
    station_id: str = Depends(get_station_id),
    repo: Repository = Depends(get_repo),
):
    p = await svc.remove_participant(repo, event_id=event_id, participant_id=participant_id, station_id=station_id)
    await _emit("removed", p)
    return MessageResponse(message="Participant removed successfully")

@router.get("/{event_id}/audit", response_model=AuditLogList)
async def get_audit_logs(event_id: str, station_id: str = Depends(get_station_id), repo: Repository = Depends(get_repo)):
    logs = await svc.get_audit_logs(repo, event_id=event_id, station_id=station_id)
    return AuditLogList(event_id=event_id, total_logs=len(logs), logs=logs)
