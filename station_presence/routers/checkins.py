from __future__ import annotations
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Header, Query, Response

from ..core.nats import publish_checkin
from ..core.station import STATION_HEADER, STATION_QUERY_PARAM, get_station_id, resolve_station_id
from ..deps import get_repo, rate_limit
from ..repositories import Repository
from ..schemas import CheckIn, CheckInCreate, CheckInResult, UrlCheckInCreate, UrlCheckInResult
from ..services import checkins as svc

router = APIRouter(prefix="/checkins", tags=["checkins"])

def _now_iso():
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

async def _emit(action: str, c: CheckIn):
    await publish_checkin({
        "action": action,
        "station_id": c.station_id,
        "member_id": c.member_id,
        "check_in_id": c.id,
        "at": _now_iso(),
    })

@router.get("/active", response_model=list[CheckIn])
async def list_active(station_id: str = Depends(get_station_id), repo: Repository = Depends(get_repo)):
    return await svc.list_active_check_ins(repo, station_id=station_id)

@router.post("", response_model=CheckInResult, dependencies=[Depends(rate_limit("checkins.toggle"))])
async def toggle_check_in(
    payload: CheckInCreate,
    response: Response,
    station_id: str = Depends(get_station_id),
    repo: Repository = Depends(get_repo),
):
    action, c = await svc.check_in(
        repo,
        member_id=payload.member_id,
        activity_id=payload.activity_id,
        method=payload.method,
        location=payload.location,
        is_offsite=payload.is_offsite,
        station_id=station_id,
    )
    response.status_code = 201 if action == "checked-in" else 200
    await _emit(action, c)
    return CheckInResult(action=action, check_in=c)

@router.delete("/{member_id}", response_model=CheckInResult)
async def undo_check_in(member_id: str, station_id: str = Depends(get_station_id), repo: Repository = Depends(get_repo)):
    c = await svc.undo_check_in(repo, member_id=member_id, station_id=station_id)
    await _emit("undone", c)
    return CheckInResult(action="undone", check_in=c)

@router.post("/url-checkin", response_model=UrlCheckInResult, dependencies=[Depends(rate_limit("checkins.url"))])
async def url_check_in(
    payload: UrlCheckInCreate,
    response: Response,
    repo: Repository = Depends(get_repo),
    x_station_id: str | None = Header(default=None, alias=STATION_HEADER),
    station_query: str | None = Query(default=None, alias=STATION_QUERY_PARAM),
):
    # body station_id > header > query
    station_id = resolve_station_id(override=payload.station_id, header=x_station_id, query=station_query)
    action, member, c = await svc.url_check_in(repo, identifier=payload.identifier, station_id=station_id)
    response.status_code = 201 if action == "checked-in" else 200
    if action == "checked-in":
        await _emit(action, c)
    return UrlCheckInResult(action=action, member=member.name, check_in=c)
