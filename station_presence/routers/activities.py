from __future__ import annotations
from fastapi import APIRouter, Depends

from ..core.station import get_station_id
from ..deps import get_repo
from ..repositories import Repository
from ..schemas import ActiveActivityRead, ActiveActivitySet, Activity, ActivityCreate
from ..services import activities as svc

router = APIRouter(prefix="/activities", tags=["activities"])

@router.get("", response_model=list[Activity])
async def list_activities(station_id: str = Depends(get_station_id), repo: Repository = Depends(get_repo)):
    return await svc.list_activities(repo, station_id=station_id)

@router.post("", response_model=Activity, status_code=201)
async def create_activity(
    payload: ActivityCreate,
    station_id: str = Depends(get_station_id),
    repo: Repository = Depends(get_repo),
):
    return await svc.create_activity(repo, name=payload.name, created_by=payload.created_by, station_id=station_id)

@router.get("/active", response_model=ActiveActivityRead)
async def get_active_activity(station_id: str = Depends(get_station_id), repo: Repository = Depends(get_repo)):
    pointer, activity = await svc.get_active_activity(repo, station_id=station_id)
    return ActiveActivityRead(**pointer.model_dump(), activity=activity)

@router.post("/active", response_model=ActiveActivityRead)
async def set_active_activity(
    payload: ActiveActivitySet,
    station_id: str = Depends(get_station_id),
    repo: Repository = Depends(get_repo),
):
    pointer, activity = await svc.set_active_activity(
        repo, activity_id=payload.activity_id, set_by=payload.set_by, station_id=station_id
    )
    return ActiveActivityRead(**pointer.model_dump(), activity=activity)

@router.delete("/{activity_id}", response_model=Activity)
async def delete_activity(
    activity_id: str,
    station_id: str = Depends(get_station_id),
    repo: Repository = Depends(get_repo),
):
    return await svc.delete_activity(repo, activity_id=activity_id, station_id=station_id)
