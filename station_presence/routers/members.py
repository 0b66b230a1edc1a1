from __future__ import annotations
from fastapi import APIRouter, Depends, Response

from ..core.qr import render_png, signin_url
from ..core.station import get_station_id
from ..deps import get_repo
from ..repositories import Repository
from ..schemas import CheckIn, Member, MemberCreate, MemberUpdate
from ..services import members as svc

router = APIRouter(prefix="/members", tags=["members"])

@router.get("", response_model=list[Member])
async def list_members(station_id: str = Depends(get_station_id), repo: Repository = Depends(get_repo)):
    return await svc.list_members(repo, station_id=station_id)

@router.post("", response_model=Member, status_code=201)
async def create_member(
    payload: MemberCreate,
    station_id: str = Depends(get_station_id),
    repo: Repository = Depends(get_repo),
):
    return await svc.create_member(repo, station_id=station_id, **payload.model_dump())

@router.get("/qr/{qr_code}", response_model=Member)
async def get_member_by_qr_code(
    qr_code: str,
    station_id: str = Depends(get_station_id),
    repo: Repository = Depends(get_repo),
):
    return await svc.get_member_by_qr_code(repo, qr_code=qr_code, station_id=station_id)

@router.get("/{member_id}", response_model=Member)
async def get_member(member_id: str, station_id: str = Depends(get_station_id), repo: Repository = Depends(get_repo)):
    return await svc.get_member(repo, member_id=member_id, station_id=station_id)

@router.put("/{member_id}", response_model=Member)
async def update_member(
    member_id: str,
    payload: MemberUpdate,
    station_id: str = Depends(get_station_id),
    repo: Repository = Depends(get_repo),
):
    return await svc.update_member(repo, member_id=member_id, station_id=station_id, name=payload.name, rank=payload.rank)

@router.get("/{member_id}/history", response_model=list[CheckIn])
async def member_history(member_id: str, station_id: str = Depends(get_station_id), repo: Repository = Depends(get_repo)):
    return await svc.member_history(repo, member_id=member_id, station_id=station_id)

# printable sign-in code for kiosks and badges
@router.get("/{member_id}/qr.png")
async def member_qr_png(member_id: str, station_id: str = Depends(get_station_id), repo: Repository = Depends(get_repo)):
    m = await svc.get_member(repo, member_id=member_id, station_id=station_id)
    png = render_png(signin_url(qr_code=m.qr_code, station_id=m.station_id))
    return Response(content=png, media_type="image/png")
