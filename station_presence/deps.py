from __future__ import annotations
from fastapi import HTTPException, Request

from .core.redis import allow_request
from .repositories import Repository

def get_repo(request: Request) -> Repository:
    return request.app.state.repository

def rate_limit(route_key: str):
    """Per-IP fixed-window limit for a route; a no-op unless RL_ENABLED."""
    async def _dep(request: Request) -> None:
        ip = request.client.host if request.client else "unknown"
        if not await allow_request(ip, route_key):
            raise HTTPException(status_code=429, detail="Too many requests")
    return _dep
