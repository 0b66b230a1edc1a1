"""Station scope resolution.

Every engine operation takes a ``station_id``; this module is the only place
that decides which one a request belongs to.
"""
from __future__ import annotations
from fastapi import Header, Query

from .config import get_settings

STATION_HEADER = "X-Station-Id"
STATION_QUERY_PARAM = "stationId"


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def resolve_station_id(
    *,
    override: str | None = None,
    header: str | None = None,
    query: str | None = None,
    default: str | None = None,
) -> str:
    """Pick the station id: override > header > query > default."""
    for candidate in (override, header, query):
        cleaned = _clean(candidate)
        if cleaned:
            return cleaned
    return _clean(default) or get_settings().default_station_id


async def get_station_id(
    x_station_id: str | None = Header(default=None, alias=STATION_HEADER),
    station_id: str | None = Query(default=None, alias=STATION_QUERY_PARAM),
) -> str:
    return resolve_station_id(header=x_station_id, query=station_id)
