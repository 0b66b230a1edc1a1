from __future__ import annotations
import logging
import uuid
from datetime import datetime, timezone

from ..core.errors import NotFound, PreconditionFailed, ValidationFailure
from ..repositories import Repository
from ..schemas import ActiveActivity, Activity

logger = logging.getLogger(__name__)

# name -> (category, tag colour)
BUILTIN_ACTIVITIES: dict[str, tuple[str, str]] = {
    "Training": ("training", "#008550"),
    "Maintenance": ("maintenance", "#fbb034"),
    "Meeting": ("meeting", "#215e9e"),
    "Brigade Training": ("training", "#cbdb2a"),
    "District Training": ("training", "#008550"),
}

CATEGORY_COLORS = {
    "training": "#008550",
    "maintenance": "#fbb034",
    "meeting": "#215e9e",
    "other": "#bcbec0",
}

def _now():
    return datetime.now(timezone.utc)

def infer_category(name: str) -> str:
    n = name.lower()
    if "train" in n:
        return "training"
    if "maint" in n:
        return "maintenance"
    if "meet" in n:
        return "meeting"
    return "other"

def _sort_key(a: Activity):
    return (a.is_custom, a.name.lower())

async def ensure_builtin_activities(repo: Repository, *, station_id: str) -> None:
    """Seed the built-in activities for a station the first time it is used."""
    async with repo.lock("seed", station_id):
        existing = await repo.list_activities(station_id, include_deleted=True)
        if any(not a.is_custom for a in existing):
            return
        now = _now()
        for name, (category, color) in BUILTIN_ACTIVITIES.items():
            await repo.create_activity(Activity(
                id=str(uuid.uuid4()),
                station_id=station_id,
                name=name,
                is_custom=False,
                category=category,
                tag_color=color,
                created_at=now,
            ))
        logger.info(f"Seeded {len(BUILTIN_ACTIVITIES)} built-in activities for station {station_id}")

async def list_activities(repo: Repository, *, station_id: str) -> list[Activity]:
    await ensure_builtin_activities(repo, station_id=station_id)
    rows = await repo.list_activities(station_id)
    rows.sort(key=_sort_key)
    return rows

async def get_activity(repo: Repository, *, activity_id: str, station_id: str, usable: bool = True) -> Activity:
    """Resolve an activity inside a station.

    With ``usable`` set, soft-deleted activities are treated as missing; history
    lookups pass ``usable=False`` to still resolve them.
    """
    a = await repo.get_activity(activity_id)
    if not a or a.station_id != station_id or (usable and a.is_deleted):
        raise NotFound("Activity not found")
    return a

async def create_activity(repo: Repository, *, name: str, station_id: str, created_by: str | None = None) -> Activity:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationFailure("Valid name is required")
    if len(cleaned) > 255:
        raise ValidationFailure("Name must be at most 255 characters")
    await ensure_builtin_activities(repo, station_id=station_id)
    category = infer_category(cleaned)
    activity = await repo.create_activity(Activity(
        id=str(uuid.uuid4()),
        station_id=station_id,
        name=cleaned,
        is_custom=True,
        category=category,
        tag_color=CATEGORY_COLORS[category],
        created_by=created_by,
        created_at=_now(),
    ))
    logger.info(f"Created custom activity '{activity.name}' ({activity.id}) for station {station_id}")
    return activity

async def delete_activity(repo: Repository, *, activity_id: str, station_id: str) -> Activity:
    a = await get_activity(repo, activity_id=activity_id, station_id=station_id)
    if not a.is_custom:
        raise PreconditionFailed("Built-in activities cannot be deleted")
    deleted = await repo.mark_activity_deleted(a.id)
    if not deleted:
        raise NotFound("Activity not found")
    logger.info(f"Soft-deleted activity '{a.name}' ({a.id}) for station {station_id}")
    return deleted

async def get_active_activity(repo: Repository, *, station_id: str) -> tuple[ActiveActivity, Activity]:
    pointer = await repo.get_active_activity(station_id)
    if not pointer:
        raise NotFound("No active activity set")
    # weak reference: the pointed-to activity may be gone
    activity = await repo.get_activity(pointer.activity_id)
    if not activity or activity.station_id != station_id:
        raise NotFound("Activity not found")
    return pointer, activity

async def set_active_activity(
    repo: Repository, *, activity_id: str, station_id: str, set_by: str | None = None
) -> tuple[ActiveActivity, Activity]:
    if not activity_id:
        raise ValidationFailure("Activity ID is required")
    activity = await get_activity(repo, activity_id=activity_id, station_id=station_id)
    async with repo.lock("active-activity", station_id):
        pointer = await repo.replace_active_activity(ActiveActivity(
            station_id=station_id,
            activity_id=activity.id,
            set_at=_now(),
            set_by=set_by,
        ))
    logger.info(f"Active activity for station {station_id} set to '{activity.name}' ({activity.id})")
    return pointer, activity
