from __future__ import annotations
import json
import logging
from typing import Sequence
from nats.aio.client import Client as NATS
from .config import get_settings

logger = logging.getLogger(__name__)

_settings = get_settings()
_nats = NATS()

async def nats_connect():
    if not _nats.is_connected:
        servers: Sequence[str] = [u.strip() for u in _settings.nats_urls.split(",") if u.strip()]
        await _nats.connect(servers=servers)

async def nats_close():
    try:
        if _nats.is_connected:
            await _nats.drain()
    except Exception as e:
        logger.warning(f"NATS drain failed: {e}")

async def _publish(subject: str, evt: dict):
    if not _settings.enable_nats_events:
        return
    try:
        await nats_connect()
        await _nats.publish(subject, json.dumps(evt, default=str).encode("utf-8"))
    except Exception as e:
        # live updates are best-effort; the toggle already succeeded
        logger.warning(f"NATS publish to {subject} failed: {e}")

async def publish_checkin(evt: dict):
    """
    evt = {
      "action": "checked-in" | "undone" | "already-checked-in",
      "station_id": str,
      "member_id": str,
      "check_in_id": str,
      "at": iso8601,
    }
    """
    await _publish(_settings.nats_subject_checkins, evt)

async def publish_participant(evt: dict):
    """
    evt = {
      "action": "added" | "removed",
      "station_id": str,
      "event_id": str,
      "member_id": str,
      "participant_id": str,
      "at": iso8601,
    }
    """
    await _publish(_settings.nats_subject_participants, evt)
