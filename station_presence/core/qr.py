from __future__ import annotations
from io import BytesIO
from urllib.parse import urlencode

import qrcode

from .config import get_settings

settings = get_settings()


def signin_url(*, qr_code: str, station_id: str) -> str:
    query = urlencode({"code": qr_code, "station": station_id})
    return f"{settings.signin_base_url}?{query}"


def render_png(data: str) -> bytes:
    img = qrcode.make(data)
    b = BytesIO()
    img.save(b, format="PNG")
    return b.getvalue()
