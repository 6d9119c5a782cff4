from __future__ import annotations

import base64
import binascii
import secrets
from typing import Optional

from fastapi import HTTPException, Request

from backend.app.core.settings import settings

ADMIN_SESSION_COOKIE = "admin_auth"
ADMIN_SESSION_VALUE = "authenticated"
API_KEY_HEADER = "X-API-Key"
CRON_SECRET_HEADER = "X-Cron-Secret"


def _matches(candidate: Optional[str], secret: Optional[str]) -> bool:
    if not candidate or not secret:
        return False
    return secrets.compare_digest(candidate.encode("utf-8"), secret.encode("utf-8"))


def _basic_password(header: Optional[str]) -> Optional[str]:
    if not header or not header.startswith("Basic "):
        return None
    try:
        decoded = base64.b64decode(header[len("Basic "):], validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    _, sep, password = decoded.partition(":")
    return password if sep else None


def is_authorized(request: Request) -> bool:
    """Admin session, API key, Basic credentials or the scheduler's shared secret."""
    if request.cookies.get(ADMIN_SESSION_COOKIE) == ADMIN_SESSION_VALUE:
        return True
    admin_password = settings.admin_password
    if _matches(request.headers.get(API_KEY_HEADER), admin_password):
        return True
    if _matches(_basic_password(request.headers.get("Authorization")), admin_password):
        return True
    return _matches(request.headers.get(CRON_SECRET_HEADER), settings.cron_secret)


async def require_sync_auth(request: Request) -> None:
    if not is_authorized(request):
        raise HTTPException(status_code=401, detail="Unauthorized")
