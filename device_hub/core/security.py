from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Iterable

from jose import JWTError, jwt

from .config import Settings, get_settings

SUPERADMIN_ROLE = "superadmin"


def create_access_token(subject: str, role: str, settings: Settings | None = None) -> str:
    settings = settings or get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "role": role,
        "exp": now + timedelta(minutes=settings.access_token_minutes),
        "iat": now,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings | None = None) -> dict:
    settings = settings or get_settings()
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])


def safe_decode_token(token: str, settings: Settings | None = None) -> dict | None:
    try:
        return decode_access_token(token, settings)
    except JWTError:
        return None


def role_allowed(actual_role: str, allowed_roles: Iterable[str]) -> bool:
    role = (actual_role or "").lower()
    if role == SUPERADMIN_ROLE:
        return True
    return role in {allowed.lower() for allowed in allowed_roles}


def device_key_matches(presented: str | None, configured: str) -> bool:
    if not configured or not presented:
        return False
    return secrets.compare_digest(presented.encode("utf-8"), configured.encode("utf-8"))
