from __future__ import annotations

import logging
from typing import Callable

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from device_hub.core.config import Settings
from device_hub.core.security import device_key_matches, role_allowed, safe_decode_token
from device_hub.schemas.auth import CurrentPrincipal
from device_hub.services.device_registry import DeviceRegistry

logger = logging.getLogger("device_hub.api")

bearer_scheme = HTTPBearer(auto_error=False)

INSTRUCTOR_ROLES = ("instructor", "admin")


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_registry(request: Request) -> DeviceRegistry:
    return request.app.state.registry


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    settings: Settings = Depends(get_app_settings),
) -> CurrentPrincipal:
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Access token required.")
    payload = safe_decode_token(credentials.credentials, settings)
    if not payload:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token.")
    return CurrentPrincipal(
        subject=str(payload.get("sub", "")),
        role=str(payload.get("role", "")).lower(),
    )


def require_roles(*allowed_roles: str) -> Callable[[CurrentPrincipal], CurrentPrincipal]:
    def _checker(principal: CurrentPrincipal = Depends(get_current_principal)) -> CurrentPrincipal:
        if not role_allowed(principal.role, allowed_roles):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions.")
        return principal

    return _checker


def require_device_key(
    request: Request,
    x_device_api_key: str | None = Header(default=None),
    settings: Settings = Depends(get_app_settings),
) -> None:
    if not device_key_matches(x_device_api_key, settings.device_api_key):
        client = request.client.host if request.client else "unknown"
        logger.warning("Rejected heartbeat from %s: missing or invalid device API key.", client)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized device")
