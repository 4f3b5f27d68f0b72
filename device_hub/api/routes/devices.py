from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from device_hub.api.deps import (
    INSTRUCTOR_ROLES,
    get_app_settings,
    get_registry,
    require_device_key,
    require_roles,
)
from device_hub.core.config import Settings
from device_hub.schemas.auth import CurrentPrincipal
from device_hub.schemas.device import (
    DeviceHeartbeat,
    DeviceRecordResponse,
    OnlineDeviceResponse,
    RegistryInfo,
    RegistrySnapshotResponse,
)
from device_hub.services.device_registry import DeviceRegistry

router = APIRouter(prefix="/devices", tags=["devices"])


async def _read_heartbeat(request: Request) -> DeviceHeartbeat:
    # Parsed here rather than as a body parameter so the device key is checked first.
    body = await request.body()
    if not body.strip():
        return DeviceHeartbeat()
    try:
        return DeviceHeartbeat.model_validate_json(body)
    except ValidationError as exc:
        raise RequestValidationError(
            [{**error, "loc": ("body", *error["loc"])} for error in exc.errors()]
        ) from exc


@router.post(
    "/heartbeat",
    response_model=DeviceRecordResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_device_key)],
)
async def heartbeat(
    request: Request,
    registry: DeviceRegistry = Depends(get_registry),
):
    payload = await _read_heartbeat(request)
    fields = payload.model_dump()
    if not fields.get("ip_address") and request.client is not None:
        fields["ip_address"] = request.client.host
    record = registry.upsert_heartbeat(fields)
    return record.to_dict()


@router.get("/online", response_model=list[OnlineDeviceResponse])
def list_online_devices(
    _principal: CurrentPrincipal = Depends(require_roles(*INSTRUCTOR_ROLES)),
    registry: DeviceRegistry = Depends(get_registry),
):
    return registry.list_online()


# No auth on this route. REGISTRY_DEBUG_ENABLED=false disables it.
@router.get("/debug/registry", response_model=RegistrySnapshotResponse)
def debug_registry(
    registry: DeviceRegistry = Depends(get_registry),
    settings: Settings = Depends(get_app_settings),
):
    if not settings.registry_debug_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    devices = [record.to_dict() for record in registry.snapshot()]
    return RegistrySnapshotResponse(
        total_devices=len(devices),
        devices=devices,
        registry_info=RegistryInfo(
            heartbeat_ttl_ms=registry.heartbeat_ttl_ms,
            cleanup_interval_ms=registry.cleanup_interval_ms,
        ),
    )
