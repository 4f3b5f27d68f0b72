from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from device_hub.api.deps import get_registry
from device_hub.services.device_registry import DeviceRegistry

router = APIRouter(tags=["health"])


@router.get("/health")
def health(registry: DeviceRegistry = Depends(get_registry)) -> dict:
    return {
        "ok": True,
        "service": "iot-attendance-device-hub",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "devices_tracked": len(registry),
    }
