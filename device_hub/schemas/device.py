from __future__ import annotations

from pydantic import BaseModel, ConfigDict, StrictInt, StrictStr
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DeviceHeartbeat(_CamelModel):
    device_type: str | None = None
    device_id: str | None = None
    location: str | None = None
    room_id: StrictStr | StrictInt | None = None
    room_number: str | None = None
    ip_address: str | None = None
    hostname: str | None = None
    app_version: str | None = None
    capabilities: list[str] | None = None


class DeviceRecordResponse(_CamelModel):
    device_id: str
    device_type: str | None = None
    location: str | None = None
    room_id: str | int | None = None
    room_number: str | None = None
    ip_address: str | None = None
    hostname: str | None = None
    app_version: str | None = None
    capabilities: list[str] = []
    last_heartbeat_ms: int


class OnlineDeviceResponse(DeviceRecordResponse):
    online: bool = True


class RegistryInfo(BaseModel):
    heartbeat_ttl_ms: int
    cleanup_interval_ms: int


class RegistrySnapshotResponse(BaseModel):
    total_devices: int
    devices: list[DeviceRecordResponse]
    registry_info: RegistryInfo
