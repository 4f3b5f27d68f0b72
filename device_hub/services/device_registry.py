from __future__ import annotations

import hashlib
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

logger = logging.getLogger("device_hub.registry")

DEFAULT_HEARTBEAT_TTL_MS = 60_000
DEFAULT_CLEANUP_INTERVAL_MS = 30_000
DERIVED_ID_LENGTH = 16

# Order matters: it defines the derived id.
_FINGERPRINT_FIELDS = ("hostname", "ip_address", "location", "room_id", "room_number")


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


def _optional(value: Any) -> Any:
    if value is None or value == "":
        return None
    return value


@dataclass
class DeviceRecord:
    device_id: str
    device_type: str | None = None
    location: str | None = None
    room_id: str | int | None = None
    room_number: str | None = None
    ip_address: str | None = None
    hostname: str | None = None
    app_version: str | None = None
    capabilities: list[str] = field(default_factory=list)
    last_heartbeat_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "deviceId": self.device_id,
            "deviceType": self.device_type,
            "location": self.location,
            "roomId": self.room_id,
            "roomNumber": self.room_number,
            "ipAddress": self.ip_address,
            "hostname": self.hostname,
            "appVersion": self.app_version,
            "capabilities": list(self.capabilities),
            "lastHeartbeatMs": self.last_heartbeat_ms,
        }


def derive_device_id(payload: Mapping[str, Any]) -> str:
    """Fingerprint a device that did not send its own id.

    Missing parts contribute empty strings, so the same physical device keeps
    resolving to the same id across heartbeats.
    """
    parts = []
    for name in _FINGERPRINT_FIELDS:
        value = _optional(payload.get(name))
        parts.append("" if value is None else str(value))
    basis = "|".join(parts)
    return hashlib.sha1(basis.encode("utf-8")).hexdigest()[:DERIVED_ID_LENGTH]


class DeviceRegistry:
    """In-memory view of devices that have sent a heartbeat recently.

    Liveness is never stored: a record is online while
    ``now - last_heartbeat_ms <= heartbeat_ttl_ms``. A background sweep
    removes records older than the TTL; reads only filter.
    """

    def __init__(
        self,
        heartbeat_ttl_ms: int = DEFAULT_HEARTBEAT_TTL_MS,
        cleanup_interval_ms: int = DEFAULT_CLEANUP_INTERVAL_MS,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.heartbeat_ttl_ms = heartbeat_ttl_ms
        self.cleanup_interval_ms = cleanup_interval_ms
        self._clock = clock or _wall_clock_ms
        self._devices: dict[str, DeviceRecord] = {}
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    def __len__(self) -> int:
        with self._lock:
            return len(self._devices)

    def now_ms(self) -> int:
        return int(self._clock())

    def upsert_heartbeat(self, payload: Mapping[str, Any]) -> DeviceRecord:
        device_id = _optional(payload.get("device_id")) or derive_device_id(payload)
        record = DeviceRecord(
            device_id=device_id,
            device_type=_optional(payload.get("device_type")),
            location=_optional(payload.get("location")),
            room_id=_optional(payload.get("room_id")),
            room_number=_optional(payload.get("room_number")),
            ip_address=_optional(payload.get("ip_address")),
            hostname=_optional(payload.get("hostname")),
            app_version=_optional(payload.get("app_version")),
            capabilities=list(payload.get("capabilities") or []),
            last_heartbeat_ms=self.now_ms(),
        )
        with self._lock:
            is_new = device_id not in self._devices
            self._devices[device_id] = record

        if is_new:
            logger.info("Device '%s' (%s) registered from %s.", device_id, record.device_type, record.ip_address)
        else:
            logger.debug("Heartbeat from device '%s'.", device_id)
        return record

    def is_online(self, record: DeviceRecord, now_ms: int | None = None) -> bool:
        now = self.now_ms() if now_ms is None else now_ms
        return now - record.last_heartbeat_ms <= self.heartbeat_ttl_ms

    def list_online(self) -> list[dict[str, Any]]:
        now = self.now_ms()
        with self._lock:
            records = list(self._devices.values())
        online = []
        for record in records:
            if self.is_online(record, now):
                item = record.to_dict()
                item["online"] = True
                online.append(item)
        return online

    def snapshot(self) -> list[DeviceRecord]:
        with self._lock:
            return list(self._devices.values())

    def purge_expired(self) -> int:
        now = self.now_ms()
        with self._lock:
            expired = [
                device_id
                for device_id, record in self._devices.items()
                if now - record.last_heartbeat_ms > self.heartbeat_ttl_ms
            ]
            for device_id in expired:
                del self._devices[device_id]

        if expired:
            logger.info("Purged %d stale device(s): %s", len(expired), ", ".join(expired))
        return len(expired)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name="device-registry-sweep", daemon=True)
        self._thread.start()
        logger.info(
            "Registry sweep started (ttl=%dms, interval=%dms).",
            self.heartbeat_ttl_ms,
            self.cleanup_interval_ms,
        )

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)
        self._thread = None

    def _run_loop(self) -> None:
        interval_seconds = self.cleanup_interval_ms / 1000.0
        while not self._stop_event.wait(interval_seconds):
            try:
                self.purge_expired()
            except Exception:
                logger.exception("Registry sweep iteration failed")
