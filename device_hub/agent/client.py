from __future__ import annotations

import logging
import threading
from typing import Any

import requests

from device_hub.exceptions import AgentError

from .config import AgentConfig

logger = logging.getLogger("device_hub.agent")


class HeartbeatAgent:
    """Device-side sender that announces presence to the hub on a fixed interval."""

    def __init__(self, cfg: AgentConfig, session: Any | None = None) -> None:
        if not cfg.device_api_key:
            raise AgentError("AGENT_DEVICE_API_KEY is required to send heartbeats.")
        self.cfg = cfg
        self.session = session or requests.Session()
        self.last_device_id: str | None = None

    def build_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "deviceType": self.cfg.device_type,
            "deviceId": self.cfg.device_id,
            "location": self.cfg.location,
            "roomId": self.cfg.room_id,
            "roomNumber": self.cfg.room_number,
            "hostname": self.cfg.hostname,
            "ipAddress": self.cfg.ip_address,
            "appVersion": self.cfg.app_version,
            "capabilities": list(self.cfg.capabilities),
        }
        return {key: value for key, value in payload.items() if value is not None}

    def send_heartbeat(self) -> dict[str, Any]:
        resp = self.session.post(
            self.cfg.heartbeat_url,
            json=self.build_payload(),
            headers={"x-device-api-key": self.cfg.device_api_key},
            timeout=self.cfg.request_timeout_seconds,
        )
        resp.raise_for_status()
        body = resp.json()
        self.last_device_id = body.get("deviceId")
        return body

    def run(self, stop_event: threading.Event | None = None, max_beats: int | None = None) -> int:
        """Send heartbeats until stopped. Failures are logged and retried on the next tick."""
        stop_event = stop_event or threading.Event()
        attempts = 0
        delivered = 0
        while not stop_event.is_set():
            attempts += 1
            try:
                body = self.send_heartbeat()
                delivered += 1
                logger.debug("Heartbeat delivered as '%s'.", body.get("deviceId"))
            except Exception as exc:
                logger.warning("Heartbeat to %s failed: %s", self.cfg.heartbeat_url, exc)
            if max_beats is not None and attempts >= max_beats:
                break
            stop_event.wait(max(0.0, self.cfg.interval_seconds))
        return delivered
