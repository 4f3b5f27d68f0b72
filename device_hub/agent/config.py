from __future__ import annotations

import os
import socket
from dataclasses import dataclass, field

from device_hub import __version__


def _csv_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    values = tuple(token.strip() for token in raw.split(",") if token.strip())
    return values or default


def _optional_env(name: str) -> str | None:
    raw = os.getenv(name, "").strip()
    return raw or None


@dataclass
class AgentConfig:
    base_url: str = field(default_factory=lambda: os.getenv("AGENT_BASE_URL", "http://127.0.0.1:5000"))
    api_prefix: str = field(default_factory=lambda: os.getenv("AGENT_API_PREFIX", "/api"))
    device_api_key: str = field(default_factory=lambda: os.getenv("AGENT_DEVICE_API_KEY", ""))
    device_id: str | None = field(default_factory=lambda: _optional_env("AGENT_DEVICE_ID"))
    device_type: str = field(default_factory=lambda: os.getenv("AGENT_DEVICE_TYPE", "Fingerprint_Scanner"))
    location: str | None = field(default_factory=lambda: _optional_env("AGENT_LOCATION"))
    room_id: str | None = field(default_factory=lambda: _optional_env("AGENT_ROOM_ID"))
    room_number: str | None = field(default_factory=lambda: _optional_env("AGENT_ROOM_NUMBER"))
    hostname: str = field(default_factory=lambda: os.getenv("AGENT_HOSTNAME", socket.gethostname()))
    ip_address: str | None = field(default_factory=lambda: _optional_env("AGENT_IP_ADDRESS"))
    app_version: str = field(default_factory=lambda: os.getenv("AGENT_APP_VERSION", __version__))
    capabilities: tuple[str, ...] = field(
        default_factory=lambda: _csv_env("AGENT_CAPABILITIES", ("fingerprint",))
    )
    interval_seconds: float = field(default_factory=lambda: float(os.getenv("AGENT_INTERVAL_SECONDS", "30")))
    request_timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("AGENT_REQUEST_TIMEOUT_SECONDS", "8.0"))
    )

    @property
    def heartbeat_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.api_prefix}/devices/heartbeat"
