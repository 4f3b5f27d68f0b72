from __future__ import annotations

import secrets
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "IoT Attendance Device Hub"
    api_prefix: str = "/api"
    log_level: str = "INFO"

    # Shared secret sent by devices in the x-device-api-key header.
    # Left empty, every heartbeat is rejected.
    device_api_key: str = ""

    jwt_secret: str = Field(default_factory=lambda: secrets.token_urlsafe(48))
    jwt_algorithm: str = "HS256"
    access_token_minutes: int = 60

    heartbeat_ttl_ms: int = Field(default=60_000, gt=0)
    cleanup_interval_ms: int = Field(default=30_000, gt=0)
    registry_debug_enabled: bool = True

    discovery_enabled: bool = False
    discovery_host: str = "0.0.0.0"
    discovery_port: int = 8888
    discovery_request: str = "IOT_ATTENDANCE_DISCOVERY"
    discovery_response: str = "IOT_ATTENDANCE_SERVER"

    cors_origins_raw: str = "http://localhost:3000,http://localhost:5173"

    @property
    def jwt_secret_configured(self) -> bool:
        # False when the secret came from the per-process random default.
        return "jwt_secret" in self.model_fields_set

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins_raw.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
