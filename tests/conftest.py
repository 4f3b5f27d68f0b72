from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from device_hub.core.config import Settings
from device_hub.core.security import create_access_token
from device_hub.main import create_app
from device_hub.services.device_registry import DeviceRegistry

DEVICE_KEY = "test-device-key"


class FakeClock:
    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        device_api_key=DEVICE_KEY,
        jwt_secret="test-jwt-secret",
        heartbeat_ttl_ms=60_000,
        cleanup_interval_ms=30_000,
    )


@pytest.fixture
def registry(clock: FakeClock) -> DeviceRegistry:
    return DeviceRegistry(heartbeat_ttl_ms=60_000, cleanup_interval_ms=30_000, clock=clock)


@pytest.fixture
def app(settings: Settings, registry: DeviceRegistry):
    return create_app(settings=settings, registry=registry)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def device_headers() -> dict:
    return {"x-device-api-key": DEVICE_KEY}


@pytest.fixture
def auth_headers(settings: Settings):
    def _make(role: str = "instructor", subject: str = "user-1") -> dict:
        token = create_access_token(subject=subject, role=role, settings=settings)
        return {"Authorization": f"Bearer {token}"}

    return _make
