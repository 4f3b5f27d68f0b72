import threading

import pytest
from fastapi.testclient import TestClient

from device_hub.agent import AgentConfig, HeartbeatAgent
from device_hub.exceptions import AgentError


def make_config(**overrides) -> AgentConfig:
    values = dict(
        base_url="http://testserver",
        api_prefix="/api",
        device_api_key="test-device-key",
        device_id=None,
        device_type="Fingerprint_Scanner",
        location="Main Office",
        room_id=None,
        room_number="WAC-302",
        hostname="frontdesk-pc",
        ip_address="10.0.0.21",
        app_version="1.0.0",
        capabilities=("fingerprint", "futronic"),
        interval_seconds=0.0,
        request_timeout_seconds=2.0,
    )
    values.update(overrides)
    return AgentConfig(**values)


def test_agent_requires_api_key():
    with pytest.raises(AgentError):
        HeartbeatAgent(make_config(device_api_key=""))


def test_payload_skips_unset_fields():
    payload = HeartbeatAgent(make_config(), session=object()).build_payload()

    assert payload["deviceType"] == "Fingerprint_Scanner"
    assert payload["capabilities"] == ["fingerprint", "futronic"]
    assert "deviceId" not in payload
    assert "roomId" not in payload


def test_heartbeat_url_joins_base_and_prefix():
    cfg = make_config(base_url="http://hub.local:5000/")

    assert cfg.heartbeat_url == "http://hub.local:5000/api/devices/heartbeat"


def test_agent_heartbeat_lands_in_registry(app, registry):
    with TestClient(app) as client:
        agent = HeartbeatAgent(make_config(), session=client)
        body = agent.send_heartbeat()

    assert agent.last_device_id == body["deviceId"]
    stored = registry.snapshot()
    assert len(stored) == 1
    assert stored[0].hostname == "frontdesk-pc"
    assert stored[0].capabilities == ["fingerprint", "futronic"]


def test_agent_run_sends_requested_number_of_beats(app, registry):
    with TestClient(app) as client:
        agent = HeartbeatAgent(make_config(device_id="scanner-1"), session=client)
        delivered = agent.run(max_beats=3)

    assert delivered == 3
    assert [record.device_id for record in registry.snapshot()] == ["scanner-1"]


def test_agent_run_survives_rejected_heartbeats(app, registry):
    with TestClient(app) as client:
        agent = HeartbeatAgent(make_config(device_api_key="wrong"), session=client)
        delivered = agent.run(max_beats=2)

    assert delivered == 0
    assert len(registry) == 0


def test_agent_run_stops_when_event_is_set(app):
    stop = threading.Event()
    stop.set()
    with TestClient(app) as client:
        agent = HeartbeatAgent(make_config(), session=client)
        assert agent.run(stop_event=stop) == 0
