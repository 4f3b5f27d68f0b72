import hashlib
import time

from device_hub.services.device_registry import DeviceRegistry, derive_device_id


def test_upsert_stores_record_with_current_time(registry, clock):
    record = registry.upsert_heartbeat({"device_id": "esp32-1", "device_type": "Door_Controller"})

    assert record.device_id == "esp32-1"
    assert record.device_type == "Door_Controller"
    assert record.last_heartbeat_ms == clock.now_ms
    assert record.capabilities == []
    assert record.location is None
    assert len(registry) == 1


def test_repeated_heartbeats_keep_one_record(registry, clock):
    for _ in range(5):
        registry.upsert_heartbeat({"device_id": "esp32-1"})
        clock.advance(1_000)
    for _ in range(5):
        registry.upsert_heartbeat({"hostname": "room-12-pi", "ip_address": "10.0.0.9"})

    assert len(registry) == 2


def test_ttl_boundary(registry, clock):
    registry.upsert_heartbeat({"device_id": "stale"})
    clock.advance(registry.heartbeat_ttl_ms + 1)
    registry.upsert_heartbeat({"device_id": "fresh"})

    online_ids = [item["deviceId"] for item in registry.list_online()]
    assert online_ids == ["fresh"]


def test_device_exactly_at_ttl_is_still_online(registry, clock):
    registry.upsert_heartbeat({"device_id": "edge"})
    clock.advance(registry.heartbeat_ttl_ms)

    assert [item["deviceId"] for item in registry.list_online()] == ["edge"]


def test_list_online_annotates_and_does_not_mutate(registry, clock):
    registry.upsert_heartbeat({"device_id": "a", "capabilities": ["rfid"]})
    online = registry.list_online()
    assert online[0]["online"] is True
    assert online[0]["capabilities"] == ["rfid"]

    clock.advance(registry.heartbeat_ttl_ms + 5_000)
    assert registry.list_online() == []
    assert [record.device_id for record in registry.snapshot()] == ["a"]


def test_derived_id_is_deterministic_and_sensitive_to_each_field():
    base = {
        "hostname": "room-12-pi",
        "ip_address": "10.0.0.9",
        "location": "Building A",
        "room_id": 12,
        "room_number": "WAC-302",
    }
    derived = derive_device_id(base)
    assert derived == derive_device_id(dict(base))
    assert len(derived) == 16
    int(derived, 16)

    for name, value in [
        ("hostname", "room-13-pi"),
        ("ip_address", "10.0.0.10"),
        ("location", "Building B"),
        ("room_id", 13),
        ("room_number", "WAC-303"),
    ]:
        changed = dict(base, **{name: value})
        assert derive_device_id(changed) != derived, name


def test_derived_id_uses_sha1_of_pipe_joined_fields():
    expected = hashlib.sha1(b"room-12-pi|10.0.0.9|||").hexdigest()[:16]
    assert derive_device_id({"hostname": "room-12-pi", "ip_address": "10.0.0.9"}) == expected


def test_last_write_wins_without_merging(registry):
    registry.upsert_heartbeat(
        {
            "device_id": "esp32-1",
            "device_type": "Door_Controller",
            "location": "Lab 1",
            "capabilities": ["lock"],
        }
    )
    record = registry.upsert_heartbeat({"device_id": "esp32-1", "hostname": "esp32-host"})

    stored = registry.snapshot()[0]
    assert stored is record
    assert stored.hostname == "esp32-host"
    assert stored.device_type is None
    assert stored.location is None
    assert stored.capabilities == []


def test_empty_strings_are_treated_as_missing(registry):
    record = registry.upsert_heartbeat({"device_id": "", "hostname": "pi", "location": ""})

    assert record.location is None
    assert record.device_id == derive_device_id({"hostname": "pi"})


def test_purge_expired_removes_only_stale_records(registry, clock):
    registry.upsert_heartbeat({"device_id": "old"})
    clock.advance(registry.heartbeat_ttl_ms + 1)
    registry.upsert_heartbeat({"device_id": "new"})

    assert registry.purge_expired() == 1
    assert [record.device_id for record in registry.snapshot()] == ["new"]
    assert registry.purge_expired() == 0


def test_purged_device_heartbeat_creates_new_record(registry, clock):
    first = registry.upsert_heartbeat({"device_id": "esp32-1"})
    clock.advance(registry.heartbeat_ttl_ms + 1)
    registry.purge_expired()

    second = registry.upsert_heartbeat({"device_id": "esp32-1"})
    assert second is not first
    assert second.last_heartbeat_ms == clock.now_ms


def test_background_sweep_removes_stale_entries(clock):
    registry = DeviceRegistry(heartbeat_ttl_ms=1_000, cleanup_interval_ms=10, clock=clock)
    registry.upsert_heartbeat({"device_id": "esp32-1"})
    clock.advance(1_001)

    registry.start()
    try:
        assert registry.is_running
        deadline = time.monotonic() + 3.0
        while len(registry) and time.monotonic() < deadline:
            time.sleep(0.01)
        assert registry.snapshot() == []
    finally:
        registry.stop()
    assert not registry.is_running


def test_start_is_idempotent_and_stop_without_start_is_safe(registry):
    registry.stop()
    registry.start()
    thread = registry._thread
    registry.start()
    assert registry._thread is thread
    registry.stop()
    assert not registry.is_running


def test_zero_room_id_is_kept(registry):
    record = registry.upsert_heartbeat({"device_id": "a", "room_id": 0})

    assert record.room_id == 0
