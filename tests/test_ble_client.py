"""Tests for the BLE link without radio hardware.

The notification handler is driven directly; the full session runs against
fake BleakScanner / BleakClient classes patched into the module.
"""

import asyncio
import time
from types import SimpleNamespace

import pytest

from bleradar import ble_client
from bleradar import constants as C
from bleradar.ble_client import RadarBLE
from bleradar.codec import PayloadError
from bleradar.scan_buffer import Sample


@pytest.fixture
def link():
    events = {"samples": [], "running": [], "lost": []}
    radar = RadarBLE(None, events["samples"].append,
                     name="Radar",
                     on_running=events["running"].append,
                     on_disconnect=lambda: events["lost"].append(True))
    radar.events = events
    yield radar
    radar.stop()


# ------------------------------------------------------------------
# handle_notification
# ------------------------------------------------------------------

class TestNotifications:

    def test_angle_then_distance(self, link):
        link.handle_notification(C.ANGLE_UUID, bytearray(b"\x2a"))
        link.handle_notification(C.DISTANCE_UUID, bytearray(b"\x11"))
        assert link.events["samples"] == [Sample(42, 0), Sample(42, 17)]

    def test_uuid_case_insensitive(self, link):
        link.handle_notification(C.ANGLE_UUID.upper(), b"\x05")
        assert link.events["samples"] == [Sample(5, 0)]

    def test_running(self, link):
        link.handle_notification(C.RUNNING_UUID, b"\x01")
        link.handle_notification(C.RUNNING_UUID, b"\x00")
        assert link.events["running"] == [True, False]

    def test_empty_payload_dropped(self, link):
        link.handle_notification(C.DISTANCE_UUID, b"")
        link.handle_notification(C.RUNNING_UUID, b"")
        assert link.events["samples"] == []
        assert link.events["running"] == []

    def test_unknown_characteristic_ignored(self, link):
        link.handle_notification("00002a19-0000-1000-8000-00805f9b34fb", b"\x64")
        assert link.events["samples"] == []


# ------------------------------------------------------------------
# writes & lifecycle without a running link
# ------------------------------------------------------------------

class TestOffline:

    def test_not_connected(self, link):
        assert link.connected is False

    def test_write_requires_running_link(self, link):
        with pytest.raises(RuntimeError, match="not running"):
            link.set_running(True)

    def test_threshold_validated_first(self, link):
        with pytest.raises(PayloadError):
            link.set_threshold(300)

    def test_stop_never_started_closes_loop(self, link):
        link.stop()
        assert link._loop.is_closed()
        assert link.events["lost"] == []


# ------------------------------------------------------------------
# discovery filter
# ------------------------------------------------------------------

class TestMatch:

    def _adv(self, uuids=(), local_name=None):
        return SimpleNamespace(service_uuids=list(uuids), local_name=local_name)

    def test_service_uuid(self, link):
        dev = SimpleNamespace(name=None)
        assert link._matches(dev, self._adv([C.SERVICE_UUID.upper()]))

    def test_name_substring(self, link):
        dev = SimpleNamespace(name="nRF Radar 01")
        assert link._matches(dev, self._adv())

    def test_local_name(self, link):
        dev = SimpleNamespace(name=None)
        assert link._matches(dev, self._adv(local_name="radar"))

    def test_other_device(self, link):
        dev = SimpleNamespace(name="Headphones")
        assert not link._matches(dev, self._adv(["0000180f-0000-1000-8000-00805f9b34fb"]))


# ------------------------------------------------------------------
# full session against fakes
# ------------------------------------------------------------------

class FakeScanner:
    device = SimpleNamespace(name="Radar", address="AA:BB:CC:DD:EE:FF")

    @classmethod
    async def find_device_by_address(cls, address, timeout=10.0):
        return cls.device if address == cls.device.address else None

    @classmethod
    async def find_device_by_filter(cls, fn, timeout=10.0):
        adv = SimpleNamespace(service_uuids=[C.SERVICE_UUID], local_name=None)
        return cls.device if fn(cls.device, adv) else None


class FakeClient:
    instances = []

    def __init__(self, device, disconnected_callback=None):
        self.device = device
        self.on_lost = disconnected_callback
        self.is_connected = False
        self.writes, self.subscribed = [], {}
        FakeClient.instances.append(self)

    async def __aenter__(self):
        self.is_connected = True
        return self

    async def __aexit__(self, *exc):
        self.is_connected = False
        return False

    async def read_gatt_char(self, uuid):
        assert uuid == C.RUNNING_UUID
        return bytearray(b"\x01")

    async def write_gatt_char(self, uuid, data, response=False):
        self.writes.append((uuid, bytes(data)))

    async def start_notify(self, uuid, callback):
        self.subscribed[uuid] = callback
        if len(self.subscribed) == 3:
            # peripheral pushes one reading, then walks out of range
            char = SimpleNamespace(uuid=C.ANGLE_UUID)
            self.subscribed[C.ANGLE_UUID](char, bytearray(b"\x5a"))
            self.on_lost(self)


@pytest.fixture
def fake_bleak(monkeypatch):
    FakeClient.instances.clear()
    monkeypatch.setattr(ble_client, "BleakScanner", FakeScanner)
    monkeypatch.setattr(ble_client, "BleakClient", FakeClient)


def test_session_by_service(link, fake_bleak):
    asyncio.run(link._session())
    (client,) = FakeClient.instances
    assert set(client.subscribed) == {C.ANGLE_UUID, C.DISTANCE_UUID, C.RUNNING_UUID}
    assert client.writes == [(C.THRESHOLD_UUID, b"\x0f")]
    assert link.events["running"] == [True]
    assert link.events["samples"] == [Sample(90, 0)]
    assert link.events["lost"] == [True]
    assert link.connected is False


def test_session_by_address(fake_bleak):
    lost = []
    radar = RadarBLE("AA:BB:CC:DD:EE:FF", lambda s: None, initial_threshold=22,
                     on_disconnect=lambda: lost.append(True))
    asyncio.run(radar._session())
    (client,) = FakeClient.instances
    assert client.writes == [(C.THRESHOLD_UUID, bytes([22]))]
    assert lost == [True]
    radar.stop()


def test_session_device_not_found(fake_bleak):
    lost = []
    radar = RadarBLE("11:22:33:44:55:66", lambda s: None,
                     on_disconnect=lambda: lost.append(True))
    asyncio.run(radar._session())
    assert FakeClient.instances == []
    assert lost == [True]
    radar.stop()


# ------------------------------------------------------------------
# stop() while the background session is still busy
# ------------------------------------------------------------------

class SlowScanner(FakeScanner):
    """Discovery that takes far longer than the user is willing to wait."""

    @classmethod
    async def find_device_by_filter(cls, fn, timeout=10.0):
        await asyncio.sleep(5)
        return cls.device


def test_stop_during_discovery_cancels_session(link, fake_bleak, monkeypatch):
    monkeypatch.setattr(ble_client, "BleakScanner", SlowScanner)
    link.start()
    time.sleep(0.2)
    t0 = time.monotonic()
    link.stop()
    assert time.monotonic() - t0 < 1.5
    assert not link._thread.is_alive()
    time.sleep(0.3)
    assert FakeClient.instances == []
    assert link.events["lost"] == []
    assert link._loop.is_closed()


def test_stop_after_session_ended(fake_bleak):
    lost = []
    radar = RadarBLE("11:22:33:44:55:66", lambda s: None,
                     on_disconnect=lambda: lost.append(True))
    radar.start()
    radar._thread.join(timeout=2)
    assert radar._loop.is_closed()
    radar.stop()                                 # must not touch the closed loop
    radar.stop()
    assert lost == [True]
