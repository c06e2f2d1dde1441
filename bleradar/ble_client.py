"""
bleradar.ble_client
===================

Talks GATT to the radar peripheral with *bleak* on a private asyncio loop
running in a background thread.

Session
-------
1. find the peripheral (explicit address, else advertised service UUID or
   name match)
2. connect, read the running flag once, write the initial threshold
3. subscribe to angle, distance and running notifications
4. idle until `stop()` or the link drops

Callbacks all fire on the link thread:

    on_sample(Sample)      – every angle *or* distance notification
    on_running(bool)       – initial read + running notifications
    on_disconnect()        – once, when a session ends without stop()

No reconnect: a lost link stays lost until the owner builds a new one.
"""
from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from typing import Callable, Optional

from bleak import BleakClient, BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.exc import BleakError

from bleradar import constants as C
from bleradar.codec import (PayloadError, SampleAssembler, decode_running,
                            decode_uint, encode_running, encode_threshold)
from bleradar.scan_buffer import Sample

logger = logging.getLogger(__name__)


class DeviceNotFound(LookupError):
    """Discovery finished without seeing the radar peripheral."""


class RadarBLE:
    def __init__(self, address: Optional[str],
                 on_sample: Callable[[Sample], None], *,
                 name: Optional[str] = None,
                 scan_timeout: float = 10.0,
                 initial_threshold: int = 15,
                 on_running: Optional[Callable[[bool], None]] = None,
                 on_disconnect: Optional[Callable[[], None]] = None):
        self.address, self.name = address, name
        self.scan_timeout = scan_timeout
        self.initial_threshold = initial_threshold
        self.on_sample = on_sample
        self.on_running = on_running
        self.on_disconnect = on_disconnect

        self._assembler = SampleAssembler()
        self._client: Optional[BleakClient] = None
        self._user_stop = False
        self._loop = asyncio.new_event_loop()
        self._stopping = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        # guards _user_stop, _task creation and loop close against stop()
        self._lock = threading.Lock()
        self._thread = threading.Thread(target=self._run, daemon=True,
                                        name="radar-ble")

    # ───────────────────────── public API
    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        """Cancel the session wherever it is (scanning, connecting, idle)."""
        with self._lock:
            self._user_stop = True
            if self._loop.is_closed():
                return
            if self._thread.ident is None:
                self._loop.close()               # never started
                return
            if self._task is not None:
                self._loop.call_soon_threadsafe(self._task.cancel)
        self._thread.join(timeout=2)

    @property
    def connected(self) -> bool:
        return self._client is not None and self._client.is_connected

    def set_running(self, running: bool) -> concurrent.futures.Future:
        return self._submit(self._write(C.RUNNING_UUID, encode_running(running)))

    def set_threshold(self, cm: int) -> concurrent.futures.Future:
        payload = encode_threshold(cm)            # validate on the caller side
        logger.info("threshold → %d cm", cm)
        return self._submit(self._write(C.THRESHOLD_UUID, payload))

    # ───────────────────────── notification dispatch
    def handle_notification(self, uuid: str, data: bytes) -> None:
        uuid = uuid.lower()
        logger.debug("notification %s: %s", uuid, bytes(data).hex())
        try:
            if uuid == C.ANGLE_UUID:
                self.on_sample(self._assembler.on_angle(decode_uint(data)))
            elif uuid == C.DISTANCE_UUID:
                self.on_sample(self._assembler.on_distance(decode_uint(data)))
            elif uuid == C.RUNNING_UUID:
                self._emit_running(decode_running(data))
            else:
                logger.debug("ignoring notification from %s", uuid)
        except PayloadError as exc:
            logger.warning("dropping %s payload %r: %s", uuid, bytes(data), exc)

    # ───────────────────────── helpers
    def _emit_running(self, running: bool) -> None:
        logger.info("motor %s", "running" if running else "stopped")
        if self.on_running is not None:
            self.on_running(running)

    def _submit(self, coro) -> concurrent.futures.Future:
        if not self._thread.is_alive():
            coro.close()
            raise RuntimeError("BLE link is not running")
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    async def _write(self, uuid: str, payload: bytes) -> None:
        if not self.connected:
            raise BleakError(f"not connected, cannot write {uuid}")
        await self._client.write_gatt_char(uuid, payload, response=True)

    def _matches(self, dev: BLEDevice, adv: AdvertisementData) -> bool:
        if any(u.lower() == C.SERVICE_UUID for u in adv.service_uuids or []):
            return True
        name = dev.name or adv.local_name or ""
        return bool(self.name) and self.name.lower() in name.lower()

    async def _resolve(self) -> BLEDevice:
        if self.address:
            logger.info("looking for %s (%.1fs)", self.address, self.scan_timeout)
            dev = await BleakScanner.find_device_by_address(
                self.address, timeout=self.scan_timeout)
        else:
            logger.info("scanning for radar service / name=%r (%.1fs)",
                        self.name, self.scan_timeout)
            dev = await BleakScanner.find_device_by_filter(
                self._matches, timeout=self.scan_timeout)
        if dev is None:
            raise DeviceNotFound(self.address or self.name or C.SERVICE_UUID)
        return dev

    def _on_link_lost(self, _client: BleakClient) -> None:
        logger.warning("BLE connection lost")
        self._stopping.set()

    # ───────────────────────── background loop
    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        try:
            with self._lock:
                if self._user_stop:
                    return
                self._task = self._loop.create_task(self._session())
            self._loop.run_until_complete(self._task)
        except asyncio.CancelledError:
            logger.info("BLE session cancelled")
        finally:
            with self._lock:
                self._loop.close()

    async def _session(self) -> None:
        try:
            dev = await self._resolve()
            if self._user_stop:
                return
            logger.info("connecting to %s (%s)", dev.name, dev.address)
            async with BleakClient(dev, disconnected_callback=self._on_link_lost) as client:
                self._client = client
                self._emit_running(decode_running(
                    await client.read_gatt_char(C.RUNNING_UUID)))
                await client.write_gatt_char(
                    C.THRESHOLD_UUID, encode_threshold(self.initial_threshold),
                    response=True)
                for uuid in (C.DISTANCE_UUID, C.ANGLE_UUID, C.RUNNING_UUID):
                    await client.start_notify(
                        uuid, lambda char, data: self.handle_notification(char.uuid, data))
                logger.info("subscribed, waiting for sweep data")
                await self._stopping.wait()
        except DeviceNotFound as exc:
            logger.error("radar peripheral not found: %s", exc)
        except (BleakError, asyncio.TimeoutError, OSError, PayloadError) as exc:
            logger.error("BLE session failed: %s", exc)
        finally:
            self._client = None
            if not self._user_stop and self.on_disconnect is not None:
                self.on_disconnect()
