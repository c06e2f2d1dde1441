"""
bleradar.serial_reader
======================

Non-blocking line reader for the radar's serial debug firmware, which
prints `Angle: <a>, Distance: <d> cm` once per servo step instead of
advertising over BLE.

Callback signature
------------------
    on_sample(Sample)          – called on the reader thread
    on_disconnect()            – optional, called once if the port fails

Usage
-----
    reader = RadarSerial("/dev/ttyACM0", 9600, on_sample)
    reader.start()     # spawns a background thread
    reader.stop()      # clean shutdown
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

import serial

from bleradar.codec import parse_serial_line
from bleradar.scan_buffer import Sample

logger = logging.getLogger(__name__)


class RadarSerial:
    MAX_LINE = 256                     # bytes kept while waiting for a newline

    def __init__(self, port: str, baud: int,
                 on_sample: Callable[[Sample], None],
                 on_disconnect: Optional[Callable[[], None]] = None):
        self.port, self.baud = port, baud
        self._cb      = on_sample
        self._on_lost = on_disconnect
        self._buf     = bytearray()
        self._stop    = threading.Event()
        self._thread  = threading.Thread(target=self._loop, daemon=True,
                                         name="radar-serial")

    # ───────────────────────── public API
    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread.is_alive():
            self._thread.join(timeout=1)

    # ───────────────────────── helpers
    def feed(self, chunk: bytes) -> int:
        """
        Append raw bytes, dispatch every complete line.
        Returns the number of samples delivered.
        """
        self._buf += chunk
        delivered = 0
        while True:
            idx = self._buf.find(b"\n")
            if idx == -1:
                if len(self._buf) > self.MAX_LINE:   # runaway noise
                    del self._buf[:-self.MAX_LINE]
                return delivered
            line = self._buf[:idx].decode("utf-8", errors="ignore")
            del self._buf[: idx + 1]

            sample = parse_serial_line(line)
            if sample is None:
                if line.strip():
                    logger.debug("serial: skipping %r", line.strip())
                continue
            self._cb(sample)
            delivered += 1

    # ───────────────────────── background reader thread
    def _loop(self):
        try:
            with serial.Serial(self.port, self.baud, timeout=0.05) as ser:
                logger.info("serial link open: %s @ %d", self.port, self.baud)
                while not self._stop.is_set():
                    self.feed(ser.read(ser.in_waiting or 1))
        except serial.SerialException as exc:
            logger.error("serial link %s failed: %s", self.port, exc)
            if self._on_lost is not None:
                self._on_lost()
        else:
            logger.info("serial link closed: %s", self.port)
