"""
bleradar.codec
==============

Wire helpers for the radar peripheral.

Every characteristic carries a single unsigned byte; `decode_uint()` still
accepts longer payloads and reads them big-endian, the same value you get by
parsing the payload's hex dump as one base-16 number.

The serial debug firmware prints one line per step instead:

    Angle: 42, Distance: 17 cm
"""
from __future__ import annotations

import re
from typing import Optional

from bleradar.scan_buffer import Sample

_SERIAL_RE = re.compile(r"^\s*Angle:\s*(-?\d+)\s*,\s*Distance:\s*(-?\d+)\s*cm\s*$")


class PayloadError(ValueError):
    """Characteristic payload that cannot be decoded or encoded."""


def decode_uint(payload: bytes) -> int:
    if not payload:
        raise PayloadError("empty payload")
    return int.from_bytes(payload, "big")


def decode_running(payload: bytes) -> bool:
    if not payload:
        raise PayloadError("empty running-state payload")
    return payload[0] != 0


def encode_running(running: bool) -> bytes:
    return b"\x01" if running else b"\x00"


def encode_threshold(cm: int) -> bytes:
    if not 0 <= cm <= 0xFF:
        raise PayloadError(f"threshold {cm} cm does not fit in one byte")
    return bytes([cm])


def parse_serial_line(line: str) -> Optional[Sample]:
    """Return the sample in a debug line, or None for banners / noise."""
    m = _SERIAL_RE.match(line)
    if m is None:
        return None
    return Sample(int(m.group(1)), int(m.group(2)))


class SampleAssembler:
    """
    Angle and distance arrive as separate notifications.  Each one refreshes
    its half and yields the combined (latest angle, latest distance) sample.
    """

    def __init__(self) -> None:
        self.angle = 0
        self.distance = 0

    def on_angle(self, value: int) -> Sample:
        self.angle = value
        return Sample(self.angle, self.distance)

    def on_distance(self, value: int) -> Sample:
        self.distance = value
        return Sample(self.angle, self.distance)
