"""
bleradar.scan_buffer
====================

Angle-indexed book-keeping for the sweep.

Every sample `(angle, distance)` is stored under its *raw* angle key; a
repeated angle simply overwrites its distance.  After each write, every key
whose circular distance from the new sweep angle exceeds the trail window is
dropped in the same call, so the buffer never holds stale bearings.

Single writer: call `update()` from the display thread only.  Readers get an
immutable `ScanState` snapshot, either from `snapshot()` or pushed to the
listeners registered with `subscribe()`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, NamedTuple

from bleradar.constants import TRAIL_WINDOW

logger = logging.getLogger(__name__)


class Sample(NamedTuple):
    angle: int          # degrees, raw (may exceed 360 or be negative)
    distance: int       # cm


@dataclass(frozen=True)
class ScanState:
    current_angle: int = 0
    current_distance: int = 0
    retained: Mapping[int, int] = field(default_factory=dict)

    def __post_init__(self):
        # read-only copy, one snapshot is shared by every listener
        object.__setattr__(self, "retained", MappingProxyType(dict(self.retained)))


Listener = Callable[[ScanState], None]


# ────────── angle helpers
def normalize(angle: int) -> int:
    """Map any integer angle into [0, 360)."""
    return angle % 360


def circular_angle_diff(a: int, b: int) -> int:
    """Smallest separation of two angles on the circle, 0..180."""
    d = abs(normalize(a) - normalize(b))
    return 360 - d if d > 180 else d


class ScanBuffer:
    def __init__(self, trail_window: int = TRAIL_WINDOW) -> None:
        self.trail_window = trail_window
        self._angle = 0
        self._distance = 0
        self._retained: Dict[int, int] = {}
        self._listeners: List[Listener] = []

    # ───────────────────────── public API
    def update(self, angle: int, distance: int) -> None:
        if distance < 0:
            raise ValueError(f"distance must be >= 0, got {distance}")

        self._angle, self._distance = angle, distance
        self._retained[angle] = distance

        # —— eager eviction, measured from the new sweep angle ——
        for key in list(self._retained):
            if circular_angle_diff(angle, key) > self.trail_window:
                del self._retained[key]

        self._notify()

    def clear(self) -> None:
        self._angle = self._distance = 0
        self._retained.clear()
        self._notify()

    def snapshot(self) -> ScanState:
        return ScanState(self._angle, self._distance, self._retained)

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    # ───────────────────────── read-only views
    @property
    def current_angle(self) -> int:
        return self._angle

    @property
    def current_distance(self) -> int:
        return self._distance

    @property
    def retained(self) -> Mapping[int, int]:
        return MappingProxyType(self._retained)

    def __len__(self) -> int:
        return len(self._retained)

    def __contains__(self, angle: object) -> bool:
        return angle in self._retained

    # ───────────────────────── helpers
    def _notify(self) -> None:
        if not self._listeners:
            return
        state = self.snapshot()
        logger.debug("sweep %d° / %d cm, %d retained",
                     state.current_angle, state.current_distance,
                     len(state.retained))
        for listener in list(self._listeners):
            listener(state)
