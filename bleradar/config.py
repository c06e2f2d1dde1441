"""
bleradar.config
===============

Tiny helper that loads / saves *radar_config.json* and injects sensible
defaults for any missing keys.
"""

from __future__ import annotations
import copy
import json
from pathlib import Path

from bleradar.constants import CFG_PATH, MAX_DISTANCE, TRAIL_WINDOW

_DEFAULT = {
    # input selection
    "input_mode": "ble",              # "ble"  or  "serial"

    # BLE (only used when input_mode == "ble")
    "device_address": None,           # None → discover by service UUID / name
    "device_name": "Radar",
    "scan_timeout": 10.0,             # seconds

    # serial debug firmware (only used when input_mode == "serial")
    "serial_port": "/dev/ttyACM0",
    "serial_baud": 9600,

    # peripheral settings
    "threshold": 15,                  # cm, written on connect
    "threshold_max": 100,             # slider ceiling (uint8 on the wire)

    # visuals
    "trail_window": TRAIL_WINDOW,     # degrees
    "max_distance": MAX_DISTANCE,     # cm
    "window_size": [900, 620],

    # diagnostics
    "log_level": "INFO",
}


def load(path: Path = CFG_PATH) -> dict:
    try:
        with open(path) as fh:
            return {**copy.deepcopy(_DEFAULT), **json.load(fh)}
    except FileNotFoundError:
        save(_DEFAULT, path)
        return copy.deepcopy(_DEFAULT)


def save(cfg: dict, path: Path = CFG_PATH) -> None:
    Path(path).write_text(json.dumps(cfg, indent=2))
