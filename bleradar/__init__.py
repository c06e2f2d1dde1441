"""
bleradar package
================

Sweep-radar viewer for the BLE ultrasonic radar peripheral.
"""

__all__ = [
    "constants",
    "config",
    "scan_buffer",
    "renderer",
    "codec",
    "ble_client",
    "serial_reader",
    "gui",
]

__version__ = "1.0.0"
