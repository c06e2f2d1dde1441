"""
bleradar.gui
============

BLE-Radar window – BLE / Serial input, motor toggle, threshold slider

Key features
------------
• Half-circle sweep with a 30° trail of red distance wedges
• Start/Stop Motor button mirrors the peripheral's running flag
• Threshold slider (written to the peripheral on release)
• Flashing red “DISCONNECTED” banner once the link drops
• Hot-keys: SPACE motor, C clear trail, Q / ESC quit

Threading
---------
Link callbacks run on the reader thread and only ever `put_nowait()` into
`self.inbox`; the main loop drains it, so `ScanBuffer.update()` and every
redraw happen on this thread alone.
"""

from __future__ import annotations
import logging, time, concurrent.futures
from queue import Queue, Empty
from typing import Optional, Tuple, Union

import pygame

from bleradar import constants as C
from bleradar.ble_client import RadarBLE
from bleradar.codec import PayloadError
from bleradar.renderer import PolarRenderer
from bleradar.scan_buffer import Sample, ScanBuffer, ScanState
from bleradar.serial_reader import RadarSerial

logger = logging.getLogger(__name__)


class RadarGUI:
    SLIDER_W, FLASH_SEC = 320, 0.5

    # ────────────────────────────────────────────────── INIT
    def __init__(self, cfg: dict) -> None:
        self.cfg = cfg

        # ―― Pygame window
        self.screen = pygame.display.set_mode(tuple(cfg["window_size"]), pygame.RESIZABLE)
        pygame.display.set_caption("BLE Radar")
        self.clock = pygame.time.Clock()

        # ―― Core: buffer → renderer → radar surface
        self.buffer   = ScanBuffer(int(cfg["trail_window"]))
        self.renderer = PolarRenderer(max_distance=int(cfg["max_distance"]),
                                      trail_window=int(cfg["trail_window"]))
        self.radar_surf = pygame.Surface(self._radar_size())
        self.buffer.subscribe(self._redraw)

        # ―― Peripheral state
        self.motor_on  = False
        self.threshold = int(cfg["threshold"])
        self.threshold_max = int(cfg["threshold_max"])

        # ―― Widgets
        self.btn_motor = self.slider = pygame.Rect(0, 0, 0, 0)
        self.drag_slider = False
        self._layout()

        # ―― Link & watchdog
        self.inbox: Queue = Queue()
        self.link_lost = False
        self.flash = True; self.t_flash = time.monotonic()
        self.input_mode = cfg.get("input_mode", "ble").lower()
        self.reader: Optional[Union[RadarBLE, RadarSerial]] = None
        self._open_input()

        self._redraw(self.buffer.snapshot())

    # ───────────────────────────────────────── helper – open data source
    def _open_input(self):
        self._close_input()
        self.link_lost = False
        if self.input_mode == "ble":
            self.reader = RadarBLE(
                self.cfg["device_address"], self._on_sample,
                name=self.cfg["device_name"],
                scan_timeout=float(self.cfg["scan_timeout"]),
                initial_threshold=self.threshold,
                on_running=self._on_running,
                on_disconnect=self._on_lost)
        elif self.input_mode == "serial":
            self.reader = RadarSerial(self.cfg["serial_port"],
                                      int(self.cfg["serial_baud"]),
                                      self._on_sample, self._on_lost)
        else:
            raise ValueError(f"unknown input_mode {self.input_mode!r}")
        logger.info("opening %s link", self.input_mode)
        self.reader.start()

    def _close_input(self):
        if self.reader is not None:
            self.reader.stop()
            self.reader = None

    # ───────────────────────────────────────── link callbacks (reader thread)
    def _on_sample(self, sample: Sample):
        self.inbox.put_nowait(("sample", sample))

    def _on_running(self, running: bool):
        self.inbox.put_nowait(("running", running))

    def _on_lost(self):
        self.inbox.put_nowait(("lost", None))

    # ───────────────────────────────────────── inbox (display thread)
    def drain(self) -> int:
        """Apply everything the link queued since the last frame."""
        n = 0
        while True:
            try:
                kind, val = self.inbox.get_nowait()
            except Empty:
                return n
            n += 1
            if kind == "sample":
                try:
                    self.buffer.update(val.angle, val.distance)
                except ValueError as exc:
                    logger.warning("rejected sample %s: %s", val, exc)
            elif kind == "running":
                self.motor_on = bool(val)
            elif kind == "lost":
                self.link_lost = True

    # ───────────────────────────────────────── geometry helpers
    def _radar_size(self) -> Tuple[int, int]:
        w, h = self.screen.get_size()
        return w, max(1, h - C.PANEL_H)

    def _layout(self):
        h = self.screen.get_height()
        top = h - C.PANEL_H
        self.btn_motor = pygame.Rect(20, top + 20, 180, 44)
        self.slider = pygame.Rect(0, 0, self.SLIDER_W, 10)
        self.slider.midleft = (self.btn_motor.right + 40, top + 60)

    def slider_value(self, x: int) -> int:
        left, right = self.slider.left, self.slider.right
        x = max(left, min(right, x))
        return round((x - left) * self.threshold_max / max(1, right - left))

    # ───────────────────────────────────────── radar surface
    def _redraw(self, state: ScanState):
        self.renderer.render(self.radar_surf, state)

    def _resize(self, size):
        self.screen = pygame.display.set_mode(size, pygame.RESIZABLE)
        self.radar_surf = pygame.Surface(self._radar_size())
        self._layout()
        self._redraw(self.buffer.snapshot())

    # ───────────────────────────────────────── peripheral writes
    def _ble_write(self, what: str, fn):
        if not isinstance(self.reader, RadarBLE) or not self.reader.connected:
            logger.warning("%s ignored: no BLE connection", what)
            return
        try:
            fut = fn(self.reader)
        except (RuntimeError, PayloadError) as exc:
            logger.warning("%s failed: %s", what, exc)
            return
        fut.add_done_callback(lambda f: self._write_done(what, f))

    @staticmethod
    def _write_done(what: str, fut: concurrent.futures.Future):
        exc = fut.exception()
        if exc is not None:
            logger.error("%s failed: %s", what, exc)

    def toggle_motor(self):
        self.motor_on = not self.motor_on
        running = self.motor_on
        self._ble_write("motor toggle", lambda r: r.set_running(running))

    def commit_threshold(self):
        value = self.threshold
        self.cfg["threshold"] = value
        if isinstance(self.reader, RadarBLE):
            self.reader.initial_threshold = value    # used if still connecting
        self._ble_write("threshold", lambda r: r.set_threshold(value))

    # ───────────────────────────────────────── control panel
    def _draw_panel(self):
        w, h = self.screen.get_size()
        top = h - C.PANEL_H
        pygame.draw.line(self.screen, C.DIM, (0, top), (w, top))

        # motor button
        pygame.draw.rect(self.screen, C.RADAR_GREEN, self.btn_motor, 2)
        lbl = C.SMALL_FONT.render("Stop Motor" if self.motor_on else "Start Motor",
                                  True, C.RADAR_GREEN)
        self.screen.blit(lbl, lbl.get_rect(center=self.btn_motor.center))

        # threshold slider
        pygame.draw.rect(self.screen, C.DIM, self.slider, 1)
        knobx = self.slider.left + int(self.threshold * self.slider.width
                                       / max(1, self.threshold_max))
        knob = pygame.Rect(0, 0, 10, 22); knob.center = (knobx, self.slider.centery)
        pygame.draw.rect(self.screen, C.RADAR_GREEN, knob)
        self.screen.blit(C.SMALL_FONT.render(f"Threshold: {self.threshold} cm",
                                             True, C.RADAR_GREEN),
                         (self.slider.left, self.slider.top - 30))

        # link status
        if self.input_mode == "serial":
            status = f"SERIAL {self.cfg['serial_port']}"
        elif isinstance(self.reader, RadarBLE) and self.reader.connected:
            status = "BLE connected"
        else:
            status = "BLE scanning..."
        st = C.SMALL_FONT.render(status, True, C.RED if self.link_lost else C.DIM)
        self.screen.blit(st, (w - st.get_width() - 20, h - st.get_height() - 15))

    # ───────────────────────────────────────── MAIN LOOP
    def run(self):
        running = True
        while running:
            self.clock.tick(30)
            if time.monotonic() - self.t_flash > self.FLASH_SEC:
                self.flash = not self.flash; self.t_flash = time.monotonic()

            # ――― EVENTS ―――――――――――――――――――――――――――――――――――――――――――
            for e in pygame.event.get():
                if e.type == pygame.QUIT:
                    running = False
                elif e.type == pygame.VIDEORESIZE:
                    self._resize(e.size)
                elif e.type == pygame.KEYDOWN:
                    if e.key in (pygame.K_q, pygame.K_ESCAPE):
                        running = False
                    elif e.key == pygame.K_SPACE:
                        self.toggle_motor()
                    elif e.key == pygame.K_c:
                        self.buffer.clear()
                elif e.type == pygame.MOUSEBUTTONDOWN and e.button == 1:
                    if self.btn_motor.collidepoint(e.pos):
                        self.toggle_motor()
                    elif self.slider.inflate(0, 20).collidepoint(e.pos):
                        self.drag_slider = True
                        self.threshold = self.slider_value(e.pos[0])
                elif e.type == pygame.MOUSEMOTION and self.drag_slider:
                    self.threshold = self.slider_value(e.pos[0])
                elif e.type == pygame.MOUSEBUTTONUP and e.button == 1 and self.drag_slider:
                    self.drag_slider = False
                    self.commit_threshold()

            # ――― LINK INBOX (redraws radar_surf per sample) ――――――――――――
            self.drain()

            # ――― DRAWING ――――――――――――――――――――――――――――――――――――――――――
            self.screen.fill(C.BLACK)
            self.screen.blit(self.radar_surf, (0, 0))
            self._draw_panel()

            if self.link_lost and self.flash:
                alert = C.BIG_FONT.render("DISCONNECTED", True, C.RED)
                self.screen.blit(alert, alert.get_rect(
                    center=(self.screen.get_width() // 2, self.screen.get_height() // 3)))
            pygame.display.flip()

        # graceful shutdown
        self.cfg["threshold"] = self.threshold
        self._close_input()
        pygame.quit()
