"""
bleradar.renderer
=================

Polar sweep renderer.

`build_scene()` turns a `ScanState` and a viewport size into a flat list of
draw primitives (absolute pixel coordinates, y grows downward).  It is a pure
function: equal inputs give equal scenes.  `render()` builds the scene and
paints it onto a pygame surface.

Layout (fractions of the view)
------------------------------
    center   = (w/2, h - h*0.074)
    radius R = (w - w*0.0625) / 2          outer arc, wedge outer edge
    sweep  L = h - h*0.12                  scanning line length

Draw order: background → arc / diameter / spokes → sweep line → wedges →
status text.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

import pygame

from bleradar import constants as C
from bleradar.scan_buffer import ScanState, circular_angle_diff

Point = Tuple[float, float]
Colour = Tuple[int, int, int]


# ────────── primitives
@dataclass(frozen=True)
class Fill:
    colour: Colour


@dataclass(frozen=True)
class Arc:
    center: Point
    radius: float
    start_deg: float
    stop_deg: float
    colour: Colour
    width: int


@dataclass(frozen=True)
class Line:
    start: Point
    end: Point
    colour: Colour
    width: int


@dataclass(frozen=True)
class Polygon:
    points: Tuple[Point, ...]
    colour: Colour


@dataclass(frozen=True)
class Text:
    text: str
    baseline_left: Point
    colour: Colour


Primitive = Union[Fill, Arc, Line, Polygon, Text]


# ────────── geometry helpers
def radar_center(w: float, h: float) -> Point:
    return w / 2, h - h * C.CENTER_LIFT


def radar_radius(w: float) -> float:
    return (w - w * C.RADIUS_MARGIN) / 2


def sweep_length(h: float) -> float:
    return h - h * C.SWEEP_SHORTEN


def polar(center: Point, r: float, deg: float) -> Point:
    """Project (r, θ) around *center*; θ counter-clockwise from +x, screen-up."""
    th = math.radians(deg)
    return center[0] + r * math.cos(th), center[1] - r * math.sin(th)


def clamp(value: float, hi: float, lo: float = 0) -> float:
    return max(lo, min(hi, value))


class PolarRenderer:
    def __init__(self,
                 max_distance: int = C.MAX_DISTANCE,
                 trail_window: int = C.TRAIL_WINDOW,
                 wedge_width: float = C.ANGLE_WEDGE_WIDTH,
                 font: Optional[pygame.font.Font] = None) -> None:
        self.max_distance = max_distance
        self.trail_window = trail_window
        self.wedge_width = wedge_width
        self.font = font or C.FONT

    # ───────────────────────── scene
    def build_scene(self, state: ScanState, w: float, h: float) -> List[Primitive]:
        center = radar_center(w, h)
        r = radar_radius(w)

        scene: List[Primitive] = [Fill(C.BLACK)]
        scene += self._chrome(center, r, w)
        scene.append(Line(center, polar(center, sweep_length(h), state.current_angle),
                          C.SWEEP_GREEN, C.SWEEP_STROKE))
        scene += self._wedges(state, center, r)
        scene += [
            Text(f"Angle: {state.current_angle}°",
                 (C.TEXT_X, h - C.ANGLE_TEXT_UP), C.RADAR_GREEN),
            Text(f"Distance: {state.current_distance} cm",
                 (C.TEXT_X, h - C.DIST_TEXT_UP), C.RADAR_GREEN),
        ]
        return scene

    def _chrome(self, center: Point, r: float, w: float) -> List[Primitive]:
        cx, cy = center
        out: List[Primitive] = [
            Arc(center, r, 0, 180, C.RADAR_GREEN, C.RADAR_STROKE),
            Line((cx - w / 2, cy), (cx + w / 2, cy), C.RADAR_GREEN, C.RADAR_STROKE),
        ]
        for ang in C.SPOKE_ANGLES:
            out.append(Line(center, polar(center, r, ang),
                            C.RADAR_GREEN, C.RADAR_STROKE))
        return out

    def _wedges(self, state: ScanState, center: Point, r: float) -> List[Primitive]:
        out: List[Primitive] = []
        for angle, distance in state.retained.items():
            # buffer already evicts; re-check against the snapshot's own sweep
            if circular_angle_diff(state.current_angle, angle) > self.trail_window:
                continue
            inner = self.scaled_radius(distance, r)
            a2 = angle + self.wedge_width
            out.append(Polygon((
                polar(center, inner, angle),
                polar(center, r, angle),
                polar(center, r, a2),
                polar(center, inner, a2),
            ), C.WEDGE_RED))
        return out

    def scaled_radius(self, distance: int, r: float) -> float:
        """Distance → pixels; anything past max_distance sits on the rim."""
        if self.max_distance <= 0:
            return r
        return clamp(distance, self.max_distance) / self.max_distance * r

    # ───────────────────────── painting
    def render(self, surface: pygame.Surface, state: ScanState,
               w: Optional[float] = None, h: Optional[float] = None) -> None:
        if w is None or h is None:
            w, h = surface.get_size()
        self.draw_scene(surface, self.build_scene(state, w, h))

    def draw_scene(self, surface: pygame.Surface, scene: List[Primitive]) -> None:
        for p in scene:
            if isinstance(p, Fill):
                surface.fill(p.colour)
            elif isinstance(p, Arc):
                if p.radius <= 0:
                    continue
                (cx, cy), rad = p.center, p.radius
                rect = pygame.Rect(round(cx - rad), round(cy - rad),
                                   round(2 * rad), round(2 * rad))
                pygame.draw.arc(surface, p.colour, rect,
                                math.radians(p.start_deg), math.radians(p.stop_deg),
                                p.width)
            elif isinstance(p, Line):
                pygame.draw.line(surface, p.colour, p.start, p.end, p.width)
            elif isinstance(p, Polygon):
                pygame.draw.polygon(surface, p.colour, p.points)
            elif isinstance(p, Text):
                surf = self.font.render(p.text, True, p.colour)
                x, y = p.baseline_left
                surface.blit(surf, surf.get_rect(bottomleft=(int(x), int(y))))
