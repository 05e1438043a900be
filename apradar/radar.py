"""Radar render loop, pointer selection and the surfaces they draw on.

The engine owns everything one radar instance needs (records, groups,
selection, pending frame) and is driven by a :class:`FrameScheduler`.  The
GUI host uses :class:`TimerScheduler`; tests drive frames one at a time
with :class:`ManualScheduler`.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple

from .details import render_details
from .geometry import LABEL_SIGNAL, RenderNode, map_node, place_node
from .grouping import AccessPointGroup, group_records
from .records import load_records

log = logging.getLogger(__name__)

RUNNING = "running"
PAUSED = "paused"
STOPPED = "stopped"

FRAME_INTERVAL = 1 / 30            # seconds between frames on the timer host
SWEEP_PERIOD_MS = 3000             # one full sweep revolution
SWEEP_GLOW_SPREAD = 0.2            # radians either side of the sweep line
POINTER_GUARD_MS = 100             # inputs inside this window are dropped
GRID_RINGS = 4
MAX_RADIUS_FACTOR = 0.45
GLOW_SIZE_FACTOR = 2.5
MAX_CHANNEL_RINGS = 3


def _wall_clock_ms() -> float:
    return time.time() * 1000


def hex_to_rgba(hex_color: str, alpha: float) -> str:
    h = hex_color.lstrip("#")
    r, g, b = int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)
    return f"rgba({r}, {g}, {b}, {alpha})"


@dataclass(frozen=True)
class Palette:
    grid: str
    sweep: str
    glow_inner: str
    glow_outer: str
    line_active: str
    line_inactive: str
    label: str
    node_stroke: str
    ring_active: str
    ring_inactive: str
    selected_fill: str = "#FFFFFF"


DARK_PALETTE = Palette(
    grid="rgba(0, 191, 255, 0.3)",
    sweep="rgba(0, 255, 255, 0.6)",
    glow_inner="rgba(0, 191, 255, 0.1)",
    glow_outer="rgba(0, 191, 255, 0)",
    line_active="rgba(255, 255, 255, 0.6)",
    line_inactive="rgba(255, 255, 255, 0.2)",
    label="#FFFFFF",
    node_stroke="rgba(255, 255, 255, 0.8)",
    ring_active="rgba(255, 255, 255, 0.8)",
    ring_inactive="rgba(255, 255, 255, 0.4)",
)

LIGHT_PALETTE = Palette(
    grid="rgba(0, 127, 255, 0.2)",
    sweep="rgba(0, 127, 255, 0.8)",
    glow_inner="rgba(0, 127, 255, 0.05)",
    glow_outer="rgba(0, 127, 255, 0)",
    line_active="rgba(0, 127, 255, 0.6)",
    line_inactive="rgba(0, 127, 255, 0.2)",
    label="#333333",
    node_stroke="rgba(0, 0, 0, 0.2)",
    ring_active="rgba(0, 0, 0, 0.5)",
    ring_inactive="rgba(0, 0, 0, 0.2)",
)


# ------------------------------------------------------------------
# Scheduling
# ------------------------------------------------------------------

class FrameScheduler:
    """Requests a single future call of a frame callback."""

    def request(self, callback: Callable[[], None]):
        raise NotImplementedError

    def cancel(self, handle):
        raise NotImplementedError


class ManualScheduler(FrameScheduler):
    """Holds the pending frame until :meth:`step` is called."""

    def __init__(self):
        self._pending: Optional[Callable[[], None]] = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def request(self, callback):
        self._pending = callback
        return callback

    def cancel(self, handle):
        if self._pending is handle:
            self._pending = None

    def step(self) -> bool:
        """Run the pending frame, if any.  Returns True when one ran."""
        callback, self._pending = self._pending, None
        if callback is None:
            return False
        callback()
        return True


class TimerScheduler(FrameScheduler):
    """Runs each requested frame on a daemon timer thread."""

    def __init__(self, interval: float = FRAME_INTERVAL):
        self.interval = interval

    def request(self, callback):
        timer = threading.Timer(self.interval, callback)
        timer.daemon = True
        timer.start()
        return timer

    def cancel(self, handle):
        handle.cancel()


# ------------------------------------------------------------------
# Drawing surface
# ------------------------------------------------------------------

class RadarSurface:
    """Canvas stand-in that records drawing operations for one frame.

    Operations are plain dicts so a host can ship a presented frame to a
    browser canvas as JSON.  The host reports its displayed (logical) size
    through :meth:`resize`; the engine reconfigures the pixel size to match
    at the start of the next frame.
    """

    def __init__(self, width: int = 600, height: int = 600,
                 on_frame: Optional[Callable[[dict], None]] = None):
        self.width = width
        self.height = height
        self.logical_width = width
        self.logical_height = height
        self.attached = True
        self.on_frame = on_frame
        self.ops: List[dict] = []
        self.last_frame: Optional[dict] = None

    def resize(self, width: int, height: int):
        self.logical_width = int(width)
        self.logical_height = int(height)

    def detach(self):
        self.attached = False

    @property
    def needs_resize(self) -> bool:
        return (self.width, self.height) != (self.logical_width, self.logical_height)

    def configure(self, width: int, height: int):
        self.width = width
        self.height = height

    def clear(self):
        self.ops = [{"op": "clear", "width": self.width, "height": self.height}]

    def circle(self, x, y, r, fill=None, stroke=None, width=1):
        self.ops.append({"op": "circle", "x": x, "y": y, "r": r,
                         "fill": fill, "stroke": stroke, "width": width})

    def line(self, x1, y1, x2, y2, stroke, width=1):
        self.ops.append({"op": "line", "x1": x1, "y1": y1, "x2": x2, "y2": y2,
                         "stroke": stroke, "width": width})

    def wedge(self, x, y, r, start, end, inner, outer):
        """Pie slice filled with a radial gradient from *inner* to *outer*."""
        self.ops.append({"op": "wedge", "x": x, "y": y, "r": r,
                         "start": start, "end": end,
                         "inner": inner, "outer": outer})

    def text(self, x, y, text, color, font="12px Arial"):
        self.ops.append({"op": "text", "x": x, "y": y, "text": text,
                         "color": color, "font": font,
                         "align": "center", "baseline": "bottom"})

    def present(self) -> dict:
        frame = {"width": self.width, "height": self.height, "ops": self.ops}
        self.last_frame = frame
        self.ops = []
        if self.on_frame is not None:
            self.on_frame(frame)
        return frame


# ------------------------------------------------------------------
# Engine
# ------------------------------------------------------------------

class RadarEngine:
    """One radar visualization: grouping, render loop and selection."""

    def __init__(self, records: Iterable, surface: Optional[RadarSurface],
                 light_mode: bool = False,
                 scheduler: Optional[FrameScheduler] = None,
                 clock: Optional[Callable[[], float]] = None,
                 vendor_lookup: Optional[Callable[[str], str]] = None,
                 on_detail: Optional[Callable[[str], None]] = None):
        self.records = load_records(records)
        self.groups: List[AccessPointGroup] = group_records(self.records)
        self.surface = surface
        self.light_mode = light_mode
        self.palette = LIGHT_PALETTE if light_mode else DARK_PALETTE
        self.scheduler = scheduler if scheduler is not None else TimerScheduler()
        self._clock = clock or _wall_clock_ms
        self._vendor_lookup = vendor_lookup
        self.on_detail = on_detail
        # selection
        self.selected: Optional[AccessPointGroup] = None
        self.detail_html = render_details(None)
        self.last_pointer: Optional[Tuple[float, float]] = None
        self._pointer_open_at = 0.0
        # render loop
        self._nodes: List[Optional[RenderNode]] = [None] * len(self.groups)
        self._lock = threading.RLock()
        self._handle = None
        self._token = 0
        self.frames = 0
        self.state = STOPPED

        if surface is None or not surface.attached:
            log.warning("Radar surface unavailable; render loop not started")
            return
        self.state = RUNNING
        self._request_frame()

    # -- loop control --------------------------------------------------

    def _request_frame(self):
        self._token += 1
        token = self._token
        self._handle = self.scheduler.request(lambda: self._tick(token))

    def _cancel_frame(self):
        if self._handle is not None:
            self.scheduler.cancel(self._handle)
            self._handle = None
        # a frame already waiting on the lock sees a stale token and bails
        self._token += 1

    def pause(self):
        """Host reports the radar hidden: stop requesting frames."""
        with self._lock:
            if self.state == RUNNING:
                self._cancel_frame()
                self.state = PAUSED

    def resume(self):
        """Host reports the radar visible again."""
        with self._lock:
            if self.state == PAUSED:
                self.state = RUNNING
                self._request_frame()

    def set_visible(self, visible: bool):
        if visible:
            self.resume()
        else:
            self.pause()

    def stop(self):
        with self._lock:
            if self.state != STOPPED:
                self._cancel_frame()
                self.state = STOPPED

    def _tick(self, token: int):
        with self._lock:
            if token != self._token or self.state != RUNNING:
                return
            self._handle = None
            surface = self.surface
            if not surface.attached:
                log.info("Radar surface detached; render loop stopped")
                self.state = STOPPED
                return
            try:
                if surface.needs_resize:
                    surface.configure(surface.logical_width, surface.logical_height)
                self._draw_frame(self._clock())
                surface.present()
                self.frames += 1
            except Exception:
                log.exception("Radar frame failed; continuing with the next one")
                surface.ops = []
            finally:
                if self.state == RUNNING and self._handle is None:
                    self._request_frame()

    # -- drawing -------------------------------------------------------

    def _draw_frame(self, now: float):
        s = self.surface
        p = self.palette
        cx = s.width / 2
        cy = s.height / 2
        max_radius = min(s.width, s.height) * MAX_RADIUS_FACTOR

        s.clear()
        for i in range(1, GRID_RINGS + 1):
            s.circle(cx, cy, max_radius * (i / GRID_RINGS), stroke=p.grid, width=1)

        sweep = (now % SWEEP_PERIOD_MS) / SWEEP_PERIOD_MS * math.pi * 2
        s.line(cx, cy,
               cx + math.cos(sweep) * max_radius,
               cy + math.sin(sweep) * max_radius,
               stroke=p.sweep, width=2)
        s.wedge(cx, cy, max_radius,
                sweep - SWEEP_GLOW_SPREAD, sweep + SWEEP_GLOW_SPREAD,
                p.glow_inner, p.glow_outer)

        glow_alpha = 0.3 + math.sin(now * 0.002) * 0.1
        for i, group in enumerate(self.groups):
            node = place_node(map_node(group, now), cx, cy, max_radius, now)
            self._nodes[i] = node
            self._draw_node(group, node, cx, cy, glow_alpha)

    def _draw_node(self, group: AccessPointGroup, node: RenderNode,
                   cx: float, cy: float, glow_alpha: float):
        s = self.surface
        p = self.palette
        selected = group is self.selected

        s.line(cx, cy, node.x, node.y,
               stroke=p.line_active if selected else p.line_inactive,
               width=2 if selected else 1)

        glow_size = node.size * GLOW_SIZE_FACTOR
        glow_fill = hex_to_rgba("#FFFFFF" if selected else node.color, glow_alpha)
        s.circle(node.x, node.y, glow_size, fill=glow_fill)

        s.circle(node.x, node.y, node.size,
                 fill=p.selected_fill if selected else node.color,
                 stroke=p.node_stroke, width=2 if selected else 1)

        channel_count = len(group.channels)
        if channel_count > 1:
            ring_color = p.ring_active if selected else p.ring_inactive
            for i in range(1, min(channel_count, MAX_CHANNEL_RINGS) + 1):
                ring_size = node.size * (0.7 - i * 0.15)
                if ring_size > 2:
                    s.circle(node.x, node.y, ring_size, stroke=ring_color, width=1)

        if selected or group.signal_level >= LABEL_SIGNAL:
            label = group.ssid or "Unknown"
            if channel_count > 1:
                label += f" ({channel_count} ch)"
            s.text(node.x, node.y - glow_size - 5, label, p.label,
                   font="bold 14px Arial" if selected else "12px Arial")

    def show_clickable_areas(self):
        """Outline every node's hit circle on the surface (debug aid)."""
        with self._lock:
            if self.surface is None:
                return
            for node in self._nodes:
                if node is not None and node.placed:
                    self.surface.circle(node.x, node.y, node.radius,
                                        stroke="rgba(255, 0, 0, 0.5)")
            self.surface.present()

    # -- selection -----------------------------------------------------

    def node_for(self, group: AccessPointGroup) -> Optional[RenderNode]:
        """The node drawn for *group* in the last frame."""
        with self._lock:
            for i, candidate in enumerate(self.groups):
                if candidate is group:
                    return self._nodes[i]
        return None

    def hit_test(self, x: float, y: float) -> Optional[AccessPointGroup]:
        """Closest group whose last drawn node contains (x, y)."""
        with self._lock:
            best = None
            best_distance = math.inf
            for group, node in zip(self.groups, self._nodes):
                if node is None:
                    continue
                d = node.contains(x, y)
                if d is not None and d < best_distance:
                    best = group
                    best_distance = d
            return best

    def handle_pointer(self, x: float, y: float):
        """Toggle selection of the node under (x, y); clear it on a miss."""
        with self._lock:
            now = self._clock()
            if now < self._pointer_open_at:
                return
            self._pointer_open_at = now + POINTER_GUARD_MS
            self.last_pointer = (x, y)
            hit = self.hit_test(x, y)
            if hit is None or hit is self.selected:
                self._select(None)
            else:
                self._select(hit)

    def _select(self, group: Optional[AccessPointGroup]):
        self.selected = group
        self.detail_html = render_details(group, self._vendor_lookup)
        if self.on_detail is not None:
            self.on_detail(self.detail_html)

    # -- introspection -------------------------------------------------

    def debug_state(self) -> dict:
        """Groups, selection and last pointer input for automated checks."""
        with self._lock:
            networks = []
            selected_index = None
            for i, (group, node) in enumerate(zip(self.groups, self._nodes)):
                entry = group.to_dict()
                entry["node"] = node.to_dict() if node is not None else None
                networks.append(entry)
                if group is self.selected:
                    selected_index = i
            pointer = None
            if self.last_pointer is not None:
                pointer = {"x": self.last_pointer[0], "y": self.last_pointer[1]}
            return {
                "state": self.state,
                "light_mode": self.light_mode,
                "frames": self.frames,
                "networks": networks,
                "selected": self.selected.to_dict() if self.selected else None,
                "selected_index": selected_index,
                "last_pointer": pointer,
            }
