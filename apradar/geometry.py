"""Map access point groups onto radar coordinates and visual encodings."""

import math
import struct
from dataclasses import dataclass
from typing import Optional, Tuple

# Signal window drawn on the radar; stronger sits near the center
SIGNAL_STRONG = -30
SIGNAL_WEAK = -90
DISTANCE_NEAR = 0.15
DISTANCE_FAR = 0.85

# (threshold dBm, band name, color); first threshold the signal reaches wins
SIGNAL_BANDS = (
    (-55, "excellent", "#4CAF50"),
    (-67, "good", "#8BC34A"),
    (-75, "fair", "#FFC107"),
    (-85, "poor", "#FF9800"),
)
WEAK_BAND = ("weak", "#F44336")

# Signal above which a node is labelled even when not selected
LABEL_SIGNAL = -67

WOBBLE_AMPLITUDE = 0.02
HIT_RADIUS_FACTOR = 3


def map_range(value: float, in_min: float, in_max: float,
              out_min: float, out_max: float) -> float:
    """Linear interpolation of *value* from one range onto another."""
    return (value - in_min) * (out_max - out_min) / (in_max - in_min) + out_min


def clamp_signal(signal: int) -> int:
    return max(SIGNAL_WEAK, min(SIGNAL_STRONG, signal))


def signal_band(signal: int) -> Tuple[str, str]:
    """Return ``(band_name, color)`` for an unclamped signal level."""
    for threshold, name, color in SIGNAL_BANDS:
        if signal >= threshold:
            return name, color
    return WEAK_BAND


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def identifier_hash(identifier: str) -> int:
    """Order-dependent string hash, ``h = (h << 5) - h + code``.

    The shift wraps to a signed 32-bit integer while the running sum does
    not, so the result matches the hash the dashboard has always used.
    Characters are taken as UTF-16 code units, so anything outside the
    BMP contributes its surrogate pair.
    """
    data = identifier.encode("utf-16-le", "surrogatepass")
    h = 0
    for (code,) in struct.iter_unpack("<H", data):
        h = _to_int32(_to_int32(h) << 5) - h + code
    return h


def identifier_angle(identifier: str) -> float:
    """Radar angle in radians for an identifier.

    Unrelated identifiers may hash to the same angle; they are then told
    apart by distance only.
    """
    degrees = abs(identifier_hash(identifier)) % 360
    return degrees * (math.pi / 180)


@dataclass
class RenderNode:
    """Per-frame drawing state of one access point group."""

    distance: float
    angle: float
    color: str
    band: str
    size: float
    speed: float
    x: Optional[float] = None
    y: Optional[float] = None
    radius: float = 0.0

    @property
    def placed(self) -> bool:
        return self.x is not None and self.y is not None

    def contains(self, x: float, y: float) -> Optional[float]:
        """Distance from the node center if (x, y) is within the hit radius."""
        if not self.placed:
            return None
        d = math.hypot(x - self.x, y - self.y)
        return d if d <= self.radius else None

    def to_dict(self) -> dict:
        return {
            "distance": self.distance,
            "angle": self.angle,
            "color": self.color,
            "band": self.band,
            "size": self.size,
            "speed": self.speed,
            "x": self.x,
            "y": self.y,
            "radius": self.radius,
        }


def map_node(group, now_ms: float) -> RenderNode:
    """Compute the visual encoding of a group.

    Everything but the angle depends only on the group's signal level and
    channel count; the angle depends only on its identifier.  *now_ms* is
    accepted so callers always map with the frame time, the motion itself is
    applied by :func:`place_node`.
    """
    signal = group.signal_level
    band, color = signal_band(signal)
    channel_count = len(group.channels) or 1
    size_boost = min(channel_count * 2, 10)
    return RenderNode(
        distance=map_range(clamp_signal(signal), SIGNAL_STRONG, SIGNAL_WEAK,
                           DISTANCE_NEAR, DISTANCE_FAR),
        angle=identifier_angle(group.identifier),
        color=color,
        band=band,
        size=map_range(signal, SIGNAL_STRONG, SIGNAL_WEAK, 18, 8) + size_boost,
        speed=map_range(signal, SIGNAL_STRONG, SIGNAL_WEAK, 0.0005, 0.0002),
    )


def place_node(node: RenderNode, cx: float, cy: float, max_radius: float,
               now_ms: float) -> RenderNode:
    """Set the node's frame position, including its small radial wobble."""
    wobble = math.sin(now_ms * node.speed) * WOBBLE_AMPLITUDE
    reach = max_radius * (node.distance + wobble)
    node.x = cx + math.cos(node.angle) * reach
    node.y = cy + math.sin(node.angle) * reach
    node.radius = node.size * HIT_RADIUS_FACTOR
    return node
