"""HTML for the network details panel and the embeddable radar region."""

from typing import Callable, List, Optional

from jinja2 import Environment

from .geometry import SIGNAL_BANDS, WEAK_BAND, signal_band
from .records import parse_int
from .vendors import lookup_vendor

PLACEHOLDER_TEXT = "Click on a network for details"

# (minimum dBm, quality percent)
_QUALITY_STEPS = ((-50, 100), (-60, 80), (-70, 60), (-80, 40))
_QUALITY_FLOOR = 20
SIGNAL_SEGMENTS = 5

_env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)

_DETAIL_TEMPLATE = _env.from_string("""\
<div class="network-detail-item" style="border-left-color: {{ color }}">
<div class="network-detail-name">{{ name }}</div>
{% if vendor %}
<div class="network-detail-vendor">{{ vendor }}</div>
{% endif %}
<div class="network-detail-row"><span class="detail-label">Signal</span><span class="detail-value">{{ signal }} dBm</span></div>
<div class="network-detail-row"><span class="detail-label">Strength</span><span class="detail-value"><div class="signal-bars" style="color: {{ color }}">
{% for seg in segments %}
<div class="signal-bar{% if not seg.active %} inactive{% endif %}" style="height:{{ seg.height }}%"></div>
{% endfor %}
</div></span></div>
{% if channels %}
<div class="network-detail-row"><span class="detail-label">Channels</span><span class="detail-value">{{ channels | join(', ') }}</span></div>
{% else %}
<div class="network-detail-row"><span class="detail-label">Channel</span><span class="detail-value">Unknown</span></div>
{% endif %}
<div class="network-detail-row"><span class="detail-label">Band</span><span class="detail-value">{{ band }}</span></div>
<div class="network-detail-row"><span class="detail-label">Security</span><span class="detail-value">{{ security }}</span></div>
{% if bssid %}
<div class="network-detail-row"><span class="detail-label">BSSID</span><span class="detail-value" style="font-family: monospace; font-size: 12px;">{{ bssid }}</span></div>
{% endif %}
{% if quality is not none %}
<div class="network-detail-row"><span class="detail-label">Quality</span><span class="detail-value">{{ quality }}/100</span></div>
{% endif %}
{% if variants | length > 1 %}
<div class="network-variant-section">
<div class="variant-title">Available on multiple channels</div>
{% for v in variants %}
<div class="network-variant"><span class="variant-channel">Channel {{ v.channel if v.channel is not none else 'Unknown' }}</span><span class="variant-signal">{{ v.signal_level }} dBm</span></div>
{% if v.bssid and v.bssid != bssid %}
<div class="network-variant-bssid">{{ v.bssid }}</div>
{% endif %}
{% endfor %}
</div>
{% endif %}
</div>
""")

_PLACEHOLDER_HTML = f'<div class="panel-placeholder">{PLACEHOLDER_TEXT}</div>'

_FRAGMENT_TEMPLATE = _env.from_string("""\
<div class="wifi-radar-container{% if light_mode %} light-mode{% endif %}">
  <div class="wifi-radar-header">
    <h3>WiFi Networks Radar</h3>
    <div class="wifi-radar-legend">
{% for label, color in legend %}
      <div class="legend-item"><span class="legend-color" style="background-color: {{ color }};"></span><span class="legend-label">{{ label }}</span></div>
{% endfor %}
    </div>
  </div>
  <div class="wifi-radar-canvas-container">
    <canvas id="{{ radar_id }}" width="{{ width }}" height="{{ height }}"></canvas>
  </div>
  <div class="network-details-panel">
    <div class="panel-title">Network Details</div>
    <div id="{{ radar_id }}-details" class="panel-content">{{ placeholder | safe }}</div>
  </div>
</div>
""")


def signal_quality(signal_level) -> Optional[int]:
    """Quality percentage for the 5-segment bar, None when unparseable."""
    signal = parse_int(signal_level)
    if signal is None:
        return None
    for minimum, quality in _QUALITY_STEPS:
        if signal >= minimum:
            return quality
    return _QUALITY_FLOOR


def signal_segments(signal_level) -> List[dict]:
    """Five bar segments of increasing height, active up to the quality."""
    quality = signal_quality(signal_level)
    segments = []
    for i in range(1, SIGNAL_SEGMENTS + 1):
        step = i * 20
        segments.append({
            "height": step,
            "active": quality is not None and quality >= step,
        })
    return segments


def infer_band(channels: List[int], frequency: Optional[int] = None) -> str:
    """Band label from channel numbers (1-14 are 2.4 GHz)."""
    if channels:
        has_24 = any(ch <= 14 for ch in channels)
        has_5 = any(ch > 14 for ch in channels)
        if has_24 and has_5:
            return "2.4 & 5 GHz"
        return "5 GHz" if has_5 else "2.4 GHz"
    if frequency:
        return "5 GHz" if frequency >= 4900 else "2.4 GHz"
    return "Unknown"


def render_details(group, vendor_lookup: Optional[Callable[[str], str]] = None) -> str:
    """Detail view markup for a selected group, or the placeholder for None."""
    if group is None:
        return _PLACEHOLDER_HTML
    lookup = vendor_lookup or lookup_vendor
    record = group.record
    _, color = signal_band(group.signal_level)
    return _DETAIL_TEMPLATE.render(
        color=color,
        name=group.ssid or "Unknown",
        vendor=lookup(group.bssid) if group.bssid else "",
        signal=group.signal_level,
        segments=signal_segments(group.signal_level),
        channels=sorted(group.channels),
        band=infer_band(group.channels, record.frequency),
        security=record.security or "Unknown",
        bssid=group.bssid,
        quality=record.quality,
        variants=group.variants,
    )


def legend_entries() -> List[tuple]:
    entries = []
    for threshold, name, color in SIGNAL_BANDS:
        entries.append((f"{name.capitalize()} (≥ {threshold} dBm)", color))
    last_threshold = SIGNAL_BANDS[-1][0]
    entries.append((f"{WEAK_BAND[0].capitalize()} (< {last_threshold} dBm)",
                    WEAK_BAND[1]))
    return entries


def render_radar_fragment(radar_id: str, light_mode: bool = False,
                          width: int = 600, height: int = 600) -> str:
    """The mountable radar region: legend, canvas and details panel."""
    return _FRAGMENT_TEMPLATE.render(
        radar_id=radar_id,
        light_mode=light_mode,
        legend=legend_entries(),
        width=width,
        height=height,
        placeholder=_PLACEHOLDER_HTML,
    )
