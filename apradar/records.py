"""Scan record ingestion and hardware address normalization."""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

log = logging.getLogger(__name__)

# Signal assumed for records whose level is missing or unparseable.  It
# lands in the lowest quality band and the outermost radar ring.
WEAK_SIGNAL = -90

_NON_HEX_RE = re.compile(r"[^a-f0-9]")
_INT_PREFIX_RE = re.compile(r"^\s*([+-]?\d+)")

# Keys a collector may use for the record list inside a JSON object
_LIST_KEYS = ("wifiNetworks", "networks", "wifi")


def normalize_address(value: Optional[str]) -> str:
    """Lowercase a hardware address and strip everything that is not hex.

    ``"AA:BB:CC:11:22:01"`` -> ``"aabbcc112201"``.  Returns an empty string
    for None/empty input; callers treat that as "no address".
    """
    if not value:
        return ""
    return _NON_HEX_RE.sub("", str(value).lower())


def _first(raw: dict, *keys: str) -> Any:
    """Return the first truthy value among *keys*."""
    for key in keys:
        value = raw.get(key)
        if value:
            return value
    return None


def parse_int(value: Any) -> Optional[int]:
    """Integer-prefix parse: ``"-61 dBm"`` -> -61, garbage -> None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    m = _INT_PREFIX_RE.match(str(value))
    return int(m.group(1)) if m else None


def parse_signal(value: Any) -> int:
    """Parse a signal level in dBm, falling back to ``WEAK_SIGNAL``."""
    level = parse_int(value)
    if not level:
        return WEAK_SIGNAL
    return level


@dataclass(frozen=True)
class ScanRecord:
    """One observation of a wireless access point, in canonical form."""

    ssid: str = ""
    bssid: str = ""
    signal_level: int = WEAK_SIGNAL
    channel: Optional[int] = None
    security: Optional[str] = None
    frequency: Optional[int] = None
    quality: Optional[int] = None

    @property
    def address(self) -> str:
        return normalize_address(self.bssid)

    @property
    def normalized_ssid(self) -> str:
        return self.ssid.strip().lower()

    @classmethod
    def from_dict(cls, raw: dict) -> "ScanRecord":
        """Build a record from a collector dict, tolerating field name variants."""
        ssid = _first(raw, "ssid", "name")
        bssid = _first(raw, "bssid", "mac")
        security = _first(raw, "security", "securityType")
        return cls(
            ssid=str(ssid) if ssid is not None else "",
            bssid=str(bssid).strip() if bssid is not None else "",
            signal_level=parse_signal(
                _first(raw, "signal_level", "signalLevel", "signal", "rssi")),
            channel=parse_int(raw.get("channel")),
            security=str(security) if security is not None else None,
            frequency=parse_int(_first(raw, "frequency", "freq")),
            quality=parse_int(raw.get("quality")),
        )

    def to_dict(self) -> dict:
        return {
            "ssid": self.ssid,
            "bssid": self.bssid,
            "signal_level": self.signal_level,
            "channel": self.channel,
            "security": self.security,
            "frequency": self.frequency,
            "quality": self.quality,
        }


def load_records(items: Iterable[Any]) -> List[ScanRecord]:
    """Normalize raw collector items into ScanRecords, skipping non-objects."""
    records: List[ScanRecord] = []
    for index, item in enumerate(items):
        if isinstance(item, ScanRecord):
            records.append(item)
        elif isinstance(item, dict):
            records.append(ScanRecord.from_dict(item))
        else:
            log.warning("Skipping scan item #%d: expected an object, got %s",
                        index, type(item).__name__)
    return records


def load_scan_file(path: str) -> List[ScanRecord]:
    """Read scan records from a JSON file.

    The file holds either a list of records or an object carrying the list
    under one of ``wifiNetworks``, ``networks`` or ``wifi``.  Raises OSError
    or ValueError when the file cannot be read or has no record list.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        for key in _LIST_KEYS:
            if isinstance(data.get(key), list):
                data = data[key]
                break
        else:
            raise ValueError(
                f"no record list found (expected one of: {', '.join(_LIST_KEYS)})")
    if not isinstance(data, list):
        raise ValueError("scan file must contain a JSON list of records")
    return load_records(data)
