"""Cluster raw scan records into physical access points.

A radio that advertises several networks or bands usually shows up under
addresses that differ only in the last octet.  Records are merged when their
addresses are identical, or related and advertising the same SSID.  The
pass is order-sensitive: when several existing groups are related to a new
address, the first one created wins.
"""

import logging
import random
from typing import Dict, Iterable, List, Optional

from .records import ScanRecord, normalize_address

log = logging.getLogger(__name__)

# 6 octets; relatedness compares the first 5
_FULL_ADDRESS_LEN = 12
_RELATED_PREFIX_LEN = 10


def addresses_related(addr1: Optional[str], addr2: Optional[str]) -> bool:
    """True when two addresses differ only in their last octet.

    Both are normalized first; anything shorter than 12 hex characters is
    never related to anything.
    """
    norm1 = normalize_address(addr1)
    norm2 = normalize_address(addr2)
    if len(norm1) < _FULL_ADDRESS_LEN or len(norm2) < _FULL_ADDRESS_LEN:
        return False
    return norm1[:_RELATED_PREFIX_LEN] == norm2[:_RELATED_PREFIX_LEN]


class AccessPointGroup:
    """A logical access point: a representative record plus merged variants."""

    def __init__(self, record: ScanRecord, key: str = ""):
        self.record = record
        self.key = key
        self.variants: List[ScanRecord] = [record]
        self.signal_level = record.signal_level
        # insertion ordered; the dict keys act as the channel set
        self._channels: Dict[int, None] = {}
        if record.channel is not None:
            self._channels[record.channel] = None
        self._fallback_id: Optional[str] = None

    @property
    def channels(self) -> List[int]:
        """Distinct channels in first-seen order."""
        return list(self._channels)

    @property
    def ssid(self) -> str:
        return self.record.ssid

    @property
    def bssid(self) -> str:
        return self.record.bssid

    @property
    def normalized_ssid(self) -> str:
        return self.record.normalized_ssid

    @property
    def identifier(self) -> str:
        """Best available identity: address, else SSID, else a random token.

        The random token is drawn once per group so the radar angle derived
        from it stays fixed while the group lives.
        """
        if self.record.bssid:
            return self.record.bssid
        if self.record.ssid:
            return self.record.ssid
        if self._fallback_id is None:
            self._fallback_id = repr(random.random())
        return self._fallback_id

    def add(self, record: ScanRecord):
        """Merge another observation of this access point."""
        if record.channel is not None and record.channel not in self._channels:
            self._channels[record.channel] = None
        self.variants.append(record)
        if record.signal_level > self.signal_level:
            self.signal_level = record.signal_level

    def to_dict(self) -> dict:
        return {
            "ssid": self.ssid,
            "bssid": self.bssid,
            "key": self.key,
            "signal_level": self.signal_level,
            "channels": self.channels,
            "security": self.record.security,
            "variants": [v.to_dict() for v in self.variants],
        }

    def __repr__(self):
        return (f"AccessPointGroup(ssid={self.ssid!r}, bssid={self.bssid!r}, "
                f"signal={self.signal_level}, channels={self.channels})")


def ssid_index(records: Iterable[ScanRecord]) -> Dict[str, List[ScanRecord]]:
    """Map each non-empty normalized SSID to the records advertising it."""
    index: Dict[str, List[ScanRecord]] = {}
    for record in records:
        ssid = record.normalized_ssid
        if ssid:
            index.setdefault(ssid, []).append(record)
    return index


def _find_related_key(groups_by_key: Dict[str, AccessPointGroup],
                      address: str) -> Optional[str]:
    # first match in key insertion order, not the closest
    for key in groups_by_key:
        if addresses_related(key, address):
            return key
    return None


def group_records(records: Iterable[ScanRecord]) -> List[AccessPointGroup]:
    """Group scan records into access points, in creation order.

    Never raises; records without a usable address become singleton groups
    that nothing else is ever merged into.
    """
    records = list(records)
    by_ssid = ssid_index(records)
    groups: List[AccessPointGroup] = []
    groups_by_key: Dict[str, AccessPointGroup] = {}

    def _new_group(record: ScanRecord, key: str):
        group = AccessPointGroup(record, key)
        groups_by_key[key] = group
        groups.append(group)

    for record in records:
        address = record.address
        if not address:
            groups.append(AccessPointGroup(record))
            continue

        existing = groups_by_key.get(address)
        if existing is not None:
            existing.add(record)
            continue

        related_key = _find_related_key(groups_by_key, address)
        if related_key is None:
            _new_group(record, address)
            continue

        related = groups_by_key[related_key]
        if related.normalized_ssid == record.normalized_ssid:
            related.add(record)
        else:
            # same radio family, different advertised network
            _new_group(record, address)

    log.debug("Grouped %d scan records (%d distinct SSIDs) into %d access points",
              len(records), len(by_ssid), len(groups))
    return groups
