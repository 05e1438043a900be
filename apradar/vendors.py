"""OUI (vendor prefix) lookup for access point addresses."""

from typing import Dict, Optional

from .records import normalize_address

# Common access point vendors, keyed by the first three octets in
# normalized (lowercase hex) form.  Unknown prefixes fall back to the raw OUI.
OUI_VENDORS: Dict[str, str] = {
    "00000c": "Cisco Systems",
    "000b86": "Aruba Networks",
    "24dec6": "Aruba Networks",
    "000393": "Apple",
    "0017f2": "Apple",
    "acbc32": "Apple",
    "001a11": "Google",
    "f4f5d8": "Google",
    "3c5ab4": "Google",
    "000c41": "Cisco-Linksys",
    "0014bf": "Cisco-Linksys",
    "00095b": "Netgear",
    "00146c": "Netgear",
    "001b2f": "Netgear",
    "204e7f": "Netgear",
    "a040a0": "Netgear",
    "50c7bf": "TP-Link",
    "14cc20": "TP-Link",
    "f4f26d": "TP-Link",
    "c04a00": "TP-Link",
    "98ded0": "TP-Link",
    "00156d": "Ubiquiti Networks",
    "002722": "Ubiquiti Networks",
    "24a43c": "Ubiquiti Networks",
    "0418d6": "Ubiquiti Networks",
    "802aa8": "Ubiquiti Networks",
    "f09fc2": "Ubiquiti Networks",
    "788a20": "Ubiquiti Networks",
    "000c6e": "ASUSTek Computer",
    "00112f": "ASUSTek Computer",
    "0015f2": "ASUSTek Computer",
    "001a92": "ASUSTek Computer",
    "00040e": "AVM",
    "246511": "AVM",
    "c80e14": "AVM",
    "bc0543": "AVM",
    "00055d": "D-Link",
    "000d88": "D-Link",
    "001195": "D-Link",
    "001b11": "D-Link",
    "1c7ee5": "D-Link",
    "00e0fc": "Huawei Technologies",
    "001882": "Huawei Technologies",
    "0000f0": "Samsung Electronics",
    "001150": "Belkin International",
    "00a0c5": "Zyxel Communications",
}


def oui_prefix(bssid: Optional[str]) -> str:
    """Return the first six normalized hex characters, or "" if too short."""
    addr = normalize_address(bssid)
    return addr[:6] if len(addr) >= 6 else ""


def lookup_vendor(bssid: Optional[str],
                  table: Optional[Dict[str, str]] = None) -> str:
    """Resolve the vendor name for an address.

    Falls back to ``"OUI: XXXXXX"`` when the prefix is not in *table*, and
    to an empty string when the address has fewer than six hex characters.
    """
    oui = oui_prefix(bssid)
    if not oui:
        return ""
    vendors = OUI_VENDORS if table is None else table
    vendor = vendors.get(oui)
    if vendor:
        return vendor
    return f"OUI: {oui.upper()}"
