#!/usr/bin/env python3
#
# apradar - WiFi scan radar
#
# Groups already-collected WiFi scan records into physical access points,
# prints them, writes them as csv/json/jsonl, and animates them on a
# browser radar.
#

"""WiFi scan radar - group scan records and show them on a live radar."""

import argparse
import csv
import json
import logging
import sys
import time
from typing import Callable, List, Optional

from .details import infer_band, render_radar_fragment, signal_quality
from .geometry import signal_band
from .grouping import AccessPointGroup, group_records
from .records import ScanRecord, load_records, load_scan_file
from .vendors import lookup_vendor
from . import gui

_FIELDNAMES = [
    "ssid", "bssid", "vendor", "signal_level", "band", "quality_band",
    "channels", "frequency_band", "security", "variants",
]

_BANNER = r"""
   __ _ _ __  _ __ __ _  __| | __ _ _ __
  / _` | '_ \| '__/ _` |/ _` |/ _` | '__|
 | (_| | |_) | | | (_| | (_| | (_| | |
  \__,_| .__/|_|  \__,_|\__,_|\__,_|_|
       |_|
   WiFi Scan Radar
"""

# Synthetic scan used by --demo: one dual-band radio, a guest network on the
# same hardware, a hidden network and a few neighbours.
DEMO_SCAN = [
    {"ssid": "Home", "bssid": "AA:BB:CC:11:22:01", "signal_level": -50,
     "channel": 1, "security": "WPA2", "frequency": 2412},
    {"ssid": "Home", "bssid": "AA:BB:CC:11:22:02", "signal_level": -65,
     "channel": 36, "security": "WPA2", "frequency": 5180},
    {"ssid": "Home-Guest", "bssid": "AA:BB:CC:11:22:03", "signal_level": -58,
     "channel": 6, "security": "WPA2", "frequency": 2437},
    {"ssid": "Bistro", "bssid": "F0:9F:C2:3A:10:7E", "signal_level": "-71 dBm",
     "channel": 11, "securityType": "WPA2/WPA3", "freq": 2462},
    {"name": "NETGEAR42", "mac": "A0:40:A0:55:66:77", "signalLevel": -79,
     "channel": 6, "security": "WPA2"},
    {"ssid": "FRITZ!Box 7590", "bssid": "3C:A6:2F:01:02:03", "rssi": -84,
     "channel": 44, "security": "WPA2", "quality": 35},
    {"ssid": "", "bssid": "00:1A:11:AB:CD:EF", "signal_level": -88,
     "channel": 149, "security": "WPA2"},
    {"ssid": "PrinterDirect", "signal_level": None, "channel": 1,
     "security": "Open"},
]


class RadarReport:
    """Console and file output for a grouped scan."""

    def __init__(self, records: List[ScanRecord],
                 output_format: Optional[str] = None,
                 output_file: Optional[str] = None,
                 verbose: bool = False, quiet: bool = False,
                 vendor_lookup: Optional[Callable[[str], str]] = None):
        self.records = records
        self.groups: List[AccessPointGroup] = group_records(records)
        self.output_format = output_format
        self.output_file = output_file
        self.verbose = verbose
        self.quiet = quiet
        self._lookup = vendor_lookup or lookup_vendor

    def row(self, group: AccessPointGroup) -> dict:
        """Flat output record for one access point."""
        band, _ = signal_band(group.signal_level)
        return {
            "ssid": group.ssid,
            "bssid": group.bssid,
            "vendor": self._lookup(group.bssid) if group.bssid else "",
            "signal_level": group.signal_level,
            "band": band,
            "quality_band": signal_quality(group.signal_level),
            "channels": sorted(group.channels),
            "frequency_band": infer_band(group.channels, group.record.frequency),
            "security": group.record.security or "",
            "variants": len(group.variants),
        }

    def rows(self) -> List[dict]:
        return [self.row(g) for g in self.groups]

    def print_groups(self):
        if self.quiet:
            return
        for index, group in enumerate(self.groups, 1):
            self._print_group(index, group)

    def _print_group(self, index: int, group: AccessPointGroup):
        row = self.row(group)
        label = f"ACCESS POINT #{index}"
        if len(group.variants) > 1:
            label += f"  ({len(group.variants)} variants)"

        print(f"\n{'='*60}")
        print(f"  {label}")
        print(f"{'='*60}")
        print(f"  SSID         : {group.ssid or 'Unknown'}")
        print(f"  BSSID        : {group.bssid or 'N/A'}")
        if row["vendor"]:
            print(f"  Vendor       : {row['vendor']}")
        print(f"  Signal       : {group.signal_level} dBm  ({row['band']})")
        channels = ", ".join(str(ch) for ch in row["channels"]) or "Unknown"
        print(f"  Channels     : {channels}")
        print(f"  Band         : {row['frequency_band']}")
        print(f"  Security     : {row['security'] or 'Unknown'}")
        if self.verbose and len(group.variants) > 1:
            for v in group.variants:
                ch = v.channel if v.channel is not None else "?"
                print(f"  Variant      : ch {ch:<4} {v.signal_level} dBm  {v.bssid}")
        print(f"{'='*60}")

    def print_summary(self):
        print(f"\n{'—'*60}")
        print(f"  Scan records     : {len(self.records)}")
        print(f"  Access points    : {len(self.groups)}")
        merged = sum(1 for g in self.groups if len(g.variants) > 1)
        if merged:
            print(f"  Multi-variant    : {merged}")

    def write_output(self):
        """Write grouped output (json / jsonl / csv)."""
        if not self.output_format or not self.groups:
            return

        filename = self.output_file or f"apradar-results.{self.output_format}"
        rows = self.rows()

        # Support writing to stdout with --output-file -
        if filename == "-":
            _write_rows(sys.stdout, self.output_format, rows)
            return

        with open(filename, "w", newline="" if self.output_format == "csv" else None) as f:
            _write_rows(f, self.output_format, rows)
        print(f"  Results written to {filename}")


def _write_rows(stream, output_format: str, rows: List[dict]):
    if output_format == "json":
        stream.write(json.dumps(rows, indent=2) + "\n")
    elif output_format == "jsonl":
        for row in rows:
            stream.write(json.dumps(row) + "\n")
    elif output_format == "csv":
        writer = csv.DictWriter(stream, fieldnames=_FIELDNAMES)
        writer.writeheader()
        for row in rows:
            flat = dict(row)
            flat["channels"] = ";".join(str(ch) for ch in row["channels"])
            if flat["quality_band"] is None:
                flat["quality_band"] = ""
            writer.writerow(flat)


def _run_gui(records: List[ScanRecord], port: int, light_mode: bool):
    server = gui.GuiServer(records, port=port, light_mode=light_mode)
    server.start()
    print("Press Ctrl+C to stop")
    try:
        while True:
            time.sleep(0.5)
    except KeyboardInterrupt:
        print("\nStopping radar...")
    finally:
        server.stop()


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        description="WiFi scan radar — group scan records into access points "
                    "and show them on a live radar"
    )
    parser.add_argument(
        "file", nargs="?", default=None,
        help="JSON scan file: a list of records, or an object holding one "
             "under wifiNetworks / networks / wifi"
    )
    parser.add_argument(
        "--demo", action="store_true",
        help="Use a built-in synthetic scan instead of a file"
    )

    # Output
    parser.add_argument(
        "--output", choices=["csv", "json", "jsonl"], default=None,
        help="Write grouped access points in this format"
    )
    parser.add_argument(
        "-o", "--output-file", type=str, default=None, metavar="FILE",
        help="Output file path (default: apradar-results.<format>; "
             "use - for stdout)"
    )
    parser.add_argument(
        "--fragment", type=str, default=None, metavar="FILE",
        help="Write the embeddable radar HTML fragment to FILE"
    )

    # Verbosity
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v", "--verbose", action="store_true",
        help="Verbose mode — show variants and debug logging"
    )
    verbosity.add_argument(
        "-q", "--quiet", action="store_true",
        help="Quiet mode — suppress per-access-point output, show summary only"
    )

    # GUI
    parser.add_argument(
        "--gui", action="store_true",
        help="Launch the radar in the browser"
    )
    parser.add_argument(
        "--gui-port", type=int, default=5000, metavar="PORT",
        help="Port for GUI web server (default: 5000)"
    )
    parser.add_argument(
        "--light", action="store_true",
        help="Light presentation mode for the radar"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="  [!] %(name)s: %(message)s",
    )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    if args.output_file and not args.output:
        parser.error("--output-file (-o) requires --output to specify "
                     "the format (csv, json, or jsonl)")

    if args.file and args.demo:
        parser.error("Cannot use --demo with a scan file")
    if not args.file and not args.demo:
        print(_BANNER)
        parser.print_help()
        sys.exit(0)

    if args.gui and not gui._HAS_FLASK:
        parser.error("--gui requires Flask and flask-socketio. "
                     "Install with: pip install flask flask-socketio")
    if args.gui and args.quiet:
        parser.error("Cannot use --gui with --quiet")
    if args.gui and args.output_file == "-":
        parser.error("Cannot use --gui with --output-file -")
    if args.light and not (args.gui or args.fragment):
        parser.error("--light only applies to --gui or --fragment")
    if not 0 < args.gui_port < 65536:
        parser.error("--gui-port must be between 1 and 65535")

    if args.demo:
        records = load_records(DEMO_SCAN)
    else:
        try:
            records = load_scan_file(args.file)
        except (OSError, ValueError) as e:
            parser.error(f"Cannot read scan file '{args.file}': {e}")

    # keep stdout clean when the results themselves go there
    to_stdout = args.output_file == "-"
    notice = sys.stderr if to_stdout else sys.stdout

    if not records:
        print("  [!] Scan contains no records", file=notice)

    report = RadarReport(
        records,
        output_format=args.output,
        output_file=args.output_file,
        verbose=args.verbose,
        quiet=args.quiet or to_stdout,
    )
    if not to_stdout:
        if not args.gui:
            print(_BANNER)
        report.print_groups()
        report.print_summary()
    report.write_output()

    if args.fragment:
        with open(args.fragment, "w", encoding="utf-8") as f:
            f.write(render_radar_fragment("wifi-radar", light_mode=args.light))
        print(f"  Fragment written to {args.fragment}", file=notice)

    if args.gui:
        _run_gui(records, args.gui_port, args.light)


if __name__ == "__main__":
    main()
