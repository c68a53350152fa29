#!/usr/bin/env python3
"""
atpackview - inspect Microchip/Atmel device family packs.

Usage:
    python scripts/atpackview.py inspect Atmel.ATmega_DFP.2.0.401.atpack
    python scripts/atpackview.py dump Atmel.ATmega_DFP.2.0.401.atpack --device ATmega328P
    python scripts/atpackview.py validate https://packs.download.microchip.com/Microchip.ATtiny_DFP.3.0.151.atpack
    python scripts/atpackview.py list-packs atmel --json

Subcommands:
    inspect     Pack summary with per-device counts
    dump        Full model of one device as YAML or JSON
    validate    Run semantic checks over a loaded pack
    list-packs  List the packs of a vendor pack index
"""
import argparse
import json
import logging
import sys
from pathlib import Path

import yaml

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from atpackview.config import config
from atpackview.model import AtPack, family_style, group_style
from atpackview.model.validators import AtPackValidator
from atpackview.parser import AtPackError, AtPackParser


def load_pack(source: str) -> AtPack:
    """Load from a URL or a local archive/descriptor path."""
    parser = AtPackParser()
    if source.lower().startswith(("http://", "https://")):
        return parser.load_from_url(source)
    return parser.load_from_file(source, name=source)


def fail(message: str, use_json: bool = False):
    if use_json:
        print(json.dumps({"success": False, "error": message}))
    else:
        print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def device_summary(device) -> dict:
    return {
        "name": device.name,
        "family": device.family,
        "architecture": device.architecture,
        "device_family": device.device_family.value,
        "peripherals": len(device.peripherals),
        "registers": sum(p.total_registers for p in device.peripherals),
        "fuses": len(device.fuses),
        "lockbits": len(device.lockbits),
        "pinouts": len(device.pinouts),
        "timers": len(device.timers),
        "interrupts": len(device.interrupts),
        "segments": len(device.memory.all_segments),
    }


def cmd_inspect(args):
    """Print a pack summary."""
    try:
        atpack = load_pack(args.source)
    except AtPackError as e:
        fail(str(e), args.json)

    if args.json:
        print(
            json.dumps(
                {
                    "success": True,
                    "name": atpack.name,
                    "version": atpack.version,
                    "vendor": atpack.metadata.vendor,
                    "devices": [device_summary(d) for d in atpack.devices],
                    "failures": [f.model_dump() for f in atpack.failures],
                },
                indent=2,
            )
        )
        return

    print(f"\n{atpack.name} {atpack.version}")
    if atpack.metadata.description:
        print(f"  {atpack.metadata.description}")
    print(f"\n{len(atpack.devices)} device(s):")
    for device in atpack.devices:
        s = device_summary(device)
        icon, _ = family_style(device.device_family)
        print(
            f"  {icon} {s['name']:20} {s['family']:12} periph={s['peripherals']:3} regs={s['registers']:4} "
            f"fuses={s['fuses']:2} timers={s['timers']:2} pinouts={s['pinouts']}"
        )
        if args.electrical and device.electrical_parameters:
            for group in device.electrical_parameters.groups:
                icon, _ = group_style(group)
                count = len(device.electrical_parameters.in_group(group))
                print(f"      {icon} {group} ({count})")
    if atpack.failures:
        print(f"\n{len(atpack.failures)} device(s) skipped:")
        for failure in atpack.failures:
            print(f"  {failure.device}: {failure.reason}")


def cmd_dump(args):
    """Dump one device model."""
    try:
        atpack = load_pack(args.source)
    except AtPackError as e:
        fail(str(e))

    device = atpack.get_device(args.device)
    if device is None:
        fail(f"Unknown device: {args.device} (available: {', '.join(atpack.device_names)})")

    data = device.model_dump(mode="json", by_alias=True)
    if args.format == "json":
        print(json.dumps(data, indent=2, ensure_ascii=False))
    else:
        print(yaml.safe_dump(data, sort_keys=False, allow_unicode=True))


def cmd_validate(args):
    """Validate a loaded pack."""
    try:
        atpack = load_pack(args.source)
    except AtPackError as e:
        fail(str(e))

    validator = AtPackValidator(atpack)
    ok = validator.validate_all()
    print(validator.get_error_summary())
    if not ok:
        sys.exit(1)


def cmd_list_packs(args):
    """List packs of a vendor index (a URL or a configured vendor key)."""
    url = config.pack_indexes.get(args.index.lower(), args.index)
    try:
        entries = AtPackParser().load_pack_index(url)
    except AtPackError as e:
        fail(str(e), args.json)

    if args.json:
        print(json.dumps({"success": True, "packs": [e.model_dump() for e in entries]}, indent=2))
        return
    print(f"\n{len(entries)} pack(s) in {url}:")
    for entry in entries:
        print(f"  {entry.name:40} {entry.version:10} {entry.url}")


def main():
    parser = argparse.ArgumentParser(
        prog="atpackview", description="Inspect Microchip/Atmel device family packs"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # inspect subcommand
    inspect_parser = subparsers.add_parser("inspect", help="Show pack summary")
    inspect_parser.add_argument("source", help="AtPack file, descriptor or URL")
    inspect_parser.add_argument("--json", action="store_true", help="JSON output")
    inspect_parser.add_argument(
        "--electrical", action="store_true", help="List electrical parameter groups per device"
    )
    inspect_parser.set_defaults(func=cmd_inspect)

    # dump subcommand
    dump_parser = subparsers.add_parser("dump", help="Dump one device model")
    dump_parser.add_argument("source", help="AtPack file, descriptor or URL")
    dump_parser.add_argument("--device", "-d", required=True, help="Device name")
    dump_parser.add_argument(
        "--format", "-f", default="yaml", choices=["yaml", "json"], help="Output format"
    )
    dump_parser.set_defaults(func=cmd_dump)

    # validate subcommand
    validate_parser = subparsers.add_parser("validate", help="Validate a pack")
    validate_parser.add_argument("source", help="AtPack file, descriptor or URL")
    validate_parser.set_defaults(func=cmd_validate)

    # list-packs subcommand
    packs_parser = subparsers.add_parser("list-packs", help="List packs of a vendor index")
    packs_parser.add_argument(
        "index", help=f"Index URL or vendor key ({', '.join(config.pack_indexes)})"
    )
    packs_parser.add_argument("--json", action="store_true", help="JSON output")
    packs_parser.set_defaults(func=cmd_list_packs)

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    args.func(args)


if __name__ == "__main__":
    main()
