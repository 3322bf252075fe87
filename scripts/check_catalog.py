#!/usr/bin/env python3
"""Load, validate and checksum a catalog pack.

Idempotent: running it twice against the same files gives the same
output.  Exits non-zero when the pack fails validation or its version
lock.
"""
import argparse
import json
import logging

from dotenv import load_dotenv
from catalog_packs.loader import CatalogPackVersionError, list_packs, load_pack
from catalog_packs.store import pack_coordinates
from engine.catalog_validator import CatalogViolation


def parse_args() -> argparse.Namespace:
    family, version = pack_coordinates()
    parser = argparse.ArgumentParser(
        description="Validate a ComplianceIQ catalog pack and print its entity counts."
    )
    parser.add_argument("--family", default=family, help="Pack family directory name")
    parser.add_argument("--version", default=version, help="Pack version directory name")
    parser.add_argument("--list", action="store_true", help="List available packs and exit")
    parser.add_argument("--json", action="store_true", help="Emit JSON instead of text")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args()


def main() -> int:
    load_dotenv()
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.list:
        for pack in list_packs():
            print(f"{pack['pack_id']:<24} {pack['version']:<8} {pack['path']}")
        return 0

    try:
        pack = load_pack(args.family, args.version)
    except CatalogViolation as exc:
        if args.json:
            print(json.dumps({"ok": False, "violations": exc.violations}, indent=2))
        else:
            print(exc)
        return 1
    except (CatalogPackVersionError, FileNotFoundError) as exc:
        if args.json:
            print(json.dumps({"ok": False, "error": str(exc)}, indent=2))
        else:
            print(f"✗ {exc}")
        return 1

    counts = pack.counts()
    if args.json:
        print(json.dumps({
            "ok": True,
            "packId": pack.pack_id,
            "checksum": pack.catalog_checksum,
            "counts": counts,
        }, indent=2, sort_keys=True))
        return 0

    print(f"✓ {pack.name} ({pack.version_tag})")
    print(f"  checksum: {pack.catalog_checksum}")
    for name, count in counts.items():
        print(f"  {name:<22} {count}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
