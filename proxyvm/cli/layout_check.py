#!/usr/bin/env python3
"""
proxyvm.cli.layout_check — static storage-layout audit of an upgrade lineage.

Loads a YAML lineage (oldest version first), checks every consecutive pair for
storage compatibility and every version against the proxy's control slots, then prints
a report.

Usage:
    python -m proxyvm.cli.layout_check layouts.yaml
    python -m proxyvm.cli.layout_check layouts.yaml --scheme sequential --json

Exit codes:
    0  no violations
    1  violations found
    2  unreadable or malformed input
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from ..errors import LayoutError
from ..layout.check import audit
from ..layout.loader import load_layouts
from ..logging import configure
from ..state.slots import SCHEMES, get_scheme
from ..version import __version__


def eprint(*args: object) -> None:
    print(*args, file=sys.stderr)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="proxyvm.cli.layout_check",
        description="Check a lineage of storage layouts for upgrade safety and slot collisions.",
    )
    p.add_argument("layouts", type=Path, help="YAML file with a 'layouts' list (oldest first)")
    p.add_argument(
        "--scheme",
        default="erc1967",
        choices=sorted(SCHEMES),
        help="Control-slot scheme of the proxy the layouts run behind (default: erc1967)",
    )
    p.add_argument(
        "--lenient",
        action="store_true",
        help="Report storage-gap mismatches as warnings instead of violations",
    )
    p.add_argument("--json", action="store_true", help="Print the report as JSON")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    ns = _parse_args(sys.argv[1:] if argv is None else argv)
    configure(level="ERROR")

    try:
        layouts = load_layouts(str(ns.layouts))
    except LayoutError as e:
        eprint(f"[layout_check] {e.message}")
        return 2

    report = audit(layouts, get_scheme(ns.scheme), strict=not ns.lenient)

    if ns.json:
        print(json.dumps({**report.to_dict(), "version": __version__}, indent=2, sort_keys=True))
    else:
        print(f"LINEAGE {' -> '.join(report.layouts)} SCHEME={report.scheme}")
        for err in report.errors:
            print(f"  VIOLATION {err.code}: {err.message}")
        for w in report.warnings:
            print(f"  WARNING {w}")
        print("OK" if report.ok else f"FAILED ({len(report.errors)} violation(s))")

    return 0 if report.ok else 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
