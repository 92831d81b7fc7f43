"""
proxyvm.cli — command-line entrypoints.

  • proxyvm.cli.layout_check — run the static storage-layout checks over a YAML lineage

Usage:
    python -m proxyvm.cli.layout_check --help
"""

from __future__ import annotations

from ..version import __version__

__all__ = ["__version__"]
