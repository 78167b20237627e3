"""Main entry point for running crcalc_pkg as a module.

This allows running crcalc with:
    python -m crcalc_pkg
    python -m crcalc_pkg --health-check
    python -m crcalc_pkg -e "2+2"

This is equivalent to running:
    python -m crcalc_pkg.cli
    python crcalc.py
"""

from __future__ import annotations

import sys

from .cli import main_entry

if __name__ == "__main__":
    sys.exit(main_entry())
