"""Main entry point for running symbinder_pkg as a module.

This allows running symbinder with:
    python -m symbinder_pkg
    python -m symbinder_pkg -e "f(x) = ax_{mode}"

This is equivalent to running:
    python -m symbinder_pkg.cli
    python symbinder.py
"""

from __future__ import annotations

import sys

from .cli import main_entry

if __name__ == "__main__":
    sys.exit(main_entry())
