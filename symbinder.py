#!/usr/bin/env python3
"""
symbinder - symbol binding for an interactive graphing calculator

Main entry point for symbinder. This file is a thin wrapper that
delegates all functionality to the symbinder_pkg package.

Usage:
    python symbinder.py                          # Interactive REPL
    python symbinder.py -e "f(x) = ax_{mode}"    # Bind one definition
    python symbinder.py --help                   # Show help
"""

from __future__ import annotations

import sys


def main() -> int:
    """
    Main entry point for symbinder.

    Delegates to symbinder_pkg.cli, which handles argument parsing,
    binding and output formatting.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    try:
        from symbinder_pkg.cli import main_entry
    except ImportError as e:
        print(f"Error: Failed to import symbinder_pkg: {e}")
        print("Please ensure all dependencies are installed: pip install -e .")
        return 1
    try:
        return main_entry(sys.argv[1:])
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
