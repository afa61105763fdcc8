"""Centralized configuration for symbinder.

This module defines:
- Input validation limits (length of a single binding input)
- Symbol handling switches (complex-number mode)
- Collision suggestion count
- Defaults for auto-created parameters
- Cache sizes and sampling resolution
- Regex patterns shared by the parser and the binder

Configuration can be overridden via:
- CLI flags (see cli.py)
- Environment variables (prefixed with SYMBINDER_)
"""

import os
import re

# Version is defined in pyproject.toml [project] section
try:
    import importlib.metadata

    VERSION = importlib.metadata.version("symbinder")
except importlib.metadata.PackageNotFoundError:
    # Running from a source checkout
    VERSION = "0.1.0"

# Input validation limits
MAX_INPUT_LENGTH = int(os.getenv("SYMBINDER_MAX_INPUT_LENGTH", "500"))  # characters

# When enabled, the letter i is the imaginary unit instead of a free symbol
COMPLEX_MODE = os.getenv("SYMBINDER_COMPLEX_MODE", "false").lower() == "true"

# Collision detection
MAX_SUGGESTIONS = int(os.getenv("SYMBINDER_MAX_SUGGESTIONS", "4"))
SUGGESTION_TAGS = ("new", "alt")
MAX_PRIMES = 3

# Auto-parameterization defaults
AUTO_PARAM_VALUE = float(os.getenv("SYMBINDER_AUTO_PARAM_VALUE", "1"))
AUTO_PARAM_MIN = float(os.getenv("SYMBINDER_AUTO_PARAM_MIN", "-10"))
AUTO_PARAM_MAX = float(os.getenv("SYMBINDER_AUTO_PARAM_MAX", "10"))
AUTO_PARAM_STEP = float(os.getenv("SYMBINDER_AUTO_PARAM_STEP", "0.1"))

# Variable swept when plotting an anonymous "y = ..." expression
DEFAULT_INDEPENDENT_VARIABLE = os.getenv("SYMBINDER_INDEPENDENT_VARIABLE", "x")

# Sampling configuration for the evaluator adapter
SAMPLE_POINTS = int(os.getenv("SYMBINDER_SAMPLE_POINTS", "200"))
SAMPLE_X_MIN = float(os.getenv("SYMBINDER_SAMPLE_X_MIN", "-10"))
SAMPLE_X_MAX = float(os.getenv("SYMBINDER_SAMPLE_X_MAX", "10"))

# Cache configuration
CACHE_SIZE_NORMALIZE = int(os.getenv("SYMBINDER_CACHE_SIZE_NORMALIZE", "1024"))

# Optional JSON token map replacing the built-in symbol table
TOKEN_MAP_PATH = os.getenv("SYMBINDER_TOKEN_MAP") or None

# Name used for the anonymous plot shorthand
ANONYMOUS_PLOT_NAME = "y"

NUMERIC_LITERAL_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
TRAILING_DIGITS_RE = re.compile(r"^(.*?)(\d+)$")
