"""Symbol table and input normalization.

The symbol table maps backslash aliases (``\\alpha``, ``\\Gamma``) and a
whitelist of bare words (``pi``, ``tau``, ``alpha``) to canonical glyphs,
records the reserved constants and built-in function names, and carries a
small table of backslash operator/function commands. It is built once and
never mutated.

Normalization is deterministic and total:

0. typographic operators are standardized (``−`` to ``-``, ``×`` to ``*``)
1. backslash commands are replaced, longest alias first
2. whitelisted bare words are replaced as whole words, except inside
   ``{...}`` groups and in the left-hand-side name position

Pass 1 must run before pass 2: substituting ``pi`` first would corrupt the
escape ``\\pi`` before the backslash pass sees it.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Mapping

from .config import CACHE_SIZE_NORMALIZE, TOKEN_MAP_PATH
from .logging_config import get_logger

logger = get_logger("symbols")

GREEK_LOWER = {
    "alpha": "α",
    "beta": "β",
    "gamma": "γ",
    "delta": "δ",
    "epsilon": "ε",
    "zeta": "ζ",
    "eta": "η",
    "theta": "θ",
    "iota": "ι",
    "kappa": "κ",
    "lambda": "λ",
    "mu": "μ",
    "nu": "ν",
    "xi": "ξ",
    "omicron": "ο",
    "pi": "π",
    "rho": "ρ",
    "sigma": "σ",
    "tau": "τ",
    "upsilon": "υ",
    "phi": "φ",
    "chi": "χ",
    "psi": "ψ",
    "omega": "ω",
}

GREEK_UPPER = {
    "Gamma": "Γ",
    "Delta": "Δ",
    "Theta": "Θ",
    "Lambda": "Λ",
    "Xi": "Ξ",
    "Pi": "Π",
    "Sigma": "Σ",
    "Upsilon": "Υ",
    "Phi": "Φ",
    "Psi": "Ψ",
    "Omega": "Ω",
}

GREEK_VARIANTS = {
    "varepsilon": "ε",
    "vartheta": "ϑ",
    "varphi": "φ",
    "varpi": "ϖ",
    "varrho": "ϱ",
    "varsigma": "ς",
}

# Two-letter names are left out (except pi): "mu" is as likely to mean m*u.
BARE_WORDS = (
    "pi",
    "tau",
    "alpha",
    "beta",
    "gamma",
    "delta",
    "epsilon",
    "theta",
    "lambda",
    "sigma",
    "omega",
    "phi",
    "Gamma",
    "Delta",
    "Theta",
    "Lambda",
    "Sigma",
    "Omega",
    "Phi",
)

BUILTIN_FUNCTIONS = (
    "sin",
    "cos",
    "tan",
    "sec",
    "csc",
    "cot",
    "asin",
    "acos",
    "atan",
    "atan2",
    "sinh",
    "cosh",
    "tanh",
    "asinh",
    "acosh",
    "atanh",
    "sqrt",
    "cbrt",
    "abs",
    "sign",
    "floor",
    "ceil",
    "round",
    "exp",
    "log",
    "log10",
    "log2",
    "ln",
    "pow",
    "mod",
    "min",
    "max",
)

BACKSLASH_COMMANDS = {
    "\\cdot": "*",
    "\\times": "*",
    "\\le": "<=",
    "\\leq": "<=",
    "\\ge": ">=",
    "\\geq": ">=",
    "\\arcsin": "asin",
    "\\arccos": "acos",
    "\\arctan": "atan",
    **{
        "\\" + fn: fn
        for fn in (
            "sin",
            "cos",
            "tan",
            "sec",
            "csc",
            "cot",
            "sinh",
            "cosh",
            "tanh",
            "exp",
            "log",
            "ln",
            "sqrt",
            "min",
            "max",
        )
    },
}

TYPOGRAPHIC_OPERATORS = {
    "−": "-",
    "–": "-",
    "×": "*",
    "·": "*",
}


@dataclass(frozen=True)
class ConstantInfo:
    """A reserved constant glyph."""

    glyph: str
    kind: str  # "constant" or "imaginary"
    value: Any
    sympy_name: str
    description: str = ""


DEFAULT_CONSTANTS = (
    ConstantInfo("π", "constant", math.pi, "pi", "Pi"),
    ConstantInfo("τ", "constant", math.tau, "2*pi", "Tau"),
    ConstantInfo("e", "constant", math.e, "E", "Euler's number"),
    ConstantInfo("i", "imaginary", 1j, "I", "Imaginary unit"),
)


def is_greek(char: str) -> bool:
    """Return True for a single Greek letter (basic block plus the variant forms)."""
    if len(char) != 1:
        return False
    code = ord(char)
    if 0x0391 <= code <= 0x03A9 and code != 0x03A2:
        return True
    if 0x03B1 <= code <= 0x03C9:
        return True
    return char in "ϑϕϖϱϵ"


def is_latin(char: str) -> bool:
    return len(char) == 1 and ("a" <= char <= "z" or "A" <= char <= "Z")


def is_letter(char: str) -> bool:
    """Return True when ``char`` can start a name: one Latin or Greek letter."""
    return is_latin(char) or is_greek(char)


def find_assignment(text: str) -> int | None:
    """Return the index of the first top-level ``=`` or None.

    ``=`` inside brackets, and ``=`` belonging to ``<=``, ``>=``, ``!=`` or
    ``==``, is not an assignment.
    """
    depth = 0
    for index, char in enumerate(text):
        if char in "([{":
            depth += 1
        elif char in ")]}":
            depth = max(0, depth - 1)
        elif char == "=" and depth == 0:
            before = text[index - 1] if index > 0 else ""
            after = text[index + 1] if index + 1 < len(text) else ""
            if (before and before in "<>!=") or after == "=":
                continue
            return index
    return None


def _mapping_section(data: dict, key: str, default: Mapping[str, Any]) -> Mapping[str, Any]:
    section = data.get(key, default)
    if not isinstance(section, Mapping):
        raise ValueError(f"Section {key!r} must be an object, got {type(section).__name__}")
    if key != "constants" and not all(
        isinstance(k, str) and isinstance(v, str) for k, v in section.items()
    ):
        raise ValueError(f"Section {key!r} must map strings to strings")
    return section


@dataclass(frozen=True, eq=False)
class SymbolTable:
    """Immutable alias/glyph table and reserved-name registry.

    Instances hash by identity so they can key normalization caches.
    """

    aliases: Mapping[str, str]
    bare_words: Mapping[str, str]
    constants: Mapping[str, ConstantInfo]
    functions: frozenset
    commands: Mapping[str, str] = field(default_factory=dict)
    _backslash_re: re.Pattern = field(init=False, repr=False)

    def __post_init__(self):
        for source, glyph in list(self.aliases.items()) + list(self.bare_words.items()):
            if not (is_letter(glyph) or glyph in self.constants):
                raise ValueError(
                    f"Alias {source!r} maps to {glyph!r}, which is not a letter or reserved constant"
                )
        object.__setattr__(self, "aliases", MappingProxyType(dict(self.aliases)))
        object.__setattr__(self, "bare_words", MappingProxyType(dict(self.bare_words)))
        object.__setattr__(self, "constants", MappingProxyType(dict(self.constants)))
        object.__setattr__(self, "commands", MappingProxyType(dict(self.commands)))
        object.__setattr__(self, "functions", frozenset(self.functions))

        # Greek aliases may run straight into the next letter (\pix is π x);
        # commands such as \le must not match the start of \left.
        alternatives = [
            (alias, re.escape(alias)) for alias in self.aliases
        ] + [
            (command, re.escape(command) + r"(?![A-Za-z])") for command in self.commands
        ]
        alternatives.sort(key=lambda item: (-len(item[0]), item[0]))
        # A backslash right after another backslash never starts an alias.
        pattern = r"(?<!\\)(?:" + ("|".join(regex for _, regex in alternatives) or r"(?!x)x") + ")"
        object.__setattr__(self, "_backslash_re", re.compile(pattern))

    @classmethod
    def default(cls) -> SymbolTable:
        """Build the built-in table (Greek alphabet, π τ e i, common functions)."""
        glyphs = {**GREEK_LOWER, **GREEK_UPPER, **GREEK_VARIANTS}
        aliases = {"\\" + word: glyph for word, glyph in glyphs.items()}
        bare_words = {word: glyphs[word] for word in BARE_WORDS}
        constants = {info.glyph: info for info in DEFAULT_CONSTANTS}
        return cls(
            aliases=aliases,
            bare_words=bare_words,
            constants=constants,
            functions=frozenset(BUILTIN_FUNCTIONS),
            commands=BACKSLASH_COMMANDS,
        )

    @classmethod
    def from_json(cls, path: str) -> SymbolTable:
        """Load a token map with ``aliases``, ``bare_words``, ``constants``,
        ``functions`` and ``commands`` sections. Missing sections fall back to
        the built-in defaults.

        Raises:
            OSError: The file cannot be read
            ValueError: The file is not JSON or a section has the wrong shape
        """
        with open(path, encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, dict):
            raise ValueError(f"Token map {path!r} must be a JSON object")
        base = cls.default()
        constants = dict(base.constants)
        for glyph, info in _mapping_section(data, "constants", {}).items():
            if not isinstance(info, dict):
                raise ValueError(f"Constant {glyph!r} must be an object, got {type(info).__name__}")
            kind = info.get("kind", "constant")
            if kind not in ("constant", "imaginary"):
                raise ValueError(f"Constant {glyph!r} has unknown kind {kind!r}")
            constants[glyph] = ConstantInfo(
                glyph=glyph,
                kind=kind,
                value=info.get("value"),
                sympy_name=str(info.get("sympy", glyph)),
                description=str(info.get("description", "")),
            )
        functions = data.get("functions", list(base.functions))
        if not isinstance(functions, list) or not all(isinstance(f, str) for f in functions):
            raise ValueError("Section 'functions' must be a list of names")
        return cls(
            aliases=_mapping_section(data, "aliases", base.aliases),
            bare_words=_mapping_section(data, "bare_words", base.bare_words),
            constants=constants,
            functions=frozenset(functions),
            commands=_mapping_section(data, "commands", base.commands),
        )

    def reserved_constants(self, complex_mode: bool = False) -> frozenset:
        """Glyphs that never count as free symbols. ``i`` only in complex mode."""
        return frozenset(
            glyph
            for glyph, info in self.constants.items()
            if info.kind != "imaginary" or complex_mode
        )

    def is_constant(self, name: str, complex_mode: bool = False) -> bool:
        return name in self.reserved_constants(complex_mode)

    def is_function(self, name: str) -> bool:
        return name in self.functions

    def is_builtin(self, name: str, complex_mode: bool = False) -> bool:
        """True for reserved constants and built-in function names."""
        return self.is_function(name) or self.is_constant(name, complex_mode)

    def constant_value(self, name: str) -> Any:
        info = self.constants.get(name)
        return info.value if info is not None else None

    def glyph_for(self, word: str) -> str | None:
        """Glyph for a bare word or backslash alias, if any."""
        if word in self.aliases:
            return self.aliases[word]
        return self.bare_words.get(word)

    def greek_glyphs(self) -> list[tuple[str, str]]:
        return sorted(self.aliases.items())

    def replace_backslash(self, text: str) -> str:
        """Pass 1: substitute backslash aliases and commands."""

        def _sub(match: re.Match) -> str:
            token = match.group(0)
            if token in self.aliases:
                return self.aliases[token]
            return self.commands.get(token, token)

        return self._backslash_re.sub(_sub, text)

    def replace_bare_words(self, text: str, skip: tuple[int, int] | None = None) -> str:
        """Pass 2: substitute whitelisted bare words.

        Words inside ``{...}``, words right after a backslash and the span
        ``skip`` (the LHS name) are left alone.
        """
        out: list[str] = []
        depth = 0
        index = 0
        length = len(text)
        while index < length:
            char = text[index]
            if char == "{":
                depth += 1
            elif char == "}":
                depth = max(0, depth - 1)
            if not is_latin(char):
                out.append(char)
                index += 1
                continue
            end = index
            while end < length and is_latin(text[end]):
                end += 1
            word = text[index:end]
            protected = (
                depth > 0
                or (index > 0 and text[index - 1] == "\\")
                or (skip is not None and skip[0] <= index < skip[1])
            )
            if not protected and word in self.bare_words:
                out.append(self.bare_words[word])
            else:
                out.append(word)
            index = end
        return "".join(out)

    def normalize(self, text: str) -> str:
        """Apply passes 0, 1 and 2 to ``text``."""
        for source, target in TYPOGRAPHIC_OPERATORS.items():
            text = text.replace(source, target)
        text = self.replace_backslash(text)
        return self.replace_bare_words(text, skip=lhs_name_span(text))


def lhs_name_span(text: str) -> tuple[int, int] | None:
    """Span of the leading Latin letter run when ``text`` is an assignment."""
    equals = find_assignment(text)
    if equals is None:
        return None
    start = 0
    while start < equals and text[start].isspace():
        start += 1
    end = start
    while end < equals and is_latin(text[end]):
        end += 1
    if end == start:
        return None
    return start, end


def _load_default_table() -> SymbolTable:
    if TOKEN_MAP_PATH:
        try:
            table = SymbolTable.from_json(TOKEN_MAP_PATH)
        except (OSError, ValueError) as exc:
            logger.warning(
                "Failed to load token map, using built-in table",
                extra={"token_map": TOKEN_MAP_PATH, "error": str(exc)},
            )
        else:
            logger.debug("Loaded token map from %s", TOKEN_MAP_PATH)
            return table
    return SymbolTable.default()


DEFAULT_SYMBOL_TABLE = _load_default_table()


@lru_cache(maxsize=CACHE_SIZE_NORMALIZE)
def _normalize_cached(text: str, table: SymbolTable) -> str:
    return table.normalize(text)


def normalize(text: str, table: SymbolTable | None = None) -> str:
    """Rewrite aliases and whitelisted bare words to canonical glyphs.

    Args:
        text: Raw user input (a full ``lhs = rhs`` line or a fragment)
        table: Symbol table to use (default: the process-wide table)

    Returns:
        Normalized text. Never raises.

    Examples:
        >>> normalize("\\\\pi r")
        'π r'
        >>> normalize("s_{pin} = 2pi")
        's_{pin} = 2π'
    """
    if not text:
        return ""
    return _normalize_cached(text, table or DEFAULT_SYMBOL_TABLE)


def reserved_names(table: SymbolTable | None = None, complex_mode: bool = False) -> frozenset:
    """All built-in names (constants and functions) of ``table``."""
    table = table or DEFAULT_SYMBOL_TABLE
    return table.reserved_constants(complex_mode) | table.functions


