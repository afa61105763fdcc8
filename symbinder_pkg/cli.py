"""Command-line interface: one-shot binding (-e) or an interactive workspace REPL."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from . import config as _config
from .api import bind_expression
from .config import VERSION
from .evaluator import EvaluationError
from .function_manager import Workspace
from .logging_config import get_logger, setup_logging
from .types import CircularDependencyError, ValidationError

logger = get_logger("cli")


def format_number(value: Any) -> str:
    """Format a float without trailing zeros."""
    if isinstance(value, complex):
        return f"{format_number(value.real)}{'+' if value.imag >= 0 else '-'}{format_number(abs(value.imag))}i"
    return f"{value:.12g}"


def print_result_pretty(res: dict[str, Any], output_format: str = "human") -> None:
    """Print a bind result.

    Args:
        res: Result dictionary (BindResult.to_dict())
        output_format: "json" for JSON output, "human" for human-readable
    """
    if output_format == "json":
        print(json.dumps(res, indent=2, ensure_ascii=False))
        return
    if not res.get("ok"):
        print("Error:", res.get("error"))
        suggestions = res.get("suggestions")
        if suggestions:
            print("Suggestions:", ", ".join(suggestions))
        for fix in res.get("fixes") or []:
            print("  Hint:", fix)
        return
    kind = res.get("kind")
    name = res.get("name")
    if kind == "parameter":
        print(f"Parameter {name} = {res.get('rhs')}")
    elif kind == "anonymous":
        print(f"Plot y = {res.get('rhs')}")
    else:
        formals = res.get("formal_params") or []
        signature = f"{name}({', '.join(formals)})" if formals else name
        print(f"Function {signature} = {res.get('rhs')}")
    transition = res.get("transition")
    if transition == "promote":
        print(f"  Promoted parameter {name} to a function")
    elif transition == "demote":
        print(f"  Demoted function {name} to a parameter")
    if res.get("dependencies"):
        print("  Depends on:", ", ".join(res["dependencies"]))
    if res.get("created"):
        print("  Auto-created:", ", ".join(res["created"]))
    for warning in res.get("warnings") or []:
        print("  Warning:", warning)


def print_workspace(workspace: Workspace) -> None:
    if not len(workspace.parameters) and not len(workspace.functions):
        print("(empty)")
        return
    for param in workspace.parameters:
        marker = " [independent]" if param.is_independent else ""
        auto = " (auto)" if param.source == "auto" else ""
        print(f"{param.name} = {format_number(param.value)}  in [{format_number(param.min)}, {format_number(param.max)}]{auto}{marker}")
    for definition in workspace.functions:
        label = definition.id if definition.is_anonymous else definition.signature()
        hidden = "" if definition.visible else "  (hidden)"
        print(f"{label} = {definition.rhs}{hidden}")


def print_help_text() -> None:
    """Print help text for REPL commands."""
    help_text = f"""symbinder version {VERSION}

Definitions (one per line):
  k = 5                  parameter
  f(x) = sin(kx)         function (k is used, missing names are auto-created)
  g = 2a                 function without arguments
  y = x^2                anonymous plot over x
  k_{{1}} = 3, θ = \\pi/4   subscripts and Greek letters (\\alpha, alpha, α)

Commands:
  list                   show parameters and functions
  order                  show evaluation order
  eval f 2               evaluate a function (or a parameter) at arguments
  set k 3                change a parameter value
  delete k               remove a parameter or function
  toggle f               show or hide a function or plot
  variable plot-1 t      sample a plot over another parameter
  replace f(x) = ...     redefine an existing name
  help                   show this text
  quit, exit             leave
"""
    print(help_text)


def _split_numbers(parts: list[str]) -> list[float]:
    return [float(part) for part in parts]


def handle_command(workspace: Workspace, raw: str, output_format: str = "human") -> bool:
    """Run one REPL line. Returns False when the REPL should stop."""
    words = raw.split()
    command = words[0].lower()
    if command in ("quit", "exit"):
        return False
    try:
        if command == "help" and len(words) == 1:
            print_help_text()
        elif command == "list" and len(words) == 1:
            print_workspace(workspace)
        elif command == "order" and len(words) == 1:
            print(" -> ".join(workspace.evaluation_order()) or "(empty)")
        elif command == "eval" and len(words) >= 2:
            value = workspace.evaluate(words[1], *_split_numbers(words[2:]))
            print(format_number(value))
        elif command == "set" and len(words) == 3:
            workspace.set_value(words[1], float(words[2]))
        elif command == "delete" and len(words) == 2:
            if not workspace.delete(words[1]):
                print(f"Error: '{words[1]}' is not defined.")
        elif command == "toggle" and len(words) == 2:
            if not workspace.toggle_visibility(words[1]):
                print(f"Error: '{words[1]}' is not defined.")
        elif command == "variable" and len(words) == 3:
            if not workspace.change_independent_variable(words[1], words[2]):
                print(f"Error: cannot plot '{words[1]}' over '{words[2]}'.")
        elif command == "replace" and len(words) >= 2:
            result = workspace.submit(raw[len(words[0]) :].strip(), replace=True)
            print_result_pretty(result.to_dict(), output_format)
        else:
            result = workspace.submit(raw)
            print_result_pretty(result.to_dict(), output_format)
    except (ValidationError, EvaluationError, CircularDependencyError) as exc:
        print("Error:", exc.message)
    except ValueError as exc:
        print("Error: expected numbers:", exc)
    return True


def repl_loop(output_format: str = "human", complex_mode: bool | None = None) -> None:
    """Interactive REPL over a fresh Workspace."""
    try:
        import readline  # noqa: F401
    except ImportError:
        # readline not available on Windows - that's fine
        pass

    workspace = Workspace(complex_mode=complex_mode)
    logger.debug("Starting REPL", extra={"complex_mode": workspace.complex_mode})
    print("symbinder - type 'help' for commands, 'quit' to exit.")
    while True:
        try:
            raw = input(">>> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nGoodbye.")
            break
        if not raw:
            continue
        if not handle_command(workspace, raw, output_format):
            print("Goodbye.")
            break


def main_entry(argv: list[str] | None = None) -> int:
    """
    Main entry point for the symbinder CLI.

    Args:
        argv: Optional command-line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, 1 for a rejected definition)
    """
    parser = argparse.ArgumentParser(prog="symbinder")
    parser.add_argument(
        "-e",
        "--eval",
        type=str,
        help="Bind one definition, print the result and exit",
        dest="eval_expr",
    )
    parser.add_argument(
        "--format",
        type=str,
        choices=["json", "human"],
        default="human",
        help="Output format: json (machine-readable) or human (human-readable)",
    )
    parser.add_argument(
        "--complex",
        action="store_true",
        help="Treat i as the imaginary unit",
    )
    parser.add_argument(
        "--max-suggestions",
        type=int,
        help="Number of alternative names offered on a collision",
    )
    parser.add_argument(
        "-v", "--version", action="store_true", help="Show program version"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Set logging level",
    )
    parser.add_argument("--log-file", type=str, help="Write logs to file")
    args = parser.parse_args(argv)

    setup_logging(level=args.log_level, log_file=args.log_file)
    if args.max_suggestions and args.max_suggestions > 0:
        _config.MAX_SUGGESTIONS = int(args.max_suggestions)
    complex_mode = True if args.complex else None

    if args.version:
        print(VERSION)
        return 0
    if args.eval_expr is not None:
        text = args.eval_expr.strip()
        if text.startswith(">>>"):
            text = text[3:].strip()
        result = bind_expression(text, complex_mode=complex_mode)
        print_result_pretty(result.to_dict(), args.format)
        return 0 if result.ok else 1
    repl_loop(args.format, complex_mode=complex_mode)
    return 0


if __name__ == "__main__":
    sys.exit(main_entry())
