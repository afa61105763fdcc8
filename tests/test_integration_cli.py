"""Integration tests for CLI functionality."""

import json
import logging
import subprocess
import sys

import pytest

from symbinder_pkg import config
from symbinder_pkg.cli import format_number, handle_command, main_entry
from symbinder_pkg.function_manager import Workspace


@pytest.fixture(autouse=True)
def reset_logging():
    """main_entry installs handlers on the symbinder logger; drop them afterwards."""
    yield
    logging.getLogger("symbinder").handlers.clear()


def test_cli_version():
    """Test --version flag."""
    result = subprocess.run(
        [sys.executable, "-m", "symbinder_pkg", "--version"],
        capture_output=True,
        text=True,
        timeout=30,
    )
    assert result.returncode == 0
    assert result.stdout.strip() != ""


def test_cli_eval_json(capsys):
    """Test one-shot binding with JSON output."""
    assert main_entry(["--eval", "f(x) = ax_{mode}", "--format", "json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["ok"] is True
    assert data["rhs"] == "a*x_{mode}"
    assert data["created"] == ["a", "x_{mode}"]


def test_cli_eval_human(capsys):
    assert main_entry(["-e", "f(x) = sin(kx)"]) == 0
    out = capsys.readouterr().out
    assert "Function f(x) = sin(k*x)" in out
    assert "Auto-created: k" in out


def test_cli_eval_error(capsys):
    assert main_entry(["-e", "spin = 5"]) == 1
    out = capsys.readouterr().out
    assert "s_{spin}" in out


def test_cli_max_suggestions(capsys, monkeypatch):
    monkeypatch.setattr(config, "MAX_SUGGESTIONS", config.MAX_SUGGESTIONS)
    assert main_entry(["--max-suggestions", "1", "-e", "e = 1"]) == 1
    out = capsys.readouterr().out
    assert "e_{1}" in out
    assert "e_{2}" not in out


def test_repl_commands(capsys):
    ws = Workspace()
    assert handle_command(ws, "k = 5") is True
    assert handle_command(ws, "f(x) = kx") is True
    handle_command(ws, "eval f 2")
    handle_command(ws, "set k 3")
    handle_command(ws, "eval k")
    handle_command(ws, "list")
    out = capsys.readouterr().out
    assert "Parameter k = 5" in out
    assert "10\n" in out
    assert "3\n" in out
    assert "f(x) = k*x" in out


def test_repl_errors(capsys):
    ws = Workspace()
    handle_command(ws, "set k abc")
    handle_command(ws, "eval m")
    handle_command(ws, "delete m")
    out = capsys.readouterr().out
    assert "expected numbers" in out
    assert "'m' is not defined" in out


def test_repl_quit():
    ws = Workspace()
    assert handle_command(ws, "quit") is False
    assert handle_command(ws, "EXIT") is False


def test_repl_replace(capsys):
    ws = Workspace()
    handle_command(ws, "k = 5")
    handle_command(ws, "replace k = 7")
    handle_command(ws, "eval k")
    assert capsys.readouterr().out.rstrip().endswith("7")


def test_repl_visibility_and_variable(capsys):
    ws = Workspace()
    handle_command(ws, "y = ax")
    handle_command(ws, "toggle plot-1")
    handle_command(ws, "variable plot-1 a")
    handle_command(ws, "variable plot-1 q")
    handle_command(ws, "toggle g")
    handle_command(ws, "list")
    out = capsys.readouterr().out
    assert "plot-1 = a*x  (hidden)" in out
    assert "cannot plot 'plot-1' over 'q'" in out
    assert "'g' is not defined" in out
    assert ws.functions.lookup("plot-1").independent_variable == "a"


def test_repl_parameter_with_arguments(capsys):
    ws = Workspace()
    handle_command(ws, "eval k 2")
    handle_command(ws, "k = 5")
    handle_command(ws, "eval k 2")
    out = capsys.readouterr().out
    assert "'k' is not defined" in out
    assert "Define a function 'k(x) = ...'" in out


def test_format_number():
    assert format_number(5.0) == "5"
    assert format_number(0.1) == "0.1"
    assert format_number(complex(1, -2)) == "1-2i"
