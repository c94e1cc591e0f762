# script.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Protocol

SCRIPT_FILENAME = "<postbuild script>"


class ScriptRunner(Protocol):
    """Executes script source with the given names bound; raises on failure."""

    def run(self, source: str, bindings: Mapping[str, Any]) -> None: ...


class ExecScriptRunner:
    """
    Runs a script in-process with a fresh globals dict.

    The bindings are the only names the script gets besides builtins.
    Syntax errors surface from compile(), everything else from exec().
    """

    def __init__(self, filename: str = SCRIPT_FILENAME):
        self.filename = filename

    def run(self, source: str, bindings: Mapping[str, Any]) -> None:
        code = compile(source, self.filename, "exec")
        globals_dict: dict[str, Any] = {"__name__": "__postbuild__"}
        globals_dict.update(bindings)
        exec(code, globals_dict)


def load_script(path: str | Path) -> str:
    """Read a script file, with the same checks the workflow loader does."""
    script_path = Path(path).expanduser().resolve()
    if not script_path.exists():
        raise FileNotFoundError(f"Script file not found: {script_path}")
    if script_path.suffix != ".py":
        raise ValueError(f"Script must be a .py file, got: {script_path.name}")
    return script_path.read_text(encoding="utf-8")
