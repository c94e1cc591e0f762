"""Console output formatting utilities for postbuild."""

from __future__ import annotations

import sys
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from postbuild.host import BuildRecord


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_run_started(self, job: str, script: str, builds: int) -> None:
        """Print run start information."""
        print("\nRUN STARTED")
        print(f"Job: {job}")
        print(f"Script: {script}")
        print(f"Builds: {builds}")
        print()

    def print_build(self, build: "BuildRecord", label: str | None = None) -> None:
        """
        Print a build's result and the badges/summaries attached to it.

        Args:
            build: Build record to describe
            label: Optional display name (defaults to "<job> #<number>")
        """
        from postbuild.model import Badge, Summary

        name = label or f"{build.project.name} #{build.number}"
        print(f"\nBUILD: {name}")
        print(f"Result: {build.result.name}")
        for action in build.actions:
            if isinstance(action, Badge):
                icon = "text" if action.is_text_only else action.icon_path
                link = f" -> {action.link}" if action.link else ""
                print(f"  BADGE [{icon}] {action.text}{link}")
            elif isinstance(action, Summary):
                print(f"  SUMMARY [{action.icon_path}]")
                for line in action.text.splitlines():
                    print(f"    {line}")

    def print_results(self, results: dict[str, str]) -> None:
        """Print final results summary."""
        print("\n" + "=" * 40)
        print("RESULTS")
        print("=" * 40)
        for name, status in results.items():
            print(f"  {name}: {status}")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exc()
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
