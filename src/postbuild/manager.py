# manager.py
from __future__ import annotations

import re
import traceback
from pathlib import Path
from typing import Dict, List, Optional, Type

from .host import BuildListener, BuildRecord, Host
from .model import Badge, Result, Summary
from .ui.console import get_console

SCRIPT_LABEL = "Jython"
FAILURE_HEADER = f'<b><font color="red">{SCRIPT_LABEL} script failed:</font></b><br><pre>'
FAILURE_FOOTER = "</pre>"


class PatternCompileError(Exception):
    """A regular expression passed by a script did not compile."""

    def __init__(self, pattern: str, cause: re.error):
        self.pattern = pattern
        self.cause = cause
        super().__init__(f"Unable to compile regular expression '{pattern}': {cause}")


def _remove_by_identity(actions: List[object], action: object) -> None:
    for i, candidate in enumerate(actions):
        if candidate is action:
            del actions[i]
            return


class BuildManager:
    """
    The `manager` object a post-build script talks to.

    Every operation acts on the active build. The active build starts as
    the build the step runs for and can be moved with set_build_number();
    every build ever made active is remembered in `builds` so the step
    can save each of them once at the end.
    """

    def __init__(
        self,
        build: BuildRecord,
        listener: BuildListener,
        script_failure_result: Result,
        *,
        host: Host,
    ):
        self.listener = listener
        self.script_failure_result = script_failure_result
        self.host = host
        self.builds: List[BuildRecord] = []
        self.build: BuildRecord = build
        self._origin = build
        self.set_build(build)

        self.env_vars: Dict[str, str] = {}
        try:
            self.env_vars = dict(build.get_environment(listener))
        except Exception:
            traceback.print_exc(file=listener.error("Unable to capture the build environment."))

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def println(self, text: str) -> None:
        self.listener.println(text)

    def get_env_variable(self, key: str) -> Optional[str]:
        return self.env_vars.get(key)

    def set_build(self, build: Optional[BuildRecord]) -> None:
        if build is None:
            return
        self.build = build
        if not any(b is build for b in self.builds):
            self.builds.append(build)

    def set_build_number(self, number: int) -> bool:
        """Make build `number` of the same project the active build."""
        new_build = self._origin.project.get_build_by_number(number)
        self.set_build(new_build)
        return new_build is not None

    def build_is_a(self, build_class: Type) -> bool:
        """True if the active build is an instance of build_class."""
        return isinstance(self.build, build_class)

    # ------------------------------------------------------------------
    # Badges
    # ------------------------------------------------------------------

    def add_short_text(
        self,
        text: str,
        color: str = "#000000",
        background: str = "#FFFF00",
        border: str = "1px",
        border_color: str = "#C0C000",
    ) -> None:
        self.build.actions.append(Badge.create_short_text(text, color, background, border, border_color))

    def add_badge(self, icon: str, text: str, link: str | None = None) -> None:
        self.build.actions.append(Badge.create_badge(icon, text, link, icons=self.host.icons))

    def add_info_badge(self, text: str) -> None:
        self.build.actions.append(Badge.create_info_badge(text, icons=self.host.icons))

    def add_warning_badge(self, text: str) -> None:
        self.build.actions.append(Badge.create_warning_badge(text, icons=self.host.icons))

    def add_error_badge(self, text: str) -> None:
        self.build.actions.append(Badge.create_error_badge(text, icons=self.host.icons))

    def get_badges(self) -> List[Badge]:
        return [a for a in self.build.actions if isinstance(a, Badge)]

    def remove_badges(self) -> None:
        for badge in self.get_badges():
            _remove_by_identity(self.build.actions, badge)

    def remove_badge(self, index: int) -> None:
        badges = self.get_badges()
        if index < 0 or index >= len(badges):
            self.listener.error(f"Invalid badge index: {index}. Allowed values: 0 .. {len(badges) - 1}")
            return
        _remove_by_identity(self.build.actions, badges[index])

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def create_summary(self, icon: str) -> Summary:
        summary = Summary(icon_path=self.host.icons.resolve(icon))
        self.build.actions.append(summary)
        return summary

    def get_summaries(self) -> List[Summary]:
        return [a for a in self.build.actions if isinstance(a, Summary)]

    def remove_summaries(self) -> None:
        for summary in self.get_summaries():
            _remove_by_identity(self.build.actions, summary)

    def remove_summary(self, index: int) -> None:
        summaries = self.get_summaries()
        if index < 0 or index >= len(summaries):
            self.listener.error(f"Invalid summary index: {index}. Allowed values: 0 .. {len(summaries) - 1}")
            return
        _remove_by_identity(self.build.actions, summaries[index])

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def build_success(self) -> None:
        self.build.result = Result.SUCCESS

    def build_unstable(self) -> None:
        self.build.result = Result.UNSTABLE

    def build_failure(self) -> None:
        self.build.result = Result.FAILURE

    def build_aborted(self) -> None:
        self.build.result = Result.ABORTED

    def build_not_built(self) -> None:
        self.build.result = Result.NOT_BUILT

    def build_script_failed(self, error: BaseException) -> None:
        """
        Decorate the active build with the failure and lower its result.

        The result is only ever made worse, and never worse than the
        configured script failure result.
        """
        trace = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        is_error = self.script_failure_result.is_worse_than(Result.UNSTABLE)
        icon = "error" if is_error else "warning"

        summary = self.create_summary(f"{icon}.gif")
        summary.append_text(FAILURE_HEADER, False)
        summary.append_text(trace, True)
        summary.append_text(FAILURE_FOOTER, False)

        self.add_short_text(
            SCRIPT_LABEL,
            "black",
            "#FFE0E0" if is_error else "#FFFFC0",
            "1px",
            "#E08080" if is_error else "#C0C080",
        )

        if self.build.result.is_better_than(self.script_failure_result):
            self.build.result = self.script_failure_result

    # ------------------------------------------------------------------
    # Log search
    # ------------------------------------------------------------------

    def log_contains(self, regexp: str) -> bool:
        return self.contains(self.build.log_file, regexp)

    def contains(self, path: str | Path, regexp: str) -> bool:
        return self.get_matcher(path, regexp) is not None

    def get_log_matcher(self, regexp: str) -> Optional[re.Match]:
        return self.get_matcher(self.build.log_file, regexp)

    def get_matcher(self, path: str | Path, regexp: str) -> Optional[re.Match]:
        """
        Match of the first line of `path` that `regexp` matches entirely.

        Returns None when no line matches. A bad pattern or an unreadable
        file is reported and treated as a script failure.
        """
        get_console().print_debug(f"Searching for '{regexp}' in '{path}'.")
        try:
            pattern = self._compile_pattern(regexp)
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                for line in f:
                    m = pattern.fullmatch(line.rstrip("\n"))
                    if m is not None:
                        return m
        except (OSError, PatternCompileError) as e:
            traceback.print_exc(file=self.listener.error(f'Postbuild: get_matcher("{path}", "{regexp}") failed.'))
            self.build_script_failed(e)
        return None

    def _compile_pattern(self, regexp: str) -> re.Pattern:
        try:
            return re.compile(regexp)
        except re.error as e:
            self.listener.println(f"Postbuild: Unable to compile regular expression '{regexp}'")
            raise PatternCompileError(regexp, e) from e
