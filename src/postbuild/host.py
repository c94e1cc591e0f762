# host.py
# Interfaces of the build server this package plugs into.
# Nothing here is implemented by the core; postbuild.local provides an
# in-process host for the CLI and tests.
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Protocol, TextIO, runtime_checkable

from .icons import IconResolver
from .model import Result

ADMINISTER = "administer"


class PermissionDenied(Exception):
    """Raised by the host when the current user may not run the step."""

    def __init__(self, permission: str, user: str | None = None):
        self.permission = permission
        self.user = user
        who = user or "current user"
        super().__init__(f"{who} is missing the {permission} permission")


@runtime_checkable
class BuildListener(Protocol):
    """Log sink of a running build."""

    def println(self, text: str) -> None: ...

    def error(self, text: str) -> TextIO:
        """Print an error line and return a stream for the traceback."""
        ...


class Project(Protocol):
    name: str

    def get_build_by_number(self, number: int) -> Optional["BuildRecord"]: ...


class BuildRecord(Protocol):
    """One execution of a job."""
    number: int
    result: Result
    actions: List[object]

    @property
    def project(self) -> Project: ...

    @property
    def log_file(self) -> Path: ...

    def get_environment(self, listener: BuildListener) -> Dict[str, str]: ...

    def save(self) -> None: ...


class Host(Protocol):
    """The build server: permissions, plugin registry, icon locations."""

    @property
    def icons(self) -> IconResolver: ...

    def check_permission(self, permission: str) -> None:
        """Raise PermissionDenied if the permission is not granted."""
        ...
