# local/build.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional

from ..host import ADMINISTER, BuildListener, PermissionDenied
from ..icons import IconResolver
from ..model import Result

if TYPE_CHECKING:
    from ..recorder import PostbuildRecorder
    from .store import BuildStore


@dataclass
class LocalHost:
    """In-process build server: grants permissions and knows where icons live."""
    icons: IconResolver = field(default_factory=IconResolver)
    permissions: set[str] = field(default_factory=lambda: {ADMINISTER})
    user: str = "local"

    def check_permission(self, permission: str) -> None:
        if permission not in self.permissions:
            raise PermissionDenied(permission, self.user)


@dataclass(eq=False)
class LocalBuild:
    """A build record kept in memory, saved through the project's store."""
    project: "LocalProject"
    number: int
    result: Result = Result.SUCCESS
    actions: List[object] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)
    log_file: Path = Path("build.log")
    save_count: int = 0

    def get_environment(self, listener: BuildListener) -> Dict[str, str]:
        env = dict(self.env)
        env.setdefault("JOB_NAME", self.project.name)
        env.setdefault("BUILD_NUMBER", str(self.number))
        return env

    def save(self) -> None:
        self.save_count += 1
        if self.project.store is not None:
            self.project.store.save(self)

    def get_action(self, kind: type):
        """First attached action of the given type, or None."""
        for action in self.actions:
            if isinstance(action, kind):
                return action
        return None


class LocalProject:
    """A job: numbered builds plus the post-build steps to run on each."""

    build_class = LocalBuild

    def __init__(
        self,
        name: str,
        *,
        root: str | Path = ".postbuild/jobs",
        store: Optional["BuildStore"] = None,
        env: Optional[Dict[str, str]] = None,
    ):
        self.name = name
        self.root = Path(root)
        self.store = store
        self.env = dict(env or {})
        self.publishers: List["PostbuildRecorder"] = []
        self.builds: Dict[int, LocalBuild] = {}
        self.next_number = (store.last_number(name) + 1) if store is not None else 1

    def get_build_by_number(self, number: int) -> Optional[LocalBuild]:
        """
        Build `number` of this job, from memory or else from the store.

        A stored build comes back with its result and annotations; its
        log is the one written under root when it ran.
        """
        build = self.builds.get(number)
        if build is not None or self.store is None:
            return build

        stored = self.store.load(self.name, number)
        if stored is None:
            return None
        build = self.build_class(
            project=self,
            number=number,
            result=stored.result,
            actions=list(stored.actions),
            env=dict(self.env),
            log_file=self.root / self.name / str(number) / "log",
        )
        self.builds[number] = build
        return build

    def new_build(
        self,
        *,
        log: str = "",
        env: Optional[Dict[str, str]] = None,
        result: Result = Result.SUCCESS,
        number: Optional[int] = None,
        **extra,
    ):
        """Create the next build, writing its console log under root."""
        if number is None:
            number = self.next_number
        self.next_number = max(self.next_number, number + 1)

        build_dir = self.root / self.name / str(number)
        build_dir.mkdir(parents=True, exist_ok=True)
        log_file = build_dir / "log"
        log_file.write_text(log, encoding="utf-8")

        merged_env = dict(self.env)
        merged_env.update(env or {})
        build = self.build_class(
            project=self,
            number=number,
            result=result,
            env=merged_env,
            log_file=log_file,
            **extra,
        )
        self.builds[number] = build
        return build

    def run(
        self,
        listener: BuildListener,
        *,
        log: str = "",
        env: Optional[Dict[str, str]] = None,
        result: Result = Result.SUCCESS,
    ) -> LocalBuild:
        """Create a build and run every post-build step against it."""
        build = self.new_build(log=log, env=env, result=result)
        self._perform_publishers(build, listener)
        return build

    def _perform_publishers(self, build: LocalBuild, listener: BuildListener) -> None:
        for publisher in self.publishers:
            if not publisher.perform(build, listener):
                listener.println(f"Build step marked build as {build.result.name}")
