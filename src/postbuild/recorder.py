# recorder.py
from __future__ import annotations

import traceback
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .host import ADMINISTER, BuildListener, BuildRecord, Host
from .manager import BuildManager
from .matrix import MatrixAggregator, MatrixBuild
from .model import Behavior, Result
from .script import ExecScriptRunner, ScriptRunner
from .ui.console import get_console


# ---------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------

class PostbuildConfig(BaseModel):
    """Persisted configuration of the post-build script step."""
    model_config = ConfigDict(frozen=True)

    script: str
    behavior: Behavior = Behavior.FAILURE
    run_for_matrix_parent: bool = False
    schema_version: int = Field(default=1, ge=1)

    @field_validator("behavior", mode="before")
    @classmethod
    def _parse_behavior(cls, v):
        return Behavior.parse(v)

    @model_validator(mode="after")
    def _read_resolve(self) -> "PostbuildConfig":
        # Fix-up point for configs written by older versions.
        return self


# ---------------------------------------------------------------------
# Step
# ---------------------------------------------------------------------

class PostbuildRecorder:
    """Runs the configured script against a finished build."""

    def __init__(
        self,
        config: PostbuildConfig,
        *,
        host: Host,
        runner: ScriptRunner | None = None,
    ):
        self.config = config
        self.host = host
        self.runner = runner or ExecScriptRunner()
        get_console().print_debug(f"PostbuildRecorder created with script:\n{config.script}")
        get_console().print_debug(f"PostbuildRecorder behavior: {config.behavior.name}")

    @property
    def script(self) -> str:
        return self.config.script

    @property
    def behavior(self) -> Behavior:
        return self.config.behavior

    @property
    def run_for_matrix_parent(self) -> bool:
        return self.config.run_for_matrix_parent

    def perform(self, build: BuildRecord, listener: BuildListener) -> bool:
        """
        Run the script for `build` and save every build it touched.

        Returns True unless the build ended up FAILURE or worse.
        Raises PermissionDenied if the host refuses to run the step.
        """
        self.host.check_permission(ADMINISTER)
        console = get_console()
        console.print_debug("perform() called for script")
        console.print_debug(f"behavior: {self.behavior.name}")

        script_failure_result = self.behavior.result
        manager = BuildManager(build, listener, script_failure_result, host=self.host)

        try:
            self.runner.run(self.script, {"manager": manager, "self": self})
        except Exception as e:
            traceback.print_exc(file=listener.error("Failed to evaluate jython script."))
            manager.build_script_failed(e)

        for b in manager.builds:
            b.save()

        return build.result.is_better_than(Result.FAILURE)

    def create_aggregator(
        self, build: MatrixBuild, listener: BuildListener
    ) -> Optional[MatrixAggregator]:
        """Aggregator that re-runs the step for the matrix parent, if enabled."""
        if not self.run_for_matrix_parent:
            return None
        return _ParentAggregator(self, build, listener)


class _ParentAggregator(MatrixAggregator):
    def __init__(self, recorder: PostbuildRecorder, build: MatrixBuild, listener: BuildListener):
        super().__init__(build, listener)
        self.recorder = recorder

    def end_build(self) -> bool:
        # called when all child builds are finished
        return self.recorder.perform(self.build, self.listener)
