# matrix.py
# Build kinds and the aggregation hook of multi-configuration (matrix) jobs.
from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .host import BuildListener


class MatrixBuild:
    """Marker base for the parent build of a matrix job."""


class MatrixRun:
    """Marker base for one axis-combination child of a matrix build."""
    combination: Dict[str, str]


class MatrixAggregator:
    """
    Callbacks the host fires around the children of one matrix build.

    end_build() is called once, after every child has finished.
    """

    def __init__(self, build: MatrixBuild, listener: "BuildListener"):
        self.build = build
        self.listener = listener

    def start_build(self) -> bool:
        return True

    def end_run(self, run: MatrixRun) -> bool:
        return True

    def end_build(self) -> bool:
        return True


@runtime_checkable
class MatrixAggregatable(Protocol):
    """A build step that wants to hear about the runs of a matrix build."""

    def create_aggregator(
        self, build: MatrixBuild, listener: "BuildListener"
    ) -> Optional[MatrixAggregator]: ...
