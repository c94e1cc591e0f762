from .build import LocalBuild, LocalHost, LocalProject
from .listener import StreamListener
from .matrix import LocalMatrixBuild, LocalMatrixProject, LocalMatrixRun
from .store import BuildStore

__all__ = [
    "LocalBuild",
    "LocalHost",
    "LocalProject",
    "StreamListener",
    "LocalMatrixBuild",
    "LocalMatrixProject",
    "LocalMatrixRun",
    "BuildStore",
]
