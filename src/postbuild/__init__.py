from .model import Badge, Behavior, Result, Summary
from .icons import IconResolver, PluginInfo
from .manager import BuildManager
from .recorder import PostbuildConfig, PostbuildRecorder
from .matrix import MatrixAggregator, MatrixBuild, MatrixRun

__all__ = [
    "Badge", "Behavior", "Result", "Summary",
    "IconResolver", "PluginInfo",
    "BuildManager",
    "PostbuildConfig", "PostbuildRecorder",
    "MatrixAggregator", "MatrixBuild", "MatrixRun",
]
