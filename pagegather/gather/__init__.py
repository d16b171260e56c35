"""
pagegather.gather
采集器契约、产物结果类型与三种采集模式的运行器。

运行器（navigation_runner / snapshot_runner / timespan_runner）依赖配置解析，
请直接从子模块或顶层包 pagegather 导入。
"""

from .base_gatherer import GATHER_MODES, BaseGatherer, DependencySymbol, GathererMeta, TransitionalContext
from .results import ArtifactBag, Err, Ok

__all__ = [
    "GATHER_MODES",
    "ArtifactBag",
    "BaseGatherer",
    "DependencySymbol",
    "Err",
    "GathererMeta",
    "Ok",
    "TransitionalContext",
]
