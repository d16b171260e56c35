"""
pagegather.config.types
解析后的配置结构：产物定义、导航定义、审计定义与执行计划。

这些对象都是 frozen dataclass；过滤等步骤通过 dataclasses.replace
产生新对象，从不修改已解析的计划。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..gather.base_gatherer import BaseGatherer
from .settings import Settings


@dataclass(frozen=True)
class ArtifactDependency:
    id: str


@dataclass(frozen=True)
class GathererDefn:
    instance: BaseGatherer
    path: Optional[str] = None
    implementation: Optional[type] = None


@dataclass(frozen=True)
class ArtifactDefn:
    id: str
    gatherer: GathererDefn
    dependencies: Optional[Mapping[str, ArtifactDependency]] = None


@dataclass(frozen=True)
class NavigationDefn:
    id: str
    artifacts: Tuple[ArtifactDefn, ...]
    blank_page: str = "about:blank"
    load_failure_mode: str = "fatal"
    disable_throttling: bool = False
    disable_storage_reset: bool = False
    network_quiet_threshold_ms: int = 0
    cpu_quiet_threshold_ms: int = 0
    pause_after_fcp_ms: int = 0
    pause_after_load_ms: int = 0
    blocked_url_patterns: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AuditDefn:
    implementation: type
    path: Optional[str] = None
    options: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ResolvedConfig:
    """执行计划：一次运行内只解析一次，之后只读。"""

    settings: Settings
    artifacts: Optional[Tuple[ArtifactDefn, ...]] = None
    navigations: Optional[Tuple[NavigationDefn, ...]] = None
    audits: Optional[Tuple[AuditDefn, ...]] = None
    categories: Optional[Dict[str, Dict[str, Any]]] = None
    groups: Optional[Dict[str, Dict[str, Any]]] = None


# id -> 产生采集器实例/审计类的工厂
GathererFactory = Callable[[], BaseGatherer]


@dataclass
class ConfigContext:
    config_path: Optional[str] = None
    settings_overrides: Optional[Dict[str, Any]] = None
    skip_about_blank: Optional[bool] = None
    gatherer_registry: Optional[Mapping[str, GathererFactory]] = None
    audit_registry: Optional[Mapping[str, type]] = None


def artifact_ids(artifacts: Optional[Tuple[ArtifactDefn, ...]]) -> List[str]:
    return [a.id for a in artifacts or ()]
