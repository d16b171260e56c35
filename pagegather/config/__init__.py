"""pagegather.config：配置解析、校验与过滤，产出只读执行计划。"""

from .config import get_config_display_string, resolve_configuration
from .settings import Settings
from .types import (
    ArtifactDefn,
    ArtifactDependency,
    AuditDefn,
    ConfigContext,
    GathererDefn,
    NavigationDefn,
    ResolvedConfig,
)

__all__ = [
    "resolve_configuration",
    "get_config_display_string",
    "Settings",
    "ArtifactDefn",
    "ArtifactDependency",
    "AuditDefn",
    "ConfigContext",
    "GathererDefn",
    "NavigationDefn",
    "ResolvedConfig",
]
