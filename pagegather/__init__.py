"""
pagegather
通过 Chrome DevTools Protocol 采集页面产物（artifacts）的流水线。

  from pagegather import navigation_gather
  artifacts = await navigation_gather("https://example.com", page)
"""

from .config.config import get_config_display_string, resolve_configuration
from .config.types import ConfigContext, ResolvedConfig
from .gather.base_gatherer import BaseGatherer, GathererMeta, TransitionalContext
from .gather.navigation_runner import navigation_gather
from .gather.results import ArtifactBag, Err, Ok
from .gather.snapshot_runner import snapshot_gather
from .gather.timespan_runner import start_timespan_gather
from .lib.errors import ConfigError, GatherError

__version__ = "0.1.0"

__all__ = [
    "ArtifactBag",
    "BaseGatherer",
    "ConfigContext",
    "ConfigError",
    "Err",
    "GatherError",
    "GathererMeta",
    "Ok",
    "ResolvedConfig",
    "TransitionalContext",
    "get_config_display_string",
    "navigation_gather",
    "resolve_configuration",
    "snapshot_gather",
    "start_timespan_gather",
]
