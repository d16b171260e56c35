"""pagegather.lib：错误、URL、网络记录等无依赖的基础工具。"""

from .errors import ConfigError, GatherError

__all__ = ["ConfigError", "GatherError"]
