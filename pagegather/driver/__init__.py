"""pagegather.driver：协议会话、Driver 门面与导航相关的底层操作。"""

from .driver import Driver
from .session import DEFAULT_PROTOCOL_TIMEOUT_MS, ProtocolSession

__all__ = ["Driver", "ProtocolSession", "DEFAULT_PROTOCOL_TIMEOUT_MS"]
