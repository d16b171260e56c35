"""
pagegather.driver.session
DevTools 协议会话封装（基于 Playwright 的 CDPSession）。

- send_command 带单次命令超时（默认 30s，math.inf 表示不限时），超时抛 PROTOCOL_TIMEOUT；
- 一次性超时覆盖既可以作为参数显式传入，也可以通过 set_next_protocol_timeout 设置，
  两者都只作用于下一条命令；
- on/once/off 订阅具名事件，add_protocol_message_listener 按 PROTOCOL_EVENTS 逐个订阅
  并以 {method, params, session_id} 转发（附带 iframe 子会话 id，用于区分 iframe 与主框架的事件）。
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..lib.errors import GatherError

logger = logging.getLogger(__name__)

# 等待协议响应的默认时长
DEFAULT_PROTOCOL_TIMEOUT_MS = 30000

# add_protocol_message_listener 默认转发的协议事件（CDPSession 只支持按名订阅）
PROTOCOL_EVENTS: Tuple[str, ...] = (
    "Page.domContentEventFired",
    "Page.frameAttached",
    "Page.frameDetached",
    "Page.frameNavigated",
    "Page.frameRequestedNavigation",
    "Page.frameStartedLoading",
    "Page.frameStoppedLoading",
    "Page.javascriptDialogOpening",
    "Page.lifecycleEvent",
    "Page.loadEventFired",
    "Page.navigatedWithinDocument",
    "Network.dataReceived",
    "Network.loadingFailed",
    "Network.loadingFinished",
    "Network.requestServedFromCache",
    "Network.requestWillBeSent",
    "Network.requestWillBeSentExtraInfo",
    "Network.resourceChangedPriority",
    "Network.responseReceived",
    "Network.responseReceivedExtraInfo",
    "Target.attachedToTarget",
    "Target.detachedFromTarget",
    "Target.targetInfoChanged",
    "Runtime.consoleAPICalled",
    "Runtime.exceptionThrown",
    "Runtime.executionContextCreated",
    "Runtime.executionContextDestroyed",
    "Runtime.executionContextsCleared",
    "Log.entryAdded",
)


class ProtocolSession:
    def __init__(self, cdp_session: Any) -> None:
        self._cdp_session = cdp_session
        self._target_info: Optional[Dict[str, Any]] = None
        self._next_protocol_timeout: Optional[float] = None
        self._message_listeners: Dict[Callable[..., Any], List[Tuple[str, Callable[..., Any]]]] = {}

    def session_id(self) -> Optional[str]:
        if self._target_info and self._target_info.get("type") == "iframe":
            return self._target_info.get("targetId")
        return None

    def set_target_info(self, target_info: Dict[str, Any]) -> None:
        self._target_info = target_info

    def has_next_protocol_timeout(self) -> bool:
        return self._next_protocol_timeout is not None

    def get_next_protocol_timeout(self) -> float:
        return self._next_protocol_timeout or DEFAULT_PROTOCOL_TIMEOUT_MS

    def set_next_protocol_timeout(self, ms: float) -> None:
        self._next_protocol_timeout = ms

    def on(self, event_name: str, callback: Callable[..., Any]) -> None:
        self._cdp_session.on(event_name, callback)

    def once(self, event_name: str, callback: Callable[..., Any]) -> None:
        self._cdp_session.once(event_name, callback)

    def off(self, event_name: str, callback: Callable[..., Any]) -> None:
        self._cdp_session.remove_listener(event_name, callback)

    def _forwarder(self, method: str, callback: Callable[[Dict[str, Any]], Any]) -> Callable[..., None]:
        def listener(params: Any = None) -> None:
            callback({"method": method, "params": params, "session_id": self.session_id()})

        return listener

    def add_protocol_message_listener(
        self,
        callback: Callable[[Dict[str, Any]], Any],
        events: Sequence[str] = PROTOCOL_EVENTS,
    ) -> None:
        if callback in self._message_listeners:
            return
        listeners = [(method, self._forwarder(method, callback)) for method in events]
        for method, listener in listeners:
            self._cdp_session.on(method, listener)
        self._message_listeners[callback] = listeners

    def remove_protocol_message_listener(self, callback: Callable[[Dict[str, Any]], Any]) -> None:
        for method, listener in self._message_listeners.pop(callback, ()):
            self._cdp_session.remove_listener(method, listener)

    async def send_command(
        self,
        method: str,
        params: Optional[Dict[str, Any]] = None,
        *,
        timeout_ms: Optional[float] = None,
    ) -> Dict[str, Any]:
        if timeout_ms is None:
            timeout_ms = self.get_next_protocol_timeout()
        self._next_protocol_timeout = None

        result = self._cdp_session.send(method, params or {})
        if timeout_ms == math.inf:
            return await result
        try:
            return await asyncio.wait_for(result, timeout=timeout_ms / 1000.0)
        except asyncio.TimeoutError:
            logger.debug("protocol timeout: %s after %sms", method, timeout_ms)
            raise GatherError.of(
                "PROTOCOL_TIMEOUT", stage="protocol", protocol_method=method
            ) from None

    async def dispose(self) -> None:
        """移除全部监听并断开调试会话。"""
        self._cdp_session.remove_all_listeners()
        self._message_listeners.clear()
        await self._cdp_session.detach()
