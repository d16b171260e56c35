import asyncio
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest

from pagegather.gather.base_gatherer import BaseGatherer, GathererMeta

# send() 对这个响应永不返回，用于测试协议超时
HANG = object()

DEFAULT_RESPONSES: Dict[str, Any] = {
    "Browser.getVersion": {
        "product": "HeadlessChrome/120.0.6099.28",
        "userAgent": "Mozilla/5.0 (X11; Linux x86_64) HeadlessChrome/120.0.6099.28 Safari/537.36",
        "protocolVersion": "1.3",
    },
    "Runtime.evaluate": {"result": {"value": 1500}},
}


class FakeCDPSession:
    """Playwright CDPSession 的替身：记录 send 调用，按 method 返回预设响应。"""

    def __init__(self, responses: Optional[Dict[str, Any]] = None) -> None:
        self.responses: Dict[str, Any] = {**DEFAULT_RESPONSES, **(responses or {})}
        self.sent: List[Tuple[str, Dict[str, Any]]] = []
        self.detached = False
        self._listeners: Dict[str, List[Callable[..., Any]]] = defaultdict(list)

    def on(self, event: str, callback: Callable[..., Any]) -> None:
        self._listeners[event].append(callback)

    def once(self, event: str, callback: Callable[..., Any]) -> None:
        def wrapper(*args: Any) -> None:
            self.remove_listener(event, wrapper)
            callback(*args)

        self._listeners[event].append(wrapper)

    def remove_listener(self, event: str, callback: Callable[..., Any]) -> None:
        if callback in self._listeners[event]:
            self._listeners[event].remove(callback)

    def remove_all_listeners(self) -> None:
        self._listeners.clear()

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> bool:
        listeners = list(self._listeners.get(event, []))
        for callback in listeners:
            callback(*args)
        return bool(listeners)

    async def send(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        self.sent.append((method, params or {}))
        response = self.responses.get(method, {})
        if response is HANG:
            await asyncio.sleep(3600)
        if callable(response):
            response = response(params or {})
        if isinstance(response, BaseException):
            raise response
        return response

    async def detach(self) -> None:
        self.detached = True

    def sent_methods(self) -> List[str]:
        return [method for method, _ in self.sent]


class FakePage:
    def __init__(self, url: str = "about:blank", cdp_session: Optional[FakeCDPSession] = None) -> None:
        self.url = url
        self.cdp_session = cdp_session or FakeCDPSession()
        self.context = MagicMock()
        self.context.new_cdp_session = AsyncMock(return_value=self.cdp_session)


class RecordingGatherer(BaseGatherer):
    """记录钩子调用顺序的测试采集器；fail_in 指定在哪个钩子抛出 RuntimeError('boom')。"""

    def __init__(
        self,
        value: Any = None,
        *,
        modes: Tuple[str, ...] = ("navigation",),
        fail_in: Optional[str] = None,
        symbol: Any = None,
        dependencies: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.meta = GathererMeta(supported_modes=modes, symbol=symbol, dependencies=dependencies or {})
        self.value = value
        self.fail_in = fail_in
        self.calls: List[str] = []
        self.contexts: List[Any] = []

    def _record(self, hook: str, context: Any) -> None:
        self.calls.append(hook)
        self.contexts.append(context)
        if hook == self.fail_in:
            raise RuntimeError("boom")

    async def start_instrumentation(self, context):
        self._record("start_instrumentation", context)

    async def start_sensitive_instrumentation(self, context):
        self._record("start_sensitive_instrumentation", context)

    async def stop_sensitive_instrumentation(self, context):
        self._record("stop_sensitive_instrumentation", context)

    async def stop_instrumentation(self, context):
        self._record("stop_instrumentation", context)

    async def get_artifact(self, context):
        self._record("get_artifact", context)
        if self.value is None:
            return dict(context.dependencies)
        return self.value


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def cdp_session() -> FakeCDPSession:
    return FakeCDPSession()


@pytest.fixture
def page(cdp_session: FakeCDPSession) -> FakePage:
    return FakePage(cdp_session=cdp_session)
