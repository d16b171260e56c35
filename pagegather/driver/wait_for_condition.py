"""
pagegather.driver.wait_for_condition
导航期间的等待条件：主框架导航、load 事件、FCP、网络安静与 CPU 空闲。

事件类等待用 EventWaiter 表示：构造时立即注册监听（必须早于触发导航），
dispose() 时移除监听。
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Optional

from ..lib.errors import GatherError
from .network_monitor import NetworkMonitor

logger = logging.getLogger(__name__)

POLL_INTERVAL_S = 0.05
PAGE_HUNG_TIMEOUT_MS = 1000

# 在页面中登记长任务观察者，返回距最后一个长任务结束的毫秒数
CHECK_TIME_SINCE_LAST_LONG_TASK = """(() => {
  if (!window.____lastLongTask) {
    window.____lastLongTask = performance.now();
    if (window.PerformanceObserver && PerformanceObserver.supportedEntryTypes &&
        PerformanceObserver.supportedEntryTypes.includes('longtask')) {
      const observer = new PerformanceObserver(list => {
        for (const entry of list.getEntries()) {
          const end = entry.startTime + entry.duration;
          if (end > window.____lastLongTask) window.____lastLongTask = end;
        }
      });
      observer.observe({type: 'longtask', buffered: true});
    }
  }
  return performance.now() - window.____lastLongTask;
})()"""


class EventWaiter:
    def __init__(
        self,
        session: Any,
        event_name: str,
        predicate: Optional[Callable[[Any], bool]] = None,
    ) -> None:
        self._session = session
        self._event_name = event_name
        self._predicate = predicate
        self._future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._disposed = False
        session.on(event_name, self._listener)

    def _listener(self, event: Any = None) -> None:
        if self._future.done():
            return
        if self._predicate is not None and not self._predicate(event):
            return
        self._future.set_result(event)

    def done(self) -> bool:
        return self._future.done()

    async def wait(self) -> Any:
        # shield：外层超时取消时保留已注册的结果
        return await asyncio.shield(self._future)

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._session.off(self._event_name, self._listener)
        if not self._future.done():
            self._future.cancel()


def frame_navigated_waiter(session: Any) -> EventWaiter:
    return EventWaiter(
        session,
        "Page.frameNavigated",
        lambda e: not ((e or {}).get("frame") or {}).get("parentId"),
    )


def load_event_waiter(session: Any) -> EventWaiter:
    return EventWaiter(session, "Page.loadEventFired")


def fcp_waiter(session: Any) -> EventWaiter:
    return EventWaiter(
        session,
        "Page.lifecycleEvent",
        lambda e: (e or {}).get("name") == "firstContentfulPaint",
    )


async def wait_for_fcp(waiter: EventWaiter, pause_after_fcp_ms: int, max_wait_for_fcp_ms: float) -> None:
    """等待首次内容绘制；超时抛 NO_FCP。"""
    try:
        await asyncio.wait_for(waiter.wait(), max(0.0, max_wait_for_fcp_ms) / 1000.0)
    except asyncio.TimeoutError:
        raise GatherError.of("NO_FCP", stage="navigate") from None
    if pause_after_fcp_ms > 0:
        await asyncio.sleep(pause_after_fcp_ms / 1000.0)


async def wait_for_network_idle(network_monitor: NetworkMonitor, quiet_threshold_ms: int) -> None:
    while True:
        if network_monitor.is_idle() and network_monitor.quiet_for_ms() >= quiet_threshold_ms:
            return
        await asyncio.sleep(POLL_INTERVAL_S)


async def wait_for_cpu_idle(session: Any, quiet_threshold_ms: int) -> None:
    if quiet_threshold_ms <= 0:
        return
    while True:
        response = await session.send_command("Runtime.evaluate", {
            "expression": CHECK_TIME_SINCE_LAST_LONG_TASK,
            "returnByValue": True,
        })
        since_last_ms = ((response or {}).get("result") or {}).get("value") or 0
        if since_last_ms >= quiet_threshold_ms:
            return
        await asyncio.sleep(max(POLL_INTERVAL_S, (quiet_threshold_ms - since_last_ms) / 1000.0))


async def is_page_hung(session: Any) -> bool:
    try:
        await session.send_command(
            "Runtime.evaluate",
            {"expression": '"ping"', "returnByValue": True, "timeout": PAGE_HUNG_TIMEOUT_MS},
            timeout_ms=PAGE_HUNG_TIMEOUT_MS,
        )
        return False
    except GatherError:
        return True


async def wait_for_fully_loaded(
    session: Any,
    network_monitor: NetworkMonitor,
    load_waiter: EventWaiter,
    *,
    fcp: Optional[EventWaiter] = None,
    pause_after_fcp_ms: int = 0,
    pause_after_load_ms: int = 0,
    network_quiet_threshold_ms: int = 0,
    cpu_quiet_threshold_ms: int = 0,
    max_wait_for_fcp_ms: int = 30000,
    max_wait_for_load_ms: int = 45000,
) -> Dict[str, bool]:
    """等待 FCP（可选）、load、网络安静、CPU 空闲；总时长超过 max_wait_for_load_ms 记为超时。

    FCP 超时抛 NO_FCP；load 超时后若页面已无响应则抛 PAGE_HUNG。
    """
    started = time.monotonic()
    if fcp is not None:
        await wait_for_fcp(fcp, pause_after_fcp_ms, min(max_wait_for_fcp_ms, max_wait_for_load_ms))

    async def _load() -> None:
        await load_waiter.wait()
        if pause_after_load_ms > 0:
            await asyncio.sleep(pause_after_load_ms / 1000.0)
        await wait_for_network_idle(network_monitor, network_quiet_threshold_ms)
        await wait_for_cpu_idle(session, cpu_quiet_threshold_ms)

    remaining_s = max(0.0, max_wait_for_load_ms / 1000.0 - (time.monotonic() - started))
    try:
        await asyncio.wait_for(_load(), remaining_s)
        return {"timed_out": False}
    except asyncio.TimeoutError:
        logger.warning("page load timed out after %sms", max_wait_for_load_ms)

    if await is_page_hung(session):
        raise GatherError.of("PAGE_HUNG", stage="navigate")
    return {"timed_out": True}
