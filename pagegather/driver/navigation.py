"""
pagegather.driver.navigation
执行一次页面导航并等待指定条件（navigated / load / fcp）。

requestor 为 URL 字符串时发送 Page.navigate；为可调用对象时由调用方
自行触发导航（例如点击链接），requested_url 从网络监视器回填。
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Union

from ..lib.errors import GatherError
from ..lib.url_utils import equal_with_exclusions
from .network_monitor import NetworkMonitor
from .wait_for_condition import (
    fcp_waiter,
    frame_navigated_waiter,
    load_event_waiter,
    wait_for_fully_loaded,
)

logger = logging.getLogger(__name__)

Requestor = Union[str, Callable[[], Awaitable[Any]]]

WARNING_TIMEOUT = "The page loaded too slowly to finish within the time limit. Results may be incomplete."
WARNING_REDIRECTED = (
    "The page may not be loading as expected because your test URL ({requested}) was "
    "redirected to {final}. Try testing the second URL directly."
)


@dataclass
class NavigationResult:
    requested_url: str
    main_document_url: str
    warnings: List[str] = field(default_factory=list)


def get_navigation_warnings(*, timed_out: bool, requested_url: str, main_document_url: str) -> List[str]:
    warnings: List[str] = []
    if timed_out:
        warnings.append(WARNING_TIMEOUT)
    if not equal_with_exclusions(requested_url, main_document_url):
        warnings.append(WARNING_REDIRECTED.format(requested=requested_url, final=main_document_url))
    return warnings


async def goto_url(
    driver: Any,
    requestor: Requestor,
    *,
    wait_until: Sequence[str] = ("navigated",),
    max_wait_for_fcp: int = 30000,
    max_wait_for_load: int = 45000,
    pause_after_fcp_ms: int = 0,
    pause_after_load_ms: int = 0,
    network_quiet_threshold_ms: int = 0,
    cpu_quiet_threshold_ms: int = 0,
) -> NavigationResult:
    if "fcp" in wait_until and "load" not in wait_until:
        raise ValueError("Cannot wait for FCP without waiting for page load")

    session = driver.default_session
    network_monitor = NetworkMonitor(session)
    await network_monitor.enable()

    await session.send_command("Page.enable")
    await session.send_command("Page.setLifecycleEventsEnabled", {"enabled": True})

    # 监听必须在触发导航之前注册
    waiters = []
    navigated = frame_navigated_waiter(session) if "navigated" in wait_until else None
    load = load_event_waiter(session) if "load" in wait_until else None
    fcp = fcp_waiter(session) if "fcp" in wait_until else None
    waiters.extend(w for w in (navigated, load, fcp) if w is not None)

    async def wait_for_conditions() -> bool:
        if navigated is not None:
            await navigated.wait()
        if load is None:
            return False
        result = await wait_for_fully_loaded(
            session,
            network_monitor,
            load,
            fcp=fcp,
            pause_after_fcp_ms=pause_after_fcp_ms,
            pause_after_load_ms=pause_after_load_ms,
            network_quiet_threshold_ms=network_quiet_threshold_ms,
            cpu_quiet_threshold_ms=cpu_quiet_threshold_ms,
            max_wait_for_fcp_ms=max_wait_for_fcp,
            max_wait_for_load_ms=max_wait_for_load,
        )
        return result["timed_out"]

    navigate_task: Optional[asyncio.Task] = None
    wait_task: Optional[asyncio.Task] = None
    try:
        if isinstance(requestor, str):
            # Page.navigate 可能要等到页面提交后才返回，不限时
            navigate_task = asyncio.ensure_future(
                session.send_command("Page.navigate", {"url": requestor}, timeout_ms=math.inf)
            )
        else:
            await requestor()

        wait_task = asyncio.ensure_future(wait_for_conditions())
        pending = [t for t in (navigate_task, wait_task) if t is not None]
        # Page.navigate 失败时不会再有导航事件，立即抛出
        await asyncio.wait(pending, return_when=asyncio.FIRST_EXCEPTION)
        if navigate_task is not None and navigate_task.done():
            navigate_task.result()
        timed_out = wait_task.result()
        if navigate_task is not None:
            await navigate_task
        urls = network_monitor.get_navigation_urls()
    finally:
        for task in (wait_task, navigate_task):
            if task is None:
                continue
            if not task.done():
                task.cancel()
            elif not task.cancelled():
                # 两个任务都失败时只抛出其一，另一个在这里取走
                task.exception()
        for waiter in waiters:
            waiter.dispose()
        await network_monitor.disable()

    if isinstance(requestor, str):
        requested_url = requestor
    else:
        requested_url = urls["requested_url"] or ""
        if not requested_url:
            raise GatherError(
                code="NO_NAVIGATION",
                message="No navigations detected when running user defined requestor.",
                stage="navigate",
            )
    main_document_url = urls["main_document_url"] or requested_url

    warnings = get_navigation_warnings(
        timed_out=timed_out, requested_url=requested_url, main_document_url=main_document_url
    )
    logger.info("navigated to %s", main_document_url)
    return NavigationResult(requested_url=requested_url, main_document_url=main_document_url, warnings=warnings)
