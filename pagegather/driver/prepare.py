"""
pagegather.driver.prepare
为不同采集模式准备目标页面：设备模拟、对话框自动关闭、原生对象缓存、
节流与网络设置、导航前的存储重置。
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from . import emulation, storage

logger = logging.getLogger(__name__)

# simulate 节流下把 requestIdleCallback 的空闲时长按 CPU 降速倍率缩短
SHIM_REQUEST_IDLE_CALLBACK = """(cpuSlowdownMultiplier) => {
  const safetyAllowanceMs = 10;
  const maxExecutionTimeMs = Math.floor(40 / cpuSlowdownMultiplier) - safetyAllowanceMs;
  const nativeRequestIdleCallback = window.requestIdleCallback;
  window.requestIdleCallback = (cb, options) => {
    const cbWrap = (deadline) => {
      const start = Date.now();
      deadline.__timeRemaining = deadline.timeRemaining;
      deadline.timeRemaining = () => {
        const timeRemaining = deadline.__timeRemaining();
        return Math.min(timeRemaining, Math.max(0, maxExecutionTimeMs - (Date.now() - start)));
      };
      deadline.timeRemaining.toString = () => 'function timeRemaining() { [native code] }';
      cb(deadline);
    };
    return nativeRequestIdleCallback(cbWrap, options);
  };
  window.requestIdleCallback.toString = () => 'function requestIdleCallback() { [native code] }';
}"""


async def enable_async_stacks(session: Any) -> None:
    await session.send_command("Debugger.enable")
    await session.send_command("Debugger.setSkipAllPauses", {"skip": True})
    await session.send_command("Debugger.setAsyncCallStackDepth", {"maxDepth": 8})


async def dismiss_javascript_dialogs(session: Any) -> None:
    """自动接受 alert/confirm 等对话框，避免页面卡住。"""

    def on_dialog(event: Dict[str, Any]) -> None:
        logger.warning("JavaScript dialog shown (%s), dismissing", (event or {}).get("type"))
        asyncio.ensure_future(
            session.send_command("Page.handleJavaScriptDialog", {"accept": True, "promptText": "pagegather prompt response"})
        )

    session.on("Page.javascriptDialogOpening", on_dialog)
    await session.send_command("Page.enable")


async def shim_request_idle_callback_on_new_document(driver: Any, settings: Any) -> None:
    await driver.execution_context.evaluate_on_new_document(
        SHIM_REQUEST_IDLE_CALLBACK, args=[settings.throttling.cpu_slowdown_multiplier]
    )


async def prepare_throttling_and_network(
    session: Any,
    settings: Any,
    *,
    disable_throttling: bool = False,
    blocked_url_patterns: Optional[Sequence[str]] = None,
) -> None:
    await session.send_command("Network.enable")

    if disable_throttling:
        await emulation.clear_throttling(session)
    else:
        await emulation.throttle(session, settings)

    # 导航级的屏蔽规则在前，设置级的在后
    blocked_urls = list(blocked_url_patterns or []) + list(settings.blocked_url_patterns or [])
    await session.send_command("Network.setBlockedURLs", {"urls": blocked_urls})

    if settings.extra_headers:
        await session.send_command("Network.setExtraHTTPHeaders", {"headers": dict(settings.extra_headers)})


async def prepare_device_emulation(driver: Any, settings: Any) -> None:
    await emulation.emulate(driver.default_session, settings)


async def prepare_target_for_timespan_mode(driver: Any, settings: Any) -> None:
    await prepare_device_emulation(driver, settings)
    await prepare_throttling_and_network(driver.default_session, settings)
    await dismiss_javascript_dialogs(driver.default_session)


async def prepare_target_for_navigation_mode(driver: Any, settings: Any) -> None:
    await prepare_device_emulation(driver, settings)
    await dismiss_javascript_dialogs(driver.default_session)
    await driver.execution_context.cache_natives_on_new_document()
    if settings.throttling_method == "simulate":
        await shim_request_idle_callback_on_new_document(driver, settings)


async def reset_storage_for_url(session: Any, url: str) -> List[str]:
    warnings = await storage.clear_data_for_origin(session, url)
    warnings.extend(await storage.clear_browser_caches(session))
    return warnings


async def prepare_target_for_individual_navigation(
    session: Any,
    settings: Any,
    navigation: Dict[str, Any],
) -> Dict[str, List[str]]:
    """单次导航前的准备；navigation 含 requestor/disable_storage_reset/disable_throttling/blocked_url_patterns。"""
    warnings: List[str] = []
    requestor = navigation.get("requestor")

    should_reset_storage = (
        not settings.disable_storage_reset and not navigation.get("disable_storage_reset")
    )
    if should_reset_storage and isinstance(requestor, str):
        warning = await storage.get_important_storage_warning(session, requestor)
        if warning:
            warnings.append(warning)
        warnings.extend(await reset_storage_for_url(session, requestor))

    await prepare_throttling_and_network(
        session,
        settings,
        disable_throttling=bool(navigation.get("disable_throttling")),
        blocked_url_patterns=navigation.get("blocked_url_patterns"),
    )
    return {"warnings": warnings}
