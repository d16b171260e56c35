"""
pagegather.driver.emulation
设备模拟与节流（屏幕、UA、网络与 CPU）。
"""

from __future__ import annotations

import math
from typing import Any

NO_THROTTLING_METRICS = {
    "latency": 0,
    "downloadThroughput": 0,
    "uploadThroughput": 0,
    "offline": False,
}

NO_CPU_THROTTLE_METRICS = {"rate": 1}


async def emulate(session: Any, settings: Any) -> None:
    screen = settings.screen_emulation
    if not screen.disabled:
        await session.send_command("Emulation.setDeviceMetricsOverride", {
            "mobile": screen.mobile,
            "width": screen.width,
            "height": screen.height,
            "deviceScaleFactor": screen.device_scale_factor,
        })
        await session.send_command("Emulation.setTouchEmulationEnabled", {"enabled": screen.mobile})

    if settings.emulated_user_agent:
        await session.send_command("Network.setUserAgentOverride", {
            "userAgent": settings.emulated_user_agent,
        })


async def throttle(session: Any, settings: Any) -> None:
    """只有 devtools 节流方式才真正在浏览器里施加节流。"""
    if settings.throttling_method != "devtools":
        await clear_throttling(session)
        return
    throttling = settings.throttling
    await session.send_command("Network.emulateNetworkConditions", {
        "latency": throttling.request_latency_ms,
        "downloadThroughput": math.floor(throttling.download_throughput_kbps * 1024 / 8),
        "uploadThroughput": math.floor(throttling.upload_throughput_kbps * 1024 / 8),
        "offline": False,
    })
    await session.send_command("Emulation.setCPUThrottlingRate", {
        "rate": throttling.cpu_slowdown_multiplier,
    })


async def clear_network_throttling(session: Any) -> None:
    await session.send_command("Network.emulateNetworkConditions", dict(NO_THROTTLING_METRICS))


async def clear_cpu_throttling(session: Any) -> None:
    await session.send_command("Emulation.setCPUThrottlingRate", dict(NO_CPU_THROTTLE_METRICS))


async def clear_throttling(session: Any) -> None:
    await clear_network_throttling(session)
    await clear_cpu_throttling(session)
