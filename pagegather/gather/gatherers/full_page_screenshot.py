"""
pagegather.gather.gatherers.full_page_screenshot
整页截图：临时把视口高度调到页面全高后截图，再恢复设备模拟。
图片尺寸通过 Pillow 解码截图数据得到。
"""

from __future__ import annotations

import base64
import io
import logging
from typing import Any, Dict

from PIL import Image

from ...driver import emulation
from ..base_gatherer import BaseGatherer, GathererMeta, TransitionalContext

logger = logging.getLogger(__name__)

# 超过这个高度时浏览器的截图会出错
MAX_WEBP_SIZE = 16383
SCREENSHOT_QUALITY = 30


def decode_screenshot_size(data: str) -> Dict[str, int]:
    with Image.open(io.BytesIO(base64.b64decode(data))) as image:
        width, height = image.size
    return {"width": width, "height": height}


class FullPageScreenshot(BaseGatherer):
    meta = GathererMeta(supported_modes=("snapshot", "timespan", "navigation"))

    async def _resize_to_full_page(self, context: TransitionalContext) -> None:
        session = context.driver.default_session
        metrics = await session.send_command("Page.getLayoutMetrics")
        content = metrics.get("cssContentSize") or metrics.get("contentSize") or {}
        viewport = metrics.get("cssLayoutViewport") or metrics.get("layoutViewport") or {}
        screen = context.settings.screen_emulation if context.settings is not None else None

        height = min(int(content.get("height") or viewport.get("clientHeight") or 0), MAX_WEBP_SIZE)
        width = int(viewport.get("clientWidth") or (screen.width if screen else 0))
        await session.send_command("Emulation.setDeviceMetricsOverride", {
            "mobile": bool(screen.mobile) if screen else False,
            "width": width,
            "height": height,
            "deviceScaleFactor": 1,
        })

    async def _restore_emulation(self, context: TransitionalContext) -> None:
        session = context.driver.default_session
        settings = context.settings
        if settings is None or settings.screen_emulation.disabled:
            await session.send_command("Emulation.clearDeviceMetricsOverride")
            return
        await emulation.emulate(session, settings)

    async def get_artifact(self, context: TransitionalContext) -> Dict[str, Any]:
        session = context.driver.default_session
        try:
            await self._resize_to_full_page(context)
            result = await session.send_command("Page.captureScreenshot", {
                "format": "jpeg",
                "quality": SCREENSHOT_QUALITY,
                "captureBeyondViewport": True,
            })
        finally:
            await self._restore_emulation(context)

        data = result["data"]
        size = decode_screenshot_size(data)
        logger.debug("full page screenshot %sx%s", size["width"], size["height"])
        return {
            "screenshot": {
                "data": f"data:image/jpeg;base64,{data}",
                "width": size["width"],
                "height": size["height"],
            },
            "nodes": {},
        }
