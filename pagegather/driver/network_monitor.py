"""
pagegather.driver.network_monitor
跟踪主框架导航与进行中的请求，用于判定网络安静与最终文档 URL。
"""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Set

from ..lib.url_utils import is_non_network_protocol


class NetworkMonitor:
    def __init__(self, session: Any) -> None:
        self._session = session
        self._enabled = False
        self._inflight: Dict[str, str] = {}
        self._main_frame_navigations: List[str] = []
        self._last_activity = time.monotonic()
        self._seen_request_ids: Set[str] = set()

    def _on_frame_navigated(self, event: Dict[str, Any]) -> None:
        frame = (event or {}).get("frame") or {}
        # 子框架带 parentId
        if frame.get("parentId"):
            return
        url = frame.get("url")
        if url:
            self._main_frame_navigations.append(url)

    def _on_request_will_be_sent(self, event: Dict[str, Any]) -> None:
        request_id = event.get("requestId")
        url = (event.get("request") or {}).get("url", "")
        if not request_id or is_non_network_protocol(url):
            return
        self._inflight[request_id] = url
        self._seen_request_ids.add(request_id)
        self._last_activity = time.monotonic()

    def _on_request_done(self, event: Dict[str, Any]) -> None:
        request_id = event.get("requestId")
        if request_id in self._inflight:
            del self._inflight[request_id]
            self._last_activity = time.monotonic()

    async def enable(self) -> None:
        if self._enabled:
            return
        self._enabled = True
        self._session.on("Page.frameNavigated", self._on_frame_navigated)
        self._session.on("Network.requestWillBeSent", self._on_request_will_be_sent)
        self._session.on("Network.loadingFinished", self._on_request_done)
        self._session.on("Network.loadingFailed", self._on_request_done)
        await self._session.send_command("Page.enable")
        await self._session.send_command("Network.enable")

    async def disable(self) -> None:
        if not self._enabled:
            return
        self._enabled = False
        self._session.off("Page.frameNavigated", self._on_frame_navigated)
        self._session.off("Network.requestWillBeSent", self._on_request_will_be_sent)
        self._session.off("Network.loadingFinished", self._on_request_done)
        self._session.off("Network.loadingFailed", self._on_request_done)
        self._inflight.clear()
        self._main_frame_navigations = []

    def get_navigation_urls(self) -> Dict[str, Optional[str]]:
        """首个与最后一个主框架导航 URL（分别对应 requested / main document）。"""
        if not self._main_frame_navigations:
            return {"requested_url": None, "main_document_url": None}
        return {
            "requested_url": self._main_frame_navigations[0],
            "main_document_url": self._main_frame_navigations[-1],
        }

    def inflight_count(self) -> int:
        return len(self._inflight)

    def is_idle(self) -> bool:
        return not self._inflight

    def is_2_idle(self) -> bool:
        return len(self._inflight) <= 2

    def quiet_for_ms(self) -> float:
        """自最后一次请求开始/结束以来经过的毫秒数。"""
        return (time.monotonic() - self._last_activity) * 1000.0
