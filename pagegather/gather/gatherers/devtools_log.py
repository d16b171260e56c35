"""
pagegather.gather.gatherers.devtools_log
记录导航期间的协议事件（Page/Network/Target/Runtime），
供网络记录重建与页面加载错误判定使用。
"""

from __future__ import annotations

import re
from typing import Any, Dict, List

from ...driver.session import PROTOCOL_EVENTS
from ..base_gatherer import BaseGatherer, DependencySymbol, GathererMeta, TransitionalContext

RECORDED_DOMAINS = re.compile(r"^(Page|Network|Target|Runtime)\.")
RECORDED_EVENTS = tuple(e for e in PROTOCOL_EVENTS if RECORDED_DOMAINS.match(e))


class DevtoolsMessageLog:
    def __init__(self, pattern: "re.Pattern[str]" = RECORDED_DOMAINS) -> None:
        self._pattern = pattern
        self._messages: List[Dict[str, Any]] = []
        self._is_recording = False

    @property
    def messages(self) -> List[Dict[str, Any]]:
        return self._messages

    def reset(self) -> None:
        self._messages = []

    def begin_recording(self) -> None:
        self._is_recording = True

    def end_recording(self) -> None:
        self._is_recording = False

    def record(self, message: Dict[str, Any]) -> None:
        if not self._is_recording or not self._pattern.match(message.get("method") or ""):
            return
        self._messages.append(message)


class DevtoolsLog(BaseGatherer):
    symbol = DependencySymbol("DevtoolsLog")

    meta = GathererMeta(supported_modes=("timespan", "navigation"), symbol=symbol)

    def __init__(self) -> None:
        self._message_log = DevtoolsMessageLog()

    def _on_protocol_message(self, message: Dict[str, Any]) -> None:
        self._message_log.record(message)

    async def start_sensitive_instrumentation(self, context: TransitionalContext) -> None:
        self._message_log.reset()
        self._message_log.begin_recording()
        session = context.driver.default_session
        session.add_protocol_message_listener(self._on_protocol_message, RECORDED_EVENTS)
        # 保证至少能收到 Page 域事件
        await session.send_command("Page.enable")

    async def stop_sensitive_instrumentation(self, context: TransitionalContext) -> None:
        self._message_log.end_recording()
        context.driver.default_session.remove_protocol_message_listener(self._on_protocol_message)

    async def get_artifact(self, context: TransitionalContext) -> List[Dict[str, Any]]:
        return list(self._message_log.messages)
