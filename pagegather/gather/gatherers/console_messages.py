"""
pagegather.gather.gatherers.console_messages
收集 console API 调用、浏览器日志与未捕获异常。
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..base_gatherer import BaseGatherer, GathererMeta, TransitionalContext

# console API 的 type -> level
CONSOLE_API_LEVELS = {
    "warning": "warning",
    "error": "error",
    "assert": "error",
}


def _remote_object_to_string(obj: Dict[str, Any]) -> str:
    if "value" in obj:
        return str(obj["value"])
    if obj.get("unserializableValue"):
        return str(obj["unserializableValue"])
    return obj.get("description") or obj.get("type") or ""


def _first_frame(stack_trace: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    frames = (stack_trace or {}).get("callFrames") or []
    return frames[0] if frames else {}


class ConsoleMessages(BaseGatherer):
    meta = GathererMeta(supported_modes=("timespan", "navigation"))

    def __init__(self) -> None:
        self._entries: List[Dict[str, Any]] = []

    def _on_console_api_called(self, event: Dict[str, Any]) -> None:
        api_type = event.get("type") or "log"
        frame = _first_frame(event.get("stackTrace"))
        self._entries.append({
            "event_type": "consoleAPI",
            "source": "console.error" if api_type == "assert" else f"console.{api_type}",
            "level": CONSOLE_API_LEVELS.get(api_type, "info"),
            "text": " ".join(_remote_object_to_string(arg) for arg in event.get("args") or []),
            "url": frame.get("url"),
            "line_number": frame.get("lineNumber"),
            "column_number": frame.get("columnNumber"),
            "timestamp": event.get("timestamp"),
        })

    def _on_exception_thrown(self, event: Dict[str, Any]) -> None:
        details = event.get("exceptionDetails") or {}
        exception = details.get("exception") or {}
        text = exception.get("description") or details.get("text") or ""
        self._entries.append({
            "event_type": "exception",
            "source": "exception",
            "level": "error",
            "text": text,
            "url": details.get("url"),
            "line_number": details.get("lineNumber"),
            "column_number": details.get("columnNumber"),
            "timestamp": event.get("timestamp"),
        })

    def _on_log_entry(self, event: Dict[str, Any]) -> None:
        entry = event.get("entry") or {}
        # console API 的消息已经由 Runtime.consoleAPICalled 收到
        if entry.get("source") == "console-api":
            return
        self._entries.append({
            "event_type": "protocolLog",
            "source": entry.get("source"),
            "level": entry.get("level"),
            "text": entry.get("text") or "",
            "url": entry.get("url"),
            "line_number": entry.get("lineNumber"),
            "column_number": None,
            "timestamp": entry.get("timestamp"),
        })

    async def start_instrumentation(self, context: TransitionalContext) -> None:
        session = context.driver.default_session
        session.on("Log.entryAdded", self._on_log_entry)
        session.on("Runtime.consoleAPICalled", self._on_console_api_called)
        session.on("Runtime.exceptionThrown", self._on_exception_thrown)
        await session.send_command("Log.enable")
        await session.send_command("Runtime.enable")

    async def stop_instrumentation(self, context: TransitionalContext) -> None:
        session = context.driver.default_session
        session.off("Log.entryAdded", self._on_log_entry)
        session.off("Runtime.consoleAPICalled", self._on_console_api_called)
        session.off("Runtime.exceptionThrown", self._on_exception_thrown)
        await session.send_command("Log.disable")

    async def get_artifact(self, context: TransitionalContext) -> List[Dict[str, Any]]:
        return list(self._entries)
