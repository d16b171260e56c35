"""pagegather.audits.best_practices：控制台错误与 doctype。"""

from __future__ import annotations

from typing import Any, Dict, Mapping

from .audit import Audit, AuditMeta


class ErrorsInConsole(Audit):
    meta = AuditMeta(
        id="errors-in-console",
        title="No browser errors logged to the console",
        failure_title="Browser errors were logged to the console",
        description="Errors logged to the console indicate unresolved problems.",
        required_artifacts=("ConsoleMessages",),
        supported_modes=("timespan", "navigation"),
    )

    @classmethod
    def audit(cls, artifacts: Mapping[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        ignored = [p.lower() for p in (context.get("options") or {}).get("ignored_patterns", [])]
        errors = []
        for message in artifacts["ConsoleMessages"]:
            if message.get("level") != "error":
                continue
            text = (message.get("text") or "").lower()
            if any(p in text for p in ignored):
                continue
            errors.append(message)
        return {"score": 0 if errors else 1, "details": {"type": "table", "items": errors}}


class Doctype(Audit):
    meta = AuditMeta(
        id="doctype",
        title="Page has the HTML doctype",
        failure_title="Page lacks the HTML doctype, thus triggering quirks-mode",
        description="Specifying a doctype prevents the browser from switching to quirks-mode.",
        required_artifacts=("MainDocumentContent",),
        supported_modes=("navigation",),
    )

    @classmethod
    def audit(cls, artifacts: Mapping[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        content = (artifacts["MainDocumentContent"] or "").lstrip().lower()
        return {"score": 1 if content.startswith("<!doctype html") else 0}
