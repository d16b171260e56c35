"""pagegather.audits.full_page_screenshot：整页截图（报告附加信息，不计分）。"""

from __future__ import annotations

from typing import Any, Dict, Mapping

from .audit import Audit, AuditMeta, ScoringModes


class FullPageScreenshotAudit(Audit):
    meta = AuditMeta(
        id="full-page-screenshot",
        title="Full-page screenshot",
        description="A full-height screenshot of the final rendered page.",
        required_artifacts=("FullPageScreenshot",),
        score_display_mode=ScoringModes.INFORMATIVE,
        supported_modes=("snapshot", "timespan", "navigation"),
    )

    @classmethod
    def audit(cls, artifacts: Mapping[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        artifact = artifacts.get("FullPageScreenshot")
        if not artifact:
            return {"score": None, "details": None}
        return {"score": 1, "details": {"type": "full-page-screenshot", **artifact}}
