"""
pagegather.audits.accessibility
无障碍相关审计：颜色对比度、图片替代文本、Tab 顺序（手动）。
"""

from __future__ import annotations

from typing import Any, Dict, Mapping

from .audit import Audit, AuditMeta, ScoringModes


class ColorContrast(Audit):
    meta = AuditMeta(
        id="color-contrast",
        title="Background and foreground colors have a sufficient contrast ratio",
        failure_title="Background and foreground colors do not have a sufficient contrast ratio.",
        description="Low-contrast text is difficult or impossible for many users to read.",
        required_artifacts=("Accessibility",),
    )

    @classmethod
    def audit(cls, artifacts: Mapping[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        violations = artifacts["Accessibility"].get("violations") or []
        failing = [v for v in violations if v.get("id") == cls.meta.id]
        nodes = [n for v in failing for n in v.get("nodes", [])]
        return {
            "score": 0 if nodes else 1,
            "details": {"type": "table", "items": nodes},
        }


class ImageAlt(Audit):
    meta = AuditMeta(
        id="image-alt",
        title="Image elements have `[alt]` attributes",
        failure_title="Image elements do not have `[alt]` attributes",
        description="Informative elements should aim for short, descriptive alternate text.",
        required_artifacts=("ImageElements",),
    )

    @classmethod
    def audit(cls, artifacts: Mapping[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        images = [img for img in artifacts["ImageElements"] if not img.get("is_css")]
        missing = [img for img in images if img.get("alt") is None]
        return {
            "score": 0 if missing else 1,
            "details": {"type": "table", "items": [{"src": img.get("src")} for img in missing]},
        }


class LogicalTabOrder(Audit):
    meta = AuditMeta(
        id="logical-tab-order",
        title="The page has a logical tab order",
        description="Tabbing through the page follows the visual layout.",
        required_artifacts=(),
        score_display_mode=ScoringModes.MANUAL,
    )

    @classmethod
    def audit(cls, artifacts: Mapping[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        return {"score": 0}
