"""
pagegather.audits.seo
SEO 相关审计。
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional

from .audit import Audit, AuditMeta, ScoringModes

MINIMAL_LEGIBLE_FONT_SIZE_PX = 12
MINIMAL_PERCENTAGE_OF_LEGIBLE_TEXT = 60

ROBOTS_DIRECTIVES = frozenset({
    "user-agent", "disallow", "allow", "sitemap", "crawl-delay", "clean-param",
    "host", "request-rate", "visit-time", "noindex",
})


def _find_meta(meta_elements: List[Dict[str, Any]], name: str) -> Optional[Dict[str, Any]]:
    for meta in meta_elements:
        if (meta.get("name") or "").lower() == name:
            return meta
    return None


class MetaDescription(Audit):
    meta = AuditMeta(
        id="meta-description",
        title="Document has a meta description",
        failure_title="Document does not have a meta description",
        description="Meta descriptions may be included in search results to concisely summarize page content.",
        required_artifacts=("MetaElements",),
    )

    @classmethod
    def audit(cls, artifacts: Mapping[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        meta = _find_meta(artifacts["MetaElements"], "description")
        if meta is None:
            return {"score": 0}
        content = (meta.get("content") or "").strip()
        return {"score": 1 if content else 0}


def parse_viewport(content: str) -> Dict[str, str]:
    props: Dict[str, str] = {}
    for part in re.split(r"[,;]", content or ""):
        if "=" in part:
            key, value = part.split("=", 1)
            props[key.strip().lower()] = value.strip().lower()
    return props


def has_mobile_viewport(meta_elements: List[Dict[str, Any]]) -> bool:
    meta = _find_meta(meta_elements, "viewport")
    if meta is None:
        return False
    props = parse_viewport(meta.get("content") or "")
    return "width" in props or "initial-scale" in props


class Viewport(Audit):
    meta = AuditMeta(
        id="viewport",
        title="Has a `<meta name=\"viewport\">` tag with `width` or `initial-scale`",
        failure_title="Does not have a `<meta name=\"viewport\">` tag with `width` or `initial-scale`",
        description="A viewport meta tag optimizes the app for mobile screen sizes.",
        required_artifacts=("MetaElements",),
    )

    @classmethod
    def audit(cls, artifacts: Mapping[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        return {"score": 1 if has_mobile_viewport(artifacts["MetaElements"]) else 0}


class FontSizeAudit(Audit):
    meta = AuditMeta(
        id="font-size",
        title="Document uses legible font sizes",
        failure_title="Document doesn't use legible font sizes",
        description="Font sizes less than 12px are too small to be legible on mobile devices.",
        required_artifacts=("FontSize", "MetaElements"),
    )

    @classmethod
    def audit(cls, artifacts: Mapping[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        if not has_mobile_viewport(artifacts["MetaElements"]):
            return {"score": 0, "details": {"explanation": "Text is illegible because there's no viewport meta tag."}}
        font_size = artifacts["FontSize"]
        total = font_size.get("total_text_length") or 0
        failing = font_size.get("analyzed_failing_text_length") or 0
        legible_pct = 100.0 if total == 0 else (total - failing) / total * 100.0
        return {
            "score": 1 if legible_pct >= MINIMAL_PERCENTAGE_OF_LEGIBLE_TEXT else 0,
            "details": {
                "type": "table",
                "legible_percentage": round(legible_pct, 2),
                "items": font_size.get("failing") or [],
            },
        }


def validate_robots(content: str) -> List[Dict[str, Any]]:
    errors = []
    for index, raw in enumerate(content.splitlines(), start=1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        if ":" not in line:
            errors.append({"line": index, "content": raw, "message": "Syntax not understood"})
            continue
        directive = line.split(":", 1)[0].strip().lower()
        if directive not in ROBOTS_DIRECTIVES:
            errors.append({"line": index, "content": raw, "message": "Unknown directive"})
    return errors


class RobotsTxtAudit(Audit):
    meta = AuditMeta(
        id="robots-txt",
        title="robots.txt is valid",
        failure_title="robots.txt is not valid",
        description="If your robots.txt file is malformed, crawlers may not be able to understand it.",
        required_artifacts=("RobotsTxt",),
    )

    @classmethod
    def audit(cls, artifacts: Mapping[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        robots = artifacts["RobotsTxt"]
        status = robots.get("status")
        content = robots.get("content")
        if status is None:
            return {"score": None, "details": {"explanation": "robots.txt download failed"}}
        if status >= 500:
            return {"score": 0, "details": {"explanation": f"Request for robots.txt returned HTTP status: {status}"}}
        if status >= 400 or not content:
            return {"score": 1, "details": None}
        errors = validate_robots(content)
        return {"score": 0 if errors else 1, "details": {"type": "table", "items": errors}}


class StructuredData(Audit):
    meta = AuditMeta(
        id="structured-data",
        title="Structured data is valid",
        description="Run the Structured Data Testing Tool and the Structured Data Linter to validate structured data.",
        required_artifacts=(),
        score_display_mode=ScoringModes.MANUAL,
    )

    @classmethod
    def audit(cls, artifacts: Mapping[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        return {"score": 0}
