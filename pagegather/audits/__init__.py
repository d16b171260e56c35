"""内置审计；按 meta.id 注册，供配置以字符串 id 引用。"""

from __future__ import annotations

from typing import Dict

from .accessibility import ColorContrast, ImageAlt, LogicalTabOrder
from .audit import Audit, AuditMeta, ScoringModes, run_audits
from .best_practices import Doctype, ErrorsInConsole
from .full_page_screenshot import FullPageScreenshotAudit
from .seo import FontSizeAudit, MetaDescription, RobotsTxtAudit, StructuredData, Viewport

CORE_AUDITS: Dict[str, type] = {
    impl.meta.id: impl
    for impl in (
        FullPageScreenshotAudit,
        ColorContrast,
        ImageAlt,
        LogicalTabOrder,
        MetaDescription,
        Viewport,
        FontSizeAudit,
        RobotsTxtAudit,
        StructuredData,
        ErrorsInConsole,
        Doctype,
    )
}

__all__ = ["Audit", "AuditMeta", "ScoringModes", "CORE_AUDITS", "run_audits"]
