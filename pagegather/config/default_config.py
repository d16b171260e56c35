"""
pagegather.config.default_config
内置默认配置：产物、导航、审计、分类与分组。

产物顺序即依赖解析顺序：DevtoolsLog 必须排在 MainDocumentContent 之前；
整页截图放在最后，尽量不干扰其他采集器。
"""

from __future__ import annotations

from typing import Any, Dict

DEFAULT_CONFIG: Dict[str, Any] = {
    "settings": {},
    "artifacts": [
        {"id": "DevtoolsLog", "gatherer": "devtools-log"},
        {"id": "Accessibility", "gatherer": "accessibility"},
        {"id": "ConsoleMessages", "gatherer": "console-messages"},
        {"id": "FontSize", "gatherer": "seo/font-size"},
        {"id": "ImageElements", "gatherer": "image-elements"},
        {"id": "MainDocumentContent", "gatherer": "main-document-content"},
        {"id": "MetaElements", "gatherer": "meta-elements"},
        {"id": "RobotsTxt", "gatherer": "seo/robots-txt"},
        {"id": "FullPageScreenshot", "gatherer": "full-page-screenshot"},
    ],
    "navigations": [
        {
            "id": "default",
            "pause_after_fcp_ms": 1000,
            "pause_after_load_ms": 1000,
            "network_quiet_threshold_ms": 1000,
            "cpu_quiet_threshold_ms": 1000,
            "load_failure_mode": "fatal",
            "artifacts": [
                "DevtoolsLog",
                "Accessibility",
                "ConsoleMessages",
                "FontSize",
                "ImageElements",
                "MainDocumentContent",
                "MetaElements",
                "RobotsTxt",
                "FullPageScreenshot",
            ],
        },
    ],
    "audits": [
        "full-page-screenshot",
        "color-contrast",
        "image-alt",
        "logical-tab-order",
        "meta-description",
        "viewport",
        "font-size",
        "robots-txt",
        "structured-data",
        "errors-in-console",
        "doctype",
    ],
    "groups": {
        "a11y-color-contrast": {
            "title": "Contrast",
            "description": "These are opportunities to improve the legibility of your content.",
        },
        "a11y-names-labels": {
            "title": "Names and labels",
            "description": "These are opportunities to improve the semantics of the controls in your application.",
        },
        "seo-mobile": {
            "title": "Mobile Friendly",
            "description": "Make sure your pages are mobile friendly so users don't have to pinch or zoom.",
        },
        "seo-content": {
            "title": "Content Best Practices",
            "description": "Format your HTML in a way that enables crawlers to better understand your app's content.",
        },
        "seo-crawl": {
            "title": "Crawling and Indexing",
            "description": "To appear in search results, crawlers need access to your app.",
        },
        "best-practices-general": {"title": "General", "description": ""},
        "best-practices-browser-compat": {"title": "Browser Compatibility", "description": ""},
    },
    "categories": {
        "accessibility": {
            "title": "Accessibility",
            "description": "These checks highlight opportunities to improve the accessibility of your web app.",
            "manual_description": "These items address areas which an automated testing tool cannot cover.",
            "supported_modes": ["navigation", "snapshot"],
            "audit_refs": [
                {"id": "color-contrast", "weight": 7, "group": "a11y-color-contrast"},
                {"id": "image-alt", "weight": 10, "group": "a11y-names-labels"},
                {"id": "logical-tab-order", "weight": 0},
            ],
        },
        "best-practices": {
            "title": "Best Practices",
            "supported_modes": ["navigation", "timespan", "snapshot"],
            "audit_refs": [
                {"id": "errors-in-console", "weight": 1, "group": "best-practices-general"},
                {"id": "doctype", "weight": 1, "group": "best-practices-browser-compat"},
            ],
        },
        "seo": {
            "title": "SEO",
            "description": "These checks ensure that your page is optimized for search engine results ranking.",
            "manual_description": "Run these additional validators on your site to check additional SEO best practices.",
            "supported_modes": ["navigation", "snapshot"],
            "audit_refs": [
                {"id": "viewport", "weight": 1, "group": "seo-mobile"},
                {"id": "meta-description", "weight": 1, "group": "seo-content"},
                {"id": "robots-txt", "weight": 1, "group": "seo-crawl"},
                {"id": "font-size", "weight": 1, "group": "seo-mobile"},
                {"id": "structured-data", "weight": 0},
            ],
        },
    },
}
