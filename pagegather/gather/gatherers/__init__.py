"""内置采集器；按 id 注册，配置中的 gatherer 字段可直接引用这些 id。"""

from __future__ import annotations

from typing import Dict

from .accessibility import Accessibility
from .console_messages import ConsoleMessages
from .devtools_log import DevtoolsLog
from .font_size import FontSize
from .full_page_screenshot import FullPageScreenshot
from .image_elements import ImageElements
from .main_document_content import MainDocumentContent
from .meta_elements import MetaElements
from .robots_txt import RobotsTxt

CORE_GATHERERS: Dict[str, type] = {
    "accessibility": Accessibility,
    "console-messages": ConsoleMessages,
    "devtools-log": DevtoolsLog,
    "seo/font-size": FontSize,
    "full-page-screenshot": FullPageScreenshot,
    "image-elements": ImageElements,
    "main-document-content": MainDocumentContent,
    "meta-elements": MetaElements,
    "seo/robots-txt": RobotsTxt,
}

__all__ = [
    "CORE_GATHERERS",
    "Accessibility",
    "ConsoleMessages",
    "DevtoolsLog",
    "FontSize",
    "FullPageScreenshot",
    "ImageElements",
    "MainDocumentContent",
    "MetaElements",
    "RobotsTxt",
]
