"""
pagegather.lib.errors
异常类型与错误码目录。

GatherError 是采集流程的统一错误封装（code/stage/message），
ConfigError 专用于配置解析阶段的致命错误。页面加载相关的错误码
附带一段面向用户的 friendly message，用于写入 run warnings。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


# 错误码 -> 面向用户的说明（可含 {placeholder}，由 data 填充）
ERRORS: Dict[str, str] = {
    "PROTOCOL_TIMEOUT": (
        "Waiting for DevTools protocol response has exceeded the allotted time. "
        "(Method: {protocol_method})"
    ),
    "NO_FCP": (
        "The page did not paint any content. Please ensure you keep the browser window "
        "in the foreground during the load and try again."
    ),
    "PAGE_HUNG": (
        "The page stopped responding after the navigation. The page may be running a "
        "long script or the renderer may be hung."
    ),
    "NO_DOCUMENT_REQUEST": "The page could not be loaded: no document request was recorded.",
    "FAILED_DOCUMENT_REQUEST": (
        "The page could not be loaded reliably. Make sure you are testing the correct URL "
        "and that the server is properly responding to all requests. (Details: {error_details})"
    ),
    "ERRORED_DOCUMENT_REQUEST": (
        "The page could not be loaded reliably. Make sure you are testing the correct URL "
        "and that the server is properly responding to all requests. (Status code: {status_code})"
    ),
    "DNS_FAILURE": "DNS servers could not resolve the provided domain.",
    "CHROME_INTERSTITIAL_ERROR": (
        "Chrome prevented page load with an interstitial. Make sure you are testing the "
        "correct URL and that the server is properly responding to all requests."
    ),
    "INSECURE_DOCUMENT_REQUEST": (
        "The URL you have provided does not have a valid security certificate. {security_messages}"
    ),
    "NOT_HTML": "The page provided is not HTML (served as MIME type {mime_type}).",
    "NAVIGATION_TIMEOUT": "The page did not finish loading within the allotted time.",
    "NO_NAVIGATION": "No navigations detected when running user defined requestor.",
    "INVALID_CONFIG": "The configuration is invalid.",
    "INVALID_URL": "The URL provided is invalid: {url}",
}

# 这些错误码代表页面本身没能加载成功
PAGE_LOAD_ERROR_CODES = frozenset({
    "NO_FCP",
    "PAGE_HUNG",
    "NO_DOCUMENT_REQUEST",
    "FAILED_DOCUMENT_REQUEST",
    "ERRORED_DOCUMENT_REQUEST",
    "DNS_FAILURE",
    "CHROME_INTERSTITIAL_ERROR",
    "INSECURE_DOCUMENT_REQUEST",
    "NOT_HTML",
})


class _SafeDict(dict):
    def __missing__(self, key: str) -> str:
        return ""


@dataclass
class GatherError(Exception):
    """采集错误。

    code: 错误码（如 PROTOCOL_TIMEOUT/NO_FCP 等）
    message: 开发者可读的错误信息，缺省为错误码本身
    stage: 出错阶段（config/setup/navigate/collect/...）
    data: 附加数据，用于填充 friendly message
    original: 可选，原始异常对象
    """

    code: str
    message: str = ""
    stage: str = "gather"
    data: Dict[str, Any] = field(default_factory=dict)
    original: Optional[BaseException] = None

    def __post_init__(self) -> None:
        if not self.message:
            self.message = self.code
        Exception.__init__(self, self.message)

    @classmethod
    def of(cls, code: str, *, stage: str = "gather", **data: Any) -> "GatherError":
        """按错误码构造，data 中的键用于 friendly message 的占位符。"""
        return cls(code=code, message=code, stage=stage, data=dict(data))

    @property
    def friendly_message(self) -> str:
        template = ERRORS.get(self.code)
        if not template:
            return self.message
        return template.format_map(_SafeDict(self.data)).strip()

    @property
    def is_page_load_error(self) -> bool:
        return self.code in PAGE_LOAD_ERROR_CODES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "friendly_message": self.friendly_message,
            "data": dict(self.data),
        }

    def __str__(self) -> str:  # pragma: no cover
        if self.message == self.code:
            return f"[{self.code}@{self.stage}]"
        return f"[{self.code}@{self.stage}] {self.message}"

    __hash__ = Exception.__hash__


class ConfigError(GatherError):
    """配置解析阶段的致命错误（在任何浏览器交互之前抛出）。"""

    def __init__(self, message: str) -> None:
        super().__init__(code="INVALID_CONFIG", message=message, stage="config")
