"""
pagegather.lib.url_utils
URL 相关的小工具：校验、去片段比较、取 origin。
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import urldefrag, urlparse

from .errors import GatherError

NON_NETWORK_SCHEMES = ("blob", "data", "intent", "file", "filesystem", "chrome-extension")


def validate_url(url: str) -> None:
    """校验 URL（仅允许 http/https），非法则抛 GatherError。"""
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise GatherError.of("INVALID_URL", stage="init", url=url)


def is_valid_url(url: str) -> bool:
    try:
        validate_url(url)
    except GatherError:
        return False
    return True


def get_origin(url: str) -> Optional[str]:
    """返回 scheme://host[:port]；无法解析时返回 None。"""
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}"


def _normalize(url: str) -> str:
    base, _ = urldefrag(url)
    parsed = urlparse(base)
    # 根路径的尾部斜杠不影响比较
    if parsed.path in ("", "/") and not parsed.query:
        return f"{parsed.scheme}://{parsed.netloc}/" if parsed.netloc else base
    return base


def equal_with_exclusions(url_a: str, url_b: str) -> bool:
    """忽略 fragment 比较两个 URL。"""
    if not url_a or not url_b:
        return False
    return _normalize(url_a) == _normalize(url_b)


def is_non_network_protocol(url: str) -> bool:
    scheme = urlparse(url).scheme
    return scheme in NON_NETWORK_SCHEMES
