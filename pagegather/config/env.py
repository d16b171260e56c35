from __future__ import annotations

"""
pagegather.config.env

从环境变量读取设置覆盖项（PAGEGATHER_*），供 CLI 与脚本调用时使用。
.env 由 python-dotenv 加载，不覆盖已经存在于 os.environ 的变量：
- PAGEGATHER_ENV_FILE 指定路径优先；
- 其次是 CWD/.env。
"""

import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv


def _load_dotenv_if_needed(env_file: Optional[str] = None) -> None:
    path = env_file or os.getenv("PAGEGATHER_ENV_FILE", "").strip()
    if path:
        load_dotenv(path, override=False)
    load_dotenv(os.path.join(os.getcwd(), ".env"), override=False)


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _as_list(value: str) -> list:
    return [s.strip() for s in value.split(",") if s.strip()]


# 环境变量名 -> (设置键, 转换函数)
_ENV_KEYS = {
    "PAGEGATHER_FORM_FACTOR": ("form_factor", str),
    "PAGEGATHER_THROTTLING_METHOD": ("throttling_method", str),
    "PAGEGATHER_MAX_WAIT_FOR_FCP": ("max_wait_for_fcp", int),
    "PAGEGATHER_MAX_WAIT_FOR_LOAD": ("max_wait_for_load", int),
    "PAGEGATHER_DISABLE_STORAGE_RESET": ("disable_storage_reset", _as_bool),
    "PAGEGATHER_DISABLE_FULL_PAGE_SCREENSHOT": ("disable_full_page_screenshot", _as_bool),
    "PAGEGATHER_BLOCKED_URL_PATTERNS": ("blocked_url_patterns", _as_list),
    "PAGEGATHER_ONLY_CATEGORIES": ("only_categories", _as_list),
    "PAGEGATHER_LOCALE": ("locale", str),
}


def settings_overrides_from_env(env_file: Optional[str] = None) -> Dict[str, Any]:
    """从环境变量构造设置覆盖项；无法转换的值直接忽略。"""
    _load_dotenv_if_needed(env_file)
    overrides: Dict[str, Any] = {}
    for env_name, (key, cast) in _ENV_KEYS.items():
        raw = os.getenv(env_name, "").strip()
        if not raw:
            continue
        try:
            overrides[key] = cast(raw)
        except ValueError:
            continue
    return overrides
