"""设置模型定义（Pydantic）。

作用：把 默认值 < 配置文件 settings < 显式覆盖 三层合并后的字典
校验为结构化的 Settings 对象，解析完成后只读。
依赖：pydantic
"""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..lib.errors import ConfigError
from .constants import DEFAULT_SETTINGS


class ThrottlingSettings(BaseModel):
    model_config = ConfigDict(extra="allow")

    rtt_ms: float = 150
    throughput_kbps: float = 1.6 * 1024
    request_latency_ms: float = 0
    download_throughput_kbps: float = 0
    upload_throughput_kbps: float = 0
    cpu_slowdown_multiplier: float = 1


class ScreenEmulationSettings(BaseModel):
    model_config = ConfigDict(extra="allow")

    mobile: bool = True
    width: int = 412
    height: int = 823
    device_scale_factor: float = 1.75
    disabled: bool = False


class Settings(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    output: List[str] = Field(default_factory=lambda: ["json"])
    max_wait_for_fcp: int = 30000
    max_wait_for_load: int = 45000
    pause_after_fcp_ms: int = 1000
    pause_after_load_ms: int = 1000
    network_quiet_threshold_ms: int = 1000
    cpu_quiet_threshold_ms: int = 1000
    form_factor: Optional[Literal["mobile", "desktop"]] = "mobile"
    throttling: ThrottlingSettings = Field(default_factory=ThrottlingSettings)
    throttling_method: Literal["simulate", "devtools", "provided"] = "simulate"
    screen_emulation: ScreenEmulationSettings = Field(default_factory=ScreenEmulationSettings)
    emulated_user_agent: Optional[str] = None
    audit_mode: Any = False
    gather_mode: Any = False
    disable_storage_reset: bool = False
    disable_full_page_screenshot: bool = False
    skip_about_blank: bool = False
    blocked_url_patterns: Optional[List[str]] = None
    extra_headers: Optional[Dict[str, str]] = None
    channel: str = "python"
    budgets: Optional[List[Any]] = None
    locale: str = "en-US"
    only_audits: Optional[List[str]] = None
    only_categories: Optional[List[str]] = None
    skip_audits: Optional[List[str]] = None
    plugins: Optional[List[str]] = None
    precomputed_lantern_data: Optional[Dict[str, Any]] = None


def _merge(base: Dict[str, Any], extension: Dict[str, Any]) -> Dict[str, Any]:
    """深合并对象；列表与标量直接覆盖。"""
    for key, value in extension.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _merge(dict(base[key]), value)
        else:
            base[key] = copy.deepcopy(value)
    return base


def clean_overrides(overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """只保留默认设置里存在的键，且忽略值为 None 的项。"""
    if not overrides:
        return {}
    return {k: v for k, v in overrides.items() if k in DEFAULT_SETTINGS and v is not None}


def resolve_settings(
    settings_json: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Settings:
    merged = _merge(copy.deepcopy(DEFAULT_SETTINGS), settings_json or {})
    merged = _merge(merged, clean_overrides(overrides))
    try:
        return Settings.model_validate(merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e
