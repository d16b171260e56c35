"""
pagegather.config.constants
常量定义：默认设置、节流预设、屏幕模拟参数与导航缺省值。
"""

from __future__ import annotations

from typing import Any, Dict

DEFAULT_VIEWPORT = {"width": 412, "height": 823}

# 节流预设（单位：ms / Kbps）
THROTTLING = {
    "mobileSlow4G": {
        "rtt_ms": 150,
        "throughput_kbps": 1.6 * 1024,
        "request_latency_ms": 150 * 3.75,
        "download_throughput_kbps": 1.6 * 1024 * 0.9,
        "upload_throughput_kbps": 750 * 0.9,
        "cpu_slowdown_multiplier": 4,
    },
    "desktopDense4G": {
        "rtt_ms": 40,
        "throughput_kbps": 10 * 1024,
        "request_latency_ms": 0,
        "download_throughput_kbps": 0,
        "upload_throughput_kbps": 0,
        "cpu_slowdown_multiplier": 1,
    },
}

SCREEN_EMULATION_METRICS = {
    "mobile": {
        "mobile": True,
        "width": DEFAULT_VIEWPORT["width"],
        "height": DEFAULT_VIEWPORT["height"],
        "device_scale_factor": 1.75,
        "disabled": False,
    },
    "desktop": {
        "mobile": False,
        "width": 1350,
        "height": 940,
        "device_scale_factor": 1,
        "disabled": False,
    },
}

MOTOG4_USER_AGENT = (
    "Mozilla/5.0 (Linux; Android 11; moto g power (2022)) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/119.0.0.0 Mobile Safari/537.36"
)
DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36"
)

USER_AGENTS = {"mobile": MOTOG4_USER_AGENT, "desktop": DESKTOP_USER_AGENT}

DEFAULT_SETTINGS: Dict[str, Any] = {
    "output": ["json"],
    "max_wait_for_fcp": 30 * 1000,
    "max_wait_for_load": 45 * 1000,
    "pause_after_fcp_ms": 1000,
    "pause_after_load_ms": 1000,
    "network_quiet_threshold_ms": 1000,
    "cpu_quiet_threshold_ms": 1000,
    "form_factor": "mobile",
    "throttling": dict(THROTTLING["mobileSlow4G"]),
    "throttling_method": "simulate",
    "screen_emulation": dict(SCREEN_EMULATION_METRICS["mobile"]),
    "emulated_user_agent": MOTOG4_USER_AGENT,
    "audit_mode": False,
    "gather_mode": False,
    "disable_storage_reset": False,
    "disable_full_page_screenshot": False,
    "skip_about_blank": False,
    "blocked_url_patterns": None,
    "extra_headers": None,
    "channel": "python",
    "budgets": None,
    "locale": "en-US",
    "only_audits": None,
    "only_categories": None,
    "skip_audits": None,
    "plugins": None,
    "precomputed_lantern_data": None,
}

# 非 simulate 节流时，安静窗口的最小值
NON_SIMULATED_PASS_CONFIG_OVERRIDES = {
    "pause_after_fcp_ms": 5250,
    "pause_after_load_ms": 5250,
    "network_quiet_threshold_ms": 5250,
    "cpu_quiet_threshold_ms": 5250,
}

DEFAULT_NAVIGATION: Dict[str, Any] = {
    "id": "default",
    "load_failure_mode": "fatal",
    "disable_throttling": False,
    "disable_storage_reset": False,
    "pause_after_fcp_ms": 0,
    "pause_after_load_ms": 0,
    "network_quiet_threshold_ms": 0,
    "cpu_quiet_threshold_ms": 0,
    "blocked_url_patterns": [],
    "blank_page": "about:blank",
    "artifacts": [],
}

LOAD_FAILURE_MODES = ("fatal", "warn", "ignore")

DEFAULT_EXTENDS = "pagegather:default"

PLUGIN_PREFIXES = ("pagegather-plugin-", "pagegather_plugin_")


# 运行器自己产出的基础产物，不需要采集器
BASE_ARTIFACT_IDS = (
    "fetch_time",
    "LighthouseRunWarnings",
    "HostFormFactor",
    "HostUserAgent",
    "BenchmarkIndex",
    "settings",
    "URL",
    "Timing",
    "PageLoadError",
    "GatherContext",
)

# 显式过滤时始终保留（除非被 skip_audits 点名）
FILTER_RESISTANT_ARTIFACT_IDS = ("HostUserAgent", "HostFormFactor", "Stacks", "GatherContext")
FILTER_RESISTANT_AUDIT_IDS = ("full-page-screenshot",)
