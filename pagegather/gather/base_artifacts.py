"""
pagegather.gather.base_artifacts
基础产物：由运行器自身产生（时间、环境、设置、URL 等），不经过采集器。
"""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from ..driver.environment import (
    get_benchmark_index,
    get_browser_version,
    get_environment_warnings,
    get_host_form_factor,
)
from ..lib.timing import TimingRecorder
from .results import ArtifactBag, ArtifactResult, Ok, unwrap


async def get_base_artifacts(config: Any, driver: Any, *, gather_mode: str) -> Dict[str, Any]:
    benchmark_index = await get_benchmark_index(driver.execution_context)
    browser = await get_browser_version(driver.default_session)
    user_agent = browser["user_agent"]

    return {
        "fetch_time": datetime.now(timezone.utc).isoformat(),
        "Timing": [],
        "LighthouseRunWarnings": [],
        "settings": config.settings,
        "BenchmarkIndex": benchmark_index,
        "HostUserAgent": user_agent,
        "HostFormFactor": get_host_form_factor(user_agent),
        "URL": {"initial_url": "", "final_url": ""},
        "PageLoadError": None,
        "GatherContext": {"gather_mode": gather_mode},
    }


def deduplicate_warnings(warnings: List[Any]) -> List[Any]:
    unique: List[Any] = []
    for warning in warnings:
        if warning not in unique:
            unique.append(warning)
    return unique


def finalize_artifacts(
    base_artifacts: Dict[str, Any],
    gatherer_artifacts: Mapping[str, ArtifactResult],
    timing: Optional[TimingRecorder] = None,
) -> ArtifactBag:
    """合并基础产物与采集器产物，补全 URL/Timing/warnings，返回只读产物包。"""
    gatherer_artifacts = dict(gatherer_artifacts)
    run_warnings = gatherer_artifacts.pop("LighthouseRunWarnings", None)
    page_load_error = gatherer_artifacts.pop("PageLoadError", None)

    warnings = list(base_artifacts.get("LighthouseRunWarnings") or [])
    if run_warnings is not None:
        warnings.extend(unwrap(run_warnings) or [])
    warnings.extend(get_environment_warnings(base_artifacts.get("settings"), base_artifacts))

    base = dict(base_artifacts)
    base["URL"] = copy.copy(base_artifacts["URL"])
    if page_load_error is not None:
        base["PageLoadError"] = unwrap(page_load_error)
    base["Timing"] = timing.take_entries() if timing is not None else []
    base["LighthouseRunWarnings"] = deduplicate_warnings(warnings)

    url = base["URL"]
    if base["PageLoadError"] is not None and not url.get("final_url"):
        url["final_url"] = url.get("requested_url") or url.get("initial_url")
    if not url.get("initial_url"):
        raise RuntimeError("Runner did not set initial_url")
    if not url.get("final_url"):
        raise RuntimeError("Runner did not set final_url")

    results: Dict[str, ArtifactResult] = {key: Ok(value) for key, value in base.items()}
    results.update(gatherer_artifacts)
    return ArtifactBag(results)
