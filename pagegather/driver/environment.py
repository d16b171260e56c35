from __future__ import annotations

"""
environment

运行环境信息的采集：
 - get_browser_version: Browser.getVersion，补充 milestone。
 - get_benchmark_index: 页面内的简易 CPU 基准，用于环境 warning。
 - get_environment_warnings: 基于 UA/基准分给出运行环境提示。
"""

import logging
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

SLOW_CPU_BENCHMARK_INDEX_THRESHOLD = 1000

# 尽量简单的字符串拼接基准，返回每秒迭代次数的近似值
BENCHMARK_FUNCTION = """() => {
  const start = Date.now();
  let iterations = 0;
  while (Date.now() - start < 500) {
    let s = '';
    for (let j = 0; j < 10000; j++) s += 'a';
    iterations++;
  }
  const durationInSeconds = (Date.now() - start) / 1000;
  return Math.round(iterations / durationInSeconds);
}"""

WARNING_SLOW_HOST_CPU = (
    "The tested device appears to have a slower CPU than expected. This can negatively affect "
    "performance scores."
)


async def get_browser_version(session: Any) -> Dict[str, Any]:
    """读取浏览器版本与 UA；product 形如 Chrome/119.0.6045.0。"""
    version = await session.send_command("Browser.getVersion")
    product = version.get("product") or ""
    try:
        milestone = int(product.split("/", 1)[1].split(".", 1)[0])
    except (IndexError, ValueError):
        milestone = 0
    return {
        "product": product,
        "user_agent": version.get("userAgent") or "",
        "protocol_version": version.get("protocolVersion"),
        "js_version": version.get("jsVersion"),
        "milestone": milestone,
    }


async def get_benchmark_index(execution_context: Any) -> float:
    return await execution_context.evaluate(BENCHMARK_FUNCTION)


def get_host_form_factor(user_agent: str) -> str:
    if "Android" in user_agent or "Mobile" in user_agent:
        return "mobile"
    return "desktop"


def get_environment_warnings(settings: Any, base_artifacts: Dict[str, Any]) -> List[str]:
    warnings: List[str] = []
    benchmark_index = base_artifacts.get("BenchmarkIndex")
    is_throttled = settings is not None and settings.throttling_method == "simulate"
    if (
        is_throttled
        and isinstance(benchmark_index, (int, float))
        and 0 < benchmark_index < SLOW_CPU_BENCHMARK_INDEX_THRESHOLD
    ):
        warnings.append(WARNING_SLOW_HOST_CPU)
    return warnings
