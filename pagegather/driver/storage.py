"""
pagegather.driver.storage
清理源站存储与浏览器缓存。超时只记 warning，其余协议错误照常抛出。
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from ..lib.errors import GatherError
from ..lib.url_utils import get_origin

logger = logging.getLogger(__name__)

STORAGE_TYPES_TO_CLEAR = ",".join([
    "file_systems",
    "shader_cache",
    "service_workers",
    "cache_storage",
])

IMPORTANT_STORAGE_TYPES = {
    "local_storage": "Local Storage",
    "indexeddb": "IndexedDB",
    "websql": "Web SQL",
}

WARNING_DATA_TIMEOUT = (
    "Clearing the origin data timed out. Try auditing this page again and file a bug if the issue persists."
)
WARNING_CACHE_TIMEOUT = (
    "Clearing the browser cache timed out. Try auditing this page again and file a bug if the issue persists."
)
WARNING_IMPORTANT_STORAGE = (
    "There may be stored data affecting loading performance in these locations: {locations}. "
    "Audit this page in an incognito window to prevent those resources from affecting your scores."
)


async def clear_data_for_origin(session: Any, url: str) -> List[str]:
    warnings: List[str] = []
    origin = get_origin(url)
    if origin is None:
        return warnings

    try:
        await session.send_command(
            "Storage.clearDataForOrigin",
            {"origin": origin, "storageTypes": STORAGE_TYPES_TO_CLEAR},
            timeout_ms=5000,
        )
    except GatherError as e:
        if e.code != "PROTOCOL_TIMEOUT":
            raise
        logger.warning("clear_data_for_origin: %s", WARNING_DATA_TIMEOUT)
        warnings.append(WARNING_DATA_TIMEOUT)
    return warnings


async def clear_browser_caches(session: Any) -> List[str]:
    warnings: List[str] = []
    try:
        await session.send_command("Network.clearBrowserCache", timeout_ms=5000)
        # 切换一次缓存开关，确保内存缓存也被清掉
        await session.send_command("Network.setCacheDisabled", {"cacheDisabled": True})
        await session.send_command("Network.setCacheDisabled", {"cacheDisabled": False})
    except GatherError as e:
        if e.code != "PROTOCOL_TIMEOUT":
            raise
        logger.warning("clear_browser_caches: %s", WARNING_CACHE_TIMEOUT)
        warnings.append(WARNING_CACHE_TIMEOUT)
    return warnings


async def get_important_storage_warning(session: Any, url: str) -> Optional[str]:
    origin = get_origin(url)
    if origin is None:
        return None
    usage_data = await session.send_command("Storage.getUsageAndQuota", {"origin": origin})
    locations = [
        IMPORTANT_STORAGE_TYPES[usage["storageType"]]
        for usage in usage_data.get("usageBreakdown", [])
        if usage.get("usage", 0) > 0 and usage.get("storageType") in IMPORTANT_STORAGE_TYPES
    ]
    if not locations:
        return None
    return WARNING_IMPORTANT_STORAGE.format(locations=", ".join(locations))
