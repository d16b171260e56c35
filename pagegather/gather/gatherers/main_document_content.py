"""
pagegather.gather.gatherers.main_document_content
主文档的原始 HTML（经过重定向后的最终响应体）。依赖 DevtoolsLog 定位主文档请求。
"""

from __future__ import annotations

import base64
from typing import Any, Dict

from ...lib.network_records import find_resource_for_url, records_from_devtools_log, resolve_redirects
from ..base_gatherer import BaseGatherer, GathererMeta, TransitionalContext
from .devtools_log import DevtoolsLog


class MainDocumentContent(BaseGatherer):
    meta = GathererMeta(
        supported_modes=("navigation",),
        dependencies={"DevtoolsLog": DevtoolsLog.symbol},
    )

    async def get_artifact(self, context: TransitionalContext) -> str:
        devtools_log: Any = context.dependencies.get("DevtoolsLog")
        if isinstance(devtools_log, BaseException):
            raise devtools_log
        records = records_from_devtools_log(devtools_log or [])
        main_resource = find_resource_for_url(records, context.url)
        if main_resource is None:
            raise RuntimeError(f"Unable to identify the main resource for {context.url}")
        main_resource = resolve_redirects(main_resource)

        response = await context.driver.default_session.send_command(
            "Network.getResponseBody", {"requestId": main_resource.request_id}
        )
        return _decode_body(response)


def _decode_body(response: Dict[str, Any]) -> str:
    body = response.get("body") or ""
    if response.get("base64Encoded"):
        return base64.b64decode(body).decode("utf-8", errors="replace")
    return body
