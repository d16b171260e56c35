"""
pagegather.lib.network_records
从 devtools log（原始协议事件列表）重建网络请求记录。

只保留页面加载错误判定所需的字段：url、状态码、MIME、失败原因、
资源类型、所属文档与重定向链。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .url_utils import equal_with_exclusions


@dataclass
class NetworkRequest:
    request_id: str = ""
    url: str = ""
    document_url: str = ""
    frame_id: str = ""
    resource_type: str = ""
    mime_type: str = ""
    status_code: int = -1
    failed: bool = False
    localized_fail_description: str = ""
    network_request_time: float = 0.0
    finished: bool = False
    redirect_source: Optional["NetworkRequest"] = field(default=None, repr=False)
    redirect_destination: Optional["NetworkRequest"] = field(default=None, repr=False)

    def has_error_status_code(self) -> bool:
        return self.status_code >= 400

    def to_dict(self) -> Dict[str, Any]:
        return {
            "request_id": self.request_id,
            "url": self.url,
            "document_url": self.document_url,
            "resource_type": self.resource_type,
            "mime_type": self.mime_type,
            "status_code": self.status_code,
            "failed": self.failed,
            "localized_fail_description": self.localized_fail_description,
        }


def records_from_devtools_log(devtools_log: Iterable[Dict[str, Any]]) -> List[NetworkRequest]:
    """按协议事件重放出请求记录；重定向会生成新的记录并串成链。"""
    records: List[NetworkRequest] = []
    by_id: Dict[str, NetworkRequest] = {}

    for entry in devtools_log:
        method = entry.get("method")
        params = entry.get("params") or {}
        request_id = params.get("requestId")
        if not method or not request_id:
            continue

        if method == "Network.requestWillBeSent":
            request = params.get("request") or {}
            record = NetworkRequest(
                request_id=request_id,
                url=request.get("url", ""),
                document_url=params.get("documentURL", ""),
                frame_id=params.get("frameId", ""),
                resource_type=params.get("type", ""),
                network_request_time=float(params.get("timestamp") or 0),
            )
            previous = by_id.get(request_id)
            redirect = params.get("redirectResponse")
            if previous is not None and redirect:
                previous.status_code = int(redirect.get("status", -1))
                previous.mime_type = redirect.get("mimeType", "")
                previous.finished = True
                previous.redirect_destination = record
                record.redirect_source = previous
            by_id[request_id] = record
            records.append(record)
        elif method == "Network.responseReceived":
            record = by_id.get(request_id)
            if record is None:
                continue
            response = params.get("response") or {}
            record.status_code = int(response.get("status", -1))
            record.mime_type = response.get("mimeType", "")
            if params.get("type"):
                record.resource_type = params["type"]
        elif method == "Network.loadingFinished":
            record = by_id.get(request_id)
            if record is not None:
                record.finished = True
        elif method == "Network.loadingFailed":
            record = by_id.get(request_id)
            if record is None:
                continue
            record.failed = True
            record.finished = True
            record.localized_fail_description = params.get("errorText", "")
    return records


def find_resource_for_url(records: Iterable[NetworkRequest], url: str) -> Optional[NetworkRequest]:
    """找到与 url（忽略 fragment）匹配的第一个请求；重定向链中的任一环都可匹配。"""
    for record in records:
        if equal_with_exclusions(record.url, url):
            return record
    return None


def resolve_redirects(record: NetworkRequest) -> NetworkRequest:
    while record.redirect_destination is not None:
        record = record.redirect_destination
    return record
