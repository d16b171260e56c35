"""
pagegather.lib.navigation_error
页面加载失败的分类：拦截页 > 网络错误 > 非 HTML > 导航错误。
"""

from __future__ import annotations

from typing import List, Optional

from .errors import GatherError
from .network_records import NetworkRequest, find_resource_for_url, resolve_redirects

HTML_MIME_TYPE = "text/html"

DNS_FAILURES = ("net::ERR_NAME_NOT_RESOLVED", "net::ERR_NAME_RESOLUTION_FAILED")


def get_network_error(main_record: Optional[NetworkRequest]) -> Optional[GatherError]:
    if main_record is None:
        return GatherError.of("NO_DOCUMENT_REQUEST", stage="navigate")
    if main_record.failed:
        net_err = main_record.localized_fail_description or ""
        if net_err in DNS_FAILURES or net_err.startswith("net::ERR_DNS_"):
            return GatherError.of("DNS_FAILURE", stage="navigate")
        return GatherError.of("FAILED_DOCUMENT_REQUEST", stage="navigate", error_details=net_err)
    if main_record.has_error_status_code():
        return GatherError.of(
            "ERRORED_DOCUMENT_REQUEST", stage="navigate", status_code=str(main_record.status_code)
        )
    return None


def get_interstitial_error(
    main_record: Optional[NetworkRequest], records: List[NetworkRequest]
) -> Optional[GatherError]:
    if main_record is None:
        return None
    interstitial = next(
        (r for r in records if r.document_url.startswith("chrome-error://")), None
    )
    if interstitial is None:
        return None
    reason = main_record.localized_fail_description or ""
    if reason.startswith("net::ERR_CERT"):
        return GatherError.of("INSECURE_DOCUMENT_REQUEST", stage="navigate", security_messages=reason)
    # iframe 命中拦截页但主文档正常时不算失败
    if main_record.failed:
        return GatherError.of("CHROME_INTERSTITIAL_ERROR", stage="navigate")
    return None


def get_non_html_error(final_record: Optional[NetworkRequest]) -> Optional[GatherError]:
    if final_record is None:
        return None
    if final_record.mime_type != HTML_MIME_TYPE:
        return GatherError.of("NOT_HTML", stage="navigate", mime_type=final_record.mime_type)
    return None


def get_page_load_error(
    navigation_error: Optional[GatherError],
    *,
    url: str,
    load_failure_mode: str,
    network_records: List[NetworkRequest],
) -> Optional[GatherError]:
    """综合网络记录与导航错误，返回最具体的一个页面加载错误（或 None）。"""
    if load_failure_mode == "ignore":
        return None

    main_record = find_resource_for_url(network_records, url)

    # 落在 chrome-error:// 页面时 url 匹配不到，退回到最早的文档请求
    if main_record is None:
        documents = [r for r in network_records if r.resource_type == "Document"]
        if documents:
            main_record = min(documents, key=lambda r: r.network_request_time)

    if main_record is None:
        return navigation_error

    final_record = resolve_redirects(main_record)
    network_error = get_network_error(main_record)
    interstitial_error = get_interstitial_error(main_record, network_records)
    non_html_error = get_non_html_error(final_record)

    if interstitial_error:
        return interstitial_error
    if network_error:
        return network_error
    if non_html_error:
        return non_html_error
    return navigation_error
