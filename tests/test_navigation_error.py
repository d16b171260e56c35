import pytest

from pagegather.lib.errors import GatherError
from pagegather.lib.navigation_error import get_page_load_error
from pagegather.lib.network_records import find_resource_for_url, records_from_devtools_log, resolve_redirects

URL = "https://example.com/"


def request(request_id, url, *, document_url=None, resource_type="Document", timestamp=1.0, redirect=None):
    params = {
        "requestId": request_id,
        "request": {"url": url},
        "documentURL": document_url or url,
        "type": resource_type,
        "timestamp": timestamp,
    }
    if redirect:
        params["redirectResponse"] = redirect
    return {"method": "Network.requestWillBeSent", "params": params}


def response(request_id, status=200, mime_type="text/html"):
    return {
        "method": "Network.responseReceived",
        "params": {"requestId": request_id, "response": {"status": status, "mimeType": mime_type}},
    }


def failed(request_id, error_text):
    return {"method": "Network.loadingFailed", "params": {"requestId": request_id, "errorText": error_text}}


def classify(devtools_log, navigation_error=None, mode="fatal", url=URL):
    return get_page_load_error(
        navigation_error,
        url=url,
        load_failure_mode=mode,
        network_records=records_from_devtools_log(devtools_log),
    )


def test_successful_html_load_has_no_error():
    assert classify([request("1", URL), response("1")]) is None


def test_redirect_chain_is_followed():
    log = [
        request("1", "http://example.com/"),
        request("1", URL, redirect={"status": 301, "mimeType": "text/html"}),
        response("1"),
    ]
    records = records_from_devtools_log(log)
    main = find_resource_for_url(records, "http://example.com/")

    assert main.status_code == 301
    assert resolve_redirects(main).url == URL
    assert classify(log, url="http://example.com/") is None


def test_failed_document_request():
    error = classify([request("1", URL), failed("1", "net::ERR_CONNECTION_REFUSED")])

    assert error.code == "FAILED_DOCUMENT_REQUEST"
    assert "net::ERR_CONNECTION_REFUSED" in error.friendly_message


def test_dns_failure():
    assert classify([request("1", URL), failed("1", "net::ERR_NAME_NOT_RESOLVED")]).code == "DNS_FAILURE"


def test_error_status_code():
    error = classify([request("1", URL), response("1", status=404)])

    assert error.code == "ERRORED_DOCUMENT_REQUEST"
    assert "404" in error.friendly_message


def test_non_html_document():
    assert classify([request("1", URL), response("1", mime_type="application/json")]).code == "NOT_HTML"


def test_interstitial_wins_over_network_error():
    log = [
        request("1", URL),
        failed("1", "net::ERR_CERT_DATE_INVALID"),
        request("2", "chrome-error://chromewebdata/", document_url="chrome-error://chromewebdata/", timestamp=2.0),
    ]
    assert classify(log).code == "INSECURE_DOCUMENT_REQUEST"


def test_navigation_error_is_used_when_network_is_fine():
    no_fcp = GatherError.of("NO_FCP", stage="navigate")
    assert classify([request("1", URL), response("1")], navigation_error=no_fcp) is no_fcp


def test_navigation_error_without_records():
    page_hung = GatherError.of("PAGE_HUNG", stage="navigate")
    assert classify([], navigation_error=page_hung) is page_hung


@pytest.mark.parametrize("log", [
    [request("1", URL), failed("1", "net::ERR_CONNECTION_REFUSED")],
    [request("1", URL), response("1", status=500)],
])
def test_ignore_mode_suppresses_classification(log):
    assert classify(log, navigation_error=GatherError.of("NO_FCP"), mode="ignore") is None
