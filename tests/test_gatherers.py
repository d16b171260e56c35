import base64
import io
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from PIL import Image

from conftest import FakeCDPSession
from pagegather.driver.fetcher import FetchResponse, Fetcher
from pagegather.driver.session import ProtocolSession
from pagegather.gather.base_gatherer import TransitionalContext
from pagegather.gather.gatherers.console_messages import ConsoleMessages
from pagegather.gather.gatherers.devtools_log import DevtoolsLog
from pagegather.gather.gatherers.full_page_screenshot import FullPageScreenshot
from pagegather.gather.gatherers.main_document_content import MainDocumentContent
from pagegather.gather.gatherers.robots_txt import RobotsTxt

URL = "https://example.com/"


def make_context(cdp, *, url=URL, dependencies=None, fetcher=None, gather_mode="navigation"):
    session = ProtocolSession(cdp)
    driver = SimpleNamespace(default_session=session, fetcher=fetcher or Fetcher(session))
    return TransitionalContext(url=url, gather_mode=gather_mode, driver=driver, dependencies=dependencies or {})


def jpeg_base64(width, height):
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), "white").save(buffer, "JPEG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


@pytest.mark.anyio
async def test_devtools_log_records_only_sensitive_window():
    cdp = FakeCDPSession()
    context = make_context(cdp)
    gatherer = DevtoolsLog()

    cdp.emit("Network.requestWillBeSent", {"requestId": "early"})
    await gatherer.start_sensitive_instrumentation(context)
    cdp.emit("Network.requestWillBeSent", {"requestId": "1"})
    cdp.emit("Log.entryAdded", {"entry": {}})
    cdp.emit("Page.frameNavigated", {"frame": {"id": "main"}})
    await gatherer.stop_sensitive_instrumentation(context)
    cdp.emit("Network.loadingFinished", {"requestId": "1"})

    log = await gatherer.get_artifact(context)
    assert [m["method"] for m in log] == ["Network.requestWillBeSent", "Page.frameNavigated"]
    assert log[0]["params"] == {"requestId": "1"}
    assert "Page.enable" in cdp.sent_methods()


@pytest.mark.anyio
async def test_console_messages_collects_errors_and_exceptions():
    cdp = FakeCDPSession()
    context = make_context(cdp)
    gatherer = ConsoleMessages()

    await gatherer.start_instrumentation(context)
    cdp.emit("Runtime.consoleAPICalled", {
        "type": "error",
        "args": [{"type": "string", "value": "bad"}, {"type": "number", "value": 42}],
        "stackTrace": {"callFrames": [{"url": "https://example.com/app.js", "lineNumber": 3, "columnNumber": 7}]},
        "timestamp": 1.0,
    })
    cdp.emit("Runtime.exceptionThrown", {
        "timestamp": 2.0,
        "exceptionDetails": {"text": "Uncaught", "exception": {"description": "TypeError: x is undefined"}},
    })
    cdp.emit("Log.entryAdded", {"entry": {"source": "console-api", "level": "error", "text": "dup"}})
    cdp.emit("Log.entryAdded", {"entry": {"source": "network", "level": "error", "text": "404"}})
    await gatherer.stop_instrumentation(context)
    cdp.emit("Runtime.consoleAPICalled", {"type": "log", "args": []})

    messages = await gatherer.get_artifact(context)
    assert [(m["event_type"], m["level"]) for m in messages] == [
        ("consoleAPI", "error"),
        ("exception", "error"),
        ("protocolLog", "error"),
    ]
    assert messages[0]["text"] == "bad 42"
    assert messages[0]["source"] == "console.error"
    assert messages[0]["line_number"] == 3
    assert messages[1]["text"] == "TypeError: x is undefined"
    assert "Log.disable" in cdp.sent_methods()


@pytest.mark.anyio
async def test_full_page_screenshot_resizes_and_restores():
    cdp = FakeCDPSession({
        "Page.getLayoutMetrics": {"cssContentSize": {"height": 50}, "cssLayoutViewport": {"clientWidth": 30}},
        "Page.captureScreenshot": {"data": jpeg_base64(30, 50)},
    })
    context = make_context(cdp)

    artifact = await FullPageScreenshot().get_artifact(context)

    assert artifact["screenshot"]["width"] == 30
    assert artifact["screenshot"]["height"] == 50
    assert artifact["screenshot"]["data"].startswith("data:image/jpeg;base64,")
    override = dict(cdp.sent)["Emulation.setDeviceMetricsOverride"]
    assert override["height"] == 50
    assert override["width"] == 30
    assert cdp.sent_methods()[-1] == "Emulation.clearDeviceMetricsOverride"


@pytest.mark.anyio
async def test_full_page_screenshot_restores_emulation_on_failure():
    cdp = FakeCDPSession({
        "Page.getLayoutMetrics": {"cssContentSize": {"height": 50}, "cssLayoutViewport": {"clientWidth": 30}},
        "Page.captureScreenshot": RuntimeError("capture failed"),
    })
    context = make_context(cdp)

    with pytest.raises(RuntimeError, match="capture failed"):
        await FullPageScreenshot().get_artifact(context)
    assert cdp.sent_methods()[-1] == "Emulation.clearDeviceMetricsOverride"


def redirected_log():
    return [
        {"method": "Network.requestWillBeSent", "params": {
            "requestId": "1", "request": {"url": "http://example.com/"}, "type": "Document",
        }},
        {"method": "Network.requestWillBeSent", "params": {
            "requestId": "1", "request": {"url": URL}, "type": "Document",
            "redirectResponse": {"status": 301, "mimeType": "text/html"},
        }},
        {"method": "Network.responseReceived", "params": {
            "requestId": "1", "response": {"status": 200, "mimeType": "text/html"},
        }},
    ]


@pytest.mark.anyio
async def test_main_document_content_follows_redirects():
    body = base64.b64encode(b"<!doctype html><title>ok</title>").decode("ascii")
    cdp = FakeCDPSession({"Network.getResponseBody": {"body": body, "base64Encoded": True}})
    context = make_context(cdp, dependencies={"DevtoolsLog": redirected_log()})

    content = await MainDocumentContent().get_artifact(context)

    assert content == "<!doctype html><title>ok</title>"
    assert cdp.sent[-1] == ("Network.getResponseBody", {"requestId": "1"})


@pytest.mark.anyio
async def test_main_document_content_raises_dependency_error():
    context = make_context(FakeCDPSession(), dependencies={"DevtoolsLog": RuntimeError("no log")})

    with pytest.raises(RuntimeError, match="no log"):
        await MainDocumentContent().get_artifact(context)


@pytest.mark.anyio
async def test_main_document_content_requires_main_resource():
    context = make_context(FakeCDPSession(), url="https://other.example/", dependencies={"DevtoolsLog": []})

    with pytest.raises(RuntimeError, match="Unable to identify the main resource"):
        await MainDocumentContent().get_artifact(context)


@pytest.mark.anyio
async def test_robots_txt_reads_stream():
    cdp = FakeCDPSession({
        "Page.getFrameTree": {"frameTree": {"frame": {"id": "main"}}},
        "Network.loadNetworkResource": {
            "resource": {"success": True, "httpStatusCode": 200, "stream": "s1", "headers": {}},
        },
        "IO.read": {"data": "User-agent: *\nDisallow:", "eof": True},
    })
    context = make_context(cdp)

    artifact = await RobotsTxt().get_artifact(context)

    assert artifact == {"status": 200, "content": "User-agent: *\nDisallow:"}
    load_params = dict(cdp.sent)["Network.loadNetworkResource"]
    assert load_params["url"] == "https://example.com/robots.txt"
    assert load_params["frameId"] == "main"
    assert cdp.sent_methods()[-1] == "IO.close"


@pytest.mark.anyio
async def test_robots_txt_missing_file_has_no_content():
    cdp = FakeCDPSession({
        "Page.getFrameTree": {"frameTree": {"frame": {"id": "main"}}},
        "Network.loadNetworkResource": {"resource": {"success": False, "httpStatusCode": 404}},
    })

    artifact = await RobotsTxt().get_artifact(make_context(cdp))

    assert artifact == {"status": 404, "content": None}
    assert "IO.read" not in cdp.sent_methods()


@pytest.mark.anyio
async def test_robots_txt_timeout_is_reported_not_raised():
    fetcher = SimpleNamespace(fetch_resource=AsyncMock(side_effect=TimeoutError("Timed out fetching resource")))
    context = make_context(FakeCDPSession(), fetcher=fetcher)

    artifact = await RobotsTxt().get_artifact(context)

    assert artifact["status"] is None
    assert artifact["error_message"] == "Timed out fetching resource"


@pytest.mark.anyio
async def test_robots_txt_skips_pages_without_origin():
    fetcher = SimpleNamespace(fetch_resource=AsyncMock(return_value=FetchResponse(status=200, content="")))
    context = make_context(FakeCDPSession(), url="about:blank", fetcher=fetcher)

    assert await RobotsTxt().get_artifact(context) == {"status": None, "content": None}
    fetcher.fetch_resource.assert_not_called()
