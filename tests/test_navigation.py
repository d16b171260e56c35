import asyncio
from types import SimpleNamespace

import pytest

from conftest import HANG, FakeCDPSession
from pagegather.driver.navigation import WARNING_TIMEOUT, goto_url
from pagegather.driver.session import ProtocolSession
from pagegather.lib.errors import GatherError

URL = "https://example.com/"
LANDING = "https://example.com/landing"


def make_driver(responses=None):
    cdp = FakeCDPSession(responses)
    return cdp, SimpleNamespace(default_session=ProtocolSession(cdp))


def main_frame(url):
    return ("Page.frameNavigated", {"frame": {"id": "main", "url": url}})


LOAD = ("Page.loadEventFired", {"timestamp": 1.0})
FCP = ("Page.lifecycleEvent", {"frameId": "main", "name": "firstContentfulPaint"})


def navigate_emitting(cdp, *events):
    def respond(params):
        for method, event in events:
            cdp.emit(method, event)
        return {"frameId": "main"}

    return respond


async def goto(driver, requestor, **options):
    return await asyncio.wait_for(goto_url(driver, requestor, **options), 5)


@pytest.mark.anyio
async def test_navigated_resolves_with_requested_url():
    cdp, driver = make_driver()
    cdp.responses["Page.navigate"] = navigate_emitting(cdp, main_frame(URL))

    result = await goto(driver, URL)

    assert result.requested_url == URL
    assert result.main_document_url == URL
    assert result.warnings == []
    assert ("Page.navigate", {"url": URL}) in cdp.sent
    assert ("Page.setLifecycleEventsEnabled", {"enabled": True}) in cdp.sent


@pytest.mark.anyio
async def test_failed_page_navigate_raises_instead_of_waiting():
    cdp, driver = make_driver({"Page.navigate": RuntimeError("Cannot navigate to invalid URL")})

    with pytest.raises(RuntimeError, match="Cannot navigate"):
        await goto(driver, URL, wait_until=("navigated",))

    assert cdp.listener_count("Page.frameNavigated") == 0
    assert cdp.listener_count("Network.requestWillBeSent") == 0


@pytest.mark.anyio
async def test_failed_page_navigate_raises_while_waiting_for_load():
    cdp, driver = make_driver({"Page.navigate": RuntimeError("Cannot navigate to invalid URL")})

    with pytest.raises(RuntimeError):
        await goto(driver, URL, wait_until=("navigated", "load"), max_wait_for_load=30000)

    assert cdp.listener_count("Page.loadEventFired") == 0


@pytest.mark.anyio
async def test_load_and_fcp_resolve_without_warnings():
    cdp, driver = make_driver()
    cdp.responses["Page.navigate"] = navigate_emitting(cdp, main_frame(URL), FCP, LOAD)

    result = await goto(
        driver, URL, wait_until=("navigated", "fcp", "load"), cpu_quiet_threshold_ms=1000
    )

    assert result.warnings == []
    assert result.main_document_url == URL


@pytest.mark.anyio
async def test_redirect_adds_url_mismatch_warning():
    cdp, driver = make_driver()
    cdp.responses["Page.navigate"] = navigate_emitting(cdp, main_frame(URL), main_frame(LANDING), LOAD)

    result = await goto(driver, URL, wait_until=("navigated", "load"))

    assert result.requested_url == URL
    assert result.main_document_url == LANDING
    assert len(result.warnings) == 1
    assert f"was redirected to {LANDING}" in result.warnings[0]


@pytest.mark.anyio
async def test_hash_change_is_not_a_redirect():
    cdp, driver = make_driver()
    cdp.responses["Page.navigate"] = navigate_emitting(cdp, main_frame(URL + "#top"), LOAD)

    result = await goto(driver, URL, wait_until=("load",))

    assert result.warnings == []


@pytest.mark.anyio
async def test_load_timeout_warns_when_page_still_responds():
    cdp, driver = make_driver()
    cdp.responses["Page.navigate"] = navigate_emitting(cdp, main_frame(URL))

    result = await goto(driver, URL, wait_until=("load",), max_wait_for_load=50)

    assert result.warnings == [WARNING_TIMEOUT]


@pytest.mark.anyio
async def test_load_timeout_with_unresponsive_page_raises_page_hung():
    cdp, driver = make_driver({"Runtime.evaluate": HANG})
    cdp.responses["Page.navigate"] = navigate_emitting(cdp, main_frame(URL))

    with pytest.raises(GatherError) as excinfo:
        await goto(driver, URL, wait_until=("load",), max_wait_for_load=50)

    assert excinfo.value.code == "PAGE_HUNG"


@pytest.mark.anyio
async def test_missing_first_contentful_paint_raises_no_fcp():
    cdp, driver = make_driver()
    cdp.responses["Page.navigate"] = navigate_emitting(cdp, main_frame(URL), LOAD)

    with pytest.raises(GatherError) as excinfo:
        await goto(driver, URL, wait_until=("fcp", "load"), max_wait_for_fcp=50)

    assert excinfo.value.code == "NO_FCP"
    assert cdp.listener_count("Page.lifecycleEvent") == 0


@pytest.mark.anyio
async def test_fcp_without_load_is_rejected():
    cdp, driver = make_driver()

    with pytest.raises(ValueError, match="Cannot wait for FCP"):
        await goto_url(driver, URL, wait_until=("fcp",))

    assert cdp.sent == []


@pytest.mark.anyio
async def test_callable_requestor_reads_url_from_network_monitor():
    cdp, driver = make_driver()

    async def click_link():
        cdp.emit(*main_frame(LANDING))

    result = await goto(driver, click_link, wait_until=("navigated",))

    assert result.requested_url == LANDING
    assert result.main_document_url == LANDING
    assert "Page.navigate" not in cdp.sent_methods()


@pytest.mark.anyio
async def test_callable_requestor_without_navigation_raises_no_navigation():
    cdp, driver = make_driver()

    async def fire_load_only():
        cdp.emit(*LOAD)

    with pytest.raises(GatherError) as excinfo:
        await goto(driver, fire_load_only, wait_until=("load",))

    assert excinfo.value.code == "NO_NAVIGATION"
