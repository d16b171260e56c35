import asyncio

import pytest

from conftest import HANG, FakeCDPSession
from pagegather.config.settings import Settings
from pagegather.driver import emulation, prepare, storage
from pagegather.driver.session import ProtocolSession
from pagegather.lib.errors import GatherError


def make_session(responses=None):
    cdp = FakeCDPSession(responses)
    return cdp, ProtocolSession(cdp)


@pytest.mark.anyio
async def test_emulate_applies_screen_and_user_agent():
    cdp, session = make_session()
    settings = Settings(emulated_user_agent="pagegather-test")

    await emulation.emulate(session, settings)

    assert cdp.sent_methods() == [
        "Emulation.setDeviceMetricsOverride",
        "Emulation.setTouchEmulationEnabled",
        "Network.setUserAgentOverride",
    ]
    assert cdp.sent[0][1]["mobile"] is True


@pytest.mark.anyio
async def test_emulate_skips_disabled_screen():
    cdp, session = make_session()
    settings = Settings(form_factor="desktop", screen_emulation={"disabled": True, "mobile": False})

    await emulation.emulate(session, settings)

    assert cdp.sent == []


@pytest.mark.anyio
async def test_simulated_throttling_clears_browser_throttling():
    cdp, session = make_session()

    await emulation.throttle(session, Settings(throttling_method="simulate"))

    assert cdp.sent == [
        ("Network.emulateNetworkConditions", emulation.NO_THROTTLING_METRICS),
        ("Emulation.setCPUThrottlingRate", emulation.NO_CPU_THROTTLE_METRICS),
    ]


@pytest.mark.anyio
async def test_devtools_throttling_is_applied():
    cdp, session = make_session()
    settings = Settings(
        throttling_method="devtools",
        throttling={"request_latency_ms": 562.5, "download_throughput_kbps": 1474.56, "cpu_slowdown_multiplier": 4},
    )

    await emulation.throttle(session, settings)

    network = dict(cdp.sent)["Network.emulateNetworkConditions"]
    assert network["latency"] == 562.5
    assert network["downloadThroughput"] == 188743
    assert dict(cdp.sent)["Emulation.setCPUThrottlingRate"] == {"rate": 4}


@pytest.mark.anyio
async def test_clear_data_for_origin_uses_origin():
    cdp, session = make_session()

    warnings = await storage.clear_data_for_origin(session, "https://example.com/path?q=1")

    assert warnings == []
    assert cdp.sent[0][0] == "Storage.clearDataForOrigin"
    assert cdp.sent[0][1]["origin"] == "https://example.com"


@pytest.mark.anyio
async def test_clear_data_timeout_becomes_warning(monkeypatch):
    cdp, session = make_session({"Storage.clearDataForOrigin": HANG})
    original = session.send_command

    async def fast_timeout(method, params=None, *, timeout_ms=None):
        return await original(method, params, timeout_ms=10)

    monkeypatch.setattr(session, "send_command", fast_timeout)

    warnings = await storage.clear_data_for_origin(session, "https://example.com/")

    assert warnings == [storage.WARNING_DATA_TIMEOUT]


@pytest.mark.anyio
async def test_clear_data_propagates_other_protocol_errors():
    error = GatherError(code="PROTOCOL_ERROR", message="Target closed")
    _, session = make_session({"Storage.clearDataForOrigin": error})

    with pytest.raises(GatherError, match="Target closed"):
        await storage.clear_data_for_origin(session, "https://example.com/")


@pytest.mark.anyio
async def test_important_storage_warning_lists_locations():
    usage = {
        "usageBreakdown": [
            {"storageType": "local_storage", "usage": 5},
            {"storageType": "indexeddb", "usage": 0},
            {"storageType": "cookies", "usage": 10},
        ]
    }
    _, session = make_session({"Storage.getUsageAndQuota": usage})

    warning = await storage.get_important_storage_warning(session, "https://example.com/")

    assert "Local Storage" in warning
    assert "IndexedDB" not in warning


@pytest.mark.anyio
async def test_individual_navigation_resets_storage_and_blocks_urls():
    cdp, session = make_session()
    settings = Settings(blocked_url_patterns=["*.png"])

    result = await prepare.prepare_target_for_individual_navigation(session, settings, {
        "requestor": "https://example.com/",
        "disable_storage_reset": False,
        "disable_throttling": True,
        "blocked_url_patterns": ["*.gif"],
    })

    assert result == {"warnings": []}
    methods = cdp.sent_methods()
    assert "Storage.clearDataForOrigin" in methods
    assert "Network.clearBrowserCache" in methods
    assert dict(cdp.sent)["Network.setBlockedURLs"] == {"urls": ["*.gif", "*.png"]}


@pytest.mark.anyio
async def test_individual_navigation_without_url_skips_storage_reset():
    cdp, session = make_session()

    async def click_link():
        return None

    await prepare.prepare_target_for_individual_navigation(session, Settings(), {
        "requestor": click_link,
        "disable_storage_reset": False,
        "disable_throttling": False,
        "blocked_url_patterns": (),
    })

    assert "Storage.clearDataForOrigin" not in cdp.sent_methods()


@pytest.mark.anyio
async def test_dialogs_are_accepted():
    cdp, session = make_session()
    await prepare.dismiss_javascript_dialogs(session)

    cdp.emit("Page.javascriptDialogOpening", {"type": "alert"})
    # 接受对话框的命令在事件回调里异步发出
    for _ in range(3):
        await asyncio.sleep(0)

    assert "Page.handleJavaScriptDialog" in cdp.sent_methods()
