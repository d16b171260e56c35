"""
pagegather.gather.timespan_runner
时间段模式采集：start_timespan_gather 准备目标并执行 start 钩子，
返回的句柄在用户交互结束后调用 end_timespan_gather 完成采集。

  handle = await start_timespan_gather(page)
  ...  # 与页面交互
  artifacts = await handle.end_timespan_gather()
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..config.types import ConfigContext, ResolvedConfig
from ..driver import prepare
from ..driver.driver import Driver
from ..driver.network_monitor import NetworkMonitor
from ..lib.timing import TimingRecorder, timing_scope
from .base_artifacts import finalize_artifacts, get_base_artifacts
from .navigation_runner import resolve_gather_config
from .results import ArtifactBag
from .runner_helpers import PhaseState, await_artifacts, collect_phase_artifacts, get_empty_artifact_state

logger = logging.getLogger(__name__)


class TimespanGather:
    def __init__(
        self,
        *,
        driver: Any,
        config: ResolvedConfig,
        phase_state: PhaseState,
        network_monitor: NetworkMonitor,
        base_artifacts: Dict[str, Any],
        initial_url: str,
        timing: TimingRecorder,
    ) -> None:
        self.driver = driver
        self.config = config
        self._phase_state = phase_state
        self._network_monitor = network_monitor
        self._base_artifacts = base_artifacts
        self._initial_url = initial_url
        self._timing = timing
        self._ended = False

    async def end_timespan_gather(self) -> ArtifactBag:
        if self._ended:
            raise RuntimeError("Timespan gather already ended")
        self._ended = True

        with timing_scope(self._timing):
            return await self._finish()

    async def _finish(self) -> ArtifactBag:
        try:
            urls = self._network_monitor.get_navigation_urls()
            final_url = urls["main_document_url"] or await self.driver.url() or self._initial_url
            await self._network_monitor.disable()

            self._phase_state.url = final_url
            await collect_phase_artifacts(self._phase_state, "stop_sensitive_instrumentation")
            await collect_phase_artifacts(self._phase_state, "stop_instrumentation")
            await collect_phase_artifacts(self._phase_state, "get_artifact")
            artifacts = await await_artifacts(self._phase_state.artifact_state)
        finally:
            await self.driver.disconnect()

        self._base_artifacts["URL"] = {"initial_url": self._initial_url, "final_url": final_url}
        return finalize_artifacts(self._base_artifacts, artifacts, self._timing)


async def start_timespan_gather(
    page: Any = None,
    config: Any = None,
    config_context: Optional[ConfigContext] = None,
    driver: Any = None,
) -> TimespanGather:
    if driver is None:
        if page is None:
            raise ValueError("start_timespan_gather requires a page or a driver")
        driver = Driver(page)
    with timing_scope() as recorder:
        resolved, config_warnings = resolve_gather_config(config, config_context, "timespan")

        await driver.connect()
        try:
            initial_url = await driver.url()
            base_artifacts = await get_base_artifacts(resolved, driver, gather_mode="timespan")
            base_artifacts["LighthouseRunWarnings"].extend(config_warnings)

            network_monitor = NetworkMonitor(driver.default_session)
            await network_monitor.enable()
            await prepare.prepare_target_for_timespan_mode(driver, resolved.settings)

            phase_state = PhaseState(
                url=initial_url,
                gather_mode="timespan",
                driver=driver,
                page=page if page is not None else getattr(driver, "page", None),
                artifact_definitions=resolved.artifacts or (),
                artifact_state=get_empty_artifact_state(),
                base_artifacts=base_artifacts,
                settings=resolved.settings,
            )
            await collect_phase_artifacts(phase_state, "start_instrumentation")
            await collect_phase_artifacts(phase_state, "start_sensitive_instrumentation")
        except BaseException:
            await driver.disconnect()
            raise
    logger.info("timespan started at %s", initial_url)

    return TimespanGather(
        driver=driver,
        config=resolved,
        phase_state=phase_state,
        network_monitor=network_monitor,
        base_artifacts=base_artifacts,
        initial_url=initial_url,
        timing=recorder,
    )
