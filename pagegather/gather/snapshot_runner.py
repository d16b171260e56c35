"""
pagegather.gather.snapshot_runner
快照模式采集：不导航、不插桩，只对当前页面执行 get_artifact。
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..config.types import ConfigContext
from ..driver.driver import Driver
from ..lib.timing import timing_scope
from .base_artifacts import finalize_artifacts, get_base_artifacts
from .navigation_runner import resolve_gather_config
from .results import ArtifactBag
from .runner_helpers import PhaseState, await_artifacts, collect_phase_artifacts, get_empty_artifact_state

logger = logging.getLogger(__name__)


async def snapshot_gather(
    page: Any = None,
    config: Any = None,
    config_context: Optional[ConfigContext] = None,
    driver: Any = None,
) -> ArtifactBag:
    if driver is None:
        if page is None:
            raise ValueError("snapshot_gather requires a page or a driver")
        driver = Driver(page)
    with timing_scope() as recorder:
        resolved, config_warnings = resolve_gather_config(config, config_context, "snapshot")

        await driver.connect()
        try:
            url = await driver.url()
            base_artifacts = await get_base_artifacts(resolved, driver, gather_mode="snapshot")
            base_artifacts["URL"] = {"initial_url": url, "final_url": url}
            base_artifacts["LighthouseRunWarnings"].extend(config_warnings)

            phase_state = PhaseState(
                url=url,
                gather_mode="snapshot",
                driver=driver,
                page=page if page is not None else getattr(driver, "page", None),
                artifact_definitions=resolved.artifacts or (),
                artifact_state=get_empty_artifact_state(),
                base_artifacts=base_artifacts,
                settings=resolved.settings,
            )
            await collect_phase_artifacts(phase_state, "get_artifact")
            artifacts = await await_artifacts(phase_state.artifact_state)
        finally:
            await driver.disconnect()

        logger.info("snapshot of %s: %d artifacts", url, len(artifacts))
        return finalize_artifacts(base_artifacts, artifacts, recorder)
