"""
pagegather.gather.navigation_runner
导航模式采集：对配置中的每个导航依次执行

  _setup_navigation -> start_instrumentation -> start_sensitive_instrumentation
  -> _navigate -> stop_sensitive_instrumentation -> stop_instrumentation
  -> _cleanup_navigation -> _compute_navigation_result

页面加载失败时该次导航只产出 pageLoadError-<id> 调试产物与一条 warning；
fatal 模式下还会写入 PageLoadError 并停止后续导航。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..config.config import resolve_configuration
from ..config.types import ConfigContext, NavigationDefn, ResolvedConfig
from ..driver import emulation, prepare, storage
from ..driver.driver import Driver
from ..driver.navigation import Requestor, goto_url
from ..lib.errors import ConfigError, GatherError
from ..lib.navigation_error import get_page_load_error
from ..lib.network_records import records_from_devtools_log
from ..lib.timing import atimed, timing_scope
from ..lib.url_utils import validate_url
from .base_artifacts import finalize_artifacts, get_base_artifacts
from .gatherers.devtools_log import DevtoolsLog
from .results import ArtifactBag, ArtifactResult, Ok
from .runner_helpers import PhaseState, await_artifacts, collect_phase_artifacts, get_empty_artifact_state

logger = logging.getLogger(__name__)

# 导航阶段这两类错误只作为错误值交给页面加载错误判定
NAVIGATION_ERROR_CODES = ("NO_FCP", "PAGE_HUNG")


@dataclass
class NavigationContext:
    driver: Any
    page: Any
    config: ResolvedConfig
    navigation: NavigationDefn
    requestor: Requestor
    base_artifacts: Dict[str, Any]
    computed_cache: Dict[Any, Any] = field(default_factory=dict)
    prior_artifacts: Dict[str, ArtifactResult] = field(default_factory=dict)


@dataclass
class NavigateResult:
    requested_url: str
    main_document_url: str
    navigation_error: Optional[GatherError] = None
    warnings: List[str] = field(default_factory=list)


@dataclass
class NavigationResult:
    artifacts: Dict[str, ArtifactResult]
    warnings: List[str]
    page_load_error: Optional[GatherError] = None


def _should_visit_blank_page(config: ResolvedConfig, requestor: Requestor) -> bool:
    return isinstance(requestor, str) and not config.settings.skip_about_blank


async def _setup(*, driver: Any, config: ResolvedConfig, requestor: Requestor) -> Dict[str, Any]:
    await driver.connect()
    if _should_visit_blank_page(config, requestor):
        await goto_url(driver, "about:blank", wait_until=("navigated",))

    base_artifacts = await get_base_artifacts(config, driver, gather_mode="navigation")
    await prepare.prepare_target_for_navigation_mode(driver, config.settings)
    return base_artifacts


async def _setup_navigation(context: NavigationContext) -> List[str]:
    navigation = context.navigation
    if _should_visit_blank_page(context.config, context.requestor):
        await goto_url(context.driver, navigation.blank_page, wait_until=("navigated",))

    result = await prepare.prepare_target_for_individual_navigation(
        context.driver.default_session,
        context.config.settings,
        {
            "requestor": context.requestor,
            "disable_storage_reset": navigation.disable_storage_reset,
            "disable_throttling": navigation.disable_throttling,
            "blocked_url_patterns": navigation.blocked_url_patterns,
        },
    )
    return result["warnings"]


async def _navigate(context: NavigationContext) -> NavigateResult:
    navigation = context.navigation
    settings = context.config.settings
    wait_until = ("fcp", "load") if navigation.pause_after_fcp_ms else ("load",)
    try:
        result = await goto_url(
            context.driver,
            context.requestor,
            wait_until=wait_until,
            max_wait_for_fcp=settings.max_wait_for_fcp,
            max_wait_for_load=settings.max_wait_for_load,
            pause_after_fcp_ms=navigation.pause_after_fcp_ms,
            pause_after_load_ms=navigation.pause_after_load_ms,
            network_quiet_threshold_ms=navigation.network_quiet_threshold_ms,
            cpu_quiet_threshold_ms=navigation.cpu_quiet_threshold_ms,
        )
    except GatherError as e:
        if e.code not in NAVIGATION_ERROR_CODES or not isinstance(context.requestor, str):
            raise
        logger.warning("navigation to %s: %s", context.requestor, e.code)
        return NavigateResult(
            requested_url=context.requestor,
            main_document_url=context.requestor,
            navigation_error=e,
        )
    return NavigateResult(
        requested_url=result.requested_url,
        main_document_url=result.main_document_url,
        warnings=list(result.warnings),
    )


async def _cleanup_navigation(context: NavigationContext) -> None:
    await emulation.clear_throttling(context.driver.default_session)


async def _collect_debug_data(context: NavigationContext, phase_state: PhaseState) -> Optional[List[Dict[str, Any]]]:
    """只为 DevtoolsLog 产物提前执行 get_artifact，用于判定页面加载错误。"""
    devtools_log_defn = next(
        (a for a in context.navigation.artifacts if a.gatherer.instance.meta.symbol is DevtoolsLog.symbol),
        None,
    )
    if devtools_log_defn is None:
        return None

    await collect_phase_artifacts(phase_state, "get_artifact", [devtools_log_defn])
    task = phase_state.artifact_state["get_artifact"].get(devtools_log_defn.id)
    if task is None:
        return None
    result = await task
    if isinstance(result, Ok):
        return result.value
    return None


async def _compute_navigation_result(
    context: NavigationContext,
    phase_state: PhaseState,
    setup_warnings: List[str],
    navigate_result: NavigateResult,
) -> NavigationResult:
    devtools_log = await _collect_debug_data(context, phase_state)
    records = records_from_devtools_log(devtools_log or [])
    page_load_error = get_page_load_error(
        navigate_result.navigation_error,
        url=navigate_result.main_document_url,
        load_failure_mode=context.navigation.load_failure_mode,
        network_records=records,
    )
    warnings = setup_warnings + navigate_result.warnings

    if page_load_error is not None:
        logger.error("navigation %s: %s", context.navigation.id, page_load_error.friendly_message)
        artifacts: Dict[str, ArtifactResult] = {}
        if devtools_log is not None:
            artifacts[f"pageLoadError-{context.navigation.id}"] = Ok({"devtools_log": devtools_log})
        return NavigationResult(
            artifacts=artifacts,
            warnings=warnings + [page_load_error.friendly_message],
            page_load_error=page_load_error,
        )

    await collect_phase_artifacts(phase_state, "get_artifact")
    artifacts = await await_artifacts(phase_state.artifact_state)
    return NavigationResult(artifacts=artifacts, warnings=warnings)


async def _navigation(context: NavigationContext) -> NavigationResult:
    initial_url = await context.driver.url()
    phase_state = PhaseState(
        url=initial_url,
        gather_mode="navigation",
        driver=context.driver,
        page=context.page,
        artifact_definitions=context.navigation.artifacts,
        artifact_state=get_empty_artifact_state(),
        base_artifacts=context.base_artifacts,
        settings=context.config.settings,
        computed_cache=context.computed_cache,
        prior_artifacts=context.prior_artifacts,
    )

    async with atimed(f"navigation:{context.navigation.id}"):
        setup_warnings = await _setup_navigation(context)
        await collect_phase_artifacts(phase_state, "start_instrumentation")
        await collect_phase_artifacts(phase_state, "start_sensitive_instrumentation")

        navigate_result = await _navigate(context)
        context.base_artifacts["URL"] = {
            "initial_url": initial_url,
            "requested_url": navigate_result.requested_url,
            "main_document_url": navigate_result.main_document_url,
            "final_url": navigate_result.main_document_url,
        }
        phase_state.url = navigate_result.main_document_url

        await collect_phase_artifacts(phase_state, "stop_sensitive_instrumentation")
        await collect_phase_artifacts(phase_state, "stop_instrumentation")
        await _cleanup_navigation(context)

        return await _compute_navigation_result(context, phase_state, setup_warnings, navigate_result)


async def _navigations(
    *,
    driver: Any,
    page: Any,
    config: ResolvedConfig,
    requestor: Requestor,
    base_artifacts: Dict[str, Any],
    computed_cache: Dict[Any, Any],
) -> Dict[str, ArtifactResult]:
    if not config.navigations:
        raise ConfigError("No navigations configured")

    artifacts: Dict[str, ArtifactResult] = {}
    warnings: List[str] = []

    for navigation in config.navigations:
        context = NavigationContext(
            driver=driver,
            page=page,
            config=config,
            navigation=navigation,
            requestor=requestor,
            base_artifacts=base_artifacts,
            computed_cache=computed_cache,
            prior_artifacts=dict(artifacts),
        )
        result = await _navigation(context)

        should_halt = navigation.load_failure_mode == "fatal" and result.page_load_error is not None
        if should_halt:
            artifacts["PageLoadError"] = Ok(result.page_load_error)
        warnings.extend(result.warnings)
        artifacts.update(result.artifacts)
        if should_halt:
            break

    artifacts["LighthouseRunWarnings"] = Ok(warnings)
    return artifacts


async def _cleanup(*, driver: Any, config: ResolvedConfig, requestor: Requestor) -> None:
    if not config.settings.disable_storage_reset and isinstance(requestor, str):
        await storage.clear_data_for_origin(driver.default_session, requestor)
    await driver.disconnect()


def resolve_gather_config(
    config: Any,
    config_context: Optional[ConfigContext],
    gather_mode: str,
) -> Tuple[ResolvedConfig, List[str]]:
    """已解析的计划直接使用（没有 warnings），否则按采集模式解析原始配置。"""
    if isinstance(config, ResolvedConfig):
        return config, []
    return resolve_configuration(config, config_context or ConfigContext(), gather_mode)


async def navigation_gather(
    requestor: Requestor,
    page: Any = None,
    config: Any = None,
    config_context: Optional[ConfigContext] = None,
    driver: Any = None,
) -> ArtifactBag:
    """
    导航到 requestor（URL 或触发导航的可调用对象）并返回产物包。
    page 与 driver 至少提供一个。
    """
    if isinstance(requestor, str):
        validate_url(requestor)
    if driver is None:
        if page is None:
            raise ValueError("navigation_gather requires a page or a driver")
        driver = Driver(page)
    page = page if page is not None else getattr(driver, "page", None)

    with timing_scope() as recorder:
        resolved, config_warnings = resolve_gather_config(config, config_context, "navigation")
        computed_cache: Dict[Any, Any] = {}

        try:
            base_artifacts = await _setup(driver=driver, config=resolved, requestor=requestor)
            base_artifacts["LighthouseRunWarnings"].extend(config_warnings)
            artifacts = await _navigations(
                driver=driver,
                page=page,
                config=resolved,
                requestor=requestor,
                base_artifacts=base_artifacts,
                computed_cache=computed_cache,
            )
        except BaseException:
            await driver.disconnect()
            raise
        await _cleanup(driver=driver, config=resolved, requestor=requestor)

        return finalize_artifacts(base_artifacts, artifacts, recorder)
