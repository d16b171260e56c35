"""
pagegather.gather.runner_helpers
按阶段调用采集器钩子。

每个阶段在 artifact_state[phase] 中为每个产物保存一个 asyncio.Task，
该 Task 先等待同一产物上一阶段的 Task：上一阶段失败则直接沿用其 Err，
不再调用后续钩子。Task 本身从不抛出，结果统一为 Ok / Err。

同一阶段内按声明顺序逐个启动并等待结算，因此 get_artifact 阶段
依赖方拿到的总是已经算好的依赖值（依赖失败时拿到的是异常对象本身）。
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence

from .base_gatherer import HOOK_NAMES, TransitionalContext
from .results import ArtifactResult, Err, Ok, unwrap

logger = logging.getLogger(__name__)

# 阶段 -> 上一阶段
PHASE_TO_PRIOR_PHASE: Dict[str, Optional[str]] = {
    "start_instrumentation": None,
    "start_sensitive_instrumentation": "start_instrumentation",
    "stop_sensitive_instrumentation": "start_sensitive_instrumentation",
    "stop_instrumentation": "stop_sensitive_instrumentation",
    "get_artifact": "stop_instrumentation",
}

ArtifactState = Dict[str, Dict[str, "asyncio.Task[ArtifactResult]"]]


def get_empty_artifact_state() -> ArtifactState:
    return {phase: {} for phase in HOOK_NAMES}


@dataclass
class PhaseState:
    url: str
    gather_mode: str
    driver: Any
    artifact_definitions: Sequence[Any]
    artifact_state: ArtifactState = field(default_factory=get_empty_artifact_state)
    base_artifacts: Dict[str, Any] = field(default_factory=dict)
    settings: Any = None
    page: Any = None
    computed_cache: Dict[Any, Any] = field(default_factory=dict)
    # 之前各次导航已经合并的产物，用于跨导航的依赖
    prior_artifacts: Mapping[str, ArtifactResult] = field(default_factory=dict)


async def collect_artifact_dependencies(
    artifact_defn: Any,
    artifact_tasks: Mapping[str, "asyncio.Task[ArtifactResult]"],
    prior_artifacts: Mapping[str, ArtifactResult],
) -> Dict[str, Any]:
    """依赖名 -> 依赖值；依赖失败或未运行时，值为对应的异常对象。"""
    if not artifact_defn.dependencies:
        return {}

    dependencies: Dict[str, Any] = {}
    for dependency_name, dependency in artifact_defn.dependencies.items():
        task = artifact_tasks.get(dependency.id)
        if task is not None:
            result = await task
        elif dependency.id in prior_artifacts:
            result = prior_artifacts[dependency.id]
        else:
            result = Err(RuntimeError(f'"{dependency.id}" did not run'))
        dependencies[dependency_name] = unwrap(result)
    return dependencies


async def _run_hook(
    phase: str,
    artifact_defn: Any,
    phase_state: PhaseState,
    prior_task: Optional["asyncio.Task[ArtifactResult]"],
) -> ArtifactResult:
    if prior_task is not None:
        prior_result = await prior_task
        if isinstance(prior_result, Err):
            return prior_result

    gatherer = artifact_defn.gatherer.instance
    try:
        dependencies: Dict[str, Any] = {}
        if phase == "get_artifact":
            dependencies = await collect_artifact_dependencies(
                artifact_defn,
                phase_state.artifact_state["get_artifact"],
                phase_state.prior_artifacts,
            )
        context = TransitionalContext(
            url=phase_state.url,
            gather_mode=phase_state.gather_mode,
            driver=phase_state.driver,
            page=phase_state.page,
            base_artifacts=phase_state.base_artifacts,
            dependencies=dependencies,
            settings=phase_state.settings,
            computed_cache=phase_state.computed_cache,
        )
        value = await getattr(gatherer, phase)(context)
    except Exception as e:
        logger.warning("%s %s failed: %s", artifact_defn.id, phase, e)
        return Err(e)
    return Ok(value)


async def collect_phase_artifacts(
    phase_state: PhaseState,
    phase: str,
    artifact_definitions: Optional[Sequence[Any]] = None,
) -> None:
    """对每个支持当前采集模式的产物调用 phase 钩子，结果存入 artifact_state[phase]。"""
    if phase not in PHASE_TO_PRIOR_PHASE:
        raise ValueError(f"Unknown gather phase: {phase}")

    definitions = phase_state.artifact_definitions if artifact_definitions is None else artifact_definitions
    prior_phase = PHASE_TO_PRIOR_PHASE[phase]
    prior_tasks = phase_state.artifact_state[prior_phase] if prior_phase else {}
    phase_tasks = phase_state.artifact_state[phase]

    for artifact_defn in definitions:
        if not artifact_defn.gatherer.instance.meta.supports(phase_state.gather_mode):
            continue
        # 每个产物在同一次采集中每个阶段只执行一次
        if artifact_defn.id in phase_tasks:
            continue
        logger.debug("artifacts:%s %s", phase, artifact_defn.id)
        task = asyncio.ensure_future(
            _run_hook(phase, artifact_defn, phase_state, prior_tasks.get(artifact_defn.id))
        )
        phase_tasks[artifact_defn.id] = task
        await asyncio.wait([task])


async def await_artifacts(artifact_state: ArtifactState) -> Dict[str, ArtifactResult]:
    """汇合 get_artifact 阶段的全部结果。"""
    artifacts: Dict[str, ArtifactResult] = {}
    for artifact_id, task in artifact_state["get_artifact"].items():
        artifacts[artifact_id] = await task
    return artifacts
