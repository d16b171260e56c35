"""
pagegather.config.validation
配置校验：采集器契约、依赖的模式兼容性与拓扑顺序、导航、审计、分类与设置。

所有致命问题抛 ConfigError；可继续运行的问题以 warnings 列表返回。
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from ..audits.audit import Audit, ScoringModes
from ..gather.base_gatherer import HOOK_NAMES, BaseGatherer, GathererMeta
from ..lib.errors import ConfigError
from .constants import LOAD_FAILURE_MODES, PLUGIN_PREFIXES
from .types import AuditDefn, GathererDefn, NavigationDefn, ResolvedConfig

# 模式层级：取采集器所支持模式中的最低层级
MODE_LEVELS = {"timespan": 0, "snapshot": 1, "navigation": 2}


def _gatherer_name(instance: Any) -> str:
    return getattr(instance, "name", None) or type(instance).__name__


def _min_level(gatherer: GathererDefn) -> int:
    return min(MODE_LEVELS[m] for m in gatherer.instance.meta.supported_modes)


def is_valid_artifact_dependency(dependent: GathererDefn, dependency: GathererDefn) -> bool:
    dependent_level = _min_level(dependent)
    dependency_level = _min_level(dependency)

    # 只支持 timespan 的采集器可能在没有快照的情况下运行
    if dependent_level == MODE_LEVELS["timespan"]:
        return dependency_level == MODE_LEVELS["timespan"]
    # 只支持 snapshot 的采集器可能在没有时间段的情况下运行
    if dependent_level == MODE_LEVELS["snapshot"]:
        return dependency_level == MODE_LEVELS["snapshot"]
    return True


def throw_invalid_dependency_order(artifact_id: str, dependency_key: str) -> None:
    raise ConfigError("\n".join([
        f'Failed to find dependency "{dependency_key}" for "{artifact_id}" artifact',
        "Check that...",
        f'  1. A gatherer exposes a matching symbol that satisfies "{dependency_key}".',
        f'  2. "{dependency_key}" is configured to run before "{artifact_id}"',
    ]))


def throw_invalid_artifact_dependency(artifact_id: str, dependency_key: str) -> None:
    raise ConfigError("\n".join([
        f'Dependency "{dependency_key}" for "{artifact_id}" artifact is invalid.',
        "A timespan or snapshot artifact may only depend on an artifact of the same gather mode.",
    ]))


def assert_artifact_topological_order(navigations: Sequence[NavigationDefn]) -> None:
    """跨导航检查：每个依赖必须出现在依赖方之前。"""
    available = set()
    for navigation in navigations:
        for artifact in navigation.artifacts:
            available.add(artifact.id)
            for dependency_key, dependency in (artifact.dependencies or {}).items():
                if dependency.id in available:
                    continue
                throw_invalid_dependency_order(artifact.id, dependency_key)


def assert_valid_plugin_name(config_json: Dict[str, Any], plugin_name: str) -> None:
    name_without_namespace = plugin_name.split("/")[-1]
    if not name_without_namespace.startswith(PLUGIN_PREFIXES):
        raise ConfigError(f"plugin name '{plugin_name}' does not start with '{PLUGIN_PREFIXES[0]}'")
    if plugin_name in (config_json.get("categories") or {}):
        raise ConfigError(
            f"plugin name '{plugin_name}' not allowed because it is the id of a category already found in config"
        )


def assert_valid_gatherer(gatherer: GathererDefn) -> None:
    instance = gatherer.instance
    name = _gatherer_name(instance)

    meta = getattr(instance, "meta", None)
    if not isinstance(meta, GathererMeta):
        raise ConfigError(f"{name} gatherer did not provide a meta object.")
    if not meta.supported_modes:
        raise ConfigError(f"{name} gatherer did not support any gather modes.")
    unknown_modes = [m for m in meta.supported_modes if m not in MODE_LEVELS]
    if unknown_modes:
        raise ConfigError(f"{name} gatherer declared unknown gather modes: {', '.join(unknown_modes)}.")

    get_artifact = getattr(type(instance), "get_artifact", None)
    if not callable(get_artifact) or get_artifact is BaseGatherer.get_artifact:
        raise ConfigError(f'{name} gatherer did not define a "get_artifact" method.')
    for hook in HOOK_NAMES:
        if not callable(getattr(instance, hook, None)):
            raise ConfigError(f'{name} gatherer did not define a "{hook}" method.')


def assert_valid_navigations(navigations: Optional[Sequence[NavigationDefn]]) -> Dict[str, List[str]]:
    if not navigations:
        return {"warnings": []}

    warnings: List[str] = []
    for navigation in navigations:
        if navigation.load_failure_mode not in LOAD_FAILURE_MODES:
            raise ConfigError(
                f'Navigation "{navigation.id}" has an unknown load failure mode: {navigation.load_failure_mode}'
            )

    first = navigations[0]
    if first.load_failure_mode != "fatal":
        warnings.append(
            f'"{first.id}" is the first navigation but had a failure mode of {first.load_failure_mode}. '
            "If it fails to load, later navigations will start from an unloaded page."
        )

    seen = set()
    for navigation in navigations:
        if navigation.id in seen:
            raise ConfigError(f'Navigation must have unique identifiers, but "{navigation.id}" was repeated.')
        seen.add(navigation.id)

    return {"warnings": warnings}


def assert_valid_audit(audit_defn: AuditDefn) -> None:
    implementation = audit_defn.implementation
    meta = getattr(implementation, "meta", None)
    audit_name = audit_defn.path or getattr(meta, "id", None) or "Unknown audit"

    audit_fn = getattr(implementation, "audit", None)
    is_base = isinstance(implementation, type) and issubclass(implementation, Audit) and implementation.is_base_implementation()
    if not callable(audit_fn) or is_base:
        raise ConfigError(f"{audit_name} has no audit() method.")
    if meta is None or not isinstance(getattr(meta, "id", None), str):
        raise ConfigError(f"{audit_name} has no meta.id property, or the property is not a string.")
    if not isinstance(meta.title, str):
        raise ConfigError(f"{audit_name} has no meta.title property, or the property is not a string.")

    # 二元打分的审计会显示 通过/失败，需要 failure_title
    score_display_mode = meta.score_display_mode or ScoringModes.BINARY
    if not isinstance(meta.failure_title, str) and score_display_mode == ScoringModes.BINARY:
        raise ConfigError(f"{audit_name} has no meta.failure_title and should.")

    if not isinstance(meta.description, str):
        raise ConfigError(f"{audit_name} has no meta.description property, or the property is not a string.")
    if meta.description == "":
        raise ConfigError(f"{audit_name} has an empty meta.description string. Please add a description for the UI.")
    if not isinstance(meta.required_artifacts, (list, tuple)):
        raise ConfigError(
            f"{audit_name} has no meta.required_artifacts property, or the property is not an array."
        )


def assert_valid_categories(
    categories: Optional[Dict[str, Dict[str, Any]]],
    audits: Optional[Sequence[AuditDefn]],
    groups: Optional[Dict[str, Dict[str, Any]]],
) -> None:
    if not categories:
        return
    audits_by_id = {a.implementation.meta.id: a for a in audits or ()}

    for category_id, category in categories.items():
        for index, audit_ref in enumerate(category.get("audit_refs") or []):
            if not audit_ref.get("id"):
                raise ConfigError(f"missing an audit id at {category_id}[{index}]")

            audit = audits_by_id.get(audit_ref["id"])
            if audit is None:
                raise ConfigError(f"could not find {audit_ref['id']} audit for category {category_id}")

            is_manual = audit.implementation.meta.score_display_mode == ScoringModes.MANUAL
            if category_id == "accessibility" and not audit_ref.get("group") and not is_manual:
                raise ConfigError(f"{audit_ref['id']} accessibility audit does not have a group")
            if (audit_ref.get("weight") or 0) > 0 and is_manual:
                raise ConfigError(f"{audit_ref['id']} is manual but has a positive weight")
            group = audit_ref.get("group")
            if group and (not groups or group not in groups):
                raise ConfigError(f"{audit_ref['id']} references unknown group {group}")


def assert_valid_settings(settings: Any) -> None:
    if not settings.form_factor:
        raise ConfigError("`settings.form_factor` must be defined as 'mobile' or 'desktop'.")

    screen = settings.screen_emulation
    if not screen.disabled and screen.mobile != (settings.form_factor == "mobile"):
        raise ConfigError(
            f"Screen emulation mobile setting ({screen.mobile}) does not match "
            f"form_factor setting ({settings.form_factor})."
        )


def assert_valid_config(config: ResolvedConfig) -> Dict[str, List[str]]:
    result = assert_valid_navigations(config.navigations)

    for artifact in config.artifacts or ():
        assert_valid_gatherer(artifact.gatherer)
    for audit in config.audits or ():
        assert_valid_audit(audit)

    assert_valid_categories(config.categories, config.audits, config.groups)
    assert_valid_settings(config.settings)
    return {"warnings": result["warnings"]}


