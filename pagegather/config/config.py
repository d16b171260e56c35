"""
pagegather.config.config
配置解析入口：原始配置 dict -> 只读执行计划 ResolvedConfig。

流程：
  1. resolve_working_copy      校验 config_path，深拷贝输入（缺省使用内置默认配置）
  2. resolve_extensions        extends: "pagegather:default" 时与默认配置合并
  3. merge_plugins             合并插件提供的审计/分类/分组
  4. resolve_settings          默认值 < 配置 settings < 显式覆盖
  5. resolve_artifacts_to_defns / resolve_navigations_to_defns / resolve_audits_to_defns
  6. assert_valid_config       致命错误抛 ConfigError，其余作为 warnings 返回
  7. 按采集模式过滤，再按 only/skip 显式过滤
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..audits import CORE_AUDITS
from ..gather.gatherers import CORE_GATHERERS
from ..lib.errors import ConfigError
from ..lib.timing import timed
from .config_helpers import (
    deep_clone_config_json,
    merge_config_fragment,
    merge_config_fragment_array_by_key,
    resolve_audits_to_defns,
    resolve_gatherer_to_defn,
)
from .constants import DEFAULT_EXTENDS, DEFAULT_NAVIGATION, NON_SIMULATED_PASS_CONFIG_OVERRIDES
from .default_config import DEFAULT_CONFIG
from .filters import filter_config_by_explicit_filters, filter_config_by_gather_mode
from .plugin import merge_plugins
from .settings import Settings, resolve_settings
from .types import ArtifactDefn, ArtifactDependency, ConfigContext, GathererFactory, NavigationDefn, ResolvedConfig
from .validation import (
    assert_artifact_topological_order,
    assert_valid_config,
    assert_valid_gatherer,
    is_valid_artifact_dependency,
    throw_invalid_artifact_dependency,
    throw_invalid_dependency_order,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "default_config.py")

NAVIGATION_FIELDS = {f.name for f in dataclasses.fields(NavigationDefn)}


def resolve_working_copy(
    config_json: Optional[Dict[str, Any]],
    config_path: Optional[str] = None,
) -> Tuple[Dict[str, Any], Optional[str], Optional[str]]:
    """返回 (配置副本, config_path, config_dir)。"""
    if config_path and not os.path.isabs(config_path):
        raise ConfigError("configPath must be an absolute path")

    if config_json is None:
        config_json = DEFAULT_CONFIG
        config_path = DEFAULT_CONFIG_PATH

    config_dir = os.path.dirname(config_path) if config_path else None
    return deep_clone_config_json(config_json), config_path, config_dir


def resolve_extensions(config_json: Dict[str, Any]) -> Dict[str, Any]:
    if not config_json.get("extends"):
        return config_json
    if config_json["extends"] != DEFAULT_EXTENDS:
        raise ConfigError(f"`{DEFAULT_EXTENDS}` is the only valid extension method.")

    extension = {k: v for k, v in config_json.items() if k not in ("artifacts", "navigations")}
    default_clone = deep_clone_config_json(DEFAULT_CONFIG)
    merged = merge_config_fragment(default_clone, extension)

    merged["artifacts"] = merge_config_fragment_array_by_key(
        default_clone.get("artifacts"), config_json.get("artifacts"), lambda a: a.get("id")
    )
    merged["navigations"] = merge_config_fragment_array_by_key(
        default_clone.get("navigations"), config_json.get("navigations"), lambda n: n.get("id")
    )
    return merged


def resolve_artifact_dependencies(
    artifact_id: str,
    gatherer: Any,
    artifact_defns_by_symbol: Mapping[Any, ArtifactDefn],
) -> Optional[Dict[str, ArtifactDependency]]:
    """依赖只能在已解析（更早出现）的产物里查找。"""
    dependencies = gatherer.instance.meta.dependencies
    if not dependencies:
        return None

    resolved: Dict[str, ArtifactDependency] = {}
    for dependency_name, symbol in dependencies.items():
        dependency = artifact_defns_by_symbol.get(symbol)
        if dependency is None:
            throw_invalid_dependency_order(artifact_id, dependency_name)
        if not is_valid_artifact_dependency(gatherer, dependency.gatherer):
            throw_invalid_artifact_dependency(artifact_id, dependency_name)
        resolved[dependency_name] = ArtifactDependency(id=dependency.id)
    return resolved


def resolve_artifacts_to_defns(
    artifacts_json: Optional[Sequence[Dict[str, Any]]],
    *,
    registry: Optional[Mapping[str, GathererFactory]] = None,
    config_dir: Optional[str] = None,
) -> Optional[Tuple[ArtifactDefn, ...]]:
    if artifacts_json is None:
        return None

    with timed("config:resolve_artifacts_to_defns"):
        by_symbol: Dict[Any, ArtifactDefn] = {}
        defns: List[ArtifactDefn] = []
        for artifact_json in artifacts_json:
            artifact_id = artifact_json.get("id") if isinstance(artifact_json, dict) else None
            if not artifact_id:
                raise ConfigError(f"Artifact is missing an id: {artifact_json!r}")

            gatherer = resolve_gatherer_to_defn(artifact_json.get("gatherer"), registry, config_dir)
            assert_valid_gatherer(gatherer)

            artifact = ArtifactDefn(
                id=artifact_id,
                gatherer=gatherer,
                dependencies=resolve_artifact_dependencies(artifact_id, gatherer, by_symbol),
            )
            symbol = gatherer.instance.meta.symbol
            if symbol is not None:
                by_symbol[symbol] = artifact
            defns.append(artifact)
    return tuple(defns)


def override_settings_for_gather_mode(settings: Settings, gather_mode: str) -> Settings:
    """timespan 模式无法做模拟节流，改为 devtools 节流。"""
    if gather_mode == "timespan" and settings.throttling_method == "simulate":
        return settings.model_copy(update={"throttling_method": "devtools"})
    return settings


def override_navigation_throttling_windows(navigation: Dict[str, Any], settings: Settings) -> Dict[str, Any]:
    """需要实际观测节流效果时，把安静窗口提高到最小值。"""
    if navigation.get("disable_throttling"):
        return navigation
    if settings.throttling_method == "simulate":
        return navigation
    updated = dict(navigation)
    for key, minimum in NON_SIMULATED_PASS_CONFIG_OVERRIDES.items():
        updated[key] = max(updated.get(key) or 0, minimum)
    return updated


def resolve_navigations_to_defns(
    navigations_json: Optional[Sequence[Dict[str, Any]]],
    artifact_defns: Optional[Sequence[ArtifactDefn]],
    settings: Settings,
) -> Optional[Tuple[NavigationDefn, ...]]:
    if navigations_json is None:
        return None
    if artifact_defns is None:
        raise ConfigError("Cannot use navigations without defining artifacts")

    with timed("config:resolve_navigations_to_defns"):
        artifacts_by_id = {a.id: a for a in artifact_defns}
        defns: List[NavigationDefn] = []
        for navigation_json in navigations_json:
            navigation = {**DEFAULT_NAVIGATION, **navigation_json}
            nav_id = navigation["id"]

            unknown = set(navigation) - NAVIGATION_FIELDS
            if unknown:
                raise ConfigError(f'Unrecognized properties in navigation "{nav_id}": {", ".join(sorted(unknown))}')

            artifacts = []
            for artifact_id in navigation["artifacts"]:
                artifact = artifacts_by_id.get(artifact_id)
                if artifact is None:
                    raise ConfigError(f'Unrecognized artifact "{artifact_id}" in navigation "{nav_id}"')
                artifacts.append(artifact)

            navigation = override_navigation_throttling_windows(navigation, settings)
            navigation["artifacts"] = tuple(artifacts)
            navigation["blocked_url_patterns"] = tuple(navigation.get("blocked_url_patterns") or ())
            defns.append(NavigationDefn(**navigation))

        assert_artifact_topological_order(defns)
    return tuple(defns)


def _settings_overrides(context: ConfigContext) -> Dict[str, Any]:
    overrides = dict(context.settings_overrides or {})
    if context.skip_about_blank is not None:
        overrides["skip_about_blank"] = context.skip_about_blank
    return overrides


def resolve_configuration(
    config_json: Optional[Dict[str, Any]] = None,
    context: Optional[ConfigContext] = None,
    gather_mode: str = "navigation",
) -> Tuple[ResolvedConfig, List[str]]:
    """解析配置，返回 (执行计划, warnings)。不会修改传入的 config_json。"""
    context = context or ConfigContext()
    overrides = _settings_overrides(context)
    gatherer_registry = {**CORE_GATHERERS, **(context.gatherer_registry or {})}
    audit_registry = {**CORE_AUDITS, **(context.audit_registry or {})}

    with timed("config:resolve"):
        working_copy, _, config_dir = resolve_working_copy(config_json, context.config_path)
        working_copy = resolve_extensions(working_copy)
        working_copy = merge_plugins(working_copy, overrides)

        settings = resolve_settings(working_copy.get("settings") or {}, overrides)
        settings = override_settings_for_gather_mode(settings, gather_mode)

        artifacts = resolve_artifacts_to_defns(
            working_copy.get("artifacts"), registry=gatherer_registry, config_dir=config_dir
        )
        navigations = resolve_navigations_to_defns(working_copy.get("navigations"), artifacts, settings)
        audits = resolve_audits_to_defns(working_copy.get("audits"), audit_registry, config_dir)

        config = ResolvedConfig(
            settings=settings,
            artifacts=artifacts,
            navigations=navigations,
            audits=tuple(audits) if audits is not None else None,
            categories=working_copy.get("categories"),
            groups=working_copy.get("groups"),
        )
        warnings = assert_valid_config(config)["warnings"]

        config = filter_config_by_gather_mode(config, gather_mode)
        config = filter_config_by_explicit_filters(
            config,
            only_audits=settings.only_audits,
            only_categories=settings.only_categories,
            skip_audits=settings.skip_audits,
        )

    for warning in warnings:
        logger.warning("config: %s", warning)
    return config, warnings


def config_to_jsonable(config: ResolvedConfig) -> Dict[str, Any]:
    artifacts = None
    if config.artifacts is not None:
        artifacts = [{"id": a.id, "gatherer": a.gatherer.path or a.gatherer.instance.name} for a in config.artifacts]

    navigations = None
    if config.navigations is not None:
        navigations = []
        for navigation in config.navigations:
            item = {f.name: getattr(navigation, f.name) for f in dataclasses.fields(navigation)}
            item["artifacts"] = [a.id for a in navigation.artifacts]
            item["blocked_url_patterns"] = list(navigation.blocked_url_patterns)
            navigations.append(item)

    audits = None
    if config.audits is not None:
        audits = []
        for audit in config.audits:
            item: Dict[str, Any] = {"path": audit.path or audit.implementation.meta.id}
            if audit.options:
                item["options"] = dict(audit.options)
            audits.append(item)

    return {
        "settings": config.settings.model_dump(),
        "artifacts": artifacts,
        "navigations": navigations,
        "audits": audits,
        "categories": config.categories,
        "groups": config.groups,
    }


def get_config_display_string(config: ResolvedConfig) -> str:
    return json.dumps(config_to_jsonable(config), indent=2, ensure_ascii=False)
