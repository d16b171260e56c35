"""
pagegather.config.filters
执行计划的过滤：按采集模式、按显式的 only/skip 过滤条件。

每个函数都是 计划 -> 新计划 的纯函数，通过 dataclasses.replace 产生新对象。
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..audits.audit import ScoringModes
from .constants import BASE_ARTIFACT_IDS, FILTER_RESISTANT_ARTIFACT_IDS, FILTER_RESISTANT_AUDIT_IDS
from .types import ArtifactDefn, AuditDefn, NavigationDefn, ResolvedConfig

logger = logging.getLogger(__name__)

Categories = Optional[Dict[str, Dict[str, Any]]]


def _audit_id(audit: AuditDefn) -> str:
    return audit.implementation.meta.id


def get_audit_ids_in_categories(categories: Categories, only_categories: Optional[Sequence[str]] = None) -> Set[str]:
    if not categories:
        return set()
    ids: Set[str] = set()
    for category_id, category in categories.items():
        if only_categories is not None and category_id not in only_categories:
            continue
        ids.update(ref["id"] for ref in category.get("audit_refs") or [])
    return ids


def filter_artifacts_by_gather_mode(
    artifacts: Optional[Tuple[ArtifactDefn, ...]], mode: str
) -> Optional[Tuple[ArtifactDefn, ...]]:
    if artifacts is None:
        return None
    return tuple(a for a in artifacts if a.gatherer.instance.meta.supports(mode))


def filter_artifacts_by_available_audits(
    artifacts: Optional[Tuple[ArtifactDefn, ...]],
    audits: Optional[Sequence[AuditDefn]],
) -> Optional[Tuple[ArtifactDefn, ...]]:
    """只保留审计需要的产物，以及它们依赖链上的全部产物。"""
    if artifacts is None:
        return None
    if audits is None:
        return artifacts

    artifacts_by_id = {a.id: a for a in artifacts}
    ids_to_keep: Set[str] = set(FILTER_RESISTANT_ARTIFACT_IDS)
    for audit in audits:
        ids_to_keep.update(audit.implementation.meta.required_artifacts)

    stack = list(ids_to_keep)
    while stack:
        artifact = artifacts_by_id.get(stack.pop())
        if artifact is None or not artifact.dependencies:
            continue
        for dependency in artifact.dependencies.values():
            if dependency.id in ids_to_keep:
                continue
            ids_to_keep.add(dependency.id)
            stack.append(dependency.id)

    return tuple(a for a in artifacts if a.id in ids_to_keep)


def filter_navigations_by_available_artifacts(
    navigations: Optional[Tuple[NavigationDefn, ...]],
    available_artifacts: Iterable[ArtifactDefn],
) -> Optional[Tuple[NavigationDefn, ...]]:
    if navigations is None:
        return None
    available_ids = {a.id for a in available_artifacts}
    filtered = []
    for navigation in navigations:
        artifacts = tuple(a for a in navigation.artifacts if a.id in available_ids)
        # 产物被过滤空的导航整体丢弃
        if artifacts:
            filtered.append(dataclasses.replace(navigation, artifacts=artifacts))
    return tuple(filtered)


def filter_audits_by_available_artifacts(
    audits: Optional[Tuple[AuditDefn, ...]],
    available_artifacts: Iterable[ArtifactDefn],
) -> Optional[Tuple[AuditDefn, ...]]:
    if audits is None:
        return None
    available_ids = {a.id for a in available_artifacts} | set(BASE_ARTIFACT_IDS)
    return tuple(
        audit for audit in audits
        if all(artifact_id in available_ids for artifact_id in audit.implementation.meta.required_artifacts)
    )


def filter_audits_by_gather_mode(
    audits: Optional[Tuple[AuditDefn, ...]], mode: str
) -> Optional[Tuple[AuditDefn, ...]]:
    if audits is None:
        return None
    return tuple(
        audit for audit in audits
        if not audit.implementation.meta.supported_modes or mode in audit.implementation.meta.supported_modes
    )


def filter_categories_by_gather_mode(categories: Categories, mode: str) -> Categories:
    if categories is None:
        return None
    return {
        category_id: category
        for category_id, category in categories.items()
        if not category.get("supported_modes") or mode in category["supported_modes"]
    }


def filter_categories_by_explicit_filters(
    categories: Categories, only_categories: Optional[Sequence[str]]
) -> Categories:
    if categories is None or only_categories is None:
        return categories
    return {k: v for k, v in categories.items() if k in only_categories}


def filter_categories_by_available_audits(
    categories: Categories, available_audits: Sequence[AuditDefn]
) -> Categories:
    """去掉分类中不可用的审计；被过滤后只剩手动审计的分类、以及空分类一并去掉。"""
    if categories is None:
        return None

    meta_by_id = {_audit_id(a): a.implementation.meta for a in available_audits}
    filtered: Dict[str, Dict[str, Any]] = {}
    for category_id, category in categories.items():
        refs = category.get("audit_refs") or []
        kept = [ref for ref in refs if ref["id"] in meta_by_id]
        did_filter = len(kept) < len(refs)
        only_manual = all(meta_by_id[ref["id"]].score_display_mode == ScoringModes.MANUAL for ref in kept)
        if did_filter and only_manual:
            kept = []
        if kept:
            filtered[category_id] = {**category, "audit_refs": kept}
    return filtered


def _warn_unrecognized(kind: str, requested: Optional[Sequence[str]], known: Set[str]) -> None:
    for item in requested or ():
        if item not in known:
            logger.warning("unrecognized %s in filter: %s", kind, item)


def filter_config_by_gather_mode(config: ResolvedConfig, mode: str) -> ResolvedConfig:
    artifacts = filter_artifacts_by_gather_mode(config.artifacts, mode)
    navigations = filter_navigations_by_available_artifacts(config.navigations, artifacts or ())
    supported_audits = filter_audits_by_gather_mode(config.audits, mode)
    audits = filter_audits_by_available_artifacts(supported_audits, artifacts or ())
    supported_categories = filter_categories_by_gather_mode(config.categories, mode)
    categories = filter_categories_by_available_audits(supported_categories, audits or ())
    return dataclasses.replace(
        config, artifacts=artifacts, navigations=navigations, audits=audits, categories=categories
    )


def filter_config_by_explicit_filters(
    config: ResolvedConfig,
    *,
    only_audits: Optional[Sequence[str]] = None,
    only_categories: Optional[Sequence[str]] = None,
    skip_audits: Optional[Sequence[str]] = None,
) -> ResolvedConfig:
    """only_categories / only_audits 收窄，skip_audits 排除；full-page-screenshot 除非被跳过否则保留。"""
    known_audit_ids = {_audit_id(a) for a in config.audits or ()}
    _warn_unrecognized("audit", only_audits, known_audit_ids)
    _warn_unrecognized("audit", skip_audits, known_audit_ids)
    _warn_unrecognized("category", only_categories, set(config.categories or {}))

    if only_categories:
        base_audit_ids = get_audit_ids_in_categories(config.categories, only_categories)
    elif only_audits:
        base_audit_ids = set()
    elif not config.categories:
        base_audit_ids = known_audit_ids
    else:
        base_audit_ids = get_audit_ids_in_categories(config.categories)

    skipped = set(skip_audits or ())
    audit_ids_to_keep = {
        audit_id
        for audit_id in [*base_audit_ids, *(only_audits or ()), *FILTER_RESISTANT_AUDIT_IDS]
        if audit_id not in skipped
    }

    audits = config.audits
    if audits is not None:
        audits = tuple(a for a in audits if _audit_id(a) in audit_ids_to_keep)

    artifacts = filter_artifacts_by_available_audits(config.artifacts, audits)
    if artifacts is not None and config.settings.disable_full_page_screenshot:
        artifacts = tuple(a for a in artifacts if a.id != "FullPageScreenshot")

    audits = filter_audits_by_available_artifacts(audits, artifacts or ()) if config.artifacts is not None else audits
    available_categories = filter_categories_by_explicit_filters(config.categories, only_categories)
    categories = filter_categories_by_available_audits(available_categories, audits or ())
    navigations = filter_navigations_by_available_artifacts(config.navigations, artifacts or ())

    return dataclasses.replace(
        config, artifacts=artifacts, navigations=navigations, audits=audits, categories=categories
    )


def list_audit_ids(audits: Optional[Sequence[AuditDefn]]) -> List[str]:
    return [_audit_id(a) for a in audits or ()]
