"""
pagegather.audits.audit
审计（评分规则）的基类。

审计是纯函数：artifacts -> {score, details}。本包只提供少量内置审计，
用于驱动配置过滤（required_artifacts / 手动审计 / 分类）与 CLI 输出。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple


class ScoringModes:
    NUMERIC = "numeric"
    BINARY = "binary"
    MANUAL = "manual"
    INFORMATIVE = "informative"
    NOT_APPLICABLE = "notApplicable"
    ERROR = "error"


@dataclass(frozen=True)
class AuditMeta:
    id: str
    title: str
    description: str
    required_artifacts: Tuple[str, ...]
    failure_title: Optional[str] = None
    score_display_mode: str = ScoringModes.BINARY
    supported_modes: Optional[Tuple[str, ...]] = None


class Audit:
    meta: Optional[AuditMeta] = None

    @classmethod
    def audit(cls, artifacts: Mapping[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError(f"{cls.__name__} has no audit() method")

    @classmethod
    def is_base_implementation(cls) -> bool:
        return getattr(cls.audit, "__func__", None) is Audit.audit.__func__


def missing_artifacts(meta: AuditMeta, artifacts: Mapping[str, Any]) -> list:
    """缺失或为异常值的必需产物 id。"""
    out = []
    for artifact_id in meta.required_artifacts:
        value = artifacts.get(artifact_id)
        if artifact_id not in artifacts or isinstance(value, BaseException):
            out.append(artifact_id)
    return out


def run_audits(artifacts: Mapping[str, Any], config: Any) -> Dict[str, Dict[str, Any]]:
    """依次执行计划中的审计；必需产物不可用时记为 error，而不是抛出。"""
    results: Dict[str, Dict[str, Any]] = {}
    for defn in config.audits or ():
        impl = defn.implementation
        meta = impl.meta
        missing = missing_artifacts(meta, artifacts)
        if missing and meta.score_display_mode != ScoringModes.MANUAL:
            results[meta.id] = {
                "id": meta.id,
                "title": meta.title,
                "score": None,
                "score_display_mode": ScoringModes.ERROR,
                "error_message": f"Required {', '.join(missing)} gatherer did not run.",
            }
            continue
        context = {"options": dict(defn.options), "settings": config.settings}
        try:
            product = impl.audit(artifacts, context)
        except Exception as e:
            results[meta.id] = {
                "id": meta.id,
                "title": meta.title,
                "score": None,
                "score_display_mode": ScoringModes.ERROR,
                "error_message": str(e),
            }
            continue
        score = product.get("score")
        passed = score is not None and score >= 0.9
        results[meta.id] = {
            "id": meta.id,
            "title": meta.title if passed or not meta.failure_title else meta.failure_title,
            "score": score,
            "score_display_mode": meta.score_display_mode,
            "details": product.get("details"),
        }
    return results
