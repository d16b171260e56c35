"""
pagegather.config.config_helpers
配置解析的通用工具：深拷贝、片段合并、按 id 合并数组、
采集器/审计引用的解析（注册表 id、模块路径或相对 config_dir 的文件路径）。
"""

from __future__ import annotations

import copy
import importlib
import importlib.util
import inspect
import logging
import os
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..audits.audit import Audit
from ..gather.base_gatherer import BaseGatherer
from ..lib.errors import ConfigError
from .types import AuditDefn, GathererDefn, GathererFactory

logger = logging.getLogger(__name__)


def deep_clone_config_json(config_json: Dict[str, Any]) -> Dict[str, Any]:
    """深拷贝配置；采集器实例与审计类保持原引用。"""
    cloned = copy.deepcopy({k: v for k, v in config_json.items() if k not in ("artifacts", "audits")})

    if config_json.get("artifacts") is not None:
        cloned["artifacts"] = [_clone_artifact_json(a) for a in config_json["artifacts"]]
    if config_json.get("audits") is not None:
        cloned["audits"] = [_clone_audit_json(a) for a in config_json["audits"]]
    return cloned


def _clone_artifact_json(artifact_json: Any) -> Any:
    if not isinstance(artifact_json, dict):
        return artifact_json
    cloned = {k: copy.deepcopy(v) for k, v in artifact_json.items() if k != "gatherer"}
    gatherer = artifact_json.get("gatherer")
    if isinstance(gatherer, dict):
        gatherer = dict(gatherer)
    cloned["gatherer"] = gatherer
    return cloned


def _clone_audit_json(audit_json: Any) -> Any:
    if not isinstance(audit_json, dict):
        return audit_json
    cloned = dict(audit_json)
    if "options" in cloned:
        cloned["options"] = copy.deepcopy(cloned["options"])
    return cloned


def merge_config_fragment(base: Any, extension: Any, override_arrays: bool = False) -> Any:
    """把 extension 合并进 base（会修改 base）。

    - 列表：默认追加 base 中没有的元素，override_arrays 时直接覆盖；
    - dict：逐键递归，settings 下的列表一律覆盖；
    - 其他：extension 覆盖 base。
    """
    if base is None:
        return extension
    if extension is None:
        return base

    if isinstance(extension, list):
        if override_arrays:
            return extension
        if not isinstance(base, list):
            raise TypeError(f"Expected array but got {type(base).__name__}")
        merged = list(base)
        for item in extension:
            if not any(existing == item for existing in merged):
                merged.append(item)
        return merged

    if isinstance(extension, dict):
        if not isinstance(base, dict):
            raise TypeError(f"Expected object but got {type(base).__name__}")
        for key, value in extension.items():
            local_override = override_arrays or (key == "settings" and isinstance(base.get(key), dict))
            base[key] = merge_config_fragment(base.get(key), value, local_override)
        return base

    return extension


def merge_config_fragment_array_by_key(
    base_array: Optional[List[Any]],
    extension_array: Optional[List[Any]],
    key_fn: Callable[[Any], Any],
) -> List[Any]:
    """按 key 合并两个数组：key 相同的元素深合并，其余追加。"""
    merged = list(base_array or [])
    index_by_key: Dict[Any, int] = {}
    for i, item in enumerate(merged):
        index_by_key[key_fn(item)] = i

    for item in extension_array or []:
        key = key_fn(item)
        if key is not None and key in index_by_key:
            i = index_by_key[key]
            merged[i] = merge_config_fragment(merged[i], item)
        else:
            merged.append(item)
    return merged


def _load_module_from_file(file_path: str, config_dir: Optional[str]) -> Any:
    if not os.path.isabs(file_path):
        if not config_dir:
            raise ConfigError(f"Unable to locate {file_path}: relative paths require a configPath")
        file_path = os.path.join(config_dir, file_path)
    if not os.path.isfile(file_path):
        raise ConfigError(f"Unable to locate {file_path}")
    module_name = "pagegather_user_" + os.path.splitext(os.path.basename(file_path))[0].replace("-", "_")
    spec = importlib.util.spec_from_file_location(module_name, file_path)
    if spec is None or spec.loader is None:
        raise ConfigError(f"Unable to load {file_path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _find_single_subclass(module: Any, base_class: type, path: str) -> type:
    candidates = [
        obj for _, obj in inspect.getmembers(module, inspect.isclass)
        if issubclass(obj, base_class) and obj is not base_class and obj.__module__ == module.__name__
    ]
    if len(candidates) != 1:
        raise ConfigError(
            f"{path} must define exactly one {base_class.__name__} subclass (found {len(candidates)})"
        )
    return candidates[0]


def require_from_path(path: str, base_class: type, config_dir: Optional[str] = None) -> Any:
    """按路径加载对象。

    支持：
      - "package.module:Name"
      - "relative/or/absolute/file.py[:Name]"（相对路径基于 config_dir）
      - "package.module"（模块内唯一的 base_class 子类）
    """
    target, _, attr = path.partition(":")
    if target.endswith(".py"):
        module = _load_module_from_file(target, config_dir)
    else:
        try:
            module = importlib.import_module(target)
        except ImportError as e:
            raise ConfigError(f"Unable to locate {path}: {e}") from e

    if attr:
        if not hasattr(module, attr):
            raise ConfigError(f"{target} has no attribute {attr}")
        return getattr(module, attr)
    return _find_single_subclass(module, base_class, path)


def resolve_gatherer_to_defn(
    gatherer_json: Any,
    registry: Optional[Mapping[str, GathererFactory]] = None,
    config_dir: Optional[str] = None,
) -> GathererDefn:
    """采集器引用 -> GathererDefn。

    gatherer_json 可以是：注册表 id、路径字符串、采集器实例、采集器类，
    或 {"path"/"instance"/"implementation": ...} 形式的 dict。
    """
    if isinstance(gatherer_json, dict):
        defn = dict(gatherer_json)
    elif isinstance(gatherer_json, str):
        defn = {"path": gatherer_json}
    elif inspect.isclass(gatherer_json):
        defn = {"implementation": gatherer_json}
    elif gatherer_json is not None:
        defn = {"instance": gatherer_json}
    else:
        raise ConfigError("Invalid Gatherer: None")

    path = defn.get("path")
    if defn.get("instance") is not None:
        instance = defn["instance"]
        return GathererDefn(instance=instance, path=path, implementation=type(instance))
    if defn.get("implementation") is not None:
        implementation = defn["implementation"]
        return GathererDefn(instance=implementation(), path=path, implementation=implementation)
    if path:
        if registry and path in registry:
            instance = registry[path]()
            return GathererDefn(instance=instance, path=path, implementation=type(instance))
        loaded = require_from_path(path, BaseGatherer, config_dir)
        instance = loaded() if inspect.isclass(loaded) else loaded
        return GathererDefn(instance=instance, path=path, implementation=type(instance))

    raise ConfigError(f"Invalid expanded Gatherer: {defn!r}")


def expand_audit_shorthand(audit_json: Any) -> Dict[str, Any]:
    if isinstance(audit_json, str):
        return {"path": audit_json, "options": {}}
    if inspect.isclass(audit_json):
        return {"implementation": audit_json, "options": {}}
    if isinstance(audit_json, dict):
        expanded = dict(audit_json)
        expanded["options"] = expanded.get("options") or {}
        return expanded
    raise ConfigError(f"Invalid Audit type {audit_json!r}")


def merge_options_of_items(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """同一审计出现多次时合并 options（后出现的覆盖），保留首次出现的位置。"""
    merged: List[Dict[str, Any]] = []
    for item in items:
        key = item.get("path") or item.get("implementation")
        existing = next(
            (m for m in merged if (m.get("path") or m.get("implementation")) == key), None
        )
        if existing is None:
            merged.append(item)
            continue
        existing["options"] = {**existing.get("options", {}), **item.get("options", {})}
    return merged


def resolve_audits_to_defns(
    audits_json: Optional[List[Any]],
    registry: Optional[Mapping[str, type]] = None,
    config_dir: Optional[str] = None,
) -> Optional[List[AuditDefn]]:
    if audits_json is None:
        return None

    expanded = []
    for audit_json in audits_json:
        item = expand_audit_shorthand(audit_json)
        if item.get("implementation") is None:
            path = item.get("path")
            if not path:
                raise ConfigError(f"Invalid Audit type {audit_json!r}")
            if registry and path in registry:
                item["implementation"] = registry[path]
            else:
                item["implementation"] = require_from_path(path, Audit, config_dir)
        expanded.append(item)

    return [
        AuditDefn(implementation=item["implementation"], path=item.get("path"), options=dict(item["options"]))
        for item in merge_options_of_items(expanded)
    ]
