"""
pagegather.config.plugin
插件解析与合并。

插件是一个可导入的模块（pagegather-plugin-foo 对应模块 pagegather_plugin_foo），
模块级变量 plugin 为 dict：
  {"audits": [{"path": ...}], "category": {...}, "groups": {...}}
解析后以插件名为 category id、以 "<插件名>-<组名>" 为 group id 合并进配置。
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, Dict, List, Optional

from ..lib.errors import ConfigError
from .config_helpers import merge_config_fragment
from .validation import assert_valid_plugin_name

logger = logging.getLogger(__name__)

ALLOWED_PLUGIN_KEYS = {"audits", "category", "groups"}
ALLOWED_CATEGORY_KEYS = {"title", "description", "manual_description", "audit_refs", "supported_modes"}


def _module_name(plugin_name: str) -> str:
    return plugin_name.split("/")[-1].replace("-", "_")


def _parse_audits(audits: Any, plugin_name: str) -> List[Dict[str, Any]]:
    if not isinstance(audits, list):
        raise ConfigError(f"{plugin_name} has no valid audits array.")
    parsed = []
    for audit in audits:
        if not isinstance(audit, dict) or not isinstance(audit.get("path"), str):
            raise ConfigError(f"{plugin_name} has an invalid audit path.")
        parsed.append({"path": audit["path"]})
    return parsed


def _parse_category(category: Any, plugin_name: str) -> Dict[str, Any]:
    if not isinstance(category, dict):
        raise ConfigError(f"{plugin_name} has no valid category.")
    unknown = set(category) - ALLOWED_CATEGORY_KEYS
    if unknown:
        raise ConfigError(f"{plugin_name} has unrecognized category properties: {', '.join(sorted(unknown))}")
    if not isinstance(category.get("title"), str):
        raise ConfigError(f"{plugin_name} has no valid category title.")
    audit_refs = category.get("audit_refs")
    if not isinstance(audit_refs, list) or not audit_refs:
        raise ConfigError(f"{plugin_name} has no valid auditRefs.")

    parsed_refs = []
    for ref in audit_refs:
        if not isinstance(ref, dict) or not isinstance(ref.get("id"), str):
            raise ConfigError(f"{plugin_name} has an invalid auditRef id.")
        weight = ref.get("weight", 0)
        if not isinstance(weight, (int, float)):
            raise ConfigError(f"{plugin_name} has an invalid auditRef weight.")
        parsed = {"id": ref["id"], "weight": weight}
        if ref.get("group"):
            # 组名加上插件前缀，避免与内置分组冲突
            parsed["group"] = f"{plugin_name}-{ref['group']}"
        parsed_refs.append(parsed)

    out = {k: v for k, v in category.items() if k != "audit_refs"}
    out["audit_refs"] = parsed_refs
    return out


def _parse_groups(groups: Any, plugin_name: str) -> Optional[Dict[str, Any]]:
    if groups is None:
        return None
    if not isinstance(groups, dict):
        raise ConfigError(f"{plugin_name} groups json is not defined as an object.")
    parsed = {}
    for group_id, group in groups.items():
        if not isinstance(group, dict) or not isinstance(group.get("title"), str):
            raise ConfigError(f"{plugin_name} has a group not defined as an object with a title.")
        parsed[f"{plugin_name}-{group_id}"] = {"title": group["title"], "description": group.get("description", "")}
    return parsed


def parse_plugin(plugin_json: Any, plugin_name: str) -> Dict[str, Any]:
    """校验插件 dict 并转换为可合并的配置片段。"""
    if not isinstance(plugin_json, dict):
        raise ConfigError(f"{plugin_name} is not defined as an object.")
    unknown = set(plugin_json) - ALLOWED_PLUGIN_KEYS
    if unknown:
        raise ConfigError(f"{plugin_name} has unrecognized properties: {', '.join(sorted(unknown))}")

    fragment: Dict[str, Any] = {
        "audits": _parse_audits(plugin_json.get("audits"), plugin_name),
        "categories": {plugin_name: _parse_category(plugin_json.get("category"), plugin_name)},
    }
    groups = _parse_groups(plugin_json.get("groups"), plugin_name)
    if groups:
        fragment["groups"] = groups
    return fragment


def load_plugin(plugin_name: str) -> Any:
    try:
        module = importlib.import_module(_module_name(plugin_name))
    except ImportError as e:
        raise ConfigError(f"Unable to locate plugin: `{plugin_name}`.") from e
    if not hasattr(module, "plugin"):
        raise ConfigError(f"{plugin_name} does not define a `plugin` object.")
    return module.plugin


def merge_plugins(
    config_json: Dict[str, Any],
    settings_overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """把配置与覆盖项里声明的插件合并进配置（会修改 config_json）。"""
    config_plugins = (config_json.get("settings") or {}).get("plugins") or []
    override_plugins = (settings_overrides or {}).get("plugins") or []
    plugin_names = list(dict.fromkeys([*config_plugins, *override_plugins]))

    for plugin_name in plugin_names:
        assert_valid_plugin_name(config_json, plugin_name)
        plugin_json = parse_plugin(load_plugin(plugin_name), plugin_name)
        logger.info("merging plugin %s", plugin_name)
        config_json = merge_config_fragment(config_json, plugin_json)
    return config_json
