import copy

import pytest

from conftest import RecordingGatherer
from pagegather.config.config import config_to_jsonable, get_config_display_string, resolve_configuration
from pagegather.config.types import ArtifactDependency, ConfigContext
from pagegather.gather.base_gatherer import DependencySymbol
from pagegather.lib.errors import ConfigError

DEPENDENCY_SYMBOL = DependencySymbol("Dependency")


def dependency_config(order):
    gatherers = {
        "Dependency": RecordingGatherer(["img"], symbol=DEPENDENCY_SYMBOL),
        "Dependent": RecordingGatherer(dependencies={"ImageElements": DEPENDENCY_SYMBOL}),
    }
    return {
        "artifacts": [{"id": artifact_id, "gatherer": gatherers[artifact_id]} for artifact_id in order],
        "navigations": [{"id": "default", "artifacts": list(order)}],
    }


def artifact_ids(config):
    return [a.id for a in config.artifacts]


def audit_ids(config):
    return [a.implementation.meta.id for a in config.audits]


def test_default_config_resolves():
    config, warnings = resolve_configuration()

    assert warnings == []
    assert config.settings.form_factor == "mobile"
    assert [n.id for n in config.navigations] == ["default"]
    assert "FullPageScreenshot" in artifact_ids(config)
    assert set(config.categories) == {"accessibility", "best-practices", "seo"}


def test_empty_config_resolves_to_empty_plan():
    config, warnings = resolve_configuration({})

    assert warnings == []
    assert config.artifacts is None
    assert config.navigations is None
    assert config.audits is None


def test_resolution_is_idempotent_and_does_not_mutate_input():
    raw = {"extends": "pagegather:default", "settings": {"only_categories": ["seo"]}}
    before = copy.deepcopy(raw)

    first, _ = resolve_configuration(raw)
    second, _ = resolve_configuration(raw)

    assert raw == before
    assert config_to_jsonable(first) == config_to_jsonable(second)


def test_dependency_declared_before_dependent_resolves():
    config, _ = resolve_configuration(dependency_config(["Dependency", "Dependent"]))

    dependent = next(a for a in config.artifacts if a.id == "Dependent")
    assert dependent.dependencies == {"ImageElements": ArtifactDependency(id="Dependency")}


def test_dependent_before_dependency_fails():
    with pytest.raises(ConfigError, match="Failed to find dependency"):
        resolve_configuration(dependency_config(["Dependent", "Dependency"]))


def test_dependency_order_is_checked_across_navigations():
    raw = dependency_config(["Dependency", "Dependent"])
    raw["navigations"] = [
        {"id": "first", "artifacts": ["Dependent"]},
        {"id": "second", "artifacts": ["Dependency"]},
    ]
    with pytest.raises(ConfigError, match="Failed to find dependency"):
        resolve_configuration(raw)

    raw["navigations"].reverse()
    config, _ = resolve_configuration(raw)
    assert [n.id for n in config.navigations] == ["second", "first"]


def test_timespan_artifact_cannot_depend_on_snapshot_artifact():
    symbol = DependencySymbol("SnapshotOnly")
    raw = {
        "artifacts": [
            {"id": "SnapshotOnly", "gatherer": RecordingGatherer(1, modes=("snapshot",), symbol=symbol)},
            {"id": "Timespan", "gatherer": RecordingGatherer(modes=("timespan",), dependencies={"Dep": symbol})},
        ],
    }
    with pytest.raises(ConfigError, match="is invalid"):
        resolve_configuration(raw, gather_mode="timespan")


@pytest.mark.parametrize("mode", ["snapshot", "timespan", "navigation"])
def test_gather_mode_filter_keeps_only_supporting_artifacts(mode):
    modes = {
        "SnapshotOnly": ("snapshot",),
        "TimespanOnly": ("timespan",),
        "NavigationOnly": ("navigation",),
        "SnapshotNavigation": ("snapshot", "navigation"),
        "Everywhere": ("snapshot", "timespan", "navigation"),
    }
    raw = {
        "artifacts": [{"id": k, "gatherer": RecordingGatherer(1, modes=v)} for k, v in modes.items()],
        "navigations": [{"id": "default", "artifacts": list(modes)}],
    }

    config, _ = resolve_configuration(raw, gather_mode=mode)

    expected = [k for k, v in modes.items() if mode in v]
    assert artifact_ids(config) == expected
    assert [a.id for a in config.navigations[0].artifacts] == expected


def test_only_audits_keeps_required_artifacts_and_screenshot():
    context = ConfigContext(settings_overrides={"only_audits": ["color-contrast"]})

    config, _ = resolve_configuration(None, context)

    assert audit_ids(config) == ["full-page-screenshot", "color-contrast"]
    assert artifact_ids(config) == ["Accessibility", "FullPageScreenshot"]
    assert [a.id for a in config.navigations[0].artifacts] == ["Accessibility", "FullPageScreenshot"]
    assert list(config.categories) == ["accessibility"]
    assert [ref["id"] for ref in config.categories["accessibility"]["audit_refs"]] == ["color-contrast"]


def test_only_categories_keeps_transitive_dependencies():
    context = ConfigContext(settings_overrides={"only_categories": ["best-practices"]})

    config, _ = resolve_configuration(None, context)

    assert set(audit_ids(config)) == {"full-page-screenshot", "errors-in-console", "doctype"}
    # MainDocumentContent 依赖 DevtoolsLog
    assert set(artifact_ids(config)) == {
        "DevtoolsLog", "ConsoleMessages", "MainDocumentContent", "FullPageScreenshot",
    }


def test_skip_audits_can_drop_screenshot():
    context = ConfigContext(settings_overrides={
        "only_audits": ["color-contrast"],
        "skip_audits": ["full-page-screenshot"],
    })
    config, _ = resolve_configuration(None, context)

    assert audit_ids(config) == ["color-contrast"]
    assert artifact_ids(config) == ["Accessibility"]


def test_disable_full_page_screenshot_drops_artifact_and_audit():
    context = ConfigContext(settings_overrides={"disable_full_page_screenshot": True})
    config, _ = resolve_configuration(None, context)

    assert "FullPageScreenshot" not in artifact_ids(config)
    assert "full-page-screenshot" not in audit_ids(config)


def test_manual_only_categories_are_dropped_after_filtering():
    context = ConfigContext(settings_overrides={"only_audits": ["structured-data"]})
    config, _ = resolve_configuration(None, context)

    assert "seo" not in config.categories


def test_timespan_mode_switches_to_devtools_throttling():
    config, _ = resolve_configuration(None, gather_mode="timespan")
    assert config.settings.throttling_method == "devtools"
    assert [a.id for a in config.artifacts] == ["ConsoleMessages", "FullPageScreenshot"]
    assert list(config.categories) == ["best-practices"]


def test_non_simulated_throttling_raises_quiet_windows():
    raw = {
        "extends": "pagegather:default",
        "settings": {"throttling_method": "devtools"},
        "navigations": [{"id": "default", "cpu_quiet_threshold_ms": 0, "network_quiet_threshold_ms": 0}],
    }
    config, _ = resolve_configuration(raw)

    navigation = config.navigations[0]
    assert navigation.cpu_quiet_threshold_ms >= 5250
    assert navigation.network_quiet_threshold_ms >= 5250


def test_first_navigation_with_warn_mode_produces_warning():
    raw = dependency_config(["Dependency"])
    raw["navigations"][0]["load_failure_mode"] = "warn"

    config, warnings = resolve_configuration(raw)

    assert len(warnings) == 1
    assert "first navigation" in warnings[0]
    assert config.navigations[0].load_failure_mode == "warn"


def test_settings_overrides_beat_config_settings():
    raw = {"extends": "pagegather:default", "settings": {"locale": "de-DE", "max_wait_for_load": 1000}}
    context = ConfigContext(settings_overrides={"locale": "fr-FR"}, skip_about_blank=True)

    config, _ = resolve_configuration(raw, context)

    assert config.settings.locale == "fr-FR"
    assert config.settings.max_wait_for_load == 1000
    assert config.settings.skip_about_blank is True


@pytest.mark.parametrize("raw, message", [
    ({"extends": "something-else"}, "only valid extension"),
    ({"navigations": [{"id": "default"}]}, "Cannot use navigations without defining artifacts"),
    (
        {"artifacts": [{"id": "Snap", "gatherer": "meta-elements"}], "navigations": [{"id": "n", "artifacts": ["Nope"]}]},
        'Unrecognized artifact "Nope" in navigation "n"',
    ),
    ({"artifacts": [{"id": "Broken", "gatherer": "does-not-exist"}]}, ""),
    (
        {"artifacts": [{"id": "A", "gatherer": "meta-elements"}], "navigations": [{"id": "n", "artifacts": ["A"], "bogus": 1}]},
        "Unrecognized properties",
    ),
])
def test_invalid_configs_raise_config_error(raw, message):
    with pytest.raises(ConfigError, match=message):
        resolve_configuration(raw)


def test_relative_config_path_is_rejected():
    with pytest.raises(ConfigError, match="absolute path"):
        resolve_configuration({}, ConfigContext(config_path="relative/config.json"))


def test_gatherer_loaded_from_file(tmp_path):
    (tmp_path / "custom_gatherer.py").write_text(
        "from pagegather.gather.base_gatherer import BaseGatherer, GathererMeta\n"
        "\n"
        "class Title(BaseGatherer):\n"
        "    meta = GathererMeta(supported_modes=('snapshot', 'navigation'))\n"
        "\n"
        "    async def get_artifact(self, context):\n"
        "        return 'title'\n"
    )
    raw = {"artifacts": [{"id": "Title", "gatherer": "custom_gatherer.py"}]}

    config, _ = resolve_configuration(raw, ConfigContext(config_path=str(tmp_path / "config.json")))

    assert config.artifacts[0].gatherer.instance.name == "Title"


def test_display_string_lists_artifacts():
    config, _ = resolve_configuration()
    text = get_config_display_string(config)

    assert '"id": "DevtoolsLog"' in text
    assert '"gatherer": "devtools-log"' in text


PLUGIN_SOURCE = '''
plugin = {
    "audits": [{"path": "doctype"}],
    "category": {
        "title": "Demo",
        "audit_refs": [{"id": "doctype", "weight": 1, "group": "checks"}],
    },
    "groups": {"checks": {"title": "Checks"}},
}
'''


def test_plugin_adds_category_and_prefixed_groups(tmp_path, monkeypatch):
    (tmp_path / "pagegather_plugin_demo.py").write_text(PLUGIN_SOURCE)
    monkeypatch.syspath_prepend(str(tmp_path))

    config, _ = resolve_configuration(
        {"extends": "pagegather:default", "settings": {"plugins": ["pagegather-plugin-demo"]}}
    )

    category = config.categories["pagegather-plugin-demo"]
    assert category["audit_refs"] == [{"id": "doctype", "weight": 1, "group": "pagegather-plugin-demo-checks"}]
    assert config.groups["pagegather-plugin-demo-checks"]["title"] == "Checks"
    assert audit_ids(config).count("doctype") == 1


def test_plugin_name_must_use_prefix():
    with pytest.raises(ConfigError, match="does not start with"):
        resolve_configuration({"extends": "pagegather:default", "settings": {"plugins": ["demo"]}})


def test_missing_plugin_module_is_config_error():
    with pytest.raises(ConfigError, match="Unable to locate plugin"):
        resolve_configuration(
            {"extends": "pagegather:default", "settings": {"plugins": ["pagegather-plugin-not-installed"]}}
        )
