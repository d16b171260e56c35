import argparse
import json
import os

import pytest

from pagegather import cli


ENV_NAMES = ("PAGEGATHER_ENV_FILE", "PAGEGATHER_FORM_FACTOR", "PAGEGATHER_ONLY_CATEGORIES")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    yield
    # load_dotenv 直接写入 os.environ
    for name in ENV_NAMES:
        os.environ.pop(name, None)


def test_print_config_outputs_resolved_plan(capsys):
    assert cli.main(["--print-config", "--only-categories", "seo"]) == 0

    printed = json.loads(capsys.readouterr().out)
    assert printed["settings"]["only_categories"] == ["seo"]
    assert list(printed["categories"]) == ["seo"]
    assert [n["id"] for n in printed["navigations"]] == ["default"]


def test_command_line_overrides_env_file(tmp_path):
    env_file = tmp_path / "custom.env"
    env_file.write_text("PAGEGATHER_FORM_FACTOR=desktop\nPAGEGATHER_ONLY_CATEGORIES=seo,accessibility\n")

    parser_args = argparse.Namespace(
        env_file=str(env_file),
        only_categories="seo",
        only_audits=None,
        skip_audits="viewport",
        form_factor=None,
        config_path=None,
        skip_about_blank=True,
    )

    context = cli.build_config_context(parser_args)

    assert context.settings_overrides["form_factor"] == "desktop"
    assert context.settings_overrides["only_categories"] == ["seo"]
    assert context.settings_overrides["skip_audits"] == ["viewport"]
    assert context.skip_about_blank is True
    assert context.config_path is None


def test_relative_config_path_is_made_absolute(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"extends": "pagegather:default", "settings": {"only_audits": ["viewport"]}}))

    assert cli.main(["--print-config", "--config-path", "config.json"]) == 0


def test_url_is_required_without_print_config():
    with pytest.raises(SystemExit):
        cli.main([])


def test_config_error_exits_with_status_one(tmp_path):
    config_file = tmp_path / "bad.json"
    config_file.write_text(json.dumps({"extends": "something-else"}))

    assert cli.main(["--print-config", "--config-path", str(config_file)]) == 1
