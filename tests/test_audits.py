"""审计执行：必需产物缺失或失败时记为 error，手动审计不依赖产物。"""

from types import SimpleNamespace

from pagegather.audits import run_audits
from pagegather.audits.accessibility import ColorContrast, LogicalTabOrder
from pagegather.audits.best_practices import Doctype, ErrorsInConsole
from pagegather.audits.full_page_screenshot import FullPageScreenshotAudit
from pagegather.config.types import AuditDefn
from pagegather.gather.results import ArtifactBag, Err, Ok


def make_config(*defns):
    return SimpleNamespace(audits=tuple(defns), settings=None)


def test_color_contrast_passes_without_violations():
    results = run_audits({"Accessibility": {"violations": []}}, make_config(AuditDefn(ColorContrast)))
    assert results["color-contrast"]["score"] == 1
    assert results["color-contrast"]["title"] == ColorContrast.meta.title


def test_color_contrast_failure_uses_failure_title():
    artifacts = {
        "Accessibility": {
            "violations": [
                {"id": "color-contrast", "nodes": [{"selector": "p.low"}]},
                {"id": "image-alt", "nodes": [{"selector": "img"}]},
            ],
        },
    }
    result = run_audits(artifacts, make_config(AuditDefn(ColorContrast)))["color-contrast"]
    assert result["score"] == 0
    assert result["title"] == ColorContrast.meta.failure_title
    assert result["details"]["items"] == [{"selector": "p.low"}]


def test_missing_artifact_becomes_audit_error():
    result = run_audits({}, make_config(AuditDefn(ColorContrast)))["color-contrast"]
    assert result["score"] is None
    assert result["score_display_mode"] == "error"
    assert result["error_message"] == "Required Accessibility gatherer did not run."


def test_errored_artifact_in_bag_becomes_audit_error():
    bag = ArtifactBag({
        "ConsoleMessages": Err(RuntimeError("boom")),
        "MainDocumentContent": Ok("<!DOCTYPE html><html></html>"),
    })
    results = run_audits(bag, make_config(AuditDefn(ErrorsInConsole), AuditDefn(Doctype)))
    assert results["errors-in-console"]["score_display_mode"] == "error"
    assert results["doctype"]["score"] == 1


def test_manual_audit_runs_without_artifacts():
    result = run_audits({}, make_config(AuditDefn(LogicalTabOrder)))["logical-tab-order"]
    assert result["score_display_mode"] == "manual"
    assert result["score"] == 0


def test_errors_in_console_honours_ignored_patterns():
    artifacts = {
        "ConsoleMessages": [
            {"level": "error", "text": "Failed to load favicon.ico"},
            {"level": "warning", "text": "deprecated API"},
        ],
    }
    plain = run_audits(artifacts, make_config(AuditDefn(ErrorsInConsole)))
    assert plain["errors-in-console"]["score"] == 0

    ignored = run_audits(
        artifacts,
        make_config(AuditDefn(ErrorsInConsole, options={"ignored_patterns": ["FAVICON"]})),
    )
    assert ignored["errors-in-console"]["score"] == 1
    assert ignored["errors-in-console"]["details"]["items"] == []


def test_doctype_requires_html_doctype():
    result = run_audits({"MainDocumentContent": "  <html></html>"}, make_config(AuditDefn(Doctype)))
    assert result["doctype"]["score"] == 0
    assert result["doctype"]["title"] == Doctype.meta.failure_title


def test_full_page_screenshot_is_informative():
    screenshot = {"screenshot": {"data": "data:image/jpeg;base64,AA", "width": 10, "height": 20}, "nodes": {}}
    result = run_audits({"FullPageScreenshot": screenshot}, make_config(AuditDefn(FullPageScreenshotAudit)))
    entry = result["full-page-screenshot"]
    assert entry["score_display_mode"] == "informative"
    assert entry["details"]["type"] == "full-page-screenshot"
    assert entry["details"]["screenshot"]["height"] == 20
