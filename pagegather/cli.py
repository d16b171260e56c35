"""
pagegather.cli
命令行入口：解析配置、启动 Playwright Chromium、执行采集与审计并输出 JSON。

  pagegather https://example.com --output out.json
  pagegather --print-config --config-path /abs/path/config.json
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional

from playwright.async_api import async_playwright

from .audits import run_audits
from .config.config import get_config_display_string, resolve_configuration
from .config.env import settings_overrides_from_env
from .config.types import ConfigContext
from .gather.navigation_runner import navigation_gather
from .gather.snapshot_runner import snapshot_gather
from .lib.errors import GatherError

logger = logging.getLogger(__name__)


def load_json_config(path: Optional[str]) -> Optional[Dict[str, Any]]:
    if not path:
        return None
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _split_csv(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    return [s.strip() for s in value.split(",") if s.strip()]


def build_config_context(args: Any) -> ConfigContext:
    """环境变量 < 命令行参数。"""
    overrides = settings_overrides_from_env(args.env_file)
    for key in ("only_categories", "only_audits", "skip_audits"):
        value = _split_csv(getattr(args, key))
        if value is not None:
            overrides[key] = value
    if args.form_factor:
        overrides["form_factor"] = args.form_factor
    return ConfigContext(
        config_path=os.path.abspath(args.config_path) if args.config_path else None,
        settings_overrides=overrides,
        skip_about_blank=True if args.skip_about_blank else None,
    )


async def run(args: Any) -> Dict[str, Any]:
    config_json = load_json_config(args.config_path)
    context = build_config_context(args)
    config, _ = resolve_configuration(config_json, context, args.mode)

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=args.headless)
        try:
            page = await browser.new_page()
            if args.mode == "snapshot":
                await page.goto(args.url)
                artifacts = await snapshot_gather(page, config)
            else:
                artifacts = await navigation_gather(args.url, page, config)
        finally:
            await browser.close()

    return {
        "artifacts": artifacts.to_dict(),
        "audits": run_audits(artifacts, config),
    }


def main(argv: Optional[List[str]] = None) -> int:
    import argparse

    p = argparse.ArgumentParser(description="Gather page artifacts over the Chrome DevTools Protocol.")
    p.add_argument("url", nargs="?", help="Target URL, e.g. https://example.com")
    p.add_argument("--config-path", type=str, default=None, help="Path to JSON config file (default: built-in config)")
    p.add_argument("--print-config", action="store_true", help="Print the resolved config and exit")
    p.add_argument("--mode", choices=["navigation", "snapshot"], default="navigation", help="Gather mode (default: navigation)")
    p.add_argument("--output", type=str, default=None, help="Write JSON result to this file instead of stdout")
    p.add_argument("--only-categories", type=str, default=None, help="Comma-separated category ids to run")
    p.add_argument("--only-audits", type=str, default=None, help="Comma-separated audit ids to run")
    p.add_argument("--skip-audits", type=str, default=None, help="Comma-separated audit ids to skip")
    p.add_argument("--form-factor", choices=["mobile", "desktop"], default=None, help="Override settings.form_factor")
    p.add_argument("--skip-about-blank", action="store_true", help="Do not visit about:blank before navigating")
    p.add_argument("--env-file", type=str, default=None, help="Path to .env file with PAGEGATHER_* overrides")
    p.add_argument("--no-headless", dest="headless", action="store_false", help="Run browser in headed mode")
    p.set_defaults(headless=True)
    p.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = p.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.print_config:
            config, _ = resolve_configuration(load_json_config(args.config_path), build_config_context(args), args.mode)
            print(get_config_display_string(config))
            return 0
        if not args.url:
            p.error("url is required unless --print-config is given")
        result = asyncio.run(run(args))
    except GatherError as e:
        logger.error("[%s] %s", e.code, e.friendly_message)
        return 1

    text = json.dumps(result, ensure_ascii=False, indent=2, default=str)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(text)
        logger.info("wrote %s", args.output)
    else:
        print(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
