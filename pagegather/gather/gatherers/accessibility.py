"""
pagegather.gather.gatherers.accessibility
页面内的无障碍检查（当前为文本颜色对比度），结果按规则 id 汇总为 violations。
"""

from __future__ import annotations

from typing import Any, Dict

from ..base_gatherer import BaseGatherer, GathererMeta, TransitionalContext

# 在隔离世界中执行；按 WCAG 2 AA 计算文本与背景的对比度
RUN_A11Y_CHECKS = """() => {
  function parseColor(value) {
    const m = /rgba?\\(([^)]+)\\)/.exec(value || '');
    if (!m) return null;
    const parts = m[1].split(',').map(s => parseFloat(s.trim()));
    return {r: parts[0], g: parts[1], b: parts[2], a: parts.length > 3 ? parts[3] : 1};
  }
  function luminance(c) {
    const channel = v => {
      v = v / 255;
      return v <= 0.03928 ? v / 12.92 : Math.pow((v + 0.055) / 1.055, 2.4);
    };
    return 0.2126 * channel(c.r) + 0.7152 * channel(c.g) + 0.0722 * channel(c.b);
  }
  function backgroundOf(el) {
    for (let node = el; node && node.nodeType === 1; node = node.parentElement) {
      const bg = parseColor(getComputedStyle(node).backgroundColor);
      if (bg && bg.a > 0) return bg;
    }
    return {r: 255, g: 255, b: 255, a: 1};
  }
  function snippet(el) {
    const html = el.outerHTML || '';
    return html.length > 200 ? html.slice(0, 200) + '…' : html;
  }
  const nodes = [];
  let checked = 0;
  for (const el of document.body ? document.body.querySelectorAll('*') : []) {
    const hasText = Array.from(el.childNodes).some(n => n.nodeType === 3 && n.textContent.trim());
    if (!hasText) continue;
    const style = getComputedStyle(el);
    if (style.visibility === 'hidden' || style.display === 'none') continue;
    const fg = parseColor(style.color);
    if (!fg) continue;
    checked++;
    const l1 = luminance(fg);
    const l2 = luminance(backgroundOf(el));
    const ratio = (Math.max(l1, l2) + 0.05) / (Math.min(l1, l2) + 0.05);
    const fontSize = parseFloat(style.fontSize);
    const isLarge = fontSize >= 24 || (fontSize >= 18.66 && parseInt(style.fontWeight, 10) >= 700);
    const expected = isLarge ? 3 : 4.5;
    if (ratio < expected) {
      nodes.push({snippet: snippet(el), contrast_ratio: Math.round(ratio * 100) / 100, expected_ratio: expected});
    }
  }
  const violations = nodes.length ? [{id: 'color-contrast', impact: 'serious', nodes}] : [];
  return {violations, passes: nodes.length ? [] : [{id: 'color-contrast'}], checked_elements: checked};
}"""


class Accessibility(BaseGatherer):
    meta = GathererMeta(supported_modes=("snapshot", "navigation"))

    async def get_artifact(self, context: TransitionalContext) -> Dict[str, Any]:
        session = context.driver.default_session
        # 页面较大时检查可能较慢
        session.set_next_protocol_timeout(60_000)
        return await context.driver.execution_context.evaluate(RUN_A11Y_CHECKS, use_isolation=True)
