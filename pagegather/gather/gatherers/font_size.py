"""
pagegather.gather.gatherers.font_size
统计可见文本的字号分布：总文本长度、字号小于阈值的文本长度及前若干个失败样本。
"""

from __future__ import annotations

from typing import Any, Dict

from ..base_gatherer import BaseGatherer, GathererMeta, TransitionalContext

MINIMAL_LEGIBLE_FONT_SIZE_PX = 12
MAX_FAILING_ITEMS = 50

COLLECT_FONT_SIZES = """(minFontSize, maxItems) => {
  const walker = document.createTreeWalker(document.body || document, NodeFilter.SHOW_TEXT);
  const bySelector = new Map();
  let totalTextLength = 0;
  let failingTextLength = 0;
  while (walker.nextNode()) {
    const node = walker.currentNode;
    const text = node.textContent.trim();
    const parent = node.parentElement;
    if (!text || !parent) continue;
    if (['SCRIPT', 'STYLE', 'NOSCRIPT', 'TEMPLATE'].includes(parent.tagName)) continue;
    const style = getComputedStyle(parent);
    if (style.display === 'none' || style.visibility === 'hidden') continue;
    const fontSize = parseFloat(style.fontSize);
    totalTextLength += text.length;
    if (fontSize >= minFontSize) continue;
    failingTextLength += text.length;
    const selector = parent.tagName.toLowerCase() + (parent.id ? '#' + parent.id : '') +
      (parent.classList.length ? '.' + Array.from(parent.classList).join('.') : '');
    const item = bySelector.get(selector) || {selector, font_size: fontSize, text_length: 0};
    item.text_length += text.length;
    bySelector.set(selector, item);
  }
  const failing = Array.from(bySelector.values())
    .sort((a, b) => b.text_length - a.text_length)
    .slice(0, maxItems);
  return {
    total_text_length: totalTextLength,
    analyzed_failing_text_length: failingTextLength,
    failing,
  };
}"""


class FontSize(BaseGatherer):
    meta = GathererMeta(supported_modes=("snapshot", "navigation"))

    async def get_artifact(self, context: TransitionalContext) -> Dict[str, Any]:
        return await context.driver.execution_context.evaluate(
            COLLECT_FONT_SIZES,
            args=[MINIMAL_LEGIBLE_FONT_SIZE_PX, MAX_FAILING_ITEMS],
            use_isolation=True,
        )
