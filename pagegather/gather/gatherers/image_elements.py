"""
pagegather.gather.gatherers.image_elements
收集 <img> 元素与 CSS 背景图：src、alt（缺失为 None）、显示尺寸与自然尺寸。
"""

from __future__ import annotations

from typing import Any, Dict, List

from ..base_gatherer import BaseGatherer, GathererMeta, TransitionalContext

COLLECT_IMAGE_ELEMENTS = """() => {
  const images = Array.from(document.querySelectorAll('img')).map(img => {
    const rect = img.getBoundingClientRect();
    return {
      src: img.currentSrc || img.src,
      alt: img.hasAttribute('alt') ? img.getAttribute('alt') : null,
      is_css: false,
      is_picture: !!img.parentElement && img.parentElement.tagName === 'PICTURE',
      displayed_width: img.width,
      displayed_height: img.height,
      natural_width: img.naturalWidth,
      natural_height: img.naturalHeight,
      is_in_shadow_dom: img.getRootNode() instanceof ShadowRoot,
      client_rect: {top: rect.top, bottom: rect.bottom, left: rect.left, right: rect.right},
      loading: img.loading || null,
    };
  });
  const cssImages = [];
  for (const el of document.body ? document.body.querySelectorAll('*') : []) {
    const bg = getComputedStyle(el).backgroundImage;
    const m = /^url\\("?([^")]+)"?\\)$/.exec(bg || '');
    if (!m) continue;
    const rect = el.getBoundingClientRect();
    cssImages.push({
      src: m[1],
      alt: null,
      is_css: true,
      is_picture: false,
      displayed_width: rect.width,
      displayed_height: rect.height,
      natural_width: 0,
      natural_height: 0,
      is_in_shadow_dom: false,
      client_rect: {top: rect.top, bottom: rect.bottom, left: rect.left, right: rect.right},
      loading: null,
    });
  }
  return images.concat(cssImages);
}"""


class ImageElements(BaseGatherer):
    meta = GathererMeta(supported_modes=("snapshot", "navigation"))

    async def get_artifact(self, context: TransitionalContext) -> List[Dict[str, Any]]:
        session = context.driver.default_session
        session.set_next_protocol_timeout(20_000)
        return await context.driver.execution_context.evaluate(COLLECT_IMAGE_ELEMENTS, use_isolation=True)
