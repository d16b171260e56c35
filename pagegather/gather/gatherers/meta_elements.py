"""pagegather.gather.gatherers.meta_elements：收集 <head> 中的 meta 标签。"""

from __future__ import annotations

from typing import Any, Dict, List

from ..base_gatherer import BaseGatherer, GathererMeta, TransitionalContext

COLLECT_META_ELEMENTS = """() => {
  return Array.from(document.head ? document.head.querySelectorAll('meta') : []).map(meta => ({
    name: meta.name ? meta.name.toLowerCase() : null,
    content: meta.content,
    property: meta.getAttribute('property'),
    http_equiv: meta.httpEquiv ? meta.httpEquiv.toLowerCase() : null,
    charset: meta.getAttribute('charset'),
  }));
}"""


class MetaElements(BaseGatherer):
    meta = GathererMeta(supported_modes=("snapshot", "navigation"))

    async def get_artifact(self, context: TransitionalContext) -> List[Dict[str, Any]]:
        return await context.driver.execution_context.evaluate(COLLECT_META_ELEMENTS, use_isolation=True)
