"""pagegather.gather.gatherers.robots_txt：通过 Fetcher 拉取当前源站的 /robots.txt。"""

from __future__ import annotations

import logging
from typing import Any, Dict

from ...lib.url_utils import get_origin
from ..base_gatherer import BaseGatherer, GathererMeta, TransitionalContext

logger = logging.getLogger(__name__)


class RobotsTxt(BaseGatherer):
    meta = GathererMeta(supported_modes=("snapshot", "navigation"))

    async def get_artifact(self, context: TransitionalContext) -> Dict[str, Any]:
        origin = get_origin(context.url)
        if origin is None:
            return {"status": None, "content": None}
        robots_url = f"{origin}/robots.txt"
        try:
            response = await context.driver.fetcher.fetch_resource(robots_url)
        except TimeoutError as e:
            logger.warning("robots.txt fetch failed: %s", e)
            return {"status": None, "content": None, "error_message": str(e)}
        return {"status": response.status, "content": response.content}
