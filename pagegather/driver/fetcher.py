"""
pagegather.driver.fetcher
在页面上下文中直接拉取资源（Network.loadNetworkResource + IO.read），
可绕过 CORS，供 robots.txt 等采集器使用。
"""

from __future__ import annotations

import asyncio
import base64
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence


@dataclass
class FetchResponse:
    status: Optional[int]
    content: Optional[str]
    headers: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "content": self.content, "headers": self.headers}


class Fetcher:
    def __init__(self, session: Any) -> None:
        self.session = session

    async def fetch_resource(
        self,
        url: str,
        *,
        timeout_ms: int = 2000,
        response_headers: Sequence[str] = (),
    ) -> FetchResponse:
        """拉取任意资源；超时抛 TimeoutError('Timed out fetching resource')。"""
        started = time.monotonic()
        try:
            response = await asyncio.wait_for(self._load_network_resource(url), timeout_ms / 1000.0)
        except asyncio.TimeoutError:
            raise TimeoutError("Timed out fetching resource") from None

        headers = None
        if response["headers"] is not None:
            headers = {h: response["headers"][h] for h in response_headers if h in response["headers"]}

        status = response["status"]
        is_ok = status is not None and 200 <= status <= 299
        if not response["stream"] or not is_ok:
            return FetchResponse(status=status, content=None, headers=headers)

        remaining_ms = timeout_ms - (time.monotonic() - started) * 1000.0
        content = await self._read_io_stream(response["stream"], timeout_ms=remaining_ms)
        return FetchResponse(status=status, content=content, headers=headers)

    async def _load_network_resource(self, url: str) -> Dict[str, Any]:
        frame_tree = await self.session.send_command("Page.getFrameTree")
        network_response = await self.session.send_command("Network.loadNetworkResource", {
            "frameId": frame_tree["frameTree"]["frame"]["id"],
            "url": url,
            "options": {"disableCache": True, "includeCredentials": True},
        })
        resource = network_response.get("resource") or {}
        return {
            "stream": resource.get("stream") if resource.get("success") else None,
            "status": resource.get("httpStatusCode"),
            "headers": resource.get("headers"),
        }

    async def _read_io_stream(self, handle: str, *, timeout_ms: float = 2000) -> str:
        started = time.monotonic()
        chunks = []
        eof = False
        while not eof:
            if (time.monotonic() - started) * 1000.0 > timeout_ms:
                raise TimeoutError("Waiting for the end of the IO stream exceeded the allotted time.")
            io_response = await self.session.send_command("IO.read", {"handle": handle})
            data = io_response.get("data", "")
            if io_response.get("base64Encoded"):
                data = base64.b64decode(data).decode("utf-8", errors="replace")
            chunks.append(data)
            eof = bool(io_response.get("eof"))
        await self.session.send_command("IO.close", {"handle": handle})
        return "".join(chunks)
