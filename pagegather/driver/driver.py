"""
Playwright-backed Driver handed to every gatherer.

It owns the page's root protocol session and exposes:
  - url() -> str
  - connect() / disconnect()           (both idempotent)
  - default_session                    (ProtocolSession, only after connect)
  - execution_context                  (page evaluation, optional isolation)
  - fetcher                            (resource fetching over the protocol)

Usage:
  driver = Driver(page)
  await driver.connect()
  ...
  await driver.disconnect()
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .execution_context import ExecutionContext
from .fetcher import Fetcher
from .session import ProtocolSession

logger = logging.getLogger(__name__)


class Driver:
    def __init__(self, page: Any) -> None:
        self._page = page
        self._session: Optional[ProtocolSession] = None
        self._execution_context: Optional[ExecutionContext] = None
        self._fetcher: Optional[Fetcher] = None

    @property
    def page(self) -> Any:
        return self._page

    @property
    def default_session(self) -> ProtocolSession:
        if self._session is None:
            raise RuntimeError("Driver not connected to page")
        return self._session

    @property
    def execution_context(self) -> ExecutionContext:
        if self._execution_context is None:
            raise RuntimeError("Driver not connected to page")
        return self._execution_context

    @property
    def fetcher(self) -> Fetcher:
        if self._fetcher is None:
            raise RuntimeError("Driver not connected to page")
        return self._fetcher

    async def url(self) -> str:
        try:
            return self._page.url or ""
        except Exception:
            return ""

    async def connect(self) -> None:
        if self._session is not None:
            return
        cdp_session = await self._page.context.new_cdp_session(self._page)
        self._session = ProtocolSession(cdp_session)
        self._execution_context = ExecutionContext(self._session)
        self._fetcher = Fetcher(self._session)
        logger.info("driver connected")

    async def disconnect(self) -> None:
        if self._session is None:
            return
        session = self._session
        self._session = None
        self._execution_context = None
        self._fetcher = None
        await session.dispose()
        logger.info("driver disconnected")
