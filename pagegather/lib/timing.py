"""
pagegather.lib.timing
阶段耗时记录，最终作为 Timing 基础产物输出（对应 timings.json 的思路）。

每次采集在 timing_scope() 内运行，作用域内的 timed/atimed 只记录到本次的记录器；
并发的多次采集各自持有记录器（contextvars 随 asyncio.Task 复制）。
作用域外的计时只写 debug 日志。
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager, contextmanager
from contextvars import ContextVar
from typing import Any, AsyncIterator, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)


class TimingRecorder:
    def __init__(self) -> None:
        self._entries: List[Dict[str, Any]] = []

    def record(self, name: str, started: float, duration_ms: float) -> None:
        self._entries.append({
            "name": name,
            "start_time": started * 1000.0,
            "duration": round(duration_ms, 3),
        })

    def take_entries(self) -> List[Dict[str, Any]]:
        """取出并清空已记录的条目。"""
        entries, self._entries = self._entries, []
        return entries


_current_recorder: ContextVar[Optional[TimingRecorder]] = ContextVar("pagegather_timing_recorder", default=None)


def current_recorder() -> Optional[TimingRecorder]:
    return _current_recorder.get()


@contextmanager
def timing_scope(recorder: Optional[TimingRecorder] = None) -> Iterator[TimingRecorder]:
    recorder = recorder or TimingRecorder()
    token = _current_recorder.set(recorder)
    try:
        yield recorder
    finally:
        _current_recorder.reset(token)


def _finish(name: str, started: float) -> None:
    duration_ms = (time.perf_counter() - started) * 1000.0
    logger.debug("%s took %.1fms", name, duration_ms)
    recorder = _current_recorder.get()
    if recorder is not None:
        recorder.record(name, started, duration_ms)


@contextmanager
def timed(name: str) -> Iterator[None]:
    started = time.perf_counter()
    try:
        yield
    finally:
        _finish(name, started)


@asynccontextmanager
async def atimed(name: str) -> AsyncIterator[None]:
    started = time.perf_counter()
    try:
        yield
    finally:
        _finish(name, started)
