"""
pagegather.driver.execution_context
在页面中执行表达式：默认使用页面主世界，use_isolation=True 时使用隔离世界。

页面脚本以 JS 源码字符串传入；表达式包在原生 Promise 里执行，页面内的异常
会被序列化回来并在 Python 侧以 PageEvaluationError 抛出。
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_EVALUATE_TIMEOUT_MS = 60000

# 页面内异常 -> 可序列化对象
WRAP_RUNTIME_EVAL_ERROR = """function wrapRuntimeEvalErrorInBrowser(err) {
  if (!err || typeof err === 'string') err = new Error(err);
  return {
    __failedInBrowser: true,
    name: err.name || 'Error',
    message: err.message || 'unknown error',
    stack: err.stack,
  };
}"""


class PageEvaluationError(Exception):
    def __init__(self, message: str, *, name: str = "Error", stack: Optional[str] = None) -> None:
        super().__init__(message)
        self.name = name
        self.stack = stack


class ExecutionContext:
    def __init__(self, session: Any) -> None:
        self._session = session
        self._execution_context_id: Optional[int] = None
        self._identifiers_created = 0
        session.on("Page.frameNavigated", self._on_frame_navigated)
        session.on("Runtime.executionContextDestroyed", self._on_context_destroyed)

    def _on_frame_navigated(self, event: Any = None) -> None:
        self.clear_context_id()

    def _on_context_destroyed(self, event: Any = None) -> None:
        if (event or {}).get("executionContextId") == self._execution_context_id:
            self.clear_context_id()

    def get_context_id(self) -> Optional[int]:
        return self._execution_context_id

    def clear_context_id(self) -> None:
        self._execution_context_id = None

    async def _get_or_create_isolated_context_id(self) -> int:
        if self._execution_context_id is not None:
            return self._execution_context_id

        await self._session.send_command("Page.enable")
        await self._session.send_command("Runtime.enable")
        frame_tree = await self._session.send_command("Page.getFrameTree")
        main_frame_id = frame_tree["frameTree"]["frame"]["id"]
        world_name = f"__pagegather_context_{self._identifiers_created}__"
        self._identifiers_created += 1
        response = await self._session.send_command("Page.createIsolatedWorld", {
            "frameId": main_frame_id,
            "worldName": world_name,
            "grantUniveralAccess": True,
        })
        self._execution_context_id = response["executionContextId"]
        return self._execution_context_id

    async def _evaluate_in_context(self, expression: str, context_id: Optional[int]) -> Any:
        # 调用方没有指定超时时使用更长的缺省值
        if self._session.has_next_protocol_timeout():
            timeout = self._session.get_next_protocol_timeout()
        else:
            timeout = DEFAULT_EVALUATE_TIMEOUT_MS

        params: Dict[str, Any] = {
            "expression": (
                "(function wrapInNativePromise() {\n"
                "  const Promise = globalThis.__nativePromise || globalThis.Promise;\n"
                "  const URL = globalThis.__nativeURL || globalThis.URL;\n"
                "  return new Promise(function (resolve) {\n"
                "    return Promise.resolve()\n"
                f"      .then(_ => {expression})\n"
                f"      .catch({WRAP_RUNTIME_EVAL_ERROR})\n"
                "      .then(resolve);\n"
                "  });\n"
                "}())\n"
                "//# sourceURL=_pagegather-eval.js"
            ),
            "includeCommandLineAPI": True,
            "awaitPromise": True,
            "returnByValue": True,
            "timeout": timeout,
        }
        if context_id is not None:
            params["contextId"] = context_id

        response = await self._session.send_command("Runtime.evaluate", params, timeout_ms=timeout)
        details = response.get("exceptionDetails")
        if details:
            exception = details.get("exception") or {}
            message = exception.get("description") or details.get("text")
            raise PageEvaluationError(f"Evaluation exception: {message}")
        if "result" not in response:
            raise PageEvaluationError('Runtime.evaluate response did not contain a "result" object')

        value = response["result"].get("value")
        if isinstance(value, dict) and value.get("__failedInBrowser"):
            raise PageEvaluationError(
                value.get("message", "unknown error"), name=value.get("name", "Error"), stack=value.get("stack")
            )
        return value

    async def evaluate_async(self, expression: str, *, use_isolation: bool = False) -> Any:
        context_id = await self._get_or_create_isolated_context_id() if use_isolation else None
        try:
            return await self._evaluate_in_context(expression, context_id)
        except PageEvaluationError as e:
            # 隔离世界被销毁时重建一次再试
            if context_id is not None and "Cannot find context" in str(e):
                self.clear_context_id()
                fresh_id = await self._get_or_create_isolated_context_id()
                return await self._evaluate_in_context(expression, fresh_id)
            raise

    async def evaluate(
        self,
        main_fn: str,
        *,
        args: Sequence[Any] = (),
        deps: Optional[List[str]] = None,
        use_isolation: bool = False,
    ) -> Any:
        """执行 JS 函数源码 main_fn，args 以 JSON 序列化传入。"""
        args_serialized = ",".join(json.dumps(arg) for arg in args)
        deps_serialized = "\n".join(deps or [])
        expression = f"(() => {{\n{deps_serialized}\nreturn ({main_fn})({args_serialized});\n}})()"
        return await self.evaluate_async(expression, use_isolation=use_isolation)

    async def evaluate_on_new_document(
        self, main_fn: str, *, args: Sequence[Any] = (), deps: Optional[List[str]] = None
    ) -> None:
        args_serialized = ",".join(json.dumps(arg) for arg in args)
        deps_serialized = "\n".join(deps or [])
        source = f"(() => {{\n{deps_serialized}\n({main_fn})({args_serialized});\n}})()"
        await self._session.send_command("Page.addScriptToEvaluateOnNewDocument", {"source": source})

    async def cache_natives_on_new_document(self) -> None:
        """在页面脚本可能替换 Promise/URL 等原生对象前先缓存一份。"""
        await self.evaluate_on_new_document(
            """() => {
  window.__nativePromise = window.Promise;
  window.__nativeURL = window.URL;
  window.__nativePerformance = window.performance;
  window.__nativeFetch = window.fetch;
  window.__ElementMatches = window.Element.prototype.matches;
  window.__HTMLElementBoundingClientRect = window.HTMLElement.prototype.getBoundingClientRect;
}"""
        )
