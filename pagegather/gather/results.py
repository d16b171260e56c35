"""
pagegather.gather.results
产物结果类型与最终的只读产物包。

采集器的钩子异常会在编排器边界转为 Err 值保存，之后不再抛出；
消费方可以按 Ok / Err 模式匹配，也可以直接通过 bag[id] 取值
（失败时取到的是异常对象本身）。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Union


@dataclass(frozen=True)
class Ok:
    value: Any


@dataclass(frozen=True)
class Err:
    error: BaseException


ArtifactResult = Union[Ok, Err]


def unwrap(result: ArtifactResult) -> Any:
    if isinstance(result, Err):
        return result.error
    return result.value


def wrap(value: Any) -> ArtifactResult:
    if isinstance(value, (Ok, Err)):
        return value
    if isinstance(value, BaseException):
        return Err(value)
    return Ok(value)


class ArtifactBag(Mapping[str, Any]):
    """不可变的产物映射：id -> 值或已捕获的异常。"""

    def __init__(self, results: Mapping[str, Any]) -> None:
        self._results: Dict[str, ArtifactResult] = {k: wrap(v) for k, v in results.items()}

    def __getitem__(self, key: str) -> Any:
        return unwrap(self._results[key])

    def __iter__(self) -> Iterator[str]:
        return iter(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def __repr__(self) -> str:
        return f"ArtifactBag({list(self._results)})"

    def result(self, key: str) -> ArtifactResult:
        return self._results[key]

    def is_error(self, key: str) -> bool:
        return isinstance(self._results.get(key), Err)

    def errors(self) -> List[str]:
        return [k for k, v in self._results.items() if isinstance(v, Err)]

    def to_dict(self) -> Dict[str, Any]:
        """可 JSON 序列化的视图：异常转为 {error, code}。"""
        out: Dict[str, Any] = {}
        for key, result in self._results.items():
            if isinstance(result, Err):
                err = result.error
                out[key] = {"error": str(err), "code": getattr(err, "code", type(err).__name__)}
            else:
                out[key] = _jsonable(result.value)
        return out


def _jsonable(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    model_dump = getattr(value, "model_dump", None)
    if callable(model_dump):
        return model_dump()
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, BaseException):
        return {"error": str(value), "code": getattr(value, "code", type(value).__name__)}
    return value
