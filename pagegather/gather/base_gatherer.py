"""
pagegather.gather.base_gatherer
Collector (gatherer) contract.

A gatherer produces exactly one artifact. The orchestrator calls its hooks in
this order, skipping gatherers whose ``meta.supported_modes`` does not contain
the current gather mode:

  start_instrumentation -> start_sensitive_instrumentation -> (navigate)
  -> stop_sensitive_instrumentation -> stop_instrumentation -> get_artifact

Every hook except ``get_artifact`` defaults to a no-op. Hooks receive a
``TransitionalContext``; ``get_artifact`` additionally finds the values of the
gatherer's declared dependencies in ``context.dependencies``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

GATHER_MODES: Tuple[str, ...] = ("snapshot", "timespan", "navigation")

HOOK_NAMES: Tuple[str, ...] = (
    "start_instrumentation",
    "start_sensitive_instrumentation",
    "stop_sensitive_instrumentation",
    "stop_instrumentation",
    "get_artifact",
)


class DependencySymbol:
    """Opaque identity token a gatherer exposes so others can depend on it."""

    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"DependencySymbol({self.name!r})"


@dataclass(frozen=True)
class GathererMeta:
    supported_modes: Tuple[str, ...] = ()
    dependencies: Mapping[str, DependencySymbol] = field(default_factory=dict)
    symbol: Optional[DependencySymbol] = None

    def supports(self, gather_mode: str) -> bool:
        return gather_mode in self.supported_modes


@dataclass
class TransitionalContext:
    """Everything a hook may touch during one gather."""

    url: str
    gather_mode: str
    driver: Any
    page: Any = None
    base_artifacts: Dict[str, Any] = field(default_factory=dict)
    dependencies: Dict[str, Any] = field(default_factory=dict)
    settings: Any = None
    computed_cache: Dict[Any, Any] = field(default_factory=dict)


class BaseGatherer:
    meta: GathererMeta = GathererMeta()

    @property
    def name(self) -> str:
        return type(self).__name__

    async def start_instrumentation(self, context: TransitionalContext) -> None:
        return None

    async def start_sensitive_instrumentation(self, context: TransitionalContext) -> None:
        return None

    async def stop_sensitive_instrumentation(self, context: TransitionalContext) -> None:
        return None

    async def stop_instrumentation(self, context: TransitionalContext) -> None:
        return None

    async def get_artifact(self, context: TransitionalContext) -> Any:
        raise NotImplementedError(f"{self.name} gatherer did not define a get_artifact method")
