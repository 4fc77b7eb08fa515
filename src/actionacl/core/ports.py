from __future__ import annotations

from typing import Any, Awaitable, Dict, FrozenSet, Optional, Protocol, Union

from .model import Context, RuleOutcome

RuleResult = Union[RuleOutcome, str, None]


class RuleCallback(Protocol):
    def __call__(
        self, action: Optional[str], roles: FrozenSet[str], context: Context
    ) -> Union[RuleResult, Awaitable[RuleResult]]: ...


class RuleInvoker(Protocol):
    """Invokes a named rule. Errors raised by the rule propagate to the caller."""

    def __call__(
        self, name: str, action: Optional[str], roles: FrozenSet[str], context: Context
    ) -> Any: ...


class MetricsSink(Protocol):
    def inc(self, name: str, labels: Dict[str, str] | None = None) -> None: ...


class MetricsObserve(Protocol):
    def observe(self, name: str, value: float, labels: Dict[str, str] | None = None) -> None: ...


class DecisionLogSink(Protocol):
    def log(self, payload: Dict[str, Any]) -> None: ...
