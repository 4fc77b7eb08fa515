from __future__ import annotations

from typing import Any, Dict, Optional

from actionacl.core.engine import DECISIONS_METRIC, DURATION_METRIC
from actionacl.core.ports import MetricsSink

try:
    from prometheus_client import Counter, Histogram  # type: ignore
except Exception:  # pragma: no cover
    Counter = Histogram = None  # type: ignore


class PrometheusMetrics(MetricsSink):
    """Prometheus-based MetricsSink.

    Exposes:
      - actionacl_decisions_total{decision="allow|deny"}
      - actionacl_decision_seconds{decision="allow|deny"} (Histogram)

    Pass *registry* to keep instruments off the process-wide default registry.
    """

    _counter: Optional[Any]
    _hist: Optional[Any]

    def __init__(self, registry: Any = None) -> None:
        self._counter = None
        self._hist = None

        if Counter is None or Histogram is None:  # pragma: no cover
            return

        kwargs: Dict[str, Any] = {}
        if registry is not None:
            kwargs["registry"] = registry
        self._counter = Counter(
            DECISIONS_METRIC,
            "Total access-control decisions by verdict.",
            labelnames=("decision",),
            **kwargs,
        )
        self._hist = Histogram(
            DURATION_METRIC,
            "Access-control decision evaluation duration in seconds.",
            labelnames=("decision",),
            **kwargs,
        )

    # -- MetricsSink ------------------------------------------------------------

    def inc(self, name: str, labels: Dict[str, str] | None = None) -> None:
        """Increment the decision counter; *name* is informational."""
        if self._counter is None:  # pragma: no cover
            return
        decision = (labels or {}).get("decision", "unknown")
        self._counter.labels(decision=decision).inc()

    def observe(self, name: str, value: float, labels: Dict[str, str] | None = None) -> None:
        if self._hist is None:  # pragma: no cover
            return
        decision = (labels or {}).get("decision", "unknown")
        self._hist.labels(decision=decision).observe(float(value))
