from __future__ import annotations

import json
import logging
import random
from typing import Any, Dict, Optional

from .context import get_current_trace_id

_SUMMARY_KEYS = ("action", "principal", "decision", "allowed", "reason", "rule", "denial_target")


class DecisionLogger:
    """Decision log sink backed by the standard ``logging`` module.

    Args:
        logger_name: target logger.
        level: level used for emitted records.
        as_json: emit compact JSON instead of ``decision <dict>``.
        sample_rate: probability in ``[0, 1]`` that a decision is logged.
        smart_sampling: when True, denials are always logged regardless of
            ``sample_rate``.
        max_payload_bytes: if the serialized payload is larger, only the
            summary fields are kept and ``"truncated": true`` is added.
    """

    def __init__(
        self,
        *,
        logger_name: str = "actionacl.audit",
        level: int = logging.INFO,
        as_json: bool = False,
        sample_rate: float = 1.0,
        smart_sampling: bool = False,
        max_payload_bytes: Optional[int] = None,
    ) -> None:
        self.logger = logging.getLogger(logger_name)
        self.level = level
        self.as_json = as_json
        self.sample_rate = max(0.0, min(1.0, float(sample_rate)))
        self.smart_sampling = smart_sampling
        self.max_payload_bytes = max_payload_bytes

    def _should_log(self, payload: Dict[str, Any]) -> bool:
        if self.smart_sampling and payload.get("decision") == "deny":
            return True
        if self.sample_rate >= 1.0:
            return True
        if self.sample_rate <= 0.0:
            return False
        return random.random() < self.sample_rate

    def _shape(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        out = dict(payload)
        trace_id = get_current_trace_id()
        if trace_id is not None and "trace_id" not in out:
            out["trace_id"] = trace_id
        if self.max_payload_bytes is not None:
            size = len(json.dumps(out, default=str).encode("utf-8"))
            if size > self.max_payload_bytes:
                out = {k: out.get(k) for k in _SUMMARY_KEYS if k in out}
                out["truncated"] = True
        return out

    def log(self, payload: Dict[str, Any]) -> None:
        if not self._should_log(payload):
            return
        data = self._shape(payload)
        if self.as_json:
            msg = json.dumps(data, default=str, separators=(",", ":"))
        else:
            msg = f"decision {data}"
        self.logger.log(self.level, msg)


__all__ = ["DecisionLogger"]
