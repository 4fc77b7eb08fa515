from .context import TraceIdFilter, gen_trace_id, get_current_trace_id, set_current_trace_id
from .decision_logger import DecisionLogger

__all__ = [
    "DecisionLogger",
    "TraceIdFilter",
    "gen_trace_id",
    "get_current_trace_id",
    "set_current_trace_id",
]
