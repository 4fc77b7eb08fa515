from .engine import Guard
from .errors import (
    ConfigError,
    MissingConstraint,
    MissingDenialTarget,
    PolicyDocumentError,
    UnknownDenialTarget,
    UnknownRule,
)
from .model import Context, Decision, Policy, Principal, Proceed, RedirectTo, RuleOutcome, Verdict
from .policy import build_policy, validate_policy
from .rules import RuleRegistry

__all__ = [
    "Guard",
    "ConfigError",
    "MissingConstraint",
    "MissingDenialTarget",
    "PolicyDocumentError",
    "UnknownDenialTarget",
    "UnknownRule",
    "Context",
    "Decision",
    "Policy",
    "Principal",
    "Proceed",
    "RedirectTo",
    "RuleOutcome",
    "Verdict",
    "build_policy",
    "validate_policy",
    "RuleRegistry",
]
