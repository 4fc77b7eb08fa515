from __future__ import annotations

from .core.engine import Guard
from .core.errors import (
    ConfigError,
    MissingConstraint,
    MissingDenialTarget,
    UnknownDenialTarget,
    UnknownRule,
)
from .core.model import Context, Decision, Policy, Principal, Proceed, RedirectTo, RuleOutcome, Verdict
from .core.policy import build_policy, validate_policy
from .core.rules import RuleRegistry
from .dispatch import Dispatcher
from .policy.loader import load_policies, load_policies_file

try:
    from importlib.metadata import PackageNotFoundError, version
except Exception:  # pragma: no cover
    version = None  # type: ignore[assignment]
    PackageNotFoundError = Exception  # type: ignore[assignment,misc]


def _detect_version() -> str:
    if version is None:
        return "0.1.0"
    try:
        return version("actionacl")
    except PackageNotFoundError:
        return "0.1.0"


__version__ = _detect_version()

from . import core, policy  # noqa: E402

__all__ = [
    "Guard",
    "ConfigError",
    "MissingConstraint",
    "MissingDenialTarget",
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
    "Dispatcher",
    "load_policies",
    "load_policies_file",
    "core",
    "policy",
    "__version__",
]
