from __future__ import annotations

from typing import Any, Iterable, Optional

from .errors import MissingConstraint, MissingDenialTarget
from .model import Policy, _as_names


def validate_policy(policy: Any) -> None:
    """Raise a ConfigError unless *policy* carries a constraint and a denial target.

    Runs once per action at registration time, never per request.
    """
    action = getattr(policy, "action", None)
    if not (policy.rules or policy.required_roles or policy.allowed_roles):
        raise MissingConstraint(action)
    target = policy.denial_target
    if not isinstance(target, str) or not target.strip():
        raise MissingDenialTarget(action)


def build_policy(
    *,
    rules: Optional[Iterable[str] | str] = None,
    requires: Optional[Iterable[str] | str] = None,
    allowed: Optional[Iterable[str] | str] = None,
    detach_to: Optional[str] = None,
    action: Optional[str] = None,
) -> Policy:
    """Assemble a validated Policy from raw attribute data."""
    return Policy(
        rules=_as_names(rules, "rule names"),
        required_roles=frozenset(_as_names(requires, "required roles")),
        allowed_roles=frozenset(_as_names(allowed, "allowed roles")),
        denial_target=detach_to or "",
        action=action,
    )


__all__ = ["validate_policy", "build_policy"]
