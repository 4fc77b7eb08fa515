from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Generic, Optional, Tuple, TypeVar, Union

T = TypeVar("T")


def _as_names(value: Any, what: str) -> Tuple[str, ...]:
    # A bare string is a single name, as with a single declarative attribute.
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,) if value else ()
    out = []
    for item in value:
        if not isinstance(item, str):
            raise TypeError(f"{what} must be strings, got {type(item).__name__}")
        if item:
            out.append(item)
    return tuple(out)


@dataclass(frozen=True)
class Principal:
    """Authenticated caller as supplied by the identity subsystem."""

    id: str
    roles: Tuple[str, ...] = ()
    is_authenticated: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.roles, tuple):
            object.__setattr__(self, "roles", tuple(self.roles))


@dataclass(frozen=True)
class Context:
    """Request-scoped data handed to rules (request object, object under edit, ...)."""

    attrs: Dict[str, Any] = field(default_factory=dict)


class Verdict(str, Enum):
    ALLOW = "allow"
    DENY = "deny"

    def __str__(self) -> str:
        return self.value


class RuleOutcome(str, Enum):
    """Result of a single rule.

    Rules may return a member of this enum, a :class:`Verdict` member or the
    strings ``"ALLOW"`` / ``"DENY"``. Anything else, ``None`` included, means
    CONTINUE.
    """

    ALLOW = "ALLOW"
    DENY = "DENY"
    CONTINUE = "CONTINUE"

    @classmethod
    def coerce(cls, value: Any) -> "RuleOutcome":
        if isinstance(value, RuleOutcome):
            return value
        if isinstance(value, Verdict):
            return cls.ALLOW if value is Verdict.ALLOW else cls.DENY
        if isinstance(value, str):
            if value == "ALLOW":
                return cls.ALLOW
            if value == "DENY":
                return cls.DENY
        return cls.CONTINUE


@dataclass(frozen=True)
class Policy:
    """Access-control constraints attached to one action.

    Construction validates the policy; an invalid Policy value cannot exist.
    """

    rules: Tuple[str, ...] = ()
    required_roles: FrozenSet[str] = frozenset()
    allowed_roles: FrozenSet[str] = frozenset()
    denial_target: str = ""
    action: Optional[str] = None

    def __post_init__(self) -> None:
        # Rule order is significant; duplicates are kept as declared.
        object.__setattr__(self, "rules", _as_names(self.rules, "rule names"))
        object.__setattr__(
            self, "required_roles", frozenset(_as_names(self.required_roles, "required roles"))
        )
        object.__setattr__(
            self, "allowed_roles", frozenset(_as_names(self.allowed_roles, "allowed roles"))
        )

        from .policy import validate_policy

        validate_policy(self)

    @property
    def has_role_constraints(self) -> bool:
        return bool(self.required_roles or self.allowed_roles)


@dataclass(frozen=True)
class Decision:
    """Verdict plus the reason it was reached."""

    verdict: Verdict
    reason: str
    rule: Optional[str] = None
    missing_role: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.verdict is Verdict.ALLOW


@dataclass(frozen=True)
class Proceed(Generic[T]):
    """The action ran; ``value`` is its unchanged return value."""

    value: T
    allowed: bool = field(default=True, init=False)


@dataclass(frozen=True)
class RedirectTo:
    """Access denied; the dispatcher must detach to ``target``."""

    target: str
    allowed: bool = field(default=False, init=False)


EnforcementResult = Union[Proceed[Any], RedirectTo]
