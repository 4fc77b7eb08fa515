from __future__ import annotations

import logging
from typing import Any, Callable, Dict, FrozenSet, Iterable, Iterator, Mapping, Optional

from .errors import ConfigError, UnknownRule
from .model import Context
from .ports import RuleCallback

logger = logging.getLogger("actionacl.rules")


class RuleRegistry:
    """Explicit table of named rule callbacks.

    Rules are registered at startup. A callback receives
    ``(action, roles, context)`` and returns ``RuleOutcome.ALLOW``,
    ``RuleOutcome.DENY`` (or the strings ``"ALLOW"`` / ``"DENY"``); any other
    value, ``None`` included, means "continue with the next rule".
    """

    def __init__(self, rules: Optional[Mapping[str, RuleCallback]] = None) -> None:
        self._rules: Dict[str, RuleCallback] = {}
        for name, fn in (rules or {}).items():
            self.register(name, fn)

    def register(self, name: str, fn: RuleCallback) -> RuleCallback:
        if not isinstance(name, str) or not name:
            raise ConfigError("rule name must be a non-empty string")
        if not callable(fn):
            raise ConfigError(f"rule '{name}' is not callable")
        if name in self._rules:
            raise ConfigError(f"rule '{name}' is already registered")
        self._rules[name] = fn
        logger.debug("actionacl: registered rule %s", name)
        return fn

    def rule(self, arg: Any = None) -> Any:
        """Decorator form: ``@registry.rule`` or ``@registry.rule("name")``."""
        if callable(arg):
            return self.register(arg.__name__, arg)

        def _decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            self.register(arg or fn.__name__, fn)
            return fn

        return _decorator

    def __contains__(self, name: object) -> bool:
        return name in self._rules

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def names(self) -> list[str]:
        return sorted(self._rules)

    def ensure_known(self, names: Iterable[str], action: Optional[str] = None) -> None:
        unknown = [n for n in dict.fromkeys(names) if n not in self._rules]
        if unknown:
            raise UnknownRule(unknown, action)

    def invoke(
        self, name: str, action: Optional[str], roles: FrozenSet[str], context: Context
    ) -> Any:
        try:
            fn = self._rules[name]
        except KeyError:
            raise UnknownRule([name], action) from None
        return fn(action, roles, context)

    __call__ = invoke


__all__ = ["RuleRegistry"]
