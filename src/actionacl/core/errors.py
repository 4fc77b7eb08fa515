from __future__ import annotations

from typing import Iterable


class ConfigError(ValueError):
    """Raised when an action's access-control configuration is invalid.

    Configuration errors surface at registration time and must stop the
    affected route from being served.
    """


class MissingConstraint(ConfigError):
    def __init__(self, action: str | None = None) -> None:
        self.action = action
        super().__init__(
            f"Action '{action or '?'}' requires at least one rule, required role or allowed role"
        )


class MissingDenialTarget(ConfigError):
    def __init__(self, action: str | None = None) -> None:
        self.action = action
        super().__init__(f"Action '{action or '?'}' requires a denial target")


class UnknownRule(ConfigError):
    def __init__(self, names: Iterable[str], action: str | None = None) -> None:
        self.names = tuple(names)
        self.action = action
        where = f" (action '{action}')" if action else ""
        super().__init__(f"Unknown rule(s){where}: {', '.join(self.names)}")


class UnknownDenialTarget(ConfigError):
    def __init__(self, target: str, action: str | None = None) -> None:
        self.target = target
        self.action = action
        where = f"Action '{action}'" if action else "Policy"
        super().__init__(f"{where} detaches to unknown action '{target}'")


class PolicyDocumentError(ConfigError):
    """Raised when a declarative policy document has the wrong shape."""


__all__ = [
    "ConfigError",
    "MissingConstraint",
    "MissingDenialTarget",
    "UnknownRule",
    "UnknownDenialTarget",
    "PolicyDocumentError",
]
