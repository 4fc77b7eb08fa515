from __future__ import annotations

from typing import Any, FrozenSet


def is_authenticated(principal: Any) -> bool:
    """A missing principal is never authenticated; objects without the flag are."""
    if principal is None:
        return False
    flag = getattr(principal, "is_authenticated", True)
    if callable(flag):
        flag = flag()
    return bool(flag)


def resolve_roles(principal: Any) -> FrozenSet[str]:
    """Return the principal's role set.

    ``roles`` may be an iterable attribute or a zero-argument method. A principal
    without role support has the empty role set.
    """
    if principal is None:
        return frozenset()
    roles = getattr(principal, "roles", None)
    if roles is None:
        return frozenset()
    if callable(roles):
        roles = roles()
        if roles is None:
            return frozenset()
    if isinstance(roles, str):
        return frozenset((roles,))
    return frozenset(str(r) for r in roles)


__all__ = ["is_authenticated", "resolve_roles"]
