from __future__ import annotations

import inspect
from typing import Any


async def maybe_await(x: Any) -> Any:
    """Await *x* if it is awaitable, otherwise return it as is."""
    if inspect.isawaitable(x):
        return await x
    return x


def discard_awaitable(x: Any) -> bool:
    """Close a coroutine that cannot be awaited from sync code.

    Returns True when *x* was awaitable.
    """
    if not inspect.isawaitable(x):
        return False
    close = getattr(x, "close", None)
    if callable(close):
        close()
    return True


__all__ = ["maybe_await", "discard_awaitable"]
