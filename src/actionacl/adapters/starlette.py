from __future__ import annotations

import inspect
from functools import wraps
from typing import Any, Callable, Iterable, Optional

from starlette.concurrency import run_in_threadpool

from ..core.engine import Guard
from ..core.errors import UnknownDenialTarget
from ..core.model import Context, Policy, RedirectTo
from ..core.policy import build_policy

POLICY_ATTR = "__acl_policy__"


def _find_endpoint(routes: Iterable[Any], name: str) -> Optional[Callable[..., Any]]:
    for route in routes:
        if getattr(route, "name", None) == name and hasattr(route, "endpoint"):
            return route.endpoint
        # Mounted sub-applications expose their own routes.
        sub = getattr(route, "routes", None)
        if sub:
            found = _find_endpoint(sub, name)
            if found is not None:
                return found
    return None


async def _call_endpoint(endpoint: Callable[..., Any], request: Any) -> Any:
    if inspect.iscoroutinefunction(endpoint):
        return await endpoint(request)
    return await run_in_threadpool(endpoint, request)


def acl(
    guard: Guard,
    get_principal: Callable[[Any], Any],
    *,
    rules: Optional[Iterable[str] | str] = None,
    requires: Optional[Iterable[str] | str] = None,
    allowed: Optional[Iterable[str] | str] = None,
    detach_to: Optional[str] = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Protect a Starlette endpoint (sync or async).

    On denial the endpoint of the route named ``detach_to`` handles the
    request instead. Sync endpoints run in the threadpool, like Starlette does.
    """

    def decorator(handler: Callable[..., Any]) -> Callable[..., Any]:
        policy = guard.check_policy(
            build_policy(
                rules=rules,
                requires=requires,
                allowed=allowed,
                detach_to=detach_to,
                action=handler.__name__,
            )
        )

        @wraps(handler)
        async def endpoint(request: Any) -> Any:
            principal = get_principal(request)
            ctx = Context(attrs={"request": request})
            result = await guard.enforce_async(
                policy, principal, lambda: _call_endpoint(handler, request), ctx
            )
            if isinstance(result, RedirectTo):
                target = _find_endpoint(request.app.routes, result.target)
                if target is None:
                    raise UnknownDenialTarget(result.target, policy.action)
                return await _call_endpoint(target, request)
            return result.value

        setattr(endpoint, POLICY_ATTR, policy)
        return endpoint

    return decorator


def verify_denial_targets(routes: Iterable[Any]) -> None:
    """Raise UnknownDenialTarget if a protected endpoint detaches to a missing route."""
    routes = list(routes)
    for route in routes:
        policy: Optional[Policy] = getattr(getattr(route, "endpoint", None), POLICY_ATTR, None)
        if policy is not None and _find_endpoint(routes, policy.denial_target) is None:
            raise UnknownDenialTarget(policy.denial_target, getattr(route, "name", None))


__all__ = ["acl", "verify_denial_targets"]
