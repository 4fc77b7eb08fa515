from __future__ import annotations

import inspect
from functools import wraps
from typing import Any, Callable, Iterable, Optional

from flask import current_app, request

from ..core.engine import Guard
from ..core.errors import UnknownDenialTarget
from ..core.model import Context, RedirectTo
from ..core.policy import build_policy

POLICY_ATTR = "__acl_policy__"


def _target_kwargs(target: Callable[..., Any], view_args: dict) -> dict:
    """URL arguments of the denied view that the denial view also accepts."""
    try:
        params = inspect.signature(target).parameters
    except (TypeError, ValueError):
        return {}
    if any(p.kind is inspect.Parameter.VAR_KEYWORD for p in params.values()):
        return dict(view_args)
    return {k: v for k, v in view_args.items() if k in params}


def acl(
    guard: Guard,
    get_principal: Callable[[Any], Any],
    *,
    rules: Optional[Iterable[str] | str] = None,
    requires: Optional[Iterable[str] | str] = None,
    allowed: Optional[Iterable[str] | str] = None,
    detach_to: Optional[str] = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Protect a Flask view.

    The policy is built and checked when the view is decorated. On denial
    the view registered under the endpoint name ``detach_to`` runs instead,
    receiving those URL arguments of the denied view that it declares.
    """

    def decorator(view: Callable[..., Any]) -> Callable[..., Any]:
        policy = guard.check_policy(
            build_policy(
                rules=rules,
                requires=requires,
                allowed=allowed,
                detach_to=detach_to,
                action=view.__name__,
            )
        )

        @wraps(view)
        def wrapped(*args: Any, **kwargs: Any) -> Any:
            principal = get_principal(request)
            ctx = Context(attrs={"request": request, "view_args": dict(kwargs)})

            def run() -> Any:
                return current_app.ensure_sync(view)(*args, **kwargs)

            result = guard.enforce_sync(policy, principal, run, ctx)
            if isinstance(result, RedirectTo):
                target = current_app.view_functions.get(result.target)
                if target is None:
                    raise UnknownDenialTarget(result.target, policy.action)
                return current_app.ensure_sync(target)(**_target_kwargs(target, kwargs))
            return result.value

        setattr(wrapped, POLICY_ATTR, policy)
        return wrapped

    return decorator


def verify_denial_targets(app: Any) -> None:
    """Raise UnknownDenialTarget if a protected view detaches to a missing endpoint.

    Call once after all blueprints are registered.
    """
    for endpoint, view in app.view_functions.items():
        policy = getattr(view, POLICY_ATTR, None)
        if policy is not None and policy.denial_target not in app.view_functions:
            raise UnknownDenialTarget(policy.denial_target, endpoint)


__all__ = ["acl", "verify_denial_targets"]
