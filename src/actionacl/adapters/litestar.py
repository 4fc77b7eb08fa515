from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping, Optional

from litestar.enums import ScopeType
from litestar.middleware import ASGIMiddleware

from ..core.engine import Guard
from ..core.errors import UnknownDenialTarget
from ..core.model import Context, Policy, RedirectTo

logger = logging.getLogger(__name__)

OPT_KEY = "acl"

DenialTarget = Callable[[Any], Any]


def _default_principal(scope: Any) -> Any:
    # Litestar's authentication middleware stores the user in the scope.
    return scope.get("user")


def _route_policy(scope: Any) -> Optional[Policy]:
    handler = scope.get("route_handler")
    opt = getattr(handler, "opt", None) or {}
    policy = opt.get(OPT_KEY)
    return policy if isinstance(policy, Policy) else None


class ACLMiddleware(ASGIMiddleware):
    """Litestar middleware enforcing the policy stored in a handler's ``opt["acl"]``.

    Handlers without a policy pass through. On denial the factory registered
    in *denial_targets* under the policy's denial target is called with the
    scope and must return an ASGI response (e.g.
    :class:`litestar.response.base.ASGIResponse`); the handler never runs.

        @get("/edit", opt={"acl": build_policy(requires="editor", detach_to="denied")})
        async def edit() -> str: ...

        app = Litestar(
            [edit],
            middleware=[ACLMiddleware(guard=guard, denial_targets={"denied": forbidden})],
        )
    """

    scopes = (ScopeType.HTTP,)

    def __init__(
        self,
        *,
        guard: Guard,
        denial_targets: Mapping[str, DenialTarget],
        get_principal: Callable[[Any], Any] = _default_principal,
    ) -> None:
        self.guard = guard
        self.denial_targets = dict(denial_targets)
        self.get_principal = get_principal

    async def handle(self, scope: Any, receive: Any, send: Any, next_app: Any) -> None:
        policy = _route_policy(scope)
        if policy is None:
            await next_app(scope, receive, send)
            return

        principal = self.get_principal(scope)
        ctx = Context(attrs={"scope": scope})
        result = await self.guard.enforce_async(
            policy, principal, lambda: next_app(scope, receive, send), ctx
        )
        if not isinstance(result, RedirectTo):
            return

        factory = self.denial_targets.get(result.target)
        if factory is None:
            raise UnknownDenialTarget(result.target, policy.action)
        logger.debug("actionacl: detaching %s to %s", policy.action, result.target)
        response = factory(scope)
        await response(scope, receive, send)

    def verify(self, route_handlers: Iterable[Any]) -> None:
        """Check handler policies against the registered denial targets and rules."""
        for handler in route_handlers:
            policy = (getattr(handler, "opt", None) or {}).get(OPT_KEY)
            if not isinstance(policy, Policy):
                continue
            self.guard.check_policy(policy)
            if policy.denial_target not in self.denial_targets:
                raise UnknownDenialTarget(policy.denial_target, policy.action)


__all__ = ["ACLMiddleware", "OPT_KEY"]
