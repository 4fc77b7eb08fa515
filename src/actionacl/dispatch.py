from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional

from .core.engine import Guard
from .core.errors import ConfigError, UnknownDenialTarget
from .core.helpers import maybe_await
from .core.model import Context, Policy, RedirectTo
from .core.policy import build_policy

logger = logging.getLogger("actionacl.dispatch")

Handler = Callable[[Any], Any]
PrincipalGetter = Callable[[Any], Any]


@dataclass(frozen=True)
class ActionEntry:
    name: str
    handler: Handler
    policy: Optional[Policy] = None


class Dispatcher:
    """In-process action registry that performs the detach on denial.

    Actions are registered by name with an optional Policy. When a protected
    action is denied, its handler is not run; the handler registered under
    the policy's denial target runs instead and the original is never resumed.

    Example:

        dispatcher = Dispatcher(guard, lambda request: request.user)

        @dispatcher.action("edit", rules=["assert_can_edit"], detach_to="denied")
        def edit(request): ...

        @dispatcher.action("denied")
        def denied(request): return 403, "Denied!"
    """

    def __init__(
        self,
        guard: Guard,
        principal_getter: PrincipalGetter,
        *,
        context_factory: Optional[Callable[[Any], Context]] = None,
    ) -> None:
        self.guard = guard
        self.principal_getter = principal_getter
        self.context_factory = context_factory
        self._actions: Dict[str, ActionEntry] = {}
        self._finalized = False
        self._lock = threading.Lock()

    # -- registration -------------------------------------------------------

    def register(self, name: str, handler: Handler, policy: Optional[Policy] = None) -> ActionEntry:
        if policy is not None:
            self.guard.check_policy(policy)
        entry = ActionEntry(name, handler, policy)
        with self._lock:
            if name in self._actions:
                raise ConfigError(f"action '{name}' is already registered")
            self._actions[name] = entry
            self._finalized = False
        return entry

    def action(
        self,
        name: Optional[str] = None,
        *,
        rules: Optional[Iterable[str] | str] = None,
        requires: Optional[Iterable[str] | str] = None,
        allowed: Optional[Iterable[str] | str] = None,
        detach_to: Optional[str] = None,
    ) -> Callable[[Handler], Handler]:
        """Register the decorated handler; the policy is built and validated now."""

        def _decorator(fn: Handler) -> Handler:
            action_name = name or fn.__name__
            policy = None
            if rules or requires or allowed or detach_to:
                policy = build_policy(
                    rules=rules,
                    requires=requires,
                    allowed=allowed,
                    detach_to=detach_to,
                    action=action_name,
                )
            self.register(action_name, fn, policy)
            return fn

        return _decorator

    def __contains__(self, name: object) -> bool:
        return name in self._actions

    def policy_for(self, name: str) -> Optional[Policy]:
        return self._entry(name).policy

    def finalize(self) -> None:
        """Verify every denial target resolves to a registered action.

        Also rejects detach cycles, which would never produce a response.
        """
        with self._lock:
            if self._finalized:
                return
            for entry in self._actions.values():
                if entry.policy is None:
                    continue
                self.guard.check_policy(entry.policy)
                if entry.policy.denial_target not in self._actions:
                    raise UnknownDenialTarget(entry.policy.denial_target, entry.name)
            for entry in self._actions.values():
                self._check_detach_cycle(entry)
            self._finalized = True

    def _check_detach_cycle(self, entry: ActionEntry) -> None:
        seen = [entry.name]
        policy = entry.policy
        while policy is not None:
            target = policy.denial_target
            if target in seen:
                raise ConfigError(
                    f"detach cycle: {' -> '.join(seen)} -> {target}"
                )
            seen.append(target)
            policy = self._actions[target].policy

    # -- dispatch -----------------------------------------------------------

    def _entry(self, name: str) -> ActionEntry:
        try:
            return self._actions[name]
        except KeyError:
            raise LookupError(f"no action registered as '{name}'") from None

    def _context(self, request: Any) -> Context:
        if self.context_factory is not None:
            return self.context_factory(request)
        return Context(attrs={"request": request})

    def can_visit(self, name: str, request: Any) -> bool:
        """True if the request's principal may run *name*; nothing is executed."""
        policy = self._entry(name).policy
        if policy is None:
            return True
        principal = self.principal_getter(request)
        return self.guard.can_visit_sync(policy, principal, self._context(request))

    def _run(self, name: str, request: Any) -> tuple[bool, Any]:
        entry = self._entry(name)
        if entry.policy is None:
            return True, entry.handler(request)

        principal = self.principal_getter(request)
        result = self.guard.enforce_sync(
            entry.policy, principal, lambda: entry.handler(request), self._context(request)
        )
        if isinstance(result, RedirectTo):
            logger.info("actionacl: %s denied, detaching to %s", name, result.target)
            _, value = self._run(result.target, request)
            return False, value
        return True, result.value

    async def _run_async(self, name: str, request: Any) -> tuple[bool, Any]:
        entry = self._entry(name)
        if entry.policy is None:
            return True, await maybe_await(entry.handler(request))

        principal = self.principal_getter(request)
        result = await self.guard.enforce_async(
            entry.policy, principal, lambda: entry.handler(request), self._context(request)
        )
        if isinstance(result, RedirectTo):
            logger.info("actionacl: %s denied, detaching to %s", name, result.target)
            _, value = await self._run_async(result.target, request)
            return False, value
        return True, result.value

    def dispatch(self, name: str, request: Any) -> Any:
        """Run *name*, or its denial target when access is denied."""
        self.finalize()
        return self._run(name, request)[1]

    async def dispatch_async(self, name: str, request: Any) -> Any:
        self.finalize()
        return (await self._run_async(name, request))[1]

    def dispatch_chain(self, names: Iterable[str], request: Any) -> Any:
        """Run chained actions in order.

        The first denied link detaches to its own denial target and the rest
        of the chain is skipped. Returns the value of the last handler run.
        """
        self.finalize()
        value: Any = None
        for name in names:
            ok, value = self._run(name, request)
            if not ok:
                break
        return value

    async def dispatch_chain_async(self, names: Iterable[str], request: Any) -> Any:
        self.finalize()
        value: Any = None
        for name in names:
            ok, value = await self._run_async(name, request)
            if not ok:
                break
        return value


__all__ = ["ActionEntry", "Dispatcher"]
