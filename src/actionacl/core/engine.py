from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional

from .helpers import discard_awaitable, maybe_await
from .model import (
    Context,
    Decision,
    EnforcementResult,
    Policy,
    Proceed,
    RedirectTo,
    RuleOutcome,
    Verdict,
)
from .ports import DecisionLogSink, MetricsSink, RuleCallback, RuleInvoker
from .roles import is_authenticated, resolve_roles
from .rules import RuleRegistry

logger = logging.getLogger("actionacl.engine")

DECISIONS_METRIC = "actionacl_decisions_total"
DURATION_METRIC = "actionacl_decision_seconds"

_NO_PRINCIPAL = Decision(Verdict.DENY, "no_principal")


# --------------------------------------------------------------------------- #
# Decision algorithm
# --------------------------------------------------------------------------- #


def _check_roles(policy: Policy, roles: FrozenSet[str]) -> Decision:
    """Static role checks, run only when no rule decided."""
    required = policy.required_roles
    allowed = policy.allowed_roles

    # No role constraints left to apply: open access. A rule answering
    # CONTINUE on a rules-only policy therefore grants access.
    if not required and not allowed:
        return Decision(Verdict.ALLOW, "no_role_constraints")

    # Required roles are an AND-gate.
    for role in sorted(required):
        if role not in roles:
            return Decision(Verdict.DENY, "missing_required_role", missing_role=role)

    # Allowed roles are an OR-gate, checked only after the required ones pass.
    if allowed:
        if roles & allowed:
            return Decision(Verdict.ALLOW, "roles_satisfied")
        return Decision(Verdict.DENY, "no_allowed_role")

    return Decision(Verdict.ALLOW, "roles_satisfied")


def _rule_decision(name: str, outcome: RuleOutcome) -> Optional[Decision]:
    if outcome is RuleOutcome.ALLOW:
        logger.debug("actionacl: rule %s allowed access", name)
        return Decision(Verdict.ALLOW, "rule_allow", rule=name)
    if outcome is RuleOutcome.DENY:
        logger.debug("actionacl: rule %s denied access", name)
        return Decision(Verdict.DENY, "rule_deny", rule=name)
    return None


def evaluate(
    policy: Policy,
    principal: Any,
    *,
    invoker: RuleInvoker,
    context: Optional[Context] = None,
) -> Decision:
    """Compute the decision for *principal* against *policy*.

    Errors raised by rules are not caught.
    """
    if not is_authenticated(principal):
        return _NO_PRINCIPAL

    roles = resolve_roles(principal)
    ctx = context if context is not None else Context()

    for name in policy.rules:
        raw = invoker(name, policy.action, roles, ctx)
        if discard_awaitable(raw):
            raise TypeError(
                f"rule '{name}' returned an awaitable; use the async evaluation path"
            )
        decision = _rule_decision(name, RuleOutcome.coerce(raw))
        if decision is not None:
            return decision

    return _check_roles(policy, roles)


async def evaluate_async(
    policy: Policy,
    principal: Any,
    *,
    invoker: RuleInvoker,
    context: Optional[Context] = None,
) -> Decision:
    """Async twin of :func:`evaluate`; awaitable rule results are awaited."""
    if not is_authenticated(principal):
        return _NO_PRINCIPAL

    roles = resolve_roles(principal)
    ctx = context if context is not None else Context()

    for name in policy.rules:
        raw = await maybe_await(invoker(name, policy.action, roles, ctx))
        decision = _rule_decision(name, RuleOutcome.coerce(raw))
        if decision is not None:
            return decision

    return _check_roles(policy, roles)


def decide(
    policy: Policy,
    principal: Any,
    *,
    invoker: RuleInvoker,
    context: Optional[Context] = None,
) -> Verdict:
    return evaluate(policy, principal, invoker=invoker, context=context).verdict


async def decide_async(
    policy: Policy,
    principal: Any,
    *,
    invoker: RuleInvoker,
    context: Optional[Context] = None,
) -> Verdict:
    return (await evaluate_async(policy, principal, invoker=invoker, context=context)).verdict


def can_visit(
    policy: Policy,
    principal: Any,
    *,
    invoker: RuleInvoker,
    context: Optional[Context] = None,
) -> bool:
    """Probe access without running or redirecting anything."""
    return decide(policy, principal, invoker=invoker, context=context) is Verdict.ALLOW


def enforce(
    policy: Policy,
    principal: Any,
    run_action: Callable[[], Any],
    *,
    invoker: RuleInvoker,
    context: Optional[Context] = None,
) -> EnforcementResult:
    """Run *run_action* only when access is allowed.

    Returns ``Proceed(result)`` with the action's unchanged result, or
    ``RedirectTo(policy.denial_target)`` without calling the action.
    """
    if decide(policy, principal, invoker=invoker, context=context) is Verdict.ALLOW:
        return Proceed(run_action())
    return RedirectTo(policy.denial_target)


async def enforce_async(
    policy: Policy,
    principal: Any,
    run_action: Callable[[], Any],
    *,
    invoker: RuleInvoker,
    context: Optional[Context] = None,
) -> EnforcementResult:
    verdict = await decide_async(policy, principal, invoker=invoker, context=context)
    if verdict is Verdict.ALLOW:
        return Proceed(await maybe_await(run_action()))
    return RedirectTo(policy.denial_target)


# --------------------------------------------------------------------------- #
# Guard
# --------------------------------------------------------------------------- #


class Guard:
    """Decision engine bound to a rule registry and optional metrics/log sinks.

    Decisions are never cached; each call evaluates the policy afresh.
    Failures in metrics or log sinks are swallowed, failures in rules are not.
    """

    def __init__(
        self,
        rules: RuleRegistry | Mapping[str, RuleCallback] | None = None,
        *,
        metrics: Optional[MetricsSink] = None,
        logger_sink: Optional[DecisionLogSink] = None,
    ) -> None:
        if isinstance(rules, RuleRegistry):
            self.rules = rules
        else:
            self.rules = RuleRegistry(rules)
        self.metrics = metrics
        self.logger_sink = logger_sink

    # -- configuration ------------------------------------------------------

    def check_policy(self, policy: Policy) -> Policy:
        """Fail fast on rule names the registry does not know."""
        self.rules.ensure_known(policy.rules, policy.action)
        return policy

    # -- evaluation ---------------------------------------------------------

    def evaluate_sync(
        self, policy: Policy, principal: Any, context: Optional[Context] = None
    ) -> Decision:
        start = time.perf_counter()
        d = evaluate(policy, principal, invoker=self.rules.invoke, context=context)
        self._emit_sync(policy, principal, d, time.perf_counter() - start)
        return d

    async def evaluate_async(
        self, policy: Policy, principal: Any, context: Optional[Context] = None
    ) -> Decision:
        start = time.perf_counter()
        d = await evaluate_async(policy, principal, invoker=self.rules.invoke, context=context)
        await self._emit_async(policy, principal, d, time.perf_counter() - start)
        return d

    def decide_sync(
        self, policy: Policy, principal: Any, context: Optional[Context] = None
    ) -> Verdict:
        return self.evaluate_sync(policy, principal, context).verdict

    async def decide_async(
        self, policy: Policy, principal: Any, context: Optional[Context] = None
    ) -> Verdict:
        return (await self.evaluate_async(policy, principal, context)).verdict

    # can_visit is a read-only probe: no metrics, no decision log.

    def can_visit_sync(
        self, policy: Policy, principal: Any, context: Optional[Context] = None
    ) -> bool:
        return evaluate(policy, principal, invoker=self.rules.invoke, context=context).allowed

    async def can_visit_async(
        self, policy: Policy, principal: Any, context: Optional[Context] = None
    ) -> bool:
        d = await evaluate_async(policy, principal, invoker=self.rules.invoke, context=context)
        return d.allowed

    # Short alias, mirrors the probe used by templates to render links.
    can_visit = can_visit_sync

    def enforce_sync(
        self,
        policy: Policy,
        principal: Any,
        run_action: Callable[[], Any],
        context: Optional[Context] = None,
    ) -> EnforcementResult:
        if self.evaluate_sync(policy, principal, context).allowed:
            return Proceed(run_action())
        return RedirectTo(policy.denial_target)

    async def enforce_async(
        self,
        policy: Policy,
        principal: Any,
        run_action: Callable[[], Any],
        context: Optional[Context] = None,
    ) -> EnforcementResult:
        if (await self.evaluate_async(policy, principal, context)).allowed:
            return Proceed(await maybe_await(run_action()))
        return RedirectTo(policy.denial_target)

    # -- sinks --------------------------------------------------------------

    def _payload(self, policy: Policy, principal: Any, d: Decision) -> Dict[str, Any]:
        return {
            "action": policy.action,
            "principal": getattr(principal, "id", None),
            "decision": d.verdict.value,
            "allowed": d.allowed,
            "reason": d.reason,
            "rule": d.rule,
            "missing_role": d.missing_role,
            "denial_target": None if d.allowed else policy.denial_target,
        }

    def _sink_calls(self, policy: Policy, principal: Any, d: Decision, elapsed: float):
        labels = {"decision": d.verdict.value}
        if self.metrics is not None:
            inc = getattr(self.metrics, "inc", None)
            if inc is not None:
                yield "metrics.inc", lambda: inc(DECISIONS_METRIC, labels)
            observe = getattr(self.metrics, "observe", None)
            if observe is not None:
                yield "metrics.observe", lambda: observe(DURATION_METRIC, elapsed, labels)
        if self.logger_sink is not None:
            log = getattr(self.logger_sink, "log", None)
            if log is not None:
                payload = self._payload(policy, principal, d)
                yield "logger_sink.log", lambda: log(payload)

    def _emit_sync(self, policy: Policy, principal: Any, d: Decision, elapsed: float) -> None:
        if not d.allowed:
            logger.debug(
                "actionacl: access to %s denied (%s), denial target %s",
                policy.action,
                d.reason,
                policy.denial_target,
            )
        for what, call in self._sink_calls(policy, principal, d, elapsed):
            try:
                if discard_awaitable(call()):
                    logger.debug("actionacl: async %s skipped on sync path", what)
            except Exception:
                logger.debug("actionacl: %s failed", what, exc_info=True)

    async def _emit_async(
        self, policy: Policy, principal: Any, d: Decision, elapsed: float
    ) -> None:
        if not d.allowed:
            logger.debug(
                "actionacl: access to %s denied (%s), denial target %s",
                policy.action,
                d.reason,
                policy.denial_target,
            )
        for what, call in self._sink_calls(policy, principal, d, elapsed):
            try:
                await maybe_await(call())
            except Exception:
                logger.debug("actionacl: %s failed", what, exc_info=True)


__all__ = [
    "Guard",
    "evaluate",
    "evaluate_async",
    "decide",
    "decide_async",
    "can_visit",
    "enforce",
    "enforce_async",
    "DECISIONS_METRIC",
    "DURATION_METRIC",
]
