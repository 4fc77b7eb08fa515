import logging

import pytest

from actionacl.core.engine import DECISIONS_METRIC, DURATION_METRIC, Guard
from actionacl.core.errors import UnknownRule
from actionacl.core.model import Principal, Proceed, RedirectTo, RuleOutcome, Verdict
from actionacl.core.policy import build_policy
from actionacl.core.rules import RuleRegistry


def _admin():
    return Principal(id="u1", roles=("admin",))


class Metrics:
    def __init__(self):
        self.incs = []
        self.observed = []

    def inc(self, name, labels=None):
        self.incs.append((name, dict(labels or {})))

    def observe(self, name, value, labels=None):
        self.observed.append((name, value, dict(labels or {})))


class Sink:
    def __init__(self):
        self.payloads = []

    def log(self, payload):
        self.payloads.append(payload)


def test_guard_accepts_mapping_or_registry():
    reg = RuleRegistry({"r": lambda a, r, c: "ALLOW"})
    assert Guard(reg).rules is reg
    assert "r" in Guard({"r": lambda a, r, c: "ALLOW"}).rules
    assert len(Guard().rules) == 0


def test_check_policy_fails_fast_on_unknown_rule():
    g = Guard({"known": lambda a, r, c: None})
    ok = build_policy(rules=["known"], detach_to="denied")
    assert g.check_policy(ok) is ok
    with pytest.raises(UnknownRule):
        g.check_policy(build_policy(rules=["known", "typo"], detach_to="denied", action="edit"))


def test_evaluate_sync_emits_metrics_and_decision_log():
    metrics, sink = Metrics(), Sink()
    g = Guard(metrics=metrics, logger_sink=sink)
    policy = build_policy(requires=["editor"], detach_to="denied", action="edit")

    d = g.evaluate_sync(policy, _admin())

    assert d.verdict is Verdict.DENY
    assert metrics.incs == [(DECISIONS_METRIC, {"decision": "deny"})]
    name, value, labels = metrics.observed[0]
    assert name == DURATION_METRIC and value >= 0 and labels == {"decision": "deny"}
    payload = sink.payloads[0]
    assert payload["action"] == "edit"
    assert payload["principal"] == "u1"
    assert payload["allowed"] is False
    assert payload["reason"] == "missing_required_role"
    assert payload["missing_role"] == "editor"
    assert payload["denial_target"] == "denied"


def test_sink_failures_never_change_the_verdict(caplog):
    class Broken:
        def inc(self, name, labels=None):
            raise RuntimeError("boom-inc")

        def log(self, payload):
            raise RuntimeError("boom-log")

    g = Guard(metrics=Broken(), logger_sink=Broken())
    policy = build_policy(allowed=["admin"], detach_to="denied")
    with caplog.at_level(logging.DEBUG, logger="actionacl.engine"):
        assert g.decide_sync(policy, _admin()) is Verdict.ALLOW
    assert any("failed" in r.getMessage() for r in caplog.records)


def test_rule_failures_propagate_through_guard():
    def rule(action, roles, context):
        raise LookupError("no such document")

    g = Guard({"owner": rule}, metrics=Metrics())
    policy = build_policy(rules=["owner"], detach_to="denied")
    with pytest.raises(LookupError):
        g.enforce_sync(policy, _admin(), lambda: "body")


def test_enforce_sync_and_can_visit():
    g = Guard({"grant": lambda a, r, c: RuleOutcome.ALLOW})
    policy = build_policy(rules=["grant"], requires=["nobody"], detach_to="denied")
    assert g.enforce_sync(policy, _admin(), lambda: "body") == Proceed("body")
    assert g.enforce_sync(policy, None, lambda: "body") == RedirectTo("denied")
    assert g.can_visit(policy, _admin()) is True
    assert g.can_visit_sync(policy, None) is False


def test_async_sinks_are_skipped_on_sync_path():
    class AsyncSink:
        def __init__(self):
            self.called = False

        async def log(self, payload):
            self.called = True

    sink = AsyncSink()
    g = Guard(logger_sink=sink)
    policy = build_policy(allowed=["admin"], detach_to="denied")
    assert g.decide_sync(policy, _admin()) is Verdict.ALLOW
    assert sink.called is False


@pytest.mark.asyncio
async def test_evaluate_async_awaits_async_rules_and_sinks():
    seen = []

    async def owner(action, roles, context):
        seen.append(action)
        return "DENY" if context.attrs.get("owner") != "u1" else None

    class AsyncMetrics:
        def __init__(self):
            self.calls = []

        async def inc(self, name, labels=None):
            self.calls.append((name, labels))

    metrics = AsyncMetrics()
    g = Guard({"owner": owner}, metrics=metrics)
    policy = build_policy(rules=["owner"], allowed=["admin"], detach_to="denied", action="edit")

    from actionacl.core.model import Context

    assert await g.decide_async(policy, _admin(), Context({"owner": "u1"})) is Verdict.ALLOW
    assert await g.decide_async(policy, _admin(), Context({"owner": "u2"})) is Verdict.DENY
    assert seen == ["edit", "edit"]
    assert metrics.calls == [
        (DECISIONS_METRIC, {"decision": "allow"}),
        (DECISIONS_METRIC, {"decision": "deny"}),
    ]


@pytest.mark.asyncio
async def test_enforce_async_awaits_action_and_skips_it_on_deny():
    ran = []

    async def action():
        ran.append(1)
        return "body"

    g = Guard()
    policy = build_policy(allowed=["admin"], detach_to="denied")
    assert await g.enforce_async(policy, _admin(), action) == Proceed("body")
    assert await g.enforce_async(policy, Principal(id="x"), action) == RedirectTo("denied")
    assert ran == [1]
    assert await g.can_visit_async(policy, _admin()) is True


def test_can_visit_records_no_metrics_or_decision_log():
    metrics, sink = Metrics(), Sink()
    g = Guard(metrics=metrics, logger_sink=sink)
    policy = build_policy(requires=["admin"], detach_to="denied", action="edit")

    assert g.can_visit(policy, Principal(id="u", roles=("editor",))) is False
    assert g.can_visit_sync(policy, _admin()) is True

    assert metrics.incs == []
    assert metrics.observed == []
    assert sink.payloads == []


@pytest.mark.asyncio
async def test_can_visit_async_records_no_metrics_or_decision_log():
    metrics, sink = Metrics(), Sink()
    g = Guard(metrics=metrics, logger_sink=sink)
    policy = build_policy(requires=["admin"], detach_to="denied", action="edit")

    assert await g.can_visit_async(policy, Principal(id="u", roles=("editor",))) is False
    assert metrics.incs == []
    assert sink.payloads == []
