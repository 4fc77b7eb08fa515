import json
import logging

from actionacl.core.engine import Guard
from actionacl.core.model import Principal
from actionacl.core.policy import build_policy
from actionacl.logging.context import clear_current_trace_id, set_current_trace_id
from actionacl.logging.decision_logger import DecisionLogger


class DummyLogger:
    def __init__(self):
        self.records = []

    def log(self, level, msg):
        self.records.append((level, msg))


def _payload(decision="allow", **extra):
    p = {"action": "edit", "decision": decision, "allowed": decision == "allow", "reason": "x"}
    p.update(extra)
    return p


def test_json_output_with_trace_id():
    dl = DecisionLogger(as_json=True, level=logging.WARNING)
    dl.logger = DummyLogger()
    token = set_current_trace_id("t-1")
    try:
        dl.log(_payload())
    finally:
        clear_current_trace_id(token)
    level, msg = dl.logger.records[-1]
    assert level == logging.WARNING
    data = json.loads(msg)
    assert data["action"] == "edit"
    assert data["trace_id"] == "t-1"


def test_text_output():
    dl = DecisionLogger()
    dl.logger = DummyLogger()
    dl.log(_payload("deny"))
    assert dl.logger.records[-1][1].startswith("decision {")


def test_sampling_zero_drops_everything_without_smart_sampling():
    dl = DecisionLogger(sample_rate=0.0)
    dl.logger = DummyLogger()
    dl.log(_payload("allow"))
    dl.log(_payload("deny"))
    assert dl.logger.records == []


def test_smart_sampling_keeps_denials(monkeypatch):
    dl = DecisionLogger(sample_rate=0.5, smart_sampling=True)
    dl.logger = DummyLogger()
    monkeypatch.setattr("random.random", lambda: 0.99, raising=False)
    dl.log(_payload("allow"))
    dl.log(_payload("deny"))
    assert len(dl.logger.records) == 1
    assert "deny" in dl.logger.records[0][1]


def test_oversize_payload_is_truncated_to_summary():
    dl = DecisionLogger(as_json=True, max_payload_bytes=200)
    dl.logger = DummyLogger()
    dl.log(_payload(extra_blob="Z" * 1000))
    data = json.loads(dl.logger.records[-1][1])
    assert data["truncated"] is True
    assert "extra_blob" not in data
    assert data["decision"] == "allow"


def test_guard_writes_decisions_to_logger(caplog):
    g = Guard(logger_sink=DecisionLogger(logger_name="actionacl.audit.test", as_json=True))
    policy = build_policy(requires=["admin"], detach_to="denied", action="foo")
    with caplog.at_level(logging.INFO, logger="actionacl.audit.test"):
        g.decide_sync(policy, Principal(id="u1", roles=("user",)))
    data = json.loads(caplog.records[-1].getMessage())
    assert data["decision"] == "deny"
    assert data["denial_target"] == "denied"
    assert data["missing_role"] == "admin"
