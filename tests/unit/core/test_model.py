from dataclasses import FrozenInstanceError

import pytest

from actionacl.core.model import Context, Principal, Proceed, RedirectTo, RuleOutcome, Verdict


def test_principal_defaults_and_immutability():
    p = Principal(id="u1")
    assert p.roles == ()
    assert p.is_authenticated is True
    with pytest.raises(FrozenInstanceError):
        p.id = "u2"  # type: ignore[misc]


def test_principal_roles_become_tuple():
    assert Principal(id="u", roles=["admin", "editor"]).roles == ("admin", "editor")


def test_context_default_attrs():
    assert Context().attrs == {}


@pytest.mark.parametrize(
    "raw, expected",
    [
        (RuleOutcome.ALLOW, RuleOutcome.ALLOW),
        ("ALLOW", RuleOutcome.ALLOW),
        ("DENY", RuleOutcome.DENY),
        (RuleOutcome.DENY, RuleOutcome.DENY),
        (Verdict.ALLOW, RuleOutcome.ALLOW),
        (Verdict.DENY, RuleOutcome.DENY),
        ("CONTINUE", RuleOutcome.CONTINUE),
        (None, RuleOutcome.CONTINUE),
        ("", RuleOutcome.CONTINUE),
        ("allow", RuleOutcome.CONTINUE),
        (1, RuleOutcome.CONTINUE),
        (True, RuleOutcome.CONTINUE),
        (object(), RuleOutcome.CONTINUE),
    ],
)
def test_rule_outcome_coerce(raw, expected):
    assert RuleOutcome.coerce(raw) is expected


def test_enforcement_results():
    assert Proceed("body").allowed is True
    assert Proceed("body").value == "body"
    r = RedirectTo("denied")
    assert r.allowed is False
    assert r.target == "denied"
    assert str(Verdict.DENY) == "deny"
