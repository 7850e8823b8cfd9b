import pytest

from verifier.errors import ProfileNotFound
from verifier.registry.profile_registry import ProfileRegistry
from verifier.verification.engine import ValidationEngine
from verifier.verification.manager import VerificationManager


PROFILES = {
    "search": {
        "filters": ["trim"],
        "page": {"type": int, "post_check": lambda r: r.get_value("page") > 0},
        "query": {"type": str, "required": True},
    },
    "suggest": {
        "prefix": {"type": str, "required": True, "min_length": 2},
    },
}


class CountingEngine(ValidationEngine):
    def __init__(self):
        self.compiled = []

    def compile(self, action, description):
        self.compiled.append(action)
        return super().compile(action, description)


def _manager(engine=None):
    return VerificationManager.build(ProfileRegistry("SearchController", PROFILES).freeze(), engine)


def test_build_compiles_every_profile_once():
    engine = CountingEngine()
    m = _manager(engine)
    assert sorted(engine.compiled) == ["search", "suggest"]

    m.verify("search", {"query": "cats"})
    m.verify("search", {"query": "dogs"})
    m.verify("suggest", {"prefix": "ca"})
    assert sorted(engine.compiled) == ["search", "suggest"]


def test_verify_unknown_action_raises():
    m = _manager()
    with pytest.raises(ProfileNotFound) as ei:
        m.verify("browse", {"query": "cats"})
    assert ei.value.action == "browse"
    assert ei.value.owner == "SearchController"


def test_missing_required_yields_one_message():
    m = _manager()
    r = m.verify("search", {})
    assert not r.success

    msgs = m.messages_for("search")
    assert len(msgs) == 1
    msg = msgs.first()
    assert (msg.scope, msg.field, msg.code) == ("search", "query", "required")


def test_unscoped_messages_are_the_union():
    m = _manager()
    m.verify("search", {})
    m.verify("suggest", {"prefix": "a"})

    everything = m.messages_for()
    assert len(everything) == 2
    assert {x.scope for x in everything} == {"search", "suggest"}
    assert len(m.messages_for("suggest")) == 1
    assert m.messages_for("") == everything


def test_scope_never_verified_or_successful_is_empty():
    m = _manager()
    assert len(m.messages_for("suggest")) == 0
    m.verify("suggest", {"prefix": "cat"})
    assert len(m.messages_for("suggest")) == 0


def test_reverify_overwrites_result_and_messages():
    m = _manager()
    first = m.verify("search", {})
    assert m.results_for("search") is first
    assert not m.success

    second = m.verify("search", {"query": "cats"})
    assert m.results_for("search") is second
    assert len(m.messages_for("search")) == 0
    assert m.success
    assert m.verified_scopes() == ["search"]


def test_messages_for_is_idempotent():
    m = _manager()
    m.verify("search", {"page": "x"})
    assert m.messages_for("search") == m.messages_for("search")
    assert m.messages_for() == m.messages_for()
