import pytest

from verifier.contracts.messages import (
    CurrentActionOf,
    Message,
    MessageStack,
    ScopeName,
    UNSCOPED,
    resolve_scope,
)
from verifier.web.actions import Action
from verifier.web.context import RequestContext, scope_of
from verifier.web.controller import Controller


def _stack():
    return MessageStack([
        Message(scope="search", field="query", code="required", text="query is required"),
        Message(scope="search", field="page", code="invalid", text="page is invalid"),
        Message(scope="suggest", field="prefix", code="invalid", text="prefix is invalid", level="warning"),
    ])


def test_empty_stack_is_valid():
    s = MessageStack()
    assert len(s) == 0
    assert not s
    assert not s.has_messages
    assert s.first() is None
    assert s.to_list() == []


def test_filters():
    s = _stack()
    assert s.count() == 3
    assert [m.field for m in s.for_scope("search")] == ["query", "page"]
    assert len(s.for_field("prefix")) == 1
    assert len(s.for_code("invalid")) == 2
    assert len(s.for_level("warning")) == 1
    assert s.for_scope("nope") == MessageStack()
    assert s.first().field == "query"


def test_to_list():
    rows = _stack().for_scope("suggest").to_list()
    assert rows == [
        {"scope": "suggest", "field": "prefix", "code": "invalid", "text": "prefix is invalid", "level": "warning"}
    ]


def test_resolve_scope_variants():
    class Ctx:
        action_name = "search"

    assert resolve_scope(UNSCOPED) is None
    assert resolve_scope(ScopeName("suggest")) == "suggest"
    assert resolve_scope(ScopeName("")) is None
    assert resolve_scope(CurrentActionOf(Ctx())) == "search"


def test_scope_of_normalizes_handler_arguments():
    class Noop(Controller):
        pass

    act = Action(name="search", handler=lambda c: None, path="/s")
    ctx = RequestContext(Noop(), act)

    assert scope_of(None) is UNSCOPED
    assert scope_of("") is UNSCOPED
    assert scope_of("search") == ScopeName("search")
    assert scope_of(act) == ScopeName("search")
    assert scope_of(ctx) == CurrentActionOf(ctx)
    assert scope_of(ScopeName("x")) == ScopeName("x")
    with pytest.raises(TypeError):
        scope_of(42)
