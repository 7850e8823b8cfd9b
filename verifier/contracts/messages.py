"""
Validation message types.

Failures recorded by a verification manager are turned into messages
grouped by scope (the action they were verified for) so handlers can show
either everything the controller saw or only one action's problems.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional, Protocol, Union


class Level:
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class Message:
    """Single validation message.

    Attributes:
        scope: Action name the message was recorded under
        field: Input field that failed
        code: Machine-readable code (required, wrong_type, invalid)
        text: Human-readable message
        level: Severity level
    """
    scope: str
    field: str
    code: str
    text: str
    level: str = Level.ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scope": self.scope,
            "field": self.field,
            "code": self.code,
            "text": self.text,
            "level": self.level,
        }


class MessageStack:
    """
    Ordered, read-only collection of messages. ``MessageStack()`` is a
    valid empty stack.
    """

    def __init__(self, messages: Optional[Iterable[Message]] = None) -> None:
        self._messages: tuple = tuple(messages or ())

    def __iter__(self) -> Iterator[Message]:
        return iter(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __bool__(self) -> bool:
        return bool(self._messages)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MessageStack):
            return NotImplemented
        return self._messages == other._messages

    def __repr__(self) -> str:
        return f"MessageStack({list(self._messages)!r})"

    @property
    def has_messages(self) -> bool:
        return bool(self._messages)

    def count(self) -> int:
        return len(self._messages)

    def _filter(self, **match: str) -> "MessageStack":
        return MessageStack(
            m for m in self._messages if all(getattr(m, k) == v for k, v in match.items())
        )

    def for_scope(self, scope: str) -> "MessageStack":
        return self._filter(scope=scope)

    def for_field(self, field: str) -> "MessageStack":
        return self._filter(field=field)

    def for_level(self, level: str) -> "MessageStack":
        return self._filter(level=level)

    def for_code(self, code: str) -> "MessageStack":
        return self._filter(code=code)

    def first(self) -> Optional[Message]:
        return self._messages[0] if self._messages else None

    def to_list(self) -> List[Dict[str, Any]]:
        return [m.to_dict() for m in self._messages]


# ---- scopes ----

class HasActionName(Protocol):
    @property
    def action_name(self) -> str:
        ...


@dataclass(frozen=True)
class Unscoped:
    pass


@dataclass(frozen=True)
class ScopeName:
    name: str


@dataclass(frozen=True)
class CurrentActionOf:
    context: HasActionName


MessageScope = Union[Unscoped, ScopeName, CurrentActionOf]

UNSCOPED = Unscoped()


def resolve_scope(scope: MessageScope) -> Optional[str]:
    """
    Scope name to filter by, or None for the controller-wide view.
    """
    if isinstance(scope, CurrentActionOf):
        return scope.context.action_name or None
    if isinstance(scope, ScopeName):
        return scope.name or None
    return None
