from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Tuple, Union


@dataclass(frozen=True)
class Coercion:
    """
    Turn a value of ``from_type`` into the field's declared type.
    Only applied when the value fails the type check as given.
    """
    from_type: Any
    via: Callable[[Any], Any]

    def applies(self, value: Any) -> bool:
        return isinstance(value, self.from_type)


def coercion(from_type: Any, via: Callable[[Any], Any]) -> Coercion:
    return Coercion(from_type=from_type, via=via)


CoercionSpec = Union[Coercion, Callable[[Any], Any]]


@dataclass(frozen=True)
class FieldRule:
    type: Any = None               # None accepts any value
    required: bool = False
    default: Any = None            # None means no default
    coercion: Optional[CoercionSpec] = None
    post_check: Optional[Callable[[Any], Any]] = None
    filters: Tuple[Any, ...] = ()
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    dependent: Optional["ProfileDescription"] = None

    @property
    def has_default(self) -> bool:
        return self.default is not None


@dataclass(frozen=True)
class ProfileDescription:
    fields: Mapping[str, FieldRule] = field(default_factory=dict)
    filters: Tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))
        object.__setattr__(self, "filters", tuple(self.filters))

    def field_names(self) -> Tuple[str, ...]:
        return tuple(self.fields.keys())
