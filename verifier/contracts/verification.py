from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Union


class FieldStatus(str, Enum):
    VALID = "valid"
    MISSING = "missing"
    WRONG_TYPE = "wrong_type"
    INVALID = "invalid"


@dataclass(frozen=True)
class FieldResult:
    name: str
    status: FieldStatus
    value: Any = None
    original_value: Any = None
    reason: str = ""

    @property
    def valid(self) -> bool:
        return self.status is FieldStatus.VALID

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "value": self.value,
            "original_value": self.original_value,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class VerificationResult:
    """
    Outcome of verifying one set of input values against one profile.

    Only fields named by the profile appear here; an optional field that was
    not supplied (and has no default) is simply absent.
    """

    fields: Mapping[str, FieldResult] = field(default_factory=dict)
    scope: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    @property
    def success(self) -> bool:
        return all(fr.valid for fr in self.fields.values())

    def get_field(self, name: str) -> Optional[FieldResult]:
        return self.fields.get(name)

    def get_value(self, name: str, default: Any = None) -> Any:
        fr = self.fields.get(name)
        if fr is None or not fr.valid:
            return default
        return fr.value

    def get_original_value(self, name: str) -> Any:
        fr = self.fields.get(name)
        return fr.original_value if fr is not None else None

    def _status_is(self, name: str, status: FieldStatus) -> bool:
        fr = self.fields.get(name)
        return fr is not None and fr.status is status

    def is_valid(self, name: str) -> bool:
        return self._status_is(name, FieldStatus.VALID)

    def is_missing(self, name: str) -> bool:
        return self._status_is(name, FieldStatus.MISSING)

    def is_wrong_type(self, name: str) -> bool:
        return self._status_is(name, FieldStatus.WRONG_TYPE)

    def is_invalid(self, name: str) -> bool:
        # wrong type counts as invalid, missing does not
        return self._status_is(name, FieldStatus.INVALID) or self.is_wrong_type(name)

    def _names(self, *statuses: FieldStatus) -> List[str]:
        return [n for n, fr in self.fields.items() if fr.status in statuses]

    def valids(self) -> List[str]:
        return self._names(FieldStatus.VALID)

    def missings(self) -> List[str]:
        return self._names(FieldStatus.MISSING)

    def invalids(self) -> List[str]:
        return self._names(FieldStatus.INVALID, FieldStatus.WRONG_TYPE)

    def wrong_types(self) -> List[str]:
        return self._names(FieldStatus.WRONG_TYPE)

    def values(self) -> Dict[str, Any]:
        return {n: fr.value for n, fr in self.fields.items() if fr.valid}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "scope": self.scope,
            "fields": {n: fr.to_dict() for n, fr in self.fields.items()},
        }


# ---- verify outcomes ----

@dataclass(frozen=True)
class Returned:
    result: VerificationResult


@dataclass(frozen=True)
class Diverted:
    action: Any  # the controller's Action to detach to
    result: VerificationResult


VerifyOutcome = Union[Returned, Diverted]
