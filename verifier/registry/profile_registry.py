from __future__ import annotations

from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from verifier.contracts.profile import FieldRule, ProfileDescription
from verifier.errors import DuplicateProfile, InvalidProfile, ProfileNotFound, RegistryFrozen
from verifier.logging_config import get_logger
from verifier.verification.filters import BUILTIN_FILTERS

logger = get_logger(__name__)

_RULE_KEYS = frozenset(
    {"type", "required", "default", "coercion", "post_check", "filters", "min_length", "max_length", "dependent"}
)


def _check_filters(action: str, filters: Any) -> Tuple[Any, ...]:
    if isinstance(filters, str) or callable(filters):
        filters = [filters]
    out = []
    for f in filters or ():
        if not callable(f) and f not in BUILTIN_FILTERS:
            raise InvalidProfile(action, f"unknown filter '{f}'")
        out.append(f)
    return tuple(out)


def _parse_rule(action: str, name: str, spec: Any) -> FieldRule:
    if isinstance(spec, FieldRule):
        return spec
    if not isinstance(spec, Mapping):
        raise InvalidProfile(action, f"field '{name}' must be a mapping of rules")

    unknown = sorted(set(spec) - _RULE_KEYS)
    if unknown:
        raise InvalidProfile(action, f"field '{name}' has unknown rule(s): {', '.join(unknown)}")

    for key in ("min_length", "max_length"):
        v = spec.get(key)
        if v is not None and (not isinstance(v, int) or isinstance(v, bool) or v < 0):
            raise InvalidProfile(action, f"field '{name}': {key} must be a non-negative int")

    for key in ("post_check", "coercion"):
        v = spec.get(key)
        if v is not None and not callable(v) and not hasattr(v, "via"):
            raise InvalidProfile(action, f"field '{name}': {key} must be callable")

    dependent = spec.get("dependent")
    if dependent is not None and not isinstance(dependent, ProfileDescription):
        dependent = parse_profile(action, dependent)

    return FieldRule(
        type=spec.get("type"),
        required=bool(spec.get("required", False)),
        default=spec.get("default"),
        coercion=spec.get("coercion"),
        post_check=spec.get("post_check"),
        filters=_check_filters(action, spec.get("filters")),
        min_length=spec.get("min_length"),
        max_length=spec.get("max_length"),
        dependent=dependent,
    )


def parse_profile(action: str, raw: Any) -> ProfileDescription:
    """
    Turn a raw profile mapping into a ProfileDescription.

    The reserved key ``filters`` holds profile-wide pre-filters; every other
    key names an input field and maps to its rules.
    """
    if isinstance(raw, ProfileDescription):
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidProfile(action, "profile must be a mapping")

    fields: Dict[str, FieldRule] = {}
    for name, spec in raw.items():
        if name == "filters":
            continue
        fields[str(name)] = _parse_rule(action, str(name), spec)

    return ProfileDescription(fields=fields, filters=_check_filters(action, raw.get("filters")))


class ProfileRegistry:
    """
    Action name -> ProfileDescription for one controller.

    Filled while the controller is being configured, then frozen.
    """

    def __init__(self, owner: str, profiles: Optional[Mapping[str, Any]] = None) -> None:
        self.owner = owner
        self._profiles: Dict[str, ProfileDescription] = {}
        self._frozen = False
        for action, raw in (profiles or {}).items():
            self.register(action, raw)

    def register(self, action: str, description: Any) -> ProfileDescription:
        if self._frozen:
            raise RegistryFrozen(action, self.owner)
        if action in self._profiles:
            raise DuplicateProfile(action, self.owner)
        profile = parse_profile(action, description)
        self._profiles[action] = profile
        logger.debug("registered profile %s.%s fields=%s", self.owner, action, list(profile.fields))
        return profile

    def freeze(self) -> "ProfileRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, action: str) -> Optional[ProfileDescription]:
        return self._profiles.get(action)

    def lookup(self, action: str) -> ProfileDescription:
        profile = self._profiles.get(action)
        if profile is None:
            raise ProfileNotFound(action, self.owner)
        return profile

    def names(self) -> List[str]:
        return list(self._profiles.keys())

    def items(self) -> Iterator[Tuple[str, ProfileDescription]]:
        return iter(list(self._profiles.items()))

    def __contains__(self, action: object) -> bool:
        return action in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)
