from __future__ import annotations

import re
from typing import Any, Callable, Dict, Iterable, List, Union

FilterFn = Callable[[str], str]
FilterSpec = Union[str, FilterFn]

_WS = re.compile(r"\s+")


def _trim(v: str) -> str:
    return v.strip()


def _strip(v: str) -> str:
    return "".join(ch for ch in v if ch.isprintable() or ch in "\t\n\r")


def _collapse(v: str) -> str:
    return _WS.sub(" ", v)


def _flatten(v: str) -> str:
    return _WS.sub("", v)


BUILTIN_FILTERS: Dict[str, FilterFn] = {
    "trim": _trim,
    "strip": _strip,
    "lower": str.lower,
    "upper": str.upper,
    "collapse": _collapse,
    "flatten": _flatten,
}


def resolve_filter(spec: FilterSpec) -> FilterFn:
    if callable(spec):
        return spec
    fn = BUILTIN_FILTERS.get(spec)
    if fn is None:
        raise KeyError(spec)
    return fn


def resolve_filters(specs: Iterable[FilterSpec]) -> List[FilterFn]:
    return [resolve_filter(s) for s in specs]


def apply_filters(value: Any, filters: List[FilterFn]) -> Any:
    """
    Run filters over a string, or over each string of a list. Anything
    else passes through untouched.
    """
    if not filters:
        return value
    if isinstance(value, str):
        for fn in filters:
            value = fn(value)
        return value
    if isinstance(value, (list, tuple)):
        return [apply_filters(v, filters) for v in value]
    return value
