from __future__ import annotations

import json
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Dict, Iterable, Mapping, MutableMapping, Optional, Tuple

from starlette.requests import Request

from verifier.contracts.messages import CurrentActionOf, MessageScope, ScopeName, UNSCOPED, Unscoped
from verifier.web.actions import Action, Detach

if TYPE_CHECKING:
    from verifier.web.controller import Controller

_FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def _safe_json_loads(b: bytes) -> Optional[Dict[str, Any]]:
    try:
        if not b:
            return None
        v = json.loads(b.decode("utf-8"))
        return v if isinstance(v, dict) else None
    except (UnicodeDecodeError, ValueError):
        return None


def _merge(params: Dict[str, Any], items: Iterable[Tuple[str, Any]]) -> None:
    # repeated keys collapse into a list, in arrival order
    for k, v in items:
        if k not in params:
            params[k] = v
        elif isinstance(params[k], list):
            params[k].append(v)
        else:
            params[k] = [params[k], v]


async def collect_params(request: Request) -> Dict[str, Any]:
    """
    Flatten query string and body (form or JSON object) into one mapping.
    """
    params: Dict[str, Any] = {}
    _merge(params, request.query_params.multi_items())

    if request.method.upper() in ("POST", "PUT", "PATCH", "DELETE"):
        ctype = request.headers.get("content-type", "").split(";")[0].strip().lower()
        if ctype in _FORM_TYPES:
            form = await request.form()
            _merge(params, form.multi_items())
        elif ctype == "application/json" or ctype.endswith("+json"):
            body = _safe_json_loads(await request.body())
            if body:
                _merge(params, body.items())
    return params


class RequestContext:
    """
    Everything the verifier needs from the current request: its flat input
    values, the action being run, a store that lives as long as the
    request, and the controller that owns the action.
    """

    def __init__(
        self,
        controller: "Controller",
        action: Action,
        params: Optional[Mapping[str, Any]] = None,
        stash: Optional[MutableMapping[str, Any]] = None,
        request: Optional[Request] = None,
    ) -> None:
        self.controller = controller
        self.action = action
        self._params = MappingProxyType(dict(params or {}))
        self._stash: MutableMapping[str, Any] = stash if stash is not None else {}
        self.request = request

    @classmethod
    async def from_request(cls, request: Request, controller: "Controller", action: Action) -> "RequestContext":
        # request.state is backed by scope["state"]
        stash = request.scope.setdefault("state", {})
        return cls(controller, action, params=await collect_params(request), stash=stash, request=request)

    @property
    def params(self) -> Mapping[str, Any]:
        return self._params

    @property
    def action_name(self) -> str:
        return self.action.name

    @property
    def component_name(self) -> str:
        return self.controller.name

    @property
    def stash(self) -> MutableMapping[str, Any]:
        return self._stash

    def action_for(self, name: str) -> Optional[Action]:
        return self.controller.action_for(name)

    def detach(self, target: Any, *args: Any) -> None:
        raise Detach(target, args)


def scope_of(value: Any) -> MessageScope:
    """
    Normalize what a handler passes to messages(): nothing, a scope name,
    an Action, the request context itself, or a ready-made scope.
    """
    if value is None:
        return UNSCOPED
    if isinstance(value, (Unscoped, ScopeName, CurrentActionOf)):
        return value
    if isinstance(value, RequestContext):
        return CurrentActionOf(value)
    if isinstance(value, Action):
        return ScopeName(value.name)
    if isinstance(value, str):
        return ScopeName(value) if value else UNSCOPED
    raise TypeError(f"cannot use {type(value).__name__} as a message scope")
