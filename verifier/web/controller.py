from __future__ import annotations

import inspect
from typing import Any, Callable, ClassVar, Dict, Mapping, Optional

from fastapi import APIRouter
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request

from verifier.config import VerifierConfig
from verifier.contracts.messages import MessageStack
from verifier.contracts.verification import Diverted, VerificationResult
from verifier.errors import BadFallbackConfiguration
from verifier.logging_config import get_logger, verification_extra
from verifier.registry.profile_registry import ProfileRegistry
from verifier.runtime.orchestrator import VerifyOrchestrator
from verifier.runtime.request_cache import RequestScopedCache
from verifier.web.actions import ACTION_ATTR, Action, Detach
from verifier.web.context import RequestContext, scope_of

logger = get_logger(__name__)


async def _call(handler: Callable[..., Any], *args: Any) -> Any:
    if inspect.iscoroutinefunction(handler):
        return await handler(*args)
    # plain handlers may block; keep them off the event loop
    out = await run_in_threadpool(handler, *args)
    if inspect.isawaitable(out):
        out = await out
    return out


class Controller:
    """
    A component owning named actions. Methods decorated with @action become
    actions; the public ones are exposed on ``router``.
    """

    namespace: ClassVar[Optional[str]] = None
    prefix: ClassVar[str] = ""

    def __init__(self) -> None:
        self.name: str = type(self).namespace or type(self).__name__
        self._actions: Dict[str, Action] = {}
        for attr in dir(type(self)):
            meta = getattr(getattr(type(self), attr, None), ACTION_ATTR, None)
            if not meta:
                continue
            act = Action(
                name=meta["name"],
                handler=getattr(self, attr),
                path=meta["path"],
                methods=meta["methods"],
            )
            self._actions[act.name] = act
        self._router: Optional[APIRouter] = None

    def __str__(self) -> str:
        return self.name

    @property
    def actions(self) -> Mapping[str, Action]:
        return dict(self._actions)

    def action_for(self, name: str) -> Optional[Action]:
        return self._actions.get(name)

    async def dispatch(self, act: Action, context: RequestContext, *args: Any) -> Any:
        try:
            return await _call(act.handler, context, *args)
        except Detach as d:
            target = d.action if isinstance(d.action, Action) else self.action_for(str(d.action))
            if target is None:
                raise BadFallbackConfiguration(self.name, str(d.action)) from d
            logger.debug("detached to %s", target.name, extra=verification_extra(self.name, act.name))
            return await self.dispatch(target, context, *d.args_for_action)

    def _endpoint(self, act: Action) -> Callable[..., Any]:
        async def endpoint(request: Request):
            context = await RequestContext.from_request(request, self, act)
            return await self.dispatch(act, context)

        endpoint.__name__ = f"{self.name}_{act.name}"
        return endpoint

    @property
    def router(self) -> APIRouter:
        if self._router is None:
            router = APIRouter(prefix=type(self).prefix, tags=[self.name])
            for act in self._actions.values():
                if not act.public:
                    continue
                router.add_api_route(
                    act.path,
                    self._endpoint(act),
                    methods=list(act.methods),
                    name=f"{self.name}.{act.name}",
                )
            self._router = router
        return self._router


class VerifierController(Controller):
    """
    Controller with per-action request parameter verification.

    Configure with a class level ``config`` mapping and/or constructor
    keyword arguments::

        class Search(VerifierController):
            config = {
                "verifiers": {
                    "search": {
                        "filters": ["trim"],
                        "page": {"type": int, "post_check": lambda r: r.get_value("page") > 0},
                        "query": {"type": str, "required": True},
                    },
                },
                "detach_on_failure": "bad_args",
            }

            @action("/search")
            def search(self, c):
                results = self.verify(c)
                ...

    Each controller gets its own VerificationManager per request, kept in
    the request's state under ``verifier_stash_key``.
    """

    config: ClassVar[Mapping[str, Any]] = {}

    def __init__(self, **overrides: Any) -> None:
        super().__init__()
        self.verifier_config = VerifierConfig(**{**dict(type(self).config), **overrides})
        self.profiles = ProfileRegistry(self.name, self.verifier_config.verifiers).freeze()
        self._orchestrator = VerifyOrchestrator(
            identity=self.name,
            registry=self.profiles,
            cache=RequestScopedCache(self.verifier_config.verifier_stash_key),
            fallback=self.verifier_config.detach_on_failure,
        )

    # ---- configuration ----

    @property
    def verifiers(self) -> Mapping[str, Any]:
        return self.verifier_config.verifiers

    @property
    def verifier_stash_key(self) -> str:
        return self._orchestrator.cache.stash_key

    @property
    def detach_on_failure(self) -> Optional[str]:
        return self._orchestrator.fallback

    @detach_on_failure.setter
    def detach_on_failure(self, value: Optional[str]) -> None:
        self._orchestrator.fallback = value or None

    @property
    def has_detach_on_failure(self) -> bool:
        return self._orchestrator.fallback is not None

    def clear_detach_on_failure(self) -> None:
        self._orchestrator.fallback = None

    # ---- per request ----

    def verify(self, c: RequestContext) -> VerificationResult:
        """
        Verify the current action's parameters.

        On failure with ``detach_on_failure`` set, control moves to that
        action (called with the results) and this call does not return.
        """
        outcome = self._orchestrator.run(c)
        if isinstance(outcome, Diverted):
            c.detach(outcome.action, outcome.result)
        return outcome.result

    def messages(self, c: RequestContext, scope: Any = None) -> MessageStack:
        """
        Messages recorded in this request.

        ``scope`` may be None (every action), a scope name, an Action, or
        the request context (the action currently running).
        """
        return self._orchestrator.messages(c, scope_of(scope))
