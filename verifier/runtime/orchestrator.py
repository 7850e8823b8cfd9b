from __future__ import annotations

from typing import Any, Hashable, Mapping, Optional, Protocol

from verifier.contracts.messages import MessageScope, MessageStack, UNSCOPED, resolve_scope
from verifier.contracts.verification import Diverted, Returned, VerifyOutcome
from verifier.errors import BadFallbackConfiguration
from verifier.logging_config import get_logger, verification_extra
from verifier.registry.profile_registry import ProfileRegistry
from verifier.runtime.request_cache import RequestScopedCache
from verifier.verification.engine import ValidationEngine
from verifier.verification.manager import VerificationManager

logger = get_logger(__name__)


class VerifyContext(Protocol):
    @property
    def params(self) -> Mapping[str, Any]:
        ...

    @property
    def action_name(self) -> str:
        ...

    @property
    def stash(self) -> Any:
        ...

    @property
    def component_name(self) -> str:
        ...

    def action_for(self, name: str) -> Optional[Any]:
        ...


class VerifyOrchestrator:
    """
    Entry point used by a controller's verify():

    cache lookup -> (build) -> validate -> return, or divert to the
    configured fallback action when validation failed.
    """

    def __init__(
        self,
        identity: Hashable,
        registry: ProfileRegistry,
        cache: RequestScopedCache,
        fallback: Optional[str] = None,
        engine: Optional[ValidationEngine] = None,
    ) -> None:
        self.identity = identity
        self.registry = registry
        self.cache = cache
        self.fallback = fallback or None
        self.engine = engine or ValidationEngine()

    def _build(self) -> VerificationManager:
        return VerificationManager.build(self.registry, self.engine)

    def manager(self, context: VerifyContext) -> VerificationManager:
        return self.cache.get_or_create(context, self.identity, self._build)

    def run(self, context: VerifyContext) -> VerifyOutcome:
        action_name = context.action_name
        result = self.manager(context).verify(action_name, context.params)

        if result.success or not self.fallback:
            return Returned(result)

        target = context.action_for(self.fallback)
        if target is None:
            raise BadFallbackConfiguration(context.component_name, self.fallback)

        logger.info(
            "detaching to '%s' after failed verification",
            self.fallback,
            extra=verification_extra(self.identity, action_name),
        )
        return Diverted(target, result)

    def messages(self, context: VerifyContext, scope: MessageScope = UNSCOPED) -> MessageStack:
        manager = self.cache.peek(context, self.identity)
        if manager is None:
            return MessageStack()
        return manager.messages_for(resolve_scope(scope))
