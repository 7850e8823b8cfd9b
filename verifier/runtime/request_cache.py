from __future__ import annotations

from threading import Lock
from typing import Any, Callable, Dict, Hashable, MutableMapping, Optional, Protocol

from verifier.config import DEFAULT_STASH_KEY
from verifier.logging_config import get_logger, verification_extra
from verifier.verification.manager import VerificationManager

logger = get_logger(__name__)


class HasStash(Protocol):
    @property
    def stash(self) -> MutableMapping[str, Any]:
        ...


class RequestScopedCache:
    """
    At most one VerificationManager per (request, component).

    Entries live inside the request context's own store under
    ``stash_key``, so they die with the request.
    """

    def __init__(self, stash_key: str = DEFAULT_STASH_KEY) -> None:
        self.stash_key = stash_key
        self._lock = Lock()

    def _slots(self, context: HasStash) -> Dict[Hashable, VerificationManager]:
        return context.stash.setdefault(self.stash_key, {})

    def peek(self, context: HasStash, identity: Hashable) -> Optional[VerificationManager]:
        slots = context.stash.get(self.stash_key)
        if not slots:
            return None
        return slots.get(identity)

    def get_or_create(
        self,
        context: HasStash,
        identity: Hashable,
        builder: Callable[[], VerificationManager],
    ) -> VerificationManager:
        with self._lock:
            slots = self._slots(context)
            manager = slots.get(identity)
            if manager is not None:
                logger.debug("verifier cache hit", extra=verification_extra(identity))
                return manager
            logger.debug("verifier cache miss, building", extra=verification_extra(identity))
            manager = builder()
            slots[identity] = manager
            return manager

    def discard(self, context: HasStash, identity: Hashable) -> None:
        with self._lock:
            slots = context.stash.get(self.stash_key)
            if slots:
                slots.pop(identity, None)
