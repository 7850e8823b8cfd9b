from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from verifier.contracts.messages import Message, MessageStack
from verifier.contracts.verification import FieldResult, FieldStatus, VerificationResult
from verifier.errors import ProfileNotFound
from verifier.logging_config import get_logger, verification_extra
from verifier.registry.profile_registry import ProfileRegistry
from verifier.verification.engine import CompiledProfile, ValidationEngine

logger = get_logger(__name__)

_CODES = {
    FieldStatus.MISSING: "required",
    FieldStatus.WRONG_TYPE: "wrong_type",
    FieldStatus.INVALID: "invalid",
}


def _text(fr: FieldResult) -> str:
    if fr.status is FieldStatus.MISSING:
        return f"{fr.name} is required"
    if fr.status is FieldStatus.WRONG_TYPE:
        return f"{fr.name} has the wrong type: {fr.reason}"
    return f"{fr.name} is invalid: {fr.reason}" if fr.reason else f"{fr.name} is invalid"


def messages_from_result(scope: str, result: VerificationResult) -> List[Message]:
    return [
        Message(scope=scope, field=fr.name, code=_CODES[fr.status], text=_text(fr))
        for fr in result.fields.values()
        if not fr.valid
    ]


class VerificationManager:
    """
    Compiled validators for one controller plus everything verified with
    them during the current request.

    Lives exactly as long as the request that built it.
    """

    def __init__(self, owner: str, validators: Mapping[str, CompiledProfile]) -> None:
        self.owner = owner
        self._validators: Dict[str, CompiledProfile] = dict(validators)
        self._results: Dict[str, VerificationResult] = {}
        self._messages: Dict[str, List[Message]] = {}

    @classmethod
    def build(cls, registry: ProfileRegistry, engine: Optional[ValidationEngine] = None) -> "VerificationManager":
        engine = engine or ValidationEngine()
        validators = {action: engine.compile(action, profile) for action, profile in registry.items()}
        logger.debug("built verification manager for %s (%d profiles)", registry.owner, len(validators))
        return cls(registry.owner, validators)

    def verify(self, action: str, values: Mapping[str, Any]) -> VerificationResult:
        validator = self._validators.get(action)
        if validator is None:
            raise ProfileNotFound(action, self.owner)

        result = validator.validate(values)
        self._results[action] = result
        self._messages[action] = messages_from_result(action, result)

        if not result.success:
            logger.info(
                "verification failed missing=%s invalid=%s",
                result.missings(), result.invalids(),
                extra=verification_extra(self.owner, action),
            )
        return result

    def messages_for(self, scope: Optional[str] = None) -> MessageStack:
        if not scope:
            return MessageStack(m for msgs in self._messages.values() for m in msgs)
        return MessageStack(self._messages.get(scope, ()))

    def results_for(self, scope: str) -> Optional[VerificationResult]:
        return self._results.get(scope)

    def verified_scopes(self) -> List[str]:
        return list(self._results.keys())

    @property
    def success(self) -> bool:
        return all(r.success for r in self._results.values())

    def has_validator(self, action: str) -> bool:
        return action in self._validators
