from __future__ import annotations

from typing import Optional


class VerifierError(Exception):
    """
    Base class for every error raised by the verifier layer.
    """


class VerifierConfigurationError(VerifierError):
    """
    A controller was configured in a way the verifier cannot honour.
    These are never recoverable by the handler and surface as a 5xx.
    """


class InvalidProfile(VerifierConfigurationError):
    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        super().__init__(f"Invalid verification profile for action '{action}': {reason}")


class DuplicateProfile(VerifierConfigurationError):
    def __init__(self, action: str, owner: str) -> None:
        self.action = action
        self.owner = owner
        super().__init__(f"{owner} already has a verification profile for action '{action}'.")


class RegistryFrozen(VerifierConfigurationError):
    def __init__(self, action: str, owner: str) -> None:
        self.action = action
        self.owner = owner
        super().__init__(
            f"Cannot register a profile for '{action}': the profiles of {owner} are frozen."
        )


class ProfileNotFound(VerifierConfigurationError):
    def __init__(self, action: str, owner: Optional[str] = None) -> None:
        self.action = action
        self.owner = owner
        where = owner or "this controller"
        super().__init__(
            f"No verification profile for action '{action}' in {where}; "
            "refusing to run the action unverified."
        )


class BadFallbackConfiguration(VerifierConfigurationError):
    def __init__(self, owner: str, fallback: str) -> None:
        self.owner = owner
        self.fallback = fallback
        super().__init__(
            f"Invalid detach action specified, {owner} does not have an action '{fallback}'."
        )
