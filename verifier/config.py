from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_STASH_KEY = "_verifier_stash"


def _env_str(name: str, default: str) -> str:
    v = os.getenv(name, "").strip()
    return v or default


def _env_bool(name: str, default: str = "0") -> bool:
    v = os.getenv(name, default).strip().lower()
    return v in ("1", "true", "yes", "on")


def default_stash_key() -> str:
    return _env_str("VERIFIER_STASH_KEY", DEFAULT_STASH_KEY)


@dataclass(frozen=True)
class Settings:
    service_name: str = "request-verifier"
    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_colors: bool = True
    stash_key: str = DEFAULT_STASH_KEY


def load_settings() -> Settings:
    return Settings(
        service_name=_env_str("VERIFIER_SERVICE_NAME", "request-verifier"),
        log_level=_env_str("VERIFIER_LOG_LEVEL", "INFO"),
        log_file=os.getenv("VERIFIER_LOG_FILE") or None,
        log_colors=_env_bool("VERIFIER_LOG_COLORS", "1"),
        stash_key=default_stash_key(),
    )


class VerifierConfig(BaseModel):
    """
    Per-controller verifier configuration.

    Profiles may carry callables (coercions, post checks, filters) or be
    prebuilt ProfileDescriptions, so the values of ``verifiers`` are kept as
    given and parsed by the registry.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    verifiers: Dict[str, Any] = Field(
        default_factory=dict, description="Action name -> verification profile."
    )
    detach_on_failure: Optional[str] = Field(
        None, description="Action to detach to when verification fails."
    )
    verifier_stash_key: str = Field(
        default_factory=default_stash_key,
        min_length=1,
        description="Per-request store key holding the verification managers.",
    )

    @field_validator("detach_on_failure", mode="before")
    @classmethod
    def _blank_means_unset(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value
