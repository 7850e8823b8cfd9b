"""
Logging for the verifier layer.

Every module logs below the ``verifier`` logger. Records about a
particular verification carry the controller and action through
``extra=verification_extra(...)``; the formatter prints them as
``component.action`` so a failed request can be followed across the
cache, the manager and the fallback dispatch.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from verifier.config import Settings, load_settings

ROOT_LOGGER = "verifier"

# chatty below WARNING while serving requests
QUIET_LOGGERS = ("httpx", "httpcore", "multipart", "python_multipart")


def verification_extra(component: Any, action: Optional[str] = None) -> Dict[str, Any]:
    return {"component": str(component), "action": action}


class VerifierFormatter(logging.Formatter):
    """``[TIME] LEVEL [service] [logger] (component.action) message``"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, service: Optional[str] = None, use_colors: bool = True) -> None:
        super().__init__()
        self.service = service
        self.use_colors = use_colors and sys.stdout.isatty()

    @staticmethod
    def _target(record: logging.LogRecord) -> Optional[str]:
        component = getattr(record, "component", None)
        if not component:
            return None
        action = getattr(record, "action", None)
        return f"{component}.{action}" if action else component

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        level = record.levelname
        if self.use_colors:
            level = f"{self.COLORS.get(level, '')}{level}{self.RESET}"

        parts = [f"[{timestamp}]", f"{level:8}"]
        if self.service:
            parts.append(f"[{self.service}]")
        parts.append(f"[{record.name}]")
        target = self._target(record)
        if target:
            parts.append(f"({target})")
        parts.append(record.getMessage())

        if record.exc_info:
            parts.append(self.formatException(record.exc_info))
        return " ".join(parts)


def setup_logging(
    settings: Optional[Settings] = None,
    *,
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    use_colors: Optional[bool] = None,
) -> logging.Logger:
    """
    Configure the ``verifier`` logger tree from Settings.

    Keyword arguments override the matching settings field. Handlers
    installed by an earlier call are replaced, not stacked.
    """
    settings = settings or load_settings()
    level = level or settings.log_level
    log_file = log_file or settings.log_file
    use_colors = settings.log_colors if use_colors is None else use_colors

    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(VerifierFormatter(settings.service_name, use_colors=use_colors))
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(VerifierFormatter(settings.service_name, use_colors=False))
        root_logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.debug("logging configured for %s (stash key %r)", settings.service_name, settings.stash_key)
    return root_logger


def get_logger(name: str) -> logging.Logger:
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
