import logging

import pytest
from pydantic import ValidationError

from verifier.config import DEFAULT_STASH_KEY, Settings, VerifierConfig, load_settings
from verifier.logging_config import VerifierFormatter, get_logger, setup_logging, verification_extra


def test_defaults(monkeypatch):
    monkeypatch.delenv("VERIFIER_STASH_KEY", raising=False)
    cfg = VerifierConfig()
    assert cfg.verifiers == {}
    assert cfg.detach_on_failure is None
    assert cfg.verifier_stash_key == DEFAULT_STASH_KEY


def test_stash_key_from_env(monkeypatch):
    monkeypatch.setenv("VERIFIER_STASH_KEY", "garden")
    assert VerifierConfig().verifier_stash_key == "garden"
    assert load_settings().stash_key == "garden"


def test_unknown_option_rejected():
    with pytest.raises(ValidationError):
        VerifierConfig(detach_on_fail="bad_args")


def test_blank_stash_key_rejected():
    with pytest.raises(ValidationError):
        VerifierConfig(verifier_stash_key="")


def test_load_settings_env(monkeypatch):
    monkeypatch.setenv("VERIFIER_LOG_LEVEL", "debug")
    monkeypatch.setenv("VERIFIER_LOG_COLORS", "0")
    monkeypatch.delenv("VERIFIER_LOG_FILE", raising=False)
    s = load_settings()
    assert s.log_level == "debug"
    assert s.log_colors is False
    assert s.log_file is None


def _record(msg, **extra):
    record = logging.LogRecord("verifier.runtime", logging.INFO, __file__, 1, msg, (), None)
    record.__dict__.update(extra)
    return record


def test_logging_tree(tmp_path):
    log_file = tmp_path / "logs" / "verifier.log"
    settings = Settings(service_name="search-svc", log_level="DEBUG", log_file=str(log_file), log_colors=False)
    root = setup_logging(settings)
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 2
    assert get_logger("verifier.web").name == "verifier.web"
    assert get_logger("cache").name == "verifier.cache"

    get_logger("cache").info("hello %s", "there", extra=verification_extra("catalog", "search"))
    for h in root.handlers:
        h.flush()
    text = log_file.read_text()
    assert "INFO" in text
    assert "[search-svc] [verifier.cache] (catalog.search) hello there" in text
    assert isinstance(root.handlers[0].formatter, VerifierFormatter)

    # a second call replaces the handlers instead of stacking them
    root = setup_logging(Settings(log_colors=False), level="WARNING")
    assert root.level == logging.WARNING
    assert len(root.handlers) == 1
    assert logging.getLogger("httpx").level == logging.WARNING


def test_formatter_renders_verification_target():
    fmt = VerifierFormatter(use_colors=False)
    assert "[verifier.runtime] (catalog.search) failed" in fmt.format(
        _record("failed", **verification_extra("catalog", "search"))
    )
    assert "[verifier.runtime] (catalog) hit" in fmt.format(_record("hit", **verification_extra("catalog")))
    plain = fmt.format(_record("plain"))
    assert "[verifier.runtime] plain" in plain
    assert "(" not in plain
