import json
import logging
import pytest

from authstate_core.config import SessionConfig
from authstate_core.errors import SessionValidationError
from authstate_core.logger import get_logger


def test_defaults():
    config = SessionConfig(session="bot-1")
    assert config.collection_name == "baileys-auth"
    assert config.max_retries == 10
    assert config.retry_request_delay_ms == 200
    assert config.retry_delay_s == pytest.approx(0.2)
    assert config.provider == "sqlite"
    assert config.debug is False


def test_from_env(monkeypatch):
    monkeypatch.setenv("AUTHSTATE_SESSION", "env_bot")
    monkeypatch.setenv("AUTHSTATE_STORAGE_PROVIDER", "MEMORY")
    monkeypatch.setenv("AUTHSTATE_MAX_RETRIES", "4")
    monkeypatch.setenv("AUTHSTATE_RETRY_DELAY_MS", "50")
    monkeypatch.setenv("AUTHSTATE_DEBUG", "yes")
    monkeypatch.setenv("AUTHSTATE_COLLECTION", "auth_v2")

    config = SessionConfig.from_env()

    assert config.session == "env_bot"
    assert config.provider == "memory"
    assert config.max_retries == 4
    assert config.retry_request_delay_ms == 50
    assert config.debug is True
    assert config.collection_name == "auth_v2"


def test_from_env_overrides_win(monkeypatch):
    monkeypatch.setenv("AUTHSTATE_SESSION", "env_bot")
    config = SessionConfig.from_env(session="explicit", provider="memory")
    assert config.session == "explicit"


def test_from_env_bad_integer(monkeypatch):
    monkeypatch.setenv("AUTHSTATE_SESSION", "env_bot")
    monkeypatch.setenv("AUTHSTATE_MAX_RETRIES", "lots")
    with pytest.raises(SessionValidationError):
        SessionConfig.from_env()


def test_from_env_requires_session(monkeypatch):
    monkeypatch.delenv("AUTHSTATE_SESSION", raising=False)
    with pytest.raises(SessionValidationError):
        SessionConfig.from_env(provider="memory")


def test_mongo_provider_needs_uri():
    with pytest.raises(SessionValidationError):
        SessionConfig(session="s", provider="mongo")


def test_unknown_provider():
    with pytest.raises(SessionValidationError):
        SessionConfig(session="s", provider="redis")


def test_bool_is_not_a_retry_count():
    with pytest.raises(SessionValidationError):
        SessionConfig(session="s", max_retries=True)


def test_logger_writes_json_lines(tmp_path):
    path = tmp_path / "logs" / "auth.log"
    log = get_logger("authstate.test.jsonlines", level=logging.DEBUG, to_file=str(path))

    log.info('[KEYS] wrote "pre-key-1"')
    for handler in log.handlers:
        handler.flush()

    entry = json.loads(path.read_text().strip().splitlines()[-1])
    assert entry["level"] == "INFO"
    assert entry["name"] == "authstate.test.jsonlines"
    assert entry["msg"] == '[KEYS] wrote "pre-key-1"'
    assert entry["ts"].endswith("Z")


def test_logger_is_reused():
    a = get_logger("authstate.test.reuse")
    b = get_logger("authstate.test.reuse", level=logging.DEBUG)
    assert a is b
    assert len(b.handlers) == 1
    assert b.level == logging.DEBUG
