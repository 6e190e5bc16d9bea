import logging

from logdrain_service.config import (  # type: ignore[import]
  DEFAULT_DATABASE_URL,
  DEFAULT_STORAGE_TIMEOUT_MS,
  load_service_config,
)
from logdrain_service.logging_setup import configure_logging  # type: ignore[import]


def test_service_config_defaults(monkeypatch):
  for name in (
    "LOGDRAIN_DATABASE_URL",
    "LOGDRAIN_STORAGE_TIMEOUT_MS",
    "LOGDRAIN_HOST",
    "LOGDRAIN_PORT",
    "LOGDRAIN_LOG_LEVEL",
  ):
    monkeypatch.delenv(name, raising=False)

  cfg = load_service_config()
  assert cfg.database_url == DEFAULT_DATABASE_URL
  assert cfg.storage_timeout_ms == DEFAULT_STORAGE_TIMEOUT_MS
  assert cfg.host == "localhost"
  assert cfg.port == 8001
  assert cfg.log_level == "INFO"


def test_service_config_falls_back_on_invalid_numbers(monkeypatch):
  monkeypatch.setenv("LOGDRAIN_STORAGE_TIMEOUT_MS", "soon")
  monkeypatch.setenv("LOGDRAIN_PORT", "0")

  cfg = load_service_config()
  assert cfg.storage_timeout_ms == DEFAULT_STORAGE_TIMEOUT_MS
  assert cfg.port == 8001


def test_service_config_reads_overrides(monkeypatch):
  monkeypatch.setenv("LOGDRAIN_DATABASE_URL", "memory://")
  monkeypatch.setenv("LOGDRAIN_STORAGE_TIMEOUT_MS", "250")
  monkeypatch.setenv("LOGDRAIN_LOG_LEVEL", "debug")

  cfg = load_service_config()
  assert cfg.database_url == "memory://"
  assert cfg.storage_timeout_ms == 250
  assert cfg.log_level == "DEBUG"


def test_configure_logging_does_not_stack_handlers():
  logger = logging.getLogger("logdrain-test-logging")
  configure_logging("debug", logger=logger)
  configure_logging("warning", logger=logger)

  assert len(logger.handlers) == 1
  assert logger.level == logging.WARNING
  assert logger.handlers[0].level == logging.WARNING


def test_configure_logging_unknown_level_falls_back_to_info():
  logger = logging.getLogger("logdrain-test-logging-unknown")
  configure_logging("chatty", logger=logger)
  assert logger.level == logging.INFO
