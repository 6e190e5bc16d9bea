from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

DEFAULT_URL = "http://localhost:8001/api/drain/default"
DEFAULT_PERIOD_MS = 1000
DEFAULT_BATCH_SIZE = 9
DEFAULT_TIMEOUT_MS = 5000


def default_payload() -> List[Dict[str, Any]]:
  """
  One schema-valid event, sent unchanged by every request of a run.
  """
  return [
    {
      "id": "harness",
      "deploymentId": "harness-deployment",
      "source": "lambda",
      "host": "localhost",
      "timestamp": int(time.time() * 1000),
      "projectId": "harness-project",
      "level": "warn",
      "message": "hello",
      "type": "text",
    }
  ]


@dataclass(frozen=True)
class HarnessConfig:
  """
  Configuration for the load harness.

  Values are sourced from environment variables with sensible defaults.
  """

  url: str = DEFAULT_URL
  period_ms: int = DEFAULT_PERIOD_MS
  batch_size: int = DEFAULT_BATCH_SIZE
  timeout_ms: int = DEFAULT_TIMEOUT_MS
  payload: List[Dict[str, Any]] = field(default_factory=default_payload)

  @property
  def period_seconds(self) -> float:
    return self.period_ms / 1000.0

  @property
  def timeout_seconds(self) -> float:
    return self.timeout_ms / 1000.0

  @classmethod
  def from_params_or_env(
    cls,
    url: Optional[str] = None,
    period_ms: Optional[int] = None,
    batch_size: Optional[int] = None,
    timeout_ms: Optional[int] = None,
  ) -> "HarnessConfig":
    """
    Build configuration from explicit parameters, falling back to environment variables.

    Priority:
      1. Explicit function arguments
      2. LOGDRAIN_HARNESS_* environment variables
      3. Defaults (1000 ms period, 9 requests per batch)
    """
    target = url or os.getenv("LOGDRAIN_HARNESS_URL", DEFAULT_URL)
    _validate_url(target)

    if period_ms is None:
      period_ms = _positive_int_env("LOGDRAIN_HARNESS_PERIOD_MS", DEFAULT_PERIOD_MS)
    if batch_size is None:
      batch_size = _positive_int_env("LOGDRAIN_HARNESS_BATCH_SIZE", DEFAULT_BATCH_SIZE)
    if timeout_ms is None:
      timeout_ms = _positive_int_env("LOGDRAIN_HARNESS_TIMEOUT_MS", DEFAULT_TIMEOUT_MS)

    # a zero period runs ticks back to back; batches and timeouts need at least 1
    if period_ms < 0 or batch_size < 1 or timeout_ms < 1:
      raise ValueError(
        f"Invalid harness settings: period_ms={period_ms}, batch_size={batch_size}, timeout_ms={timeout_ms}"
      )

    return cls(url=target, period_ms=period_ms, batch_size=batch_size, timeout_ms=timeout_ms)


def _validate_url(url: str) -> None:
  parsed = urlparse(url)
  if parsed.scheme not in ("http", "https") or not parsed.netloc:
    raise ValueError(
      f"Invalid LOGDRAIN_HARNESS_URL '{url}'. "
      "Expected an http(s) URL like http://localhost:8001/api/drain/<channel-id>."
    )


def _positive_int_env(name: str, default: int) -> int:
  raw = os.getenv(name)
  if raw is None:
    return default
  try:
    value = int(raw)
  except ValueError:
    return default
  return value if value > 0 else default
