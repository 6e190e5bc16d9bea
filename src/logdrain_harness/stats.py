"""Outcome classification, rate-limit snapshot and throughput counters."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping, Optional

HEADER_CURRENT = "x-ratelimit-current"
HEADER_LIMIT = "x-ratelimit-limit"
HEADER_RESET = "x-ratelimit-reset"


class Outcome(str, Enum):
  SUCCESS = "success"
  RATE_LIMITED = "rate-limited"
  ERROR = "error"


def classify(status_code: Optional[int]) -> Outcome:
  """Map a response status to its bucket. None means the request never got a response."""
  if status_code is None:
    return Outcome.ERROR
  if status_code == 429:
    return Outcome.RATE_LIMITED
  if 200 <= status_code < 300:
    return Outcome.SUCCESS
  return Outcome.ERROR


def _parse_header(headers: Mapping[str, str], name: str) -> Optional[int]:
  raw = headers.get(name)
  if raw is None:
    return None
  try:
    return int(float(raw.strip()))
  except (ValueError, OverflowError):
    return None


@dataclass
class RateLimitSnapshot:
  """
  Last known quota state reported by the server.

  A field stays at its last observed value when a response omits the header.
  """

  limit: Optional[int] = None
  current: Optional[int] = None
  reset: Optional[int] = None

  @property
  def remaining(self) -> Optional[int]:
    if self.limit is None or self.current is None:
      return None
    return self.limit - self.current

  def update(self, headers: Mapping[str, str]) -> None:
    current = _parse_header(headers, HEADER_CURRENT)
    limit = _parse_header(headers, HEADER_LIMIT)
    reset = _parse_header(headers, HEADER_RESET)

    if current is not None:
      self.current = current
    if limit is not None:
      self.limit = limit
    if reset is not None:
      self.reset = reset


@dataclass
class HarnessStats:
  started_at: float = field(default_factory=time.monotonic)
  total_requests: int = 0
  successes: int = 0
  rate_limited: int = 0
  errors: int = 0

  def record_batch(self, outcomes: Iterable[Outcome]) -> None:
    for outcome in outcomes:
      self.total_requests += 1
      if outcome is Outcome.SUCCESS:
        self.successes += 1
      elif outcome is Outcome.RATE_LIMITED:
        self.rate_limited += 1
      else:
        self.errors += 1

  def elapsed_seconds(self, now: Optional[float] = None) -> float:
    current = time.monotonic() if now is None else now
    return max(current - self.started_at, 0.0)

  def requests_per_second(self, now: Optional[float] = None) -> float:
    elapsed = self.elapsed_seconds(now)
    if elapsed <= 0:
      return 0.0
    return self.total_requests / elapsed


def _or_na(value: Optional[int]) -> str:
  return "N/A" if value is None else str(value)


def format_report(stats: HarnessStats, snapshot: RateLimitSnapshot, now: Optional[float] = None) -> str:
  lines = [
    f"Elapsed Time: {stats.elapsed_seconds(now):.2f} seconds",
    f"Total Requests: {stats.total_requests}",
    f"Success: {stats.successes}",
    f"Errors: {stats.errors}",
    f"Rate-Limited: {stats.rate_limited}",
    f"Requests per Second: {stats.requests_per_second(now):.2f}",
    "Rate Limit Info:",
    f"  Current: {_or_na(snapshot.current)}",
    f"  Remaining: {_or_na(snapshot.remaining)}",
    f"  Limit: {_or_na(snapshot.limit)}",
    f"  Reset: {_or_na(snapshot.reset)}",
  ]
  return "\n".join(lines)
