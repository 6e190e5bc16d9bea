from __future__ import annotations

import logging
import os
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Callable, Optional

from .errors import ChannelNotFoundError

if TYPE_CHECKING:
  from .storage import LogStorage

DEFAULT_SWEEP_PROBABILITY = 0.05
SWEEP_ERROR_POLICIES = ("log", "raise")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetentionConfig:
  sweep_probability: float
  sweep_errors: str = "log"

  @property
  def propagate_sweep_errors(self) -> bool:
    return self.sweep_errors == "raise"


def load_retention_config() -> RetentionConfig:
  raw_probability = os.getenv("LOGDRAIN_SWEEP_PROBABILITY")
  probability = DEFAULT_SWEEP_PROBABILITY
  if raw_probability is not None:
    try:
      probability = float(raw_probability)
    except ValueError:
      # Fallback to default on invalid input
      probability = DEFAULT_SWEEP_PROBABILITY

  # Clamp to a valid probability
  if probability < 0.0:
    probability = 0.0
  if probability > 1.0:
    probability = 1.0

  sweep_errors = os.getenv("LOGDRAIN_SWEEP_ERRORS", "log").strip().lower()
  if sweep_errors not in SWEEP_ERROR_POLICIES:
    sweep_errors = "log"

  return RetentionConfig(sweep_probability=probability, sweep_errors=sweep_errors)


class SweepSampler:
  """
  Decides whether a given ingestion call also runs a retention sweep.

  `draw` returns a uniform value in [0, 1). Tests pass a fixed draw or a
  probability of 0.0 / 1.0 to make the decision deterministic.
  """

  def __init__(
    self,
    probability: float = DEFAULT_SWEEP_PROBABILITY,
    draw: Optional[Callable[[], float]] = None,
  ) -> None:
    self.probability = probability
    self._draw = draw or random.random

  def should_sweep(self) -> bool:
    return self._draw() < self.probability


def compute_cutoff(expiration_minutes: int, now: Optional[datetime] = None) -> datetime:
  """
  Return the instant at or before which a record is eligible for deletion.
  """
  current = now or datetime.now(timezone.utc)
  return current - timedelta(minutes=max(expiration_minutes, 0))


def sweep_channel(storage: "LogStorage", channel_id: str, now: Optional[datetime] = None) -> int:
  """
  Hard-delete every record of `channel_id` older than the channel's expiration.

  Returns the number of rows deleted. Running it twice without new writes
  deletes nothing the second time.
  """
  channel = storage.find_channel(channel_id)
  if channel is None:
    raise ChannelNotFoundError(channel_id)

  cutoff = compute_cutoff(channel.expiration, now=now)
  deleted = storage.delete_expired(channel_id, cutoff)
  logger.info(
    "Swept channel %s: deleted %d record(s) created at or before %s",
    channel_id,
    deleted,
    cutoff.isoformat(),
  )
  return deleted
