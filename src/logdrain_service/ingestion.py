from __future__ import annotations

import json
import logging
from typing import Any, Optional

from .errors import (
  InvalidBatchError,
  MissingBodyError,
  StorageError,
  StorageFailureError,
  SweepError,
)
from .models import Accepted, LogEvent, StoredLogRecord, validate_batch
from .retention import SweepSampler, sweep_channel
from .storage import LogStorage

DEFAULT_LEVEL = "info"
RECORD_TYPE = "json"
NO_THREAD = -1

logger = logging.getLogger(__name__)


def to_stored_record(event: LogEvent, channel_id: str) -> StoredLogRecord:
  return StoredLogRecord(
    level=event.level or DEFAULT_LEVEL,
    message=event.to_raw(),
    type=RECORD_TYPE,
    thread=NO_THREAD,
    channel_id=channel_id,
  )


class IngestionService:
  """
  Validate a drained batch, persist one record per event and occasionally
  sweep the channel's expired records.

  Sweep failures are background maintenance: by default they are logged and
  do not change the outcome of the ingestion call that triggered them.
  """

  def __init__(
    self,
    storage: LogStorage,
    sampler: Optional[SweepSampler] = None,
    propagate_sweep_errors: bool = False,
  ) -> None:
    self.storage = storage
    self.sampler = sampler or SweepSampler()
    self.propagate_sweep_errors = propagate_sweep_errors

  def ingest(self, channel_id: str, raw_batch: Any) -> int:
    if raw_batch is None or raw_batch == "" or raw_batch == []:
      raise MissingBodyError()

    if logger.isEnabledFor(logging.DEBUG):
      logger.debug("Body for channel %s: %s", channel_id, json.dumps(raw_batch, indent=2))

    result = validate_batch(raw_batch)
    if not isinstance(result, Accepted):
      logger.warning(
        "Rejected batch for channel %s (%s): %s",
        channel_id,
        result.kind.value,
        result.message,
      )
      raise InvalidBatchError(result.message)

    created = 0
    failure: Optional[StorageError] = None
    for event in result.events:
      try:
        self.storage.create_record(to_stored_record(event, channel_id))
      except StorageError as exc:
        logger.exception(
          "Storage failure for channel %s after %d of %d record(s)",
          channel_id,
          created,
          len(result.events),
        )
        failure = exc
        break
      created += 1

    # Runs once per accepted batch, even after a partial write
    self._maybe_sweep(channel_id, propagate=self.propagate_sweep_errors and failure is None)

    if failure is not None:
      raise StorageFailureError() from failure

    logger.info("Created logs: %d (channel %s)", created, channel_id)
    return created

  def _maybe_sweep(self, channel_id: str, propagate: bool) -> None:
    if not self.sampler.should_sweep():
      return

    try:
      sweep_channel(self.storage, channel_id)
    except (SweepError, StorageError) as exc:
      if propagate:
        raise
      logger.warning("Retention sweep for channel %s failed: %s", channel_id, exc)
