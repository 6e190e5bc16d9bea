from __future__ import annotations

import math
import threading
from datetime import datetime
from typing import Dict, List, Optional

import psycopg2

from .config import load_service_config
from .errors import StorageError
from .models import Channel, StoredLogRecord

MEMORY_DSN = "memory://"

SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS channels (
  id TEXT PRIMARY KEY,
  expiration INTEGER NOT NULL DEFAULT 1440
);

CREATE TABLE IF NOT EXISTS logs (
  id BIGSERIAL PRIMARY KEY,
  level TEXT NOT NULL DEFAULT 'info',
  message TEXT NOT NULL,
  type TEXT NOT NULL DEFAULT 'json',
  thread INTEGER NOT NULL DEFAULT -1,
  channel_id TEXT NOT NULL REFERENCES channels (id) ON DELETE CASCADE,
  created TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_logs_channel_created
  ON logs (channel_id, created);
"""


class LogStorage:
  """
  Storage abstraction for drained log records and their channels.

  Backends raise StorageError for any I/O failure. Tests are expected to
  monkeypatch get_storage() so they do not require a running database.
  """

  def find_channel(self, channel_id: str) -> Optional[Channel]:  # pragma: no cover - interface
    raise NotImplementedError

  def create_channel(self, channel: Channel) -> Channel:  # pragma: no cover - interface
    raise NotImplementedError

  def create_record(self, record: StoredLogRecord) -> StoredLogRecord:  # pragma: no cover - interface
    raise NotImplementedError

  def delete_expired(self, channel_id: str, created_before: datetime) -> int:  # pragma: no cover - interface
    """
    Delete records of `channel_id` whose `created` is at or before the cutoff.

    Returns the number of rows deleted.
    """
    raise NotImplementedError


class PostgresLogStorage(LogStorage):
  def __init__(self, dsn: str, timeout_ms: int = 5000) -> None:
    self._dsn = dsn
    self._timeout_ms = timeout_ms

  def _connect(self):
    # connect_timeout is whole seconds; statement_timeout bounds each query
    try:
      return psycopg2.connect(
        self._dsn,
        connect_timeout=max(1, math.ceil(self._timeout_ms / 1000)),
        options=f"-c statement_timeout={self._timeout_ms}",
      )
    except psycopg2.Error as exc:
      raise StorageError(f"Could not connect to log storage: {exc}") from exc

  def find_channel(self, channel_id: str) -> Optional[Channel]:
    conn = self._connect()
    try:
      with conn, conn.cursor() as cur:
        cur.execute(
          "SELECT id, expiration FROM channels WHERE id = %s",
          (channel_id,),
        )
        row = cur.fetchone()
    except psycopg2.Error as exc:
      raise StorageError(f"Channel lookup failed: {exc}") from exc
    finally:
      conn.close()

    if row is None:
      return None
    return Channel(id=row[0], expiration=row[1])

  def create_channel(self, channel: Channel) -> Channel:
    conn = self._connect()
    try:
      with conn, conn.cursor() as cur:
        cur.execute(
          """
          INSERT INTO channels (id, expiration)
          VALUES (%s, %s)
          ON CONFLICT (id) DO UPDATE SET expiration = EXCLUDED.expiration
          """,
          (channel.id, channel.expiration),
        )
    except psycopg2.Error as exc:
      raise StorageError(f"Could not save channel: {exc}") from exc
    finally:
      conn.close()
    return channel

  def create_record(self, record: StoredLogRecord) -> StoredLogRecord:
    conn = self._connect()
    try:
      with conn, conn.cursor() as cur:
        cur.execute(
          """
          INSERT INTO logs (level, message, type, thread, channel_id, created)
          VALUES (%s, %s, %s, %s, %s, %s)
          RETURNING id, created
          """,
          (
            record.level,
            record.message,
            record.type,
            record.thread,
            record.channel_id,
            record.created,
          ),
        )
        row = cur.fetchone()
    except psycopg2.Error as exc:
      raise StorageError(f"Could not create log record: {exc}") from exc
    finally:
      conn.close()

    if row is None:
      raise StorageError("Insert returned no row")
    return record.model_copy(update={"id": row[0], "created": row[1]})

  def delete_expired(self, channel_id: str, created_before: datetime) -> int:
    conn = self._connect()
    try:
      with conn, conn.cursor() as cur:
        cur.execute(
          "DELETE FROM logs WHERE channel_id = %s AND created <= %s",
          (channel_id, created_before),
        )
        # rowcount is number of rows affected by the last execute
        deleted = cur.rowcount or 0
    except psycopg2.Error as exc:
      raise StorageError(f"Retention delete failed: {exc}") from exc
    finally:
      conn.close()

    return deleted


class InMemoryLogStorage(LogStorage):
  """
  Process-local backend for development runs and tests.

  The API executes storage calls in worker threads, so all state is
  guarded by a single lock.
  """

  def __init__(self) -> None:
    self._lock = threading.Lock()
    self._channels: Dict[str, Channel] = {}
    self._records: List[StoredLogRecord] = []
    self._next_id = 1

  @property
  def records(self) -> List[StoredLogRecord]:
    with self._lock:
      return list(self._records)

  def find_channel(self, channel_id: str) -> Optional[Channel]:
    with self._lock:
      return self._channels.get(channel_id)

  def create_channel(self, channel: Channel) -> Channel:
    with self._lock:
      self._channels[channel.id] = channel
    return channel

  def create_record(self, record: StoredLogRecord) -> StoredLogRecord:
    with self._lock:
      stored = record.model_copy(update={"id": self._next_id})
      self._next_id += 1
      self._records.append(stored)
    return stored

  def delete_expired(self, channel_id: str, created_before: datetime) -> int:
    with self._lock:
      kept = [
        r for r in self._records
        if not (r.channel_id == channel_id and r.created <= created_before)
      ]
      deleted = len(self._records) - len(kept)
      self._records = kept
    return deleted


_storage: LogStorage | None = None


def get_storage() -> LogStorage:
  """
  Return the global storage instance.

  In tests this can be monkeypatched to avoid real DB access.
  """
  global _storage
  if _storage is None:
    config = load_service_config()
    if config.database_url == MEMORY_DSN:
      _storage = InMemoryLogStorage()
    else:
      _storage = PostgresLogStorage(config.database_url, timeout_ms=config.storage_timeout_ms)
  return _storage


def init_schema(dsn: str) -> None:
  conn = psycopg2.connect(dsn)
  try:
    with conn, conn.cursor() as cur:
      cur.execute(SCHEMA_DDL)
  finally:
    conn.close()
