from datetime import datetime, timedelta, timezone

import pytest

from logdrain_service import __main__ as cli  # type: ignore[import]
from logdrain_service import storage as storage_mod  # type: ignore[import]
from logdrain_service.models import StoredLogRecord  # type: ignore[import]


@pytest.fixture
def memory_storage(monkeypatch):
  backend = storage_mod.InMemoryLogStorage()
  monkeypatch.setattr(storage_mod, "get_storage", lambda: backend)
  return backend


def test_unknown_command_prints_usage(capsys):
  with pytest.raises(SystemExit) as excinfo:
    cli.main(["frobnicate"])
  assert excinfo.value.code == 1
  assert "Usage: python -m logdrain_service" in capsys.readouterr().err


def test_add_channel_then_sweep(memory_storage, capsys):
  with pytest.raises(SystemExit) as excinfo:
    cli.main(["add-channel", "c1", "--expiration", "5"])
  assert excinfo.value.code == 0
  assert memory_storage.find_channel("c1").expiration == 5

  memory_storage.create_record(
    StoredLogRecord(
      level="info",
      message="{}",
      channel_id="c1",
      created=datetime.now(timezone.utc) - timedelta(minutes=6),
    )
  )

  with pytest.raises(SystemExit) as excinfo:
    cli.main(["sweep", "c1"])
  assert excinfo.value.code == 0
  assert "Deleted 1 expired record(s) from channel c1" in capsys.readouterr().out
  assert memory_storage.records == []


def test_sweep_unknown_channel_exits_2(memory_storage, capsys):
  with pytest.raises(SystemExit) as excinfo:
    cli.main(["sweep", "missing"])
  assert excinfo.value.code == 2
  assert "Channel not found" in capsys.readouterr().err


def test_init_db_skips_memory_storage(monkeypatch, capsys):
  monkeypatch.setenv("LOGDRAIN_DATABASE_URL", "memory://")
  with pytest.raises(SystemExit) as excinfo:
    cli.main(["init-db"])
  assert excinfo.value.code == 0
  assert "needs no schema" in capsys.readouterr().err
