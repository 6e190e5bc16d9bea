from __future__ import annotations

import argparse
import sys
from typing import NoReturn

import httpx

from .config import load_service_config
from .errors import LogdrainError
from .logging_setup import configure_logging
from .models import Channel

COMMANDS = ("serve", "status", "sweep", "add-channel", "init-db")


def main(argv: list[str] | None = None) -> NoReturn:
  argv = list(sys.argv[1:] if argv is None else argv)

  if not argv or argv[0] not in COMMANDS:
    print("Usage: python -m logdrain_service {serve|status|sweep|add-channel|init-db}", file=sys.stderr)
    print("  serve         - Run the ingestion daemon", file=sys.stderr)
    print("  status        - Check daemon status", file=sys.stderr)
    print("  sweep         - Delete expired records of a channel now", file=sys.stderr)
    print("  add-channel   - Create or update a channel and its expiration", file=sys.stderr)
    print("  init-db       - Create the channels/logs tables", file=sys.stderr)
    sys.exit(1)

  config = load_service_config()
  configure_logging(config.log_level)

  if argv[0] == "serve":
    _run_serve(argv[1:])
  elif argv[0] == "status":
    _run_status()
  elif argv[0] == "sweep":
    _run_sweep(argv[1:])
  elif argv[0] == "add-channel":
    _run_add_channel(argv[1:])
  elif argv[0] == "init-db":
    _run_init_db()
  sys.exit(0)


def _run_serve(args: list[str]) -> None:
  import uvicorn

  config = load_service_config()
  parser = argparse.ArgumentParser(prog="logdrain serve", description="Run the ingestion daemon")
  parser.add_argument("--host", default=config.host)
  parser.add_argument("--port", type=int, default=config.port)
  parsed = parser.parse_args(args)

  uvicorn.run(
    "logdrain_service.api:app",
    host=parsed.host,
    port=parsed.port,
    log_level=config.log_level.lower(),
  )


def _run_status() -> None:
  config = load_service_config()
  url = f"http://{config.host}:{config.port}/status"

  try:
    response = httpx.get(url, timeout=1.0)
    response.raise_for_status()
    data = response.json()
  except (httpx.HTTPError, ValueError):
    print(f"Logdrain daemon status: UNREACHABLE at {url}", file=sys.stderr)
    print("Hint: ensure the daemon is running and listening on this host/port.", file=sys.stderr)
    sys.exit(2)

  print("Logdrain daemon status: HEALTHY")
  print(f"Service: {data.get('service_name')} v{data.get('version')}")
  print(f"Listening on: {data.get('host')}:{data.get('port')}")
  print(f"Sweep probability: {data.get('sweep_probability')} (errors: {data.get('sweep_errors')})")


def _run_sweep(args: list[str]) -> None:
  from .retention import sweep_channel
  from .storage import get_storage

  parser = argparse.ArgumentParser(prog="logdrain sweep", description="Delete expired records of a channel")
  parser.add_argument("channel_id")
  parsed = parser.parse_args(args)

  try:
    deleted = sweep_channel(get_storage(), parsed.channel_id)
  except LogdrainError as exc:
    print(f"Sweep failed for channel {parsed.channel_id}: {exc.message}", file=sys.stderr)
    sys.exit(2)

  print(f"Deleted {deleted} expired record(s) from channel {parsed.channel_id}")


def _run_add_channel(args: list[str]) -> None:
  from .storage import get_storage

  parser = argparse.ArgumentParser(prog="logdrain add-channel", description="Create or update a channel")
  parser.add_argument("channel_id")
  parser.add_argument(
    "--expiration",
    type=int,
    default=1440,
    help="Minutes a record may live before it can be swept (default: 1440)",
  )
  parsed = parser.parse_args(args)

  if parsed.expiration < 0:
    print("--expiration must not be negative", file=sys.stderr)
    sys.exit(1)

  try:
    get_storage().create_channel(Channel(id=parsed.channel_id, expiration=parsed.expiration))
  except LogdrainError as exc:
    print(f"Could not save channel {parsed.channel_id}: {exc.message}", file=sys.stderr)
    sys.exit(2)

  print(f"Channel {parsed.channel_id} expires records after {parsed.expiration} minute(s)")


def _run_init_db() -> None:
  import psycopg2

  from .storage import MEMORY_DSN, init_schema

  config = load_service_config()
  if config.database_url == MEMORY_DSN:
    print("In-memory storage needs no schema", file=sys.stderr)
    return

  try:
    init_schema(config.database_url)
  except psycopg2.Error as exc:
    print(f"Could not initialise schema: {exc}", file=sys.stderr)
    sys.exit(2)

  print("Schema ready")


if __name__ == "__main__":
  main()
