"""Entry point for `python -m logdrain_harness`.

Runs until interrupted (Ctrl-C / SIGTERM) and exits 0 after a final report.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys

from .config import HarnessConfig
from .runner import LoadHarness


async def _run(config: HarnessConfig) -> None:
  harness = LoadHarness(config)
  loop = asyncio.get_running_loop()
  for sig in (signal.SIGINT, signal.SIGTERM):
    try:
      loop.add_signal_handler(sig, harness.stop)
    except NotImplementedError:
      # Windows event loops do not support add_signal_handler
      signal.signal(sig, lambda *_: loop.call_soon_threadsafe(harness.stop))
  await harness.run()


def main() -> None:
  logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
  )

  try:
    config = HarnessConfig.from_params_or_env()
  except ValueError as exc:
    print(str(exc), file=sys.stderr)
    sys.exit(1)

  asyncio.run(_run(config))

  print("\nStopped the test.")
  sys.exit(0)


if __name__ == "__main__":
  main()
