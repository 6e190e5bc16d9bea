from __future__ import annotations

import asyncio
import logging
import sys
from typing import List, Optional, TextIO, Tuple

import httpx

from .config import HarnessConfig
from .stats import HarnessStats, Outcome, RateLimitSnapshot, classify, format_report

_logger = logging.getLogger("logdrain_harness.runner")

CLEAR_SCREEN = "\033[2J\033[H"

Result = Tuple[Outcome, Optional[httpx.Headers]]


class LoadHarness:
  """
  Fires a fixed-size batch of concurrent requests every period and keeps
  running totals plus the last reported rate-limit state.

  Counters and the snapshot are only touched after a batch has been joined,
  on the event loop thread, so no locking is needed.
  """

  def __init__(
    self,
    config: HarnessConfig,
    out: Optional[TextIO] = None,
    clear_screen: Optional[bool] = None,
  ) -> None:
    self.config = config
    self.stats = HarnessStats()
    self.snapshot = RateLimitSnapshot()
    self._out = out or sys.stdout
    if clear_screen is None:
      clear_screen = hasattr(self._out, "isatty") and self._out.isatty()
    self._clear_screen = clear_screen
    self._stop = asyncio.Event()

  def stop(self) -> None:
    """
    Request shutdown. A batch already in flight is allowed to finish.
    """
    self._stop.set()

  @property
  def stopped(self) -> bool:
    return self._stop.is_set()

  async def _send_one(self, client: httpx.AsyncClient) -> Result:
    try:
      response = await client.post(self.config.url, json=self.config.payload)
    except httpx.HTTPError as exc:
      _logger.warning("logdrain harness request to %s failed: %s", self.config.url, exc)
      return Outcome.ERROR, None
    return classify(response.status_code), response.headers

  async def run_tick(self, client: httpx.AsyncClient) -> List[Outcome]:
    results = await asyncio.gather(
      *(self._send_one(client) for _ in range(self.config.batch_size))
    )

    outcomes = [outcome for outcome, _ in results]
    for _, headers in results:
      if headers is not None:
        self.snapshot.update(headers)
    self.stats.record_batch(outcomes)

    self.report()
    return outcomes

  def report(self) -> None:
    if self._clear_screen:
      self._out.write(CLEAR_SCREEN)
    self._out.write(format_report(self.stats, self.snapshot) + "\n")
    self._out.flush()

  async def run(self, client: Optional[httpx.AsyncClient] = None) -> None:
    """
    Tick until stop() is called. Each tick starts one period after the
    previous one started, or immediately when a batch overran the period.
    """
    if client is None:
      async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as owned:
        await self._loop(owned)
    else:
      await self._loop(client)

  async def _loop(self, client: httpx.AsyncClient) -> None:
    loop = asyncio.get_running_loop()
    while not self._stop.is_set():
      started = loop.time()
      await self.run_tick(client)

      remaining = self.config.period_seconds - (loop.time() - started)
      if remaining <= 0:
        continue
      try:
        await asyncio.wait_for(self._stop.wait(), timeout=remaining)
      except asyncio.TimeoutError:
        pass
