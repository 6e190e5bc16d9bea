"""
logdrain_harness

Load-generation tool that drives concurrent request batches at the
ingestion endpoint and tracks the server-reported rate-limit state.
"""

from .config import HarnessConfig
from .runner import LoadHarness
from .stats import HarnessStats, Outcome, RateLimitSnapshot, classify

__all__ = [
  "HarnessConfig",
  "HarnessStats",
  "LoadHarness",
  "Outcome",
  "RateLimitSnapshot",
  "classify",
]
