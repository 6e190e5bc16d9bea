import httpx
import pytest

from logdrain_harness.stats import (  # type: ignore[import]
  HarnessStats,
  Outcome,
  RateLimitSnapshot,
  classify,
  format_report,
)


@pytest.mark.parametrize(
  "status_code, expected",
  [
    (200, Outcome.SUCCESS),
    (201, Outcome.SUCCESS),
    (204, Outcome.SUCCESS),
    (429, Outcome.RATE_LIMITED),
    (400, Outcome.ERROR),
    (404, Outcome.ERROR),
    (500, Outcome.ERROR),
    (302, Outcome.ERROR),
    (None, Outcome.ERROR),
  ],
)
def test_classify_is_total_and_exclusive(status_code, expected):
  assert classify(status_code) is expected


def test_snapshot_starts_unknown():
  snapshot = RateLimitSnapshot()
  assert snapshot.limit is None
  assert snapshot.current is None
  assert snapshot.remaining is None
  assert snapshot.reset is None


def test_snapshot_update_reads_headers_case_insensitively():
  snapshot = RateLimitSnapshot()
  snapshot.update(
    httpx.Headers(
      {
        "X-RateLimit-Current": "7",
        "X-RateLimit-Limit": "10",
        "X-RateLimit-Reset": "1700000060",
      }
    )
  )
  assert snapshot.current == 7
  assert snapshot.limit == 10
  assert snapshot.remaining == 3
  assert snapshot.reset == 1700000060


def test_snapshot_keeps_last_known_value_for_missing_headers():
  snapshot = RateLimitSnapshot()
  snapshot.update({"x-ratelimit-current": "3", "x-ratelimit-limit": "10", "x-ratelimit-reset": "30"})
  snapshot.update({"x-ratelimit-current": "4"})
  snapshot.update({})
  snapshot.update({"x-ratelimit-limit": "garbage"})

  assert snapshot.current == 4
  assert snapshot.limit == 10
  assert snapshot.reset == 30
  assert snapshot.remaining == 6


def test_record_batch_counts_every_outcome():
  stats = HarnessStats(started_at=0.0)
  stats.record_batch([Outcome.SUCCESS, Outcome.RATE_LIMITED, Outcome.ERROR, Outcome.ERROR])
  stats.record_batch([Outcome.SUCCESS])

  assert stats.total_requests == 5
  assert stats.successes == 2
  assert stats.rate_limited == 1
  assert stats.errors == 2
  assert stats.successes + stats.rate_limited + stats.errors == stats.total_requests


def test_throughput_is_requests_over_elapsed_seconds():
  stats = HarnessStats(started_at=100.0)
  stats.record_batch([Outcome.SUCCESS] * 9)

  assert stats.elapsed_seconds(now=103.0) == 3.0
  assert stats.requests_per_second(now=103.0) == 3.0
  assert stats.requests_per_second(now=100.0) == 0.0


def test_format_report_uses_na_for_unknown_fields():
  stats = HarnessStats(started_at=0.0)
  stats.record_batch([Outcome.SUCCESS, Outcome.RATE_LIMITED])
  snapshot = RateLimitSnapshot(limit=10)

  report = format_report(stats, snapshot, now=2.0)

  assert "Elapsed Time: 2.00 seconds" in report
  assert "Total Requests: 2" in report
  assert "Rate-Limited: 1" in report
  assert "Requests per Second: 1.00" in report
  assert "  Limit: 10" in report
  assert "  Current: N/A" in report
  assert "  Remaining: N/A" in report


@pytest.mark.parametrize("raw", ["inf", "-inf", "1e999", "nan"])
def test_snapshot_ignores_non_finite_header_values(raw):
  snapshot = RateLimitSnapshot(limit=10, current=2, reset=30)
  snapshot.update({"x-ratelimit-current": raw, "x-ratelimit-limit": raw, "x-ratelimit-reset": raw})

  assert snapshot.current == 2
  assert snapshot.limit == 10
  assert snapshot.reset == 30
