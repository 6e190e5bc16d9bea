from __future__ import annotations

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class _LogdrainStreamHandler(logging.StreamHandler):
  """
  Marker subclass so repeated setup calls do not stack handlers.
  """


def configure_logging(level: str = "INFO", logger: Optional[logging.Logger] = None) -> None:
  """
  Attach a single stream handler to the given logger (root by default).

  Unknown level names fall back to INFO.
  """
  target_logger = logger or logging.getLogger()
  numeric_level = logging.getLevelName(level.upper())
  if not isinstance(numeric_level, int):
    numeric_level = logging.INFO

  target_logger.setLevel(numeric_level)

  for existing in target_logger.handlers:
    if isinstance(existing, _LogdrainStreamHandler):
      existing.setLevel(numeric_level)
      return

  handler = _LogdrainStreamHandler(stream=sys.stderr)
  handler.setFormatter(logging.Formatter(LOG_FORMAT))
  handler.setLevel(numeric_level)
  target_logger.addHandler(handler)
