from __future__ import annotations

from dataclasses import asdict, dataclass

from . import __version__
from .config import load_service_config
from .retention import load_retention_config


@dataclass
class DaemonStatus:
  status: str
  service_name: str
  version: str
  host: str
  port: int
  sweep_probability: float
  sweep_errors: str


def get_status() -> dict:
  """
  Return a simple status payload for the daemon.
  """
  service_cfg = load_service_config()
  retention_cfg = load_retention_config()

  payload = DaemonStatus(
    status="healthy",
    service_name="logdrain_daemon",
    version=__version__,
    host=service_cfg.host,
    port=service_cfg.port,
    sweep_probability=retention_cfg.sweep_probability,
    sweep_errors=retention_cfg.sweep_errors,
  )
  return asdict(payload)
