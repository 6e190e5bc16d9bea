from __future__ import annotations

import json
import logging
from typing import Dict

from fastapi import FastAPI, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from . import __version__, storage
from .errors import InvalidBatchError, LogdrainError, MissingBodyError
from .ingestion import IngestionService
from .retention import SweepSampler, load_retention_config, sweep_channel
from .status import get_status

app = FastAPI(title="Logdrain Daemon", version=__version__)

logger = logging.getLogger(__name__)


@app.exception_handler(LogdrainError)
async def logdrain_error_handler(request: Request, exc: LogdrainError) -> JSONResponse:
  return JSONResponse(
    status_code=exc.status_code,
    content={"statusCode": exc.status_code, "message": exc.message},
  )


def _reject_constant(token: str) -> None:
  # NaN and Infinity are accepted by json.loads but are not JSON
  raise ValueError(f"Unexpected token {token}")


def build_ingestion_service() -> IngestionService:
  """
  Assemble the ingestion service from the current storage and retention settings.
  """
  retention_cfg = load_retention_config()
  return IngestionService(
    storage=storage.get_storage(),
    sampler=SweepSampler(probability=retention_cfg.sweep_probability),
    propagate_sweep_errors=retention_cfg.propagate_sweep_errors,
  )


@app.get("/status")
async def status_endpoint() -> Dict[str, object]:
  """
  Lightweight status endpoint for the daemon.
  """
  return get_status()


@app.post("/api/drain/{channelid}", status_code=status.HTTP_201_CREATED)
async def drain_logs(channelid: str, request: Request) -> Dict[str, int]:
  """
  Ingestion endpoint for a drained batch of log events.

  Schema problems come back as a single 400 listing every offending field,
  not as FastAPI's 422 envelope.
  """
  raw = await request.body()
  if not raw.strip():
    raise MissingBodyError()

  try:
    body = json.loads(raw, parse_constant=_reject_constant)
  except ValueError:
    logger.warning("Malformed JSON body for channel %s", channelid)
    raise InvalidBatchError("body: Malformed JSON")

  service = build_ingestion_service()
  await run_in_threadpool(service.ingest, channelid, body)
  return {"statusCode": status.HTTP_201_CREATED}


@app.post("/api/channels/{channelid}/sweep", status_code=status.HTTP_200_OK)
async def sweep_endpoint(channelid: str) -> Dict[str, int]:
  """
  Run a retention sweep for one channel on demand.
  """
  deleted = await run_in_threadpool(sweep_channel, storage.get_storage(), channelid)
  return {"deleted": deleted}
