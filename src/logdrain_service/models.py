from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PlainValidator, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel


def _check_number(value: Any) -> Union[int, float]:
  # bool is an int subclass but never a valid number here
  if isinstance(value, bool) or not isinstance(value, (int, float)):
    raise ValueError(f"Expected number, received {type(value).__name__}")
  if isinstance(value, float) and not math.isfinite(value):
    raise ValueError("Expected finite number")
  return value


Number = Annotated[Union[int, float], PlainValidator(_check_number)]


class _DrainModel(BaseModel):
  model_config = ConfigDict(
    alias_generator=to_camel,
    strict=True,
    extra="ignore",
  )


class ProxyInfo(_DrainModel):
  """
  Request details attached by the edge proxy.
  """

  timestamp: Number
  method: str
  host: str
  path: str
  user_agent: List[str]
  region: str
  referer: Optional[str] = None
  status_code: Optional[Number] = None
  client_ip: Optional[str] = None
  scheme: Optional[str] = None
  response_byte_size: Optional[Number] = None
  cache_id: Optional[str] = None
  path_type: Optional[str] = None
  path_type_variant: Optional[str] = None
  vercel_id: Optional[str] = None
  vercel_cache: Optional[str] = None
  lambda_region: Optional[str] = None
  waf_action: Optional[str] = None
  waf_rule_id: Optional[str] = None


class LogEvent(_DrainModel):
  """
  One event of a drained batch, as submitted by the upstream platform.

  Provenance fields are opaque payload: nothing in retention or ingestion
  reads them beyond `level`.
  """

  id: str
  deployment_id: str
  source: str
  host: str
  timestamp: Number
  project_id: str
  level: Optional[str] = None
  message: Optional[str] = None
  build_id: Optional[str] = None
  entrypoint: Optional[str] = None
  destination: Optional[str] = None
  path: Optional[str] = None
  type: Optional[str] = None
  status_code: Optional[Number] = None
  request_id: Optional[str] = None
  environment: Optional[str] = None
  branch: Optional[str] = None
  ja3_digest: Optional[str] = None
  ja4_digest: Optional[str] = None
  edge_type: Optional[str] = None
  project_name: Optional[str] = None
  execution_region: Optional[str] = None
  trace_id: Optional[str] = None
  span_id: Optional[str] = None
  proxy: Optional[ProxyInfo] = None

  def to_raw(self) -> str:
    """
    Canonical text form of the event, stored as the record message.
    """
    return self.model_dump_json(by_alias=True, exclude_none=True)


class Channel(BaseModel):
  id: str
  expiration: int = Field(..., description="Minutes a record may live before it can be swept")


class StoredLogRecord(BaseModel):
  """
  Persisted form of an accepted event.
  """

  id: Optional[int] = None
  level: str
  message: str
  type: str = "json"
  thread: int = -1
  channel_id: str
  created: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# -----------------------------------------------------------------------------
# Batch validation
# -----------------------------------------------------------------------------


class RejectionKind(str, Enum):
  NOT_AN_ARRAY = "not_an_array"
  SCHEMA_VIOLATION = "schema_violation"


@dataclass(frozen=True)
class ValidationIssue:
  field: str
  reason: str

  @property
  def message(self) -> str:
    return f"{self.field}: {self.reason}"


@dataclass(frozen=True)
class Accepted:
  events: List[LogEvent]


@dataclass(frozen=True)
class Rejected:
  kind: RejectionKind
  issues: List[ValidationIssue] = field(default_factory=list)

  @property
  def message(self) -> str:
    return ", ".join(issue.message for issue in self.issues)


ValidationResult = Union[Accepted, Rejected]

_batch_adapter = TypeAdapter(List[LogEvent])


def validate_batch(raw: Any) -> ValidationResult:
  """
  Validate a decoded request body as a batch of log events.

  The batch is accepted or rejected as a unit. A rejection lists every
  offending field of every element.
  """
  if not isinstance(raw, list):
    return Rejected(
      kind=RejectionKind.NOT_AN_ARRAY,
      issues=[ValidationIssue(field="body", reason=f"Expected array, received {_type_label(raw)}")],
    )

  try:
    events = _batch_adapter.validate_python(raw)
  except ValidationError as exc:
    issues = [_issue_from_error(err) for err in exc.errors()]
    return Rejected(kind=RejectionKind.SCHEMA_VIOLATION, issues=issues)

  return Accepted(events=events)


def _issue_from_error(err: dict) -> ValidationIssue:
  path = ""
  for part in err.get("loc", ()):
    if isinstance(part, int):
      path += f"[{part}]"
    else:
      path += f".{part}" if path else part

  if err.get("type") == "value_error" and "error" in err.get("ctx", {}):
    reason = str(err["ctx"]["error"])
  else:
    reason = err.get("msg", "Invalid value")

  return ValidationIssue(field=path or "body", reason=reason)


def _type_label(value: Any) -> str:
  if value is None:
    return "null"
  if isinstance(value, dict):
    return "object"
  return type(value).__name__
