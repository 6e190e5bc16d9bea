from __future__ import annotations


class LogdrainError(Exception):
  """
  Base class for errors that map onto an HTTP response.
  """

  status_code: int = 500

  def __init__(self, message: str) -> None:
    super().__init__(message)
    self.message = message


class StorageError(LogdrainError):
  """
  Raised by storage backends when a read, write or delete fails.
  """

  status_code = 500


class IngestError(LogdrainError):
  pass


class MissingBodyError(IngestError):
  status_code = 400

  def __init__(self, message: str = "Missing required fields") -> None:
    super().__init__(message)


class InvalidBatchError(IngestError):
  status_code = 400

  def __init__(self, detail: str) -> None:
    super().__init__(f"The provided parameters are invalid: {detail}")
    self.detail = detail


class StorageFailureError(IngestError):
  status_code = 500

  def __init__(self, message: str = "An error occurred while creating the log") -> None:
    super().__init__(message)


class SweepError(LogdrainError):
  pass


class ChannelNotFoundError(SweepError):
  status_code = 404

  def __init__(self, channel_id: str) -> None:
    super().__init__("Channel not found")
    self.channel_id = channel_id
