"""Exceptions raised along the container probe lifecycle.

Each class carries a stable ``reason`` tag and a stable message so callers
and tests can match on them. The underlying backend error, when there is
one, is kept on ``cause``.
"""

from typing import Optional


class ProbeError(Exception):
    """Base class for failures of a single container probe."""

    reason: str = "unknown"
    default_message: str = "Probe failed"

    def __init__(self, message: Optional[str] = None, cause: Optional[BaseException] = None):
        super().__init__(message or self.default_message)
        self.cause = cause


class CreateFailure(ProbeError):
    reason = "create"
    default_message = "Create failed"


class StartFailure(ProbeError):
    reason = "start"
    default_message = "Start failed"


class LogReadFailure(ProbeError):
    """Reading the container logs failed.

    The message is the backend's own error message, unchanged.
    """

    reason = "log_read"
    default_message = "Log retrieval failed"

    def __init__(self, cause: BaseException):
        super().__init__(str(cause) or self.default_message, cause=cause)


class NonZeroExit(ProbeError):
    reason = "command"

    def __init__(self, exit_code: int):
        super().__init__(f"Command exited with status {exit_code}")
        self.exit_code = exit_code


class WaitFailure(ProbeError):
    reason = "wait"
    default_message = "Wait failed"


class ProbeTimeout(ProbeError):
    reason = "timeout"
    default_message = "Timed out when waiting for a container."
