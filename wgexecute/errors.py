"""Error types raised by the operation client and the response stream.

Every error derives from ExecuteError, grouped as:
- request construction (EncodeError, InvalidRequest)
- connection failures (ConnectionRefused)
- fixed HTTP status errors (StatusError and subclasses)
- stream framing errors (StreamError and subclasses)
- cancellation (RequestCancelled, ContextCancelled)

Cancellation of a stream is not an error: Stream.next() reports it as a
clean close instead of raising.
"""

from typing import Optional


class ExecuteError(Exception):
    """Base class for all wgexecute errors."""


# =============================================================================
# Request Construction
# =============================================================================


class EncodeError(ExecuteError):
    """The operation input could not be serialized to JSON."""

    def __init__(self, message: str = "error encoding input"):
        super().__init__(message)


class InvalidRequest(ExecuteError):
    """The request URL is malformed or uses an unsupported scheme."""


# =============================================================================
# Connection
# =============================================================================


class ConnectionRefused(ExecuteError):
    """The transport could not reach the server."""

    def __init__(self, scheme: str, host: str):
        self.scheme = scheme
        self.host = host
        super().__init__(f"connection refused: {scheme}://{host}")


# =============================================================================
# HTTP Status
# =============================================================================


class StatusError(ExecuteError):
    """The server answered with a non-200 status code."""

    message = "unknown error"

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(self.message)


class BadRequest(StatusError):
    message = "bad request"


class Unauthorized(StatusError):
    message = "unauthorized"


class InternalServerError(StatusError):
    message = "internal server error"


class UnknownError(StatusError):
    message = "unknown error"


STATUS_ERRORS: dict[int, type[StatusError]] = {
    400: BadRequest,
    401: Unauthorized,
    500: InternalServerError,
}


def raise_for_status(status_code: int) -> None:
    """Map an HTTP status code to the fixed error taxonomy.

    Args:
        status_code: HTTP status code of the response

    Raises:
        BadRequest: On 400
        Unauthorized: On 401
        InternalServerError: On 500
        UnknownError: On any other status except 200
    """
    if status_code == 200:
        return
    raise STATUS_ERRORS.get(status_code, UnknownError)(status_code)


# =============================================================================
# Cancellation
# =============================================================================


class ContextCancelled(ExecuteError):
    """An awaitable raced against a Context lost to cancellation."""

    def __init__(self, reason: Optional[str] = None):
        self.reason = reason or "context canceled"
        super().__init__(self.reason)


class RequestCancelled(ExecuteError):
    """A one-shot request was cancelled before the response arrived."""


# =============================================================================
# Stream Framing
# =============================================================================


class StreamError(ExecuteError):
    """Fatal stream condition. The stream is closed when this is raised."""


class UnexpectedEndOfStream(StreamError):
    def __init__(self, message: str = "unexpected end of stream"):
        super().__init__(message)


class DecodeError(StreamError):
    """A message (or one-shot body) is not valid JSON of the expected type."""

    def __init__(self, message: str = "error reading JSON"):
        super().__init__(message)


class BufferOverflow(StreamError):
    def __init__(self, message: str = "buffer overflow"):
        super().__init__(message)


class StreamClosed(StreamError):
    def __init__(self, message: str = "stream is closed"):
        super().__init__(message)
