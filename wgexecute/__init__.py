"""Typed async client for remote operations over HTTP.

This package calls operation endpoints either once (queries, mutations) or
as a stream of JSON messages separated by blank lines (live queries,
subscriptions).

Quick Start:
    >>> from wgexecute import Context, OperationClient
    >>>
    >>> async with OperationClient("http://localhost:9991") as client:
    ...     user = await client.query("/operations/User", {"id": 1}, response=User)
    ...     ctx = Context()
    ...     stream = await client.live_query("/operations/Users", response=UserList, ctx=ctx)
    ...     value, closed = await stream.next(ctx)

Classes:
    OperationClient: Async HTTP client for all four call shapes
    Stream: Decoded message stream over an open response body
    Context: Cooperative cancellation signal passed into every call
    ClientConfig: Settings loaded from environment and settings file
"""

from .config import ClientConfig, get_config
from .context import Context
from .errors import (
    BadRequest,
    BufferOverflow,
    ConnectionRefused,
    ContextCancelled,
    DecodeError,
    EncodeError,
    ExecuteError,
    InternalServerError,
    InvalidRequest,
    RequestCancelled,
    StatusError,
    StreamClosed,
    StreamError,
    Unauthorized,
    UnexpectedEndOfStream,
    UnknownError,
)
from .http import OperationClient
from .stream import Stream

__all__ = [
    "OperationClient",
    "Stream",
    "Context",
    "ClientConfig",
    "get_config",
    # Errors
    "ExecuteError",
    "EncodeError",
    "InvalidRequest",
    "ConnectionRefused",
    "StatusError",
    "BadRequest",
    "Unauthorized",
    "InternalServerError",
    "UnknownError",
    "RequestCancelled",
    "ContextCancelled",
    "StreamError",
    "UnexpectedEndOfStream",
    "DecodeError",
    "BufferOverflow",
    "StreamClosed",
]
