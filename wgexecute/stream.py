"""Framing and decoding of server-driven JSON message streams.

The server writes one JSON document per message and terminates each message
with an empty line, i.e. two consecutive newline bytes. A single newline is
part of the message, so pretty-printed JSON passes through untouched:

    {"data": {"count": 1}}\\n
    \\n
    {"data":\\n
      {"count": 2}}\\n
    \\n

Usage:
    async with await client.subscribe("/operations/Counter", response=Counter) as stream:
        while True:
            value, closed = await stream.next(ctx)
            if closed:
                break
            print(value)
"""

import asyncio
import contextlib
from typing import Any, AsyncIterator, Generic, Optional, Protocol, TypeVar

import httpx

from .context import Context
from .decoding import Decoder, decode_json, decoder_for
from .errors import (
    BufferOverflow,
    ContextCancelled,
    StreamClosed,
    StreamError,
    UnexpectedEndOfStream,
)

T = TypeVar("T")

NEWLINE = 0x0A

# Anything that can fail while pulling the next chunk off the transport
_READ_ERRORS = (
    StopAsyncIteration,
    ContextCancelled,
    httpx.HTTPError,
    httpx.StreamError,
    OSError,
)


class ByteSource(Protocol):
    """An open response body. httpx.Response satisfies this."""

    def aiter_bytes(self) -> AsyncIterator[bytes]: ...

    async def aclose(self) -> None: ...


class ByteReader:
    """Buffered single-byte reader over an async iterator of chunks.

    Only refills hit the network; a refill is raced against the caller's
    context so a cancelled context aborts a blocked read.
    """

    def __init__(self, chunks: AsyncIterator[bytes]):
        self._chunks = chunks
        self._chunk = b""
        self._pos = 0

    async def read_byte(self, ctx: Context) -> int:
        while self._pos >= len(self._chunk):
            self._chunk = await ctx.race(self._pull())
            self._pos = 0
        b = self._chunk[self._pos]
        self._pos += 1
        return b

    async def _pull(self) -> bytes:
        return await self._chunks.__anext__()


class Stream(Generic[T]):
    """One open, long-lived response body yielding decoded messages.

    The stream exclusively owns its source: closing the stream closes the
    source, and every fatal condition closes it before returning. It must be
    driven by a single consumer, one next() call at a time.

    Attributes:
        max_message_size: Upper bound in bytes for one message, or None
    """

    def __init__(
        self,
        source: Optional[ByteSource],
        response: Any = None,
        max_message_size: Optional[int] = None,
    ):
        """Wrap an open byte source.

        Args:
            source: Open response body, or None for an already closed stream
            response: Response type description, see decoding.decoder_for
            max_message_size: Upper bound in bytes for one message
        """
        self._source = source
        self._reader = ByteReader(source.aiter_bytes()) if source is not None else None
        self._buf = bytearray()
        self._decode: Decoder = decoder_for(response)
        self.max_message_size = max_message_size

    @property
    def closed(self) -> bool:
        return self._source is None

    async def __aenter__(self) -> "Stream[T]":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def __aiter__(self) -> AsyncIterator[T]:
        return self.iter()

    async def iter(self, ctx: Optional[Context] = None) -> AsyncIterator[T]:
        """Yield decoded messages until the stream closes.

        Cancellation ends the iteration cleanly; stream errors propagate.
        """
        while True:
            value, closed = await self.next(ctx)
            if closed:
                return
            yield value

    async def close(self) -> None:
        """Release the source. Safe to call any number of times."""
        source, self._source, self._reader = self._source, None, None
        if source is not None:
            await source.aclose()

    async def _release(self) -> None:
        # The stream is being torn down; a failing close adds nothing.
        with contextlib.suppress(httpx.HTTPError, httpx.StreamError, OSError):
            await self.close()

    async def next(self, ctx: Optional[Context] = None) -> tuple[Optional[T], bool]:
        """Read and decode exactly one message.

        Args:
            ctx: Cancellation signal, checked before every byte

        Returns:
            (value, False) for a decoded message, (None, True) once the
            context has been cancelled.

        Raises:
            UnexpectedEndOfStream: The source failed or ended mid-message
            DecodeError: The message is not JSON of the expected type
            BufferOverflow: The message exceeds max_message_size
            StreamClosed: The stream was already closed
        """
        ctx = ctx or Context()
        try:
            value = await self._scan(ctx)
        except StreamError:
            await self._release()
            if await self._settle(ctx):
                return None, True
            raise
        except BaseException:
            # Task cancellation or an unexpected failure: the read loop is
            # gone, so the source goes with it.
            await asyncio.shield(self._release())
            raise
        if await self._settle(ctx):
            return None, True
        return value, False

    async def _settle(self, ctx: Context) -> bool:
        """Final step of every next() exit path.

        Cancelling the context can abort a read in flight with an arbitrary
        transport error. Once the context is cancelled the outcome is a clean
        close, whatever the scan produced.
        """
        if not ctx.cancelled:
            return False
        await self._release()
        return True

    async def _scan(self, ctx: Context) -> Optional[T]:
        if self._reader is None:
            await self._release()
            raise StreamClosed()

        buf = self._buf
        buf.clear()
        pending_newline = False
        while True:
            if ctx.cancelled:
                await self._release()
                return None

            try:
                b = await self._reader.read_byte(ctx)
            except _READ_ERRORS as e:
                await self._release()
                raise UnexpectedEndOfStream() from e

            if b == NEWLINE:
                if pending_newline:
                    return decode_json(bytes(buf), self._decode)
                pending_newline = True
                continue

            if pending_newline:
                self._write(buf, NEWLINE)
                pending_newline = False
            self._write(buf, b)

    def _write(self, buf: bytearray, b: int) -> None:
        if self.max_message_size is not None and len(buf) >= self.max_message_size:
            raise BufferOverflow()
        buf.append(b)
