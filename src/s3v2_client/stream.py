"""Pull-based byte streams for request payloads."""

import asyncio
import io
from collections.abc import AsyncIterable, AsyncIterator, Awaitable
from typing import TypeVar

from .exceptions import S3BlockingError

T = TypeVar("T")


async def _single_chunk(data: bytes) -> AsyncIterator[bytes]:
    yield data


class ByteStream:
    """An async iterable of bytes chunks with an optional declared size.

    Chunks are only pulled from the producer when the consumer asks for more,
    at most one chunk is kept in the read buffer.
    """

    def __init__(self, chunks: AsyncIterable[bytes], size_hint: int | None = None):
        self.size_hint = size_hint
        self._iterator = aiter(chunks)
        self._buffer = b""
        self._exhausted = False

    @classmethod
    def from_bytes(cls, data: bytes) -> "ByteStream":
        return cls(_single_chunk(data), size_hint=len(data))

    def __repr__(self) -> str:
        return f"<ByteStream size_hint={self.size_hint}>"

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._iter_chunks()

    async def _iter_chunks(self) -> AsyncIterator[bytes]:
        if self._buffer:
            chunk, self._buffer = self._buffer, b""
            yield chunk
        while (chunk := await self._next_chunk()) is not None:
            yield chunk

    async def _next_chunk(self) -> bytes | None:
        if self._exhausted:
            return None
        try:
            return await anext(self._iterator)
        except StopAsyncIteration:
            self._exhausted = True
            return None

    async def read(self, size: int = -1) -> bytes:
        """Reads up to size bytes, or everything that is left if size < 0."""
        if size < 0:
            parts = [chunk async for chunk in self]
            return b"".join(parts)

        while not self._buffer:
            chunk = await self._next_chunk()
            if chunk is None:
                return b""
            self._buffer = chunk

        data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data

    def into_blocking_read(self) -> "BlockingReader":
        return BlockingReader(self)


def run_blocking(
    awaitable: Awaitable[T], loop: asyncio.AbstractEventLoop | None = None
) -> T:
    """Runs an awaitable to completion from synchronous code."""
    try:
        if loop is None:
            return asyncio.run(_await(awaitable))
        return loop.run_until_complete(awaitable)
    except RuntimeError as e:
        raise S3BlockingError(f"Failed to run blocking future: {e}") from e


async def _await(awaitable: Awaitable[T]) -> T:
    return await awaitable


class BlockingReader(io.RawIOBase):
    """Synchronous file-like view over a ByteStream.

    Drives the stream on a private event loop, so it must not be used from a
    thread that is already running one.
    """

    def __init__(self, stream: ByteStream):
        self._stream = stream
        self._loop = asyncio.new_event_loop()

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        data = run_blocking(self._stream.read(len(buffer)), loop=self._loop)
        buffer[: len(data)] = data
        return len(data)

    def close(self) -> None:
        if not self._loop.is_closed():
            self._loop.close()
        super().close()
