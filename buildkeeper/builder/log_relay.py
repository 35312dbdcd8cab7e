from typing import AsyncIterable, AsyncIterator, Optional, Union
import asyncio
import codecs

from buildkeeper.common.config.logging_config import get_logger


logger = get_logger(__name__)

_END_OF_STREAM = object()

Chunk = Union[bytes, str]


class LogRelay:
    """Turns a chunked byte/text stream into lines for a single consumer.

    A reader task splits the stream on newlines and queues every non-blank
    line. The consumer iterates the relay until the stream is exhausted; an
    error raised by the stream is re-raised to the consumer once the lines
    read before it have been delivered.
    """

    def __init__(
        self,
        max_queue_size: int = 1000,
        max_line_length: int = 4000,
        encoding: str = "utf-8",
    ):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue_size)
        self._max_line_length = max_line_length
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._reader_task: Optional[asyncio.Task] = None
        self._error: Optional[BaseException] = None
        self._finished = False
        self.lines_relayed = 0

    @classmethod
    def start(
        cls,
        stream: AsyncIterable[Chunk],
        max_queue_size: int = 1000,
        max_line_length: int = 4000,
    ) -> "LogRelay":
        relay = cls(max_queue_size=max_queue_size, max_line_length=max_line_length)
        relay._reader_task = asyncio.create_task(relay._read(stream))
        return relay

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    async def _read(self, stream: AsyncIterable[Chunk]) -> None:
        pending = ""
        try:
            async for chunk in stream:
                if isinstance(chunk, bytes):
                    pending += self._decoder.decode(chunk)
                else:
                    pending += chunk

                *lines, pending = pending.split("\n")
                for line in lines:
                    await self._emit(line)

            pending += self._decoder.decode(b"", final=True)
            if pending:
                await self._emit(pending)
        except asyncio.CancelledError:
            self._signal_end_nowait()
            raise
        except Exception as e:
            logger.debug(f"Relayed stream failed after {self.lines_relayed} lines: {e}")
            self._error = e

        await self._queue.put(_END_OF_STREAM)

    async def _emit(self, raw_line: str) -> None:
        line = raw_line.strip()
        if not line:
            return
        if len(line) > self._max_line_length:
            line = line[:self._max_line_length] + "..."
        await self._queue.put(line)
        self.lines_relayed += 1

    def _signal_end_nowait(self) -> None:
        try:
            self._queue.put_nowait(_END_OF_STREAM)
        except asyncio.QueueFull:
            logger.debug("Relay queue full while cancelling, consumer must be cancelled too")

    async def get(self) -> Optional[str]:
        """Wait for the next line; None once the stream is exhausted."""
        if self._finished:
            return None

        item = await self._queue.get()
        if item is _END_OF_STREAM:
            self._finished = True
            if self._error is not None:
                raise self._error
            return None
        return item

    def __aiter__(self) -> AsyncIterator[str]:
        return self

    async def __anext__(self) -> str:
        line = await self.get()
        if line is None:
            raise StopAsyncIteration
        return line

    async def wait_closed(self) -> None:
        if self._reader_task is not None:
            await self._reader_task

    async def aclose(self) -> None:
        if self._reader_task is not None and not self._reader_task.done():
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                logger.debug("Relay reader cancelled")
