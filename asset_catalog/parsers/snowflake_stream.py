"""Bounded row channel between a blocking cursor and an async consumer."""

import asyncio
import contextlib
import logging
from typing import Any, AsyncIterator, Callable, Sequence

from asset_catalog.errors import CatalogError, StreamError

logger = logging.getLogger(__name__)

# Terminal marker put on the channel once the cursor is exhausted
END_OF_STREAM = object()

BatchFetcher = Callable[[], Sequence[Any]]


class _Failure:
    """Terminal channel item carrying the error that ended the stream."""

    def __init__(self, error: CatalogError):
        self.error = error


class RowStream:
    """
    Single-producer, single-consumer row channel.

    The producer drains a cursor in batches on a worker thread and puts them
    on a bounded queue, so a slow consumer applies backpressure. The stream
    ends with either ``END_OF_STREAM`` or a failure item; the consumer never
    sees a row after either.
    """

    def __init__(self, buffer_size: int = 4):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=buffer_size)
        self.rows_produced = 0

    async def produce(self, fetch_batch: BatchFetcher) -> None:
        """Pull batches until an empty one arrives, then signal the end."""
        try:
            while True:
                batch = await asyncio.to_thread(fetch_batch)
                if not batch:
                    break
                self.rows_produced += len(batch)
                await self._queue.put(list(batch))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error = StreamError.from_driver_error(
                e,
                f"Row stream interrupted after {self.rows_produced} rows",
                context={"rows_received": self.rows_produced},
            )
            logger.warning(f"Row stream failed after {self.rows_produced} rows: {e}")
            await self._queue.put(_Failure(error))
            return
        await self._queue.put(END_OF_STREAM)

    async def __aiter__(self) -> AsyncIterator[Any]:
        while True:
            item = await self._queue.get()
            if item is END_OF_STREAM:
                return
            if isinstance(item, _Failure):
                raise item.error
            for row in item:
                yield row


async def collect_rows(fetch_batch: BatchFetcher, buffer_size: int = 4) -> list[Any]:
    """
    Drain ``fetch_batch`` through a ``RowStream`` and return every row.

    All or nothing: if the stream fails, the rows received so far are
    discarded and the error is raised.

    Raises:
        StreamError: if fetching failed mid-stream
        QueryTimeoutError: if the warehouse timed the statement out mid-stream
    """
    stream = RowStream(buffer_size)
    producer = asyncio.create_task(stream.produce(fetch_batch))
    try:
        rows = []
        async for row in stream:
            rows.append(row)
        return rows
    finally:
        if not producer.done():
            producer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await producer
