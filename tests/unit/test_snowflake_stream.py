"""Unit tests for the bounded row stream."""

import asyncio

import pytest

from asset_catalog.errors import QueryTimeoutError, StreamError
from asset_catalog.parsers.snowflake_stream import RowStream, collect_rows


def batches(*chunks, error=None):
    """A fetch function handing out ``chunks`` then ``[]`` (or raising ``error``)."""
    remaining = list(chunks)

    def fetch():
        if remaining:
            return remaining.pop(0)
        if error is not None:
            raise error
        return []

    return fetch


class TestCollectRows:
    @pytest.mark.asyncio
    async def test_rows_arrive_in_order(self):
        rows = await collect_rows(batches([1, 2], [3], [4, 5, 6]))

        assert rows == [1, 2, 3, 4, 5, 6]

    @pytest.mark.asyncio
    async def test_empty_result(self):
        assert await collect_rows(batches()) == []

    @pytest.mark.asyncio
    async def test_small_buffer_still_delivers_everything(self):
        chunks = [[i] for i in range(50)]

        rows = await collect_rows(batches(*chunks), buffer_size=1)

        assert rows == list(range(50))

    @pytest.mark.asyncio
    async def test_failure_discards_partial_rows(self):
        with pytest.raises(StreamError) as exc_info:
            await collect_rows(batches([1, 2], [3], error=ConnectionResetError("peer reset")))

        error = exc_info.value
        assert error.context["rows_received"] == 3
        assert error.detail == "peer reset"
        assert "after 3 rows" in error.message

    @pytest.mark.asyncio
    async def test_timeout_mid_stream(self):
        with pytest.raises(QueryTimeoutError):
            await collect_rows(batches([1], error=RuntimeError("Read timeout on result chunk")))


class TestRowStream:
    @pytest.mark.asyncio
    async def test_nothing_after_failure(self):
        stream = RowStream(buffer_size=2)
        producer = asyncio.create_task(stream.produce(batches([1], error=RuntimeError("gone"))))
        seen = []

        with pytest.raises(StreamError):
            async for row in stream:
                seen.append(row)

        await producer
        assert seen == [1]
        assert stream.rows_produced == 1

    @pytest.mark.asyncio
    async def test_producer_blocks_on_full_buffer(self):
        stream = RowStream(buffer_size=1)
        producer = asyncio.create_task(stream.produce(batches([1], [2], [3])))

        for _ in range(20):
            await asyncio.sleep(0.01)

        # One batch buffered, one waiting on put
        assert stream.rows_produced <= 2
        assert not producer.done()

        rows = [row async for row in stream]
        await producer
        assert rows == [1, 2, 3]
