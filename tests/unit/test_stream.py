"""
Unit tests for the stream connection adapter.

Each test drives the protocol callbacks by hand against a FakeTransport,
inside asyncio.run().
"""

import asyncio

import pytest

from rawhttp.core import StreamConnection, StreamState


class TestReading:
    """Tests for read() and the pause/resume protocol."""

    def test_paused_on_connect(self, make_conn):
        async def scenario():
            conn, transport = make_conn()
            assert transport.reading is False
            assert conn.state is StreamState.OPEN

        asyncio.run(scenario())

    def test_read_resumes_then_pauses(self, make_conn):
        async def scenario():
            conn, transport = make_conn()
            task = asyncio.ensure_future(conn.read())
            await asyncio.sleep(0)

            assert transport.reading is True
            conn.data_received(b"hello")

            assert await task == b"hello"
            assert transport.reading is False

        asyncio.run(scenario())

    def test_chunks_delivered_in_order(self, make_conn):
        async def scenario():
            conn, transport = make_conn()
            received = []
            for chunk in (b"one", b"two", b"three"):
                task = asyncio.ensure_future(conn.read())
                await asyncio.sleep(0)
                conn.data_received(chunk)
                received.append(await task)
            return received

        assert asyncio.run(scenario()) == [b"one", b"two", b"three"]

    def test_concurrent_read_rejected(self, make_conn):
        async def scenario():
            conn, transport = make_conn()
            first = asyncio.ensure_future(conn.read())
            await asyncio.sleep(0)

            with pytest.raises(RuntimeError):
                await conn.read()

            conn.data_received(b"x")
            assert await first == b"x"

        asyncio.run(scenario())

    def test_chunk_arriving_while_paused_is_held(self, make_conn):
        """A chunk already in flight when reading paused is kept for the next read."""
        async def scenario():
            conn, transport = make_conn()
            conn.data_received(b"early")

            resumes = transport.resume_count
            assert await conn.read() == b"early"
            assert transport.resume_count == resumes

        asyncio.run(scenario())

    def test_cancelled_read_frees_slot(self, make_conn):
        async def scenario():
            conn, transport = make_conn()
            task = asyncio.ensure_future(conn.read())
            await asyncio.sleep(0)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

            assert transport.reading is False
            second = asyncio.ensure_future(conn.read())
            await asyncio.sleep(0)
            conn.data_received(b"after")
            assert await second == b"after"

        asyncio.run(scenario())


class TestLatchedState:
    """Tests for end-of-stream and failure latching."""

    def test_eof_resolves_pending_read(self, make_conn):
        async def scenario():
            conn, transport = make_conn()
            task = asyncio.ensure_future(conn.read())
            await asyncio.sleep(0)

            assert conn.eof_received() is True
            assert await task == b""
            assert conn.state is StreamState.ENDED

        asyncio.run(scenario())

    def test_reads_after_eof_do_not_resume(self, make_conn):
        async def scenario():
            conn, transport = make_conn()
            conn.eof_received()
            resumes = transport.resume_count

            assert await conn.read() == b""
            assert await conn.read() == b""
            assert transport.resume_count == resumes

        asyncio.run(scenario())

    def test_clean_close_ends_stream(self, make_conn):
        async def scenario():
            conn, transport = make_conn()
            conn.connection_lost(None)
            assert conn.state is StreamState.ENDED
            assert await conn.read() == b""

        asyncio.run(scenario())

    def test_error_rejects_pending_read(self, make_conn):
        async def scenario():
            conn, transport = make_conn()
            task = asyncio.ensure_future(conn.read())
            await asyncio.sleep(0)

            conn.connection_lost(ConnectionResetError("reset by peer"))
            with pytest.raises(ConnectionResetError):
                await task
            assert conn.state is StreamState.FAILED

        asyncio.run(scenario())

    def test_error_is_latched(self, make_conn):
        async def scenario():
            conn, transport = make_conn()
            error = ConnectionResetError("reset by peer")
            conn.connection_lost(error)
            resumes = transport.resume_count

            for _ in range(2):
                with pytest.raises(ConnectionResetError) as exc_info:
                    await conn.read()
                assert exc_info.value is error
            assert transport.resume_count == resumes

        asyncio.run(scenario())

    def test_eof_then_error_stays_ended(self, make_conn):
        async def scenario():
            conn, transport = make_conn()
            conn.eof_received()
            conn.connection_lost(ConnectionResetError("late"))

            assert conn.state is StreamState.ENDED
            assert await conn.read() == b""

        asyncio.run(scenario())


class TestWriting:
    """Tests for write() and write-side flow control."""

    def test_write_reaches_transport(self, make_conn):
        async def scenario():
            conn, transport = make_conn()
            await conn.write(b"hello ")
            await conn.write(b"world")
            return transport

        transport = asyncio.run(scenario())
        assert bytes(transport.written) == b"hello world"
        assert transport.writes == [b"hello ", b"world"]

    def test_empty_write_is_noop(self, make_conn):
        async def scenario():
            conn, transport = make_conn()
            await conn.write(b"")
            return transport

        assert asyncio.run(scenario()).writes == []

    def test_write_waits_while_paused(self, make_conn):
        async def scenario():
            conn, transport = make_conn()
            conn.pause_writing()

            task = asyncio.ensure_future(conn.write(b"data"))
            await asyncio.sleep(0)
            assert not task.done()
            assert bytes(transport.written) == b"data"

            conn.resume_writing()
            await task

        asyncio.run(scenario())

    def test_paused_write_fails_when_connection_lost(self, make_conn):
        async def scenario():
            conn, transport = make_conn()
            conn.pause_writing()

            task = asyncio.ensure_future(conn.write(b"data"))
            await asyncio.sleep(0)
            conn.connection_lost(None)

            with pytest.raises(ConnectionResetError):
                await task

        asyncio.run(scenario())

    def test_write_after_close(self, make_conn):
        async def scenario():
            conn, transport = make_conn()
            conn.close()
            with pytest.raises(ConnectionResetError):
                await conn.write(b"data")

        asyncio.run(scenario())

    def test_write_after_error_raises_it(self, make_conn):
        async def scenario():
            conn, transport = make_conn()
            conn.connection_lost(BrokenPipeError("pipe"))
            with pytest.raises(BrokenPipeError):
                await conn.write(b"data")

        asyncio.run(scenario())

    def test_write_high_water_applied(self, make_conn):
        async def scenario():
            conn, transport = make_conn(write_high_water=1024)
            return transport

        assert asyncio.run(scenario()).high_water == 1024


class TestConnection:
    """Tests for connection bookkeeping."""

    def test_on_connect_called(self, make_conn):
        seen = []

        async def scenario():
            conn, transport = make_conn(on_connect=seen.append)
            return conn

        conn = asyncio.run(scenario())
        assert seen == [conn]

    def test_peername(self, make_conn):
        async def scenario():
            conn, transport = make_conn()
            return conn.peername

        assert asyncio.run(scenario()) == "127.0.0.1:50000"
        assert StreamConnection().peername == "-"

    def test_close_is_idempotent(self, make_conn):
        async def scenario():
            conn, transport = make_conn()
            conn.close()
            conn.close()
            assert transport.closed
            assert conn.is_closed

        asyncio.run(scenario())
