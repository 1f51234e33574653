"""
Unit tests for header block framing.
"""

import pytest

from rawhttp.core import DynamicBuffer
from rawhttp.http import HTTPError, MAX_HEADER_SIZE, cut_message


def frame_all(chunks, max_header_size=MAX_HEADER_SIZE):
    """Feed chunks one at a time, cutting every complete request."""
    buf = DynamicBuffer()
    requests = []
    for chunk in chunks:
        buf.append(chunk)
        while True:
            request = cut_message(buf, max_header_size)
            if request is None:
                break
            requests.append(request)
    return requests, buf


class TestCutMessage:
    """Tests for cut_message."""

    def test_incomplete_returns_none(self):
        buf = DynamicBuffer(b"GET / HTTP/1.1\r\nHost: a\r\n")
        assert cut_message(buf) is None
        assert buf.length == 25

    def test_complete_block_consumed(self, sample_get_request: bytes):
        buf = DynamicBuffer(sample_get_request)
        request = cut_message(buf)

        assert request.uri == b"/missing"
        assert buf.length == 0

    def test_body_left_in_buffer(self, sample_post_request: bytes):
        buf = DynamicBuffer(sample_post_request)
        request = cut_message(buf)

        assert request.method == "POST"
        assert buf.getvalue() == b"hello"

    def test_pipelined_requests(self):
        data = (
            b"GET /a HTTP/1.1\r\n\r\n"
            b"GET /b HTTP/1.1\r\nHost: x\r\n\r\n"
            b"GET /c HT"
        )
        requests, buf = frame_all([data])

        assert [r.uri for r in requests] == [b"/a", b"/b"]
        assert buf.getvalue() == b"GET /c HT"

    def test_independent_of_chunk_boundaries(self, sample_get_request: bytes):
        """Every split point of the stream yields the same requests."""
        stream = sample_get_request + b"GET /second HTTP/1.0\r\n\r\n"
        expected, _ = frame_all([stream])
        assert len(expected) == 2

        for i in range(len(stream) + 1):
            requests, buf = frame_all([stream[:i], stream[i:]])
            assert requests == expected, f"split at {i}"
            assert buf.length == 0

        requests, _ = frame_all([stream[i:i + 1] for i in range(len(stream))])
        assert requests == expected

    def test_header_too_large(self):
        buf = DynamicBuffer(b"GET / HTTP/1.1\r\nX: " + b"a" * MAX_HEADER_SIZE)

        with pytest.raises(HTTPError) as exc_info:
            cut_message(buf)
        assert exc_info.value.status_code == 413

    def test_custom_cap(self):
        buf = DynamicBuffer(b"GET / HTTP/1.1\r\nX: " + b"a" * 100)
        assert cut_message(buf) is None

        with pytest.raises(HTTPError) as exc_info:
            cut_message(buf, max_header_size=64)
        assert exc_info.value.status_code == 413

    def test_just_under_cap_waits(self):
        buf = DynamicBuffer(b"a" * (MAX_HEADER_SIZE - 1))
        assert cut_message(buf) is None

    def test_complete_block_over_cap_is_parsed(self):
        """The cap only applies while waiting for the terminator."""
        data = b"GET / HTTP/1.1\r\nX: " + b"a" * 200 + b"\r\n\r\n"
        buf = DynamicBuffer(data)

        request = cut_message(buf, max_header_size=64)
        assert request.get_header("X") == b"a" * 200

    def test_malformed_block(self):
        buf = DynamicBuffer(b"BROKEN\r\n\r\n")
        with pytest.raises(HTTPError) as exc_info:
            cut_message(buf)
        assert exc_info.value.status_code == 400
