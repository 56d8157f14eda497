"""Unit tests for reply reading and code classification."""

import io
from unittest.mock import MagicMock

import pytest

from pasvftp.ftp.exceptions import FTPIOError, FTPProtocolError, FTPValidationError
from pasvftp.ftp.response import (
    Response,
    ResponseReader,
    check_response_code,
    parse_code,
)


def reader_for(data: bytes) -> ResponseReader:
    return ResponseReader(io.BytesIO(data))


class TestResponseReader:
    """Tests for ResponseReader."""

    def test_single_line_reply(self):
        """Test a one-line reply."""
        response = reader_for(b"200 Command okay.\r\n").read()

        assert response.code == 200
        assert response.text == "200 Command okay.\r\n"

    def test_multi_line_reply_is_one_response(self):
        """Test continuation lines are folded into one reply."""
        data = (
            b"226-First line\r\n"
            b"226-Second line\r\n"
            b" indented free text\r\n"
            b"226 Transfer complete\r\n"
        )
        response = reader_for(data).read()

        assert response.code == 226
        assert len(response.lines) == 4
        assert response.lines[-1] == "226 Transfer complete"
        assert response.message == "Transfer complete"

    def test_does_not_read_into_next_reply(self):
        """Test bytes after the terminal line stay for the next read."""
        reader = reader_for(b"150 Opening data connection\r\n226 Transfer complete\r\n")

        first = reader.read()
        second = reader.read()

        assert first.code == 150
        assert second.code == 226
        assert second.text == "226 Transfer complete\r\n"

    def test_long_continuation_line(self):
        """Test arbitrarily long lines are not truncated."""
        long_line = "220-" + "x" * 100_000 + "\r\n"
        response = reader_for((long_line + "220 Ready\r\n").encode()).read()

        assert response.code == 220
        assert len(response.text) == len(long_line) + len("220 Ready\r\n")

    def test_bare_newline_terminators(self):
        """Test replies terminated with LF only."""
        response = reader_for(b"230-Welcome\n230 Logged in\n").read()

        assert response.code == 230

    def test_digits_later_in_line_are_not_terminal(self):
        """Test only a leading code ends the reply."""
        reader = reader_for(b"220-Listening on port 2121 now\r\n220 Ready\r\n")

        response = reader.read()

        assert len(response.lines) == 2

    def test_eof_before_terminal_line_raises(self):
        """Test connection closing mid-reply raises FTPIOError."""
        with pytest.raises(FTPIOError):
            reader_for(b"220-Still going\r\n").read()

    def test_eof_on_empty_stream_raises(self):
        """Test closed connection raises FTPIOError."""
        with pytest.raises(FTPIOError):
            reader_for(b"").read()

    def test_partial_terminal_line_raises(self):
        """Test a terminal line without line ending raises FTPIOError."""
        with pytest.raises(FTPIOError):
            reader_for(b"220 Ready").read()

    def test_read_error_raises_io_error(self):
        """Test OSError from the stream is wrapped."""
        stream = MagicMock()
        stream.readline.side_effect = OSError("Connection reset")

        with pytest.raises(FTPIOError) as exc_info:
            ResponseReader(stream).read()

        assert isinstance(exc_info.value.original_error, OSError)

    def test_free_text_continuation_lines(self):
        """Test the code comes from the terminal line when earlier lines are free text."""
        data = b"Line one\r\nLine two\r\nLine three\r\n226 Transfer complete\r\n"

        response = reader_for(data).read()

        assert response.code == 226
        assert len(response.lines) == 4
        assert response.message == "Transfer complete"

    def test_invalid_utf8_is_replaced(self):
        """Test undecodable bytes do not break reading."""
        response = reader_for(b"550 No such file \xff\xfe\r\n").read()

        assert response.code == 550


class TestResponse:
    """Tests for Response dataclass."""

    def test_preliminary(self):
        """Test 1xx classification."""
        assert Response(150, "150 Opening\r\n").is_preliminary is True
        assert Response(226, "226 Done\r\n").is_preliminary is False

    def test_success(self):
        """Test 2xx classification."""
        assert Response(226, "226 Done\r\n").is_success is True
        assert Response(550, "550 No\r\n").is_success is False

    def test_str_strips_line_ending(self):
        """Test string form has no trailing CRLF."""
        assert str(Response(200, "200 OK\r\n")) == "200 OK"


class TestParseCode:
    """Tests for parse_code."""

    def test_valid_code(self):
        assert parse_code("331 Password required") == 331

    @pytest.mark.parametrize("text", ["", "22", "abc def", "2x0 Nope"])
    def test_invalid_code(self, text):
        with pytest.raises(FTPProtocolError):
            parse_code(text)


class TestCheckResponseCode:
    """Tests for check_response_code."""

    @pytest.mark.parametrize("expected", [2, 23, 230])
    def test_matching_prefix_passes(self, expected):
        """Test one, two and three digit expectations accept 230."""
        check_response_code(expected, 230)

    @pytest.mark.parametrize("expected", [2, 23, 230])
    def test_mismatch_raises(self, expected):
        """Test one, two and three digit expectations reject 500."""
        with pytest.raises(FTPProtocolError) as exc_info:
            check_response_code(expected, 500)

        assert exc_info.value.expected == expected
        assert exc_info.value.actual == 500

    def test_two_digit_prefix_is_strict(self):
        """Test 23 does not accept 220."""
        with pytest.raises(FTPProtocolError):
            check_response_code(23, 220)

    def test_error_carries_response_text(self):
        """Test the reply text is kept on the error."""
        with pytest.raises(FTPProtocolError) as exc_info:
            check_response_code(2, 530, "530 Not logged in\r\n")

        assert exc_info.value.response == "530 Not logged in\r\n"
        assert "Expected: 2, Got: 530" in str(exc_info.value)

    @pytest.mark.parametrize("expected", [0, 1000, -2])
    def test_out_of_range_expectation(self, expected):
        """Test expectations outside 1-999 are rejected."""
        with pytest.raises(FTPValidationError):
            check_response_code(expected, 200)
