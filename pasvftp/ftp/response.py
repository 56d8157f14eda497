"""Server reply handling for pasvftp.

Provides the Response dataclass, ResponseReader for aggregating
multi-line replies off the control channel, and check_response_code
for classifying reply codes against an expected prefix.
"""

import logging
import re
from dataclasses import dataclass
from typing import BinaryIO, List, Optional

from pasvftp.ftp.exceptions import (
    FTPIOError,
    FTPProtocolError,
    FTPValidationError,
)

logger = logging.getLogger("pasvftp.response")

# A reply ends on the first line that starts with three digits and a space.
# Continuation lines use "DDD-" or free text.
TERMINAL_LINE_PATTERN = re.compile(r"^[0-9]{3} ")

DEFAULT_ENCODING = "utf-8"


@dataclass
class Response:
    """A complete server reply."""
    code: int
    text: str

    @property
    def lines(self) -> List[str]:
        """Reply lines without line terminators."""
        return self.text.splitlines()

    @property
    def message(self) -> str:
        """Text of the terminal line after the status code."""
        lines = self.lines
        if not lines:
            return ""
        return lines[-1][4:].strip()

    @property
    def is_preliminary(self) -> bool:
        """True for 1xx replies; another reply will follow."""
        return 100 <= self.code < 200

    @property
    def is_success(self) -> bool:
        """True for 2xx replies."""
        return 200 <= self.code < 300

    def __str__(self) -> str:
        return self.text.rstrip("\r\n")


def parse_code(text: str) -> int:
    """
    Extract the status code from the first three characters of a line.

    Args:
        text: Terminal line of a reply

    Returns:
        Three-digit status code

    Raises:
        FTPProtocolError: If the first three characters are not digits
    """
    prefix = text[:3]
    if len(prefix) != 3 or not prefix.isascii() or not prefix.isdigit():
        raise FTPProtocolError(
            f"Invalid status code {prefix!r} in server reply",
            response=text
        )
    return int(prefix)


def check_response_code(expected: int, actual: int, response: Optional[str] = None) -> None:
    """
    Check a reply code against an expected code prefix.

    Expectations of one, two or three digits constrain the first digit,
    the first two digits or the whole code respectively.

    Args:
        expected: Expected prefix (1-9, 10-99 or 100-999)
        actual: Code received from the server
        response: Optional reply text carried on the error

    Raises:
        FTPProtocolError: If the code does not match
        FTPValidationError: If expected is outside 1-999
    """
    if 1 <= expected < 10:
        matches = actual // 100 == expected
    elif 10 <= expected < 100:
        matches = actual // 10 == expected
    elif 100 <= expected < 1000:
        matches = actual == expected
    else:
        raise FTPValidationError(f"Expected code must be between 1 and 999, got {expected}")

    if not matches:
        raise FTPProtocolError(
            f"Bad response from server. Expected: {expected}, Got: {actual}",
            expected=expected,
            actual=actual,
            response=response
        )


class ResponseReader:
    """Reads complete replies from a buffered control channel stream."""

    def __init__(self, stream: BinaryIO, encoding: str = DEFAULT_ENCODING):
        """
        Initialize the reader.

        The stream must be the single buffered reader for the channel;
        bytes it has buffered past a terminal line belong to the next reply.

        Args:
            stream: Binary file object supporting readline()
            encoding: Text encoding of server replies
        """
        self._stream = stream
        self._encoding = encoding

    def read(self) -> Response:
        """
        Read one reply, following multi-line continuations.

        Returns:
            Response with the status code and full reply text

        Raises:
            FTPIOError: If the read fails or the channel closes mid-reply
        """
        lines: List[str] = []

        while True:
            try:
                raw = self._stream.readline()
            except (OSError, ValueError) as e:
                raise FTPIOError("Failed to read server reply", e) from e

            if not raw.endswith(b"\n"):
                raise FTPIOError(
                    "Control connection closed before a complete reply was received"
                )

            line = raw.decode(self._encoding, errors="replace")
            lines.append(line)

            if TERMINAL_LINE_PATTERN.match(line):
                break

        text = "".join(lines)
        code = parse_code(lines[-1])
        logger.debug(f"<<< {text.rstrip()}")
        return Response(code=code, text=text)
