"""Pytest configuration and shared fixtures for pasvftp tests."""

import io
from typing import Callable, List
from unittest.mock import MagicMock

import pytest


WELCOME = "220 Service ready\r\n"
LOGIN_REPLIES = (
    WELCOME,
    "331 Password required\r\n",
    "230 User logged in\r\n",
)


@pytest.fixture
def control_socket() -> Callable[..., MagicMock]:
    """Factory for a mock control socket that replays canned replies."""
    def _make(*replies: str) -> MagicMock:
        sock = MagicMock()
        sock.makefile.return_value = io.BytesIO("".join(replies).encode("utf-8"))
        return sock
    return _make


@pytest.fixture
def sent_lines() -> Callable[[MagicMock], List[str]]:
    """Decode every line written to a mock socket with sendall."""
    def _lines(sock: MagicMock) -> List[str]:
        return [c.args[0].decode("utf-8") for c in sock.sendall.call_args_list]
    return _lines
