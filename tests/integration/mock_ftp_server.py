"""Local FTP server for integration testing.

Uses pyftpdlib to serve a temporary directory so transfers can be
checked against real server behaviour.
"""

import tempfile
import threading
import time
from pathlib import Path
from typing import Optional

from pyftpdlib.authorizers import DummyAuthorizer
from pyftpdlib.handlers import DTPHandler, FTPHandler
from pyftpdlib.servers import FTPServer


class MockDTPHandler(DTPHandler):
    """Data channel that stays silent when closed before any transfer.

    The stock handler answers 226 on the control channel whenever the
    client closes a data connection, even one that never carried a file.
    """

    def handle_close(self):
        if self.file_obj is None:
            self.close()
        else:
            super().handle_close()


class MockFTPServer:
    """
    FTP server on 127.0.0.1 backed by a temporary directory.

    Usage:
        with MockFTPServer() as server:
            # Connect to server.address
            # server.root_dir contains the served files
            pass
    """

    DEFAULT_USER = "testuser"
    DEFAULT_PASS = "testpass"

    def __init__(
        self,
        port: int = 0,
        username: str = DEFAULT_USER,
        password: str = DEFAULT_PASS,
    ):
        """
        Initialize the mock FTP server.

        Args:
            port: Port to listen on (0 picks a free port)
            username: FTP username
            password: FTP password
        """
        self._requested_port = port
        self.username = username
        self.password = password

        self._server: Optional[FTPServer] = None
        self._thread: Optional[threading.Thread] = None
        self._temp_dir: Optional[tempfile.TemporaryDirectory] = None
        self._root_dir: Optional[Path] = None

    @property
    def root_dir(self) -> Path:
        """Root directory of the served filesystem."""
        if self._root_dir is None:
            raise RuntimeError("Server not started")
        return self._root_dir

    @property
    def host(self) -> str:
        """Server host address."""
        return "127.0.0.1"

    @property
    def port(self) -> int:
        """Port the server is listening on."""
        if self._server is None:
            raise RuntimeError("Server not started")
        return self._server.socket.getsockname()[1]

    @property
    def address(self) -> str:
        """Server address in "host:port" form."""
        return f"{self.host}:{self.port}"

    def add_file(self, path: str, content: bytes) -> Path:
        """
        Place a file in the served filesystem.

        Args:
            path: FTP path (e.g., "/pub/file.bin")
            content: File contents

        Returns:
            Local path of the created file
        """
        local_path = self.root_dir / path.lstrip("/")
        local_path.parent.mkdir(parents=True, exist_ok=True)
        local_path.write_bytes(content)
        return local_path

    def start(self) -> None:
        """Start the FTP server in a background thread."""
        self._temp_dir = tempfile.TemporaryDirectory(prefix="pasvftp_server_")
        self._root_dir = Path(self._temp_dir.name)
        (self._root_dir / "pub").mkdir()

        authorizer = DummyAuthorizer()
        authorizer.add_user(
            self.username,
            self.password,
            str(self._root_dir),
            perm="elradfmw"  # Full permissions
        )

        handler = type("MockFTPHandler", (FTPHandler,), {})
        handler.authorizer = authorizer
        handler.dtp_handler = MockDTPHandler
        handler.auth_failed_timeout = 0.1

        self._server = FTPServer((self.host, self._requested_port), handler)

        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()

        # Give server time to start
        time.sleep(0.2)

    def stop(self) -> None:
        """Stop the FTP server and clean up."""
        if self._server:
            self._server.close_all()

        if self._temp_dir:
            self._temp_dir.cleanup()

        self._server = None
        self._thread = None
        self._temp_dir = None
        self._root_dir = None

    def __enter__(self) -> "MockFTPServer":
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.stop()
