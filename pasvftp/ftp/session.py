"""FTP control session for pasvftp.

Provides SessionState enum and FTPSession, which owns the control
connection and runs one command/reply cycle at a time on it.
"""

import logging
import socket
from enum import Enum
from typing import Optional, Tuple

from pasvftp.ftp.exceptions import (
    FTPAuthenticationError,
    FTPConnectionError,
    FTPError,
    FTPIOError,
    FTPNotAuthenticatedError,
    FTPProtocolError,
    FTPValidationError,
)
from pasvftp.ftp.response import (
    DEFAULT_ENCODING,
    Response,
    ResponseReader,
    check_response_code,
)
from pasvftp.utils.validators import validate_address

logger = logging.getLogger("pasvftp.session")

CRLF = "\r\n"


class SessionState(Enum):
    """Control session state."""
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    AUTHENTICATED = "authenticated"


def parse_address(address: str) -> Tuple[str, int]:
    """
    Split a "host:port" address into a host and a numeric port.

    Args:
        address: Server address, e.g. "myserver:21", "myserver:ftp"
            or "[::1]:2121"

    Returns:
        Tuple of (host, port)

    Raises:
        FTPValidationError: If the address is blank, has no port or
            names an unknown service
    """
    is_valid, error = validate_address(address)
    if not is_valid:
        raise FTPValidationError(f"FTP Connection Error: {error}")

    host, _, port = address.strip().rpartition(":")
    if host.startswith("["):
        host = host[1:-1]

    if port.isdigit():
        return host, int(port)

    try:
        return host, socket.getservbyname(port, "tcp")
    except OSError as e:
        raise FTPValidationError(f"Unknown service name '{port}'", e) from e


class FTPSession:
    """Owns an FTP control connection and its state."""

    def __init__(self, encoding: str = DEFAULT_ENCODING):
        """
        Initialize a disconnected session.

        Args:
            encoding: Text encoding for commands and replies
        """
        self._encoding = encoding
        self._sock: Optional[socket.socket] = None
        self._stream = None
        self._reader: Optional[ResponseReader] = None
        self._host: Optional[str] = None
        self._port: Optional[int] = None
        self._state = SessionState.DISCONNECTED
        self._welcome: Optional[Response] = None
        self._username: Optional[str] = None

    @property
    def state(self) -> SessionState:
        """Current session state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        """True while the control connection is open."""
        return self._state != SessionState.DISCONNECTED

    @property
    def is_authenticated(self) -> bool:
        """True after a successful login."""
        return self._state == SessionState.AUTHENTICATED

    @property
    def host(self) -> Optional[str]:
        """Host the control connection was dialed to."""
        return self._host

    @property
    def port(self) -> Optional[int]:
        """Port the control connection was dialed to."""
        return self._port

    @property
    def welcome(self) -> Optional[Response]:
        """Welcome reply received on connect."""
        return self._welcome

    @property
    def username(self) -> Optional[str]:
        """User of the last successful login."""
        return self._username

    def dial(self, address: str) -> Response:
        """
        Open the control connection and validate the welcome reply.

        Args:
            address: Server address in "host:port" form

        Returns:
            The server's welcome reply

        Raises:
            FTPValidationError: If the address is malformed or the
                session is already connected
            FTPConnectionError: If the connection fails or the welcome
                reply is not 2xx
        """
        if self.is_connected:
            raise FTPValidationError(f"Session is already connected to {self._host}:{self._port}")

        host, port = parse_address(address)
        logger.info(f"Connecting to {host}:{port}")

        try:
            sock = socket.create_connection((host, port))
        except OSError as e:
            raise FTPConnectionError(host, port, e) from e

        stream = sock.makefile("rb")
        reader = ResponseReader(stream, self._encoding)

        try:
            welcome = reader.read()
            check_response_code(2, welcome.code, welcome.text)
        except (FTPIOError, FTPProtocolError) as e:
            stream.close()
            sock.close()
            raise FTPConnectionError(host, port, e) from e

        self._sock = sock
        self._stream = stream
        self._reader = reader
        self._host = host
        self._port = port
        self._welcome = welcome
        self._state = SessionState.CONNECTED

        logger.info(f"Connected to {host}:{port}: {welcome.message}")
        return welcome

    def _require_connected(self, operation: str) -> None:
        if not self.is_connected or self._sock is None:
            raise FTPValidationError(f"{operation} requires an open control connection")

    def require_authenticated(self, operation: str) -> None:
        """
        Ensure the session has logged in.

        Raises:
            FTPNotAuthenticatedError: If the state is not AUTHENTICATED
        """
        if not self.is_authenticated:
            raise FTPNotAuthenticatedError(operation, self._state.value)

    def send_line(self, line: str) -> None:
        """
        Write one command line without waiting for a reply.

        Args:
            line: Command text without the line terminator

        Raises:
            FTPValidationError: If not connected or the line contains
                CR or LF
            FTPIOError: If the write fails
        """
        self._require_connected("Sending a command")

        if "\r" in line or "\n" in line:
            raise FTPValidationError(
                f"Command '{line.split(' ', 1)[0]}' must not contain line breaks"
            )

        if line[:5].upper() == "PASS ":
            logger.debug(">>> PASS ****")
        else:
            logger.debug(f">>> {line}")

        try:
            self._sock.sendall((line + CRLF).encode(self._encoding))
        except OSError as e:
            raise FTPIOError(f"Failed to send command '{line.split(' ', 1)[0]}'", e) from e

    def read_response(self) -> Response:
        """
        Read the next reply from the control connection.

        Raises:
            FTPValidationError: If not connected
            FTPIOError: If the read fails or the connection closes
            FTPProtocolError: If the reply has no numeric status code
        """
        self._require_connected("Reading a reply")
        return self._reader.read()

    def command(self, verb: str, argument: str = "") -> Response:
        """
        Send a command and read its reply.

        Args:
            verb: Command verb, e.g. "PASV"
            argument: Optional command argument

        Returns:
            The server's reply

        Raises:
            FTPValidationError: If not connected or a line break is present
            FTPIOError: If the write or read fails
            FTPProtocolError: If the reply has no numeric status code
        """
        line = f"{verb} {argument}" if argument else verb
        self.send_line(line)
        return self.read_response()

    def login(self, user: str, password: str) -> Response:
        """
        Log in with USER and PASS.

        PASS is skipped when the server accepts USER alone.

        Args:
            user: FTP username
            password: FTP password

        Returns:
            The final login reply

        Raises:
            FTPValidationError: If user or password is blank, or not connected
            FTPIOError: If the control connection fails
            FTPAuthenticationError: If the server rejects the credentials;
                the session stays connected
        """
        if not user or not user.strip():
            raise FTPValidationError("FTP Connection Error: User can not be blank!")
        if not password:
            raise FTPValidationError("FTP Connection Error: Password can not be blank!")
        self._require_connected("Login")

        response = self.command("USER", user)
        if not response.is_success:
            response = self.command("PASS", password)

        try:
            check_response_code(2, response.code, response.text)
        except FTPProtocolError as e:
            logger.warning(f"Login rejected for user '{user}': {response}")
            raise FTPAuthenticationError(user, e) from e

        self._state = SessionState.AUTHENTICATED
        self._username = user
        logger.info(f"Logged in as '{user}'")
        return response

    def logout(self) -> Optional[Response]:
        """
        Send QUIT and close the control connection.

        The connection is closed and the session marked disconnected
        whatever QUIT returns. Errors from QUIT or from closing are
        raised afterwards.

        Returns:
            The QUIT reply, or None if the session was not connected
        """
        if not self.is_connected:
            return None

        try:
            response = self.command("QUIT")
        finally:
            self.close()

        logger.info("Logged out")
        return response

    def close(self) -> None:
        """
        Close the control connection without sending QUIT.

        A reply wait blocked in another thread fails with FTPIOError.

        Raises:
            FTPIOError: If closing the socket fails
        """
        sock, stream = self._sock, self._stream
        self._sock = None
        self._stream = None
        self._reader = None
        self._state = SessionState.DISCONNECTED

        if sock is None:
            return

        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # Peer already closed the connection
            pass

        try:
            stream.close()
            sock.close()
        except OSError as e:
            raise FTPIOError("Failed to close control connection", e) from e

    def __enter__(self) -> "FTPSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        try:
            self.logout()
        except FTPError as e:
            if exc_type is None:
                raise
            logger.warning(f"Logout failed while handling {exc_type.__name__}: {e}")


def dial(address: str, encoding: str = DEFAULT_ENCODING) -> FTPSession:
    """
    Connect to an FTP server.

    Args:
        address: Server address in "host:port" form
        encoding: Text encoding for commands and replies

    Returns:
        A connected FTPSession
    """
    session = FTPSession(encoding=encoding)
    session.dial(address)
    return session
