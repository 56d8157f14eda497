"""Passive mode transfers for pasvftp.

Provides TransferMode enum, progress/result dataclasses and
TransferEngine, which runs RETR and STOR over a passive data
connection opened alongside an authenticated FTPSession.
"""

import io
import logging
import socket
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Callable, Optional, Union

from pasvftp.ftp.exceptions import (
    FTPConnectionError,
    FTPError,
    FTPIOError,
    FTPProtocolError,
    FTPTimeoutError,
    FTPValidationError,
)
from pasvftp.ftp.passive import DataEndpoint, parse_pasv_response
from pasvftp.ftp.response import Response, check_response_code
from pasvftp.ftp.session import FTPSession
from pasvftp.utils.validators import (
    validate_remote_path,
    validate_timeout,
    validate_transfer_mode,
)

logger = logging.getLogger("pasvftp.transfer")


class TransferMode(Enum):
    """Representation type sent with TYPE before each transfer."""
    ASCII = "A"
    BINARY = "I"
    IMAGE = "I"  # Alias of BINARY

    @classmethod
    def coerce(cls, value: Union["TransferMode", str]) -> "TransferMode":
        """
        Accept a TransferMode, a TYPE code ("A"/"I") or a mode name.

        Raises:
            FTPValidationError: If the value names no known mode
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and value.strip().upper() in cls.__members__:
            return cls[value.strip().upper()]

        is_valid, error = validate_transfer_mode(value if isinstance(value, str) else "")
        if not is_valid:
            raise FTPValidationError(error)
        return cls(value.strip().upper())


class TransferDirection(Enum):
    """Which way file bytes move over the data connection."""
    DOWNLOAD = "download"
    UPLOAD = "upload"


@dataclass
class TransferProgress:
    """Progress information for a running transfer."""
    remote_path: str
    direction: TransferDirection
    bytes_transferred: int


@dataclass
class TransferResult:
    """Result of a completed transfer."""
    remote_path: str
    direction: TransferDirection
    bytes_transferred: int
    duration_seconds: float
    response: Optional[Response] = None


# Type alias for progress callback
ProgressCallback = Callable[[TransferProgress], None]


class TransferEngine:
    """Runs downloads and uploads for one FTPSession."""

    # Block size for data connection reads and source reads (8KB)
    BLOCK_SIZE = 8192

    def __init__(self, session: FTPSession, block_size: int = BLOCK_SIZE):
        """
        Initialize the engine.

        Only one transfer may run at a time on a session.

        Args:
            session: Logged-in control session
            block_size: Bytes per read on the data path
        """
        self._session = session
        self._block_size = block_size

    @property
    def session(self) -> FTPSession:
        """Control session used for transfers."""
        return self._session

    def download(
        self,
        remote_path: str,
        sink: BinaryIO,
        mode: Union[TransferMode, str] = TransferMode.BINARY,
        timeout: float = 0,
        on_progress: Optional[ProgressCallback] = None
    ) -> TransferResult:
        """
        Download a remote file into a writable binary file object.

        If the server refuses RETR the session stays usable. Any other
        failure after RETR is sent closes the session, since its reply is
        still pending on the control connection.

        Args:
            remote_path: Path on the server
            sink: Destination opened for binary writing
            mode: Transfer mode
            timeout: Data connection deadline in seconds, 0 for none
            on_progress: Optional callback after each block

        Returns:
            TransferResult for the completed download

        Raises:
            FTPValidationError: Bad arguments or session not logged in
            FTPConnectionError: Data connection could not be opened
            FTPIOError: Read or write failure, FTPTimeoutError on deadline
            FTPProtocolError: Unexpected reply code or malformed PASV reply
        """
        return self._transfer(
            TransferDirection.DOWNLOAD, remote_path, sink, mode, timeout, on_progress
        )

    def upload(
        self,
        remote_path: str,
        source: BinaryIO,
        mode: Union[TransferMode, str] = TransferMode.BINARY,
        timeout: float = 0,
        on_progress: Optional[ProgressCallback] = None
    ) -> TransferResult:
        """
        Upload the contents of a readable binary file object.

        Args:
            remote_path: Path on the server
            source: Source opened for binary reading
            mode: Transfer mode
            timeout: Data connection deadline in seconds, 0 for none
            on_progress: Optional callback after each block

        Returns:
            TransferResult for the completed upload

        Raises:
            Same as download()
        """
        return self._transfer(
            TransferDirection.UPLOAD, remote_path, source, mode, timeout, on_progress
        )

    def download_bytes(
        self,
        remote_path: str,
        mode: Union[TransferMode, str] = TransferMode.BINARY,
        timeout: float = 0
    ) -> bytes:
        """
        Download a remote file into memory.

        Returns:
            The file contents
        """
        buffer = io.BytesIO()
        self.download(remote_path, buffer, mode, timeout)
        return buffer.getvalue()

    def download_file(
        self,
        remote_path: str,
        local_path: Union[str, Path],
        mode: Union[TransferMode, str] = TransferMode.BINARY,
        timeout: float = 0,
        on_progress: Optional[ProgressCallback] = None
    ) -> TransferResult:
        """
        Download a remote file to a local path, replacing its contents.

        Raises:
            FTPIOError: If the local file cannot be opened
        """
        try:
            dest = open(local_path, "wb")
        except OSError as e:
            raise FTPIOError(f"Cannot open destination file '{local_path}'", e) from e

        with dest:
            return self.download(remote_path, dest, mode, timeout, on_progress)

    def upload_file(
        self,
        local_path: Union[str, Path],
        remote_path: str,
        mode: Union[TransferMode, str] = TransferMode.BINARY,
        timeout: float = 0,
        on_progress: Optional[ProgressCallback] = None
    ) -> TransferResult:
        """
        Upload a local file to a remote path.

        Raises:
            FTPIOError: If the local file cannot be opened
        """
        try:
            source = open(local_path, "rb")
        except OSError as e:
            raise FTPIOError(f"Cannot open source file '{local_path}'", e) from e

        with source:
            return self.upload(remote_path, source, mode, timeout, on_progress)

    def get(self, src: str, dest: Union[str, Path], mode=TransferMode.BINARY, timeout: float = 0) -> TransferResult:
        """Alias for download_file."""
        return self.download_file(src, dest, mode, timeout)

    def put(self, src: Union[str, Path], dest: str, mode=TransferMode.BINARY, timeout: float = 0) -> TransferResult:
        """Alias for upload_file."""
        return self.upload_file(src, dest, mode, timeout)

    def _transfer(
        self,
        direction: TransferDirection,
        remote_path: str,
        stream: BinaryIO,
        mode: Union[TransferMode, str],
        timeout: float,
        on_progress: Optional[ProgressCallback]
    ) -> TransferResult:
        verb = "RETR" if direction == TransferDirection.DOWNLOAD else "STOR"

        is_valid, error = validate_remote_path(remote_path)
        if not is_valid:
            raise FTPValidationError(error)
        is_valid, error = validate_timeout(timeout or 0)
        if not is_valid:
            raise FTPValidationError(error)
        mode = TransferMode.coerce(mode)
        self._session.require_authenticated(verb)

        start_time = time.monotonic()
        endpoint = self._enter_passive_mode()
        self._set_type(mode)

        # The server may only answer RETR/STOR once the data connection
        # is open, so the command is written without waiting for a reply.
        self._session.send_line(f"{verb} {remote_path}")

        try:
            data_sock = self._open_data_connection(endpoint)
        except FTPConnectionError:
            self._abandon_session(verb, remote_path)
            raise

        try:
            preliminary = self._read_preliminary(verb, remote_path)
        except FTPProtocolError:
            data_sock.close()
            raise
        except Exception:
            data_sock.close()
            self._abandon_session(verb, remote_path)
            raise

        deadline = time.monotonic() + timeout if timeout else None
        try:
            try:
                if direction == TransferDirection.DOWNLOAD:
                    total = self._receive(data_sock, stream, remote_path, deadline, timeout, on_progress)
                else:
                    total = self._send(data_sock, stream, remote_path, deadline, timeout, on_progress)
            finally:
                data_sock.close()
        except Exception:
            if not preliminary.is_success:
                self._abandon_session(verb, remote_path)
            raise

        if preliminary.is_success:
            response = preliminary
        else:
            response = self._read_completion(verb, remote_path)
        duration = time.monotonic() - start_time
        logger.info(
            f"{direction.value.capitalize()} of '{remote_path}' complete: "
            f"{total} bytes in {duration:.2f}s"
        )
        return TransferResult(
            remote_path=remote_path,
            direction=direction,
            bytes_transferred=total,
            duration_seconds=duration,
            response=response
        )

    def _enter_passive_mode(self) -> DataEndpoint:
        response = self._session.command("PASV")
        try:
            check_response_code(2, response.code, response.text)
        except FTPProtocolError as e:
            raise FTPProtocolError(
                f"Cannot set PASV. {e.message}",
                expected=e.expected,
                actual=e.actual,
                response=response.text
            ) from e
        return parse_pasv_response(response.text, self._session.host)

    def _set_type(self, mode: TransferMode) -> None:
        response = self._session.command("TYPE", mode.value)
        try:
            check_response_code(2, response.code, response.text)
        except FTPProtocolError as e:
            raise FTPProtocolError(
                f"Cannot set TYPE. {e.message}. Line: '{response}'",
                expected=e.expected,
                actual=e.actual,
                response=response.text
            ) from e

    def _open_data_connection(self, endpoint: DataEndpoint) -> socket.socket:
        logger.debug(f"Opening data connection to {endpoint.host}:{endpoint.port}")
        try:
            return socket.create_connection(endpoint.address)
        except OSError as e:
            raise FTPConnectionError(endpoint.host, endpoint.port, e) from e

    def _read_preliminary(self, verb: str, remote_path: str) -> Response:
        """
        Read the first reply to RETR/STOR once the data connection is open.

        A 1xx reply lets the data phase start. A 2xx reply means the server
        has already finished and sent its completion. Anything else refuses
        the transfer; that reply has been consumed, so the control channel
        stays usable.

        Raises:
            FTPProtocolError: If the server refused the transfer
        """
        response = self._session.read_response()
        if response.is_preliminary or response.is_success:
            return response

        logger.warning(f"{verb} {remote_path} refused: {response}")
        raise FTPProtocolError(
            f"Server refused {verb} {remote_path}: {response}",
            expected=1,
            actual=response.code,
            response=response.text
        )

    def _abandon_session(self, verb: str, remote_path: str) -> None:
        # The reply to RETR/STOR is still unread, so the next command would
        # receive it. Close the control connection instead.
        logger.warning(f"{verb} {remote_path} aborted; closing control connection")
        try:
            self._session.close()
        except FTPError as e:
            logger.warning(f"Closing control connection failed: {e}")

    def _read_completion(self, verb: str, remote_path: str) -> Response:
        # Skip 150/125 "about to open" replies queued before the data phase
        response = self._session.read_response()
        while response.is_preliminary:
            response = self._session.read_response()

        try:
            check_response_code(2, response.code, response.text)
        except FTPProtocolError:
            logger.warning(f"{verb} {remote_path} failed: {response}")
            raise
        return response

    @staticmethod
    def _apply_deadline(sock: socket.socket, deadline: Optional[float], operation: str, timeout: float) -> None:
        if deadline is None:
            return
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise FTPTimeoutError(operation, timeout)
        sock.settimeout(remaining)

    def _receive(
        self,
        data_sock: socket.socket,
        sink: BinaryIO,
        remote_path: str,
        deadline: Optional[float],
        timeout: float,
        on_progress: Optional[ProgressCallback]
    ) -> int:
        operation = f"Download of '{remote_path}'"
        total = 0

        while True:
            self._apply_deadline(data_sock, deadline, operation, timeout)
            try:
                chunk = data_sock.recv(self._block_size)
            except socket.timeout as e:
                raise FTPTimeoutError(operation, timeout) from e
            except OSError as e:
                raise FTPIOError(f"{operation} failed reading data connection", e) from e

            if not chunk:
                break

            try:
                _write_all(sink, chunk)
            except OSError as e:
                raise FTPIOError(f"Couldn't write to destination for '{remote_path}'", e) from e

            total += len(chunk)
            if on_progress:
                on_progress(TransferProgress(remote_path, TransferDirection.DOWNLOAD, total))

        return total

    def _send(
        self,
        data_sock: socket.socket,
        source: BinaryIO,
        remote_path: str,
        deadline: Optional[float],
        timeout: float,
        on_progress: Optional[ProgressCallback]
    ) -> int:
        operation = f"Upload to '{remote_path}'"
        total = 0

        while True:
            try:
                chunk = source.read(self._block_size)
            except OSError as e:
                raise FTPIOError(f"Couldn't read upload source for '{remote_path}'", e) from e

            if not chunk:
                break
            if isinstance(chunk, str):
                raise FTPValidationError("Upload source must be opened in binary mode")

            self._apply_deadline(data_sock, deadline, operation, timeout)
            try:
                data_sock.sendall(chunk)
            except socket.timeout as e:
                raise FTPTimeoutError(operation, timeout) from e
            except OSError as e:
                raise FTPIOError(f"Couldn't write file to server for '{remote_path}'", e) from e

            total += len(chunk)
            if on_progress:
                on_progress(TransferProgress(remote_path, TransferDirection.UPLOAD, total))

        return total


def _write_all(sink: BinaryIO, data: bytes) -> None:
    """Write data fully, continuing after short writes from raw files."""
    view = memoryview(data)
    while view:
        written = sink.write(view)
        if written is None or written >= len(view):
            return
        view = view[written:]
