"""FTP-specific exceptions for pasvftp.

Custom exception hierarchy separating caller mistakes, dial failures,
channel I/O failures and protocol violations.
"""


class FTPError(Exception):
    """Base exception for all FTP-related errors."""

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class FTPValidationError(FTPError):
    """Caller input was blank or malformed; no I/O was attempted."""


class FTPNotAuthenticatedError(FTPValidationError):
    """Operation attempted on a session that has not logged in."""

    def __init__(self, operation: str = "Operation", state: str = "disconnected"):
        self.operation = operation
        self.state = state
        message = f"{operation} requires an authenticated session (state: {state})"
        super().__init__(message)


class FTPConnectionError(FTPError):
    """Failed to establish a control or data connection."""

    def __init__(self, host: str, port: int, original_error: Exception = None):
        self.host = host
        self.port = port
        message = f"Failed to connect to {host}:{port}"
        super().__init__(message, original_error)


class FTPIOError(FTPError):
    """Read or write failed on an established channel."""


class FTPTimeoutError(FTPIOError):
    """Data connection deadline elapsed."""

    def __init__(self, operation: str = "Operation", timeout: float = 0):
        self.operation = operation
        self.timeout = timeout
        message = f"{operation} timed out after {timeout} seconds"
        super().__init__(message)


class FTPProtocolError(FTPError):
    """Server reply did not match what the protocol requires."""

    def __init__(
        self,
        message: str,
        expected: int = None,
        actual: int = None,
        response: str = None,
        original_error: Exception = None
    ):
        self.expected = expected
        self.actual = actual
        self.response = response
        super().__init__(message, original_error)


class FTPAuthenticationError(FTPProtocolError):
    """Server rejected the login credentials."""

    def __init__(self, username: str, original_error: Exception = None):
        self.username = username
        message = f"Authentication failed for user '{username}'"
        expected = getattr(original_error, "expected", None)
        actual = getattr(original_error, "actual", None)
        response = getattr(original_error, "response", None)
        super().__init__(message, expected, actual, response, original_error)
