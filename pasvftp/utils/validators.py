"""Input validators for pasvftp.

Provides validation functions for user inputs like server addresses,
ports, timeouts, remote paths and transfer modes.
"""

import ipaddress
import re
from pathlib import Path
from typing import Optional, Tuple


# IPv4 address pattern
IPV4_PATTERN = re.compile(
    r'^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}'
    r'(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$'
)

# Hostname pattern (simplified)
HOSTNAME_PATTERN = re.compile(
    r'^(?=.{1,253}$)(?!-)[A-Za-z0-9-]{1,63}(?<!-)(\.[A-Za-z0-9-]{1,63})*$'
)

# Service names usable in place of a port number, e.g. "ftp"
SERVICE_NAME_PATTERN = re.compile(r'^[A-Za-z][A-Za-z0-9-]*$')

TRANSFER_MODES = ("A", "I")


def validate_ip_address(ip: str) -> Tuple[bool, Optional[str]]:
    """
    Validate an IPv4 address.

    Args:
        ip: IP address string to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not ip or not ip.strip():
        return False, "IP address is required"

    ip = ip.strip()

    if IPV4_PATTERN.match(ip):
        return True, None

    return False, f"Invalid IP address format: {ip}"


def validate_hostname(hostname: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a hostname.

    Args:
        hostname: Hostname string to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not hostname or not hostname.strip():
        return False, "Hostname is required"

    hostname = hostname.strip()

    if HOSTNAME_PATTERN.match(hostname):
        return True, None

    return False, f"Invalid hostname format: {hostname}"


def validate_host(host: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a host (IPv4 address, IPv6 address or hostname).

    Args:
        host: Host string to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not host or not host.strip():
        return False, "Host is required"

    host = host.strip()

    is_valid_ip, _ = validate_ip_address(host)
    if is_valid_ip:
        return True, None

    if ":" in host:
        try:
            ipaddress.IPv6Address(host)
            return True, None
        except ValueError:
            return False, f"Invalid IPv6 address: {host}"

    is_valid_hostname, _ = validate_hostname(host)
    if is_valid_hostname:
        return True, None

    return False, f"Invalid host: {host}. Must be a valid IP address or hostname."


def validate_port(port: int) -> Tuple[bool, Optional[str]]:
    """
    Validate a port number.

    Args:
        port: Port number to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(port, int):
        try:
            port = int(port)
        except (ValueError, TypeError):
            return False, "Port must be a number"

    if port < 1 or port > 65535:
        return False, f"Port must be between 1 and 65535, got {port}"

    return True, None


def has_port(address: str) -> bool:
    """
    Check whether an address carries an explicit port.

    Accepts "host:port" and "[ipv6::address]:port" forms.
    """
    return address.rfind(":") > address.rfind("]")


def validate_address(address: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a "host:port" server address.

    The port may be numeric or a TCP service name such as "ftp".
    IPv6 hosts must be enclosed in brackets.

    Args:
        address: Address string to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not address or not address.strip():
        return False, "Host can not be blank"

    address = address.strip()

    if not has_port(address):
        return False, f"Host must have a port, e.g. host:21 (got {address})"

    host, _, port = address.rpartition(":")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    elif ":" in host:
        return False, f"IPv6 hosts must be enclosed in brackets: {address}"

    is_valid, error = validate_host(host)
    if not is_valid:
        return False, error

    if port.isdigit():
        return validate_port(int(port))

    if SERVICE_NAME_PATTERN.match(port):
        return True, None

    return False, f"Invalid port: {port!r}"


def validate_timeout(timeout: float) -> Tuple[bool, Optional[str]]:
    """
    Validate a data connection timeout in seconds (0 disables it).

    Args:
        timeout: Timeout in seconds

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(timeout, (int, float)) or isinstance(timeout, bool):
        try:
            timeout = float(timeout)
        except (ValueError, TypeError):
            return False, "Timeout must be a number"

    if timeout < 0:
        return False, f"Timeout can not be negative, got {timeout}"

    return True, None


def validate_file_path(path: Path, must_exist: bool = True) -> Tuple[bool, Optional[str]]:
    """
    Validate a local file path.

    Args:
        path: Path to validate
        must_exist: If True, file must exist

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not path:
        return False, "File path is required"

    if isinstance(path, str):
        path = Path(path)

    if must_exist:
        if not path.exists():
            return False, f"File does not exist: {path}"
        if not path.is_file():
            return False, f"Path is not a file: {path}"

    return True, None


def validate_remote_path(path: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a remote path used as a RETR/STOR argument.

    Args:
        path: Remote path to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not path or not path.strip():
        return False, "Remote path is required"

    # A line break would end the command and smuggle in another one
    if "\r" in path or "\n" in path:
        return False, "Remote path can not contain line breaks"

    return True, None


def validate_transfer_mode(mode: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a TYPE code.

    Args:
        mode: "A" for ASCII or "I" for binary/image

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(mode, str) or mode.strip().upper() not in TRANSFER_MODES:
        return False, f"Transfer mode must be one of {', '.join(TRANSFER_MODES)}, got {mode!r}"

    return True, None
