"""Passive mode reply decoding for pasvftp."""

import re
from dataclasses import dataclass

from pasvftp.ftp.exceptions import FTPProtocolError


# h1,h2,h3,h4,p1,p2 anywhere in the reply; servers wrap it in free text
PASV_PATTERN = re.compile(r"(\d+),(\d+),(\d+),(\d+),(\d+),(\d+)")


@dataclass(frozen=True)
class DataEndpoint:
    """Where to open the data connection for one transfer."""
    host: str
    port: int

    @property
    def address(self) -> tuple:
        """(host, port) tuple for socket APIs."""
        return (self.host, self.port)


def extract_data_port(text: str) -> int:
    """
    Find the data port advertised in a PASV reply.

    Args:
        text: Body of the 227 reply

    Returns:
        Port number computed from the last two octets

    Raises:
        FTPProtocolError: If no address/port tuple is present
    """
    match = PASV_PATTERN.search(text)
    if match is None:
        raise FTPProtocolError(
            f"Cannot find data port in server output: {text.strip()}",
            response=text
        )

    high, low = int(match.group(5)), int(match.group(6))
    if high > 255 or low > 255:
        raise FTPProtocolError(
            f"Invalid data port octets {high},{low} in server output: {text.strip()}",
            response=text
        )
    return high * 256 + low


def parse_pasv_response(text: str, control_host: str) -> DataEndpoint:
    """
    Build the data endpoint for a PASV reply.

    The address advertised by the server is ignored and the control
    connection's host is used instead. Servers behind split-horizon NAT
    that advertise a different reachable address are not supported.

    Args:
        text: Body of the 227 reply
        control_host: Host the control connection was dialed to

    Returns:
        DataEndpoint for the data connection
    """
    return DataEndpoint(host=control_host, port=extract_data_port(text))
