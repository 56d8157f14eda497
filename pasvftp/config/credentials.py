"""Secure credential storage for pasvftp.

Uses the system keyring (Windows Credential Manager, macOS Keychain,
Linux Secret Service) to store FTP passwords. A password in the
FTP_PASSWORD environment variable takes precedence when resolving.
"""

import logging
import os
from typing import Mapping, Optional

import keyring
from keyring.errors import KeyringError

from pasvftp.config.settings import ENV_PASSWORD

logger = logging.getLogger("pasvftp.credentials")


class CredentialManager:
    """Secure credential storage using system keyring."""

    SERVICE_NAME = "pasvftp"

    def _make_key(self, host: str, username: str) -> str:
        """
        Create a unique key for the credential.

        Args:
            host: FTP host
            username: FTP username

        Returns:
            Unique key string
        """
        return f"{host}:{username}"

    def save_password(self, host: str, username: str, password: str) -> bool:
        """
        Save FTP password securely.

        Args:
            host: FTP host
            username: FTP username
            password: Password to save

        Returns:
            True if saved successfully, False otherwise
        """
        try:
            key = self._make_key(host, username)
            keyring.set_password(self.SERVICE_NAME, key, password)
            return True
        except KeyringError as e:
            logger.warning(f"Could not save password for {username}@{host}: {e}")
            return False

    def get_password(self, host: str, username: str) -> Optional[str]:
        """
        Retrieve saved password.

        Args:
            host: FTP host
            username: FTP username

        Returns:
            Password string or None if not found
        """
        try:
            key = self._make_key(host, username)
            return keyring.get_password(self.SERVICE_NAME, key)
        except KeyringError as e:
            logger.debug(f"Keyring lookup failed for {username}@{host}: {e}")
            return None

    def delete_password(self, host: str, username: str) -> bool:
        """
        Remove saved password.

        Args:
            host: FTP host
            username: FTP username

        Returns:
            True if deleted successfully, False otherwise
        """
        try:
            key = self._make_key(host, username)
            keyring.delete_password(self.SERVICE_NAME, key)
            return True
        except KeyringError:
            return False

    def has_password(self, host: str, username: str) -> bool:
        """
        Check if a password is saved.

        Args:
            host: FTP host
            username: FTP username

        Returns:
            True if password exists
        """
        return self.get_password(host, username) is not None

    def resolve_password(
        self,
        host: str,
        username: str,
        environ: Optional[Mapping[str, str]] = None
    ) -> Optional[str]:
        """
        Find a password from the environment, then the keyring.

        Args:
            host: FTP host
            username: FTP username
            environ: Mapping to read from (default os.environ)

        Returns:
            Password string or None if neither source has one
        """
        environ = os.environ if environ is None else environ
        password = environ.get(ENV_PASSWORD)
        if password:
            return password
        return self.get_password(host, username)
