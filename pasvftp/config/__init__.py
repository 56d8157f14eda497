"""Configuration module for pasvftp.

This module handles client settings and credentials:
- SettingsManager: JSON-based settings persistence with environment overrides
- CredentialManager: Secure credential storage via keyring
- Paths: Config and log directory discovery
- ClientSettings: Settings dataclass
"""
