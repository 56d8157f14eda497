"""Utility module for pasvftp.

This module provides cross-cutting utilities:
- Logging: Configured logging with password redaction
- Validators: Input validation for addresses, ports, paths and modes
"""
