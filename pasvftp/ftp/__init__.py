"""FTP protocol module for pasvftp.

This module handles the control and data channels:
- FTPSession: Control connection with state tracking
- ResponseReader: Multi-line reply aggregation and code classification
- Passive decoder: PASV reply parsing
- TransferEngine: RETR/STOR over a passive data connection
- Exceptions: FTP-specific error types
"""
