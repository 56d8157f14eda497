"""pasvftp: a passive-mode FTP client.

Subpackages:
- ftp: control session, response handling and the transfer engine
- config: settings persistence and credential storage
- utils: logging and input validation
"""
