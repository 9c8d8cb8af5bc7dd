"""
==========================
Main Application Module
==========================

Scheduled backup and retention for operational data:
- Archives aged files from a folder tree into one ZIP per day, deleting the originals only
  after each archive is verified at its destination.
- Copies Windows event logs from remote hosts and optionally clears them.

Usage:
>>> from logarchiver import start_app
>>> start_app(["files", "--source", "D:/Logs", "--destination", "//nas/archive", "--app-name", "IIS"])

*Author: Sudharshan TK*\n
*Created: 2025-08-31*
"""
from logarchiver.app import start_app, main
