"""
==========================
Event Log Backup Worker Module
==========================

This module copies Windows event log files from remote hosts to a backup folder over the
administrative share, and optionally clears each log once its copy is confirmed.

Features:
- Checks each host with a single ping before touching it.
- Copies `<Log>.evtx` to `<destination>/<host>/<host>-<Log>-<YYYYMMDD>.evtx`.
- Verifies the copy before clearing the remote log.
- Logs every step; one bad host or log never stops the others.

Usage:
>>> worker = EventLogBackupWorker(config, log)
>>> summary = worker.run()

*Author: Sudharshan TK*\n
*Created: 2025-09-20*
"""
from logarchiver.workers.eventlog.worker import *
