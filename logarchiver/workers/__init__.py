"""
==========================
Worker Management Module
==========================

This module exposes the two pipeline workers and the loop that repeats a run on a schedule.

Features:
- `FileArchiveWorker`: archives aged files into one ZIP per day (see `workers.archive`).
- `EventLogBackupWorker`: copies (and optionally clears) remote event logs (see `workers.eventlog`).
- `run_scheduled`: runs a job, waits for the interval, and repeats until the stop event is set.

Usage:
>>> stop_event = threading.Event()
>>> run_scheduled(lambda: run_file_archive(cfg, log), 24 * 60 * 60, stop_event, log)

*Author: Sudharshan TK*\n
*Created: 2025-08-31*
"""

import threading
from typing import Callable

from logarchiver.workers.archive import FileArchiveWorker
from logarchiver.workers.eventlog import EventLogBackupWorker, RemoteLogSource
from logarchiver.logger import RunLogger


def run_scheduled(job: Callable[[], int], interval_seconds: float,
                  stop_event: threading.Event, log: RunLogger) -> int:
    """
    Run `job` now and then every `interval_seconds` until `stop_event` is set.
    Runs never overlap: the wait starts when a run returns.

    Args:
        job (Callable[[], int]): One complete run, returning its exit code.
        interval_seconds (float): Pause between the end of a run and the next start.
        stop_event (threading.Event): Set (e.g. from a signal handler) to stop after the current run.
        log (RunLogger): Logger for the schedule itself.

    Returns:
        int: Exit code of the last run.
    """
    code = 0
    log.info("Scheduled mode: every %.0f seconds", interval_seconds)
    while not stop_event.is_set():
        code = job()
        if stop_event.wait(interval_seconds):
            break
    log.info("Scheduled mode stopped")
    return code
