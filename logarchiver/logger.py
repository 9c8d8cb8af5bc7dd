"""
==========================
Logger Module
==========================

This module provides the structured run logger shared by both pipelines, built on Python's
built-in logging library. A `RunLogger` is an explicit instance, constructed with a log root,
an application identifier and a clock, and passed to every component that logs.

Features:
- Date-partitioned log files: `<root>/<app>/<YYYY>/<MM>/<app>_<YYYYMMDD>.log`.
- A header block (application, creation date, host name) written once when a day file is created.
- Every line mirrored to the console.
- Extra `START` and `END` levels to bracket a run.
- The day file is derived from the clock per record, so a run crossing midnight rolls over.

Usage:
>>> from logarchiver.logger import RunLogger
>>> log = RunLogger("/var/log/ops", "FileArchive")
>>> log.start("Run started")
>>> log.info("Archived %s", "FileArchive-20250101.zip")
>>> log.end("Run finished")
>>> log.close()

*Author: Sudharshan TK*\n
*Created: 2025-09-14*
"""

import logging
import os
import socket
import sys
import datetime
from typing import Callable, Optional

START = logging.INFO + 1
END = logging.INFO + 2

logging.addLevelName(START, "START")
logging.addLevelName(END, "END")

LEVELS = {
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "start": START,
    "end": END,
}

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
HEADER_RULE = "=" * 60

Clock = Callable[[], datetime.datetime]


def utc_now() -> datetime.datetime:
    """
    Default clock.

    Returns:
        datetime.datetime: Current time, timezone-aware UTC.
    """
    return datetime.datetime.now(datetime.UTC)


def log_path_for(root: str, app_name: str, day: datetime.date) -> str:
    """
    Path of the log file for one application and calendar day.

    Args:
        root (str): Log root folder.
        app_name (str): Application identifier.
        day (datetime.date): Calendar day.

    Returns:
        str: `<root>/<app>/<YYYY>/<MM>/<app>_<YYYYMMDD>.log`
    """
    return os.path.join(
        str(root), app_name, f"{day:%Y}", f"{day:%m}", f"{app_name}_{day:%Y%m%d}.log")


class ClockFormatter(logging.Formatter):
    """Formats `asctime` from the injected clock instead of the record timestamp."""

    def __init__(self, clock: Clock, fmt: str = LOG_FORMAT):
        super().__init__(fmt)
        self.clock = clock

    def formatTime(self, record, datefmt=None):
        return self.clock().strftime(datefmt or "%Y-%m-%d %H:%M:%S")


class DailyFileHandler(logging.Handler):
    """
    Appends records to one file per calendar day per application.
    Writes the header block when it creates a new day file.
    """

    def __init__(self, root: str, app_name: str, clock: Clock):
        super().__init__()
        self.root = str(root)
        self.app_name = app_name
        self.clock = clock
        self._day: Optional[datetime.date] = None
        self._stream = None

    @property
    def current_path(self) -> str:
        return log_path_for(self.root, self.app_name, self.clock().date())

    def _write_header(self, stream, now: datetime.datetime):
        stream.write(
            f"{HEADER_RULE}\n"
            f"Application : {self.app_name}\n"
            f"Created     : {now:%Y-%m-%d %H:%M:%S} UTC\n"
            f"Host        : {socket.gethostname()}\n"
            f"{HEADER_RULE}\n"
        )

    def _open_for(self, now: datetime.datetime):
        path = log_path_for(self.root, self.app_name, now.date())
        os.makedirs(os.path.dirname(path), exist_ok=True)
        is_new = not os.path.exists(path)
        self._stream = open(path, "a", encoding="utf-8")
        if is_new:
            self._write_header(self._stream, now)
        self._day = now.date()

    def _close_stream(self):
        if self._stream is not None:
            try:
                self._stream.flush()
            finally:
                self._stream.close()
                self._stream = None

    def emit(self, record):
        try:
            now = self.clock()
            if self._stream is None or now.date() != self._day:
                self._close_stream()
                self._open_for(now)
            self._stream.write(self.format(record) + "\n")
            self._stream.flush()
        except Exception:
            self.handleError(record)

    def close(self):
        self.acquire()
        try:
            self._close_stream()
        finally:
            self.release()
        super().close()


class RunLogger:
    """
    Explicit, non-global logger for one application identifier.

    Args:
        root (str): Log root folder.
        app_name (str): Application identifier, used for the file layout and header.
        clock (Clock, optional): Returns the current UTC time. Defaults to `utc_now`.
        console (bool, optional): Mirror every line to the console. Defaults to True.
        stream (optional): Console stream. Defaults to stderr.
    """

    def __init__(self, root, app_name: str, clock: Clock = utc_now,
                 console: bool = True, stream=None):
        self.root = str(root)
        self.app_name = app_name
        self.clock = clock

        # Not registered with logging.getLogger, so instances never share handlers.
        self._logger = logging.Logger(f"logarchiver.{app_name}", level=logging.INFO)
        self._logger.propagate = False

        fmt = ClockFormatter(clock)

        self._file_handler = DailyFileHandler(self.root, app_name, clock)
        self._file_handler.setFormatter(fmt)
        self._logger.addHandler(self._file_handler)

        if console:
            console_handler = logging.StreamHandler(stream or sys.stderr)
            console_handler.setFormatter(fmt)
            self._logger.addHandler(console_handler)

    @property
    def current_path(self) -> str:
        """Path of the file that today's records go to."""
        return self._file_handler.current_path

    def log(self, level, message: str, *args):
        """
        Log a message at the given level.

        Args:
            level (str | int): One of Info, Warn, Error, Start, End (case-insensitive) or a logging level.
            message (str): Message, %-style formatted with `args`.
        """
        if isinstance(level, str):
            try:
                level = LEVELS[level.lower()]
            except KeyError:
                raise ValueError(f"Unknown log level: {level}") from None
        self._logger.log(level, message, *args)

    def info(self, message: str, *args):
        self._logger.info(message, *args)

    def warn(self, message: str, *args):
        self._logger.warning(message, *args)

    def error(self, message: str, *args):
        self._logger.error(message, *args)

    def exception(self, message: str, *args):
        self._logger.exception(message, *args)

    def start(self, message: str, *args):
        self._logger.log(START, message, *args)

    def end(self, message: str, *args):
        self._logger.log(END, message, *args)

    def close(self):
        """
        Flush and detach all handlers.
        """
        for h in list(self._logger.handlers):
            try:
                h.flush()
                h.close()
            finally:
                self._logger.removeHandler(h)
