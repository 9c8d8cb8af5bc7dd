import os
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from logarchiver.errors import RemoteLogError
from logarchiver.helpers.config import DEFAULT_SHARE, EventLogConfig
from logarchiver.helpers.copy import safe_copy_file, verify_file
from logarchiver.helpers.general import date_key
from logarchiver.helpers.win import admin_share_path, clear_event_log, evtx_file_name, ping
from logarchiver.logger import RunLogger, utc_now


class LogState(str, Enum):
    COPIED = "copied"
    CLEARED = "cleared"
    UNREACHABLE = "unreachable"
    MISSING = "missing"
    COPY_FAILED = "copy_failed"
    VERIFY_FAILED = "verify_failed"
    CLEAR_FAILED = "clear_failed"


@dataclass
class EventLogResult:
    host: str
    log_name: Optional[str]
    state: LogState
    backup_path: str = ""
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.state in (LogState.COPIED, LogState.CLEARED)


@dataclass
class EventLogRunSummary:
    results: List[EventLogResult] = field(default_factory=list)

    @property
    def failures(self) -> List[EventLogResult]:
        return [r for r in self.results if not r.ok]

    @property
    def copied(self) -> int:
        return sum(1 for r in self.results if r.ok)


class RemoteLogSource:
    """
    Event log files of Windows hosts, reached over the administrative share.
    """

    def __init__(self, share: str = DEFAULT_SHARE, timeout_ms: int = 1000):
        self.share = share
        self.timeout_ms = timeout_ms

    def is_reachable(self, host: str) -> bool:
        return ping(host, self.timeout_ms)

    def log_path(self, host: str, log_name: str) -> str:
        return admin_share_path(host, self.share, log_name)

    def clear(self, host: str, log_name: str) -> None:
        clear_event_log(host, log_name)


class EventLogBackupWorker:
    """
    Copies event logs from each host, one host and one log at a time:
      ping -> log exists on share -> copy -> verify copy -> (optional) clear remote log.
    A failure for one host or log is logged and the loop moves on.
    """

    def __init__(self, config: EventLogConfig, log: RunLogger,
                 source: RemoteLogSource | None = None, clock=utc_now):
        self.config = config
        self.log = log
        self.source = source or RemoteLogSource(config.share)
        self.clock = clock

    def run(self) -> EventLogRunSummary:
        summary = EventLogRunSummary()
        day = date_key(self.clock())

        for host in self.config.hosts:
            if not self.source.is_reachable(host):
                self.log.error("Host %s is unreachable; skipped", host)
                summary.results.append(EventLogResult(host, None, LogState.UNREACHABLE,
                                                      error="unreachable"))
                continue

            self.log.info("Host %s is reachable", host)
            for log_name in self.config.logs:
                summary.results.append(self.backup_log(host, log_name, day))

        self.log.info("Backed up %d event logs, %d failures",
                      summary.copied, len(summary.failures))
        return summary

    def backup_path_for(self, host: str, log_name: str, day: str) -> str:
        stem = evtx_file_name(log_name)[:-len(".evtx")]
        return os.path.join(str(self.config.destination), host, f"{host}-{stem}-{day}.evtx")

    def backup_log(self, host: str, log_name: str, day: str) -> EventLogResult:
        remote = self.source.log_path(host, log_name)
        dst = self.backup_path_for(host, log_name, day)

        if not os.path.isfile(remote):
            self.log.error("%s log not found on %s: %s", log_name, host, remote)
            return EventLogResult(host, log_name, LogState.MISSING, error=f"not found: {remote}")

        try:
            safe_copy_file(remote, dst)
        except OSError as e:
            self.log.error("Failed to copy %s from %s: %s", log_name, host, e)
            return EventLogResult(host, log_name, LogState.COPY_FAILED, dst, str(e))

        if not verify_file(dst):
            self.log.error("Copy of %s from %s not found at %s", log_name, host, dst)
            return EventLogResult(host, log_name, LogState.VERIFY_FAILED, dst, "copy missing")

        self.log.info("Copied %s from %s to %s", log_name, host, dst)

        if not self.config.clear:
            return EventLogResult(host, log_name, LogState.COPIED, dst)

        try:
            self.source.clear(host, log_name)
        except RemoteLogError as e:
            self.log.error("Failed to clear %s on %s: %s", log_name, host, e)
            return EventLogResult(host, log_name, LogState.CLEAR_FAILED, dst, str(e))

        self.log.info("Cleared %s on %s", log_name, host)
        return EventLogResult(host, log_name, LogState.CLEARED, dst)
