"""
Unit tests for the event log backup worker and the Windows helpers it uses.

Tests cover:
- Unreachable hosts skipped without stopping the loop
- Missing remote logs, copy and verify steps
- Clearing remote logs only after a verified copy
- Admin share paths and wevtutil / ping invocations
"""

import os
import subprocess

import pytest

from logarchiver.errors import RemoteLogError
from logarchiver.helpers import win
from logarchiver.helpers.config import EventLogConfig
from logarchiver.workers.eventlog import EventLogBackupWorker, LogState
from tests.conftest import read_log


class FakeSource:
    """Remote hosts backed by a local folder: <share>/<host>/<Log>.evtx."""

    def __init__(self, share_root, reachable, fail_clear=()):
        self.share_root = share_root
        self.reachable = set(reachable)
        self.fail_clear = set(fail_clear)
        self.cleared = []
        self.probed = []

    def is_reachable(self, host):
        self.probed.append(host)
        return host in self.reachable

    def log_path(self, host, log_name):
        return os.path.join(str(self.share_root), host, win.evtx_file_name(log_name))

    def clear(self, host, log_name):
        if (host, log_name) in self.fail_clear:
            raise RemoteLogError(f"access denied clearing {log_name} on {host}")
        self.cleared.append((host, log_name))

    def add_log(self, host, log_name, content=b"ElfFile"):
        path = self.log_path(host, log_name)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(content)
        return path


class TestEventLogBackupWorker:
    """Tests for EventLogBackupWorker."""

    @pytest.fixture
    def share(self, tmp_path):
        return tmp_path / "share"

    @pytest.fixture
    def config(self, dirs):
        return EventLogConfig(destination=dirs["dst"], hosts=("SRV01", "SRV02", "SRV03"),
                              logs=("Application", "System"), log_folder=dirs["logs"])

    def _worker(self, config, run_log, clock, source):
        return EventLogBackupWorker(config, run_log, source=source, clock=clock)

    def test_copies_every_log(self, config, run_log, clock, share, dirs):
        source = FakeSource(share, reachable=config.hosts)
        for host in config.hosts:
            for log_name in config.logs:
                source.add_log(host, log_name)

        summary = self._worker(config, run_log, clock, source).run()

        assert summary.copied == 6
        assert summary.failures == []
        expected = dirs["dst"] / "SRV02" / "SRV02-System-20251001.evtx"
        assert expected.read_bytes() == b"ElfFile"
        assert source.cleared == []

    def test_unreachable_host_skipped(self, config, run_log, clock, share):
        source = FakeSource(share, reachable=["SRV01", "SRV03"])
        for host in config.hosts:
            for log_name in config.logs:
                source.add_log(host, log_name)

        summary = self._worker(config, run_log, clock, source).run()

        assert source.probed == ["SRV01", "SRV02", "SRV03"]
        states = [(r.host, r.state) for r in summary.results if not r.ok]
        assert states == [("SRV02", LogState.UNREACHABLE)]
        assert summary.copied == 4
        assert "[ERROR] Host SRV02 is unreachable" in read_log(run_log)

    def test_missing_log(self, config, run_log, clock, share):
        source = FakeSource(share, reachable=["SRV01"])
        source.add_log("SRV01", "Application")
        cfg = EventLogConfig(destination=config.destination, hosts=("SRV01",),
                             logs=("Application", "System"))

        summary = self._worker(cfg, run_log, clock, source).run()

        assert [(r.log_name, r.state) for r in summary.results] == [
            ("Application", LogState.COPIED), ("System", LogState.MISSING)]

    def test_clear_after_verified_copy(self, config, run_log, clock, share):
        cfg = EventLogConfig(destination=config.destination, hosts=("SRV01",),
                             logs=("Application",), clear=True)
        source = FakeSource(share, reachable=["SRV01"])
        source.add_log("SRV01", "Application")

        summary = self._worker(cfg, run_log, clock, source).run()

        assert summary.results[0].state == LogState.CLEARED
        assert source.cleared == [("SRV01", "Application")]

    def test_no_clear_when_copy_fails(self, config, run_log, clock, share, monkeypatch):
        from logarchiver.workers.eventlog import worker as eventlog_worker

        cfg = EventLogConfig(destination=config.destination, hosts=("SRV01",),
                             logs=("Application", "System"), clear=True)
        source = FakeSource(share, reachable=["SRV01"])
        source.add_log("SRV01", "Application")
        source.add_log("SRV01", "System")
        real_copy = eventlog_worker.safe_copy_file

        def copy(src, dst):
            if src.endswith("Application.evtx"):
                raise OSError(32, "The process cannot access the file", src)
            return real_copy(src, dst)

        monkeypatch.setattr(eventlog_worker, "safe_copy_file", copy)

        summary = self._worker(cfg, run_log, clock, source).run()

        assert [r.state for r in summary.results] == [LogState.COPY_FAILED, LogState.CLEARED]
        assert source.cleared == [("SRV01", "System")]

    def test_no_clear_when_verify_fails(self, config, run_log, clock, share, monkeypatch):
        from logarchiver.workers.eventlog import worker as eventlog_worker

        cfg = EventLogConfig(destination=config.destination, hosts=("SRV01",),
                             logs=("Application",), clear=True)
        source = FakeSource(share, reachable=["SRV01"])
        source.add_log("SRV01", "Application")
        monkeypatch.setattr(eventlog_worker, "verify_file", lambda *a, **k: False)

        summary = self._worker(cfg, run_log, clock, source).run()

        assert summary.results[0].state == LogState.VERIFY_FAILED
        assert source.cleared == []

    def test_clear_failure_logged(self, config, run_log, clock, share):
        cfg = EventLogConfig(destination=config.destination, hosts=("SRV01", "SRV02"),
                             logs=("Security",), clear=True)
        source = FakeSource(share, reachable=["SRV01", "SRV02"],
                            fail_clear=[("SRV01", "Security")])
        source.add_log("SRV01", "Security")
        source.add_log("SRV02", "Security")

        summary = self._worker(cfg, run_log, clock, source).run()

        assert [r.state for r in summary.results] == [LogState.CLEAR_FAILED, LogState.CLEARED]
        assert "Failed to clear Security on SRV01" in read_log(run_log)

    def test_channel_name_with_slash(self, config, run_log, clock, share, dirs):
        cfg = EventLogConfig(destination=config.destination, hosts=("SRV01",),
                             logs=("Microsoft-Windows-PowerShell/Operational",))
        source = FakeSource(share, reachable=["SRV01"])
        source.add_log("SRV01", "Microsoft-Windows-PowerShell/Operational")

        summary = self._worker(cfg, run_log, clock, source).run()

        assert summary.results[0].ok
        assert os.path.basename(summary.results[0].backup_path) == \
            "SRV01-Microsoft-Windows-PowerShell%4Operational-20251001.evtx"


class TestWindowsHelpers:
    """Tests for the Windows helper functions."""

    def test_evtx_file_name(self):
        assert win.evtx_file_name("System") == "System.evtx"
        assert win.evtx_file_name("Microsoft-Windows-TaskScheduler/Operational") == \
            "Microsoft-Windows-TaskScheduler%4Operational.evtx"

    def test_admin_share_path(self):
        path = win.admin_share_path("SRV01", "C$/Windows/System32/winevt/Logs/", "Application")
        assert path == r"\\SRV01\C$\Windows\System32\winevt\Logs\Application.evtx"

    def test_ping(self, monkeypatch):
        calls = []

        def run(cmd, **kwargs):
            calls.append(cmd)
            return subprocess.CompletedProcess(cmd, 0 if cmd[-1] == "up" else 1)

        monkeypatch.setattr(win.subprocess, "run", run)

        assert win.ping("up") is True
        assert win.ping("down") is False
        assert calls[0][0] == "ping"

    def test_ping_without_binary(self, monkeypatch):
        def run(cmd, **kwargs):
            raise FileNotFoundError("ping")

        monkeypatch.setattr(win.subprocess, "run", run)
        assert win.ping("any") is False

    def test_clear_event_log_command(self, monkeypatch):
        calls = []

        def run(cmd, **kwargs):
            calls.append(cmd)
            return subprocess.CompletedProcess(cmd, 0)

        monkeypatch.setattr(win.subprocess, "run", run)
        win.clear_event_log("SRV01", "System")

        assert calls == [["wevtutil", "cl", "System", "/r:SRV01"]]

    def test_clear_event_log_failure(self, monkeypatch):
        def run(cmd, **kwargs):
            raise subprocess.CalledProcessError(5, cmd, stderr=b"Access is denied.")

        monkeypatch.setattr(win.subprocess, "run", run)

        with pytest.raises(RemoteLogError, match="Access is denied"):
            win.clear_event_log("SRV01", "System")

    def test_clear_event_log_missing_tool(self, monkeypatch):
        def run(cmd, **kwargs):
            raise FileNotFoundError("wevtutil")

        monkeypatch.setattr(win.subprocess, "run", run)

        with pytest.raises(RemoteLogError, match="not found"):
            win.clear_event_log("SRV01", "System")
